"""Pass ledger: granting, listing and administrative overrides."""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Final

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.passes import UNLIMITED_SESSIONS, Pass, PassStatus, PassType
from studio.models.purchase import Purchase
from studio.models.session_deduction import DeductionReason, SessionDeduction
from studio.models.user import User
from studio.services import audit_service, change_feed
from studio.services.availability_service import studio_today
from studio.services.errors import LedgerError, NotFoundError
from studio.services.ledger_service import debit_one, record_entry

logger = logging.getLogger(__name__)

_CURRENCY_UNIT: Final = Decimal("0.01")

MANUAL_DEDUCTION_NOTE = "Manual deduction by administrator"
MANUAL_OVERRIDE_NOTE = "Manual override by administrator"


@dataclass(frozen=True, slots=True)
class PassCatalogEntry:
    pass_type: PassType
    label: str
    sessions: int
    expiry_days: int | None = None


PASS_CATALOG: Final[dict[PassType, PassCatalogEntry]] = {
    PassType.TRIAL: PassCatalogEntry(PassType.TRIAL, "Trial class", 1),
    PassType.FIVE_SESSIONS: PassCatalogEntry(
        PassType.FIVE_SESSIONS, "5-class card", 5
    ),
    PassType.TEN_SESSIONS: PassCatalogEntry(
        PassType.TEN_SESSIONS, "10-class card", 10
    ),
    PassType.MONTHLY: PassCatalogEntry(
        PassType.MONTHLY, "Monthly unlimited", UNLIMITED_SESSIONS, expiry_days=30
    ),
    PassType.YEARLY: PassCatalogEntry(
        PassType.YEARLY, "12-month commitment", UNLIMITED_SESSIONS, expiry_days=365
    ),
}


@dataclass(slots=True)
class TrialGrantResult:
    success: bool
    reason: str
    pass_id: uuid.UUID | None = None


def _build_pass(
    *,
    user_id: uuid.UUID,
    pass_type: PassType,
    total_sessions: int | None,
    expiry_date: dt.date | None,
    today: dt.date,
) -> Pass:
    entry = PASS_CATALOG[pass_type]
    total = entry.sessions if total_sessions is None else total_sessions
    if total < 1:
        raise LedgerError("A pass needs at least one session")
    if expiry_date is None and entry.expiry_days is not None:
        expiry_date = today + dt.timedelta(days=entry.expiry_days)
    return Pass(
        user_id=user_id,
        pass_type=pass_type,
        total_sessions=total,
        remaining_sessions=total,
        status=PassStatus.ACTIVE,
        expiry_date=expiry_date,
    )


async def _require_user(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("Client not found")
    return user


async def get_pass(session: AsyncSession, pass_id: uuid.UUID) -> Pass | None:
    return await session.get(Pass, pass_id)


async def grant(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    pass_type: PassType,
    total_sessions: int | None = None,
    expiry_date: dt.date | None = None,
    today: dt.date | None = None,
) -> Pass:
    """Create an active pass for a client."""
    if pass_type is PassType.TRIAL:
        raise LedgerError("Trial passes are only granted through the trial grant")
    await _require_user(session, user_id)
    pass_ = _build_pass(
        user_id=user_id,
        pass_type=pass_type,
        total_sessions=total_sessions,
        expiry_date=expiry_date,
        today=today or studio_today(),
    )
    session.add(pass_)
    await session.commit()
    await session.refresh(pass_)
    change_feed.publish("passes", "insert", pass_.id)
    return pass_


async def assign_pass(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    pass_type: PassType,
    amount: Decimal,
    today: dt.date | None = None,
) -> Pass:
    """Assign a paid pass from the catalog and record the purchase."""
    if pass_type is PassType.TRIAL:
        raise LedgerError("Trial passes are only granted through the trial grant")
    await _require_user(session, user_id)
    entry = PASS_CATALOG[pass_type]
    pass_ = _build_pass(
        user_id=user_id,
        pass_type=pass_type,
        total_sessions=None,
        expiry_date=None,
        today=today or studio_today(),
    )
    session.add(pass_)
    await session.flush()
    session.add(
        Purchase(
            user_id=user_id,
            pass_id=pass_.id,
            item_name=entry.label,
            amount=Decimal(amount).quantize(_CURRENCY_UNIT, rounding=ROUND_HALF_UP),
        )
    )
    await session.commit()
    await session.refresh(pass_)
    logger.info("Assigned %s pass %s to user %s", pass_type.value, pass_.id, user_id)
    change_feed.publish("passes", "insert", pass_.id)
    change_feed.publish("purchases", "insert", pass_.id)
    return pass_


async def grant_trial_if_eligible(
    session: AsyncSession, *, user_id: uuid.UUID
) -> TrialGrantResult:
    """Grant the one-time trial pass; concurrent calls yield a single success."""
    user_result = await session.execute(
        select(User).where(User.id == user_id).with_for_update()
    )
    if user_result.scalar_one_or_none() is None:
        await session.rollback()
        return TrialGrantResult(False, "Client not found")

    existing = await session.execute(
        select(Pass.id)
        .where(Pass.user_id == user_id, Pass.pass_type == PassType.TRIAL)
        .limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        await session.rollback()
        return TrialGrantResult(False, "A trial pass has already been granted")

    pass_ = Pass(
        user_id=user_id,
        pass_type=PassType.TRIAL,
        total_sessions=1,
        remaining_sessions=1,
        status=PassStatus.ACTIVE,
        trial_holder_id=user_id,
    )
    session.add(pass_)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info("Concurrent trial grant refused for user %s", user_id)
        return TrialGrantResult(False, "A trial pass has already been granted")

    change_feed.publish("passes", "insert", pass_.id)
    return TrialGrantResult(True, "Trial pass granted", pass_id=pass_.id)


async def list_active(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    today: dt.date | None = None,
) -> list[Pass]:
    """Return the client's usable passes, oldest purchase first."""
    today = today or studio_today()
    result = await session.execute(
        select(Pass)
        .where(Pass.user_id == user_id, Pass.status == PassStatus.ACTIVE)
        .order_by(Pass.purchase_date.asc())
    )
    return [
        p for p in result.scalars().all() if p.has_capacity() and not p.is_expired_on(today)
    ]


async def list_passes(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    status: PassStatus | None = None,
) -> Sequence[Pass]:
    stmt = select(Pass).order_by(Pass.purchase_date.desc())
    if user_id is not None:
        stmt = stmt.where(Pass.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Pass.status == status)
    result = await session.execute(stmt)
    return result.scalars().all()


async def manual_adjust(
    session: AsyncSession,
    *,
    pass_: Pass,
    new_remaining: int,
    actor_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> Pass:
    """Set the remaining balance directly, recording the override in the ledger."""
    if new_remaining < 0 or new_remaining > pass_.total_sessions:
        raise LedgerError(
            f"Remaining sessions must be between 0 and {pass_.total_sessions}"
        )
    locked = await session.execute(
        select(Pass)
        .where(Pass.id == pass_.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    pass_ = locked.scalar_one()
    delta = new_remaining - pass_.remaining_sessions
    pass_.remaining_sessions = new_remaining
    pass_.status = PassStatus.USED if new_remaining == 0 else PassStatus.ACTIVE
    note = MANUAL_OVERRIDE_NOTE if not notes else f"{MANUAL_OVERRIDE_NOTE}: {notes}"
    record_entry(session, pass_, reason=DeductionReason.ADJUSTMENT, delta=delta, notes=note)
    await audit_service.record_event(
        session,
        event_type="pass.adjusted",
        user_id=actor_id,
        description=note,
        payload={"pass_id": str(pass_.id), "delta": delta, "remaining": new_remaining},
    )
    await session.commit()
    await session.refresh(pass_)
    change_feed.publish("passes", "update", pass_.id)
    return pass_


async def manual_deduct(
    session: AsyncSession,
    *,
    pass_: Pass,
    actor_id: uuid.UUID | None = None,
) -> Pass:
    """Take one session off a finite pass outside of any booking."""
    if pass_.is_unlimited:
        raise LedgerError("Unlimited passes have no sessions to deduct")
    if pass_.remaining_sessions <= 0:
        raise LedgerError("This pass has no remaining sessions")

    locked = await session.execute(
        select(Pass)
        .where(Pass.id == pass_.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    pass_ = locked.scalar_one()
    delta = await debit_one(session, pass_)
    if delta is None:
        await session.rollback()
        raise LedgerError("This pass has no remaining sessions")
    record_entry(
        session, pass_, reason=DeductionReason.MANUAL, delta=delta, notes=MANUAL_DEDUCTION_NOTE
    )
    await audit_service.record_event(
        session,
        event_type="pass.manual_deduction",
        user_id=actor_id,
        payload={"pass_id": str(pass_.id), "remaining": pass_.remaining_sessions},
    )
    await session.commit()
    await session.refresh(pass_)
    change_feed.publish("passes", "update", pass_.id)
    return pass_


async def delete_pass(
    session: AsyncSession,
    *,
    pass_: Pass,
    actor_id: uuid.UUID | None = None,
) -> None:
    """Delete a pass together with its ledger history. Not reversible."""
    pass_id = pass_.id
    await session.execute(
        delete(SessionDeduction).where(SessionDeduction.pass_id == pass_id)
    )
    await session.delete(pass_)
    await audit_service.record_event(
        session,
        event_type="pass.deleted",
        user_id=actor_id,
        payload={
            "pass_id": str(pass_id),
            "user_id": str(pass_.user_id),
            "pass_type": pass_.pass_type.value,
            "remaining": pass_.remaining_sessions,
        },
    )
    await session.commit()
    logger.info("Deleted pass %s and its ledger history", pass_id)
    change_feed.publish("passes", "delete", pass_id)


async def expire_outdated_passes(
    session: AsyncSession, *, today: dt.date | None = None
) -> int:
    """Mark active passes whose expiry date has passed as expired."""
    today = today or studio_today()
    result = await session.execute(
        update(Pass)
        .where(
            Pass.status == PassStatus.ACTIVE,
            Pass.expiry_date.is_not(None),
            Pass.expiry_date < today,
        )
        .values(status=PassStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    expired = result.rowcount or 0
    if expired:
        logger.info("Expired %d outdated passes", expired)
        change_feed.publish("passes", "update")
    return expired


async def ledger_history(
    session: AsyncSession, *, user_id: uuid.UUID
) -> tuple[Sequence[SessionDeduction], Sequence[Purchase]]:
    """Return the client's ledger entries and purchases, newest first."""
    deductions = await session.execute(
        select(SessionDeduction)
        .where(SessionDeduction.user_id == user_id)
        .order_by(SessionDeduction.deducted_at.desc())
    )
    purchases = await session.execute(
        select(Purchase)
        .where(Purchase.user_id == user_id)
        .order_by(Purchase.purchase_date.desc())
    )
    return deductions.scalars().all(), purchases.scalars().all()
