"""Session deduction and refund procedures.

Each procedure runs as one transaction: the booking row is claimed first, the
balance moves through a guarded ``UPDATE`` and an append-only
``SessionDeduction`` row records the change.
Failures are reported through the result objects and leave every row as it
was; callers decide how to compensate.
"""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.booking import Booking, BookingStatus
from studio.models.mixins import utcnow
from studio.models.passes import Pass, PassStatus, PassType
from studio.models.session_deduction import DeductionReason, SessionDeduction
from studio.services import change_feed
from studio.services.availability_service import studio_today

logger = logging.getLogger(__name__)

BOOKING_DEDUCTION_NOTE = "Session deducted for booking"
REFUND_NOTE = "Session refunded after booking cancellation"


@dataclass(slots=True)
class DeductionResult:
    success: bool
    message: str
    pass_id: uuid.UUID | None = None
    remaining_sessions: int | None = None
    pass_type: PassType | None = None


@dataclass(slots=True)
class RefundResult:
    success: bool
    message: str
    pass_id: uuid.UUID | None = None
    remaining_sessions: int | None = None


async def debit_one(session: AsyncSession, pass_: Pass) -> int | None:
    """Take one session off a finite pass with a guarded ``UPDATE``.

    Returns the applied delta, or ``None`` when the pass had nothing left.
    """
    if pass_.is_unlimited:
        return 0
    result = await session.execute(
        update(Pass)
        .where(Pass.id == pass_.id, Pass.remaining_sessions > 0)
        .values(remaining_sessions=Pass.remaining_sessions - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    await session.refresh(pass_, attribute_names=["remaining_sessions"])
    pass_.status = PassStatus.USED if pass_.remaining_sessions == 0 else PassStatus.ACTIVE
    return -1


async def credit_one(session: AsyncSession, pass_: Pass) -> int:
    """Give one session back to a finite pass, never above its total."""
    if pass_.is_unlimited:
        return 0
    result = await session.execute(
        update(Pass)
        .where(Pass.id == pass_.id, Pass.remaining_sessions < Pass.total_sessions)
        .values(remaining_sessions=Pass.remaining_sessions + 1)
        .execution_options(synchronize_session=False)
    )
    await session.refresh(pass_, attribute_names=["remaining_sessions"])
    return 1 if result.rowcount == 1 else 0


def record_entry(
    session: AsyncSession,
    pass_: Pass,
    *,
    reason: DeductionReason,
    delta: int,
    booking_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> SessionDeduction:
    """Append a ledger row describing a balance change already applied to ``pass_``."""
    entry = SessionDeduction(
        user_id=pass_.user_id,
        pass_id=pass_.id,
        booking_id=booking_id,
        reason=reason,
        delta=delta,
        remaining_after=pass_.remaining_sessions,
        pass_type=pass_.pass_type,
        notes=notes,
    )
    session.add(entry)
    return entry


async def booking_entries(
    session: AsyncSession, booking_id: uuid.UUID
) -> Sequence[SessionDeduction]:
    result = await session.execute(
        select(SessionDeduction)
        .where(SessionDeduction.booking_id == booking_id)
        .order_by(SessionDeduction.deducted_at.asc())
    )
    return result.scalars().all()


async def outstanding_deduction(
    session: AsyncSession, booking_id: uuid.UUID
) -> SessionDeduction | None:
    """Return the booking deduction not yet matched by a refund, if any."""
    entries = await booking_entries(session, booking_id)
    charges = [e for e in entries if e.reason == DeductionReason.BOOKING]
    refunds = sum(1 for e in entries if e.reason == DeductionReason.REFUND)
    if len(charges) <= refunds:
        return None
    return charges[refunds]


async def _lock_pass(session: AsyncSession, pass_id: uuid.UUID) -> Pass | None:
    result = await session.execute(
        select(Pass)
        .where(Pass.id == pass_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def lock_booking(session: AsyncSession, booking_id: uuid.UUID) -> Booking | None:
    """Claim the booking row for the rest of the transaction and reload it.

    The touch is a real write, so it serialises callers on backends where
    ``FOR UPDATE`` is ignored.
    """
    await session.execute(
        update(Booking)
        .where(Booking.id == booking_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return await session.get(
        Booking, booking_id, with_for_update=True, populate_existing=True
    )


async def deduct_session_from_pass(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    booking_id: uuid.UUID | None = None,
    pass_id: uuid.UUID | None = None,
    today: dt.date | None = None,
) -> DeductionResult:
    """Consume one session from the client's eligible pass for ``booking_id``.

    When ``pass_id`` is omitted the client must hold exactly one eligible
    pass; with several the caller has to pick one explicitly.
    """
    today = today or studio_today()

    if booking_id is not None:
        booking = await lock_booking(session, booking_id)
        if booking is None or (booking.user_id is not None and booking.user_id != user_id):
            await session.rollback()
            return DeductionResult(False, "Booking not found for this client")
        if booking.status is BookingStatus.CANCELLED:
            await session.rollback()
            return DeductionResult(False, "Booking is cancelled")
        if await outstanding_deduction(session, booking_id) is not None:
            await session.rollback()
            return DeductionResult(
                False, "A session has already been deducted for this booking"
            )

    stmt = (
        select(Pass)
        .where(Pass.user_id == user_id, Pass.status == PassStatus.ACTIVE)
        .order_by(Pass.purchase_date.asc())
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if pass_id is not None:
        stmt = stmt.where(Pass.id == pass_id)
    passes = (await session.execute(stmt)).scalars().all()
    eligible = [p for p in passes if p.has_capacity() and not p.is_expired_on(today)]

    if not eligible:
        await session.rollback()
        return DeductionResult(False, "No active pass with remaining sessions")
    if len(eligible) > 1:
        await session.rollback()
        return DeductionResult(
            False, "Several active passes are available; select the pass to use"
        )

    pass_ = eligible[0]
    delta = await debit_one(session, pass_)
    if delta is None:
        await session.rollback()
        return DeductionResult(False, "No active pass with remaining sessions")
    record_entry(
        session,
        pass_,
        reason=DeductionReason.BOOKING,
        delta=delta,
        booking_id=booking_id,
        notes=BOOKING_DEDUCTION_NOTE,
    )
    await session.commit()

    logger.info(
        "Deducted session from pass %s for booking %s (remaining %d)",
        pass_.id,
        booking_id,
        pass_.remaining_sessions,
    )
    change_feed.publish("passes", "update", pass_.id)
    change_feed.publish("session_deductions", "insert", pass_.id)
    message = (
        "Booking covered by an unlimited pass"
        if pass_.is_unlimited
        else "Session deducted from pass"
    )
    return DeductionResult(
        True,
        message,
        pass_id=pass_.id,
        remaining_sessions=pass_.remaining_sessions,
        pass_type=pass_.pass_type,
    )


async def refund_session_to_pass(
    session: AsyncSession,
    *,
    booking_id: uuid.UUID,
    commit: bool = True,
) -> RefundResult:
    """Reverse the outstanding deduction for ``booking_id``.

    With ``commit=False`` the refund stays in the caller's transaction and the
    caller publishes the change once it commits.
    """
    await lock_booking(session, booking_id)
    charge = await outstanding_deduction(session, booking_id)
    if charge is None:
        await session.rollback()
        return RefundResult(False, "No session deduction found for this booking")

    pass_ = await _lock_pass(session, charge.pass_id)
    if pass_ is None:
        await session.rollback()
        return RefundResult(False, "The pass used for this booking no longer exists")

    delta = await credit_one(session, pass_) if charge.delta != 0 else 0
    if pass_.status == PassStatus.USED and pass_.has_capacity():
        pass_.status = PassStatus.ACTIVE
    record_entry(
        session,
        pass_,
        reason=DeductionReason.REFUND,
        delta=delta,
        booking_id=booking_id,
        notes=REFUND_NOTE,
    )
    if not commit:
        await session.flush()
        return RefundResult(
            True,
            "Session refunded to pass",
            pass_id=pass_.id,
            remaining_sessions=pass_.remaining_sessions,
        )
    await session.commit()

    logger.info(
        "Refunded session to pass %s for booking %s (remaining %d)",
        pass_.id,
        booking_id,
        pass_.remaining_sessions,
    )
    change_feed.publish("passes", "update", pass_.id)
    change_feed.publish("session_deductions", "insert", pass_.id)
    return RefundResult(
        True,
        "Session refunded to pass",
        pass_id=pass_.id,
        remaining_sessions=pass_.remaining_sessions,
    )
