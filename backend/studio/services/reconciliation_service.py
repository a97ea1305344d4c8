"""Sweep for pass-based bookings left without a ledger charge."""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import get_settings
from studio.models.booking import Booking, BookingStatus
from studio.models.mixins import utcnow
from studio.models.passes import PassType
from studio.models.session_deduction import DeductionReason, SessionDeduction
from studio.services import audit_service, booking_service, pass_service
from studio.services.errors import InvalidTransitionError, NotFoundError
from studio.services.ledger_service import deduct_session_from_pass, outstanding_deduction

logger = logging.getLogger(__name__)

ReconcileMode = Literal["complete", "rollback"]


@dataclass(slots=True)
class ReconcileReport:
    completed: list[uuid.UUID] = field(default_factory=list)
    rolled_back: list[uuid.UUID] = field(default_factory=list)


def _net_charges():
    """Per-booking count of booking charges not matched by a refund."""
    signed = case(
        (SessionDeduction.reason == DeductionReason.BOOKING, 1),
        (SessionDeduction.reason == DeductionReason.REFUND, -1),
        else_=0,
    )
    return (
        select(
            SessionDeduction.booking_id.label("booking_id"),
            func.sum(signed).label("net"),
        )
        .where(SessionDeduction.booking_id.is_not(None))
        .group_by(SessionDeduction.booking_id)
        .subquery()
    )


def _grace(min_age: dt.timedelta | None) -> dt.timedelta:
    if min_age is None:
        return dt.timedelta(minutes=get_settings().reconcile_min_age_minutes)
    return min_age


async def find_orphaned_bookings(
    session: AsyncSession, *, min_age: dt.timedelta | None = None
) -> Sequence[Booking]:
    """Return live pass-based bookings with no outstanding pass charge.

    Bookings younger than ``min_age`` are left alone while their own
    booking flow may still be charging them.
    """
    charges = _net_charges()
    stmt = (
        select(Booking)
        .outerjoin(charges, charges.c.booking_id == Booking.id)
        .where(
            Booking.requires_pass.is_(True),
            Booking.user_id.is_not(None),
            Booking.status != BookingStatus.CANCELLED,
            func.coalesce(charges.c.net, 0) <= 0,
        )
        .order_by(Booking.created_at.asc())
    )
    grace = _grace(min_age)
    if grace > dt.timedelta(0):
        stmt = stmt.where(Booking.created_at < utcnow() - grace)
    result = await session.execute(stmt)
    return result.scalars().all()


async def _pick_pass(
    session: AsyncSession, *, user_id: uuid.UUID, appointment_type: str
) -> uuid.UUID | None:
    """Oldest usable pass matching the booking's kind, trial bookings using the trial pass."""
    passes = await pass_service.list_active(session, user_id=user_id)
    wants_trial = appointment_type.lower().startswith("trial")
    for pass_ in passes:
        if (pass_.pass_type is PassType.TRIAL) == wants_trial:
            return pass_.id
    return None


async def _roll_back(
    session: AsyncSession, booking_id: uuid.UUID, reason: str
) -> bool:
    """Cancel the booking; ``False`` when it is gone or was cancelled meanwhile."""
    booking = await session.get(Booking, booking_id)
    if booking is None:
        return False
    try:
        await booking_service.cancel_booking(session, booking=booking)
    except (InvalidTransitionError, NotFoundError):
        logger.info("Booking %s was cancelled before reconciliation reached it", booking_id)
        return False
    await audit_service.record_event(
        session,
        event_type="reconcile.rolled_back",
        description=reason,
        payload={"booking_id": str(booking_id)},
        commit=True,
    )
    return True


async def reconcile_orphaned_bookings(
    session: AsyncSession,
    *,
    mode: ReconcileMode = "complete",
    min_age: dt.timedelta | None = None,
) -> ReconcileReport:
    """Charge or cancel every orphaned booking.

    ``complete`` charges the client's pass and cancels the booking when no
    pass can cover it; ``rollback`` cancels every orphan.
    """
    orphans = [
        (booking.id, booking.user_id, booking.appointment_type)
        for booking in await find_orphaned_bookings(session, min_age=min_age)
    ]
    report = ReconcileReport()

    for booking_id, user_id, appointment_type in orphans:
        if mode == "rollback":
            if await _roll_back(session, booking_id, "Rolled back by reconciliation"):
                report.rolled_back.append(booking_id)
            continue

        pass_id = await _pick_pass(
            session, user_id=user_id, appointment_type=appointment_type
        )
        if pass_id is None:
            if await _roll_back(session, booking_id, "No pass available to cover the booking"):
                report.rolled_back.append(booking_id)
            continue

        result = await deduct_session_from_pass(
            session, user_id=user_id, booking_id=booking_id, pass_id=pass_id
        )
        if not result.success:
            if await outstanding_deduction(session, booking_id) is not None:
                # Charged by someone else since the sweep started.
                continue
            if await _roll_back(session, booking_id, result.message):
                report.rolled_back.append(booking_id)
            continue

        await audit_service.record_event(
            session,
            event_type="reconcile.completed",
            payload={"booking_id": str(booking_id), "pass_id": str(pass_id)},
            commit=True,
        )
        report.completed.append(booking_id)

    if orphans:
        logger.info(
            "Reconciled %d orphaned bookings (%d completed, %d rolled back)",
            len(orphans),
            len(report.completed),
            len(report.rolled_back),
        )
    return report
