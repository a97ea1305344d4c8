"""Booking record store helpers."""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.available_date import AvailableDate
from studio.models.booking import Booking, BookingStatus
from studio.models.mixins import utcnow
from studio.services import audit_service, change_feed
from studio.services.availability_service import (
    count_slot_bookings,
    is_date_bookable,
    studio_today,
)
from studio.services.errors import (
    InvalidTransitionError,
    LedgerError,
    NotFoundError,
    SlotUnavailableError,
)
from studio.services.ledger_service import (
    DeductionResult,
    RefundResult,
    deduct_session_from_pass,
    lock_booking,
    outstanding_deduction,
    refund_session_to_pass,
)

logger = logging.getLogger(__name__)

_ALLOWED_STATUS_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}


async def get_booking(session: AsyncSession, booking_id: uuid.UUID) -> Booking | None:
    return await session.get(Booking, booking_id)


async def list_bookings(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
    status: BookingStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> Sequence[Booking]:
    stmt = select(Booking).order_by(Booking.created_at.desc())
    if user_id is not None:
        stmt = stmt.where(Booking.user_id == user_id)
    if from_date is not None:
        stmt = stmt.where(Booking.date >= from_date)
    if to_date is not None:
        stmt = stmt.where(Booking.date <= to_date)
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    result = await session.execute(stmt.offset(skip).limit(limit))
    return result.scalars().all()


async def create_booking(
    session: AsyncSession,
    *,
    day: dt.date,
    time_slot: str,
    appointment_type: str,
    client_name: str,
    client_email: str,
    client_phone: str = "",
    user_id: uuid.UUID | None = None,
    requires_pass: bool = False,
    status: BookingStatus = BookingStatus.PENDING,
    today: dt.date | None = None,
) -> Booking:
    """Reserve a spot in a slot, failing when the slot is closed or full.

    The date row is claimed with a write before the slot is counted, so
    concurrent requests for the same day queue behind each other on every
    backend and cannot both take the last spot.
    """
    await session.execute(
        update(AvailableDate)
        .where(AvailableDate.date == day)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        select(AvailableDate)
        .where(AvailableDate.date == day)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    available_date = result.scalar_one_or_none()
    if not is_date_bookable(available_date, today or studio_today()):
        await session.rollback()
        raise SlotUnavailableError("This date is not open for booking")
    if time_slot not in available_date.time_slots:
        await session.rollback()
        raise SlotUnavailableError("This time slot is not offered on the selected date")

    booked = await count_slot_bookings(session, day=day, time_slot=time_slot)
    if booked >= available_date.max_bookings:
        await session.rollback()
        raise SlotUnavailableError("This time slot is already full")

    booking = Booking(
        date=day,
        time_slot=time_slot,
        appointment_type=appointment_type,
        client_name=client_name,
        client_email=client_email.lower(),
        client_phone=client_phone,
        user_id=user_id,
        requires_pass=requires_pass,
        status=status,
    )
    session.add(booking)
    await session.commit()
    await session.refresh(booking)
    logger.info("Booked %s %s for %s", day.isoformat(), time_slot, booking.client_email)
    change_feed.publish("bookings", "insert", booking.id)
    return booking


async def update_booking_status(
    session: AsyncSession,
    *,
    booking: Booking,
    status: BookingStatus,
    actor_id: uuid.UUID | None = None,
) -> tuple[Booking, DeductionResult | None]:
    """Move a booking to ``status``.

    Confirming a pending booking that needs a pass charges the client's pass
    when nothing has been deducted for it yet. A failed charge leaves the
    booking confirmed and is reported through the returned result.
    """
    if status == booking.status:
        return booking, None
    if status not in _ALLOWED_STATUS_TRANSITIONS[booking.status]:
        raise InvalidTransitionError(
            f"Cannot move booking from {booking.status.value} to {status.value}"
        )
    if status == BookingStatus.CANCELLED:
        cancelled, _ = await cancel_booking(session, booking=booking, actor_id=actor_id)
        return cancelled, None

    booking_id = booking.id
    user_id = booking.user_id
    needs_charge = booking.requires_pass and user_id is not None
    booking.status = status
    await audit_service.record_event(
        session,
        event_type="booking.status_changed",
        user_id=actor_id,
        payload={"booking_id": str(booking_id), "status": status.value},
    )
    await session.commit()
    change_feed.publish("bookings", "update", booking_id)

    deduction: DeductionResult | None = None
    if needs_charge and await outstanding_deduction(session, booking_id) is None:
        deduction = await deduct_session_from_pass(
            session, user_id=user_id, booking_id=booking_id
        )
        if not deduction.success:
            logger.warning(
                "Booking %s confirmed without a pass deduction: %s",
                booking_id,
                deduction.message,
            )
    await session.refresh(booking)
    return booking, deduction


async def cancel_booking(
    session: AsyncSession,
    *,
    booking: Booking,
    actor_id: uuid.UUID | None = None,
) -> tuple[Booking, RefundResult | None]:
    """Refund any outstanding deduction and mark the booking cancelled in one transaction."""
    if booking.status == BookingStatus.CANCELLED:
        raise InvalidTransitionError("Booking is already cancelled")

    booking_id = booking.id
    booking = await lock_booking(session, booking_id)
    if booking is None:
        await session.rollback()
        raise NotFoundError("Booking not found")
    if booking.status == BookingStatus.CANCELLED:
        await session.rollback()
        raise InvalidTransitionError("Booking is already cancelled")

    refund: RefundResult | None = None
    if await outstanding_deduction(session, booking_id) is not None:
        refund = await refund_session_to_pass(session, booking_id=booking_id, commit=False)
        if not refund.success:
            raise LedgerError(refund.message)

    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = utcnow()
    await audit_service.record_event(
        session,
        event_type="booking.cancelled",
        user_id=actor_id,
        payload={
            "booking_id": str(booking_id),
            "refunded": bool(refund and refund.success),
        },
    )
    await session.commit()
    await session.refresh(booking)
    if refund is not None:
        change_feed.publish("passes", "update", refund.pass_id)
        change_feed.publish("session_deductions", "insert", refund.pass_id)
    change_feed.publish("bookings", "update", booking_id)
    return booking, refund


async def delete_booking(session: AsyncSession, *, booking_id: uuid.UUID) -> None:
    """Remove a booking row outright. Cancellation goes through ``cancel_booking``."""
    booking = await session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    await session.delete(booking)
    await session.commit()
    logger.info("Deleted booking %s", booking_id)
    change_feed.publish("bookings", "delete", booking_id)
