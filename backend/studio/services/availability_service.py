"""Slot availability derived from the date directory and booking counts."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import get_settings
from studio.models.available_date import AvailableDate
from studio.models.booking import Booking, BookingStatus
from studio.services.errors import NotFoundError


@dataclass(frozen=True, slots=True)
class SlotAvailability:
    date: dt.date
    time_slot: str
    capacity: int
    booked: int
    remaining: int
    is_full: bool
    bookable: bool = True


@dataclass(frozen=True, slots=True)
class DayAvailability:
    date: dt.date
    max_bookings: int
    slots: list[SlotAvailability]


def studio_today() -> dt.date:
    """Return the current date in the studio's timezone."""
    return dt.datetime.now(ZoneInfo(get_settings().studio_timezone)).date()


def remaining_spots(max_bookings: int, booked: int) -> int:
    return max(0, max_bookings - booked)


def is_date_bookable(
    available_date: AvailableDate | None, today: dt.date
) -> bool:
    """A day is bookable when it is listed, active and not in the past."""
    return (
        available_date is not None
        and available_date.is_active
        and available_date.date >= today
    )


def build_slot_availability(
    available_date: AvailableDate,
    time_slot: str,
    booked: int,
    *,
    today: dt.date,
) -> SlotAvailability:
    bookable = is_date_bookable(available_date, today)
    remaining = remaining_spots(available_date.max_bookings, booked) if bookable else 0
    return SlotAvailability(
        date=available_date.date,
        time_slot=time_slot,
        capacity=available_date.max_bookings,
        booked=booked,
        remaining=remaining,
        is_full=remaining == 0,
        bookable=bookable,
    )


async def count_slot_bookings(
    session: AsyncSession, *, day: dt.date, time_slot: str
) -> int:
    """Count bookings holding a spot in the slot (cancelled ones free theirs)."""
    result = await session.execute(
        select(func.count())
        .select_from(Booking)
        .where(
            Booking.date == day,
            Booking.time_slot == time_slot,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    return int(result.scalar_one())


async def get_slot_availability(
    session: AsyncSession,
    *,
    day: dt.date,
    time_slot: str,
    today: dt.date | None = None,
) -> SlotAvailability:
    """Recompute the remaining spots for one slot from current rows."""
    result = await session.execute(
        select(AvailableDate).where(AvailableDate.date == day)
    )
    available_date = result.scalar_one_or_none()
    if available_date is None or time_slot not in available_date.time_slots:
        raise NotFoundError("This time slot is not offered on the selected date")
    booked = await count_slot_bookings(session, day=day, time_slot=time_slot)
    return build_slot_availability(
        available_date, time_slot, booked, today=today or studio_today()
    )


async def list_availability(
    session: AsyncSession,
    *,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
) -> list[DayAvailability]:
    """Return every open day from ``from_date`` (default today) with per-slot spots."""
    today = studio_today()
    start = max(from_date or today, today)

    dates_stmt = (
        select(AvailableDate)
        .where(AvailableDate.is_active.is_(True), AvailableDate.date >= start)
        .order_by(AvailableDate.date.asc())
    )
    counts_stmt = (
        select(Booking.date, Booking.time_slot, func.count())
        .where(Booking.date >= start, Booking.status != BookingStatus.CANCELLED)
        .group_by(Booking.date, Booking.time_slot)
    )
    if to_date is not None:
        dates_stmt = dates_stmt.where(AvailableDate.date <= to_date)
        counts_stmt = counts_stmt.where(Booking.date <= to_date)

    available_dates = (await session.execute(dates_stmt)).scalars().all()
    counts: dict[tuple[dt.date, str], int] = {
        (day, slot): int(total)
        for day, slot, total in (await session.execute(counts_stmt)).all()
    }

    days: list[DayAvailability] = []
    for available_date in available_dates:
        slots = [
            build_slot_availability(
                available_date,
                slot,
                counts.get((available_date.date, slot), 0),
                today=today,
            )
            for slot in available_date.time_slots
        ]
        days.append(
            DayAvailability(
                date=available_date.date,
                max_bookings=available_date.max_bookings,
                slots=slots,
            )
        )
    return days
