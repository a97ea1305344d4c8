"""Booking slot directory management."""
from __future__ import annotations

import calendar
import datetime as dt
import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Final

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import get_settings
from studio.models.available_date import AvailableDate
from studio.services import change_feed
from studio.services.availability_service import studio_today
from studio.services.errors import DuplicateDateError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIME_SLOTS: Final = (
    "09:00",
    "10:00",
    "11:00",
    "14:00",
    "15:00",
    "16:00",
    "17:00",
    "18:00",
    "19:00",
)


@dataclass(slots=True)
class RecurringDatesOutcome:
    created: list[dt.date] = field(default_factory=list)
    skipped: list[dt.date] = field(default_factory=list)


def add_months(day: dt.date, months: int) -> dt.date:
    """Shift ``day`` by calendar months, clamping to the last day of the month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


def generate_recurring_dates(
    weekdays: Iterable[int], start: dt.date, months: int
) -> list[dt.date]:
    """Return every date in ``[start, start + months]`` falling on an ISO weekday."""
    wanted = set(weekdays)
    end = add_months(start, months)
    dates: list[dt.date] = []
    current = start
    while current <= end:
        if current.isoweekday() in wanted:
            dates.append(current)
        current += dt.timedelta(days=1)
    return dates


async def list_available_dates(
    session: AsyncSession,
    *,
    from_date: dt.date | None = None,
    include_inactive: bool = True,
) -> Sequence[AvailableDate]:
    stmt = select(AvailableDate).order_by(AvailableDate.date.asc())
    if from_date is not None:
        stmt = stmt.where(AvailableDate.date >= from_date)
    if not include_inactive:
        stmt = stmt.where(AvailableDate.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_available_date(
    session: AsyncSession, available_date_id: uuid.UUID
) -> AvailableDate | None:
    return await session.get(AvailableDate, available_date_id)


async def get_available_date_for_day(
    session: AsyncSession, day: dt.date
) -> AvailableDate | None:
    result = await session.execute(
        select(AvailableDate).where(AvailableDate.date == day)
    )
    return result.scalar_one_or_none()


async def create_available_date(
    session: AsyncSession,
    *,
    day: dt.date,
    time_slots: Sequence[str] | None = None,
    max_bookings: int | None = None,
    is_active: bool = True,
    created_by: uuid.UUID | None = None,
) -> AvailableDate:
    """Open a calendar day for booking; one row per date."""
    if await get_available_date_for_day(session, day) is not None:
        raise DuplicateDateError(f"{day.isoformat()} is already open for booking")

    available_date = AvailableDate(
        date=day,
        time_slots=list(time_slots or DEFAULT_TIME_SLOTS),
        max_bookings=max_bookings or get_settings().default_max_bookings,
        is_active=is_active,
        created_by=created_by,
    )
    session.add(available_date)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateDateError(
            f"{day.isoformat()} is already open for booking"
        ) from exc
    await session.refresh(available_date)
    change_feed.publish("available_dates", "insert", available_date.id)
    return available_date


async def update_available_date(
    session: AsyncSession,
    *,
    available_date: AvailableDate,
    time_slots: Sequence[str] | None = None,
    is_active: bool | None = None,
    max_bookings: int | None = None,
) -> AvailableDate:
    """Change the slot list, capacity or active flag of a day."""
    if time_slots is not None:
        available_date.time_slots = list(time_slots)
    if is_active is not None:
        available_date.is_active = is_active
    if max_bookings is not None:
        available_date.max_bookings = max_bookings
    await session.commit()
    await session.refresh(available_date)
    change_feed.publish("available_dates", "update", available_date.id)
    return available_date


async def delete_available_date(
    session: AsyncSession, *, available_date: AvailableDate
) -> None:
    await session.delete(available_date)
    await session.commit()
    change_feed.publish("available_dates", "delete", available_date.id)


async def create_recurring_dates(
    session: AsyncSession,
    *,
    weekdays: Iterable[int],
    months: int,
    time_slots: Sequence[str] | None = None,
    max_bookings: int = 1,
    start: dt.date | None = None,
    created_by: uuid.UUID | None = None,
) -> RecurringDatesOutcome:
    """Open every matching weekday over ``months``; existing days are skipped."""
    dates = generate_recurring_dates(weekdays, start or studio_today(), months)
    outcome = RecurringDatesOutcome()
    if not dates:
        return outcome

    existing_result = await session.execute(
        select(AvailableDate.date).where(AvailableDate.date.in_(dates))
    )
    existing = set(existing_result.scalars().all())
    slots = list(time_slots or DEFAULT_TIME_SLOTS)

    for day in dates:
        if day in existing:
            outcome.skipped.append(day)
            continue
        session.add(
            AvailableDate(
                date=day,
                time_slots=slots,
                max_bookings=max_bookings,
                is_active=True,
                created_by=created_by,
            )
        )
        outcome.created.append(day)

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateDateError(
            "Some dates were opened concurrently; generate the range again"
        ) from exc

    logger.info(
        "Generated %d recurring dates (%d already existed)",
        len(outcome.created),
        len(outcome.skipped),
    )
    if outcome.created:
        change_feed.publish("available_dates", "insert")
    return outcome
