"""Availability calculator behaviour."""
from __future__ import annotations

import datetime as dt

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import open_date
from studio.models import AvailableDate, Booking, BookingStatus
from studio.services import availability_service
from studio.services.availability_service import studio_today
from studio.services.errors import NotFoundError

pytestmark = pytest.mark.asyncio


def _booking(day: dt.date, slot: str, **overrides) -> Booking:
    values = {
        "date": day,
        "time_slot": slot,
        "appointment_type": "Class session",
        "client_name": "Jamie Client",
        "client_email": "jamie.client@example.com",
        "status": BookingStatus.CONFIRMED,
    }
    values.update(overrides)
    return Booking(**values)


async def test_capacity_boundary(db_session: AsyncSession) -> None:
    available_date = await open_date(db_session, max_bookings=2)
    day = available_date.date

    db_session.add(_booking(day, "09:00"))
    await db_session.commit()
    one = await availability_service.get_slot_availability(
        db_session, day=day, time_slot="09:00"
    )
    assert one.remaining == 1
    assert one.is_full is False

    db_session.add(_booking(day, "09:00"))
    await db_session.commit()
    two = await availability_service.get_slot_availability(
        db_session, day=day, time_slot="09:00"
    )
    assert two.remaining == 0
    assert two.is_full is True
    assert two.booked == 2

    other_slot = await availability_service.get_slot_availability(
        db_session, day=day, time_slot="10:00"
    )
    assert other_slot.remaining == 2


async def test_cancelled_bookings_free_their_spot(db_session: AsyncSession) -> None:
    available_date = await open_date(db_session, max_bookings=1)
    db_session.add(
        _booking(available_date.date, "09:00", status=BookingStatus.CANCELLED)
    )
    await db_session.commit()

    slot = await availability_service.get_slot_availability(
        db_session, day=available_date.date, time_slot="09:00"
    )
    assert slot.remaining == 1
    assert slot.booked == 0


async def test_inactive_and_past_dates_are_not_bookable(db_session: AsyncSession) -> None:
    inactive = await open_date(db_session, days_ahead=3, is_active=False)
    past = AvailableDate(
        date=studio_today() - dt.timedelta(days=1),
        time_slots=["09:00"],
        max_bookings=3,
    )
    db_session.add(past)
    await db_session.commit()

    for day in (inactive.date, past.date):
        slot = await availability_service.get_slot_availability(
            db_session, day=day, time_slot="09:00"
        )
        assert slot.bookable is False
        assert slot.remaining == 0
        assert slot.is_full is True


async def test_unknown_slot_raises_not_found(db_session: AsyncSession) -> None:
    available_date = await open_date(db_session)
    with pytest.raises(NotFoundError):
        await availability_service.get_slot_availability(
            db_session, day=available_date.date, time_slot="23:00"
        )
    with pytest.raises(NotFoundError):
        await availability_service.get_slot_availability(
            db_session,
            day=available_date.date + dt.timedelta(days=30),
            time_slot="09:00",
        )


async def test_list_availability_skips_inactive_days(db_session: AsyncSession) -> None:
    open_day = await open_date(db_session, days_ahead=2, max_bookings=3)
    await open_date(db_session, days_ahead=4, is_active=False)
    db_session.add(_booking(open_day.date, "10:00"))
    await db_session.commit()

    days = await availability_service.list_availability(db_session)
    assert [day.date for day in days] == [open_day.date]
    by_slot = {slot.time_slot: slot for slot in days[0].slots}
    assert by_slot["09:00"].remaining == 3
    assert by_slot["10:00"].remaining == 2


async def test_availability_endpoints(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    sessionmaker = app_context["sessionmaker"]
    async with sessionmaker() as session:  # type: ignore[operator]
        available_date = await open_date(session, max_bookings=2)
        day = available_date.date.isoformat()

    listing = await client.get("/api/v1/availability")
    assert listing.status_code == 200
    assert listing.json()[0]["date"] == day

    slot = await client.get(f"/api/v1/availability/{day}/09:00")
    assert slot.status_code == 200
    assert slot.json()["remaining"] == 2

    missing = await client.get(f"/api/v1/availability/{day}/21:00")
    assert missing.status_code == 404
