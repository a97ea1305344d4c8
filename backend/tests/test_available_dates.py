"""Booking slot directory: CRUD and recurring generation."""
from __future__ import annotations

import datetime as dt

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import authenticate
from studio.models import AvailableDate
from studio.services import available_date_service
from studio.services.available_date_service import add_months, generate_recurring_dates
from studio.services.errors import DuplicateDateError

pytestmark = pytest.mark.asyncio

MONDAY, WEDNESDAY = 1, 3


def test_generate_recurring_dates_mondays_and_wednesdays() -> None:
    start = dt.date(2026, 3, 2)  # a Monday
    dates = generate_recurring_dates({MONDAY, WEDNESDAY}, start, 1)

    assert dates[0] == start
    assert dates[-1] <= dt.date(2026, 4, 2)
    assert all(day.isoweekday() in {MONDAY, WEDNESDAY} for day in dates)
    assert len(dates) == len(set(dates))
    # 2 March to 2 April 2026: five Mondays and five Wednesdays.
    assert len(dates) == 10


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(dt.date(2026, 1, 31), 1) == dt.date(2026, 2, 28)
    assert add_months(dt.date(2026, 11, 15), 2) == dt.date(2027, 1, 15)


async def test_create_recurring_dates_skips_existing(db_session: AsyncSession) -> None:
    start = dt.date(2030, 6, 3)  # a Monday
    db_session.add(
        AvailableDate(date=dt.date(2030, 6, 5), time_slots=["12:00"], max_bookings=4)
    )
    await db_session.commit()

    outcome = await available_date_service.create_recurring_dates(
        db_session,
        weekdays=[MONDAY, WEDNESDAY],
        months=1,
        start=start,
        max_bookings=2,
    )
    assert dt.date(2030, 6, 5) in outcome.skipped
    assert dt.date(2030, 6, 5) not in outcome.created
    assert start in outcome.created

    result = await db_session.execute(
        select(AvailableDate).where(AvailableDate.date == dt.date(2030, 6, 5))
    )
    kept = result.scalar_one()
    assert kept.time_slots == ["12:00"]
    assert kept.max_bookings == 4

    generated = await db_session.execute(
        select(AvailableDate).where(AvailableDate.date == start)
    )
    new_day = generated.scalar_one()
    assert new_day.time_slots == list(available_date_service.DEFAULT_TIME_SLOTS)
    assert new_day.max_bookings == 2

    again = await available_date_service.create_recurring_dates(
        db_session, weekdays=[MONDAY, WEDNESDAY], months=1, start=start
    )
    assert again.created == []
    assert len(again.skipped) == len(outcome.created) + len(outcome.skipped)


async def test_duplicate_date_is_rejected(db_session: AsyncSession) -> None:
    day = dt.date(2030, 1, 10)
    await available_date_service.create_available_date(db_session, day=day)
    with pytest.raises(DuplicateDateError):
        await available_date_service.create_available_date(db_session, day=day)


async def test_available_date_api_crud(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(
        client, app_context["admin_email"], app_context["admin_password"]  # type: ignore[arg-type]
    )

    created = await client.post(
        "/api/v1/available-dates",
        json={"date": "2030-02-01", "time_slots": ["10:00", "09:00"], "max_bookings": 3},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["time_slots"] == ["09:00", "10:00"]
    assert body["created_by"] == str(app_context["admin_id"])
    date_id = body["id"]

    duplicate = await client.post(
        "/api/v1/available-dates",
        json={"date": "2030-02-01", "time_slots": ["09:00"]},
        headers=headers,
    )
    assert duplicate.status_code == 409

    bad_slot = await client.post(
        "/api/v1/available-dates",
        json={"date": "2030-02-02", "time_slots": ["9am"]},
        headers=headers,
    )
    assert bad_slot.status_code == 422

    updated = await client.patch(
        f"/api/v1/available-dates/{date_id}",
        json={"max_bookings": 5, "is_active": False},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["max_bookings"] == 5
    assert updated.json()["is_active"] is False

    deleted = await client.delete(f"/api/v1/available-dates/{date_id}", headers=headers)
    assert deleted.status_code == 204
    listing = await client.get("/api/v1/available-dates", headers=headers)
    assert listing.json() == []


async def test_recurring_dates_api_validates_duration(
    app_context: dict[str, object],
) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(
        client, app_context["admin_email"], app_context["admin_password"]  # type: ignore[arg-type]
    )

    rejected = await client.post(
        "/api/v1/available-dates/recurring",
        json={"weekdays": [1], "months": 4, "start_date": "2030-06-03"},
        headers=headers,
    )
    assert rejected.status_code == 422

    accepted = await client.post(
        "/api/v1/available-dates/recurring",
        json={"weekdays": [1, 3], "months": 1, "start_date": "2030-06-03"},
        headers=headers,
    )
    assert accepted.status_code == 201, accepted.text
    payload = accepted.json()
    assert payload["skipped"] == 0
    assert payload["created"] == len(payload["dates"])
    assert all(
        dt.date.fromisoformat(day).isoweekday() in {MONDAY, WEDNESDAY}
        for day in payload["dates"]
    )
