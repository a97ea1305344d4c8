"""Booking workflows: branching, saga compensation and the portal flow."""
from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import authenticate, open_date
from studio.db.session import get_sessionmaker
from studio.models import Booking, BookingStatus, Pass, PassStatus, PassType, User
from studio.services import booking_service, pass_service
from studio.services.booking_workflow import (
    BookingWorkflow,
    PortalBookingWorkflow,
    Remediation,
    WorkflowState,
)

pytestmark = pytest.mark.asyncio


async def _booking_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Booking))
    return int(result.scalar_one())


async def test_pass_category_requires_login(db_session: AsyncSession) -> None:
    workflow = BookingWorkflow(db_session)
    step = await workflow.select_type("session")
    assert step.ok is False
    assert step.remediation is Remediation.LOGIN
    assert workflow.state is WorkflowState.SELECTING_TYPE


async def test_pass_category_requires_an_eligible_pass(
    db_session: AsyncSession, client_user: User
) -> None:
    workflow = BookingWorkflow(db_session, user=client_user)

    step = await workflow.select_type("session")
    assert step.ok is False
    assert step.remediation is Remediation.BUY_PASS

    step = await workflow.select_type("trial")
    assert step.remediation is Remediation.CLAIM_TRIAL
    assert workflow.state is WorkflowState.SELECTING_TYPE


async def test_external_category_redirects_without_booking(db_session: AsyncSession) -> None:
    workflow = BookingWorkflow(db_session)
    step = await workflow.select_type("consultation")
    assert step.ok is True
    assert step.redirect_url
    assert step.booking_id is None
    assert workflow.state is WorkflowState.SELECTING_TYPE
    assert await _booking_count(db_session) == 0


async def test_unknown_category_is_a_field_error(db_session: AsyncSession) -> None:
    step = await BookingWorkflow(db_session).select_type("massage")
    assert step.ok is False
    assert "category" in step.errors


async def test_session_booking_deducts_and_confirms(
    db_session: AsyncSession, client_user: User
) -> None:
    await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS
    )
    available_date = await open_date(db_session, max_bookings=2)

    workflow = BookingWorkflow(db_session, user=client_user)
    assert (await workflow.select_type("session")).ok
    assert (await workflow.select_slot(available_date.date, "09:00")).ok
    assert workflow.state is WorkflowState.ENTERING_DETAILS
    assert workflow.enter_details().ok

    step = await workflow.confirm()
    assert step.ok is True
    assert step.state is WorkflowState.CONFIRMED
    assert step.remaining_sessions == 4

    booking = await db_session.get(Booking, step.booking_id)
    assert booking.status is BookingStatus.CONFIRMED
    assert booking.requires_pass is True
    assert booking.client_email == "jamie.client@example.com"

    assert workflow.reset().state is WorkflowState.SELECTING_TYPE
    assert workflow.category is None


async def test_full_slot_keeps_workflow_at_slot_selection(
    db_session: AsyncSession, client_user: User
) -> None:
    available_date = await open_date(db_session, max_bookings=1)
    await booking_service.create_booking(
        db_session,
        day=available_date.date,
        time_slot="09:00",
        appointment_type="Private coaching",
        client_name="Someone",
        client_email="someone@example.com",
    )

    workflow = BookingWorkflow(db_session)
    assert (await workflow.select_type("coaching")).ok
    step = await workflow.select_slot(available_date.date, "09:00")
    assert step.ok is False
    assert "time_slot" in step.errors
    assert workflow.state is WorkflowState.SELECTING_SLOT

    missing = await workflow.select_slot(None, "09:00")
    assert "date" in missing.errors


async def test_coaching_requires_phone(db_session: AsyncSession) -> None:
    available_date = await open_date(db_session)
    workflow = BookingWorkflow(db_session)
    await workflow.select_type("coaching")
    await workflow.select_slot(available_date.date, "10:00")

    step = workflow.enter_details("Robin Visitor", "robin@example.com")
    assert step.ok is False
    assert "phone" in step.errors

    not_ready = await workflow.confirm()
    assert not_ready.ok is False

    assert workflow.enter_details("Robin Visitor", "robin@example.com", "0611").ok
    done = await workflow.confirm()
    assert done.ok is True
    booking = await db_session.get(Booking, done.booking_id)
    assert booking.status is BookingStatus.PENDING
    assert booking.requires_pass is False


async def test_several_passes_need_a_choice(
    db_session: AsyncSession, client_user: User
) -> None:
    await pass_service.grant(db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS)
    chosen = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.TEN_SESSIONS
    )
    chosen_id = chosen.id

    workflow = BookingWorkflow(db_session, user=client_user)
    step = await workflow.select_type("session")
    assert step.ok is False
    assert "pass_id" in step.errors

    assert (await workflow.select_type("session", pass_id=chosen_id)).ok
    assert workflow.pass_id == chosen_id


async def test_failed_deduction_removes_the_booking(
    db_session: AsyncSession, client_user: User, db_url: str
) -> None:
    pass_ = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS
    )
    pass_id = pass_.id
    available_date = await open_date(db_session, max_bookings=2)
    day = available_date.date

    workflow = BookingWorkflow(db_session, user=client_user)
    assert (await workflow.select_type("session")).ok
    assert (await workflow.select_slot(day, "09:00")).ok
    assert workflow.enter_details().ok

    # The pass runs out between selection and confirmation.
    async with get_sessionmaker(db_url)() as other:
        stale = await other.get(Pass, pass_id)
        await pass_service.manual_adjust(other, pass_=stale, new_remaining=0)

    step = await workflow.confirm()
    assert step.ok is False
    assert step.message
    assert workflow.state is WorkflowState.ENTERING_DETAILS
    assert await _booking_count(db_session) == 0

    untouched = await db_session.get(Pass, pass_id, populate_existing=True)
    assert (untouched.remaining_sessions, untouched.status) == (0, PassStatus.USED)


async def test_database_errors_propagate_without_advancing(
    db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    available_date = await open_date(db_session)
    workflow = BookingWorkflow(db_session)
    await workflow.select_type("coaching")
    await workflow.select_slot(available_date.date, "09:00")
    workflow.enter_details("Robin Visitor", "robin@example.com", "0611")

    async def _broken(*args, **kwargs):
        raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(booking_service, "create_booking", _broken)
    with pytest.raises(OperationalError):
        await workflow.confirm()
    assert workflow.state is WorkflowState.ENTERING_DETAILS


async def test_trial_category_uses_the_trial_pass(
    db_session: AsyncSession, client_user: User
) -> None:
    user_id = client_user.id
    grant = await pass_service.grant_trial_if_eligible(db_session, user_id=user_id)
    await pass_service.grant(db_session, user_id=user_id, pass_type=PassType.TEN_SESSIONS)
    available_date = await open_date(db_session)

    workflow = BookingWorkflow(db_session, user=client_user)
    assert (await workflow.select_type("trial")).ok
    assert workflow.pass_id == grant.pass_id
    await workflow.select_slot(available_date.date, "09:00")
    workflow.enter_details()
    step = await workflow.confirm()
    assert step.ok is True
    assert step.remaining_sessions == 0

    trial = await db_session.get(Pass, grant.pass_id, populate_existing=True)
    assert trial.status is PassStatus.USED


async def test_portal_workflow(db_session: AsyncSession, client_user: User) -> None:
    workflow = PortalBookingWorkflow(db_session, user=client_user)
    empty = await workflow.start()
    assert empty.ok is False
    assert empty.remediation is Remediation.BUY_PASS

    pass_ = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS
    )
    available_date = await open_date(db_session)
    assert (await workflow.start()).ok

    bad_slot = await workflow.choose(day=available_date.date, time_slot="22:00")
    assert bad_slot.ok is False
    assert workflow.state is WorkflowState.SELECTING_PASS_AND_SLOT

    assert (await workflow.choose(day=available_date.date, time_slot="09:00")).ok
    assert workflow.state is WorkflowState.CONFIRMING
    assert workflow.pass_id == pass_.id

    step = await workflow.confirm()
    assert step.ok is True
    assert step.state is WorkflowState.CONFIRMED
    assert step.remaining_sessions == 4


async def test_portal_booking_api(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(
        client, app_context["client_email"], app_context["client_password"]  # type: ignore[arg-type]
    )
    sessionmaker = app_context["sessionmaker"]
    async with sessionmaker() as session:  # type: ignore[operator]
        available_date = await open_date(session, max_bookings=1)
        day = available_date.date.isoformat()

    no_pass = await client.post(
        "/api/v1/portal/bookings", json={"date": day, "time_slot": "09:00"}, headers=headers
    )
    assert no_pass.status_code == 403
    assert no_pass.json()["detail"]["remediation"] == "buy_pass"

    trial = await client.post("/api/v1/portal/passes/trial", headers=headers)
    assert trial.json()["success"] is True

    booked = await client.post(
        "/api/v1/portal/bookings", json={"date": day, "time_slot": "09:00"}, headers=headers
    )
    assert booked.status_code == 201, booked.text
    assert booked.json()["booking"]["appointment_type"] == "Trial class"
    assert booked.json()["remaining_sessions"] == 0

    mine = await client.get("/api/v1/portal/bookings", headers=headers)
    assert len(mine.json()) == 1

    anonymous = await client.post(
        "/api/v1/bookings",
        json={"category": "session", "date": day, "time_slot": "09:00"},
    )
    assert anonymous.status_code == 401
