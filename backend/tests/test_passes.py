"""Pass ledger: grants, overrides, expiry and deletion."""
from __future__ import annotations

import asyncio
import datetime as dt
import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import authenticate
from studio.db.session import get_sessionmaker
from studio.models import (
    UNLIMITED_SESSIONS,
    AuditEvent,
    DeductionReason,
    Pass,
    PassStatus,
    PassType,
    Purchase,
    SessionDeduction,
    User,
)
from studio.services import pass_service
from studio.services.errors import LedgerError

pytestmark = pytest.mark.asyncio


async def _count(session: AsyncSession, model, *criteria) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return int(result.scalar_one())


async def test_trial_grant_happens_once(db_session: AsyncSession, client_user: User) -> None:
    user_id = client_user.id
    first = await pass_service.grant_trial_if_eligible(db_session, user_id=user_id)
    assert first.success is True

    trial = await db_session.get(Pass, first.pass_id)
    assert trial is not None
    assert trial.pass_type is PassType.TRIAL
    assert trial.total_sessions == 1
    assert trial.remaining_sessions == 1
    assert trial.status is PassStatus.ACTIVE

    second = await pass_service.grant_trial_if_eligible(db_session, user_id=user_id)
    assert second.success is False
    assert second.pass_id is None
    assert await _count(db_session, Pass, Pass.user_id == user_id) == 1


async def test_concurrent_trial_grants_yield_one_success(
    db_session: AsyncSession, client_user: User, db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    user_id = client_user.id

    async def _grant():
        async with sessionmaker() as session:
            return await pass_service.grant_trial_if_eligible(session, user_id=user_id)

    results = await asyncio.gather(_grant(), _grant(), _grant())
    assert sum(result.success for result in results) == 1
    assert (
        await _count(
            db_session, Pass, Pass.user_id == user_id, Pass.pass_type == PassType.TRIAL
        )
        == 1
    )


async def test_trial_for_unknown_client_fails(db_session: AsyncSession) -> None:
    result = await pass_service.grant_trial_if_eligible(db_session, user_id=uuid.uuid4())
    assert result.success is False


async def test_assign_pass_records_purchase(db_session: AsyncSession, client_user: User) -> None:
    pass_ = await pass_service.assign_pass(
        db_session,
        user_id=client_user.id,
        pass_type=PassType.MONTHLY,
        amount=Decimal("89.9"),
        today=dt.date(2030, 1, 1),
    )
    assert pass_.total_sessions == UNLIMITED_SESSIONS
    assert pass_.is_unlimited is True
    assert pass_.expiry_date == dt.date(2030, 1, 31)

    purchase = (
        await db_session.execute(select(Purchase).where(Purchase.pass_id == pass_.id))
    ).scalar_one()
    assert purchase.amount == Decimal("89.90")
    assert purchase.item_name == "Monthly unlimited"


async def test_trial_cannot_be_assigned_directly(
    db_session: AsyncSession, client_user: User
) -> None:
    with pytest.raises(LedgerError):
        await pass_service.grant(db_session, user_id=client_user.id, pass_type=PassType.TRIAL)


async def test_list_active_excludes_used_and_expired(
    db_session: AsyncSession, client_user: User
) -> None:
    today = dt.date(2030, 5, 1)
    usable = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS, today=today
    )
    used = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.TEN_SESSIONS, today=today
    )
    await pass_service.manual_adjust(db_session, pass_=used, new_remaining=0)
    await pass_service.grant(
        db_session,
        user_id=client_user.id,
        pass_type=PassType.MONTHLY,
        expiry_date=dt.date(2030, 4, 30),
        today=today,
    )

    active = await pass_service.list_active(db_session, user_id=client_user.id, today=today)
    assert [p.id for p in active] == [usable.id]


async def test_manual_adjust_is_bounded_and_audited(
    db_session: AsyncSession, client_user: User
) -> None:
    pass_ = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS
    )

    with pytest.raises(LedgerError):
        await pass_service.manual_adjust(db_session, pass_=pass_, new_remaining=6)
    with pytest.raises(LedgerError):
        await pass_service.manual_adjust(db_session, pass_=pass_, new_remaining=-1)

    adjusted = await pass_service.manual_adjust(
        db_session, pass_=pass_, new_remaining=0, notes="Paid in cash elsewhere"
    )
    assert adjusted.remaining_sessions == 0
    assert adjusted.status is PassStatus.USED

    entry = (
        await db_session.execute(
            select(SessionDeduction).where(SessionDeduction.pass_id == pass_.id)
        )
    ).scalar_one()
    assert entry.reason is DeductionReason.ADJUSTMENT
    assert entry.delta == -5
    assert entry.remaining_after == 0
    assert entry.notes.startswith(pass_service.MANUAL_OVERRIDE_NOTE)

    restored = await pass_service.manual_adjust(db_session, pass_=pass_, new_remaining=2)
    assert restored.status is PassStatus.ACTIVE
    assert await _count(db_session, AuditEvent, AuditEvent.event_type == "pass.adjusted") == 2


async def test_manual_deduct(db_session: AsyncSession, client_user: User) -> None:
    pass_ = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS, total_sessions=1
    )
    pass_ = await pass_service.manual_deduct(db_session, pass_=pass_)
    assert pass_.remaining_sessions == 0
    assert pass_.status is PassStatus.USED
    with pytest.raises(LedgerError):
        await pass_service.manual_deduct(db_session, pass_=pass_)

    entry = (
        await db_session.execute(
            select(SessionDeduction).where(SessionDeduction.pass_id == pass_.id)
        )
    ).scalar_one()
    assert entry.reason is DeductionReason.MANUAL
    assert entry.notes == pass_service.MANUAL_DEDUCTION_NOTE

    unlimited = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.YEARLY
    )
    with pytest.raises(LedgerError):
        await pass_service.manual_deduct(db_session, pass_=unlimited)


async def test_expire_outdated_passes(db_session: AsyncSession, client_user: User) -> None:
    today = dt.date(2030, 5, 1)
    stale = await pass_service.grant(
        db_session,
        user_id=client_user.id,
        pass_type=PassType.MONTHLY,
        expiry_date=dt.date(2030, 4, 30),
    )
    current = await pass_service.grant(
        db_session,
        user_id=client_user.id,
        pass_type=PassType.MONTHLY,
        expiry_date=today,
    )
    no_expiry = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.TEN_SESSIONS
    )
    stale_id, current_id, no_expiry_id = stale.id, current.id, no_expiry.id

    assert await pass_service.expire_outdated_passes(db_session, today=today) == 1
    db_session.expire_all()
    assert (await db_session.get(Pass, stale_id)).status is PassStatus.EXPIRED
    assert (await db_session.get(Pass, current_id)).status is PassStatus.ACTIVE
    assert (await db_session.get(Pass, no_expiry_id)).status is PassStatus.ACTIVE
    assert await pass_service.expire_outdated_passes(db_session, today=today) == 0


async def test_delete_pass_cascades_ledger_rows(
    db_session: AsyncSession, client_user: User
) -> None:
    pass_ = await pass_service.grant(
        db_session, user_id=client_user.id, pass_type=PassType.FIVE_SESSIONS
    )
    await pass_service.manual_deduct(db_session, pass_=pass_)
    pass_id = pass_.id
    assert await _count(db_session, SessionDeduction, SessionDeduction.pass_id == pass_id) == 1

    await pass_service.delete_pass(db_session, pass_=pass_)
    assert await db_session.get(Pass, pass_id) is None
    assert await _count(db_session, SessionDeduction, SessionDeduction.pass_id == pass_id) == 0
    assert await _count(db_session, AuditEvent, AuditEvent.event_type == "pass.deleted") == 1


async def test_pass_api_flow(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    admin_headers = await authenticate(
        client, app_context["admin_email"], app_context["admin_password"]  # type: ignore[arg-type]
    )
    client_headers = await authenticate(
        client, app_context["client_email"], app_context["client_password"]  # type: ignore[arg-type]
    )
    client_id = str(app_context["client_id"])

    catalog = await client.get("/api/v1/passes/catalog")
    assert {entry["pass_type"] for entry in catalog.json()} == {
        "trial",
        "5_sessions",
        "10_sessions",
        "monthly",
        "yearly",
    }

    created = await client.post(
        "/api/v1/passes",
        json={"user_id": client_id, "pass_type": "10_sessions", "amount": "120.00"},
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    pass_id = created.json()["id"]
    assert created.json()["remaining_sessions"] == 10

    deducted = await client.post(f"/api/v1/passes/{pass_id}/deduct", headers=admin_headers)
    assert deducted.status_code == 200
    assert deducted.json()["remaining_sessions"] == 9

    too_many = await client.patch(
        f"/api/v1/passes/{pass_id}", json={"remaining_sessions": 11}, headers=admin_headers
    )
    assert too_many.status_code == 400

    adjusted = await client.patch(
        f"/api/v1/passes/{pass_id}", json={"remaining_sessions": 4}, headers=admin_headers
    )
    assert adjusted.status_code == 200
    assert adjusted.json()["remaining_sessions"] == 4

    history = await client.get(f"/api/v1/passes/history/{client_id}", headers=admin_headers)
    assert history.status_code == 200
    reasons = [row["reason"] for row in history.json()["deductions"]]
    assert sorted(reasons) == ["adjustment", "manual"]
    assert len(history.json()["purchases"]) == 1

    trial = await client.post("/api/v1/portal/passes/trial", headers=client_headers)
    assert trial.json()["success"] is True
    again = await client.post("/api/v1/portal/passes/trial", headers=client_headers)
    assert again.json()["success"] is False

    mine = await client.get("/api/v1/portal/passes", headers=client_headers)
    assert len(mine.json()) == 2

    removed = await client.delete(f"/api/v1/passes/{pass_id}", headers=admin_headers)
    assert removed.status_code == 204
    missing = await client.post(f"/api/v1/passes/{pass_id}/deduct", headers=admin_headers)
    assert missing.status_code == 404
