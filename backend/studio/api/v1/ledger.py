"""Deduction, refund and reconciliation procedures for administrators."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api import deps
from studio.models.user import User
from studio.schemas.ledger import (
    DeductionResultRead,
    DeductRequest,
    ReconcileReport,
    ReconcileRequest,
    RefundRequest,
    RefundResultRead,
)
from studio.services import ledger_service, reconciliation_service

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/deduct", response_model=DeductionResultRead, summary="Deduct a session")
async def deduct(
    payload: DeductRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> DeductionResultRead:
    result = await ledger_service.deduct_session_from_pass(
        session,
        user_id=payload.user_id,
        booking_id=payload.booking_id,
        pass_id=payload.pass_id,
    )
    return DeductionResultRead.model_validate(result)


@router.post("/refund", response_model=RefundResultRead, summary="Refund a session")
async def refund(
    payload: RefundRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> RefundResultRead:
    result = await ledger_service.refund_session_to_pass(
        session, booking_id=payload.booking_id
    )
    return RefundResultRead.model_validate(result)


@router.post("/reconcile", response_model=ReconcileReport, summary="Reconcile orphaned bookings")
async def reconcile(
    payload: ReconcileRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> ReconcileReport:
    report = await reconciliation_service.reconcile_orphaned_bookings(
        session,
        mode=payload.mode,
        min_age=(
            dt.timedelta(minutes=payload.min_age_minutes)
            if payload.min_age_minutes is not None
            else None
        ),
    )
    return ReconcileReport.model_validate(report)
