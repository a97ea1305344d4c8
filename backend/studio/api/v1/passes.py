"""Admin pass management."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api import deps
from studio.models.passes import Pass, PassStatus
from studio.models.user import User
from studio.schemas.passes import (
    ExpireResult,
    LedgerHistoryRead,
    PassAdjust,
    PassAssign,
    PassCatalogEntryRead,
    PassRead,
    PurchaseRead,
    SessionDeductionRead,
)
from studio.services import pass_service
from studio.services.errors import StudioError

router = APIRouter(prefix="/passes", tags=["passes"])


async def _load(session: AsyncSession, pass_id: uuid.UUID) -> Pass:
    pass_ = await pass_service.get_pass(session, pass_id)
    if pass_ is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pass not found")
    return pass_


@router.get("/catalog", response_model=list[PassCatalogEntryRead], summary="Pass catalog")
async def pass_catalog() -> list[PassCatalogEntryRead]:
    return [
        PassCatalogEntryRead(
            pass_type=entry.pass_type,
            label=entry.label,
            sessions=entry.sessions,
            expiry_days=entry.expiry_days,
        )
        for entry in pass_service.PASS_CATALOG.values()
    ]


@router.get("", response_model=list[PassRead], summary="List passes")
async def list_passes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
    user_id: uuid.UUID | None = None,
    status_filter: Annotated[PassStatus | None, Query(alias="status")] = None,
) -> list[PassRead]:
    passes = await pass_service.list_passes(session, user_id=user_id, status=status_filter)
    return [PassRead.model_validate(pass_) for pass_ in passes]


@router.post(
    "",
    response_model=PassRead,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a pass to a client",
)
async def assign_pass(
    payload: PassAssign,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> PassRead:
    try:
        pass_ = await pass_service.assign_pass(
            session,
            user_id=payload.user_id,
            pass_type=payload.pass_type,
            amount=payload.amount,
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return PassRead.model_validate(pass_)


@router.post("/expire", response_model=ExpireResult, summary="Expire outdated passes")
async def expire_passes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> ExpireResult:
    return ExpireResult(expired=await pass_service.expire_outdated_passes(session))


@router.get(
    "/history/{user_id}", response_model=LedgerHistoryRead, summary="Client ledger history"
)
async def ledger_history(
    user_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> LedgerHistoryRead:
    deductions, purchases = await pass_service.ledger_history(session, user_id=user_id)
    return LedgerHistoryRead(
        deductions=[SessionDeductionRead.model_validate(row) for row in deductions],
        purchases=[PurchaseRead.model_validate(row) for row in purchases],
    )


@router.patch("/{pass_id}", response_model=PassRead, summary="Override remaining sessions")
async def adjust_pass(
    pass_id: uuid.UUID,
    payload: PassAdjust,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> PassRead:
    pass_ = await _load(session, pass_id)
    try:
        pass_ = await pass_service.manual_adjust(
            session,
            pass_=pass_,
            new_remaining=payload.remaining_sessions,
            actor_id=admin.id,
            notes=payload.notes,
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return PassRead.model_validate(pass_)


@router.post("/{pass_id}/deduct", response_model=PassRead, summary="Deduct one session")
async def deduct_from_pass(
    pass_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> PassRead:
    pass_ = await _load(session, pass_id)
    try:
        pass_ = await pass_service.manual_deduct(session, pass_=pass_, actor_id=admin.id)
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return PassRead.model_validate(pass_)


@router.delete(
    "/{pass_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a pass"
)
async def delete_pass(
    pass_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> None:
    pass_ = await _load(session, pass_id)
    await pass_service.delete_pass(session, pass_=pass_, actor_id=admin.id)
