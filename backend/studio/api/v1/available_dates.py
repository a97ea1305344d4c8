"""Admin management of bookable days."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api import deps
from studio.models.user import User
from studio.schemas.available_date import (
    AvailableDateCreate,
    AvailableDateRead,
    AvailableDateUpdate,
    RecurringDatesRequest,
    RecurringDatesResult,
)
from studio.services import available_date_service
from studio.services.errors import StudioError

router = APIRouter()


async def _load(session: AsyncSession, available_date_id: uuid.UUID):
    available_date = await available_date_service.get_available_date(
        session, available_date_id
    )
    if available_date is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Available date not found"
        )
    return available_date


@router.get("", response_model=list[AvailableDateRead], summary="List available dates")
async def list_available_dates(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
    from_date: dt.date | None = None,
    include_inactive: bool = True,
) -> list[AvailableDateRead]:
    rows = await available_date_service.list_available_dates(
        session, from_date=from_date, include_inactive=include_inactive
    )
    return [AvailableDateRead.model_validate(row) for row in rows]


@router.post(
    "",
    response_model=AvailableDateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open a date for booking",
)
async def create_available_date(
    payload: AvailableDateCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> AvailableDateRead:
    admin_id = admin.id
    try:
        available_date = await available_date_service.create_available_date(
            session,
            day=payload.date,
            time_slots=payload.time_slots,
            max_bookings=payload.max_bookings,
            is_active=payload.is_active,
            created_by=admin_id,
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return AvailableDateRead.model_validate(available_date)


@router.post(
    "/recurring",
    response_model=RecurringDatesResult,
    status_code=status.HTTP_201_CREATED,
    summary="Open recurring weekdays",
)
async def create_recurring_dates(
    payload: RecurringDatesRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> RecurringDatesResult:
    admin_id = admin.id
    try:
        outcome = await available_date_service.create_recurring_dates(
            session,
            weekdays=payload.weekdays,
            months=payload.months,
            time_slots=payload.time_slots,
            max_bookings=payload.max_bookings,
            start=payload.start_date,
            created_by=admin_id,
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return RecurringDatesResult(
        created=len(outcome.created),
        skipped=len(outcome.skipped),
        dates=outcome.created,
    )


@router.patch(
    "/{available_date_id}",
    response_model=AvailableDateRead,
    summary="Update an available date",
)
async def update_available_date(
    available_date_id: uuid.UUID,
    payload: AvailableDateUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> AvailableDateRead:
    available_date = await _load(session, available_date_id)
    updated = await available_date_service.update_available_date(
        session,
        available_date=available_date,
        **payload.model_dump(exclude_unset=True),
    )
    return AvailableDateRead.model_validate(updated)


@router.delete(
    "/{available_date_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an available date",
)
async def delete_available_date(
    available_date_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
) -> None:
    available_date = await _load(session, available_date_id)
    await available_date_service.delete_available_date(
        session, available_date=available_date
    )
