"""Public slot availability."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api import deps
from studio.schemas.availability import DayAvailabilityRead, SlotAvailabilityRead
from studio.services import availability_service
from studio.services.errors import NotFoundError

router = APIRouter()


@router.get("", response_model=list[DayAvailabilityRead], summary="Open days and spots")
async def list_availability(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
) -> list[DayAvailabilityRead]:
    if from_date and to_date and to_date < from_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="to_date must be on or after from_date",
        )
    days = await availability_service.list_availability(
        session, from_date=from_date, to_date=to_date
    )
    return [DayAvailabilityRead.model_validate(day, from_attributes=True) for day in days]


@router.get(
    "/{day}/{time_slot}",
    response_model=SlotAvailabilityRead,
    summary="Remaining spots for one slot",
)
async def get_slot_availability(
    day: dt.date,
    time_slot: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> SlotAvailabilityRead:
    try:
        slot = await availability_service.get_slot_availability(
            session, day=day, time_slot=time_slot
        )
    except NotFoundError as exc:
        raise deps.http_error(exc) from exc
    return SlotAvailabilityRead.model_validate(slot, from_attributes=True)
