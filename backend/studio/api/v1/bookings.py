"""Booking endpoints: the public booking flow and admin management."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api import deps
from studio.api.rate_limit import DEFAULT_RATE_DEP
from studio.api.v1._workflow import confirmed_outcome, raise_for_step
from studio.models.booking import BookingStatus
from studio.models.user import User
from studio.schemas.booking import (
    BookingOutcome,
    BookingRead,
    BookingUpdate,
    PublicBookingRequest,
)
from studio.services import booking_service
from studio.services.booking_workflow import BookingWorkflow
from studio.services.errors import StudioError

router = APIRouter()


@router.post(
    "",
    response_model=BookingOutcome,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    dependencies=[DEFAULT_RATE_DEP],
)
async def create_booking(
    payload: PublicBookingRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User | None, Depends(deps.get_optional_user)],
    response: Response,
) -> BookingOutcome:
    workflow = BookingWorkflow(session, user=current_user)
    step = await workflow.select_type(payload.category, pass_id=payload.pass_id)
    raise_for_step(step)
    if step.redirect_url is not None:
        response.status_code = status.HTTP_200_OK
        return BookingOutcome(message=step.message or "", redirect_url=step.redirect_url)

    raise_for_step(await workflow.select_slot(payload.date, payload.time_slot))
    details = payload.details
    raise_for_step(
        workflow.enter_details(
            details.name if details else "",
            str(details.email) if details else "",
            details.phone if details else "",
        )
    )
    step = await workflow.confirm()
    raise_for_step(step)
    return await confirmed_outcome(session, step)


@router.get("", response_model=list[BookingRead], summary="List bookings")
async def list_bookings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _admin: Annotated[User, Depends(deps.require_admin)],
    user_id: uuid.UUID | None = None,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
    status_filter: Annotated[BookingStatus | None, Query(alias="status")] = None,
    skip: int = 0,
    limit: int = 100,
) -> list[BookingRead]:
    bookings = await booking_service.list_bookings(
        session,
        user_id=user_id,
        from_date=from_date,
        to_date=to_date,
        status=status_filter,
        skip=skip,
        limit=min(limit, 500),
    )
    return [BookingRead.model_validate(booking) for booking in bookings]


async def _load(session: AsyncSession, booking_id: uuid.UUID):
    booking = await booking_service.get_booking(session, booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return booking


@router.patch("/{booking_id}", response_model=BookingOutcome, summary="Update booking status")
async def update_booking(
    booking_id: uuid.UUID,
    payload: BookingUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> BookingOutcome:
    admin_id = admin.id
    booking = await _load(session, booking_id)
    try:
        booking, deduction = await booking_service.update_booking_status(
            session, booking=booking, status=payload.status, actor_id=admin_id
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc

    message = f"Booking {booking.status.value}"
    remaining = None
    if deduction is not None:
        message = f"{message}. {deduction.message}"
        remaining = deduction.remaining_sessions
    return BookingOutcome(
        booking=BookingRead.model_validate(booking),
        message=message,
        remaining_sessions=remaining,
    )


@router.post(
    "/{booking_id}/cancel", response_model=BookingOutcome, summary="Cancel booking"
)
async def cancel_booking(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    admin: Annotated[User, Depends(deps.require_admin)],
) -> BookingOutcome:
    admin_id = admin.id
    booking = await _load(session, booking_id)
    try:
        booking, refund = await booking_service.cancel_booking(
            session, booking=booking, actor_id=admin_id
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return BookingOutcome(
        booking=BookingRead.model_validate(booking),
        message=refund.message if refund is not None else "Booking cancelled",
        remaining_sessions=refund.remaining_sessions if refund is not None else None,
    )
