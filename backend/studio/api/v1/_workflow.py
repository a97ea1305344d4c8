"""Helpers shared by the booking endpoints."""

from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.booking import Booking
from studio.schemas.booking import BookingOutcome, BookingRead
from studio.services.booking_workflow import Remediation, StepResult


def raise_for_step(step: StepResult) -> None:
    """Turn an unsuccessful workflow step into an HTTP error."""
    if step.ok:
        return
    if step.errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": step.message or "Invalid booking", "errors": step.errors},
        )
    if step.remediation is Remediation.LOGIN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": step.message, "remediation": step.remediation.value},
            headers={"WWW-Authenticate": "Bearer"},
        )
    if step.remediation is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": step.message, "remediation": step.remediation.value},
        )
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=step.message)


async def confirmed_outcome(session: AsyncSession, step: StepResult) -> BookingOutcome:
    booking = await session.get(Booking, step.booking_id)
    return BookingOutcome(
        booking=BookingRead.model_validate(booking) if booking is not None else None,
        message=step.message or "Booking confirmed",
        remaining_sessions=step.remaining_sessions,
    )
