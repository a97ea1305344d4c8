"""Client portal: own passes, trial claim and pass-based bookings."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api import deps
from studio.api.v1._workflow import confirmed_outcome, raise_for_step
from studio.models.user import User
from studio.schemas.booking import BookingOutcome, BookingRead, PortalBookingRequest
from studio.schemas.passes import PassRead, TrialGrantRead
from studio.services import booking_service, pass_service
from studio.services.booking_workflow import PortalBookingWorkflow

router = APIRouter(prefix="/portal", tags=["portal"])


@router.get("/passes", response_model=list[PassRead], summary="My passes")
async def my_passes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_user)],
    active_only: bool = False,
) -> list[PassRead]:
    if active_only:
        passes = await pass_service.list_active(session, user_id=current_user.id)
    else:
        passes = await pass_service.list_passes(session, user_id=current_user.id)
    return [PassRead.model_validate(pass_) for pass_ in passes]


@router.post("/passes/trial", response_model=TrialGrantRead, summary="Claim trial pass")
async def claim_trial(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_user)],
) -> TrialGrantRead:
    result = await pass_service.grant_trial_if_eligible(session, user_id=current_user.id)
    return TrialGrantRead(success=result.success, pass_id=result.pass_id, reason=result.reason)


@router.get("/bookings", response_model=list[BookingRead], summary="My bookings")
async def my_bookings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_user)],
) -> list[BookingRead]:
    bookings = await booking_service.list_bookings(session, user_id=current_user.id)
    return [BookingRead.model_validate(booking) for booking in bookings]


@router.post(
    "/bookings",
    response_model=BookingOutcome,
    status_code=status.HTTP_201_CREATED,
    summary="Book a class with a pass",
)
async def book_with_pass(
    payload: PortalBookingRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_user)],
) -> BookingOutcome:
    workflow = PortalBookingWorkflow(session, user=current_user)
    raise_for_step(await workflow.start())
    raise_for_step(
        await workflow.choose(
            day=payload.date, time_slot=payload.time_slot, pass_id=payload.pass_id
        )
    )
    step = await workflow.confirm()
    raise_for_step(step)
    return await confirmed_outcome(session, step)
