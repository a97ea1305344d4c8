"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_user, get_db_session, http_error
from studio.api.rate_limit import DEFAULT_RATE_DEP, LOGIN_RATE_DEP
from studio.models.user import User
from studio.schemas.auth import RegistrationRequest, RegistrationResponse, Token
from studio.schemas.user import UserRead
from studio.services import audit_service
from studio.services.auth_service import (
    authenticate_user,
    create_access_token_for_user,
    register_client,
)
from studio.services.errors import StudioError

router = APIRouter()


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _event_payload_for_user(user: User, request: Request) -> dict[str, str | None]:
    return {"user_id": str(user.id), "email": user.email, "ip": _client_ip(request)}


@router.post(
    "/token",
    response_model=Token,
    summary="Obtain access token",
    dependencies=[LOGIN_RATE_DEP],
)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> Token:
    """Validate credentials and issue a bearer token."""
    user = await authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token_for_user(user)
    await audit_service.record_event(
        session,
        user_id=user.id,
        event_type="auth.login",
        description="Successful login",
        payload=_event_payload_for_user(user, request),
        commit=True,
    )
    return Token(access_token=access_token)


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register studio client",
    dependencies=[DEFAULT_RATE_DEP],
)
async def register(
    payload: RegistrationRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> RegistrationResponse:
    try:
        user = await register_client(session, payload)
    except StudioError as exc:
        raise http_error(exc) from exc
    token_value = create_access_token_for_user(user)
    response = RegistrationResponse(
        token=Token(access_token=token_value), user=UserRead.model_validate(user)
    )
    await audit_service.record_event(
        session,
        user_id=user.id,
        event_type="auth.register.client",
        description="Client self-registration",
        payload=_event_payload_for_user(user, request),
        commit=True,
    )
    return response


@router.get("/me", response_model=UserRead, summary="Current user")
async def read_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserRead:
    return UserRead.model_validate(current_user)
