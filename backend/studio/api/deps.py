"""Common API dependencies."""

from __future__ import annotations

import uuid
from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import get_settings
from studio.core.security import decode_access_token
from studio.db.session import get_session
from studio.models.user import User, UserStatus
from studio.services.errors import ConflictError, NotFoundError, StudioError

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_v1_prefix}/auth/token", auto_error=False
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_from_token(session: AsyncSession, token: str) -> User:
    try:
        payload = decode_access_token(token)
    except JWTError as exc:  # pragma: no cover - handled as HTTP 401
        raise _credentials_exception() from exc

    subject = payload.get("sub")
    if subject is None:
        raise _credentials_exception()
    try:
        user_id = uuid.UUID(subject)
    except (ValueError, TypeError) as exc:
        raise _credentials_exception() from exc

    user = await session.get(User, user_id)
    if user is None or user.status != UserStatus.ACTIVE:
        raise _credentials_exception()
    return user


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User:
    """Authenticate request via bearer token."""
    if not token:
        raise _credentials_exception()
    return await _user_from_token(session, token)


async def get_optional_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User | None:
    """Return the caller when a valid token is sent, otherwise ``None``."""
    if not token:
        return None
    return await _user_from_token(session, token)


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    return current_user


def http_error(exc: StudioError) -> HTTPException:
    """Translate a service failure into the matching HTTP error."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
