"""Authentication service helpers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.security import create_access_token, verify_password
from studio.models.user import User, UserRole, UserStatus
from studio.schemas.auth import RegistrationRequest
from studio.schemas.user import UserCreate
from studio.services import user_service
from studio.services.errors import ConflictError


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> User | None:
    """Validate credentials and return a user if correct."""
    user = await user_service.get_user_by_email(session, email=email)
    if user is None:
        return None
    if user.status != UserStatus.ACTIVE:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token_for_user(user: User) -> str:
    """Generate a JWT for a user."""
    return create_access_token(str(user.id), role=user.role.value)


async def register_client(session: AsyncSession, payload: RegistrationRequest) -> User:
    """Create a client account; the email must not be taken."""
    if await user_service.get_user_by_email(session, payload.email) is not None:
        raise ConflictError("An account with this email already exists")
    try:
        return await user_service.create_user(
            session,
            UserCreate(
                email=payload.email,
                password=payload.password,
                full_name=payload.full_name,
                phone=payload.phone,
                role=UserRole.CLIENT,
            ),
        )
    except IntegrityError as exc:
        raise ConflictError("An account with this email already exists") from exc
