"""Authentication schemas."""
from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from studio.schemas.user import UserRead


class Token(BaseModel):
    """Response body for access tokens."""

    access_token: str
    token_type: str = "bearer"


class RegistrationRequest(BaseModel):
    """Self-service registration payload for studio clients."""

    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)


class RegistrationResponse(BaseModel):
    """Response after a successful self-service registration."""

    token: Token
    user: UserRead
