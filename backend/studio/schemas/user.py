"""User-related schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from studio.models.user import UserRole, UserStatus


class UserBase(BaseModel):
    """Shared user fields."""

    email: EmailStr
    full_name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.strip().lower()


class UserCreate(UserBase):
    """Payload for creating a user."""

    password: str = Field(min_length=8)
    role: UserRole = UserRole.CLIENT
    status: UserStatus = UserStatus.ACTIVE


class UserRead(UserBase):
    """Serialized user."""

    id: uuid.UUID
    role: UserRole
    status: UserStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
