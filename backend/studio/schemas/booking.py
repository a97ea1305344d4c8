"""Pydantic schemas for bookings."""
from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from studio.models.booking import BookingStatus


class ClientDetails(BaseModel):
    """Contact details entered on the public booking form."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(default="", max_length=32)


class PublicBookingRequest(BaseModel):
    """Payload for the public booking flow."""

    category: str
    date: dt.date | None = None
    time_slot: str | None = None
    details: ClientDetails | None = None
    pass_id: uuid.UUID | None = None


class PortalBookingRequest(BaseModel):
    """Payload for an authenticated client booking a class with a pass."""

    date: dt.date
    time_slot: str
    pass_id: uuid.UUID | None = None


class BookingUpdate(BaseModel):
    status: BookingStatus


class BookingRead(BaseModel):
    id: uuid.UUID
    date: dt.date
    time_slot: str
    appointment_type: str
    client_name: str
    client_email: str
    client_phone: str
    status: BookingStatus
    user_id: uuid.UUID | None = None
    requires_pass: bool
    cancelled_at: dt.datetime | None = None
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class BookingOutcome(BaseModel):
    """Result of a workflow confirmation or admin status change."""

    booking: BookingRead | None = None
    message: str
    remaining_sessions: int | None = None
    redirect_url: str | None = None
