"""Schemas for the booking slot directory."""
from __future__ import annotations

import datetime as dt
import re
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

_SLOT_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

RECURRING_DURATIONS = (1, 2, 3, 6, 12)


def _normalize_slots(value: list[str]) -> list[str]:
    slots = sorted({slot.strip() for slot in value})
    for slot in slots:
        if not _SLOT_PATTERN.match(slot):
            raise ValueError(f"Invalid time slot label: {slot!r}")
    return slots


class AvailableDateBase(BaseModel):
    time_slots: list[str] = Field(min_length=1)
    is_active: bool = True
    max_bookings: int = Field(default=1, ge=1, le=50)

    @field_validator("time_slots")
    @classmethod
    def _check_slots(cls, value: list[str]) -> list[str]:
        return _normalize_slots(value)


class AvailableDateCreate(AvailableDateBase):
    date: dt.date


class AvailableDateUpdate(BaseModel):
    time_slots: list[str] | None = Field(default=None, min_length=1)
    is_active: bool | None = None
    max_bookings: int | None = Field(default=None, ge=1, le=50)

    @field_validator("time_slots")
    @classmethod
    def _check_slots(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _normalize_slots(value)


class AvailableDateRead(AvailableDateBase):
    id: uuid.UUID
    date: dt.date
    created_by: uuid.UUID | None = None
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class RecurringDatesRequest(BaseModel):
    """Generate one available date per matching weekday over a duration."""

    weekdays: list[int] = Field(
        min_length=1, description="ISO weekday numbers, Monday=1 ... Sunday=7"
    )
    months: int = 6
    start_date: dt.date | None = None
    time_slots: list[str] | None = None
    max_bookings: int = Field(default=1, ge=1, le=50)

    @field_validator("weekdays")
    @classmethod
    def _check_weekdays(cls, value: list[int]) -> list[int]:
        if any(day < 1 or day > 7 for day in value):
            raise ValueError("Weekdays must be between 1 (Monday) and 7 (Sunday)")
        return sorted(set(value))

    @field_validator("months")
    @classmethod
    def _check_months(cls, value: int) -> int:
        if value not in RECURRING_DURATIONS:
            raise ValueError(f"Duration must be one of {RECURRING_DURATIONS} months")
        return value

    @field_validator("time_slots")
    @classmethod
    def _check_slots(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _normalize_slots(value)


class RecurringDatesResult(BaseModel):
    created: int
    skipped: int
    dates: list[dt.date]
