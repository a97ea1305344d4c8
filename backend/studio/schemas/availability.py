"""Availability responses."""
from __future__ import annotations

import datetime as dt

from pydantic import BaseModel


class SlotAvailabilityRead(BaseModel):
    date: dt.date
    time_slot: str
    capacity: int
    booked: int
    remaining: int
    is_full: bool
    bookable: bool = True


class DayAvailabilityRead(BaseModel):
    date: dt.date
    max_bookings: int
    slots: list[SlotAvailabilityRead]
