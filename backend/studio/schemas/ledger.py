"""Schemas for the deduction and refund procedures."""
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from studio.models.passes import PassType


class DeductRequest(BaseModel):
    user_id: uuid.UUID
    booking_id: uuid.UUID | None = None
    pass_id: uuid.UUID | None = None


class RefundRequest(BaseModel):
    booking_id: uuid.UUID


class DeductionResultRead(BaseModel):
    success: bool
    message: str
    pass_id: uuid.UUID | None = None
    remaining_sessions: int | None = None
    pass_type: PassType | None = None

    model_config = ConfigDict(from_attributes=True)


class RefundResultRead(BaseModel):
    success: bool
    message: str
    pass_id: uuid.UUID | None = None
    remaining_sessions: int | None = None

    model_config = ConfigDict(from_attributes=True)


class ReconcileRequest(BaseModel):
    mode: Literal["complete", "rollback"] = "complete"
    min_age_minutes: int | None = Field(default=None, ge=0)


class ReconcileReport(BaseModel):
    completed: list[uuid.UUID]
    rolled_back: list[uuid.UUID]

    model_config = ConfigDict(from_attributes=True)
