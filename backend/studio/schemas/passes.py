"""Schemas for passes and the session ledger."""
from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from studio.models.passes import PassStatus, PassType
from studio.models.session_deduction import DeductionReason


class PassRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    pass_type: PassType
    total_sessions: int
    remaining_sessions: int
    status: PassStatus
    expiry_date: dt.date | None = None
    purchase_date: dt.datetime
    is_unlimited: bool

    model_config = ConfigDict(from_attributes=True)


class PassCatalogEntryRead(BaseModel):
    pass_type: PassType
    label: str
    sessions: int
    expiry_days: int | None = None


class PassAssign(BaseModel):
    """Admin assignment of a paid pass to a client."""

    user_id: uuid.UUID
    pass_type: PassType
    amount: Decimal = Field(ge=Decimal("0"), decimal_places=2)


class PassAdjust(BaseModel):
    remaining_sessions: int = Field(ge=0)
    notes: str | None = Field(default=None, max_length=512)


class SessionDeductionRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    pass_id: uuid.UUID
    booking_id: uuid.UUID | None = None
    reason: DeductionReason
    delta: int
    remaining_after: int
    pass_type: PassType
    notes: str | None = None
    deducted_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class PurchaseRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    pass_id: uuid.UUID | None = None
    item_name: str
    amount: Decimal
    payment_status: str
    purchase_date: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerHistoryRead(BaseModel):
    deductions: list[SessionDeductionRead]
    purchases: list[PurchaseRead]


class TrialGrantRead(BaseModel):
    success: bool
    pass_id: uuid.UUID | None = None
    reason: str


class ExpireResult(BaseModel):
    expired: int
