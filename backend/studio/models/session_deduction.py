"""Append-only ledger of pass balance changes."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.base import Base
from studio.models.mixins import utcnow
from studio.models.passes import PassType

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from studio.models.passes import Pass


class DeductionReason(str, enum.Enum):
    """Why a ledger entry was written."""

    BOOKING = "booking"
    MANUAL = "manual"
    ADJUSTMENT = "adjustment"
    REFUND = "refund"


class SessionDeduction(Base):
    """One change to a pass balance, never edited after insert."""

    __tablename__ = "session_deductions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pass_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("passes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"), index=True
    )
    reason: Mapped[DeductionReason] = mapped_column(
        Enum(DeductionReason), nullable=False
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_after: Mapped[int] = mapped_column(Integer, nullable=False)
    pass_type: Mapped[PassType] = mapped_column(Enum(PassType), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(512))
    deducted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    pass_: Mapped["Pass"] = relationship("Pass")
