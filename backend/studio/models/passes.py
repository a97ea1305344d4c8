"""Session pass models."""
from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, DateTime, Enum, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.base import Base
from studio.models.mixins import TimestampMixin, utcnow

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from studio.models.user import User

# Unlimited passes carry UNLIMITED_SESSIONS; any balance above the threshold
# is unbounded and never changed by ledger arithmetic.
UNLIMITED_SESSIONS = 999
UNLIMITED_THRESHOLD = 900


class PassType(str, enum.Enum):
    """Kinds of session bundles sold or granted by the studio."""

    TRIAL = "trial"
    FIVE_SESSIONS = "5_sessions"
    TEN_SESSIONS = "10_sessions"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PassStatus(str, enum.Enum):
    """Lifecycle states for a pass."""

    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class Pass(TimestampMixin, Base):
    """A client's bundle of sessions and its remaining balance."""

    __tablename__ = "passes"
    __table_args__ = (
        CheckConstraint("remaining_sessions >= 0", name="ck_passes_remaining_min"),
        CheckConstraint(
            "remaining_sessions <= total_sessions", name="ck_passes_remaining_max"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pass_type: Mapped[PassType] = mapped_column(Enum(PassType), nullable=False)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_sessions: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PassStatus] = mapped_column(
        Enum(PassStatus), default=PassStatus.ACTIVE, nullable=False
    )
    expiry_date: Mapped[date | None] = mapped_column(Date)
    purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    # Set to user_id for trial passes only; the unique index allows one trial per client.
    trial_holder_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True
    )

    user: Mapped["User"] = relationship(
        "User", back_populates="passes", foreign_keys=[user_id]
    )

    @property
    def is_unlimited(self) -> bool:
        return self.total_sessions > UNLIMITED_THRESHOLD

    def is_expired_on(self, day: date) -> bool:
        return self.expiry_date is not None and self.expiry_date < day

    def has_capacity(self) -> bool:
        return self.is_unlimited or self.remaining_sessions > 0
