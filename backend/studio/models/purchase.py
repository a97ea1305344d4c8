"""Purchase records for passes assigned by the studio."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from studio.db.base import Base
from studio.models.mixins import utcnow


class Purchase(Base):
    """A paid pass assignment."""

    __tablename__ = "purchases"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pass_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("passes.id", ondelete="SET NULL")
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(32), default="completed", nullable=False
    )
    purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
