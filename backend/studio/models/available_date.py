"""Admin-curated bookable calendar days."""
from __future__ import annotations

import uuid
import datetime as dt

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from studio.db.base import Base
from studio.models.mixins import TimestampMixin


class AvailableDate(TimestampMixin, Base):
    """A calendar day opened for booking with its slot labels and capacity."""

    __tablename__ = "available_dates"
    __table_args__ = (
        CheckConstraint("max_bookings >= 1", name="ck_available_dates_capacity"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    date: Mapped[dt.date] = mapped_column(Date, unique=True, nullable=False)
    time_slots: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    max_bookings: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
