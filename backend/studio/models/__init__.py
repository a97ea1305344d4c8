"""ORM models package export."""

from studio.models.audit_event import AuditEvent
from studio.models.available_date import AvailableDate
from studio.models.booking import Booking, BookingStatus
from studio.models.passes import (
    UNLIMITED_SESSIONS,
    UNLIMITED_THRESHOLD,
    Pass,
    PassStatus,
    PassType,
)
from studio.models.purchase import Purchase
from studio.models.session_deduction import DeductionReason, SessionDeduction
from studio.models.user import User, UserRole, UserStatus

__all__ = [
    "AuditEvent",
    "AvailableDate",
    "Booking",
    "BookingStatus",
    "DeductionReason",
    "Pass",
    "PassStatus",
    "PassType",
    "Purchase",
    "SessionDeduction",
    "UNLIMITED_SESSIONS",
    "UNLIMITED_THRESHOLD",
    "User",
    "UserRole",
    "UserStatus",
]
