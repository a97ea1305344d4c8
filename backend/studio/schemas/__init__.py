"""Schema exports."""

from studio.schemas.auth import RegistrationRequest, RegistrationResponse, Token
from studio.schemas.availability import DayAvailabilityRead, SlotAvailabilityRead
from studio.schemas.available_date import (
    AvailableDateCreate,
    AvailableDateRead,
    AvailableDateUpdate,
    RecurringDatesRequest,
    RecurringDatesResult,
)
from studio.schemas.booking import (
    BookingOutcome,
    BookingRead,
    BookingUpdate,
    ClientDetails,
    PortalBookingRequest,
    PublicBookingRequest,
)
from studio.schemas.ledger import (
    DeductionResultRead,
    DeductRequest,
    ReconcileReport,
    ReconcileRequest,
    RefundRequest,
    RefundResultRead,
)
from studio.schemas.passes import (
    ExpireResult,
    LedgerHistoryRead,
    PassAdjust,
    PassAssign,
    PassCatalogEntryRead,
    PassRead,
    PurchaseRead,
    SessionDeductionRead,
    TrialGrantRead,
)
from studio.schemas.user import UserCreate, UserRead

__all__ = [
    "AvailableDateCreate",
    "AvailableDateRead",
    "AvailableDateUpdate",
    "BookingOutcome",
    "BookingRead",
    "BookingUpdate",
    "ClientDetails",
    "DayAvailabilityRead",
    "DeductRequest",
    "DeductionResultRead",
    "ExpireResult",
    "LedgerHistoryRead",
    "PassAdjust",
    "PassAssign",
    "PassCatalogEntryRead",
    "PassRead",
    "PortalBookingRequest",
    "PublicBookingRequest",
    "PurchaseRead",
    "ReconcileReport",
    "ReconcileRequest",
    "RecurringDatesRequest",
    "RecurringDatesResult",
    "RefundRequest",
    "RefundResultRead",
    "RegistrationRequest",
    "RegistrationResponse",
    "SlotAvailabilityRead",
    "SessionDeductionRead",
    "Token",
    "TrialGrantRead",
    "UserCreate",
    "UserRead",
]
