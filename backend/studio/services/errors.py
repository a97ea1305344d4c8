"""Domain errors raised by the service layer."""

from __future__ import annotations


class StudioError(ValueError):
    """Base class for expected, user-facing service failures."""


class NotFoundError(StudioError):
    """The requested row does not exist."""


class ConflictError(StudioError):
    """The request conflicts with current state."""


class SlotUnavailableError(ConflictError):
    """The selected date or time slot cannot take another booking."""


class DuplicateDateError(ConflictError):
    """An available date already exists for that day."""


class InvalidTransitionError(ConflictError):
    """A booking status change is not allowed."""


class LedgerError(StudioError):
    """A pass balance change would break the ledger invariants."""
