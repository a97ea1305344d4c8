"""Versioned API router."""

from fastapi import APIRouter

from . import (
    auth,
    availability,
    available_dates,
    bookings,
    changes,
    health,
    ledger,
    passes,
    portal,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(availability.router, prefix="/availability", tags=["availability"])
router.include_router(
    available_dates.router, prefix="/available-dates", tags=["available-dates"]
)
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(portal.router)
router.include_router(passes.router)
router.include_router(ledger.router)
router.include_router(changes.router)

__all__ = ["router"]
