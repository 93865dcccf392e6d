"""Versioned API router."""

from fastapi import APIRouter

from . import availability, bookings, health, venue_bookings

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(availability.router, tags=["availability"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(venue_bookings.router, tags=["venue-bookings"])

__all__ = ["router"]
