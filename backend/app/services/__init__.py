"""Service layer exports."""
from app.services import (
    audit_service,
    availability_service,
    booking_service,
    notification_service,
    reminder_service,
)

__all__ = [
    "audit_service",
    "availability_service",
    "booking_service",
    "notification_service",
    "reminder_service",
]
