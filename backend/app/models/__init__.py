"""ORM models package export."""

from app.models.availability_rule import AvailabilityRule
from app.models.booking import Booking, BookingStatus
from app.models.booking_audit import (
    AuditAction,
    AuditActorType,
    AuditEntryImmutableError,
    BookingAuditEntry,
)
from app.models.resource_lock import BookingResourceLock
from app.models.service import Service, staff_services
from app.models.staff import StaffMember
from app.models.venue import Venue

__all__ = [
    "AuditAction",
    "AuditActorType",
    "AuditEntryImmutableError",
    "AvailabilityRule",
    "Booking",
    "BookingAuditEntry",
    "BookingResourceLock",
    "BookingStatus",
    "Service",
    "StaffMember",
    "Venue",
    "staff_services",
]
