"""Schema exports."""

from app.schemas.audit import AuditEntryRead
from app.schemas.availability import DayAvailabilityRead, TimeSlotRead
from app.schemas.booking import (
    BookingCancelRequest,
    BookingConfirmResponse,
    BookingCreate,
    BookingManageRead,
    BookingRead,
    BookingStatusUpdate,
    BookingUpdate,
    ManualBookingCreate,
)

__all__ = [
    "AuditEntryRead",
    "BookingCancelRequest",
    "BookingConfirmResponse",
    "BookingCreate",
    "BookingManageRead",
    "BookingRead",
    "BookingStatusUpdate",
    "BookingUpdate",
    "DayAvailabilityRead",
    "ManualBookingCreate",
    "TimeSlotRead",
]
