"""Pydantic schemas for bookings."""
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.booking import BookingStatus


class BookingCreate(BaseModel):
    """Payload for creating bookings."""

    venue_id: uuid.UUID
    service_id: uuid.UUID
    staff_member_id: uuid.UUID | None = None
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: str | None = Field(default=None, max_length=64)
    booking_date: date
    start_time: str
    end_time: str | None = None
    party_size: int = 1
    special_requests: str | None = None


class ManualBookingCreate(BaseModel):
    """Provider-entered booking for a walk-in or phone request."""

    service_id: uuid.UUID
    staff_member_id: uuid.UUID | None = None
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: str | None = Field(default=None, max_length=64)
    booking_date: date
    start_time: str
    end_time: str | None = None
    party_size: int = 1
    special_requests: str | None = None


class BookingUpdate(BaseModel):
    """Fields a customer may change through the manage link."""

    booking_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    staff_member_id: uuid.UUID | None = None
    party_size: int | None = None
    special_requests: str | None = None
    customer_name: str | None = Field(default=None, min_length=1, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=64)


class BookingCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1024)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    reason: str | None = Field(default=None, max_length=1024)


class BookingRead(BaseModel):
    """Serialized booking representation."""

    id: uuid.UUID
    venue_id: uuid.UUID
    service_id: uuid.UUID
    staff_member_id: uuid.UUID | None = None
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    booking_date: date
    start_time: str
    end_time: str
    party_size: int
    special_requests: str | None = None
    status: BookingStatus
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    confirmation_sent_at: datetime | None = None
    reminder_sent_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingManageRead(BookingRead):
    """Booking as returned to its holder, including the manage token."""

    booking_token: str


class BookingConfirmResponse(BaseModel):
    booking: BookingRead
    reactivated: bool
