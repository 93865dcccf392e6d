"""Booking models."""

from __future__ import annotations

import enum
import secrets
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.service import Service
    from app.models.staff import StaffMember
    from app.models.venue import Venue


class BookingStatus(str, enum.Enum):
    """Lifecycle states for bookings."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


def generate_booking_token() -> str:
    return secrets.token_urlsafe(24)


class Booking(TimestampMixin, Base):
    """A customer's hold on a service slot at a venue."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("party_size >= 1", name="party_size_positive"),
        Index("ix_bookings_venue_date", "venue_id", "booking_date"),
        Index("ix_bookings_staff_date", "staff_member_id", "booking_date"),
        Index("ix_bookings_customer_email", "customer_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    venue_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    staff_member_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("staff_members.id", ondelete="SET NULL"), nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(64))
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    special_requests: Mapped[str | None] = mapped_column(Text)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(String(1024))
    confirmation_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    review_invitation_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    booking_token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, default=generate_booking_token
    )

    venue: Mapped["Venue"] = relationship("Venue", back_populates="bookings")
    service: Mapped["Service"] = relationship("Service")
    staff_member: Mapped["StaffMember | None"] = relationship("StaffMember")
