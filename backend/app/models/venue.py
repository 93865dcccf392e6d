"""Venue model."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.availability_rule import AvailabilityRule
    from app.models.booking import Booking
    from app.models.service import Service
    from app.models.staff import StaffMember


class Venue(TimestampMixin, Base):
    """A provider location that offers bookable services."""

    __tablename__ = "venues"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    booking_advance_hours: Mapped[int] = mapped_column(
        Integer, nullable=False, default=48
    )
    cancellation_hours: Mapped[int] = mapped_column(
        Integer, nullable=False, default=24
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    services: Mapped[list["Service"]] = relationship(
        "Service", back_populates="venue", cascade="all, delete-orphan"
    )
    staff_members: Mapped[list["StaffMember"]] = relationship(
        "StaffMember", back_populates="venue", cascade="all, delete-orphan"
    )
    availability_rules: Mapped[list["AvailabilityRule"]] = relationship(
        "AvailabilityRule", back_populates="venue", cascade="all, delete-orphan"
    )
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="venue", cascade="all, delete-orphan"
    )
