"""Staff member model."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin
from app.models.service import staff_services

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.availability_rule import AvailabilityRule
    from app.models.service import Service
    from app.models.venue import Venue


class StaffMember(TimestampMixin, Base):
    """A person who can be booked for staff-bound services."""

    __tablename__ = "staff_members"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    venue_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    venue: Mapped["Venue"] = relationship("Venue", back_populates="staff_members")
    services: Mapped[list["Service"]] = relationship(
        "Service",
        secondary=staff_services,
        back_populates="staff_members",
    )
    availability_rules: Mapped[list["AvailabilityRule"]] = relationship(
        "AvailabilityRule",
        back_populates="staff_member",
        cascade="all, delete-orphan",
    )
