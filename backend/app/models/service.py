"""Bookable service offerings and staff capability links."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.staff import StaffMember
    from app.models.venue import Venue


staff_services = Table(
    "staff_services",
    Base.metadata,
    Column(
        "staff_member_id",
        ForeignKey("staff_members.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "service_id",
        ForeignKey("services.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Service(TimestampMixin, Base):
    """A venue offering with a fixed duration.

    ``requires_staff`` selects the booking mode: staff-bound services book a
    staff member's calendar, the rest share ``capacity`` seats.
    """

    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="duration_positive"),
        CheckConstraint("capacity >= 1", name="capacity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    venue_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    requires_staff: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    venue: Mapped["Venue"] = relationship("Venue", back_populates="services")
    staff_members: Mapped[list["StaffMember"]] = relationship(
        "StaffMember",
        secondary=staff_services,
        back_populates="services",
    )


__all__ = ["Service", "staff_services"]
