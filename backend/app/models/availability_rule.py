"""Recurring weekly open-hours windows."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.staff import StaffMember
    from app.models.venue import Venue


class AvailabilityRule(TimestampMixin, Base):
    """Weekly window scoped to exactly one venue or one staff member.

    ``day_of_week`` counts from Sunday (0) to Saturday (6); times are
    ``HH:MM`` strings in the venue's local time.
    """

    __tablename__ = "availability_rules"
    __table_args__ = (
        CheckConstraint(
            "(venue_id IS NULL) <> (staff_member_id IS NULL)",
            name="single_scope",
        ),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="day_of_week_range"),
        Index("ix_availability_rules_venue_day", "venue_id", "day_of_week"),
        Index("ix_availability_rules_staff_day", "staff_member_id", "day_of_week"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    venue_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=True
    )
    staff_member_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    venue: Mapped["Venue | None"] = relationship(
        "Venue", back_populates="availability_rules"
    )
    staff_member: Mapped["StaffMember | None"] = relationship(
        "StaffMember", back_populates="availability_rules"
    )
