"""Row-lock targets for contended booking resources."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class BookingResourceLock(TimestampMixin, Base):
    """One row per (venue, resource, date) key, locked with FOR UPDATE."""

    __tablename__ = "booking_resource_locks"
    __table_args__ = (
        UniqueConstraint(
            "venue_id",
            "resource_kind",
            "resource_id",
            "booking_date",
            name="uq_booking_resource_lock_key",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    venue_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    resource_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    resource_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
