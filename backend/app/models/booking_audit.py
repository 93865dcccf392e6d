"""Append-only audit trail for booking mutations."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import DateTime, Enum, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class AuditAction(str, enum.Enum):
    STATUS_CHANGE = "status_change"
    CANCEL = "cancel"
    UPDATE = "update"


class AuditActorType(str, enum.Enum):
    ADMIN = "admin"
    OWNER = "owner"
    STAFF = "staff"
    CUSTOMER = "customer"
    SYSTEM = "system"


class BookingAuditEntry(Base):
    """Stores immutable audit entries for booking changes.

    ``booking_id`` is not a foreign key so history survives a hard delete.
    """

    __tablename__ = "booking_audit_entries"
    __table_args__ = (
        Index("ix_booking_audit_booking_venue", "booking_id", "venue_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    venue_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    action: Mapped[AuditAction] = mapped_column(Enum(AuditAction), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(32))
    new_status: Mapped[str | None] = mapped_column(String(32))
    reason: Mapped[str | None] = mapped_column(String(1024))
    actor_type: Mapped[AuditActorType] = mapped_column(
        Enum(AuditActorType), nullable=False
    )
    actor_id: Mapped[str | None] = mapped_column(String(255))
    customer_identifier: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa.func.now(),
    )


class AuditEntryImmutableError(RuntimeError):
    """Raised when code tries to modify a stored audit entry."""


@event.listens_for(BookingAuditEntry, "before_update")
def _reject_update(mapper, connection, target) -> None:  # noqa: ARG001
    raise AuditEntryImmutableError("Booking audit entries cannot be modified")


@event.listens_for(BookingAuditEntry, "before_delete")
def _reject_delete(mapper, connection, target) -> None:  # noqa: ARG001
    raise AuditEntryImmutableError("Booking audit entries cannot be deleted")
