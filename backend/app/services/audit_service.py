"""Helper utilities for recording booking audit entries."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking_audit import AuditAction, AuditActorType, BookingAuditEntry

logger = logging.getLogger(__name__)

_ACTOR_LABELS: dict[AuditActorType, str] = {
    AuditActorType.ADMIN: "System admin",
    AuditActorType.OWNER: "Venue owner",
    AuditActorType.STAFF: "Staff member",
    AuditActorType.SYSTEM: "System",
}


@dataclass(slots=True, frozen=True)
class Actor:
    """Who performed a booking change."""

    actor_type: AuditActorType
    actor_id: str | None = None
    customer_identifier: str | None = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(AuditActorType.SYSTEM)

    @classmethod
    def customer(cls, identifier: str | None) -> "Actor":
        return cls(AuditActorType.CUSTOMER, customer_identifier=identifier)


@dataclass(slots=True, frozen=True)
class AuditRecord:
    id: uuid.UUID
    action: AuditAction
    old_status: str | None
    new_status: str | None
    reason: str | None
    actor_type: AuditActorType
    actor_id: str | None
    actor_label: str
    created_at: datetime


def actor_label(entry: BookingAuditEntry) -> str:
    if entry.actor_type is AuditActorType.CUSTOMER:
        return entry.customer_identifier or "Customer"
    return _ACTOR_LABELS.get(entry.actor_type, "System")


def _status_value(status: object) -> str | None:
    if status is None:
        return None
    return getattr(status, "value", str(status))


async def record_booking_action(
    session: AsyncSession,
    *,
    booking_id: uuid.UUID,
    venue_id: uuid.UUID,
    action: AuditAction,
    old_status: object = None,
    new_status: object = None,
    reason: str | None = None,
    actor: Actor | None = None,
) -> BookingAuditEntry | None:
    """Persist an audit entry; failures are logged and never raised."""
    actor = actor or Actor.system()
    entry = BookingAuditEntry(
        booking_id=booking_id,
        venue_id=venue_id,
        action=action,
        old_status=_status_value(old_status),
        new_status=_status_value(new_status),
        reason=reason,
        actor_type=actor.actor_type,
        actor_id=actor.actor_id,
        customer_identifier=actor.customer_identifier,
    )
    try:
        session.add(entry)
        await session.commit()
        await session.refresh(entry)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception(
            "Failed to write %s audit entry for booking %s", action.value, booking_id
        )
        return None
    logger.debug("Audit entry written for booking %s (%s)", booking_id, action.value)
    return entry


async def list_booking_audit(
    session: AsyncSession, booking_id: uuid.UUID, venue_id: uuid.UUID
) -> list[AuditRecord]:
    """Return the booking's history, newest first."""
    stmt: Select[tuple[BookingAuditEntry]] = (
        select(BookingAuditEntry)
        .where(
            BookingAuditEntry.booking_id == booking_id,
            BookingAuditEntry.venue_id == venue_id,
        )
        .order_by(BookingAuditEntry.created_at.desc(), BookingAuditEntry.id)
    )
    result = await session.execute(stmt)
    return [
        AuditRecord(
            id=entry.id,
            action=entry.action,
            old_status=entry.old_status,
            new_status=entry.new_status,
            reason=entry.reason,
            actor_type=entry.actor_type,
            actor_id=entry.actor_id,
            actor_label=actor_label(entry),
            created_at=entry.created_at,
        )
        for entry in result.scalars().all()
    ]
