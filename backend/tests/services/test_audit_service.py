"""Service-level tests for the booking audit trail."""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_sessionmaker
from app.models import AuditAction, AuditActorType, AuditEntryImmutableError
from app.services import audit_service
from app.services.audit_service import Actor

pytestmark = pytest.mark.asyncio


async def test_history_is_newest_first_with_actor_labels(
    reset_database, db_url: str
) -> None:
    booking_id, venue_id = uuid4(), uuid4()
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await audit_service.record_booking_action(
            session,
            booking_id=booking_id,
            venue_id=venue_id,
            action=AuditAction.STATUS_CHANGE,
            old_status="pending",
            new_status="confirmed",
            actor=Actor(AuditActorType.STAFF, actor_id="staff-7"),
        )
        await audit_service.record_booking_action(
            session,
            booking_id=booking_id,
            venue_id=venue_id,
            action=AuditAction.CANCEL,
            old_status="confirmed",
            new_status="cancelled",
            reason="Double booked",
            actor=Actor.customer("guest@example.com"),
        )
        await audit_service.record_booking_action(
            session,
            booking_id=booking_id,
            venue_id=venue_id,
            action=AuditAction.STATUS_CHANGE,
            old_status="cancelled",
            new_status="confirmed",
        )
        history = await audit_service.list_booking_audit(session, booking_id, venue_id)
        other_venue = await audit_service.list_booking_audit(
            session, booking_id, uuid4()
        )

    assert [entry.actor_label for entry in history] == [
        "System",
        "guest@example.com",
        "Staff member",
    ]
    assert history[1].reason == "Double booked"
    assert history[2].actor_id == "staff-7"
    assert other_venue == []


async def test_entries_cannot_be_changed_or_removed(
    reset_database, db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        entry = await audit_service.record_booking_action(
            session,
            booking_id=uuid4(),
            venue_id=uuid4(),
            action=AuditAction.UPDATE,
            reason="Changed: party_size",
        )
        assert entry is not None

        entry.reason = "rewritten"
        with pytest.raises(AuditEntryImmutableError):
            await session.commit()
        await session.rollback()

        await session.delete(entry)
        with pytest.raises(AuditEntryImmutableError):
            await session.commit()
        await session.rollback()


async def test_storage_failure_is_logged_not_raised(
    reset_database, db_url: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _failing_commit(self) -> None:
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(AsyncSession, "commit", _failing_commit)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        entry = await audit_service.record_booking_action(
            session,
            booking_id=uuid4(),
            venue_id=uuid4(),
            action=AuditAction.CANCEL,
        )

    assert entry is None
