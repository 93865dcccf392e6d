"""Booking lifecycle management: create, reschedule, cancel, confirm and status changes."""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any, Mapping, Sequence
from zoneinfo import ZoneInfo

from fastapi import BackgroundTasks
from sqlalchemy import Select, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from app.core.errors import (
    BookingError,
    ConflictError,
    NotFoundError,
    PolicyError,
    StateError,
    StorageError,
    ValidationError,
)
from app.models.booking import Booking, BookingStatus
from app.models.booking_audit import AuditAction
from app.models.service import Service
from app.services import notification_service, slot_lock, venue_clock
from app.services.audit_service import Actor, record_booking_action
from app.services.availability_service import collect_request_errors
from app.services.booking_modes import mode_for
from app.services.time_slots import add_minutes, is_valid_hhmm, to_minutes

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES: set[BookingStatus] = {
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
}

_NOT_UPDATABLE_STATUSES: set[BookingStatus] = {
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
    BookingStatus.NO_SHOW,
}

_NOT_CANCELLABLE_STATUSES: set[BookingStatus] = {
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
}

_PAST_ONLY_STATUSES: set[BookingStatus] = {
    BookingStatus.COMPLETED,
    BookingStatus.NO_SHOW,
}

_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "booking_date",
        "start_time",
        "end_time",
        "staff_member_id",
        "party_size",
        "special_requests",
        "customer_name",
        "customer_phone",
    }
)
_RESCHEDULE_FIELDS: frozenset[str] = frozenset(
    {"booking_date", "start_time", "staff_member_id"}
)
_REVALIDATE_FIELDS: frozenset[str] = _RESCHEDULE_FIELDS | {"party_size"}
_REQUIRED_FIELDS: frozenset[str] = frozenset(
    {"booking_date", "start_time", "party_size", "customer_name"}
)

# Most specific failure wins when a request breaks several rules.
_ERROR_PRECEDENCE: tuple[type[BookingError], ...] = (
    NotFoundError,
    ValidationError,
    PolicyError,
    ConflictError,
)

_BOOKING_OPTIONS = (
    selectinload(Booking.venue),
    selectinload(Booking.service),
    selectinload(Booking.staff_member),
)


def _utcnow(now: datetime | None = None) -> datetime:
    return venue_clock.normalize_datetime(now or datetime.now(UTC))


def _raise_first(errors: Sequence[BookingError]) -> None:
    reasons = [error.reason for error in errors]
    for error_type in _ERROR_PRECEDENCE:
        for error in errors:
            if isinstance(error, error_type):
                raise error_type(error.reason, errors=reasons)
    raise ValidationError(reasons[0], errors=reasons)


async def _commit(session: AsyncSession, action: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to %s", action)
        raise StorageError(f"Failed to {action}") from exc


def _booking_timezone(booking: Booking) -> ZoneInfo:
    return venue_clock.resolve_timezone(booking.venue)


def effective_status(
    booking: Booking,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> BookingStatus:
    """Status as the customer should see it: elapsed active bookings are completed."""
    if booking.status not in _ACTIVE_STATUSES:
        return booking.status
    zone = tz or _booking_timezone(booking)
    ends_at = venue_clock.local_datetime(booking.booking_date, booking.end_time, zone)
    if ends_at is not None and ends_at < venue_clock.local_now(zone, now):
        return BookingStatus.COMPLETED
    return booking.status


async def auto_complete_past_bookings(
    session: AsyncSession,
    bookings: Sequence[Booking],
    *,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> list[Booking]:
    """Mark elapsed pending/confirmed bookings as completed.

    The write uses its own session so a failure cannot disturb the caller's
    transaction; the returned bookings report ``completed`` either way.
    Elapsed confirmed bookings get one review invitation, claimed by stamping
    ``review_invitation_sent_at`` only where it is still empty.
    """
    due = [
        booking
        for booking in bookings
        if booking.status in _ACTIVE_STATUSES
        and effective_status(booking, now) is BookingStatus.COMPLETED
    ]
    if not due:
        return []

    stamp = _utcnow(now)
    stmt = (
        update(Booking)
        .where(
            Booking.id.in_([booking.id for booking in due]),
            Booking.status.in_(_ACTIVE_STATUSES),
        )
        .values(status=BookingStatus.COMPLETED, updated_at=stamp)
        .execution_options(synchronize_session=False)
    )
    invited: list[Booking] = []
    try:
        async with AsyncSession(session.bind) as writer:
            await writer.execute(stmt)
            for booking in due:
                if booking.status is not BookingStatus.CONFIRMED:
                    continue
                claim = await writer.execute(
                    update(Booking)
                    .where(
                        Booking.id == booking.id,
                        Booking.review_invitation_sent_at.is_(None),
                    )
                    .values(review_invitation_sent_at=stamp)
                    .execution_options(synchronize_session=False)
                )
                if claim.rowcount == 1:
                    invited.append(booking)
            await writer.commit()
    except SQLAlchemyError:
        logger.exception("Failed to persist completion of %s past bookings", len(due))
        invited = []
    else:
        logger.info("Auto-completed %s past bookings", len(due))

    for booking in due:
        set_committed_value(booking, "status", BookingStatus.COMPLETED)
    for booking in invited:
        set_committed_value(booking, "review_invitation_sent_at", stamp)
        if background_tasks is not None:
            notification_service.queue_review_invitation(booking, background_tasks)
        else:
            await asyncio.to_thread(
                notification_service.send_review_invitation, booking
            )
    return due


async def _get_booking(
    session: AsyncSession,
    booking_id: uuid.UUID,
    *,
    venue_id: uuid.UUID | None = None,
) -> Booking:
    booking = await session.get(Booking, booking_id, options=list(_BOOKING_OPTIONS))
    if booking is None or (venue_id is not None and booking.venue_id != venue_id):
        raise NotFoundError("Booking not found")
    return booking


async def _get_booking_by_token(session: AsyncSession, token: str) -> Booking:
    stmt: Select[tuple[Booking]] = (
        select(Booking).options(*_BOOKING_OPTIONS).where(Booking.booking_token == token)
    )
    result = await session.execute(stmt)
    booking = result.scalars().first()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def get_booking(
    session: AsyncSession,
    booking_id: uuid.UUID,
    *,
    venue_id: uuid.UUID | None = None,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> Booking:
    booking = await _get_booking(session, booking_id, venue_id=venue_id)
    await auto_complete_past_bookings(
        session, [booking], background_tasks=background_tasks, now=now
    )
    return booking


async def get_booking_by_token(
    session: AsyncSession,
    token: str,
    *,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> Booking:
    booking = await _get_booking_by_token(session, token)
    await auto_complete_past_bookings(
        session, [booking], background_tasks=background_tasks, now=now
    )
    return booking


async def list_venue_bookings(
    session: AsyncSession,
    venue_id: uuid.UUID,
    *,
    booking_date: date | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    status: BookingStatus | None = None,
    service_id: uuid.UUID | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> list[Booking]:
    """List a venue's bookings, newest first, after completing elapsed ones."""
    stale_stmt: Select[tuple[Booking]] = (
        select(Booking)
        .options(*_BOOKING_OPTIONS)
        .where(
            Booking.venue_id == venue_id,
            Booking.status.in_(_ACTIVE_STATUSES),
            Booking.booking_date <= _utcnow(now).date() + timedelta(days=1),
        )
    )
    stale = (await session.execute(stale_stmt)).scalars().all()
    await auto_complete_past_bookings(
        session, stale, background_tasks=background_tasks, now=now
    )

    stmt: Select[tuple[Booking]] = (
        select(Booking)
        .options(*_BOOKING_OPTIONS)
        .where(Booking.venue_id == venue_id)
        .order_by(
            Booking.booking_date.desc(), Booking.start_time.desc(), Booking.id
        )
    )
    if booking_date is not None:
        stmt = stmt.where(Booking.booking_date == booking_date)
    if date_from is not None:
        stmt = stmt.where(Booking.booking_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Booking.booking_date <= date_to)
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    if service_id is not None:
        stmt = stmt.where(Booking.service_id == service_id)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Booking.customer_name.ilike(pattern),
                Booking.customer_email.ilike(pattern),
                Booking.customer_phone.ilike(pattern),
            )
        )
    result = await session.execute(stmt.limit(limit).offset(offset))
    return list(result.scalars().unique().all())


async def list_customer_bookings(
    session: AsyncSession,
    email: str,
    *,
    only_future: bool = False,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> list[Booking]:
    stmt: Select[tuple[Booking]] = (
        select(Booking)
        .options(*_BOOKING_OPTIONS)
        .where(Booking.customer_email.ilike(email.strip()))
        .order_by(Booking.booking_date, Booking.start_time)
    )
    result = await session.execute(stmt)
    bookings = list(result.scalars().unique().all())
    await auto_complete_past_bookings(
        session, bookings, background_tasks=background_tasks, now=now
    )
    if only_future:
        bookings = [
            booking
            for booking in bookings
            if (
                venue_clock.hours_until(
                    booking.booking_date,
                    booking.start_time,
                    _booking_timezone(booking),
                    now,
                )
                or 0
            )
            > 0
        ]
    return bookings


def _derive_end_time(service: Service, start_time: str, end_time: str | None) -> str:
    if not is_valid_hhmm(start_time):
        raise ValidationError("Invalid time format. Use HH:MM")
    derived = add_minutes(start_time, service.duration_minutes)
    if derived is None:
        raise ValidationError("Booking must end on the same day")
    if end_time is not None and to_minutes(end_time) != to_minutes(derived):
        raise ValidationError(
            f"End time must be {derived} for a {service.duration_minutes}-minute service"
        )
    return derived


async def create_booking(
    session: AsyncSession,
    *,
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    customer_name: str,
    customer_email: str,
    booking_date: date,
    start_time: str,
    end_time: str | None = None,
    staff_member_id: uuid.UUID | None = None,
    customer_phone: str | None = None,
    party_size: int = 1,
    special_requests: str | None = None,
    bypass_advance_check: bool = False,
    actor: Actor | None = None,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> Booking:
    """Validate and insert a pending booking while holding its resource."""
    service = await session.get(Service, service_id)
    if service is None or service.venue_id != venue_id or not service.is_active:
        raise NotFoundError("Service not found or inactive")
    derived_end = _derive_end_time(service, start_time, end_time)
    key = mode_for(service, staff_member_id).resource_key(booking_date)

    async with slot_lock.hold(session, key):
        errors = await collect_request_errors(
            session,
            venue_id=venue_id,
            service_id=service_id,
            staff_member_id=staff_member_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=derived_end,
            party_size=party_size,
            bypass_advance_check=bypass_advance_check,
            now=now,
        )
        if errors:
            _raise_first(errors)

        booking = Booking(
            venue_id=venue_id,
            service_id=service_id,
            staff_member_id=staff_member_id if service.requires_staff else None,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            booking_date=booking_date,
            start_time=start_time,
            end_time=derived_end,
            party_size=party_size,
            special_requests=special_requests,
            status=BookingStatus.PENDING,
        )
        session.add(booking)
        await _commit(session, "create booking")

    await session.refresh(booking, attribute_names=["venue", "service", "staff_member"])
    logger.info(
        "Booking %s created for venue %s on %s at %s (actor=%s)",
        booking.id,
        venue_id,
        booking_date,
        start_time,
        (actor or Actor.customer(customer_email)).actor_type.value,
    )
    if background_tasks is not None:
        notification_service.notify_booking_created(booking, background_tasks)
    return booking


async def update_booking(
    session: AsyncSession,
    token: str,
    changes: Mapping[str, Any],
    *,
    actor: Actor | None = None,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> Booking:
    """Apply customer changes; moving the slot re-validates and resets to pending."""
    booking = await get_booking_by_token(
        session, token, background_tasks=background_tasks, now=now
    )
    if booking.status in _NOT_UPDATABLE_STATUSES:
        raise StateError(f"Cannot update a {booking.status.value} booking")

    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    service = booking.service
    cleared = sorted(
        field for field in _REQUIRED_FIELDS if field in changes and changes[field] is None
    )
    if cleared:
        raise ValidationError(f"Fields cannot be empty: {', '.join(cleared)}")
    if changes.get("staff_member_id") is not None and not service.requires_staff:
        raise ValidationError("This service is not booked with a staff member")
    requested_end = changes.get("end_time")
    changed = {
        field: value
        for field, value in changes.items()
        if field != "end_time" and getattr(booking, field) != value
    }
    if not changed:
        if requested_end is not None:
            _derive_end_time(service, booking.start_time, requested_end)
        raise ValidationError("No fields to update")

    new_date = changed.get("booking_date", booking.booking_date)
    new_start = changed.get("start_time", booking.start_time)
    new_staff = changed.get("staff_member_id", booking.staff_member_id)
    new_party = changed.get("party_size", booking.party_size)
    reschedule = bool(changed.keys() & _RESCHEDULE_FIELDS)
    old_status = booking.status

    if changed.keys() & _REVALIDATE_FIELDS:
        new_end = _derive_end_time(service, new_start, requested_end)
        key = mode_for(service, new_staff).resource_key(new_date)
        async with slot_lock.hold(session, key):
            errors = await collect_request_errors(
                session,
                venue_id=booking.venue_id,
                service_id=booking.service_id,
                staff_member_id=new_staff,
                booking_date=new_date,
                start_time=new_start,
                end_time=new_end,
                party_size=new_party,
                exclude_booking_id=booking.id,
                now=now,
            )
            if errors:
                _raise_first(errors)
            _apply_changes(booking, changed, end_time=new_end, reschedule=reschedule)
            await _commit(session, "update booking")
    else:
        _apply_changes(booking, changed, end_time=booking.end_time, reschedule=False)
        await _commit(session, "update booking")

    await record_booking_action(
        session,
        booking_id=booking.id,
        venue_id=booking.venue_id,
        action=AuditAction.UPDATE,
        old_status=old_status,
        new_status=booking.status,
        reason=f"Changed: {', '.join(sorted(changed))}",
        actor=actor or Actor.customer(booking.customer_email),
    )
    if reschedule and background_tasks is not None:
        notification_service.notify_booking_rescheduled(booking, background_tasks)
    return booking


def _apply_changes(
    booking: Booking,
    changed: Mapping[str, Any],
    *,
    end_time: str,
    reschedule: bool,
) -> None:
    for field, value in changed.items():
        setattr(booking, field, value)
    booking.end_time = end_time
    if reschedule:
        booking.confirmation_sent_at = None
        booking.reminder_sent_at = None
        booking.status = BookingStatus.PENDING


async def cancel_booking(
    session: AsyncSession,
    token: str,
    *,
    reason: str | None = None,
    bypass_policy: bool = False,
    actor: Actor | None = None,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> Booking:
    booking = await get_booking_by_token(
        session, token, background_tasks=background_tasks, now=now
    )
    if booking.status in _NOT_CANCELLABLE_STATUSES:
        raise StateError(f"Cannot cancel a {booking.status.value} booking")

    venue = booking.venue
    if not bypass_policy:
        remaining = venue_clock.hours_until(
            booking.booking_date, booking.start_time, _booking_timezone(booking), now
        )
        if remaining is not None and remaining < venue.cancellation_hours:
            raise PolicyError(
                f"Bookings can only be cancelled at least {venue.cancellation_hours} "
                f"hours in advance. Only {max(0, math.floor(remaining))} hours remaining."
            )

    old_status = booking.status
    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = _utcnow(now)
    booking.cancellation_reason = reason
    await _commit(session, "cancel booking")
    logger.info("Booking %s cancelled", booking.id)

    await record_booking_action(
        session,
        booking_id=booking.id,
        venue_id=booking.venue_id,
        action=AuditAction.CANCEL,
        old_status=old_status,
        new_status=BookingStatus.CANCELLED,
        reason=reason,
        actor=actor or Actor.customer(booking.customer_email),
    )
    if background_tasks is not None:
        notification_service.notify_booking_cancelled(booking, background_tasks)
    return booking


async def confirm_booking(
    session: AsyncSession,
    booking_id: uuid.UUID,
    *,
    venue_id: uuid.UUID | None = None,
    actor: Actor | None = None,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> tuple[Booking, bool]:
    """Confirm a booking; returns the booking and whether it was reactivated.

    Reactivating a cancelled booking does not re-check availability.
    """
    booking = await _get_booking(session, booking_id, venue_id=venue_id)
    current = effective_status(booking, now)
    if current in _PAST_ONLY_STATUSES:
        raise StateError(f"Cannot confirm a {current.value} booking")
    if current is BookingStatus.CONFIRMED:
        return booking, False

    old_status = current
    reactivated = old_status is BookingStatus.CANCELLED
    booking.status = BookingStatus.CONFIRMED
    booking.confirmation_sent_at = _utcnow(now)
    if reactivated:
        booking.cancelled_at = None
        booking.cancellation_reason = None
    await _commit(session, "confirm booking")
    logger.info("Booking %s confirmed (reactivated=%s)", booking.id, reactivated)

    await record_booking_action(
        session,
        booking_id=booking.id,
        venue_id=booking.venue_id,
        action=AuditAction.STATUS_CHANGE,
        old_status=old_status,
        new_status=BookingStatus.CONFIRMED,
        reason="Reactivated" if reactivated else None,
        actor=actor,
    )
    if background_tasks is not None:
        notification_service.notify_booking_confirmed(
            booking, background_tasks, reactivated=reactivated
        )
    return booking, reactivated


async def update_booking_status(
    session: AsyncSession,
    booking_id: uuid.UUID,
    status: BookingStatus,
    *,
    reason: str | None = None,
    actor: Actor | None = None,
    venue_id: uuid.UUID | None = None,
    background_tasks: BackgroundTasks | None = None,
    now: datetime | None = None,
) -> Booking:
    """Provider-driven status transition with time and reason rules."""
    booking = await _get_booking(session, booking_id, venue_id=venue_id)
    tz = _booking_timezone(booking)
    ends_at = venue_clock.local_datetime(booking.booking_date, booking.end_time, tz)
    current_time = venue_clock.local_now(tz, now)
    if ends_at is not None and ends_at < current_time and status in _ACTIVE_STATUSES:
        raise StateError(
            "Past bookings can only be marked completed, no_show or cancelled"
        )
    if ends_at is not None and ends_at > current_time and status in _PAST_ONLY_STATUSES:
        raise StateError("A future booking cannot be marked completed or no_show")

    old_status = effective_status(booking, now, tz)
    is_pending_to_confirmed = (
        old_status is BookingStatus.PENDING and status is BookingStatus.CONFIRMED
    )
    if not is_pending_to_confirmed and not (reason and reason.strip()):
        raise ValidationError("A reason is required for this status change")

    booking.status = status
    if status is BookingStatus.CANCELLED:
        booking.cancelled_at = _utcnow(now)
        booking.cancellation_reason = reason
    elif old_status is BookingStatus.CANCELLED:
        booking.cancelled_at = None
        booking.cancellation_reason = None
    if status is BookingStatus.CONFIRMED:
        booking.confirmation_sent_at = _utcnow(now)
    await _commit(session, "update booking status")
    logger.info(
        "Booking %s status changed %s -> %s", booking.id, old_status.value, status.value
    )

    await record_booking_action(
        session,
        booking_id=booking.id,
        venue_id=booking.venue_id,
        action=AuditAction.STATUS_CHANGE,
        old_status=old_status,
        new_status=status,
        reason=reason,
        actor=actor,
    )
    if background_tasks is not None:
        if status is BookingStatus.CONFIRMED:
            notification_service.notify_booking_confirmed(
                booking,
                background_tasks,
                reactivated=old_status is BookingStatus.CANCELLED,
            )
        elif status is BookingStatus.CANCELLED:
            notification_service.notify_booking_cancelled(booking, background_tasks)
        elif status is BookingStatus.COMPLETED:
            await notification_service.notify_review_invitation(
                session, booking, background_tasks, now=now
            )
    return booking


async def delete_booking(
    session: AsyncSession,
    booking_id: uuid.UUID,
    *,
    venue_id: uuid.UUID | None = None,
) -> None:
    """Permanently remove a booking; its audit history is kept."""
    booking = await _get_booking(session, booking_id, venue_id=venue_id)
    logger.warning("Hard delete of booking %s", booking.id)
    await session.delete(booking)
    await _commit(session, "delete booking")


__all__ = [
    "auto_complete_past_bookings",
    "cancel_booking",
    "confirm_booking",
    "create_booking",
    "delete_booking",
    "effective_status",
    "get_booking",
    "get_booking_by_token",
    "list_customer_bookings",
    "list_venue_bookings",
    "update_booking",
    "update_booking_status",
]
