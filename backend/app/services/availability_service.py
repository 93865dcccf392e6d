"""Slot availability checks, day/week listings and booking request validation."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Sequence

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import (
    BookingError,
    ConflictError,
    NotFoundError,
    PolicyError,
    StorageError,
    ValidationError,
)
from app.models.availability_rule import AvailabilityRule
from app.models.booking import Booking, BookingStatus
from app.models.service import Service, staff_services
from app.models.staff import StaffMember
from app.models.venue import Venue
from app.services import venue_clock
from app.services.booking_modes import mode_for, staff_modes
from app.services.time_slots import (
    generate_slots,
    is_valid_hhmm,
    to_minutes,
    within,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SlotCheck:
    available: bool
    reason: str | None = None


@dataclass(slots=True, frozen=True)
class TimeSlot:
    """One listed slot; ``staff_member_id`` is set only for staff-bound services."""

    start_time: str
    end_time: str
    available: bool
    staff_member_id: uuid.UUID | None = None
    remaining_capacity: int | None = None


@dataclass(slots=True)
class DayAvailability:
    date: date
    day_of_week: int
    time_slots: list[TimeSlot] = field(default_factory=list)


def occupying_statuses() -> set[BookingStatus]:
    """Statuses whose bookings hold their slot against new requests."""
    statuses = {BookingStatus.CONFIRMED}
    if get_settings().booking_pending_holds_slot:
        statuses.add(BookingStatus.PENDING)
    return statuses


async def _get_active_venue(session: AsyncSession, venue_id: uuid.UUID) -> Venue | None:
    venue = await session.get(Venue, venue_id)
    if venue is None or not venue.is_active:
        return None
    return venue


async def _get_active_service(
    session: AsyncSession, *, venue_id: uuid.UUID, service_id: uuid.UUID
) -> Service | None:
    stmt: Select[tuple[Service]] = select(Service).where(
        Service.id == service_id,
        Service.venue_id == venue_id,
        Service.is_active.is_(True),
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def _load_rules(
    session: AsyncSession, filters: Sequence[ColumnElement[Any]]
) -> list[AvailabilityRule]:
    stmt: Select[tuple[AvailabilityRule]] = (
        select(AvailabilityRule).where(*filters).order_by(AvailabilityRule.start_time)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _load_competing_bookings(
    session: AsyncSession,
    filters: Sequence[ColumnElement[Any]],
    *,
    exclude_booking_id: uuid.UUID | None = None,
) -> list[Booking]:
    stmt: Select[tuple[Booking]] = select(Booking).where(
        *filters, Booking.status.in_(occupying_statuses())
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _eligible_staff_ids(
    session: AsyncSession, service: Service
) -> list[uuid.UUID]:
    stmt = (
        select(StaffMember.id)
        .join(staff_services, staff_services.c.staff_member_id == StaffMember.id)
        .where(
            staff_services.c.service_id == service.id,
            StaffMember.venue_id == service.venue_id,
            StaffMember.is_active.is_(True),
        )
        .order_by(StaffMember.name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def can_staff_perform_service(
    session: AsyncSession, staff_member_id: uuid.UUID, service_id: uuid.UUID
) -> bool:
    """Return True when an active staff member is linked to the service."""
    stmt = (
        select(func.count())
        .select_from(staff_services)
        .join(StaffMember, staff_services.c.staff_member_id == StaffMember.id)
        .where(
            staff_services.c.staff_member_id == staff_member_id,
            staff_services.c.service_id == service_id,
            StaffMember.is_active.is_(True),
        )
    )
    count = (await session.execute(stmt)).scalar_one()
    return count > 0


async def is_slot_available(
    session: AsyncSession,
    *,
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    staff_member_id: uuid.UUID | None,
    booking_date: date,
    start_time: str,
    end_time: str,
    party_size: int = 1,
    exclude_booking_id: uuid.UUID | None = None,
) -> SlotCheck:
    """Check a single requested slot against rules and existing bookings.

    An unavailable slot is reported through ``SlotCheck.reason``; only
    storage failures raise.
    """
    try:
        service = await _get_active_service(
            session, venue_id=venue_id, service_id=service_id
        )
        if service is None:
            return SlotCheck(False, "Service not found or inactive")

        if party_size > service.capacity:
            return SlotCheck(
                False, f"Party size exceeds capacity (max: {service.capacity})"
            )

        mode = mode_for(service, staff_member_id)
        rules = await _load_rules(
            session, mode.rule_filters(venue_clock.day_of_week(booking_date))
        )
        if not rules:
            return SlotCheck(False, mode.closed_reason)
        if not any(
            within(start_time, end_time, rule.start_time, rule.end_time)
            for rule in rules
        ):
            return SlotCheck(False, mode.outside_hours_reason)

        bookings = await _load_competing_bookings(
            session,
            mode.booking_filters(booking_date),
            exclude_booking_id=exclude_booking_id,
        )
    except SQLAlchemyError as exc:
        logger.exception("Error checking availability for service %s", service_id)
        raise StorageError("Error checking availability") from exc

    if mode.has_conflict(
        bookings, start_time=start_time, end_time=end_time, party_size=party_size
    ):
        logger.info(
            "Slot %s-%s on %s already booked for %s %s",
            start_time,
            end_time,
            booking_date,
            mode.kind,
            mode.resource_key(booking_date).resource_id,
        )
        return SlotCheck(False, "Time slot already booked")
    return SlotCheck(True)


def _start_in_band(slot: TimeSlot, band_start: str | None, band_end: str | None) -> bool:
    if band_start is None or band_end is None:
        return True
    start, low, high = (
        to_minutes(slot.start_time),
        to_minutes(band_start),
        to_minutes(band_end),
    )
    if start is None or low is None or high is None:
        return True
    return low <= start <= high


async def get_available_slots(
    session: AsyncSession,
    *,
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    booking_date: date,
    party_size: int = 1,
    time_window_start: str | None = None,
    time_window_end: str | None = None,
    exclude_booking_id: uuid.UUID | None = None,
    now: datetime | None = None,
) -> DayAvailability:
    """List every slot of the day for a service with its occupancy."""
    weekday = venue_clock.day_of_week(booking_date)
    try:
        venue = await _get_active_venue(session, venue_id)
        if venue is None:
            raise NotFoundError("Venue not found or inactive")
        service = await _get_active_service(
            session, venue_id=venue_id, service_id=service_id
        )
        if service is None:
            raise NotFoundError("Service not found")

        slots: list[TimeSlot] = []
        if service.requires_staff:
            modes = staff_modes(service, await _eligible_staff_ids(session, service))
            bookings = await _load_competing_bookings(
                session,
                [
                    Booking.venue_id == venue_id,
                    Booking.booking_date == booking_date,
                    Booking.staff_member_id.is_not(None),
                ],
                exclude_booking_id=exclude_booking_id,
            )
            for staff_mode in modes:
                for rule in await _load_rules(session, staff_mode.rule_filters(weekday)):
                    for slot in generate_slots(
                        rule.start_time, rule.end_time, service.duration_minutes
                    ):
                        occupancy = staff_mode.occupancy(
                            bookings,
                            start_time=slot.start_time,
                            end_time=slot.end_time,
                            party_size=party_size,
                        )
                        slots.append(
                            TimeSlot(
                                start_time=slot.start_time,
                                end_time=slot.end_time,
                                available=occupancy.available,
                                staff_member_id=staff_mode.staff_member_id,
                            )
                        )
        else:
            capacity_mode = mode_for(service)
            bookings = await _load_competing_bookings(
                session,
                capacity_mode.booking_filters(booking_date),
                exclude_booking_id=exclude_booking_id,
            )
            for rule in await _load_rules(session, capacity_mode.rule_filters(weekday)):
                for slot in generate_slots(
                    rule.start_time, rule.end_time, service.duration_minutes
                ):
                    occupancy = capacity_mode.occupancy(
                        bookings,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        party_size=party_size,
                    )
                    slots.append(
                        TimeSlot(
                            start_time=slot.start_time,
                            end_time=slot.end_time,
                            available=occupancy.available,
                            remaining_capacity=occupancy.remaining_capacity,
                        )
                    )
    except SQLAlchemyError as exc:
        logger.exception("Error fetching available slots for service %s", service_id)
        raise StorageError("Error fetching available slots") from exc

    slots.sort(key=lambda slot: to_minutes(slot.start_time) or 0)

    seen: set[tuple[str, str, uuid.UUID | None]] = set()
    unique: list[TimeSlot] = []
    for slot in slots:
        key = (slot.start_time, slot.end_time, slot.staff_member_id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(slot)

    tz = venue_clock.resolve_timezone(venue)
    advance_hours = venue.booking_advance_hours or 0
    visible = [
        slot
        for slot in unique
        if (
            venue_clock.hours_until(booking_date, slot.start_time, tz, now) or 0
        ) >= advance_hours
        and _start_in_band(slot, time_window_start, time_window_end)
    ]

    logger.info(
        "%s available (%s total) slots for service %s on %s",
        sum(1 for slot in visible if slot.available),
        len(visible),
        service_id,
        booking_date,
    )
    return DayAvailability(date=booking_date, day_of_week=weekday, time_slots=visible)


async def get_week_availability(
    session: AsyncSession,
    *,
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    start_date: date,
    party_size: int = 1,
    now: datetime | None = None,
) -> list[DayAvailability]:
    """Return seven consecutive days of slots starting at ``start_date``.

    A day that cannot be computed is reported with no slots.
    """
    try:
        venue = await _get_active_venue(session, venue_id)
    except SQLAlchemyError as exc:
        raise StorageError("Error fetching week availability") from exc
    if venue is None:
        raise NotFoundError("Venue not found or inactive")

    week: list[DayAvailability] = []
    for offset in range(7):
        current = start_date + timedelta(days=offset)
        try:
            day = await get_available_slots(
                session,
                venue_id=venue_id,
                service_id=service_id,
                booking_date=current,
                party_size=party_size,
                now=now,
            )
        except BookingError as exc:
            logger.warning("Availability for %s unavailable: %s", current, exc.reason)
            day = DayAvailability(
                date=current, day_of_week=venue_clock.day_of_week(current)
            )
        week.append(day)
    return week


async def collect_request_errors(
    session: AsyncSession,
    *,
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    staff_member_id: uuid.UUID | None,
    booking_date: date,
    start_time: str,
    end_time: str,
    party_size: int,
    exclude_booking_id: uuid.UUID | None = None,
    bypass_advance_check: bool = False,
    now: datetime | None = None,
) -> list[BookingError]:
    """Validate a booking request and return typed errors in check order."""
    max_party_size = get_settings().booking_max_party_size
    errors: list[BookingError] = []

    if party_size <= 0:
        errors.append(ValidationError("Party size must be at least 1"))
    if party_size > max_party_size:
        errors.append(
            ValidationError(
                f"Party size must be between 1 and {max_party_size}. "
                "For larger groups please call."
            )
        )

    times_valid = is_valid_hhmm(start_time) and is_valid_hhmm(end_time)
    if not times_valid:
        errors.append(ValidationError("Invalid time format. Use HH:MM"))
    elif to_minutes(end_time) <= to_minutes(start_time):  # type: ignore[operator]
        errors.append(ValidationError("End time must be after start time"))

    try:
        venue = await _get_active_venue(session, venue_id)
        if venue is None:
            errors.append(NotFoundError("Venue not found or inactive"))
            return errors

        tz = venue_clock.resolve_timezone(venue)
        if booking_date < venue_clock.local_now(tz, now).date():
            errors.append(ValidationError("Cannot book in the past"))

        if not bypass_advance_check and times_valid:
            remaining = venue_clock.hours_until(booking_date, start_time, tz, now)
            if remaining is not None and remaining < venue.booking_advance_hours:
                errors.append(
                    PolicyError(
                        f"Bookings must be made at least {venue.booking_advance_hours} "
                        f"hours in advance. Only {math.floor(remaining)} hours remaining."
                    )
                )

        service = await _get_active_service(
            session, venue_id=venue_id, service_id=service_id
        )
        if service is None:
            errors.append(NotFoundError("Service not found or inactive"))
            return errors

        if service.requires_staff:
            if staff_member_id is None:
                errors.append(
                    ValidationError("Staff member is required for this service")
                )
            elif not await can_staff_perform_service(
                session, staff_member_id, service_id
            ):
                errors.append(
                    ValidationError("Selected staff member cannot perform this service")
                )
    except SQLAlchemyError as exc:
        logger.exception("Error validating booking request for venue %s", venue_id)
        raise StorageError("Error validating booking request") from exc

    if not errors:
        check = await is_slot_available(
            session,
            venue_id=venue_id,
            service_id=service_id,
            staff_member_id=staff_member_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            party_size=party_size,
            exclude_booking_id=exclude_booking_id,
        )
        if not check.available:
            errors.append(ConflictError(check.reason or "Time slot not available"))

    if errors:
        logger.info(
            "Booking request for venue %s rejected: %s",
            venue_id,
            "; ".join(error.reason for error in errors),
        )
    return errors


async def validate_booking_request(
    session: AsyncSession,
    *,
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    staff_member_id: uuid.UUID | None,
    booking_date: date,
    start_time: str,
    end_time: str,
    party_size: int,
    exclude_booking_id: uuid.UUID | None = None,
    bypass_advance_check: bool = False,
    now: datetime | None = None,
) -> list[str]:
    """Return the error messages for a booking request; empty means valid."""
    errors = await collect_request_errors(
        session,
        venue_id=venue_id,
        service_id=service_id,
        staff_member_id=staff_member_id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        party_size=party_size,
        exclude_booking_id=exclude_booking_id,
        bypass_advance_check=bypass_advance_check,
        now=now,
    )
    return [error.reason for error in errors]


__all__ = [
    "DayAvailability",
    "SlotCheck",
    "TimeSlot",
    "can_staff_perform_service",
    "collect_request_errors",
    "get_available_slots",
    "get_week_availability",
    "is_slot_available",
    "occupying_statuses",
    "validate_booking_request",
]
