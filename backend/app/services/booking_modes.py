"""Staff-bound and capacity-bound booking modes.

Every mode answers the same questions for the availability service: which
availability rules apply, which resource key serialises writes, which
existing bookings compete for the slot and whether they leave room for a
new party.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Protocol, Sequence

from sqlalchemy import ColumnElement

from app.models.availability_rule import AvailabilityRule
from app.models.booking import Booking
from app.models.service import Service
from app.services.time_slots import overlaps


@dataclass(slots=True, frozen=True)
class ResourceKey:
    """Identifies the contended resource for one calendar day."""

    venue_id: uuid.UUID
    resource_kind: str
    resource_id: uuid.UUID
    booking_date: date

    def as_text(self) -> str:
        return (
            f"{self.venue_id}:{self.resource_kind}:{self.resource_id}:"
            f"{self.booking_date.isoformat()}"
        )


@dataclass(slots=True, frozen=True)
class SlotOccupancy:
    available: bool
    remaining_capacity: int | None = None


class BookingMode(Protocol):
    kind: str
    closed_reason: str
    outside_hours_reason: str

    def resource_key(self, booking_date: date) -> ResourceKey: ...

    def rule_filters(self, day_of_week: int) -> list[ColumnElement[Any]]: ...

    def booking_filters(self, booking_date: date) -> list[ColumnElement[Any]]: ...

    def has_conflict(
        self,
        bookings: Iterable[Booking],
        *,
        start_time: str,
        end_time: str,
        party_size: int,
    ) -> bool: ...

    def occupancy(
        self,
        bookings: Iterable[Booking],
        *,
        start_time: str,
        end_time: str,
        party_size: int,
        staff_member_id: uuid.UUID | None = None,
    ) -> SlotOccupancy: ...


@dataclass(slots=True, frozen=True)
class StaffMode:
    """A staff member's calendar is the resource; any overlap conflicts."""

    venue_id: uuid.UUID
    staff_member_id: uuid.UUID

    kind = "staff"
    closed_reason = "Staff not available on this day"
    outside_hours_reason = "Requested time is outside staff working hours"

    def resource_key(self, booking_date: date) -> ResourceKey:
        return ResourceKey(self.venue_id, self.kind, self.staff_member_id, booking_date)

    def rule_filters(self, day_of_week: int) -> list[ColumnElement[Any]]:
        return [
            AvailabilityRule.staff_member_id == self.staff_member_id,
            AvailabilityRule.day_of_week == day_of_week,
            AvailabilityRule.is_active.is_(True),
        ]

    def booking_filters(self, booking_date: date) -> list[ColumnElement[Any]]:
        # Any service the staff member performs blocks their time.
        return [
            Booking.venue_id == self.venue_id,
            Booking.staff_member_id == self.staff_member_id,
            Booking.booking_date == booking_date,
        ]

    def has_conflict(
        self,
        bookings: Iterable[Booking],
        *,
        start_time: str,
        end_time: str,
        party_size: int,
    ) -> bool:
        return any(
            overlaps(start_time, end_time, booking.start_time, booking.end_time)
            for booking in bookings
        )

    def occupancy(
        self,
        bookings: Iterable[Booking],
        *,
        start_time: str,
        end_time: str,
        party_size: int,
        staff_member_id: uuid.UUID | None = None,
    ) -> SlotOccupancy:
        owner = staff_member_id or self.staff_member_id
        busy = any(
            booking.staff_member_id == owner
            and overlaps(start_time, end_time, booking.start_time, booking.end_time)
            for booking in bookings
        )
        return SlotOccupancy(available=not busy)


@dataclass(slots=True, frozen=True)
class CapacityMode:
    """Overlapping parties share the service's seats."""

    venue_id: uuid.UUID
    service_id: uuid.UUID
    capacity: int

    kind = "service"
    closed_reason = "Venue closed on this day"
    outside_hours_reason = "Requested time is outside venue working hours"

    def resource_key(self, booking_date: date) -> ResourceKey:
        return ResourceKey(self.venue_id, self.kind, self.service_id, booking_date)

    def rule_filters(self, day_of_week: int) -> list[ColumnElement[Any]]:
        return [
            AvailabilityRule.venue_id == self.venue_id,
            AvailabilityRule.day_of_week == day_of_week,
            AvailabilityRule.is_active.is_(True),
        ]

    def booking_filters(self, booking_date: date) -> list[ColumnElement[Any]]:
        return [
            Booking.venue_id == self.venue_id,
            Booking.service_id == self.service_id,
            Booking.booking_date == booking_date,
        ]

    def _occupied(
        self, bookings: Iterable[Booking], start_time: str, end_time: str
    ) -> int:
        return sum(
            booking.party_size
            for booking in bookings
            if overlaps(start_time, end_time, booking.start_time, booking.end_time)
        )

    def has_conflict(
        self,
        bookings: Iterable[Booking],
        *,
        start_time: str,
        end_time: str,
        party_size: int,
    ) -> bool:
        occupied = self._occupied(bookings, start_time, end_time)
        return occupied + party_size > self.capacity

    def occupancy(
        self,
        bookings: Iterable[Booking],
        *,
        start_time: str,
        end_time: str,
        party_size: int,
        staff_member_id: uuid.UUID | None = None,
    ) -> SlotOccupancy:
        remaining = self.capacity - self._occupied(bookings, start_time, end_time)
        return SlotOccupancy(
            available=remaining >= party_size,
            remaining_capacity=max(0, remaining),
        )


def mode_for(
    service: Service, staff_member_id: uuid.UUID | None = None
) -> StaffMode | CapacityMode:
    """Pick the booking mode for ``service``.

    A staff-bound service without a chosen staff member falls back to the
    venue calendar; request validation rejects that combination separately.
    """
    if service.requires_staff and staff_member_id is not None:
        return StaffMode(venue_id=service.venue_id, staff_member_id=staff_member_id)
    return CapacityMode(
        venue_id=service.venue_id,
        service_id=service.id,
        capacity=service.capacity,
    )


def staff_modes(
    service: Service, staff_member_ids: Sequence[uuid.UUID]
) -> list[StaffMode]:
    return [
        StaffMode(venue_id=service.venue_id, staff_member_id=staff_id)
        for staff_id in staff_member_ids
    ]


__all__ = [
    "BookingMode",
    "CapacityMode",
    "ResourceKey",
    "SlotOccupancy",
    "StaffMode",
    "mode_for",
    "staff_modes",
]
