"""Service-level tests for slot listings and booking request validation."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from app.core.errors import NotFoundError
from app.db.session import get_sessionmaker
from app.models import AvailabilityRule, Booking, BookingStatus, Service, Venue
from app.services import availability_service

pytestmark = pytest.mark.asyncio

NOW = datetime(2030, 1, 7, 8, 0, tzinfo=UTC)
BOOKING_DAY = date(2030, 1, 14)


async def _add_booking(session, setup, **overrides) -> Booking:
    values = {
        "venue_id": setup["venue_id"],
        "service_id": setup["dinner_id"],
        "customer_name": "Riley Guest",
        "customer_email": "riley@example.com",
        "booking_date": BOOKING_DAY,
        "start_time": "10:00",
        "end_time": "11:00",
        "party_size": 1,
        "status": BookingStatus.CONFIRMED,
    }
    values.update(overrides)
    booking = Booking(**values)
    session.add(booking)
    await session.commit()
    return booking


async def test_capacity_slots_report_remaining_seats(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _add_booking(session, booking_setup, party_size=3)

        day = await availability_service.get_available_slots(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            booking_date=BOOKING_DAY,
            now=NOW,
        )

    assert day.date == BOOKING_DAY
    assert day.day_of_week == 1
    assert [slot.start_time for slot in day.time_slots] == [
        "09:00",
        "10:00",
        "11:00",
        "12:00",
        "13:00",
        "14:00",
        "15:00",
        "16:00",
    ]
    by_start = {slot.start_time: slot for slot in day.time_slots}
    assert by_start["10:00"].remaining_capacity == 1
    assert by_start["10:00"].available
    assert by_start["09:00"].remaining_capacity == 4
    assert all(slot.staff_member_id is None for slot in day.time_slots)


async def test_capacity_slot_unavailable_for_larger_party(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _add_booking(session, booking_setup, party_size=3)
        day = await availability_service.get_available_slots(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            booking_date=BOOKING_DAY,
            party_size=2,
            now=NOW,
        )

    by_start = {slot.start_time: slot for slot in day.time_slots}
    assert not by_start["10:00"].available
    assert by_start["11:00"].available


async def test_cancelled_bookings_do_not_hold_seats(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _add_booking(
            session, booking_setup, party_size=4, status=BookingStatus.CANCELLED
        )
        day = await availability_service.get_available_slots(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            booking_date=BOOKING_DAY,
            now=NOW,
        )

    by_start = {slot.start_time: slot for slot in day.time_slots}
    assert by_start["10:00"].remaining_capacity == 4


async def test_staff_slots_follow_each_staff_calendar(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _add_booking(
            session,
            booking_setup,
            service_id=booking_setup["haircut_id"],
            staff_member_id=booking_setup["avery_id"],
            start_time="09:30",
            end_time="10:00",
        )
        day = await availability_service.get_available_slots(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["haircut_id"],
            booking_date=BOOKING_DAY,
            now=NOW,
        )

    avery_slots = [
        slot for slot in day.time_slots if slot.staff_member_id == booking_setup["avery_id"]
    ]
    jordan_slots = [
        slot for slot in day.time_slots if slot.staff_member_id == booking_setup["jordan_id"]
    ]
    assert len(avery_slots) == 6
    assert len(jordan_slots) == 8
    assert not any(
        slot.staff_member_id == booking_setup["morgan_id"] for slot in day.time_slots
    )
    busy = [slot.start_time for slot in avery_slots if not slot.available]
    assert busy == ["09:30"]
    assert all(slot.remaining_capacity is None for slot in day.time_slots)
    starts = [slot.start_time for slot in day.time_slots]
    assert starts == sorted(starts)


async def test_slots_inside_advance_window_are_hidden(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        day = await availability_service.get_available_slots(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            booking_date=BOOKING_DAY,
            now=datetime(2030, 1, 12, 10, 0, tzinfo=UTC),
        )

    assert day.time_slots[0].start_time == "10:00"
    assert len(day.time_slots) == 7


async def test_time_window_limits_slot_starts(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        day = await availability_service.get_available_slots(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            booking_date=BOOKING_DAY,
            time_window_start="12:00",
            time_window_end="14:00",
            now=NOW,
        )

    assert [slot.start_time for slot in day.time_slots] == ["12:00", "13:00", "14:00"]


async def test_unknown_venue_or_service_raises(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        with pytest.raises(NotFoundError, match="Venue not found or inactive"):
            await availability_service.get_available_slots(
                session,
                venue_id=uuid4(),
                service_id=booking_setup["dinner_id"],
                booking_date=BOOKING_DAY,
                now=NOW,
            )
        with pytest.raises(NotFoundError, match="Service not found"):
            await availability_service.get_available_slots(
                session,
                venue_id=booking_setup["venue_id"],
                service_id=uuid4(),
                booking_date=BOOKING_DAY,
                now=NOW,
            )


async def test_week_availability_covers_seven_days(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        week = await availability_service.get_week_availability(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            start_date=BOOKING_DAY,
            now=NOW,
        )

    assert [day.date for day in week] == [
        BOOKING_DAY + timedelta(days=offset) for offset in range(7)
    ]
    assert [day.day_of_week for day in week] == [1, 2, 3, 4, 5, 6, 0]
    assert all(len(day.time_slots) == 8 for day in week)


async def test_closed_day_reports_venue_closed(db_url: str, reset_database) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        venue = Venue(name="Weekday Bistro", timezone="UTC", booking_advance_hours=0)
        session.add(venue)
        await session.flush()
        service = Service(venue_id=venue.id, name="Lunch", duration_minutes=60, capacity=2)
        session.add(service)
        # Open Mondays only.
        session.add(
            AvailabilityRule(
                venue_id=venue.id, day_of_week=1, start_time="11:00", end_time="14:00"
            )
        )
        await session.commit()

        closed = await availability_service.is_slot_available(
            session,
            venue_id=venue.id,
            service_id=service.id,
            staff_member_id=None,
            booking_date=BOOKING_DAY + timedelta(days=1),
            start_time="11:00",
            end_time="12:00",
        )
        outside = await availability_service.is_slot_available(
            session,
            venue_id=venue.id,
            service_id=service.id,
            staff_member_id=None,
            booking_date=BOOKING_DAY,
            start_time="13:30",
            end_time="14:30",
        )
        open_slot = await availability_service.is_slot_available(
            session,
            venue_id=venue.id,
            service_id=service.id,
            staff_member_id=None,
            booking_date=BOOKING_DAY,
            start_time="11:00",
            end_time="12:00",
        )

    assert closed.reason == "Venue closed on this day"
    assert outside.reason == "Requested time is outside venue working hours"
    assert open_slot.available


async def test_staff_slot_checks_use_staff_hours(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        check = await availability_service.is_slot_available(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["haircut_id"],
            staff_member_id=booking_setup["avery_id"],
            booking_date=BOOKING_DAY,
            start_time="14:00",
            end_time="14:30",
        )

    assert not check.available
    assert check.reason == "Requested time is outside staff working hours"


async def test_validate_booking_request_collects_messages(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        errors = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            staff_member_id=None,
            booking_date=BOOKING_DAY,
            start_time="10:00",
            end_time="09:00",
            party_size=9,
            now=NOW,
        )

    assert errors == [
        "Party size must be between 1 and 8. For larger groups please call.",
        "End time must be after start time",
    ]


async def test_validate_booking_request_flags_past_and_short_notice(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        past = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            staff_member_id=None,
            booking_date=NOW.date() - timedelta(days=1),
            start_time="10:00",
            end_time="11:00",
            party_size=2,
            now=NOW,
        )
        short_notice = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            staff_member_id=None,
            booking_date=NOW.date() + timedelta(days=1),
            start_time="09:00",
            end_time="10:00",
            party_size=2,
            now=NOW,
        )
        bypassed = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["dinner_id"],
            staff_member_id=None,
            booking_date=NOW.date() + timedelta(days=1),
            start_time="09:00",
            end_time="10:00",
            party_size=2,
            bypass_advance_check=True,
            now=NOW,
        )

    assert "Cannot book in the past" in past
    assert short_notice == [
        "Bookings must be made at least 48 hours in advance. Only 25 hours remaining."
    ]
    assert bypassed == []


async def test_validate_booking_request_checks_staff(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        missing = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["haircut_id"],
            staff_member_id=None,
            booking_date=BOOKING_DAY,
            start_time="09:00",
            end_time="09:30",
            party_size=1,
            now=NOW,
        )
        unqualified = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["haircut_id"],
            staff_member_id=booking_setup["morgan_id"],
            booking_date=BOOKING_DAY,
            start_time="09:00",
            end_time="09:30",
            party_size=1,
            now=NOW,
        )
        qualified = await availability_service.validate_booking_request(
            session,
            venue_id=booking_setup["venue_id"],
            service_id=booking_setup["haircut_id"],
            staff_member_id=booking_setup["avery_id"],
            booking_date=BOOKING_DAY,
            start_time="09:00",
            end_time="09:30",
            party_size=1,
            now=NOW,
        )

    assert missing == ["Staff member is required for this service"]
    assert unqualified == ["Selected staff member cannot perform this service"]
    assert qualified == []
    assert await _can_perform(db_url, booking_setup)


async def _can_perform(db_url: str, setup: dict[str, object]) -> bool:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        jordan = await availability_service.can_staff_perform_service(
            session, setup["jordan_id"], setup["haircut_id"]
        )
        morgan = await availability_service.can_staff_perform_service(
            session, setup["morgan_id"], setup["haircut_id"]
        )
    return jordan and not morgan
