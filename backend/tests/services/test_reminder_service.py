"""Service-level tests for the reminder sweep."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from app.db.session import get_sessionmaker
from app.models import Booking, BookingStatus
from app.services import notification_service, reminder_service

pytestmark = pytest.mark.asyncio

BOOKING_DAY = date(2030, 1, 14)
SWEEP_AT = datetime(2030, 1, 13, 10, 0, tzinfo=UTC)


async def _seed(session, setup, *, start_time: str, status: BookingStatus) -> Booking:
    booking = Booking(
        venue_id=setup["venue_id"],
        service_id=setup["dinner_id"],
        customer_name="Riley Guest",
        customer_email="riley@example.com",
        booking_date=BOOKING_DAY,
        start_time=start_time,
        end_time=f"{int(start_time[:2]) + 1:02d}:00",
        status=status,
    )
    session.add(booking)
    await session.commit()
    return booking


async def test_due_confirmed_bookings_get_one_reminder(
    booking_setup: dict[str, object], db_url: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    delivered: list[str] = []

    def _fake_send(booking: Booking) -> bool:
        delivered.append(booking.customer_email)
        return True

    monkeypatch.setattr(notification_service, "send_reminder", _fake_send)

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        due = await _seed(
            session, booking_setup, start_time="10:00", status=BookingStatus.CONFIRMED
        )
        await _seed(
            session, booking_setup, start_time="11:00", status=BookingStatus.PENDING
        )
        await _seed(
            session, booking_setup, start_time="16:00", status=BookingStatus.CONFIRMED
        )

        found = await reminder_service.find_bookings_due_for_reminder(
            session, now=SWEEP_AT
        )
        assert [booking.id for booking in found] == [due.id]

        sent = await reminder_service.send_due_reminders(session, now=SWEEP_AT)
        again = await reminder_service.send_due_reminders(session, now=SWEEP_AT)

    assert sent == 1
    assert again == 0
    assert delivered == ["riley@example.com"]
    assert due.reminder_sent_at is not None


async def test_failed_delivery_is_retried_next_sweep(
    booking_setup: dict[str, object], db_url: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(notification_service, "send_reminder", lambda booking: False)

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        booking = await _seed(
            session, booking_setup, start_time="10:00", status=BookingStatus.CONFIRMED
        )
        sent = await reminder_service.send_due_reminders(session, now=SWEEP_AT)
        pending = await reminder_service.find_bookings_due_for_reminder(
            session, now=SWEEP_AT
        )

    assert sent == 0
    assert booking.reminder_sent_at is None
    assert [item.id for item in pending] == [booking.id]


async def test_reminder_email_links_to_manage_page(
    booking_setup: dict[str, object], db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        booking = await _seed(
            session, booking_setup, start_time="10:00", status=BookingStatus.CONFIRMED
        )
        await session.refresh(booking, attribute_names=["venue", "service", "staff_member"])
        subject, body = notification_service.build_reminder_email(booking)

    assert subject == "Reminder: your appointment at Harbor Table"
    assert f"/bookings/manage/{booking.booking_token}" in body
    assert "Time: 10:00 - 11:00" in body
