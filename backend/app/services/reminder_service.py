"""One-shot reminder sweep for confirmed bookings."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.models.booking import Booking, BookingStatus
from app.services import notification_service, venue_clock

logger = logging.getLogger(__name__)


async def find_bookings_due_for_reminder(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    hours: int | None = None,
) -> list[Booking]:
    """Confirmed bookings starting ``hours`` (+/- 1) from now without a reminder."""
    lead = hours if hours is not None else get_settings().reminder_hours
    current = venue_clock.normalize_datetime(now or datetime.now(UTC))
    stmt: Select[tuple[Booking]] = (
        select(Booking)
        .options(
            selectinload(Booking.venue),
            selectinload(Booking.service),
            selectinload(Booking.staff_member),
        )
        .where(
            Booking.status == BookingStatus.CONFIRMED,
            Booking.reminder_sent_at.is_(None),
            Booking.booking_date >= (current - timedelta(days=1)).date(),
            Booking.booking_date
            <= (current + timedelta(hours=lead + 1, days=1)).date(),
        )
        .order_by(Booking.booking_date, Booking.start_time)
    )
    result = await session.execute(stmt)
    due: list[Booking] = []
    for booking in result.scalars().unique().all():
        remaining = venue_clock.hours_until(
            booking.booking_date,
            booking.start_time,
            venue_clock.resolve_timezone(booking.venue),
            current,
        )
        if remaining is not None and lead - 1 <= remaining <= lead + 1:
            due.append(booking)
    return due


async def send_due_reminders(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    hours: int | None = None,
) -> int:
    """Send reminders for due bookings and stamp ``reminder_sent_at``.

    Returns the number of reminders delivered.
    """
    bookings = await find_bookings_due_for_reminder(session, now=now, hours=hours)
    if not bookings:
        return 0
    logger.info("Reminder sweep: %s booking(s) due", len(bookings))
    sent = 0
    for booking in bookings:
        delivered = await asyncio.to_thread(notification_service.send_reminder, booking)
        if not delivered:
            logger.warning("Reminder not delivered for booking %s", booking.id)
            continue
        booking.reminder_sent_at = venue_clock.normalize_datetime(
            now or datetime.now(UTC)
        )
        await session.commit()
        sent += 1
    return sent
