"""Venue-local wall clock helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.models.venue import Venue
from app.services.time_slots import to_minutes


def resolve_timezone(venue: Venue) -> ZoneInfo:
    """Return the venue timezone or UTC when unknown."""
    try:
        return ZoneInfo(venue.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):  # pragma: no cover - depends on system tz database
        return ZoneInfo("UTC")


def normalize_datetime(candidate: datetime) -> datetime:
    if candidate.tzinfo is None:
        return candidate.replace(tzinfo=UTC)
    return candidate.astimezone(UTC)


def local_now(tz: ZoneInfo, now: datetime | None = None) -> datetime:
    return normalize_datetime(now or datetime.now(UTC)).astimezone(tz)


def day_of_week(target_date: date) -> int:
    """Weekday index counted from Sunday = 0."""
    return target_date.isoweekday() % 7


def local_datetime(target_date: date, clock: str, tz: ZoneInfo) -> datetime | None:
    """Combine a booking date and ``HH:MM`` into an aware local datetime."""
    minutes = to_minutes(clock)
    if minutes is None:
        return None
    hours, mins = divmod(minutes, 60)
    return datetime.combine(target_date, time(hours, mins), tzinfo=tz)


def hours_until(
    target_date: date, clock: str, tz: ZoneInfo, now: datetime | None = None
) -> float | None:
    moment = local_datetime(target_date, clock, tz)
    if moment is None:
        return None
    return (moment - local_now(tz, now)).total_seconds() / 3600
