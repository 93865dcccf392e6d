"""Wall-clock time arithmetic and slot tiling for availability windows."""

from __future__ import annotations

import re
from dataclasses import dataclass

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_STRICT_HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


@dataclass(slots=True, frozen=True)
class Slot:
    """Half-open ``[start_time, end_time)`` interval as ``HH:MM`` strings."""

    start_time: str
    end_time: str


def to_minutes(value: str | None) -> int | None:
    """Return minutes since midnight, or ``None`` when ``value`` is malformed."""
    if not isinstance(value, str):
        return None
    match = _CLOCK_PATTERN.match(value)
    if match is None:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def from_minutes(total: int) -> str:
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def is_valid_hhmm(value: str | None) -> bool:
    return isinstance(value, str) and _STRICT_HHMM_PATTERN.match(value) is not None


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""
    bounds = [to_minutes(value) for value in (a_start, a_end, b_start, b_end)]
    if any(bound is None for bound in bounds):
        return False
    s1, e1, s2, e2 = bounds
    return s1 < e2 and s2 < e1


def within(start: str, end: str, window_start: str, window_end: str) -> bool:
    """Return True when ``[start, end)`` lies entirely inside the window."""
    bounds = [to_minutes(value) for value in (start, end, window_start, window_end)]
    if any(bound is None for bound in bounds):
        return False
    s, e, ws, we = bounds
    return s >= ws and e <= we


def add_minutes(value: str, minutes: int) -> str | None:
    """Shift ``value`` forward, or ``None`` if the result leaves the day."""
    base = to_minutes(value)
    if base is None:
        return None
    total = base + minutes
    if total > 24 * 60 - 1:
        return None
    return from_minutes(total)


def generate_slots(window_start: str, window_end: str, duration: int) -> list[Slot]:
    """Tile ``duration``-minute slots back to back across the window."""
    start = to_minutes(window_start)
    end = to_minutes(window_end)
    if start is None or end is None or duration <= 0:
        return []
    slots: list[Slot] = []
    cursor = start
    while cursor + duration <= end:
        slots.append(Slot(from_minutes(cursor), from_minutes(cursor + duration)))
        cursor += duration
    return slots


__all__ = [
    "Slot",
    "add_minutes",
    "from_minutes",
    "generate_slots",
    "is_valid_hhmm",
    "overlaps",
    "to_minutes",
    "within",
]
