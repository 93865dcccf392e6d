"""Error taxonomy shared by the booking services and the HTTP layer."""

from __future__ import annotations

from typing import Iterable


class BookingError(ValueError):
    """Base class for booking failures.

    ``kind`` is stable and machine readable; ``reason`` is the human message.
    """

    kind = "error"

    def __init__(self, reason: str, *, errors: Iterable[str] | None = None) -> None:
        self.errors = list(errors) if errors else [reason]
        self.reason = reason
        super().__init__(reason)


class ValidationError(BookingError):
    kind = "validation"


class NotFoundError(BookingError):
    kind = "not_found"


class ConflictError(BookingError):
    kind = "conflict"


class PolicyError(BookingError):
    kind = "policy"


class StateError(BookingError):
    kind = "state"


class StorageError(BookingError):
    kind = "storage"


__all__ = [
    "BookingError",
    "ConflictError",
    "NotFoundError",
    "PolicyError",
    "StateError",
    "StorageError",
    "ValidationError",
]
