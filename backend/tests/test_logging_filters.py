"""Sensitive log scrubbing tests."""
from __future__ import annotations

import logging

from app.security.logging_filters import SensitiveFilter, redact


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_manage_paths_and_tokens_are_redacted() -> None:
    assert (
        redact('GET /api/v1/bookings/manage/Zx9_abc-123 "booking_token": "Zx9_abc-123"')
        == 'GET /api/v1/bookings/manage/**REDACTED** "**REDACTED**'
    )
    assert redact("Authorization: Bearer abc.def") == "**REDACTED**"


def test_filter_scrubs_message_and_arguments() -> None:
    record = _record(
        '%s "%s %s HTTP/1.1" %s',
        "127.0.0.1:5000",
        "PATCH",
        "/api/v1/bookings/manage/secret-token/cancel",
        200,
    )

    assert SensitiveFilter().filter(record) is True
    assert record.getMessage() == (
        '127.0.0.1:5000 "PATCH /api/v1/bookings/manage/**REDACTED**/cancel HTTP/1.1" 200'
    )
