"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|access_token\"\s*:\s*\"[^\"]+\""
    r"|password\"\s*:\s*\"[^\"]+\""
    r"|booking_token\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)
_MANAGE_PATH_PATTERN = re.compile(r"(/manage/)[A-Za-z0-9_-]+")

_REDACTED = "**REDACTED**"


def redact(value: str) -> str:
    """Return ``value`` with secrets and manage tokens masked."""
    value = _SENSITIVE_PATTERN.sub(_REDACTED, value)
    return _MANAGE_PATH_PATTERN.sub(rf"\g<1>{_REDACTED}", value)


class SensitiveFilter(logging.Filter):
    """Replace sensitive tokens in log messages with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


__all__ = ["SensitiveFilter", "redact"]
