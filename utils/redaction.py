"""Scrub log context before it is written."""

from __future__ import annotations

import logging
from typing import Any

REDACT_KEYS = ("token", "secret", "authorization", "cookie", "password", "code")
MAX_STRING_LENGTH = 200
REDACTED = "[redacted]"

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619

# LogRecord attributes that are never user-supplied context.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def session_hash(session_id: str | None) -> str | None:
    """Short stable FNV-1a fingerprint of a session id, safe to log."""
    if not session_id:
        return None
    value = _FNV_OFFSET
    for char in session_id:
        value ^= ord(char)
        value = (value * _FNV_PRIME) & 0xFFFFFFFF
    return f"s_{value:x}"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in REDACT_KEYS)


def sanitize(value: Any) -> Any:
    if isinstance(value, BaseException):
        return {"name": type(value).__name__, "message": str(value)}
    if isinstance(value, str):
        return value[:MAX_STRING_LENGTH] + "…" if len(value) > MAX_STRING_LENGTH else value
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value]
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(str(key)) else sanitize(item)
            for key, item in value.items()
        }
    return value


def context_fields(record: logging.LogRecord) -> dict:
    """The ``extra=`` fields attached to a record."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and key not in {"request_id", "path", "method"}
    }


class RedactingFilter(logging.Filter):
    """Mask sensitive ``extra=`` fields and truncate long strings in place."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in context_fields(record).items():
            setattr(record, key, REDACTED if _is_sensitive(key) else sanitize(value))
        return True
