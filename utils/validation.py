"""Input validation helpers for JSON request bodies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping

from flask import current_app, has_app_context, request

from services.domain import Number
from services.sheet_rows import to_number_or_none


@dataclass
class ValidationError(ValueError):
    message: str
    field: str | None = None
    invalid: List[Any] | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


def log_validation_error(err: ValidationError, *, context: str | None = None) -> None:
    if not has_app_context():
        return
    suffix = f" ({context})" if context else ""
    current_app.logger.warning(
        "Validation error%s: field=%s invalid=%s message=%s",
        suffix,
        err.field,
        err.invalid,
        err.message,
    )


def require_string(payload: Mapping[str, Any], field: str, *, message: str | None = None) -> str:
    """Return a non-empty string field or raise ``ValidationError``."""
    value = payload.get(field)
    if not isinstance(value, str) or not value:
        raise ValidationError(message or f"Missing {field}", field=field, invalid=[value])
    return value


def optional_string(payload: Mapping[str, Any], field: str) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field}", field=field, invalid=[value])
    return value


def optional_number(payload: Mapping[str, Any], field: str) -> Number | None:
    """Coerce an optional numeric field; blank values become ``None``."""
    value = payload.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}", field=field, invalid=[value])
    number = to_number_or_none(value)
    if number is None:
        raise ValidationError(f"Invalid {field}", field=field, invalid=[value])
    return number


def json_body() -> Mapping[str, Any]:
    """The request's JSON object body; anything else is a validation error."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.", field="body")
    return payload
