"""Centralized JSON error handlers."""

from __future__ import annotations

from typing import Callable

from flask import jsonify

from services.data_manager import DataManagerError
from services.deck_links import DeckLinkError
from services.google_sheets import SheetsError
from utils.validation import ValidationError, log_validation_error

_STATUS_CODES = {
    400: "bad_request",
    401: "authentication_required",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    429: "rate_limited",
    503: "service_unavailable",
}


def error_code(status: int) -> str:
    if status in _STATUS_CODES:
        return _STATUS_CODES[status]
    if status in (502, 504):
        return "upstream_error"
    return "request_failed" if status < 500 else "server_error"


def _json_error(code: str, detail: str, status: int):
    payload = {"error": code, "detail": detail}
    return jsonify(payload), status


def register_error_handlers(app) -> Callable[[], None]:
    """Register error handlers on the Flask app."""

    @app.errorhandler(ValidationError)
    def validation_failed(err: ValidationError):
        log_validation_error(err, context="api")
        return _json_error("bad_request", err.message, 400)

    @app.errorhandler(DataManagerError)
    def data_manager_failed(err: DataManagerError):
        if err.status >= 500:
            app.logger.error("Data manager error: %s", err.message)
        return _json_error(error_code(err.status), err.message, err.status)

    @app.errorhandler(SheetsError)
    def sheets_failed(err: SheetsError):
        return _json_error(error_code(err.status), err.message, err.status)

    @app.errorhandler(DeckLinkError)
    def deck_link_failed(err: DeckLinkError):
        return _json_error(error_code(err.status), err.message, err.status)

    @app.errorhandler(404)
    def not_found(err):  # type: ignore[no-redef]
        return _json_error("not_found", "Resource not found.", 404)

    @app.errorhandler(405)
    def method_not_allowed(err):  # type: ignore[no-redef]
        return _json_error("method_not_allowed", "Method not allowed.", 405)

    @app.errorhandler(429)
    def too_many_requests(err):  # type: ignore[no-redef]
        return _json_error("rate_limited", "Too many requests.", 429)

    @app.errorhandler(500)
    def internal(err):  # type: ignore[no-redef]
        from extensions import db

        db.session.rollback()
        return _json_error("server_error", "A server error occurred.", 500)

    def _noop() -> None:
        return None

    return _noop
