"""End-to-end test hooks; every route here 404s unless ``E2E_TEST_MODE`` is on."""

from __future__ import annotations

from flask import abort

from services.data_manager import DATABASE_SHEET_KEY
from services.session_store import clear_session_data, set_session_data
from utils.validation import json_body

from .base import TEST_USER_KEY, USER_PROFILE_KEY, api_bp, e2e_mode, ok

E2E_TEST_USER = {
    "id": "e2e-user",
    "email": "e2e@example.com",
    "name": "E2E User",
    "picture": None,
}


@api_bp.post("/test/session")
def test_session():
    """Toggle the fixture user and the selected database for this browser session."""
    if not e2e_mode():
        abort(404)

    payload = json_body()
    authenticated = payload.get("authenticated")
    if authenticated is True:
        set_session_data(TEST_USER_KEY, dict(E2E_TEST_USER))
        set_session_data(USER_PROFILE_KEY, dict(E2E_TEST_USER))
    elif authenticated is False:
        clear_session_data(TEST_USER_KEY)
        clear_session_data(USER_PROFILE_KEY)

    if "databaseId" in payload:
        set_session_data(DATABASE_SHEET_KEY, payload.get("databaseId"))
    return ok()
