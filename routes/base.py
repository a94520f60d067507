"""Shared blueprint and helpers for the JSON API."""

from __future__ import annotations

from functools import wraps
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify
from flask_limiter.util import get_remote_address
from flask_login import current_user

from extensions import login_manager
from services.data_manager import DataManager, get_data_manager
from services.session_store import get_session_data

api_bp = Blueprint("api", __name__, url_prefix="/api")

TEST_USER_KEY = "testUser"
USER_PROFILE_KEY = "userProfile"


def e2e_mode() -> bool:
    return bool(current_app.config.get("E2E_TEST_MODE"))


def current_profile() -> Dict[str, Any] | None:
    """Profile of the signed-in user, or of the fixture user in end-to-end mode."""
    if current_user.is_authenticated:
        return current_user.profile()
    if e2e_mode():
        return get_session_data(TEST_USER_KEY)
    return None


def api_login_required(view):
    """Like ``flask_login.login_required`` but honours the end-to-end test user."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_profile() is None:
            return login_manager.unauthorized()
        return view(*args, **kwargs)

    return wrapped


def limiter_key_user_or_ip() -> str:
    if current_user.is_authenticated:
        return f"user:{current_user.get_id()}"
    return get_remote_address()


def data_manager() -> DataManager:
    return get_data_manager(current_user)


def ok(**extra: Any):
    payload: Dict[str, Any] = {"ok": True}
    payload.update(extra)
    return jsonify(payload)
