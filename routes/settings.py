"""Backend selection and spreadsheet management endpoints."""

from __future__ import annotations

from flask import current_app, jsonify, request

from extensions import limiter
from services import google_sheets
from services.data_manager import DATABASE_SHEET_KEY
from services.session_store import get_session_data, set_session_data
from utils.validation import ValidationError, json_body, optional_string, require_string

from .base import (
    USER_PROFILE_KEY,
    api_bp,
    api_login_required,
    current_profile,
    e2e_mode,
    limiter_key_user_or_ip,
    ok,
)


def _backend_name() -> str:
    if e2e_mode():
        return "fixtures"
    return current_app.config.get("DATA_BACKEND", "db")


@api_bp.get("/settings")
@api_login_required
def settings():
    profile = current_profile()
    set_session_data(USER_PROFILE_KEY, profile)
    return jsonify(
        {
            "backend": _backend_name(),
            "user": profile,
            "databaseSheetId": get_session_data(DATABASE_SHEET_KEY),
        }
    )


@api_bp.post("/settings/set-database")
@api_login_required
def set_database():
    payload = json_body()
    spreadsheet_id = require_string(payload, "spreadsheetId")
    set_session_data(DATABASE_SHEET_KEY, spreadsheet_id)
    current_app.logger.info("Selected spreadsheet database")
    return ok()


@api_bp.get("/drive/list-spreadsheets")
@api_login_required
def list_spreadsheets():
    return jsonify(google_sheets.list_spreadsheets())


@api_bp.get("/sheets/read")
@api_login_required
def read_sheet():
    spreadsheet_id = (request.args.get("spreadsheetId") or "").strip()
    if not spreadsheet_id:
        raise ValidationError("Missing spreadsheetId query parameter", field="spreadsheetId")
    range_name = request.args.get("range") or "Sheet1!A1:D10"
    return jsonify({"values": google_sheets.read_values(spreadsheet_id, range_name)})


def _share_with() -> str | None:
    payload = json_body()
    share_with = optional_string(payload, "shareWith")
    if share_with:
        return share_with
    profile = current_profile() or {}
    return profile.get("email")


@api_bp.post("/sheets/create")
@api_login_required
@limiter.limit("10 per hour", key_func=limiter_key_user_or_ip)
def create_sheet():
    return jsonify(google_sheets.create_database(share_with=_share_with()))


@api_bp.post("/sheets/create-sample")
@api_login_required
@limiter.limit("5 per hour", key_func=limiter_key_user_or_ip)
def create_sample_sheet():
    return jsonify(google_sheets.create_sample_database(share_with=_share_with()))
