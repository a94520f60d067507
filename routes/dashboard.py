"""Dashboard statistics endpoint."""

from __future__ import annotations

from flask import jsonify

from .base import api_bp, api_login_required, data_manager


@api_bp.get("/dashboard")
@api_login_required
def dashboard():
    """Account-wide stats plus one row per deck, most played first."""
    return jsonify(data_manager().get_dashboard_stats().to_dict())
