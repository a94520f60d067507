"""Local account authentication endpoints."""

from __future__ import annotations

import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func

from extensions import db, limiter
from models import User
from services.session_store import drop_session, session_id, set_session_data
from utils.redaction import session_hash
from utils.time import utcnow
from utils.validation import ValidationError, json_body, require_string

from .base import USER_PROFILE_KEY, api_bp, ok

MIN_PASSWORD_LENGTH = 8
MAX_USERNAME_LENGTH = 80

_LOG = logging.getLogger(__name__)


@api_bp.post("/auth/register")
@limiter.limit("10 per hour")
def register():
    payload = json_body()
    email = require_string(payload, "email").strip().lower()
    username = require_string(payload, "username").strip().lower()
    password = require_string(payload, "password").strip()

    if not email or not username:
        raise ValidationError("Email and username are required.", field="email")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError("Username is too long.", field="username", invalid=[username])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
            field="password",
        )
    if User.query.filter(func.lower(User.email) == email).first():
        return jsonify({"error": "conflict", "detail": "That email is already registered."}), 409
    if User.query.filter(func.lower(User.username) == username).first():
        return jsonify({"error": "conflict", "detail": "That username is already taken."}), 409

    user = User(email=email, username=username, display_name=payload.get("displayName") or None)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    _LOG.info("User registered", extra={"user_id": user.id})
    return jsonify({"ok": True, "user": user.profile()}), 201


@api_bp.post("/auth/login")
@limiter.limit("20 per minute")
def login():
    payload = json_body()
    identifier = require_string(payload, "identifier").strip().lower()
    password = payload.get("password") or ""

    user = User.query.filter(func.lower(User.email) == identifier).first()
    if not user:
        user = User.query.filter(func.lower(User.username) == identifier).first()
    if not user or not user.check_password(password):
        return jsonify({"error": "invalid_credentials", "detail": "Invalid email/username or password."}), 401

    login_user(user, remember=False, fresh=True)
    user.last_login_at = utcnow()
    db.session.commit()
    set_session_data(USER_PROFILE_KEY, user.profile())
    _LOG.info("User logged in", extra={"user_id": user.id, "session": session_hash(session_id())})
    return ok(user=user.profile())


@api_bp.post("/auth/logout")
@login_required
def logout():
    _LOG.info("User logged out", extra={"user_id": current_user.id})
    drop_session()
    logout_user()
    return ok()


@api_bp.post("/auth/token")
@login_required
def issue_token():
    """Issue a bearer API token; the plaintext is returned exactly once."""
    token = current_user.issue_api_token()
    db.session.commit()
    return ok(token=token, hint=current_user.api_token_hint)


@api_bp.get("/me")
@login_required
def me():
    return jsonify({"user": current_user.profile()})
