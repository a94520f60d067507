from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db
from utils.time import utcnow


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(120), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    api_token_hash = db.Column(db.String(64), nullable=True, unique=True)
    api_token_hint = db.Column(db.String(12), nullable=True)
    api_token_created_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    decks = db.relationship(
        "Deck",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="dynamic",
    )

    def get_id(self) -> str:
        return str(self.id)

    def profile(self) -> dict:
        """Cached in the session store and returned by the settings endpoint."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.display_name or self.username,
            "picture": self.avatar_url,
        }

    # Password helpers -----------------------------------------------------
    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password.strip())

    def check_password(self, raw_password: str | None) -> bool:
        if not raw_password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, raw_password.strip())

    # API token helpers ----------------------------------------------------
    def issue_api_token(self) -> str:
        """
        Create a new API token, returning the plaintext value exactly once.
        The hashed token is persisted; callers must display/store the plaintext safely.
        """
        token = secrets.token_urlsafe(32)
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        self.api_token_hash = digest
        self.api_token_hint = token[-8:]
        self.api_token_created_at = utcnow()
        return token

    @classmethod
    def verify_api_token(cls, token: str | None) -> Optional["User"]:
        if not token:
            return None
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        candidate = cls.query.filter_by(api_token_hash=digest).first()
        if candidate and candidate.api_token_hash:
            if hmac.compare_digest(candidate.api_token_hash, digest):
                return candidate
        return None
