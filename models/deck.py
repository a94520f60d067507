"""Commander decks owned by a user."""

from __future__ import annotations

import uuid

from extensions import db
from utils.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Deck(db.Model):
    __tablename__ = "decks"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_decks_user_name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    target_bracket = db.Column(db.Float, nullable=True)
    summary = db.Column(db.Text, nullable=True)
    archidekt_link = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="decks")
    games = db.relationship(
        "Game",
        back_populates="deck",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Game.created_at",
    )
