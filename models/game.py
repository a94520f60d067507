"""Recorded Commander games.

``winner`` is the winning seat: 1 is the deck owner, 2-4 are the other seats.
A legacy ``0`` marks a loss without a seat.
"""

from __future__ import annotations

import uuid

from extensions import db
from utils.time import utcnow


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    deck_id = db.Column(
        db.String(36),
        db.ForeignKey("decks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    winner = db.Column(db.Integer, nullable=True)
    fun = db.Column(db.Float, nullable=True)
    p2_fun = db.Column(db.Float, nullable=True)
    p3_fun = db.Column(db.Float, nullable=True)
    p4_fun = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    est_bracket = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    deck = db.relationship("Deck", back_populates="games")
