"""Factory helpers for quickly seeding the test database."""
from __future__ import annotations

import itertools
from datetime import datetime, timedelta
from typing import Optional

from extensions import db
from models import Deck, Game, User

_deck_counter = itertools.count(1)
_game_clock = itertools.count(1)
_EPOCH = datetime(2024, 1, 1, 12, 0, 0)


def create_deck(
    user: User,
    *,
    name: Optional[str] = None,
    target_bracket: Optional[float] = None,
    summary: Optional[str] = None,
    archidekt_link: Optional[str] = None,
) -> Deck:
    deck = Deck(
        user_id=user.id,
        name=name or f"Deck {_next_value(_deck_counter)}",
        target_bracket=target_bracket,
        summary=summary,
        archidekt_link=archidekt_link,
    )
    db.session.add(deck)
    db.session.flush()
    return deck


def create_game(
    deck: Deck,
    *,
    winner: Optional[int] = None,
    fun: Optional[float] = None,
    p2_fun: Optional[float] = None,
    p3_fun: Optional[float] = None,
    p4_fun: Optional[float] = None,
    notes: Optional[str] = None,
    est_bracket: Optional[float] = None,
) -> Game:
    """Games get strictly increasing ``created_at`` so list order is stable."""
    game = Game(
        user_id=deck.user_id,
        deck_id=deck.id,
        winner=winner,
        fun=fun,
        p2_fun=p2_fun,
        p3_fun=p3_fun,
        p4_fun=p4_fun,
        notes=notes,
        est_bracket=est_bracket,
        created_at=_EPOCH + timedelta(seconds=_next_value(_game_clock)),
    )
    db.session.add(game)
    db.session.flush()
    return game


def _next_value(counter: itertools.count) -> int:
    return next(counter)


__all__ = ["create_deck", "create_game"]
