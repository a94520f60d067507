"""Deck endpoints."""

from __future__ import annotations

from flask import jsonify

from services.data_manager import DeckInput, DeckUpdateInput, DataManagerError
from utils.validation import json_body, optional_number, optional_string, require_string

from .base import api_bp, api_login_required, data_manager, ok


def _deck_fields(payload) -> dict:
    return {
        "deck_name": require_string(payload, "deckName"),
        "target_bracket": optional_number(payload, "targetBracket"),
        "summary": optional_string(payload, "summary"),
        "archidekt_link": optional_string(payload, "archidektLink"),
    }


@api_bp.get("/decks")
@api_login_required
def list_decks():
    decks = data_manager().get_decks()
    return jsonify({"decks": [deck.to_dict(include_games=False) for deck in decks]})


@api_bp.get("/decks/<deck_id>")
@api_login_required
def deck_detail(deck_id: str):
    deck = data_manager().get_deck_by_id(deck_id)
    if deck is None:
        raise DataManagerError("Deck not found", 404)
    return jsonify({"deck": deck.to_dict()})


@api_bp.post("/decks/append")
@api_login_required
def append_deck():
    payload = json_body()
    data_manager().append_deck(DeckInput(**_deck_fields(payload)))
    return ok()


@api_bp.post("/decks/update")
@api_login_required
def update_deck():
    payload = json_body()
    deck_id = require_string(payload, "deckId", message="Invalid deckId")
    fields = _deck_fields(payload)
    original_name = require_string(payload, "originalName")
    data_manager().update_deck(DeckUpdateInput(deck_id=deck_id, original_name=original_name, **fields))
    return ok()


@api_bp.post("/decks/delete")
@api_login_required
def delete_deck():
    payload = json_body()
    deck_id = require_string(payload, "deckId", message="Invalid deckId")
    deck_name = require_string(payload, "deckName")
    deleted_games = data_manager().delete_deck(deck_id, deck_name)
    return ok(deletedGames=deleted_games)
