"""Game endpoints."""

from __future__ import annotations

from flask import jsonify

from services.data_manager import GameInput, GameUpdateInput
from utils.validation import json_body, optional_number, optional_string, require_string

from .base import api_bp, api_login_required, data_manager, ok

_NUMERIC_FIELDS = (
    ("winner", "winner"),
    ("fun", "fun"),
    ("p2_fun", "p2Fun"),
    ("p3_fun", "p3Fun"),
    ("p4_fun", "p4Fun"),
    ("est_bracket", "estBracket"),
)


def _game_fields(payload) -> dict:
    fields = {"deck_name": require_string(payload, "deckName")}
    for attr, key in _NUMERIC_FIELDS:
        fields[attr] = optional_number(payload, key)
    fields["notes"] = optional_string(payload, "notes")
    return fields


@api_bp.get("/games")
@api_login_required
def list_games():
    games = data_manager().get_games()
    return jsonify({"games": [game.to_dict() for game in games]})


@api_bp.post("/games/append")
@api_login_required
def append_game():
    data_manager().append_game(GameInput(**_game_fields(json_body())))
    return ok()


@api_bp.post("/games/update")
@api_login_required
def update_game():
    payload = json_body()
    game_id = require_string(payload, "gameId", message="Invalid gameId")
    data_manager().update_game(GameUpdateInput(game_id=game_id, **_game_fields(payload)))
    return ok()


@api_bp.post("/games/delete")
@api_login_required
def delete_game():
    payload = json_body()
    game_id = require_string(payload, "gameId", message="Invalid gameId")
    data_manager().delete_game(game_id)
    return ok()
