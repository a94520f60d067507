"""Same-origin proxies for Archidekt and Moxfield deck data."""

from __future__ import annotations

import re

from flask import jsonify, request

from extensions import limiter
from services.deck_links import (
    DeckLinkError,
    fetch_archidekt_deck,
    fetch_moxfield_deck,
    load_deck_summary,
    parse_url,
)
from utils.validation import ValidationError

from .base import api_bp, api_login_required, limiter_key_user_or_ip

_ARCHIDEKT_ID = re.compile(r"^\d+$")
_MOXFIELD_ID = re.compile(r"^[A-Za-z0-9_-]+$")

deck_link_limit = limiter.limit("60 per minute", key_func=limiter_key_user_or_ip)


@api_bp.get("/archidekt/<deck_id>")
@api_login_required
@deck_link_limit
def archidekt_deck(deck_id: str):
    if not _ARCHIDEKT_ID.match(deck_id):
        raise ValidationError("Invalid deck id", field="id", invalid=[deck_id])
    return jsonify(fetch_archidekt_deck(deck_id))


@api_bp.get("/moxfield/<deck_id>")
@api_login_required
@deck_link_limit
def moxfield_deck(deck_id: str):
    if not _MOXFIELD_ID.match(deck_id):
        raise ValidationError("Invalid deck id", field="id", invalid=[deck_id])
    return jsonify(fetch_moxfield_deck(deck_id))


@api_bp.get("/deck-links/preview")
@api_login_required
@deck_link_limit
def preview_deck_link():
    """Parse ``?url=`` and, when it is a supported link, summarize the deck."""
    link = parse_url(request.args.get("url"))
    payload = {"link": link.to_dict(), "deck": None, "error": link.error}
    if link.provider and link.id:
        try:
            payload["deck"] = load_deck_summary(link).to_dict()
        except DeckLinkError as exc:
            payload["error"] = f"Failed to load deck ({exc.status})."
    return jsonify(payload)
