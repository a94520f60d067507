"""Archidekt and Moxfield deck links: parsing, upstream fetches and commander extraction."""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import requests
from flask import current_app, has_app_context

from extensions import cache

__all__ = [
    "DeckLinkError",
    "ParsedDeckLink",
    "DeckLoadResult",
    "parse_url",
    "fetch_archidekt_deck",
    "fetch_moxfield_deck",
    "extract_archidekt_commanders",
    "extract_moxfield_commanders",
    "load_deck_summary",
]

_LOG = logging.getLogger(__name__)

_ARCHIDEKT_RE = re.compile(r"^https?://(?:www\.)?archidekt\.com/decks/(\d+)", re.IGNORECASE)
_MOXFIELD_RE = re.compile(r"^https?://(?:www\.)?moxfield\.com/decks/([A-Za-z0-9_-]+)", re.IGNORECASE)

ARCHIDEKT_API = "https://archidekt.com/api/decks/{id}/"
MOXFIELD_API = "https://api.moxfield.com/v2/decks/all/{id}"

_MOXFIELD_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "edh-dashboard/1.0",
    "Referer": "https://moxfield.com/",
    "Origin": "https://moxfield.com",
}
_MOXFIELD_BOARDS = ("mainboard", "sideboard", "maybeboard", "commanderboard", "commanders")
_IMAGE_SIZES = ("art_crop", "border_crop", "normal", "large", "small")
_UNTITLED = "Untitled Deck"


class DeckLinkError(RuntimeError):
    """Raised when a deck provider cannot be reached or answers with an error."""

    def __init__(self, message: str, status: int = 502):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass(frozen=True)
class ParsedDeckLink:
    url: Optional[str] = None
    provider: Optional[str] = None
    id: Optional[str] = None
    label: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DeckLoadResult:
    name: str
    image: str = ""
    commanders: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "image": self.image, "commanders": list(self.commanders)}


def parse_url(url: Optional[str]) -> ParsedDeckLink:
    """Recognise an Archidekt or Moxfield deck URL.

    Blank values and the ``-`` placeholder parse to an empty link with no error.
    """
    normalized = (url or "").strip()
    if not normalized or normalized == "-":
        return ParsedDeckLink()

    match = _ARCHIDEKT_RE.match(normalized)
    if match:
        return ParsedDeckLink(url=normalized, provider="archidekt", id=match.group(1), label="Archidekt")

    match = _MOXFIELD_RE.match(normalized)
    if match:
        return ParsedDeckLink(url=normalized, provider="moxfield", id=match.group(1), label="Moxfield")

    return ParsedDeckLink(url=normalized, error="Unsupported deck link.")


def _timeout() -> float:
    if has_app_context():
        return float(current_app.config.get("DECK_LINK_TIMEOUT", 10))
    return 10.0


def _get_json(url: str, provider: str, headers: Optional[Dict[str, str]] = None) -> Any:
    try:
        resp = requests.get(url, headers=headers, timeout=_timeout())
    except requests.RequestException as exc:
        _LOG.warning("Deck provider unreachable", extra={"provider": provider, "error": str(exc)})
        raise DeckLinkError(f"Failed to load deck from {provider}", 502) from exc

    if not resp.ok:
        _LOG.warning(
            "Deck provider returned an error",
            extra={"provider": provider, "status": resp.status_code, "body": resp.text[:200]},
        )
        raise DeckLinkError(f"Failed to load deck from {provider}", resp.status_code)

    try:
        return resp.json()
    except ValueError as exc:
        raise DeckLinkError(f"Invalid response from {provider}", 502) from exc


@cache.memoize(timeout=600)
def fetch_archidekt_deck(deck_id: str) -> Any:
    return _get_json(ARCHIDEKT_API.format(id=deck_id), "Archidekt")


@cache.memoize(timeout=600)
def fetch_moxfield_deck(deck_id: str) -> Any:
    return _get_json(MOXFIELD_API.format(id=deck_id), "Moxfield", headers=_MOXFIELD_HEADERS)


def _dedupe(names: List[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for name in names:
        seen.setdefault(name, None)
    return list(seen)


def _dig(value: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def extract_archidekt_commanders(deck: Any) -> List[str]:
    """Card names in the first category whose name mentions "commander"."""
    categories = deck.get("categories") if isinstance(deck, dict) else None
    if not isinstance(categories, list):
        return []

    category = next(
        (
            c
            for c in categories
            if isinstance(c, dict) and isinstance(c.get("name"), str) and "commander" in c["name"].lower()
        ),
        None,
    )
    if category is None or not isinstance(category.get("cards"), list):
        return []

    names = []
    for entry in category["cards"]:
        name = _dig(entry, "card", "oracleCard", "name") or _dig(entry, "card", "oracle_card", "name")
        if name:
            names.append(name)
    return _dedupe(names)


def _as_list(value: Any) -> list:
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return list(value.values())
    return []


def _card_image(card: Any) -> str:
    if not isinstance(card, dict):
        return ""
    image_uris = None
    for path in (
        ("image_uris",),
        ("imageUris",),
        ("card", "image_uris"),
        ("card", "imageUris"),
        ("scryfallCard", "image_uris"),
        ("scryfallCard", "imageUris"),
        ("oracleCard", "image_uris"),
        ("oracleCard", "imageUris"),
    ):
        image_uris = _dig(card, *path)
        if image_uris:
            break

    if isinstance(image_uris, str):
        return image_uris
    if isinstance(image_uris, dict):
        for size in _IMAGE_SIZES:
            if image_uris.get(size):
                return image_uris[size]

    scryfall_id = (
        card.get("scryfall_id")
        or card.get("scryfallId")
        or _dig(card, "scryfallCard", "id")
        or _dig(card, "scryfallCard", "scryfall_id")
    )
    if isinstance(scryfall_id, str) and len(scryfall_id) >= 2:
        return f"https://cards.scryfall.io/art_crop/front/{scryfall_id[0]}/{scryfall_id[1]}/{scryfall_id}.jpg"
    return ""


def _card_name(card: Any) -> Optional[str]:
    if not isinstance(card, dict):
        return None
    return (
        card.get("name")
        or _dig(card, "card", "name")
        or _dig(card, "oracleCard", "name")
        or _dig(card, "oracle_card", "name")
        or _dig(card, "scryfallCard", "name")
    )


def extract_moxfield_commanders(deck: Any) -> Dict[str, Any]:
    """Commander names plus the first usable card image, as ``{names, image}``."""
    if not isinstance(deck, dict):
        return {"names": [], "image": ""}

    entries: list = []
    for key in ("commanders", "commander", "commanderCards", "commanderCard"):
        entries.extend(_as_list(deck.get(key)))

    for board in _MOXFIELD_BOARDS:
        for entry in _as_list(deck.get(board)):
            if not isinstance(entry, dict):
                continue
            board_type = entry.get("boardType") or entry.get("board") or entry.get("type") or entry.get("section") or ""
            if entry.get("isCommander") is True or (
                isinstance(board_type, str) and "commander" in board_type.lower()
            ):
                entries.append(entry)

    names: List[str] = []
    image = ""
    for entry in entries:
        card = entry.get("card", entry) if isinstance(entry, dict) else entry
        name = _card_name(card)
        if name:
            names.append(name)
        if not image:
            image = _card_image(card)
    return {"names": _dedupe(names), "image": image}


def load_deck_summary(link: ParsedDeckLink) -> DeckLoadResult:
    """Fetch a parsed link's deck and reduce it to name, image and commanders."""
    if not link.provider or not link.id:
        raise DeckLinkError("Missing deck provider or id.", 400)

    if link.provider == "archidekt":
        data = fetch_archidekt_deck(link.id)
        return DeckLoadResult(
            name=(data or {}).get("name") or _UNTITLED,
            image=(data or {}).get("featured") or "",
            commanders=extract_archidekt_commanders(data),
        )
    if link.provider == "moxfield":
        data = fetch_moxfield_deck(link.id)
        commanders = extract_moxfield_commanders(data)
        return DeckLoadResult(
            name=(data or {}).get("name") or _UNTITLED,
            image=commanders["image"],
            commanders=commanders["names"],
        )
    raise DeckLinkError("Unsupported deck provider.", 400)
