"""Google Sheets access through a gspread service-account client.

The spreadsheet database is two sheets, ``Decks`` and ``Games``, with the
fixed header rows from ``services.sheet_rows``. Upstream API failures surface
as ``SheetsError`` carrying the status Google answered with.
"""
from __future__ import annotations

import logging
import random
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence

import gspread
from flask import current_app, has_app_context
from google.oauth2.service_account import Credentials

from .sheet_rows import DECK_HEADERS, GAME_HEADERS

__all__ = [
    "SCOPES",
    "SAMPLE_DECKS",
    "SheetsError",
    "get_client",
    "reset_client_cache",
    "open_spreadsheet",
    "list_spreadsheets",
    "read_values",
    "validation_requests",
    "generate_sample_games",
    "create_database",
    "create_sample_database",
    "spreadsheet_url",
]

_LOG = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

DATABASE_TITLE = "EDH Deck Database"
SAMPLE_DATABASE_TITLE = "EDH Demo Database (with sample decks)"
VALIDATION_ROWS = 5000
SAMPLE_NOTE = "Testing game for analytics"

SAMPLE_DECKS: List[list] = [
    [
        "Zimone Landfall",
        3,
        "Generic simic landfall deck that cheats out big threats early via Zimone.",
        "https://archidekt.com/decks/10802991/zimone_mystery_unraveler",
    ],
    ["Alesha Soft Stax", 3, "Mardu Flicker with reanimation endgame.", "https://archidekt.com/decks/6585497/alesha"],
    [
        "Mono Black Control",
        4,
        "A mono black sacrifice creature control deck.",
        "https://archidekt.com/decks/7097897/kalitas",
    ],
    [
        "Mono Blue Aragorn",
        3,
        "Mono blue Aragorn spellslinger deck.",
        "https://archidekt.com/decks/10817644/mono_blue_aragorn",
    ],
    ["Guff Superfriends", 2, "A superfriends deck that doesn't overload on Boardwipes.", "-"],
    [
        "Havi Pod",
        3,
        "Havi pod deck that has few repeatable sac outlets and infinite combos.",
        "https://archidekt.com/decks/14300482/havi_pod",
    ],
    ["Tannuk Budget", 2, "Tannuk deck for 25 Euro.", "https://archidekt.com/decks/15136922/tannuk"],
    ["Sproofus Aggro", 4, "An agressive mono green deck.", "https://archidekt.com/decks/14612865/shroofus"],
    ["Zada", 3, "Just another Zada list.", "https://archidekt.com/decks/2572012/zada"],
    ["Lukas Slimes", 2, "The Lukas Slime deck.", "https://archidekt.com/decks/11223185/lukas_slimes"],
    [
        "Jumpstart Piles",
        2,
        "A collection of 5 Jumpstart decks to be mixed.",
        "https://archidekt.com/decks/16180870/jumpstart_combined",
    ],
]


class SheetsError(RuntimeError):
    """Raised when the spreadsheet backend is unavailable or Google rejects a call."""

    def __init__(self, message: str, status: int = 502):
        super().__init__(message)
        self.message = message
        self.status = status


_client: Optional[gspread.Client] = None
_client_lock = Lock()


def _service_account_file() -> Optional[str]:
    if has_app_context():
        return current_app.config.get("GOOGLE_SERVICE_ACCOUNT_FILE")
    return None


def get_client() -> gspread.Client:
    """Return the process-wide gspread client, building it on first use."""
    global _client
    if _client is not None:
        return _client
    with _client_lock:
        if _client is None:
            path = _service_account_file()
            if not path:
                raise SheetsError("Google Sheets is not configured.", 503)
            try:
                creds = Credentials.from_service_account_file(path, scopes=SCOPES)
            except (OSError, ValueError) as exc:
                _LOG.error("Unable to load service account credentials: %s", exc)
                raise SheetsError("Google Sheets is not configured.", 503) from exc
            _client = gspread.authorize(creds)
        return _client


def reset_client_cache() -> None:
    global _client
    with _client_lock:
        _client = None


def api_error_status(exc: gspread.exceptions.APIError) -> int:
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return int(status) if status else 502


def translate_api_error(exc: gspread.exceptions.APIError, action: str) -> SheetsError:
    status = api_error_status(exc)
    _LOG.warning("Google Sheets call failed", extra={"action": action, "status": status})
    return SheetsError(f"Google Sheets request failed while trying to {action}.", status)


def open_spreadsheet(spreadsheet_id: str) -> gspread.Spreadsheet:
    try:
        return get_client().open_by_key(spreadsheet_id)
    except gspread.exceptions.SpreadsheetNotFound as exc:
        raise SheetsError("Spreadsheet not found.", 404) from exc
    except gspread.exceptions.APIError as exc:
        raise translate_api_error(exc, "open the spreadsheet") from exc


def spreadsheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}"


def list_spreadsheets() -> List[Dict[str, str]]:
    """Spreadsheets visible to the service account as ``{id, name}`` dicts."""
    try:
        files = get_client().list_spreadsheet_files()
    except gspread.exceptions.APIError as exc:
        raise translate_api_error(exc, "list spreadsheets") from exc
    return [{"id": f.get("id"), "name": f.get("name")} for f in files or []]


def read_values(spreadsheet_id: str, range_name: str = "Sheet1!A1:D10") -> List[list]:
    spreadsheet = open_spreadsheet(spreadsheet_id)
    try:
        payload = spreadsheet.values_get(range_name)
    except gspread.exceptions.APIError as exc:
        raise translate_api_error(exc, "read values") from exc
    return payload.get("values", []) or []


def _number_rule(sheet_id: int, start_col: int, end_col: int, low: int, high: int, end_row: int) -> Dict[str, Any]:
    return {
        "setDataValidation": {
            "range": {
                "sheetId": sheet_id,
                "startRowIndex": 1,
                "endRowIndex": end_row,
                "startColumnIndex": start_col,
                "endColumnIndex": end_col,
            },
            "rule": {
                "condition": {
                    "type": "NUMBER_BETWEEN",
                    "values": [{"userEnteredValue": str(low)}, {"userEnteredValue": str(high)}],
                },
                "strict": True,
                "showCustomUi": True,
            },
        }
    }


def validation_requests(decks_sheet_id: int, games_sheet_id: int) -> List[Dict[str, Any]]:
    """``batch_update`` requests that constrain what can be typed into the sheets."""
    deck_dropdown = {
        "setDataValidation": {
            "range": {
                "sheetId": games_sheet_id,
                "startRowIndex": 1,
                "endRowIndex": VALIDATION_ROWS,
                "startColumnIndex": 0,
                "endColumnIndex": 1,
            },
            "rule": {
                "condition": {
                    "type": "ONE_OF_RANGE",
                    "values": [{"userEnteredValue": "=Decks!A2:A"}],
                },
                "strict": True,
                "showCustomUi": True,
            },
        }
    }
    return [
        # Decks!B: target bracket
        _number_rule(decks_sheet_id, 1, 2, 1, 5, end_row=1000),
        deck_dropdown,
        # Games!B: winning seat
        _number_rule(games_sheet_id, 1, 2, 1, 4, end_row=VALIDATION_ROWS),
        # Games!C:F: fun scores
        _number_rule(games_sheet_id, 2, 6, 1, 5, end_row=VALIDATION_ROWS),
        # Games!H: estimated pod bracket
        _number_rule(games_sheet_id, 7, 8, 1, 5, end_row=VALIDATION_ROWS),
    ]


def generate_sample_games(
    decks: Sequence[Sequence[Any]] = SAMPLE_DECKS,
    count: int = 5000,
    rng: Optional[random.Random] = None,
) -> List[list]:
    """Random Games rows for the demo database.

    The estimated pod bracket is the deck's target bracket plus or minus one,
    clamped to 1..5; every tenth game carries a note.
    """
    rng = rng or random.Random()
    rows: List[list] = []
    for i in range(count):
        deck = decks[rng.randint(0, len(decks) - 1)]
        target = int(deck[1])
        est_bracket = min(5, max(1, target + rng.randint(-1, 1)))
        rows.append(
            [
                deck[0],
                rng.randint(1, 4),
                rng.randint(1, 5),
                rng.randint(1, 5),
                rng.randint(1, 5),
                rng.randint(1, 5),
                SAMPLE_NOTE if i % 10 == 0 else "",
                est_bracket,
            ]
        )
    return rows


def _create_spreadsheet(title: str, share_with: Optional[str], game_rows: int = VALIDATION_ROWS) -> tuple:
    client = get_client()
    spreadsheet = client.create(title)
    decks = spreadsheet.sheet1
    decks.update_title("Decks")
    games = spreadsheet.add_worksheet(title="Games", rows=max(game_rows, VALIDATION_ROWS) + 1, cols=len(GAME_HEADERS))
    if share_with:
        spreadsheet.share(share_with, perm_type="user", role="writer")
    return spreadsheet, decks, games


def create_database(title: str = DATABASE_TITLE, share_with: Optional[str] = None) -> Dict[str, str]:
    """Create an empty database spreadsheet; returns ``{spreadsheetId, url}``."""
    try:
        spreadsheet, decks, games = _create_spreadsheet(title, share_with)
        spreadsheet.values_batch_update(
            {
                "valueInputOption": "RAW",
                "data": [
                    {"range": "Decks!A1:D1", "values": [DECK_HEADERS]},
                    {"range": "Games!A1:H1", "values": [GAME_HEADERS]},
                ],
            }
        )
        spreadsheet.batch_update({"requests": validation_requests(decks.id, games.id)})
    except gspread.exceptions.APIError as exc:
        raise translate_api_error(exc, "create the database") from exc

    _LOG.info("Created spreadsheet database", extra={"spreadsheet_id": spreadsheet.id})
    return {"spreadsheetId": spreadsheet.id, "url": spreadsheet_url(spreadsheet.id)}


def create_sample_database(
    share_with: Optional[str] = None,
    game_count: int = 5000,
    rng: Optional[random.Random] = None,
) -> Dict[str, str]:
    """Create a demo database filled with the sample decks and random games."""
    sample_games = generate_sample_games(SAMPLE_DECKS, game_count, rng)
    try:
        spreadsheet, decks, games = _create_spreadsheet(
            SAMPLE_DATABASE_TITLE, share_with, game_rows=len(sample_games)
        )
        data = [
            {"range": "Decks!A1:D1", "values": [DECK_HEADERS]},
            {"range": f"Decks!A2:D{len(SAMPLE_DECKS) + 1}", "values": SAMPLE_DECKS},
            {"range": "Games!A1:H1", "values": [GAME_HEADERS]},
        ]
        if sample_games:
            data.append({"range": f"Games!A2:H{len(sample_games) + 1}", "values": sample_games})
        spreadsheet.values_batch_update({"valueInputOption": "RAW", "data": data})
        spreadsheet.batch_update({"requests": validation_requests(decks.id, games.id)})
    except gspread.exceptions.APIError as exc:
        raise translate_api_error(exc, "create the sample database") from exc

    _LOG.info(
        "Created sample spreadsheet database",
        extra={"spreadsheet_id": spreadsheet.id, "games": len(sample_games)},
    )
    return {"spreadsheetId": spreadsheet.id, "url": spreadsheet_url(spreadsheet.id)}
