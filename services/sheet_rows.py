"""Convert raw tabular data into ``Deck``/``Game`` records.

Two shapes come in: spreadsheet cell matrices (header row first, columns matched
by lowercased/trimmed header name) and relational rows from the SQL backend.
Missing columns fall back to empty defaults instead of raising.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .domain import Deck, Game, Number

__all__ = [
    "DECK_HEADERS",
    "GAME_HEADERS",
    "DECKS_RANGE",
    "GAMES_RANGE",
    "RowWithNumber",
    "to_number_or_none",
    "normalize_headers",
    "loose_equals",
    "is_blank_row",
    "filter_rows_with_numbers",
    "deck_from_sheet",
    "decks_from_sheet",
    "games_from_sheet",
    "games_from_rows",
    "all_game_rows",
    "with_games",
    "deck_row_values",
    "game_row_values",
    "deck_from_record",
    "game_from_record",
]

DECK_HEADERS = ["Name", "Target Bracket", "Summary", "Archidekt Link"]
GAME_HEADERS = ["Deck", "Winner", "Fun", "P2 Fun", "P3 Fun", "P4 Fun", "Notes", "Est. Pod Bracket"]
DECKS_RANGE = "Decks!A1:D"
GAMES_RANGE = "Games!A1:H"

Filter = Sequence[Tuple[str, Any]]


@dataclass(frozen=True)
class RowWithNumber:
    """A data row plus its 1-based row number in the sheet (header is row 1)."""

    row_number: int
    row: list


def to_number_or_none(value: Any) -> Optional[Number]:
    """The one coercion rule for numeric cells: blank or invalid becomes ``None``."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    text = str(value).strip()
    if not text or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def _cell(row: Sequence[Any], idx: int) -> Any:
    if idx < 0 or idx >= len(row):
        return None
    return row[idx]


def _text_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def normalize_headers(header_row: Iterable[Any]) -> List[str]:
    return [str(h if h is not None else "").lower().strip() for h in header_row]


def _loose_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    return None


def loose_equals(cell: Any, match: Any) -> bool:
    """Non-strict equality: ``3`` matches ``"3"`` and ``"3.0"``.

    Deck names are matched this way when slicing the games sheet, so a deck
    called ``"1"`` also picks up cells holding the number ``1``.
    """
    if cell is None or match is None:
        return cell is None and match is None
    if isinstance(cell, str) and isinstance(match, str):
        return cell == match
    if isinstance(cell, (int, float)) or isinstance(match, (int, float)):
        left = _loose_number(cell)
        right = _loose_number(match)
        return left is not None and right is not None and left == right
    return cell == match


def is_blank_row(row: Any) -> bool:
    if not isinstance(row, (list, tuple)):
        return True
    return not any(cell is not None and cell != "" for cell in row)


def filter_rows_with_numbers(sheet: Sequence[Sequence[Any]], filters: Filter = ()) -> List[RowWithNumber]:
    """Rows below the header matching every filter, with their sheet row numbers.

    Filters naming a column the sheet does not have are skipped.
    """
    if not isinstance(sheet, (list, tuple)) or len(sheet) < 2:
        return []

    headers = normalize_headers(sheet[0])
    resolved = []
    for column, match in filters:
        try:
            resolved.append((headers.index(column), match))
        except ValueError:
            continue

    matches: List[RowWithNumber] = []
    for offset, row in enumerate(sheet[1:]):
        if not isinstance(row, (list, tuple)):
            continue
        if all(loose_equals(_cell(row, idx), match) for idx, match in resolved):
            matches.append(RowWithNumber(row_number=offset + 2, row=list(row)))
    return matches


class _Columns:
    """Header-name to column-index lookup; unknown names resolve to ``-1``."""

    def __init__(self, header_row: Iterable[Any]):
        self._headers = normalize_headers(header_row)

    def index(self, name: str) -> int:
        try:
            return self._headers.index(name)
        except ValueError:
            return -1


def _deck_from_row(columns: _Columns, row: Sequence[Any], deck_id: Optional[str] = None) -> Deck:
    name = _cell(row, columns.index("name"))
    return Deck(
        id=deck_id,
        deck_name=str(name) if name is not None else "",
        target_bracket=to_number_or_none(_cell(row, columns.index("target bracket"))),
        summary=_text_or_none(_cell(row, columns.index("summary"))),
        archidekt_link=_text_or_none(_cell(row, columns.index("archidekt link"))),
    )


def deck_from_sheet(sheet: Sequence[Sequence[Any]]) -> Deck:
    """Map the first data row of a Decks sheet slice to a ``Deck``."""
    if not isinstance(sheet, (list, tuple)) or len(sheet) < 2:
        return Deck(deck_name="")
    return _deck_from_row(_Columns(sheet[0]), sheet[1] or [])


def decks_from_sheet(sheet: Sequence[Sequence[Any]]) -> List[Deck]:
    """Every non-empty data row as a ``Deck`` with id ``deck-<n>``."""
    if not isinstance(sheet, (list, tuple)) or len(sheet) < 2:
        return []
    columns = _Columns(sheet[0])
    return [
        _deck_from_row(columns, row, deck_id=f"deck-{index}")
        for index, row in enumerate(sheet[1:], start=1)
        if not is_blank_row(row)
    ]


def _game_from_row(columns: _Columns, row: Sequence[Any], game_id: Optional[str] = None) -> Game:
    deck = _cell(row, columns.index("deck"))
    return Game(
        id=game_id,
        deck=str(deck) if deck is not None else "",
        winner=to_number_or_none(_cell(row, columns.index("winner"))),
        fun=to_number_or_none(_cell(row, columns.index("fun"))),
        p2_fun=to_number_or_none(_cell(row, columns.index("p2 fun"))),
        p3_fun=to_number_or_none(_cell(row, columns.index("p3 fun"))),
        p4_fun=to_number_or_none(_cell(row, columns.index("p4 fun"))),
        notes=_text_or_none(_cell(row, columns.index("notes"))),
        est_bracket=to_number_or_none(_cell(row, columns.index("est. pod bracket"))),
    )


def games_from_sheet(sheet: Sequence[Sequence[Any]]) -> List[Game]:
    """Map a whole Games sheet; blank rows are dropped and games carry no id."""
    if not isinstance(sheet, (list, tuple)) or len(sheet) < 2:
        return []
    columns = _Columns(sheet[0])
    return [_game_from_row(columns, row) for row in sheet[1:] if not is_blank_row(row)]


def games_from_rows(header_row: Sequence[Any], rows: Iterable[RowWithNumber]) -> List[Game]:
    """Map selected rows, keeping ``row-<n>`` ids that point back into the sheet."""
    if not isinstance(header_row, (list, tuple)):
        return []
    columns = _Columns(header_row)
    return [
        _game_from_row(columns, item.row, game_id=f"row-{item.row_number}")
        for item in rows
        if not is_blank_row(item.row)
    ]


def all_game_rows(sheet: Sequence[Sequence[Any]]) -> List[RowWithNumber]:
    if not isinstance(sheet, (list, tuple)) or len(sheet) < 2:
        return []
    return [RowWithNumber(row_number=offset + 2, row=list(row or [])) for offset, row in enumerate(sheet[1:])]


def with_games(deck: Deck, games_sheet: Sequence[Sequence[Any]]) -> Deck:
    """Attach the games whose Deck column matches this deck's name."""
    if not isinstance(games_sheet, (list, tuple)) or not games_sheet:
        return replace(deck, games=[])
    rows = filter_rows_with_numbers(games_sheet, [("deck", deck.deck_name)])
    games = [replace(game, deck=deck) for game in games_from_rows(games_sheet[0], rows)]
    return replace(deck, games=games)


def _cell_value(value: Any) -> Any:
    return "" if value is None else value


def deck_row_values(
    deck_name: str,
    target_bracket: Optional[Number],
    summary: Optional[str],
    archidekt_link: Optional[str],
) -> list:
    """A Decks sheet row in ``DECK_HEADERS`` order."""
    return [_cell_value(v) for v in (deck_name, target_bracket, summary, archidekt_link)]


def game_row_values(
    deck_name: str,
    winner: Optional[Number],
    fun: Optional[Number],
    p2_fun: Optional[Number],
    p3_fun: Optional[Number],
    p4_fun: Optional[Number],
    notes: Optional[str],
    est_bracket: Optional[Number],
) -> list:
    """A Games sheet row in ``GAME_HEADERS`` order."""
    return [
        _cell_value(v)
        for v in (deck_name, winner, fun, p2_fun, p3_fun, p4_fun, notes, est_bracket)
    ]


def deck_from_record(record: Any) -> Deck:
    """Map a ``models.Deck`` row (or anything with the same attributes)."""
    return Deck(
        id=str(record.id),
        deck_name=record.name,
        target_bracket=to_number_or_none(record.target_bracket),
        summary=record.summary,
        archidekt_link=record.archidekt_link,
    )


def game_from_record(record: Any, deck: Deck | str | None = None) -> Game:
    """Map a ``models.Game`` row; ``deck`` defaults to the related deck's name."""
    if deck is None:
        related = getattr(record, "deck", None)
        deck = related.name if related is not None else ""
    return Game(
        id=str(record.id),
        deck=deck,
        winner=to_number_or_none(record.winner),
        fun=to_number_or_none(record.fun),
        p2_fun=to_number_or_none(record.p2_fun),
        p3_fun=to_number_or_none(record.p3_fun),
        p4_fun=to_number_or_none(record.p4_fun),
        notes=record.notes,
        est_bracket=to_number_or_none(record.est_bracket),
    )
