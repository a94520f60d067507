"""Data manager logic shared by every backend that stores decks/games as cell matrices."""
from __future__ import annotations

import logging
import re
from abc import abstractmethod
from typing import Dict, List, Optional, Sequence

from services.deck_stats import dashboard_stats, with_stats_from_games
from services.domain import DashboardStats, Deck, Game
from services.sheet_rows import (
    all_game_rows,
    decks_from_sheet,
    deck_row_values,
    filter_rows_with_numbers,
    game_row_values,
    games_from_rows,
    loose_equals,
    normalize_headers,
    with_games,
)

from .base import DataManager, DataManagerError, DeckInput, DeckUpdateInput, GameInput, GameUpdateInput

logger = logging.getLogger(__name__)

DECKS_SHEET = "Decks"
GAMES_SHEET = "Games"

_DECK_ID_RE = re.compile(r"^deck-(\d+)$")
_GAME_ID_RE = re.compile(r"^row-(\d+)$")

Sheet = List[list]


def deck_row_number(deck_id: str) -> Optional[int]:
    """Sheet row for a ``deck-<n>`` id (the header is row 1), or ``None``."""
    match = _DECK_ID_RE.match(str(deck_id or ""))
    if not match:
        return None
    index = int(match.group(1))
    return index + 1 if index >= 1 else None


def game_row_number(game_id: str) -> Optional[int]:
    match = _GAME_ID_RE.match(str(game_id or ""))
    if not match:
        return None
    row_number = int(match.group(1))
    return row_number if row_number >= 2 else None


class SheetBackedDataManager(DataManager):
    """Implements every ``DataManager`` operation on top of four sheet primitives.

    Subclasses supply ``_read``, ``_append_row``, ``_update_rows`` and
    ``_delete_rows``. Row numbers are 1-based with the header in row 1.
    """

    @abstractmethod
    def _read(self, sheet_name: str) -> Sheet:
        ...

    @abstractmethod
    def _append_row(self, sheet_name: str, values: list) -> None:
        ...

    @abstractmethod
    def _update_rows(self, sheet_name: str, rows: Dict[int, list]) -> None:
        ...

    @abstractmethod
    def _delete_rows(self, sheet_name: str, row_numbers: Sequence[int]) -> None:
        """Delete whole rows; implementations must delete bottom-up."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_decks(self) -> List[Deck]:
        return decks_from_sheet(self._read(DECKS_SHEET))

    def get_games(self) -> List[Game]:
        games_sheet = self._read(GAMES_SHEET)
        if not games_sheet:
            return []
        return games_from_rows(games_sheet[0], all_game_rows(games_sheet))

    def _find_deck(self, deck_id: str) -> Optional[Deck]:
        if deck_row_number(deck_id) is None:
            return None
        for deck in self.get_decks():
            if deck.id == deck_id:
                return deck
        return None

    def get_deck_by_id(self, deck_id: str) -> Optional[Deck]:
        deck = self._find_deck(deck_id)
        if deck is None:
            return None
        return with_stats_from_games(with_games(deck, self._read(GAMES_SHEET)))

    def get_dashboard_stats(self) -> DashboardStats:
        return dashboard_stats(self.get_decks(), self.get_games())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _deck_named(self, deck_name: str) -> Optional[Deck]:
        for deck in self.get_decks():
            if loose_equals(deck.deck_name, deck_name):
                return deck
        return None

    def append_deck(self, data: DeckInput) -> None:
        if self._deck_named(data.deck_name) is not None:
            raise DataManagerError("Deck already exists", 409)
        self._append_row(
            DECKS_SHEET,
            deck_row_values(data.deck_name, data.target_bracket, data.summary, data.archidekt_link),
        )

    def append_game(self, data: GameInput) -> None:
        if self._deck_named(data.deck_name) is None:
            raise DataManagerError("Deck not found", 404)
        self._append_row(GAMES_SHEET, self._game_values(data))

    @staticmethod
    def _game_values(data: GameInput) -> list:
        return game_row_values(
            data.deck_name,
            data.winner,
            data.fun,
            data.p2_fun,
            data.p3_fun,
            data.p4_fun,
            data.notes,
            data.est_bracket,
        )

    def update_deck(self, data: DeckUpdateInput) -> None:
        deck = self._find_deck(data.deck_id)
        if deck is None:
            raise DataManagerError("Deck not found", 404)
        if data.original_name and not loose_equals(deck.deck_name, data.original_name):
            raise DataManagerError("Deck was changed since it was loaded", 409)
        clash = self._deck_named(data.deck_name)
        if clash is not None and clash.id != deck.id:
            raise DataManagerError("Deck already exists", 409)

        row_number = deck_row_number(data.deck_id)
        self._update_rows(
            DECKS_SHEET,
            {row_number: deck_row_values(data.deck_name, data.target_bracket, data.summary, data.archidekt_link)},
        )

        original_name = deck.deck_name
        if original_name == data.deck_name:
            return

        games_sheet = self._read(GAMES_SHEET)
        if not games_sheet:
            return
        deck_col = _column_index(games_sheet[0], "deck")
        if deck_col < 0:
            return
        renamed: Dict[int, list] = {}
        for item in filter_rows_with_numbers(games_sheet, [("deck", original_name)]):
            row = list(item.row)
            while len(row) <= deck_col:
                row.append("")
            row[deck_col] = data.deck_name
            renamed[item.row_number] = row
        if renamed:
            self._update_rows(GAMES_SHEET, renamed)
        logger.info(
            "Renamed deck",
            extra={"deck_id": data.deck_id, "renamed_games": len(renamed), "backend": self.name},
        )

    def update_game(self, data: GameUpdateInput) -> None:
        row_number = game_row_number(data.game_id)
        games_sheet = self._read(GAMES_SHEET)
        if row_number is None or row_number > len(games_sheet):
            raise DataManagerError("Game not found", 404)
        self._update_rows(GAMES_SHEET, {row_number: self._game_values(data)})

    def delete_game(self, game_id: str) -> None:
        row_number = game_row_number(game_id)
        games_sheet = self._read(GAMES_SHEET)
        if row_number is None or row_number > len(games_sheet):
            raise DataManagerError("Game not found", 404)
        self._delete_rows(GAMES_SHEET, [row_number])

    def delete_deck(self, deck_id: str, deck_name: str) -> int:
        deck = self._find_deck(deck_id)
        if deck is None:
            raise DataManagerError("Deck not found", 404)

        if deck_name and not loose_equals(deck.deck_name, deck_name):
            raise DataManagerError("Deck name does not match deckId", 409)
        name = deck.deck_name
        games_sheet = self._read(GAMES_SHEET)
        game_rows = [item.row_number for item in filter_rows_with_numbers(games_sheet, [("deck", name)])]
        if game_rows:
            self._delete_rows(GAMES_SHEET, game_rows)
        self._delete_rows(DECKS_SHEET, [deck_row_number(deck_id)])
        logger.info(
            "Deleted deck",
            extra={"deck_id": deck_id, "deleted_games": len(game_rows), "backend": self.name},
        )
        return len(game_rows)


def _column_index(header_row: Sequence, name: str) -> int:
    headers = normalize_headers(header_row)
    return headers.index(name) if name in headers else -1
