"""In-memory fixture backend used when ``E2E_TEST_MODE`` is on."""
from __future__ import annotations

import copy
from typing import Dict, List, Sequence

from services.sheet_rows import DECK_HEADERS, GAME_HEADERS

from .base import DataManagerError
from .sheet_backed import DECKS_SHEET, GAMES_SHEET, Sheet, SheetBackedDataManager

E2E_DECKS_SHEET: Sheet = [
    list(DECK_HEADERS),
    ["Deck Alpha", 3, "Alpha summary deck for e2e tests.", "https://archidekt.com/decks/12345/alpha"],
    ["Deck Beta", 2, "Beta summary deck for e2e tests.", "https://archidekt.com/decks/67890/beta"],
]

E2E_GAMES_SHEET: Sheet = [
    list(GAME_HEADERS),
    ["Deck Alpha", 1, 4, 3, 3, 3, "alpha win", 3],
    ["Deck Beta", 2, 2, 3, 3, 2, "beta loss", 2],
    ["Deck Alpha", 1, 5, 4, 4, 4, "alpha win 2", 4],
]


class FixtureDataManager(SheetBackedDataManager):
    """Sheet-backed manager over a private copy of the fixture sheets.

    Writes only touch this instance's copy, so every request starts from the
    same two decks and three games.
    """

    name = "fixtures"

    def __init__(self, decks: Sheet | None = None, games: Sheet | None = None):
        self._sheets: Dict[str, Sheet] = {
            DECKS_SHEET: copy.deepcopy(decks if decks is not None else E2E_DECKS_SHEET),
            GAMES_SHEET: copy.deepcopy(games if games is not None else E2E_GAMES_SHEET),
        }

    def _sheet(self, sheet_name: str) -> Sheet:
        try:
            return self._sheets[sheet_name]
        except KeyError:
            raise DataManagerError(f"Unknown sheet {sheet_name}", 500) from None

    def _read(self, sheet_name: str) -> Sheet:
        return copy.deepcopy(self._sheet(sheet_name))

    def _append_row(self, sheet_name: str, values: list) -> None:
        self._sheet(sheet_name).append(list(values))

    def _update_rows(self, sheet_name: str, rows: Dict[int, list]) -> None:
        sheet = self._sheet(sheet_name)
        for row_number, values in rows.items():
            sheet[row_number - 1] = list(values)

    def _delete_rows(self, sheet_name: str, row_numbers: Sequence[int]) -> None:
        sheet = self._sheet(sheet_name)
        for row_number in sorted(set(row_numbers), reverse=True):
            if 1 < row_number <= len(sheet):
                del sheet[row_number - 1]

    def snapshot(self) -> Dict[str, List[list]]:
        return copy.deepcopy(self._sheets)
