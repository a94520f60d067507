"""Spreadsheet backend: decks and games live in a user-selected Google spreadsheet."""
from __future__ import annotations

import logging
from typing import Dict, Sequence

import gspread

from services.google_sheets import SheetsError, open_spreadsheet, translate_api_error
from services.sheet_rows import DECKS_RANGE, GAMES_RANGE

from .sheet_backed import DECKS_SHEET, GAMES_SHEET, Sheet, SheetBackedDataManager

logger = logging.getLogger(__name__)

_RANGES = {DECKS_SHEET: DECKS_RANGE, GAMES_SHEET: GAMES_RANGE}
_LAST_COLUMN = {DECKS_SHEET: "D", GAMES_SHEET: "H"}


class SheetsDataManager(SheetBackedDataManager):
    name = "sheets"

    def __init__(self, spreadsheet_id: str, spreadsheet: gspread.Spreadsheet | None = None):
        self.spreadsheet_id = spreadsheet_id
        self._spreadsheet = spreadsheet

    @property
    def spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            self._spreadsheet = open_spreadsheet(self.spreadsheet_id)
        return self._spreadsheet

    def _read(self, sheet_name: str) -> Sheet:
        try:
            payload = self.spreadsheet.values_get(
                _RANGES[sheet_name],
                params={"valueRenderOption": "UNFORMATTED_VALUE"},
            )
        except gspread.exceptions.APIError as exc:
            raise translate_api_error(exc, f"read {sheet_name}") from exc
        return payload.get("values", []) or []

    def _append_row(self, sheet_name: str, values: list) -> None:
        try:
            self.spreadsheet.values_append(
                _RANGES[sheet_name],
                params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
                body={"values": [values]},
            )
        except gspread.exceptions.APIError as exc:
            raise translate_api_error(exc, f"append to {sheet_name}") from exc

    def _update_rows(self, sheet_name: str, rows: Dict[int, list]) -> None:
        last_col = _LAST_COLUMN[sheet_name]
        data = [
            {"range": f"{sheet_name}!A{row_number}:{last_col}{row_number}", "values": [values]}
            for row_number, values in sorted(rows.items())
        ]
        if not data:
            return
        try:
            if len(data) == 1:
                self.spreadsheet.values_update(
                    data[0]["range"],
                    params={"valueInputOption": "USER_ENTERED"},
                    body={"values": data[0]["values"]},
                )
            else:
                self.spreadsheet.values_batch_update({"valueInputOption": "USER_ENTERED", "data": data})
        except gspread.exceptions.APIError as exc:
            raise translate_api_error(exc, f"update {sheet_name}") from exc

    def _delete_rows(self, sheet_name: str, row_numbers: Sequence[int]) -> None:
        if not row_numbers:
            return
        try:
            sheet_id = self.spreadsheet.worksheet(sheet_name).id
            # bottom-up: each delete shifts the rows below it
            requests = [
                {
                    "deleteDimension": {
                        "range": {
                            "sheetId": sheet_id,
                            "dimension": "ROWS",
                            "startIndex": row_number - 1,
                            "endIndex": row_number,
                        }
                    }
                }
                for row_number in sorted(set(row_numbers), reverse=True)
            ]
            self.spreadsheet.batch_update({"requests": requests})
        except gspread.exceptions.WorksheetNotFound as exc:
            logger.error("Worksheet missing", extra={"sheet": sheet_name, "spreadsheet_id": self.spreadsheet_id})
            raise SheetsError(f"The spreadsheet has no {sheet_name} sheet.", 400) from exc
        except gspread.exceptions.APIError as exc:
            raise translate_api_error(exc, f"delete rows from {sheet_name}") from exc
