"""Pick the data backend for the current request."""
from __future__ import annotations

from flask import current_app

from services.session_store import get_session_data

from .base import DataManager, DataManagerError, DeckInput, DeckUpdateInput, GameInput, GameUpdateInput
from .db import DbDataManager
from .fixtures import E2E_DECKS_SHEET, E2E_GAMES_SHEET, FixtureDataManager
from .sheet_backed import SheetBackedDataManager
from .sheets import SheetsDataManager

__all__ = [
    "DATABASE_SHEET_KEY",
    "DataManager",
    "DataManagerError",
    "DbDataManager",
    "DeckInput",
    "DeckUpdateInput",
    "E2E_DECKS_SHEET",
    "E2E_GAMES_SHEET",
    "FixtureDataManager",
    "GameInput",
    "GameUpdateInput",
    "SheetBackedDataManager",
    "SheetsDataManager",
    "get_data_manager",
]

DATABASE_SHEET_KEY = "databaseSheetId"


def get_data_manager(user) -> DataManager:
    """Return the backend serving ``user`` for this request."""
    if current_app.config.get("E2E_TEST_MODE"):
        return FixtureDataManager()

    if user is None or not getattr(user, "is_authenticated", False):
        raise DataManagerError("Not authenticated", 401)

    if current_app.config.get("DATA_BACKEND") == "sheets":
        spreadsheet_id = get_session_data(DATABASE_SHEET_KEY)
        if not spreadsheet_id:
            raise DataManagerError("No database selected.", 400)
        return SheetsDataManager(spreadsheet_id)

    return DbDataManager(user.id)
