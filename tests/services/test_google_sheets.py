from __future__ import annotations

import random
from types import SimpleNamespace

import gspread
import pytest

from services import google_sheets
from services.sheet_rows import DECK_HEADERS, GAME_HEADERS


class FakeWorksheet:
    def __init__(self, sheet_id, title):
        self.id = sheet_id
        self.title = title

    def update_title(self, title):
        self.title = title


class FakeCreatedSpreadsheet:
    def __init__(self, title):
        self.id = "new-sheet-id"
        self.title = title
        self.sheet1 = FakeWorksheet(0, "Sheet1")
        self.worksheets = [self.sheet1]
        self.shared_with = []
        self.value_updates = []
        self.batch_updates = []

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet(len(self.worksheets) + 10, title)
        sheet.rows, sheet.cols = rows, cols
        self.worksheets.append(sheet)
        return sheet

    def share(self, email, perm_type, role):
        self.shared_with.append((email, perm_type, role))

    def values_batch_update(self, body):
        self.value_updates.append(body)

    def batch_update(self, body):
        self.batch_updates.append(body)


class FakeClient:
    def __init__(self):
        self.created = []

    def create(self, title):
        spreadsheet = FakeCreatedSpreadsheet(title)
        self.created.append(spreadsheet)
        return spreadsheet

    def list_spreadsheet_files(self):
        return [{"id": "a", "name": "EDH Deck Database", "createdTime": "2024-01-01"}]


@pytest.fixture
def fake_client(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(google_sheets, "get_client", lambda: client)
    return client


def test_sample_games_respect_value_ranges():
    rows = google_sheets.generate_sample_games(count=200, rng=random.Random(42))
    targets = {deck[0]: deck[1] for deck in google_sheets.SAMPLE_DECKS}

    assert len(rows) == 200
    for index, row in enumerate(rows):
        assert len(row) == len(GAME_HEADERS)
        assert row[0] in targets
        assert 1 <= row[1] <= 4
        assert all(1 <= fun <= 5 for fun in row[2:6])
        assert row[6] == (google_sheets.SAMPLE_NOTE if index % 10 == 0 else "")
        assert 1 <= row[7] <= 5
        assert abs(row[7] - targets[row[0]]) <= 1


def test_sample_games_are_reproducible_with_seed():
    first = google_sheets.generate_sample_games(count=20, rng=random.Random(7))
    second = google_sheets.generate_sample_games(count=20, rng=random.Random(7))
    assert first == second


def test_validation_requests_cover_both_sheets():
    requests = google_sheets.validation_requests(decks_sheet_id=0, games_sheet_id=11)

    assert len(requests) == 5
    ranges = [r["setDataValidation"]["range"] for r in requests]
    assert ranges[0]["sheetId"] == 0
    assert all(r["sheetId"] == 11 for r in ranges[1:])
    dropdown = requests[1]["setDataValidation"]["rule"]["condition"]
    assert dropdown == {"type": "ONE_OF_RANGE", "values": [{"userEnteredValue": "=Decks!A2:A"}]}
    winner = requests[2]["setDataValidation"]["rule"]["condition"]["values"]
    assert [v["userEnteredValue"] for v in winner] == ["1", "4"]
    assert (ranges[3]["startColumnIndex"], ranges[3]["endColumnIndex"]) == (2, 6)


def test_create_database_writes_headers_and_shares(fake_client):
    result = google_sheets.create_database(share_with="owner@example.com")

    assert result == {
        "spreadsheetId": "new-sheet-id",
        "url": "https://docs.google.com/spreadsheets/d/new-sheet-id",
    }
    spreadsheet = fake_client.created[0]
    assert [sheet.title for sheet in spreadsheet.worksheets] == ["Decks", "Games"]
    assert spreadsheet.shared_with == [("owner@example.com", "user", "writer")]
    data = spreadsheet.value_updates[0]["data"]
    assert data[0]["values"] == [DECK_HEADERS]
    assert data[1]["values"] == [GAME_HEADERS]
    assert len(spreadsheet.batch_updates[0]["requests"]) == 5


def test_create_sample_database_fills_decks_and_games(fake_client):
    google_sheets.create_sample_database(game_count=30, rng=random.Random(1))

    spreadsheet = fake_client.created[0]
    assert spreadsheet.title == google_sheets.SAMPLE_DATABASE_TITLE
    assert spreadsheet.shared_with == []
    ranges = [item["range"] for item in spreadsheet.value_updates[0]["data"]]
    assert ranges == ["Decks!A1:D1", "Decks!A2:D12", "Games!A1:H1", "Games!A2:H31"]


def test_list_spreadsheets_returns_id_and_name(fake_client):  # noqa: ARG001
    assert google_sheets.list_spreadsheets() == [{"id": "a", "name": "EDH Deck Database"}]


def test_unconfigured_client_is_service_unavailable(app):
    google_sheets.reset_client_cache()
    with app.app_context():
        app.config["GOOGLE_SERVICE_ACCOUNT_FILE"] = None
        with pytest.raises(google_sheets.SheetsError) as excinfo:
            google_sheets.get_client()
    assert excinfo.value.status == 503


def test_open_missing_spreadsheet_is_404(monkeypatch):
    def _open_by_key(key):
        raise gspread.exceptions.SpreadsheetNotFound(key)

    monkeypatch.setattr(google_sheets, "get_client", lambda: SimpleNamespace(open_by_key=_open_by_key))
    with pytest.raises(google_sheets.SheetsError) as excinfo:
        google_sheets.open_spreadsheet("missing")
    assert excinfo.value.status == 404
