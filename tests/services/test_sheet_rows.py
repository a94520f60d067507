from __future__ import annotations

from types import SimpleNamespace

import pytest

from services import sheet_rows
from services.domain import Deck

DECKS = [
    ["Name", "Target Bracket", "Summary", "Archidekt Link"],
    ["Deck Alpha", 3, "Alpha summary", "https://archidekt.com/decks/12345/alpha"],
    [],
    ["Deck Beta", "2", "", ""],
]

GAMES = [
    ["Deck", "Winner", "Fun", "P2 Fun", "P3 Fun", "P4 Fun", "Notes", "Est. Pod Bracket"],
    ["Deck Alpha", 1, 4, 3, 3, 3, "alpha win", 3],
    ["Deck Beta", "2", "2", "", "", "", "", ""],
    ["", "", "", "", "", "", "", ""],
    ["Deck Alpha", 1, 5, 4, 4, 4, "alpha win 2", 4],
]


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        ("", None),
        ("   ", None),
        ("abc", None),
        ("3", 3),
        (" 2.5 ", 2.5),
        ("4.0", 4),
        (7, 7),
        (float("nan"), None),
        (float("inf"), None),
        ("1_000", None),
        ("inf", None),
        ("-Infinity", None),
        ("nan", None),
    ],
)
def test_to_number_or_none(value, expected):
    assert sheet_rows.to_number_or_none(value) == expected


def test_to_number_or_none_returns_int_for_integral_text():
    assert isinstance(sheet_rows.to_number_or_none("4.0"), int)


def test_loose_equals_matches_numbers_and_text():
    assert sheet_rows.loose_equals(3, "3")
    assert sheet_rows.loose_equals("3.0", 3)
    assert sheet_rows.loose_equals("Deck", "Deck")
    assert not sheet_rows.loose_equals("Deck", "deck")
    assert not sheet_rows.loose_equals(None, "")
    assert sheet_rows.loose_equals(None, None)


def test_decks_from_sheet_skips_blank_rows_but_keeps_row_ids():
    decks = sheet_rows.decks_from_sheet(DECKS)

    assert [deck.id for deck in decks] == ["deck-1", "deck-3"]
    alpha, beta = decks
    assert alpha.deck_name == "Deck Alpha"
    assert alpha.target_bracket == 3
    assert alpha.archidekt_link.endswith("/alpha")
    assert beta.target_bracket == 2
    assert beta.summary is None
    assert beta.archidekt_link is None


def test_deck_from_sheet_with_header_only_is_empty_deck():
    deck = sheet_rows.deck_from_sheet([DECKS[0]])
    assert deck.deck_name == ""
    assert deck.target_bracket is None


def test_headers_are_matched_case_insensitively_and_in_any_order():
    sheet = [["  ARCHIDEKT LINK", "name "], ["https://example.test", "Shuffled"]]
    deck = sheet_rows.deck_from_sheet(sheet)
    assert deck.deck_name == "Shuffled"
    assert deck.archidekt_link == "https://example.test"
    assert deck.summary is None


def test_games_from_sheet_coerces_cells_and_drops_blank_rows():
    games = sheet_rows.games_from_sheet(GAMES)

    assert len(games) == 3
    beta = games[1]
    assert beta.deck_name == "Deck Beta"
    assert beta.winner == 2
    assert beta.fun == 2
    assert beta.p2_fun is None
    assert beta.notes is None
    assert beta.est_bracket is None
    assert all(game.id is None for game in games)


def test_short_rows_fill_missing_columns_with_none():
    games = sheet_rows.games_from_sheet([GAMES[0], ["Deck Alpha", 1]])
    assert games[0].winner == 1
    assert games[0].fun is None
    assert games[0].est_bracket is None


def test_filter_rows_with_numbers_reports_sheet_row_numbers():
    rows = sheet_rows.filter_rows_with_numbers(GAMES, [("deck", "Deck Alpha")])
    assert [item.row_number for item in rows] == [2, 5]


def test_filter_on_unknown_column_is_ignored():
    rows = sheet_rows.filter_rows_with_numbers(GAMES, [("colour", "blue")])
    assert len(rows) == len(GAMES) - 1


def test_with_games_attaches_matching_games_with_row_ids():
    deck = sheet_rows.decks_from_sheet(DECKS)[0]
    enriched = sheet_rows.with_games(deck, GAMES)

    assert [game.id for game in enriched.games] == ["row-2", "row-5"]
    assert all(isinstance(game.deck, Deck) for game in enriched.games)
    assert enriched.games[0].to_dict()["deckId"] == "deck-1"


def test_with_games_on_empty_sheet_gives_empty_list():
    deck = Deck(deck_name="Nobody")
    assert sheet_rows.with_games(deck, []).games == []


def test_numeric_deck_names_match_numeric_cells():
    games = [GAMES[0], [1, 1, 3, "", "", "", "", ""], ["10", 2, 3, "", "", "", "", ""]]
    enriched = sheet_rows.with_games(Deck(deck_name="1"), games)
    assert [game.id for game in enriched.games] == ["row-2"]


def test_row_values_follow_header_order():
    assert sheet_rows.deck_row_values("Deck", None, "Sum", None) == ["Deck", "", "Sum", ""]
    row = sheet_rows.game_row_values("Deck", 1, 4, None, 2, None, None, 3)
    assert row == ["Deck", 1, 4, "", 2, "", "", 3]
    assert len(row) == len(sheet_rows.GAME_HEADERS)


def test_records_map_to_domain_types():
    deck_record = SimpleNamespace(
        id="abc",
        name="Deck Alpha",
        target_bracket=3.0,
        summary=None,
        archidekt_link=None,
    )
    game_record = SimpleNamespace(
        id="g1",
        deck=deck_record,
        winner=1,
        fun=4.0,
        p2_fun=None,
        p3_fun=2.5,
        p4_fun=None,
        notes="gg",
        est_bracket=None,
    )

    deck = sheet_rows.deck_from_record(deck_record)
    game = sheet_rows.game_from_record(game_record)

    assert deck.target_bracket == 3
    assert game.deck_name == "Deck Alpha"
    assert game.fun == 4
    assert game.p3_fun == 2.5
    assert sheet_rows.game_from_record(game_record, deck=deck).to_dict()["deckId"] == "abc"
