import pytest

from routes.testing import E2E_TEST_USER


@pytest.fixture
def e2e_user(e2e_client):
    resp = e2e_client.post("/api/test/session", json={"authenticated": True})
    assert resp.get_json() == {"ok": True}
    return e2e_client


def test_session_route_is_hidden_outside_e2e_mode(client):
    resp = client.post("/api/test/session", json={"authenticated": True})
    assert resp.status_code == 404


def test_fixture_user_is_required(e2e_client):
    assert e2e_client.get("/api/decks").status_code == 401


def test_fixture_decks_and_dashboard(e2e_user):
    decks = e2e_user.get("/api/decks").get_json()["decks"]
    assert [(deck["id"], deck["deckName"]) for deck in decks] == [("deck-1", "Deck Alpha"), ("deck-2", "Deck Beta")]

    detail = e2e_user.get("/api/decks/deck-1").get_json()["deck"]
    assert [game["id"] for game in detail["games"]] == ["row-2", "row-4"]
    assert detail["stats"]["winRate"] == 1

    dashboard = e2e_user.get("/api/dashboard").get_json()
    assert dashboard["stats"]["totalGames"] == 3
    assert [row["id"] for row in dashboard["deckStats"]] == ["deck-1", "deck-2"]


def test_fixture_writes_reset_between_requests(e2e_user):
    resp = e2e_user.post("/api/decks/append", json={"deckName": "Deck Gamma"})
    assert resp.status_code == 200
    assert len(e2e_user.get("/api/decks").get_json()["decks"]) == 2

    deleted = e2e_user.post("/api/decks/delete", json={"deckId": "deck-1", "deckName": "Deck Alpha"})
    assert deleted.get_json() == {"ok": True, "deletedGames": 2}
    assert len(e2e_user.get("/api/games").get_json()["games"]) == 3


def test_settings_show_fixture_user_and_database(e2e_user):
    e2e_user.post("/api/test/session", json={"databaseId": "e2e-sheet"})

    payload = e2e_user.get("/api/settings").get_json()
    assert payload["backend"] == "fixtures"
    assert payload["user"] == E2E_TEST_USER
    assert payload["databaseSheetId"] == "e2e-sheet"


def test_signing_out_the_fixture_user(e2e_user):
    e2e_user.post("/api/test/session", json={"authenticated": False})
    assert e2e_user.get("/api/dashboard").status_code == 401
