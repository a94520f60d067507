import pytest

import routes.deck_links as deck_link_routes
from services.deck_links import DeckLinkError, DeckLoadResult


@pytest.fixture
def signed_in(client, create_user, login):
    user, password = create_user()
    resp = login(user.email, password)
    assert resp.status_code == 200
    return user


def _add_deck(client, name="Deck Alpha", **extra):
    payload = {"deckName": name, **extra}
    resp = client.post("/api/decks/append", json=payload)
    assert resp.status_code == 200, resp.get_json()
    return resp


def _add_game(client, deck="Deck Alpha", **extra):
    resp = client.post("/api/games/append", json={"deckName": deck, **extra})
    assert resp.status_code == 200, resp.get_json()
    return resp


def _deck_id(client, name):
    decks = client.get("/api/decks").get_json()["decks"]
    return next(deck["id"] for deck in decks if deck["deckName"] == name)


@pytest.mark.parametrize("path", ["/api/decks", "/api/games", "/api/dashboard", "/api/settings"])
def test_api_requires_authentication(client, path):
    resp = client.get(path)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "authentication_required"


def test_deck_lifecycle(client, signed_in):  # noqa: ARG001
    _add_deck(client, targetBracket="3", summary="Landfall", archidektLink="https://archidekt.com/decks/1/a")
    decks = client.get("/api/decks").get_json()["decks"]

    assert len(decks) == 1
    assert decks[0]["deckName"] == "Deck Alpha"
    assert decks[0]["targetBracket"] == 3
    assert "games" not in decks[0]

    deck_id = decks[0]["id"]
    resp = client.post(
        "/api/decks/update",
        json={"deckId": deck_id, "originalName": "Deck Alpha", "deckName": "Deck Omega", "targetBracket": 4},
    )
    assert resp.get_json() == {"ok": True}

    detail = client.get(f"/api/decks/{deck_id}").get_json()["deck"]
    assert detail["deckName"] == "Deck Omega"
    assert detail["summary"] is None
    assert detail["games"] == []
    assert "stats" not in detail


def test_games_and_dashboard(client, signed_in):  # noqa: ARG001
    _add_deck(client, "Deck Alpha")
    _add_deck(client, "Deck Beta")
    _add_game(client, "Deck Alpha", winner=1, fun=4, p2Fun=3, p3Fun=3, p4Fun=3, notes="alpha win", estBracket=3)
    _add_game(client, "Deck Beta", winner="2", fun="2", p2Fun=3, p3Fun=3, p4Fun=2, estBracket=2)
    _add_game(client, "Deck Alpha", winner=1, fun=5, p2Fun=4, p3Fun=4, p4Fun=4, estBracket=4)

    games = client.get("/api/games").get_json()["games"]
    assert len(games) == 3
    assert {game["deck"] for game in games} == {"Deck Alpha", "Deck Beta"}

    dashboard = client.get("/api/dashboard").get_json()
    stats = dashboard["stats"]
    assert stats["totalGames"] == 3
    assert stats["wins"] == 2
    assert stats["losses"] == 1
    assert stats["expectedWinrate"] == pytest.approx(0.25)
    assert stats["avgFunWins"] == pytest.approx(4.5)
    assert [row["name"] for row in dashboard["deckStats"]] == ["Deck Alpha", "Deck Beta"]
    assert dashboard["deckStats"][0]["usagePercent"] == pytest.approx(200 / 3)

    detail = client.get(f"/api/decks/{_deck_id(client, 'Deck Alpha')}").get_json()["deck"]
    assert detail["stats"]["totalGames"] == 2
    assert {game["notes"] for game in detail["games"]} == {"alpha win", None}


def test_empty_dashboard(client, signed_in):  # noqa: ARG001
    assert client.get("/api/dashboard").get_json() == {"stats": None, "deckStats": []}


def test_update_and_delete_game(client, signed_in):  # noqa: ARG001
    _add_deck(client)
    _add_game(client, winner=3, fun=2)
    game_id = client.get("/api/games").get_json()["games"][0]["id"]

    resp = client.post("/api/games/update", json={"gameId": game_id, "deckName": "Deck Alpha", "winner": 1})
    assert resp.status_code == 200
    assert client.get("/api/games").get_json()["games"][0]["winner"] == 1

    assert client.post("/api/games/delete", json={"gameId": game_id}).status_code == 200
    assert client.get("/api/games").get_json()["games"] == []

    missing = client.post("/api/games/delete", json={"gameId": game_id})
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "not_found", "detail": "Game not found"}


def test_delete_deck_reports_deleted_games(client, signed_in):  # noqa: ARG001
    _add_deck(client)
    _add_game(client, winner=1)
    _add_game(client, winner=2)
    deck_id = _deck_id(client, "Deck Alpha")

    resp = client.post("/api/decks/delete", json={"deckId": deck_id, "deckName": "Deck Alpha"})
    assert resp.get_json() == {"ok": True, "deletedGames": 2}
    assert client.get("/api/games").get_json()["games"] == []
    assert client.get(f"/api/decks/{deck_id}").status_code == 404


@pytest.mark.parametrize(
    "path, payload, detail",
    [
        ("/api/decks/append", {}, "Missing deckName"),
        ("/api/decks/append", {"deckName": "X", "targetBracket": "high"}, "Invalid targetBracket"),
        ("/api/decks/append", {"deckName": "X", "summary": 5}, "Invalid summary"),
        ("/api/decks/update", {"deckName": "X", "originalName": "Y"}, "Invalid deckId"),
        ("/api/decks/update", {"deckId": "abc", "deckName": "X"}, "Missing originalName"),
        ("/api/decks/delete", {"deckId": "abc"}, "Missing deckName"),
        ("/api/games/append", {"deckName": "X", "winner": True}, "Invalid winner"),
        ("/api/games/update", {"deckName": "X"}, "Invalid gameId"),
        ("/api/games/delete", {}, "Invalid gameId"),
    ],
)
def test_validation_errors(client, signed_in, path, payload, detail):  # noqa: ARG001
    resp = client.post(path, json=payload)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "bad_request", "detail": detail}


def test_non_object_body_is_rejected(client, signed_in):  # noqa: ARG001
    resp = client.post("/api/decks/append", json=["Deck Alpha"])
    assert resp.status_code == 400


def test_duplicate_deck_and_unknown_deck_game(client, signed_in):  # noqa: ARG001
    _add_deck(client)
    dup = client.post("/api/decks/append", json={"deckName": "Deck Alpha"})
    assert dup.status_code == 409
    assert dup.get_json()["error"] == "conflict"

    orphan = client.post("/api/games/append", json={"deckName": "Nope"})
    assert orphan.status_code == 404


def test_blank_numbers_become_null(client, signed_in):  # noqa: ARG001
    _add_deck(client, targetBracket="  ")
    _add_game(client, winner="", fun=None, estBracket="3.5")
    assert client.get("/api/decks").get_json()["decks"][0]["targetBracket"] is None
    game = client.get("/api/games").get_json()["games"][0]
    assert game["winner"] is None
    assert game["estBracket"] == 3.5


def test_settings_reports_backend_and_profile(client, signed_in):
    payload = client.get("/api/settings").get_json()
    assert payload["backend"] == "db"
    assert payload["user"]["email"] == signed_in.email
    assert payload["databaseSheetId"] is None

    assert client.post("/api/settings/set-database", json={"spreadsheetId": "sheet-1"}).status_code == 200
    assert client.get("/api/settings").get_json()["databaseSheetId"] == "sheet-1"


def test_sheets_backend_needs_selected_database(app, client, signed_in, monkeypatch):  # noqa: ARG001
    monkeypatch.setitem(app.config, "DATA_BACKEND", "sheets")
    resp = client.get("/api/decks")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "bad_request", "detail": "No database selected."}


def test_sheets_read_requires_spreadsheet_id(client, signed_in):  # noqa: ARG001
    resp = client.get("/api/sheets/read")
    assert resp.status_code == 400
    assert resp.get_json()["detail"] == "Missing spreadsheetId query parameter"


def test_google_sheets_unconfigured_is_service_unavailable(app, client, signed_in, monkeypatch):  # noqa: ARG001
    from services import google_sheets

    google_sheets.reset_client_cache()
    monkeypatch.setitem(app.config, "GOOGLE_SERVICE_ACCOUNT_FILE", None)
    resp = client.get("/api/drive/list-spreadsheets")
    assert resp.status_code == 503
    assert resp.get_json()["error"] == "service_unavailable"


def test_deck_link_preview(client, signed_in, monkeypatch):  # noqa: ARG001
    monkeypatch.setattr(
        deck_link_routes,
        "load_deck_summary",
        lambda link: DeckLoadResult(name="Havi Pod", commanders=["Havi, the All-Father"]),
    )
    resp = client.get("/api/deck-links/preview", query_string={"url": "https://archidekt.com/decks/14300482/havi"})
    payload = resp.get_json()
    assert payload["link"]["provider"] == "archidekt"
    assert payload["deck"] == {"name": "Havi Pod", "image": "", "commanders": ["Havi, the All-Father"]}
    assert payload["error"] is None


def test_deck_link_preview_reports_failures(client, signed_in, monkeypatch):  # noqa: ARG001
    def _fail(link):
        raise DeckLinkError("Failed to load deck from Moxfield", 403)

    monkeypatch.setattr(deck_link_routes, "load_deck_summary", _fail)
    payload = client.get("/api/deck-links/preview?url=https://moxfield.com/decks/abc").get_json()
    assert payload["deck"] is None
    assert payload["error"] == "Failed to load deck (403)."

    unsupported = client.get("/api/deck-links/preview?url=https://example.com/deck").get_json()
    assert unsupported["link"]["provider"] is None
    assert unsupported["error"] == "Unsupported deck link."


def test_deck_proxy_validates_ids(client, signed_in, monkeypatch):  # noqa: ARG001
    monkeypatch.setattr(deck_link_routes, "fetch_archidekt_deck", lambda deck_id: {"id": deck_id})
    assert client.get("/api/archidekt/123").get_json() == {"id": "123"}
    assert client.get("/api/archidekt/abc").status_code == 400
    assert client.get("/api/moxfield/bad.id").status_code == 400


def test_query_string_tokens_are_rejected(client):
    resp = client.get("/api/decks?api_token=abc")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "api_token_query_not_supported"


def test_unknown_api_route_is_json_404(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "not_found", "detail": "Resource not found."}


def test_responses_carry_request_id(client):
    resp = client.get("/api/decks", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
