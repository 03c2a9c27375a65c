from __future__ import annotations

from fastapi.testclient import TestClient

from pawnstorm.engine.board import STARTPOS_FEN
from pawnstorm.protocol.http.app import create_app


def _client() -> TestClient:
    return TestClient(create_app())


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    game_id = body["game_id"]
    assert game_id
    assert body["fen"] == STARTPOS_FEN
    assert body["color"] == "white"

    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["game_id"] == game_id
    assert state["turn"] == "white"
    assert len(state["legal_moves"]) == 20
    assert state["result"] is None
    assert state["last_move"] is None


def test_create_game_from_fen_and_color() -> None:
    client = _client()
    fen = "4k3/8/8/8/8/8/8/R3K3 b - - 0 1"
    body = client.post("/api/games", json={"fen": fen, "color": "b"}).json()
    assert body["fen"] == fen
    assert body["color"] == "black"


def test_create_game_rejects_bad_input() -> None:
    client = _client()
    r = client.post("/api/games", json={"fen": "not a fen"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"
    r = client.post("/api/games", json={"color": "red"})
    assert r.status_code == 400


def test_get_state_unknown_id_404() -> None:
    client = _client()
    r = client.get("/api/games/does-not-exist/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_set_position_validation_and_success() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]

    r = client.post(f"/api/games/{game_id}/position", json={"fen": "bad"})
    assert r.status_code == 400

    fen = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
    state = client.post(f"/api/games/{game_id}/position", json={"fen": fen}).json()
    assert state["fen"] == fen
    assert state["stalemate"] is True
    assert state["draw"] is True
    assert state["legal_moves"] == []


def test_move_and_moves_endpoints() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]

    state = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"}).json()
    assert state["last_move"] == "e2e4"
    assert state["turn"] == "black"

    state = client.post(f"/api/games/{game_id}/moves", json={"moves": "e2e4 e7e5 g1f3"}).json()
    assert state["move_history"] == ["e2e4", "e7e5", "g1f3"]

    r = client.post(f"/api/games/{game_id}/moves", json={"moves": "d2d4"})
    assert r.status_code == 400

    r = client.post(f"/api/games/{game_id}/move", json={"move": "e1e5"})
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "illegal move"


def test_delete_game() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]
    assert client.delete(f"/api/games/{game_id}").status_code == 200
    assert client.get(f"/api/games/{game_id}/state").status_code == 404
    assert client.delete(f"/api/games/{game_id}").status_code == 404


def test_rejected_move_list_keeps_the_stored_game() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]
    before = client.post(f"/api/games/{game_id}/moves", json={"moves": "e2e4"}).json()

    r = client.post(f"/api/games/{game_id}/moves", json={"moves": "e2e4 e7e5 e1e3 b8c6"})
    assert r.status_code == 400
    after = client.get(f"/api/games/{game_id}/state").json()
    assert after["fen"] == before["fen"]
    assert after["move_history"] == ["e2e4"]
