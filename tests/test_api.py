from __future__ import annotations

import pytest

fastapi = pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from discflip.api import create_app
from discflip.config import Timings


@pytest.fixture()
def client() -> TestClient:
    with TestClient(create_app(timings=Timings.instant())) as test_client:
        yield test_client


@pytest.fixture()
def slow_client() -> TestClient:
    slow = Timings(flip_step=5.0, trailing=5.0, opponent_delay=5.0, pass_delay=5.0)
    with TestClient(create_app(timings=slow)) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_create_game_reports_opening_position(client: TestClient) -> None:
    res = client.post("/game", json={"automated": True, "policy": "basic"})
    assert res.status_code == 200
    body = res.json()
    assert body["automated"] is True
    assert body["policy"] == "basic"
    assert body["committable"] is True
    assert body["legal"] == ["D3", "C4", "F5", "E6"]
    assert body["tally"] == {"black_wins": 0, "white_wins": 0}
    assert body["state"]["mover"] == "black"
    assert body["state"]["scores"] == {"black": 2, "white": 2}


def test_legal_moves_for_requested_mover(client: TestClient) -> None:
    game_id = client.post("/game", json={}).json()["id"]
    res = client.get(f"/game/{game_id}/legal", params={"mover": "white"})
    assert res.status_code == 200
    assert res.json() == {"id": game_id, "mover": "white", "moves": ["E3", "F4", "C5", "D6"]}


def test_move_returns_flips_and_commits_board(client: TestClient) -> None:
    game_id = client.post("/game", json={}).json()["id"]
    res = client.post(f"/game/{game_id}/move", json={"coord": "D3"})
    assert res.status_code == 200
    assert res.json() == {"accepted": True, "flips": ["D4"], "reason": None}
    state = client.get(f"/game/{game_id}").json()["state"]
    assert state["scores"] == {"black": 4, "white": 1}
    assert state["mover"] == "white"


def test_illegal_move_is_not_an_http_error(client: TestClient) -> None:
    game_id = client.post("/game", json={}).json()["id"]
    res = client.post(f"/game/{game_id}/move", json={"coord": "A1"})
    assert res.status_code == 200
    assert res.json() == {"accepted": False, "flips": [], "reason": "illegal"}


def test_malformed_coord_and_unknown_game(client: TestClient) -> None:
    game_id = client.post("/game", json={}).json()["id"]
    assert client.post(f"/game/{game_id}/move", json={"coord": "Z9"}).status_code == 400
    assert client.get("/game/missing").status_code == 404
    assert client.post("/game/missing/move", json={"coord": "D3"}).status_code == 404


def test_second_move_during_playback_is_rejected(slow_client: TestClient) -> None:
    game_id = slow_client.post("/game", json={}).json()["id"]
    assert slow_client.post(f"/game/{game_id}/move", json={"coord": "D3"}).json()["accepted"]
    body = slow_client.get(f"/game/{game_id}").json()
    assert body["committable"] is False
    res = slow_client.post(f"/game/{game_id}/move", json={"coord": "C3"})
    assert res.json() == {"accepted": False, "flips": [], "reason": "busy"}


def test_restart_resets_board(slow_client: TestClient) -> None:
    game_id = slow_client.post("/game", json={}).json()["id"]
    slow_client.post(f"/game/{game_id}/move", json={"coord": "D3"})
    body = slow_client.post(f"/game/{game_id}/restart").json()
    assert body["committable"] is True
    assert body["state"]["history"] == []
    assert body["state"]["scores"] == {"black": 2, "white": 2}


def test_config_updates_automation_and_policy(client: TestClient) -> None:
    game_id = client.post("/game", json={"policy": "greedy-corner"}).json()["id"]
    res = client.put(f"/game/{game_id}/config", json={"automated": True, "policy": "basic"})
    assert res.status_code == 200
    body = res.json()
    assert body["automated"] is True
    assert body["policy"] == "basic"
    assert client.put(f"/game/{game_id}/config", json={"policy": "minimax"}).status_code == 422


def test_websocket_sends_snapshot(client: TestClient) -> None:
    game_id = client.post("/game", json={}).json()["id"]
    with client.websocket_connect(f"/ws/game/{game_id}") as ws:
        payload = ws.receive_json()
    assert payload["event"] == "snapshot"
    assert payload["id"] == game_id
    assert payload["legal"] == ["D3", "C4", "F5", "E6"]


def test_move_events_reach_websocket_subscribers(client: TestClient) -> None:
    game_id = client.post("/game", json={}).json()["id"]
    with client.websocket_connect(f"/ws/game/{game_id}") as ws:
        assert ws.receive_json()["event"] == "snapshot"
        client.post(f"/game/{game_id}/move", json={"coord": "D3"})
        first = ws.receive_json()
        rest = {ws.receive_json()["event"] for _ in range(2)}
    assert first == {"event": "placed", "coord": "D3", "mover": "black"}
    assert rest == {"flip", "settled"}


def test_default_policy_comes_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DISCFLIP_DEFAULT_POLICY", "basic")
    with TestClient(create_app(timings=Timings.instant())) as test_client:
        body = test_client.post("/game", json={}).json()
        assert body["policy"] == "basic"
        chosen = test_client.post("/game", json={"policy": "greedy-corner"}).json()
        assert chosen["policy"] == "greedy-corner"


def test_invalid_default_policy_fails_at_startup(monkeypatch) -> None:
    monkeypatch.setenv("DISCFLIP_DEFAULT_POLICY", "minimax")
    with pytest.raises(ValueError, match="DISCFLIP_DEFAULT_POLICY"):
        create_app(timings=Timings.instant())
