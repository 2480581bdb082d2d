"""
API integration tests.
Uses TestClient to avoid starting a server.
Requires: pip install httpx (for TestClient)
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
    HAS_HTTPX = True
except (ImportError, RuntimeError):
    HAS_HTTPX = False

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

pytestmark = pytest.mark.skipif(not HAS_HTTPX, reason="httpx required for TestClient")

from straightpool.api import app, sessions
from straightpool.auth import set_admin_pin
from straightpool.persistence.db import init_db, set_db_path


@pytest.fixture(autouse=True)
def isolated_db(tmp_path):
    """Use a temporary DB for each test."""
    db_path = tmp_path / "test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    yield db_path


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def roster(client):
    a = client.post("/players", json={"name": "Ann"}).json()
    b = client.post("/players", json={"name": "Bob"}).json()
    return a, b


def _start(client, roster, target=3):
    a, b = roster
    resp = client.post(
        "/matches",
        json={
            "target_score": target,
            "player_a": {"roster_id": a["id"]},
            "player_b": {"roster_id": b["id"]},
            "week_key": "Wk-4",
            "week_label": "10-Sep",
        },
    )
    assert resp.status_code == 200
    return resp.json()["session_id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_players_roundtrip(client, roster):
    data = client.get("/players").json()
    assert [p["name"] for p in data["players"]] == ["Ann", "Bob"]


def test_start_match_unknown_roster_id(client):
    resp = client.post(
        "/matches",
        json={"player_a": {"roster_id": 999}, "player_b": {"name": "Bob"}},
    )
    assert resp.status_code == 404


def test_start_match_needs_name_or_id(client):
    resp = client.post("/matches", json={"player_a": {}, "player_b": {"name": "Bob"}})
    assert resp.status_code == 400


def test_opening_and_actions(client, roster):
    sid = _start(client, roster)
    state = client.get(f"/matches/{sid}").json()["state"]
    assert state["phase"] == "opening"
    assert state["players"][0]["name"] == "Ann"

    resp = client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    assert resp.status_code == 409

    resp = client.post(f"/matches/{sid}/opening", json={"operation": "legal_break"})
    assert resp.status_code == 200
    assert resp.json()["state"]["at_table_index"] == 1

    resp = client.post(f"/matches/{sid}/actions", json={"action": "foul"})
    body = resp.json()
    assert body["state"]["players"][1]["score"] == -1
    assert body["state"]["at_table_index"] == 0
    assert body["can_undo"] is True

    resp = client.post(f"/matches/{sid}/undo")
    assert resp.json()["state"]["players"][1]["score"] == 0


def test_invalid_action_name_is_422(client, roster):
    sid = _start(client, roster)
    resp = client.post(f"/matches/{sid}/actions", json={"action": "jump_shot"})
    assert resp.status_code == 422


def test_unknown_match_is_404(client):
    assert client.get("/matches/nope").status_code == 404
    assert client.delete("/matches/nope").status_code == 404


def test_finish_saves_history_and_ends_session(client, roster):
    sid = _start(client, roster, target=3)
    client.post(f"/matches/{sid}/opening", json={"operation": "legal_break_with_ball"})
    for _ in range(4):
        client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    body = client.get(f"/matches/{sid}").json()
    assert body["state"]["winner_index"] == 0
    assert body["state"]["players"][0]["score"] == 3

    resp = client.post(f"/matches/{sid}/finish", json={"save": True})
    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["winner_name"] == "Ann"
    assert body["result"]["high_run"] == 4
    assert body["saved"]["week"] == 4
    assert body["saved"]["high_run_a"] == 4
    assert body["saved"]["high_run_b"] is None
    assert sid not in sessions

    history = client.get("/history").json()["matches"]
    assert len(history) == 1
    assert history[0]["counts_for_standings"] is False


def test_finish_without_roster_ids_is_422(client):
    resp = client.post(
        "/matches",
        json={"target_score": 1, "player_a": {"name": "Walk-in"}, "player_b": {"name": "Guest"}},
    )
    sid = resp.json()["session_id"]
    client.post(f"/matches/{sid}/opening", json={"operation": "legal_break_with_ball"})
    client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    resp = client.post(f"/matches/{sid}/finish", json={"save": True})
    assert resp.status_code == 422
    assert sid in sessions
    resp = client.post(f"/matches/{sid}/finish", json={"save": False})
    assert resp.status_code == 200
    assert resp.json()["saved"] is None


def test_rejected_finish_leaves_match_untouched(client, roster):
    sid = _start(client, roster, target=25)
    client.post(f"/matches/{sid}/opening", json={"operation": "legal_break_with_ball"})
    for _ in range(3):
        client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    before = client.get(f"/matches/{sid}").json()

    resp = client.post(f"/matches/{sid}/finish", json={"save": True})
    assert resp.status_code == 422

    after = client.get(f"/matches/{sid}").json()
    assert after == before
    assert after["state"]["at_table_index"] == 0
    assert after["state"]["current_balls"] == 3
    assert after["state"]["log"] == []
    assert client.get("/history").json()["matches"] == []


def test_finish_twice_is_404(client, roster):
    sid = _start(client, roster, target=1)
    client.post(f"/matches/{sid}/opening", json={"operation": "legal_break_with_ball"})
    client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    assert client.post(f"/matches/{sid}/finish").status_code == 200
    assert client.post(f"/matches/{sid}/finish").status_code == 404
    assert len(client.get("/history").json()["matches"]) == 1


def test_actions_on_finished_session_are_409(client, roster):
    sid = _start(client, roster, target=1)
    client.post(f"/matches/{sid}/opening", json={"operation": "legal_break_with_ball"})
    client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    session = sessions.get(sid)
    session.finish_and_save()
    resp = client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    assert resp.status_code == 409
    assert client.post(f"/matches/{sid}/undo").status_code == 409
    assert client.post(f"/matches/{sid}/finish", json={"save": False}).status_code == 409
    sessions.discard(sid)


def test_discard_match(client, roster):
    sid = _start(client, roster)
    assert client.delete(f"/matches/{sid}").status_code == 200
    assert client.get(f"/matches/{sid}").status_code == 404


def test_standings_flag_requires_admin_pin(client, roster):
    set_admin_pin("2468")
    sid = _start(client, roster, target=1)
    client.post(f"/matches/{sid}/opening", json={"operation": "legal_break_with_ball"})
    client.post(f"/matches/{sid}/actions", json={"action": "pocket_ball"})
    row_id = client.post(f"/matches/{sid}/finish").json()["saved"]["id"]

    resp = client.patch(f"/history/{row_id}/standings", json={"counts_for_standings": True})
    assert resp.status_code == 403
    resp = client.patch(
        f"/history/{row_id}/standings",
        json={"counts_for_standings": True},
        headers={"X-Admin-Pin": "0000"},
    )
    assert resp.status_code == 403
    resp = client.patch(
        f"/history/{row_id}/standings",
        json={"counts_for_standings": True},
        headers={"X-Admin-Pin": "2468"},
    )
    assert resp.status_code == 200
    assert resp.json()["counts_for_standings"] is True
    resp = client.patch(
        "/history/9999/standings",
        json={"counts_for_standings": True},
        headers={"X-Admin-Pin": "2468"},
    )
    assert resp.status_code == 404
