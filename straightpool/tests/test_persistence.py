"""
Tests for the roster / match-history store and the admin PIN.
"""
from __future__ import annotations

import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from straightpool.auth import check_admin_pin, hash_pin, set_admin_pin, verify_pin
from straightpool.models import Action, MatchHistoryRow
from straightpool.persistence import (
    MatchHistoryRepository,
    MatchHistoryStore,
    PlayerRepository,
    get_connection,
    init_db,
    week_to_int,
)
from straightpool.services import MatchSession


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "straightpool_test.db"
    init_db(db_path=db_path)
    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


def _row(**overrides) -> MatchHistoryRow:
    fields = dict(
        timestamp_iso="2025-09-03T20:15:00+00:00",
        week=1,
        roster_a=1,
        roster_b=2,
        score_a=125,
        score_b=87,
        high_run_a=31,
        high_run_b=None,
        innings=22,
    )
    fields.update(overrides)
    return MatchHistoryRow(**fields)


class TestSchema:
    def test_init_db_creates_tables(self, db_conn):
        names = {
            r[0] for r in db_conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"players", "match_history"} <= names

    def test_init_db_is_idempotent(self, tmp_path):
        init_db(tmp_path / "x.db")
        init_db(tmp_path / "x.db")
        conn = sqlite3.connect(str(tmp_path / "x.db"))
        assert conn.execute("SELECT COUNT(*) FROM players").fetchone()[0] == 0
        conn.close()


class TestPlayerRepository:
    def test_create_and_get(self, db_conn):
        repo = PlayerRepository()
        p = repo.create(db_conn, "Ann", phone="555-0100")
        got = repo.get(db_conn, p.id)
        assert got == p
        assert got.email is None

    def test_get_missing(self, db_conn):
        assert PlayerRepository().get(db_conn, 999) is None

    def test_list_all_sorted_by_name(self, db_conn):
        repo = PlayerRepository()
        for name in ("carl", "Ann", "bob"):
            repo.create(db_conn, name)
        assert [p.name for p in repo.list_all(db_conn)] == ["Ann", "bob", "carl"]


class TestMatchHistoryRepository:
    def test_append_assigns_id(self, db_conn):
        repo = MatchHistoryRepository()
        row = _row()
        rid = repo.append(db_conn, row)
        assert row.id == rid
        got = repo.get(db_conn, rid)
        assert got == row
        assert got.high_run_b is None
        assert got.counts_for_standings is False

    def test_list_filter_by_week(self, db_conn):
        repo = MatchHistoryRepository()
        repo.append(db_conn, _row(week=1))
        repo.append(db_conn, _row(week=2))
        repo.append(db_conn, _row(week=None))
        assert len(repo.list_all(db_conn)) == 3
        assert [r.week for r in repo.list_all(db_conn, week=2)] == [2]

    def test_set_counts_for_standings(self, db_conn):
        repo = MatchHistoryRepository()
        rid = repo.append(db_conn, _row())
        assert repo.set_counts_for_standings(db_conn, rid, True) is True
        assert repo.get(db_conn, rid).counts_for_standings is True
        assert repo.set_counts_for_standings(db_conn, rid + 100, True) is False

    def test_clear_all(self, db_conn):
        repo = MatchHistoryRepository()
        repo.append(db_conn, _row())
        repo.clear_all(db_conn)
        assert repo.list_all(db_conn) == []

    def test_session_saves_through_store(self, db_conn):
        players = PlayerRepository()
        a = players.create(db_conn, "Ann")
        b = players.create(db_conn, "Bob")
        s = MatchSession()
        s.start_match(2, a, b, week_key="Wk-12")
        s.opening_legal_break_with_ball()
        s.apply(Action.POCKET_BALL)
        s.apply(Action.POCKET_BALL)
        s.finalize_turn_if_needed()
        row = s.save_match_to_history(MatchHistoryStore(db_conn))
        saved = MatchHistoryRepository().list_all(db_conn)
        assert saved == [row]
        assert saved[0].week == 12
        assert saved[0].roster_a == a.id and saved[0].high_run_a == 2


class TestWeekKey:
    @pytest.mark.parametrize(
        "key,expected",
        [("Wk-3", 3), ("Wk-12", 12), ("7", 7), ("", None), ("   ", None), (None, None), ("Bye", None)],
    )
    def test_week_to_int(self, key, expected):
        assert week_to_int(key) == expected


class TestAdminPin:
    def test_hash_and_verify(self):
        h = hash_pin("2468")
        assert h != "2468"
        assert verify_pin("2468", h)
        assert not verify_pin("1357", h)
        assert not verify_pin("", h)
        assert not verify_pin(None, h)

    def test_set_admin_pin(self):
        set_admin_pin("4321")
        assert check_admin_pin("4321")
        assert not check_admin_pin("7777")
