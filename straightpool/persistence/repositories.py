"""
Repository interfaces for roster and match history.
No business logic: only read/write operations.
"""
from __future__ import annotations

import sqlite3

from straightpool.models import MatchHistoryRow, RosterPlayer


def week_to_int(key: str | None) -> int | None:
    """Week keys look like "Wk-3"; the store keeps only the number."""
    if key is None or not key.strip():
        return None
    digits = "".join(ch for ch in key if ch.isdigit())
    return int(digits) if digits else None


# ---------- PlayerRepository ----------


class PlayerRepository:
    """CRUD for roster players."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        phone: str | None = None,
        email: str | None = None,
    ) -> RosterPlayer:
        cur = conn.execute(
            "INSERT INTO players (name, phone, email) VALUES (?, ?, ?)",
            (name, phone, email),
        )
        conn.commit()
        return RosterPlayer(id=cur.lastrowid, name=name, phone=phone, email=email)

    def get(self, conn: sqlite3.Connection, player_id: int) -> RosterPlayer | None:
        row = conn.execute(
            "SELECT id, name, phone, email FROM players WHERE id = ?", (player_id,)
        ).fetchone()
        if row is None:
            return None
        return RosterPlayer(id=row["id"], name=row["name"], phone=row["phone"], email=row["email"])

    def list_all(self, conn: sqlite3.Connection) -> list[RosterPlayer]:
        rows = conn.execute(
            "SELECT id, name, phone, email FROM players ORDER BY name COLLATE NOCASE, id"
        ).fetchall()
        return [
            RosterPlayer(id=r["id"], name=r["name"], phone=r["phone"], email=r["email"])
            for r in rows
        ]


# ---------- MatchHistoryRepository ----------


def _row_to_history(r: sqlite3.Row) -> MatchHistoryRow:
    return MatchHistoryRow(
        id=r["id"],
        timestamp_iso=r["timestamp_iso"],
        week=r["week"],
        roster_a=r["roster_a"],
        roster_b=r["roster_b"],
        score_a=r["score_a"],
        score_b=r["score_b"],
        high_run_a=r["high_run_a"],
        high_run_b=r["high_run_b"],
        innings=r["innings"],
        counts_for_standings=bool(r["counts_for_standings"]),
        note=r["note"],
    )


_HISTORY_COLS = """id, timestamp_iso, week, roster_a, roster_b, score_a, score_b,
                   high_run_a, high_run_b, innings, counts_for_standings, note"""


class MatchHistoryRepository:
    """Append-only match history (plus the admin standings flag)."""

    def append(self, conn: sqlite3.Connection, row: MatchHistoryRow) -> int:
        cur = conn.execute(
            """INSERT INTO match_history (
                timestamp_iso, week, roster_a, roster_b, score_a, score_b,
                high_run_a, high_run_b, innings, counts_for_standings, note
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                row.timestamp_iso,
                row.week,
                row.roster_a,
                row.roster_b,
                row.score_a,
                row.score_b,
                row.high_run_a,
                row.high_run_b,
                row.innings,
                1 if row.counts_for_standings else 0,
                row.note,
            ),
        )
        conn.commit()
        row.id = cur.lastrowid
        return row.id

    def get(self, conn: sqlite3.Connection, row_id: int) -> MatchHistoryRow | None:
        r = conn.execute(
            f"SELECT {_HISTORY_COLS} FROM match_history WHERE id = ?", (row_id,)
        ).fetchone()
        return _row_to_history(r) if r else None

    def list_all(self, conn: sqlite3.Connection, week: int | None = None) -> list[MatchHistoryRow]:
        if week is None:
            rows = conn.execute(
                f"SELECT {_HISTORY_COLS} FROM match_history ORDER BY id"
            ).fetchall()
        else:
            rows = conn.execute(
                f"SELECT {_HISTORY_COLS} FROM match_history WHERE week = ? ORDER BY id", (week,)
            ).fetchall()
        return [_row_to_history(r) for r in rows]

    def set_counts_for_standings(self, conn: sqlite3.Connection, row_id: int, flag: bool) -> bool:
        """Returns False when no row has that id."""
        cur = conn.execute(
            "UPDATE match_history SET counts_for_standings = ? WHERE id = ?",
            (1 if flag else 0, row_id),
        )
        conn.commit()
        return cur.rowcount > 0

    def clear_all(self, conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM match_history")
        conn.commit()


class MatchHistoryStore:
    """MatchHistoryRepository bound to one connection; what MatchSession saves into."""

    def __init__(self, conn: sqlite3.Connection, repo: MatchHistoryRepository | None = None) -> None:
        self._conn = conn
        self._repo = repo or MatchHistoryRepository()

    def append(self, row: MatchHistoryRow) -> int:
        return self._repo.append(self._conn, row)
