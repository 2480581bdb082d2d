"""
SQLite schema for roster and match history.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def players_schema() -> str:
    """League roster. Contact fields are optional."""
    return """
    CREATE TABLE IF NOT EXISTS players (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        phone TEXT,
        email TEXT
    );
    CREATE INDEX IF NOT EXISTS ix_players_name ON players(name);
    """


def match_history_schema() -> str:
    """One row per saved match. counts_for_standings is flipped by an admin."""
    return """
    CREATE TABLE IF NOT EXISTS match_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp_iso TEXT NOT NULL,
        week INTEGER,
        roster_a INTEGER NOT NULL,
        roster_b INTEGER NOT NULL,
        score_a INTEGER NOT NULL,
        score_b INTEGER NOT NULL,
        high_run_a INTEGER,
        high_run_b INTEGER,
        innings INTEGER,
        counts_for_standings INTEGER NOT NULL DEFAULT 0,
        note TEXT,
        FOREIGN KEY (roster_a) REFERENCES players(id),
        FOREIGN KEY (roster_b) REFERENCES players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_match_history_week ON match_history(week);
    """


def all_schema_sql() -> str:
    return players_schema() + match_history_schema()
