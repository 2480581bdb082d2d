"""
Persistence layer for roster and match history.
No business logic, no rules: only read/write interfaces.
"""
from .db import get_connection, get_db_path, init_db, set_db_path
from .repositories import (
    MatchHistoryRepository,
    MatchHistoryStore,
    PlayerRepository,
    week_to_int,
)

__all__ = [
    "get_connection",
    "get_db_path",
    "init_db",
    "set_db_path",
    "MatchHistoryRepository",
    "MatchHistoryStore",
    "PlayerRepository",
    "week_to_int",
]
