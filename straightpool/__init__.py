"""
Straight-pool (14.1 continuous) scorer: rules engine, match session, and the
roster/match-history collaborators around it.
"""
from .models import (
    Action,
    GamePhase,
    GameState,
    InningEntry,
    MatchHistoryRow,
    MatchResult,
    OpeningOperation,
    Player,
    RackMode,
    RosterPlayer,
)
from .rules import InvalidActionForPhase, apply_action, apply_opening, high_run
from .services import (
    MatchClosed,
    MatchNotDecided,
    MatchNotStarted,
    MatchSession,
    MissingPlayerIdentity,
)

__all__ = [
    "Action",
    "GamePhase",
    "GameState",
    "InningEntry",
    "MatchHistoryRow",
    "MatchResult",
    "OpeningOperation",
    "Player",
    "RackMode",
    "RosterPlayer",
    "InvalidActionForPhase",
    "apply_action",
    "apply_opening",
    "high_run",
    "MatchClosed",
    "MatchNotDecided",
    "MatchNotStarted",
    "MatchSession",
    "MissingPlayerIdentity",
]
