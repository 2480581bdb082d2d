"""
Service layer: match session ownership, undo, hand-off to the match store.
Rules themselves live in straightpool.rules.
"""
from .match_session import (
    MatchClosed,
    MatchNotDecided,
    MatchNotStarted,
    MatchSession,
    MatchStore,
    MissingPlayerIdentity,
)
from .session_registry import SessionNotFound, SessionRegistry

__all__ = [
    "MatchClosed",
    "MatchNotDecided",
    "MatchNotStarted",
    "MatchSession",
    "MatchStore",
    "MissingPlayerIdentity",
    "SessionNotFound",
    "SessionRegistry",
]
