"""
Owner of live match sessions, keyed by id.
A session exists from match start until it is finished or discarded.
"""
from __future__ import annotations

import logging
import threading
import uuid

from .match_session import MatchSession

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    """No live session with that id."""


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, MatchSession] = {}
        self._lock = threading.Lock()

    def add(self, session: MatchSession) -> str:
        """Register a started session and return its id."""
        if not session.started:
            raise ValueError("Only started sessions can be registered")
        sid = str(uuid.uuid4())
        with self._lock:
            self._sessions[sid] = session
        logger.info("Registered session %s", sid)
        return sid

    def get(self, session_id: str) -> MatchSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def discard(self, session_id: str) -> MatchSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        logger.info("Discarded session %s", session_id)
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
