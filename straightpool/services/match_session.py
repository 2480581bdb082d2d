"""
Match session: the one owner of a live match.

Holds the current GameState, the undo stack of prior snapshots and the list of
finished-match summaries. Every mutator runs under the session lock so actions
are applied strictly one at a time. Persistence is delegated to a store that
accepts a MatchHistoryRow.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Protocol

from straightpool import rules
from straightpool.models import (
    Action,
    GameState,
    MatchHistoryRow,
    MatchResult,
    OpeningOperation,
    Player,
    RosterPlayer,
)
from straightpool.persistence.repositories import week_to_int

logger = logging.getLogger(__name__)

# ---------- Exceptions ----------


class MatchNotStarted(ValueError):
    """Operation issued before start_match."""


class MissingPlayerIdentity(ValueError):
    """Finished match cannot be saved: a player has no roster id."""


class MatchNotDecided(ValueError):
    """Finished match cannot be saved: nobody reached the target."""


class MatchClosed(ValueError):
    """Match was already finished through finish_and_save."""


# ---------- Store interface ----------


class MatchStore(Protocol):
    """Anything that accepts a finished match (e.g. MatchHistoryRepository bound to a connection)."""

    def append(self, row: MatchHistoryRow) -> object: ...


PlayerIdentity = RosterPlayer | Player | tuple[int | None, str]


def _to_player(identity: PlayerIdentity) -> Player:
    if isinstance(identity, Player):
        return Player(id=identity.id, name=identity.name)
    if isinstance(identity, RosterPlayer):
        return Player(id=identity.id, name=identity.name)
    pid, name = identity
    return Player(id=pid, name=name)


# ---------- MatchSession ----------


class MatchSession:
    """
    Explicitly owned match. Undo is a stack of full snapshots pushed before
    every state-changing operation; rejected actions push nothing.
    """

    def __init__(self) -> None:
        self._state: GameState | None = None
        self._undo: list[GameState] = []
        self._lock = threading.RLock()
        self._closed = False
        self.history: list[MatchResult] = []

    # ---------- Queries ----------

    @property
    def started(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> GameState:
        if self._state is None:
            raise MatchNotStarted("No match in progress; call start_match first")
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    def high_run(self, player_index: int | None = None) -> int:
        return rules.high_run(self.state, player_index)

    def high_run_for_player(self, player_index: int) -> int | None:
        return rules.high_run_for_player(self.state, player_index)

    # ---------- Lifecycle ----------

    def start_match(
        self,
        target_score: int,
        player_a: PlayerIdentity,
        player_b: PlayerIdentity,
        week_key: str | None = None,
        week_label: str | None = None,
    ) -> GameState:
        """New match; clears undo history. Previous results stay in history."""
        if target_score <= 0:
            raise ValueError(f"target_score must be positive, got {target_score}")
        with self._lock:
            self._state = rules.start_state(
                target_score, _to_player(player_a), _to_player(player_b), week_key, week_label
            )
            self._undo.clear()
            self._closed = False
            logger.info(
                "Started match %s vs %s to %d (week=%s)",
                self._state.players[0].name,
                self._state.players[1].name,
                target_score,
                week_key,
            )
            return self._state

    def _require_open(self, name: str) -> None:
        if self._closed:
            raise MatchClosed(f"Cannot {name}: match already finished")

    def _transition(self, name: str, fn: Callable[[GameState], GameState]) -> GameState:
        with self._lock:
            self._require_open(name)
            current = self.state
            try:
                nxt = fn(current)
            except rules.InvalidActionForPhase as e:
                logger.warning("Rejected %s: %s", name, e)
                raise
            self._undo.append(current)
            self._state = nxt
            if current.winner_index is None and nxt.winner_index is not None:
                logger.info("Winner: %s", nxt.players[nxt.winner_index].name)
            return nxt

    # ---------- Actions ----------

    def apply(self, action: Action) -> GameState:
        action = Action(action)
        return self._transition(action.value, lambda g: rules.apply_action(g, action))

    def opening(self, op: OpeningOperation) -> GameState:
        op = OpeningOperation(op)
        return self._transition(op.value, lambda g: rules.apply_opening(g, op))

    def opening_legal_break(self) -> GameState:
        return self.opening(OpeningOperation.LEGAL_BREAK)

    def opening_legal_break_with_ball(self) -> GameState:
        return self.opening(OpeningOperation.LEGAL_BREAK_WITH_BALL)

    def opening_break_foul(self) -> GameState:
        return self.opening(OpeningOperation.BREAK_FOUL)

    def opening_opponent_accepts_table(self) -> GameState:
        return self.opening(OpeningOperation.OPPONENT_ACCEPTS_TABLE)

    def opening_force_rerack(self) -> GameState:
        return self.opening(OpeningOperation.FORCE_RERACK)

    def undo(self) -> GameState:
        """Restore the snapshot before the last operation. No-op when empty."""
        with self._lock:
            self._require_open("undo")
            if self._undo:
                self._state = self._undo.pop()
            return self.state

    # ---------- Finish ----------

    def finalize_turn_if_needed(self) -> GameState:
        """Flush unlogged activity so high runs include the last turn."""
        with self._lock:
            current = self.state
            if not current.has_turn_activity:
                return current
            return self._transition("finalize_turn", rules.finalize_turn)

    def finish_match(self) -> MatchResult:
        with self._lock:
            g = self.state
            a, b = g.players
            winner_name = g.players[g.winner_index].name if g.winner_index is not None else "-"
            result = MatchResult(
                week_key=g.week_key,
                week_label=g.week_label,
                a_name=a.name,
                a_score=a.score,
                b_name=b.name,
                b_score=b.score,
                winner_name=winner_name,
                high_run=rules.high_run(g),
            )
            self.history.append(result)
            logger.info("Finished match %s %d - %d %s", a.name, a.score, b.score, b.name)
            return result

    def build_history_row(self, now: datetime | None = None) -> MatchHistoryRow:
        """
        Record for the match store. Requires a decided match and roster ids
        for both players.
        """
        return _history_row(self.state, now)

    def save_match_to_history(self, store: MatchStore, now: datetime | None = None) -> MatchHistoryRow:
        with self._lock:
            row = self.build_history_row(now)
            store.append(row)
            logger.info("Saved match %s vs %s to history", row.roster_a, row.roster_b)
            return row

    def finish_and_save(
        self, store: MatchStore | None = None, now: datetime | None = None
    ) -> tuple[MatchResult, MatchHistoryRow | None]:
        """
        Flush the last turn, record the result and hand it to store, all under
        one hold of the lock. The row is checked against the flushed snapshot
        before anything changes, so MissingPlayerIdentity or MatchNotDecided
        leave the live match exactly as it was. Closes the session; a second
        call raises MatchClosed.
        """
        with self._lock:
            self._require_open("finish")
            row = _history_row(rules.finalize_turn(self.state), now) if store is not None else None
            self.finalize_turn_if_needed()
            if row is not None:
                store.append(row)
                logger.info("Saved match %s vs %s to history", row.roster_a, row.roster_b)
            result = self.finish_match()
            self._closed = True
            return result, row


def _history_row(g: GameState, now: datetime | None) -> MatchHistoryRow:
    if g.winner_index is None:
        raise MatchNotDecided("Match has no winner yet")
    a, b = g.players
    missing = [p.name for p in (a, b) if p.id is None]
    if missing:
        raise MissingPlayerIdentity(f"Players without roster id: {', '.join(missing)}")
    ts = (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    return MatchHistoryRow(
        timestamp_iso=ts,
        week=week_to_int(g.week_key),
        roster_a=a.id,
        roster_b=b.id,
        score_a=a.score,
        score_b=b.score,
        high_run_a=rules.high_run_for_player(g, 0),
        high_run_b=rules.high_run_for_player(g, 1),
        innings=g.innings,
        counts_for_standings=False,
        note=None,
    )
