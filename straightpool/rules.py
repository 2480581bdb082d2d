"""
Straight-pool (14.1) rules engine.

Pure transition functions: each takes a GameState and returns the next one.
No I/O, no undo bookkeeping (that lives in services.match_session).

  Opening break:  legal break / legal break with called ball / breaking foul (-2)
                  -> opponent accepts table or forces a re-rack
  Table play:     pocket ball (+1), foul (-1), deliberate foul (-16),
                  safety, end turn
  Third foul:     flat -15 instead of the action's own penalty, streak reset,
                  fresh 15-ball rack, fouling player stays at the table
  Racks:          14 balls down rolls the rack (break ball stays up)
  Winner:         first to reach target; later balls still count for high run
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable

from straightpool.models import (
    Action,
    GamePhase,
    GameState,
    InningEntry,
    OpeningOperation,
    Player,
    RackMode,
)

# ---------- Constants ----------
DEFAULT_TARGET_SCORE = 125
OPENING_RACK_BALLS = 15
RACK_ROLLOVER_BALLS = 14
FOUL_PENALTY = 1
DELIBERATE_FOUL_PENALTY = 16
BREAK_FOUL_PENALTY = 2
THREE_FOUL_PENALTY = 15
MAX_FOUL_STREAK = 2  # a foul arriving at this streak is the third in a row


# ---------- Exceptions ----------


class InvalidActionForPhase(ValueError):
    """Action or opening operation issued in a phase that does not allow it."""

    def __init__(self, operation: str, phase: GamePhase, allowed: Iterable[GamePhase]) -> None:
        self.operation = operation
        self.phase = phase
        self.allowed = tuple(allowed)
        allowed_s = ", ".join(p.value for p in self.allowed)
        super().__init__(f"Cannot apply {operation} in phase {phase.value} (allowed: {allowed_s})")


# ---------- Start ----------


def start_state(
    target_score: int,
    player_a: Player,
    player_b: Player,
    week_key: str | None = None,
    week_label: str | None = None,
) -> GameState:
    """Fresh match: A breaks the 15-ball opening rack. Target is fixed at setup."""
    return GameState(
        target_score=target_score,
        target_locked=True,
        players=(
            Player(id=player_a.id, name=player_a.name),
            Player(id=player_b.id, name=player_b.name),
        ),
        week_key=week_key,
        week_label=week_label,
        phase=GamePhase.OPENING,
        breaker_index=0,
        at_table_index=0,
    )


# ---------- Shared steps ----------


def lock_target_if_needed(g: GameState, had_activity: bool = True) -> GameState:
    if not g.target_locked and had_activity:
        return replace(g, target_locked=True)
    return g


def check_winner(g: GameState) -> GameState:
    """Set once, never cleared: the player at the table reaching target wins."""
    if g.winner_index is not None:
        return g
    i = g.at_table_index
    if g.players[i].score >= g.target_score:
        return replace(g, winner_index=i, post_win=True)
    return g


def _cleared_turn(g: GameState) -> GameState:
    return replace(g, current_balls=0, current_fouls=0, current_break_fouls=0)


def _fresh_rack(g: GameState) -> GameState:
    return replace(g, balls_down_in_rack=0, rack_balls_remaining=OPENING_RACK_BALLS)


def end_turn_now(g: GameState, had_activity: bool) -> GameState:
    """
    Close the current turn: log it if anything happened, pass the table,
    and bump innings when the second seat finishes.
    """
    next_innings = g.innings + 1 if g.at_table_index == 1 else g.innings
    log = g.log
    inning_counter = g.inning_counter
    if had_activity:
        inning_counter += 1
        log = log + (
            InningEntry.build(
                number=inning_counter,
                player_index=g.at_table_index,
                balls=g.current_balls,
                fouls=g.current_fouls,
                break_fouls=g.current_break_fouls,
            ),
        )
    return replace(
        _cleared_turn(g),
        at_table_index=g.opponent_index(g.at_table_index),
        innings=next_innings,
        inning_counter=inning_counter,
        log=log,
    )


# ---------- Opening break ----------


def _require_phase(g: GameState, operation: str, *allowed: GamePhase) -> None:
    if g.phase not in allowed:
        raise InvalidActionForPhase(operation, g.phase, allowed)


def legal_break(g: GameState) -> GameState:
    """Legal break, nothing called made: opponent comes to the table."""
    _require_phase(g, OpeningOperation.LEGAL_BREAK.value, GamePhase.OPENING)
    return lock_target_if_needed(
        replace(
            _cleared_turn(g),
            phase=GamePhase.SCORING,
            at_table_index=g.opponent_index(g.breaker_index),
        )
    )


def legal_break_with_ball(g: GameState) -> GameState:
    """Legal break with the called ball made: breaker continues."""
    _require_phase(g, OpeningOperation.LEGAL_BREAK_WITH_BALL.value, GamePhase.OPENING)
    return lock_target_if_needed(
        replace(
            _cleared_turn(g),
            phase=GamePhase.SCORING,
            at_table_index=g.breaker_index,
        )
    )


def break_foul(g: GameState) -> GameState:
    """
    Breaking foul. First and second in a row cost 2 and hand the opponent a
    choice; the third costs a flat 15 and the same breaker re-breaks.
    """
    _require_phase(g, OpeningOperation.BREAK_FOUL.value, GamePhase.OPENING)
    i = g.breaker_index
    p = g.players[i]
    before = p.fouls_in_a_row
    if before >= MAX_FOUL_STREAK:
        cleared = replace(p, score=p.score - THREE_FOUL_PENALTY, fouls_in_a_row=0)
        ng = _cleared_turn(_fresh_rack(g.with_player(i, cleared)))
        return lock_target_if_needed(replace(ng, phase=GamePhase.OPENING))
    after = replace(p, score=p.score - BREAK_FOUL_PENALTY, fouls_in_a_row=before + 1)
    ng = g.with_player(i, after)
    return lock_target_if_needed(
        replace(
            ng,
            phase=GamePhase.AWAIT_CHOICE_AFTER_BREAK_FOUL,
            current_break_fouls=g.current_break_fouls + 1,
        )
    )


def opponent_accepts_table(g: GameState) -> GameState:
    """
    Opponent takes the table as it lies. The breaker's break fouls are logged
    under the breaker before the table passes.
    """
    _require_phase(
        g, OpeningOperation.OPPONENT_ACCEPTS_TABLE.value, GamePhase.AWAIT_CHOICE_AFTER_BREAK_FOUL
    )
    at_breaker = replace(g, at_table_index=g.breaker_index)
    ng = end_turn_now(at_breaker, had_activity=at_breaker.has_turn_activity)
    return lock_target_if_needed(replace(ng, phase=GamePhase.SCORING))


def force_rerack(g: GameState) -> GameState:
    """Opponent makes the same breaker break again from a fresh rack."""
    _require_phase(
        g, OpeningOperation.FORCE_RERACK.value, GamePhase.AWAIT_CHOICE_AFTER_BREAK_FOUL
    )
    ng = _cleared_turn(_fresh_rack(g))
    return replace(ng, phase=GamePhase.OPENING, at_table_index=g.breaker_index)


_OPENING_HANDLERS: dict[OpeningOperation, Callable[[GameState], GameState]] = {
    OpeningOperation.LEGAL_BREAK: legal_break,
    OpeningOperation.LEGAL_BREAK_WITH_BALL: legal_break_with_ball,
    OpeningOperation.BREAK_FOUL: break_foul,
    OpeningOperation.OPPONENT_ACCEPTS_TABLE: opponent_accepts_table,
    OpeningOperation.FORCE_RERACK: force_rerack,
}


def apply_opening(g: GameState, op: OpeningOperation) -> GameState:
    """Dispatch one opening-break operation, then run the winner check."""
    return check_winner(_OPENING_HANDLERS[OpeningOperation(op)](g))


# ---------- Table play ----------


def pocket_ball(g: GameState) -> GameState:
    """
    +1 for the shooter unless the match is already decided. Balls always count
    toward the rack and the current run. Turn continues.
    """
    i = g.at_table_index
    cur = g.players[i]
    match_over = g.winner_index is not None or g.post_win
    new_score = cur.score if match_over else cur.score + 1
    updated = replace(cur, score=new_score, fouls_in_a_row=0)

    balls_down = g.balls_down_in_rack + 1
    rack_done = balls_down >= RACK_ROLLOVER_BALLS
    won_now = not match_over and new_score >= g.target_score

    ng = replace(
        g.with_player(i, updated),
        balls_down_in_rack=0 if rack_done else balls_down,
        rack_balls_remaining=OPENING_RACK_BALLS if rack_done else OPENING_RACK_BALLS - balls_down,
        rack_number=g.rack_number + 1 if rack_done else g.rack_number,
        rack_mode=RackMode.CONTINUOUS_14_PLUS_1 if rack_done else g.rack_mode,
        current_balls=g.current_balls + 1,
        winner_index=i if won_now else g.winner_index,
        post_win=True if won_now else g.post_win,
    )
    return lock_target_if_needed(ng)


def apply_foul(g: GameState, base_penalty: int) -> GameState:
    """
    Generic foul. The third in a row replaces base_penalty with a flat -15,
    re-racks all 15 balls and keeps the fouler at the table; otherwise the
    penalty applies and the turn passes.
    """
    i = g.at_table_index
    active = g.players[i]
    before = active.fouls_in_a_row
    if before >= MAX_FOUL_STREAK:
        cleared = replace(active, score=active.score - THREE_FOUL_PENALTY, fouls_in_a_row=0)
        ng = _cleared_turn(_fresh_rack(g.with_player(i, cleared)))
        return lock_target_if_needed(
            replace(ng, rack_number=g.rack_number + 1, rack_mode=RackMode.OPENING_15)
        )
    after = replace(active, score=active.score - base_penalty, fouls_in_a_row=before + 1)
    ng = replace(g.with_player(i, after), current_fouls=g.current_fouls + 1)
    return lock_target_if_needed(end_turn_now(ng, had_activity=True))


def foul(g: GameState) -> GameState:
    return apply_foul(g, FOUL_PENALTY)


def foul_ball_dropped(g: GameState) -> GameState:
    return apply_foul(g, FOUL_PENALTY)


def deliberate_foul(g: GameState) -> GameState:
    return apply_foul(g, DELIBERATE_FOUL_PENALTY)


def safety(g: GameState) -> GameState:
    """Safety clears the shooter's foul streak and ends the turn."""
    i = g.at_table_index
    cleared = replace(g.players[i], fouls_in_a_row=0)
    ng = g.with_player(i, cleared)
    return lock_target_if_needed(end_turn_now(ng, had_activity=ng.has_turn_activity))


def end_turn(g: GameState) -> GameState:
    had_activity = g.has_turn_activity
    return lock_target_if_needed(end_turn_now(g, had_activity), had_activity)


_ACTION_HANDLERS: dict[Action, Callable[[GameState], GameState]] = {
    Action.POCKET_BALL: pocket_ball,
    Action.FOUL: foul,
    Action.FOUL_BALL_DROPPED: foul_ball_dropped,
    Action.DELIBERATE_FOUL: deliberate_foul,
    Action.SAFETY: safety,
    Action.END_TURN: end_turn,
}


def apply_action(g: GameState, action: Action) -> GameState:
    """Apply one table-play action (scoring phase only), then run the winner check."""
    action = Action(action)
    _require_phase(g, action.value, GamePhase.SCORING)
    return check_winner(_ACTION_HANDLERS[action](g))


def finalize_turn(g: GameState) -> GameState:
    """Flush an in-progress turn into the log; no-op when nothing happened."""
    if not g.has_turn_activity:
        return g
    return end_turn_now(g, had_activity=True)


# ---------- High run ----------


def high_run(g: GameState | Iterable[InningEntry], player_index: int | None = None) -> int:
    """Largest single-turn ball count in the log (overall or for one seat). 0 if none."""
    entries = g.log if isinstance(g, GameState) else g
    return max(
        (e.balls for e in entries if player_index is None or e.player_index == player_index),
        default=0,
    )


def high_run_for_player(g: GameState, player_index: int) -> int | None:
    """Like high_run, but None when the player has no logged turns."""
    runs = [e.balls for e in g.log if e.player_index == player_index]
    return max(runs) if runs else None
