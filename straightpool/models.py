"""
Data models for the straight-pool (14.1) scorer.
Domain objects only: no persistence or API logic.

Game snapshots are frozen: every rule produces a new GameState, which is what
makes undo a plain stack of prior states.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


# ---------- Enums ----------
class RackMode(str, Enum):
    """Opening rack holds 15 balls; later racks are 14 plus the spotted break ball."""
    OPENING_15 = "opening_15"
    CONTINUOUS_14_PLUS_1 = "continuous_14_plus_1"


class GamePhase(str, Enum):
    """Opening -> (await choice after break foul) -> scoring. Scoring is terminal."""
    OPENING = "opening"
    AWAIT_CHOICE_AFTER_BREAK_FOUL = "await_choice_after_break_foul"
    SCORING = "scoring"


class Action(str, Enum):
    """Table-play actions, valid while phase is scoring."""
    POCKET_BALL = "pocket_ball"
    FOUL = "foul"
    FOUL_BALL_DROPPED = "foul_ball_dropped"
    DELIBERATE_FOUL = "deliberate_foul"
    SAFETY = "safety"
    END_TURN = "end_turn"


class OpeningOperation(str, Enum):
    """Opening-break adjudication, valid before the first legal break only."""
    LEGAL_BREAK = "legal_break"
    LEGAL_BREAK_WITH_BALL = "legal_break_with_ball"
    BREAK_FOUL = "break_foul"
    OPPONENT_ACCEPTS_TABLE = "opponent_accepts_table"
    FORCE_RERACK = "force_rerack"


# ---------- Player ----------
@dataclass(frozen=True)
class Player:
    """
    One seat in the match. id is the roster id when the player came from the
    roster; free-typed names have no id and cannot be saved to history.
    """
    id: int | None = None
    name: str = "Player"
    score: int = 0
    fouls_in_a_row: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "fouls_in_a_row": self.fouls_in_a_row,
        }


# ---------- Inning log ----------
@dataclass(frozen=True)
class InningEntry:
    """One finished turn. Append-only; order is significant for high runs."""
    number: int
    player_index: int  # 0 = A, 1 = B
    balls: int
    fouls: int
    break_fouls: int
    points_delta: int  # balls - fouls - 2*break_fouls

    @classmethod
    def build(cls, number: int, player_index: int, balls: int, fouls: int, break_fouls: int) -> InningEntry:
        return cls(
            number=number,
            player_index=player_index,
            balls=balls,
            fouls=fouls,
            break_fouls=break_fouls,
            points_delta=balls - fouls - 2 * break_fouls,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "player_index": self.player_index,
            "balls": self.balls,
            "fouls": self.fouls,
            "break_fouls": self.break_fouls,
            "points_delta": self.points_delta,
        }


# ---------- Game state (aggregate root) ----------
@dataclass(frozen=True)
class GameState:
    """
    Full match snapshot. Mutated only by the functions in straightpool.rules,
    each of which returns a new instance.
    """
    target_score: int = 125
    target_locked: bool = False

    innings: int = 1
    at_table_index: int = 0
    players: tuple[Player, Player] = (Player(name="Player A"), Player(name="Player B"))

    # Opening / scoring phase
    phase: GamePhase = GamePhase.OPENING
    breaker_index: int = 0

    # 14.1 rack bookkeeping
    rack_number: int = 1
    balls_down_in_rack: int = 0
    rack_balls_remaining: int = 15
    rack_mode: RackMode = RackMode.OPENING_15

    # Per-turn counters & log
    inning_counter: int = 0
    current_balls: int = 0
    current_fouls: int = 0
    current_break_fouls: int = 0
    log: tuple[InningEntry, ...] = field(default_factory=tuple)

    # Session metadata + winner
    week_key: str | None = None
    week_label: str | None = None
    winner_index: int | None = None
    post_win: bool = False

    @property
    def active_player(self) -> Player:
        return self.players[self.at_table_index]

    @property
    def has_turn_activity(self) -> bool:
        return (self.current_balls + self.current_fouls + self.current_break_fouls) > 0

    @staticmethod
    def opponent_index(index: int) -> int:
        return (index + 1) % 2

    def with_player(self, index: int, player: Player) -> GameState:
        players = list(self.players)
        players[index] = player
        return replace(self, players=(players[0], players[1]))

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_score": self.target_score,
            "target_locked": self.target_locked,
            "innings": self.innings,
            "at_table_index": self.at_table_index,
            "players": [p.to_dict() for p in self.players],
            "phase": self.phase.value,
            "breaker_index": self.breaker_index,
            "rack_number": self.rack_number,
            "balls_down_in_rack": self.balls_down_in_rack,
            "rack_balls_remaining": self.rack_balls_remaining,
            "rack_mode": self.rack_mode.value,
            "inning_counter": self.inning_counter,
            "current_balls": self.current_balls,
            "current_fouls": self.current_fouls,
            "current_break_fouls": self.current_break_fouls,
            "log": [e.to_dict() for e in self.log],
            "week_key": self.week_key,
            "week_label": self.week_label,
            "winner_index": self.winner_index,
            "post_win": self.post_win,
        }


# ---------- Finished match ----------
@dataclass(frozen=True)
class MatchResult:
    """In-memory summary appended by MatchSession.finish_match."""
    week_key: str | None
    week_label: str | None
    a_name: str
    a_score: int
    b_name: str
    b_score: int
    winner_name: str  # "-" when no winner
    high_run: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_key": self.week_key,
            "week_label": self.week_label,
            "a_name": self.a_name,
            "a_score": self.a_score,
            "b_name": self.b_name,
            "b_score": self.b_score,
            "winner_name": self.winner_name,
            "high_run": self.high_run,
        }


@dataclass
class MatchHistoryRow:
    """
    Hand-off record for the match store. counts_for_standings is always False
    when built by the engine; an admin flips it later.
    """
    timestamp_iso: str
    week: int | None
    roster_a: int
    roster_b: int
    score_a: int
    score_b: int
    high_run_a: int | None
    high_run_b: int | None
    innings: int | None
    counts_for_standings: bool = False
    note: str | None = None
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp_iso": self.timestamp_iso,
            "week": self.week,
            "roster_a": self.roster_a,
            "roster_b": self.roster_b,
            "score_a": self.score_a,
            "score_b": self.score_b,
            "high_run_a": self.high_run_a,
            "high_run_b": self.high_run_b,
            "innings": self.innings,
            "counts_for_standings": self.counts_for_standings,
            "note": self.note,
        }
        if self.id is not None:
            d["id"] = self.id
        return d


# ---------- Roster ----------
@dataclass
class RosterPlayer:
    """League roster entry. Contact fields are optional."""
    id: int
    name: str
    phone: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
        }
