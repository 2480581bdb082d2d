"""
Score a straight-pool match from the terminal.
Each token is one action, applied in order; the scoreboard is printed after
every step, then the final result.

  python -m straightpool.run_scorer --a Ann --b Bob --target 25 \
      break pocket:5 safety foul pocket:14 end
"""
from __future__ import annotations

import argparse
import logging
import sys

from straightpool.models import Action, GameState, OpeningOperation
from straightpool.rules import DEFAULT_TARGET_SCORE
from straightpool.services import MatchSession

TOKENS: dict[str, Action | OpeningOperation | str] = {
    "break": OpeningOperation.LEGAL_BREAK,
    "break-ball": OpeningOperation.LEGAL_BREAK_WITH_BALL,
    "break-foul": OpeningOperation.BREAK_FOUL,
    "accept": OpeningOperation.OPPONENT_ACCEPTS_TABLE,
    "rerack": OpeningOperation.FORCE_RERACK,
    "pocket": Action.POCKET_BALL,
    "foul": Action.FOUL,
    "drop": Action.FOUL_BALL_DROPPED,
    "deliberate": Action.DELIBERATE_FOUL,
    "safety": Action.SAFETY,
    "end": Action.END_TURN,
    "undo": "undo",
}


def parse_token(token: str) -> tuple[Action | OpeningOperation | str, int]:
    """'pocket:14' -> (POCKET_BALL, 14). Raises ValueError on unknown names."""
    name, _, count = token.partition(":")
    if name not in TOKENS:
        raise ValueError(f"Unknown action '{name}'. Known: {', '.join(TOKENS)}")
    n = int(count) if count else 1
    if n < 1:
        raise ValueError(f"Repeat count must be positive: {token}")
    return TOKENS[name], n


def format_scoreboard(g: GameState) -> str:
    a, b = g.players
    marker = ("*", " ") if g.at_table_index == 0 else (" ", "*")
    line = (
        f"{marker[0]}{a.name} {a.score:>4} (F{a.fouls_in_a_row})  "
        f"{marker[1]}{b.name} {b.score:>4} (F{b.fouls_in_a_row})  "
        f"inn {g.innings}  rack {g.rack_number} [{g.rack_balls_remaining} up]  "
        f"run {g.current_balls}  {g.phase.value}"
    )
    if g.winner_index is not None:
        line += f"  WINNER {g.players[g.winner_index].name}"
    return line


def run(tokens: list[str], name_a: str, name_b: str, target: int) -> MatchSession:
    session = MatchSession()
    session.start_match(target, (None, name_a), (None, name_b))
    print(format_scoreboard(session.state))
    for token in tokens:
        step, n = parse_token(token)
        for _ in range(n):
            if step == "undo":
                session.undo()
            elif isinstance(step, OpeningOperation):
                session.opening(step)
            else:
                session.apply(step)
        print(f"{token:<12} {format_scoreboard(session.state)}")
    result, _ = session.finish_and_save()
    print()
    print("=" * 60)
    print(f"  {result.a_name} {result.a_score} - {result.b_score} {result.b_name}")
    print(f"  Winner: {result.winner_name}   High run: {result.high_run}")
    print("=" * 60)
    return session


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Straight-pool (14.1) console scorer")
    parser.add_argument("actions", nargs="*", help="Actions in order, e.g. break pocket:5 safety")
    parser.add_argument("--a", default="Player A", help="Name of player A (breaks first)")
    parser.add_argument("--b", default="Player B", help="Name of player B")
    parser.add_argument("--target", type=int, default=DEFAULT_TARGET_SCORE, help="Points to win")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log session events")
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        run(args.actions, args.a, args.b, args.target)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
