#!/usr/bin/env python3
"""
Head-to-head evaluator for the automated-opponent heuristics.

Example:
  PYTHONPATH=src python3 scripts/eval_policies.py \
    --challenger greedy-corner \
    --baseline basic \
    --games 200
"""

from __future__ import annotations

import argparse
import math
import os
import sys
from typing import Optional

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from discflip.ai import AIAgent, Policy, play_game
from discflip.engine import Result, TurnController


def elo_from_score(score: float) -> float:
    score = min(0.9999, max(0.0001, score))
    return -400.0 * math.log10((1.0 / score) - 1.0)


def main(argv: Optional[list[str]] = None) -> int:
    choices = [p.value for p in Policy]
    parser = argparse.ArgumentParser(description="Evaluate one heuristic against another.")
    parser.add_argument("--challenger", choices=choices, default=Policy.GREEDY_CORNER.value)
    parser.add_argument("--baseline", choices=choices, default=Policy.BASIC.value)
    parser.add_argument("--games", type=int, default=100, help="Number of games (default: 100).")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42).")
    args = parser.parse_args(argv)

    challenger = AIAgent(policy=args.challenger, seed=args.seed)
    baseline = AIAgent(policy=args.baseline, seed=args.seed + 1)
    controller = TurnController()

    wins = 0
    losses = 0
    draws = 0

    for game_idx in range(args.games):
        # Alternate colors so neither side always moves first.
        challenger_is_black = game_idx % 2 == 0
        if challenger_is_black:
            outcome = play_game(challenger, baseline, controller)
        else:
            outcome = play_game(baseline, challenger, controller)
        if outcome.result is Result.DRAW:
            draws += 1
            continue
        challenger_won = (outcome.result is Result.BLACK_WINS) == challenger_is_black
        if challenger_won:
            wins += 1
        else:
            losses += 1

    total = wins + losses + draws
    score = (wins + 0.5 * draws) / max(1, total)
    elo = elo_from_score(score)
    variance = score * (1.0 - score) / max(1, total)
    ci = 1.96 * math.sqrt(variance)
    elo_lo = elo_from_score(max(0.0001, score - ci))
    elo_hi = elo_from_score(min(0.9999, score + ci))

    print(f"{args.challenger} vs {args.baseline}")
    print(f"Games: {total}  Wins: {wins}  Losses: {losses}  Draws: {draws}")
    print(f"Score: {score:.4f}")
    print(f"Elo estimate: {elo:+.1f} (95% CI: {elo_lo:+.1f} .. {elo_hi:+.1f})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
