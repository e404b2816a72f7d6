from __future__ import annotations

import random

import pytest

from discflip.ai.agent import AIAgent, Candidate, Policy, annotate
from discflip.ai.selfplay import play_game
from discflip.config import POLICY_NAMES, default_policy
from discflip.engine import Board, CellState, Result, TurnController, legal_moves


def test_annotate_counts_flips_in_row_major_order():
    candidates = annotate(Board.initial(), CellState.BLACK)
    assert [c.coord for c in candidates] == [(2, 3), (3, 2), (4, 5), (5, 4)]
    assert all(c.flip_count == 1 for c in candidates)


def test_greedy_corner_prefers_corner_over_bigger_capture() -> None:
    agent = AIAgent(policy=Policy.GREEDY_CORNER, seed=7)
    candidates = [
        Candidate(coord=(0, 0), flip_count=1),
        Candidate(coord=(2, 4), flip_count=6),
        Candidate(coord=(5, 5), flip_count=3),
    ]
    for _ in range(20):
        assert agent.choose(candidates) == (0, 0)


def test_greedy_corner_picks_randomly_among_corners() -> None:
    candidates = [
        Candidate(coord=(0, 7), flip_count=1),
        Candidate(coord=(3, 3), flip_count=9),
        Candidate(coord=(7, 0), flip_count=2),
    ]
    picks = {AIAgent(policy="greedy-corner", seed=s).choose(candidates) for s in range(40)}
    assert picks == {(0, 7), (7, 0)}


def test_greedy_without_corner_takes_first_maximum() -> None:
    agent = AIAgent(policy=Policy.GREEDY_CORNER, seed=1)
    candidates = [
        Candidate(coord=(1, 2), flip_count=2),
        Candidate(coord=(2, 5), flip_count=4),
        Candidate(coord=(4, 1), flip_count=4),
        Candidate(coord=(6, 6), flip_count=3),
    ]
    for _ in range(10):
        assert agent.choose(candidates) == (2, 5)


def test_greedy_tie_break_on_opening_is_deterministic() -> None:
    for seed in range(5):
        agent = AIAgent(policy=Policy.GREEDY_CORNER, seed=seed)
        assert agent.select_move(Board.initial(), CellState.BLACK) == (2, 3)


def test_basic_policy_uses_injected_rng() -> None:
    candidates = annotate(Board.initial(), CellState.BLACK)
    first = AIAgent(policy=Policy.BASIC, rng=random.Random(3))
    second = AIAgent(policy=Policy.BASIC, rng=random.Random(3))
    picks_a = [first.choose(candidates) for _ in range(10)]
    picks_b = [second.choose(candidates) for _ in range(10)]
    assert picks_a == picks_b
    assert set(picks_a) <= {c.coord for c in candidates}


def test_policy_override_per_call() -> None:
    agent = AIAgent(policy=Policy.BASIC, seed=0)
    candidates = [Candidate((0, 0), 1), Candidate((3, 3), 5)]
    assert agent.choose(candidates, policy="greedy-corner") == (0, 0)


def test_choose_rejects_empty_input() -> None:
    with pytest.raises(ValueError):
        AIAgent().choose([])


def test_select_move_returns_none_without_legal_moves() -> None:
    board = Board.from_rows(["B......."] + ["........"] * 7)
    assert AIAgent().select_move(board, CellState.WHITE) is None


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        AIAgent(policy="minimax")


def test_selected_move_is_always_legal() -> None:
    controller = TurnController()
    agent = AIAgent(policy=Policy.BASIC, seed=11)
    for _ in range(8):
        state = controller.state
        coord = agent.select_move(state.board, state.mover)
        assert coord in legal_moves(state.board, state.mover)
        assert controller.apply_move(coord).accepted


def test_self_play_reaches_terminal_and_updates_tally() -> None:
    controller = TurnController()
    black = AIAgent(policy=Policy.BASIC, seed=1)
    white = AIAgent(policy=Policy.GREEDY_CORNER, seed=2)
    results = [play_game(black, white, controller) for _ in range(3)]
    tally = controller.match_tally()
    decided = sum(1 for r in results if r.result is not Result.DRAW)
    assert tally["black_wins"] + tally["white_wins"] == decided
    for r in results:
        assert r.black_discs + r.white_discs == 4 + r.plies
        assert r.plies > 0


def test_default_policy_follows_environment(monkeypatch) -> None:
    monkeypatch.setenv("DISCFLIP_DEFAULT_POLICY", " Basic ")
    assert AIAgent().policy is Policy.BASIC
    monkeypatch.delenv("DISCFLIP_DEFAULT_POLICY")
    assert AIAgent().policy is Policy.GREEDY_CORNER


def test_default_policy_rejects_unknown_name() -> None:
    with pytest.raises(ValueError):
        default_policy({"DISCFLIP_DEFAULT_POLICY": "minimax"})
    assert default_policy({}) == "greedy-corner"
    assert set(POLICY_NAMES) == {p.value for p in Policy}
