from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from discflip.engine import CellState, Phase, Result, TurnController

from .agent import AIAgent


@dataclass
class SelfPlayResult:
    result: Result
    black_discs: int
    white_discs: int
    plies: int
    passes: int


def play_game(
    black: AIAgent,
    white: AIAgent,
    controller: Optional[TurnController] = None,
) -> SelfPlayResult:
    """Play one full game between two agents, resolving passes immediately.

    A supplied controller is reset with ``new_game()`` so its tally keeps
    counting across calls.
    """
    controller = controller if controller is not None else TurnController()
    state = controller.new_game()
    agents: Dict[CellState, AIAgent] = {CellState.BLACK: black, CellState.WHITE: white}
    plies = 0
    passes = 0

    while state.phase is not Phase.TERMINAL:
        if state.phase is Phase.RESOLVING_PASS:
            controller.resolve_pass()
            passes += 1
            continue
        agent = agents[state.mover]
        coord = agent.select_move(state.board, state.mover)
        if coord is None:
            raise RuntimeError(f"{state.mover.value} has no move while awaiting one")
        outcome = controller.apply_move(coord)
        if not outcome.accepted:
            raise RuntimeError(f"Agent proposed a rejected move: {coord} ({outcome.reason})")
        plies += 1

    if state.result is None:
        raise RuntimeError("Game ended without a result")
    return SelfPlayResult(
        result=state.result,
        black_discs=state.board.count(CellState.BLACK),
        white_discs=state.board.count(CellState.WHITE),
        plies=plies,
        passes=passes,
    )
