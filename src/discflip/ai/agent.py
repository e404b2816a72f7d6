from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Union

from discflip.config import default_policy
from discflip.engine import Board, CellState, Coord, compute_flips, is_corner, legal_moves

logger = logging.getLogger(__name__)


class Policy(str, Enum):
    BASIC = "basic"
    GREEDY_CORNER = "greedy-corner"


@dataclass(frozen=True)
class Candidate:
    coord: Coord
    flip_count: int


def annotate(board: Board, mover: CellState) -> List[Candidate]:
    """Legal moves for mover in row-major order, each with its flip count."""
    return [
        Candidate(coord=coord, flip_count=len(compute_flips(board, coord, mover)))
        for coord in legal_moves(board, mover)
    ]


class AIAgent:
    """Picks one move for the automated side using a selectable heuristic."""

    def __init__(
        self,
        policy: Union[Policy, str, None] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.policy = Policy(policy if policy is not None else default_policy())
        self.rng = rng if rng is not None else random.Random(seed)

    def choose(
        self,
        candidates: Sequence[Candidate],
        policy: Union[Policy, str, None] = None,
    ) -> Coord:
        if not candidates:
            raise ValueError("No candidate moves to choose from")
        policy = Policy(policy) if policy is not None else self.policy
        if policy is Policy.BASIC:
            return self.rng.choice(candidates).coord

        corners = [c for c in candidates if is_corner(c.coord)]
        if corners:
            return self.rng.choice(corners).coord
        # max() keeps the first of equal keys, so ties go to row-major order.
        return max(candidates, key=lambda c: c.flip_count).coord

    def select_move(
        self,
        board: Board,
        mover: CellState,
        policy: Union[Policy, str, None] = None,
    ) -> Optional[Coord]:
        candidates = annotate(board, mover)
        if not candidates:
            return None
        coord = self.choose(candidates, policy)
        logger.debug(
            "%s picked %s among %d candidates (%s)",
            mover.value,
            coord,
            len(candidates),
            Policy(policy).value if policy is not None else self.policy.value,
        )
        return coord
