"""discflip package."""

from .engine import (  # noqa: F401
    Board,
    CellState,
    GameState,
    MatchTally,
    Move,
    MoveOutcome,
    OutOfRangeError,
    Phase,
    Result,
    TurnController,
    compute_flips,
    initial_state,
    is_legal,
    legal_moves,
    serialize_state,
)
from .ai import AIAgent, Policy  # noqa: F401
from .sequencer import MoveSequencer, SubmitResult  # noqa: F401

__all__ = [
    "__version__",
    "Board",
    "CellState",
    "GameState",
    "MatchTally",
    "Move",
    "MoveOutcome",
    "OutOfRangeError",
    "Phase",
    "Result",
    "TurnController",
    "compute_flips",
    "initial_state",
    "is_legal",
    "legal_moves",
    "serialize_state",
    "AIAgent",
    "Policy",
    "MoveSequencer",
    "SubmitResult",
    "create_app",
]

__version__ = "0.1.0"


def create_app():
    """Lazy import to avoid requiring FastAPI unless requested."""
    from discflip.api import create_app as factory

    return factory()
