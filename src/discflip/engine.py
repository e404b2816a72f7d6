"""Core rules engine for discflip, an 8x8 disc-flipping game.

The engine is deterministic and UI-agnostic so it can be shared by the
sequencer, the server and headless self-play. Coordinates are zero-based
tuples (row, col) but helpers for algebraic-style strings (e.g. "D3") are
provided for API friendliness.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

BOARD_SIZE = 8
COLUMNS = "ABCDEFGH"
Coord = Tuple[int, int]  # (row, col), zero-based


class OutOfRangeError(ValueError):
    """Raised when a coordinate falls outside the 8x8 grid."""


class CellState(str, Enum):
    EMPTY = "empty"
    BLACK = "black"
    WHITE = "white"

    def opponent(self) -> "CellState":
        if self is CellState.EMPTY:
            raise ValueError("Empty cells have no opponent")
        return CellState.WHITE if self is CellState.BLACK else CellState.BLACK


class Phase(str, Enum):
    AWAITING_MOVE = "awaiting_move"
    RESOLVING_PASS = "resolving_pass"
    TERMINAL = "terminal"


class Result(str, Enum):
    BLACK_WINS = "black_wins"
    WHITE_WINS = "white_wins"
    DRAW = "draw"


# Scan order matters: flips are reported in this order.
DIRECTIONS: Sequence[Coord] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)
CORNERS: Sequence[Coord] = (
    (0, 0),
    (0, BOARD_SIZE - 1),
    (BOARD_SIZE - 1, 0),
    (BOARD_SIZE - 1, BOARD_SIZE - 1),
)

_SYMBOLS: Dict[str, CellState] = {
    ".": CellState.EMPTY,
    "B": CellState.BLACK,
    "W": CellState.WHITE,
}
_CHARS: Dict[CellState, str] = {state: ch for ch, state in _SYMBOLS.items()}


def coord_in_bounds(coord: Coord) -> bool:
    row, col = coord
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


def coord_to_notation(coord: Coord) -> str:
    row, col = coord
    return f"{COLUMNS[col]}{row + 1}"


def notation_to_coord(token: str) -> Coord:
    if len(token) < 2:
        raise ValueError(f"Invalid coordinate token: {token}")
    col_char, row_str = token[0].upper(), token[1:]
    if col_char not in COLUMNS:
        raise ValueError(f"Invalid column: {col_char}")
    try:
        row = int(row_str) - 1
    except ValueError:
        raise ValueError(f"Invalid row: {row_str}") from None
    coord = (row, COLUMNS.index(col_char))
    if not coord_in_bounds(coord):
        raise ValueError(f"Out of bounds coordinate: {token}")
    return coord


def is_corner(coord: Coord) -> bool:
    return coord in CORNERS


class Board:
    """8x8 grid of cell ownership. Storage and counting only, no rules."""

    __slots__ = ("_cells",)

    def __init__(self, cells: Optional[Iterable[Iterable[CellState]]] = None) -> None:
        if cells is None:
            self._cells = [[CellState.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]
            return
        self._cells = [list(row) for row in cells]
        if len(self._cells) != BOARD_SIZE or any(len(r) != BOARD_SIZE for r in self._cells):
            raise ValueError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}")

    @classmethod
    def initial(cls) -> "Board":
        board = cls()
        board.set((3, 3), CellState.WHITE)
        board.set((3, 4), CellState.BLACK)
        board.set((4, 3), CellState.BLACK)
        board.set((4, 4), CellState.WHITE)
        return board

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "Board":
        """Build a board from eight strings of '.', 'B' and 'W'."""
        try:
            return cls([_SYMBOLS[ch] for ch in row.strip()] for row in rows)
        except KeyError as exc:
            raise ValueError(f"Unknown board symbol: {exc.args[0]!r}") from None

    def get(self, coord: Coord) -> CellState:
        if not coord_in_bounds(coord):
            raise OutOfRangeError(f"Coordinate out of range: {coord}")
        row, col = coord
        return self._cells[row][col]

    def set(self, coord: Coord, state: CellState) -> None:
        if not coord_in_bounds(coord):
            raise OutOfRangeError(f"Coordinate out of range: {coord}")
        row, col = coord
        self._cells[row][col] = state

    def count(self, state: CellState) -> int:
        return sum(1 for row in self._cells for cell in row if cell is state)

    def copy(self) -> "Board":
        return Board(self._cells)

    def rows(self) -> List[List[CellState]]:
        return [list(row) for row in self._cells]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        return "Board(\n" + "\n".join("".join(_CHARS[c] for c in row) for row in self._cells) + "\n)"


def compute_flips(board: Board, coord: Coord, mover: CellState) -> List[Coord]:
    """Return opponent discs captured by mover placing at coord.

    The caller must check that coord is empty; captures are never computed
    for an occupied cell.
    """
    opponent = mover.opponent()
    flips: List[Coord] = []
    for dr, dc in DIRECTIONS:
        run: List[Coord] = []
        cursor = (coord[0] + dr, coord[1] + dc)
        while coord_in_bounds(cursor) and board.get(cursor) is opponent:
            run.append(cursor)
            cursor = (cursor[0] + dr, cursor[1] + dc)
        if run and coord_in_bounds(cursor) and board.get(cursor) is mover:
            flips.extend(run)
    return flips


def is_legal(board: Board, coord: Coord, mover: CellState) -> bool:
    if board.get(coord) is not CellState.EMPTY:
        return False
    return bool(compute_flips(board, coord, mover))


def legal_moves(board: Board, mover: CellState) -> List[Coord]:
    """Row-major list of every coord where mover may play."""
    return [
        (row, col)
        for row in range(BOARD_SIZE)
        for col in range(BOARD_SIZE)
        if is_legal(board, (row, col), mover)
    ]


@dataclass(frozen=True)
class Move:
    coord: Coord
    flips: Tuple[Coord, ...]
    mover: CellState


@dataclass
class MatchTally:
    black_wins: int = 0
    white_wins: int = 0

    def record(self, result: Result) -> None:
        if result is Result.BLACK_WINS:
            self.black_wins += 1
        elif result is Result.WHITE_WINS:
            self.white_wins += 1


@dataclass
class GameState:
    board: Board
    mover: CellState = CellState.BLACK
    phase: Phase = Phase.AWAITING_MOVE
    result: Optional[Result] = None
    history: List[Move] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.phase is not Phase.TERMINAL


@dataclass(frozen=True)
class MoveOutcome:
    accepted: bool
    move: Optional[Move] = None
    passed: Optional[CellState] = None
    result: Optional[Result] = None
    reason: Optional[str] = None

    @property
    def flips(self) -> Tuple[Coord, ...]:
        return self.move.flips if self.move is not None else ()


@dataclass(frozen=True)
class Status:
    mover: CellState
    phase: Phase
    result: Optional[Result] = None


def initial_state() -> GameState:
    return GameState(board=Board.initial())


def determine_result(board: Board) -> Result:
    black = board.count(CellState.BLACK)
    white = board.count(CellState.WHITE)
    if black > white:
        return Result.BLACK_WINS
    if white > black:
        return Result.WHITE_WINS
    return Result.DRAW


class TurnController:
    """Owns the authoritative GameState and every transition on it.

    The match tally lives on the controller, not the game, so it survives
    ``new_game()``.
    """

    def __init__(self, state: Optional[GameState] = None, tally: Optional[MatchTally] = None) -> None:
        self.tally = tally if tally is not None else MatchTally()
        self.state = state if state is not None else initial_state()

    def new_game(self) -> GameState:
        self.state = initial_state()
        return self.state

    def apply_move(self, coord: Coord) -> MoveOutcome:
        state = self.state
        if state.phase is not Phase.AWAITING_MOVE:
            return MoveOutcome(accepted=False, reason="phase")
        mover = state.mover
        if not is_legal(state.board, coord, mover):
            return MoveOutcome(accepted=False, reason="illegal")

        flips = compute_flips(state.board, coord, mover)
        state.board.set(coord, mover)
        for pos in flips:
            state.board.set(pos, mover)
        move = Move(coord=coord, flips=tuple(flips), mover=mover)
        state.history.append(move)

        next_mover = mover.opponent()
        if legal_moves(state.board, next_mover):
            state.mover = next_mover
            return MoveOutcome(accepted=True, move=move)

        if not legal_moves(state.board, mover):
            result = determine_result(state.board)
            state.mover = next_mover
            state.phase = Phase.TERMINAL
            state.result = result
            self.tally.record(result)
            logger.info(
                "Game over: %s (black=%d white=%d)",
                result.value,
                state.board.count(CellState.BLACK),
                state.board.count(CellState.WHITE),
            )
            return MoveOutcome(accepted=True, move=move, result=result)

        state.mover = next_mover
        state.phase = Phase.RESOLVING_PASS
        logger.debug("%s has no legal move and must pass", next_mover.value)
        return MoveOutcome(accepted=True, move=move, passed=next_mover)

    def resolve_pass(self) -> CellState:
        """Hand the turn back after a forced pass; returns the new mover."""
        state = self.state
        if state.phase is not Phase.RESOLVING_PASS:
            raise ValueError("No pass is pending")
        state.mover = state.mover.opponent()
        state.phase = Phase.AWAITING_MOVE
        return state.mover

    def legal_moves(self, mover: Optional[CellState] = None) -> List[Coord]:
        return legal_moves(self.state.board, mover or self.state.mover)

    def status(self) -> Status:
        return Status(mover=self.state.mover, phase=self.state.phase, result=self.state.result)

    def scores(self) -> Dict[str, int]:
        board = self.state.board
        return {
            "black": board.count(CellState.BLACK),
            "white": board.count(CellState.WHITE),
        }

    def match_tally(self) -> Dict[str, int]:
        return {"black_wins": self.tally.black_wins, "white_wins": self.tally.white_wins}


def serialize_state(state: GameState) -> Dict:
    """Serialize GameState to a JSON-friendly dict."""
    return {
        "mover": state.mover.value,
        "phase": state.phase.value,
        "result": state.result.value if state.result else None,
        "scores": {
            "black": state.board.count(CellState.BLACK),
            "white": state.board.count(CellState.WHITE),
        },
        "history": [
            {
                "coord": coord_to_notation(m.coord),
                "mover": m.mover.value,
                "flips": [coord_to_notation(p) for p in m.flips],
            }
            for m in state.history
        ],
        "board": ["".join(_CHARS[c] for c in row) for row in state.board.rows()],
    }
