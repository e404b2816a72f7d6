"""MoveSequencer: serializes move commits against cosmetic playback.

Every logical change happens synchronously inside ``submit_move``; the
timed part (revealing flips one by one, the pass notice, the pause before
the automated reply) runs as asyncio tasks on the caller's event loop.
Each game carries a generation number so a continuation scheduled for a
game that has since been replaced becomes a no-op.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from discflip.ai.agent import AIAgent, Policy
from discflip.config import Timings
from discflip.engine import (
    CellState,
    Coord,
    GameState,
    Move,
    MoveOutcome,
    Phase,
    Result,
    Status,
    TurnController,
)

logger = logging.getLogger(__name__)

AUTOMATED_COLOR = CellState.WHITE

PlacedCallback = Callable[[Move], None]
FlipCallback = Callable[[Coord, CellState], None]  # coord, new owner
PassCallback = Callable[[CellState], None]  # side that passes
GameOverCallback = Callable[[Result], None]
SettledCallback = Callable[[Status], None]
NewGameCallback = Callable[[GameState], None]


@dataclass
class SequencerEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_placed: List[PlacedCallback] = field(default_factory=list)
    on_flip: List[FlipCallback] = field(default_factory=list)
    on_pass: List[PassCallback] = field(default_factory=list)
    on_game_over: List[GameOverCallback] = field(default_factory=list)
    on_settled: List[SettledCallback] = field(default_factory=list)
    on_new_game: List[NewGameCallback] = field(default_factory=list)


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    flips: Tuple[Coord, ...] = ()
    reason: Optional[str] = None


class MoveSequencer:
    """Front door for move submission.

    ``submit_move``, ``configure`` and ``new_game`` must be called from
    code running on an event loop, since they may schedule continuations.
    """

    def __init__(
        self,
        controller: Optional[TurnController] = None,
        agent: Optional[AIAgent] = None,
        timings: Optional[Timings] = None,
        automated: bool = False,
    ) -> None:
        self.controller = controller if controller is not None else TurnController()
        self.agent = agent if agent is not None else AIAgent()
        self.timings = timings if timings is not None else Timings.from_env()
        self.automated = automated
        self.events = SequencerEvents()
        self._busy = False
        self._generation = 0
        self._opponent_scheduled = False
        self._pending: Optional[asyncio.Task] = None

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> GameState:
        return self.controller.state

    @property
    def committable(self) -> bool:
        """True when a human move submitted now could be accepted."""
        if self._busy:
            return False
        if self.controller.state.phase is not Phase.AWAITING_MOVE:
            return False
        return not self._automated_turn()

    def legal_moves(self, mover: Optional[CellState] = None) -> List[Coord]:
        return self.controller.legal_moves(mover)

    def status(self) -> Status:
        return self.controller.status()

    def scores(self) -> Dict[str, int]:
        return self.controller.scores()

    def match_tally(self) -> Dict[str, int]:
        return self.controller.match_tally()

    # ── Commands ─────────────────────────────────────────────────────────

    def new_game(self) -> GameState:
        self._generation += 1
        self._busy = False
        self._opponent_scheduled = False
        state = self.controller.new_game()
        for cb in self.events.on_new_game:
            cb(state)
        return state

    def configure(
        self,
        automated: Optional[bool] = None,
        policy: Union[Policy, str, None] = None,
    ) -> None:
        if policy is not None:
            self.agent.policy = Policy(policy)
        if automated is not None:
            self.automated = automated
        self._maybe_schedule_opponent()

    def submit_move(self, coord: Coord) -> SubmitResult:
        if self._busy:
            return SubmitResult(accepted=False, reason="busy")
        if self.controller.state.phase is not Phase.AWAITING_MOVE:
            return SubmitResult(accepted=False, reason="phase")
        if self._automated_turn():
            return SubmitResult(accepted=False, reason="opponent")
        return self._commit(coord)

    async def wait_idle(self) -> None:
        """Wait until no continuation is pending."""
        while self._pending is not None and not self._pending.done():
            await asyncio.wait({self._pending})

    def close(self) -> None:
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    # ── Internal helpers ─────────────────────────────────────────────────

    def _automated_turn(self) -> bool:
        return self.automated and self.controller.state.mover is AUTOMATED_COLOR

    def _commit(self, coord: Coord) -> SubmitResult:
        # Resolve the loop first so a missing one fails before the board changes.
        loop = asyncio.get_running_loop()
        outcome = self.controller.apply_move(coord)
        move = outcome.move
        if not outcome.accepted or move is None:
            return SubmitResult(accepted=False, reason=outcome.reason)
        self._busy = True
        for cb in self.events.on_placed:
            cb(move)
        self._schedule(loop, self._playback(self._generation, move, outcome))
        return SubmitResult(accepted=True, flips=move.flips)

    def _schedule(self, loop: asyncio.AbstractEventLoop, coro) -> None:
        task = loop.create_task(coro)
        task.add_done_callback(self._report_failure)
        self._pending = task

    @staticmethod
    def _report_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Sequencer continuation failed", exc_info=exc)

    async def _playback(self, generation: int, move: Move, outcome: MoveOutcome) -> None:
        for pos in move.flips:
            if generation != self._generation:
                return
            logger.debug("Reveal flip %s -> %s", pos, move.mover.value)
            for cb in self.events.on_flip:
                cb(pos, move.mover)
            await asyncio.sleep(self.timings.flip_step)
        await asyncio.sleep(self.timings.trailing)
        if generation != self._generation:
            return

        if outcome.passed is not None:
            for cb in self.events.on_pass:
                cb(outcome.passed)
            await asyncio.sleep(self.timings.pass_delay)
            if generation != self._generation:
                return
            self.controller.resolve_pass()

        self._busy = False
        if outcome.result is not None:
            for cb in self.events.on_game_over:
                cb(outcome.result)
        status = self.controller.status()
        for cb in self.events.on_settled:
            cb(status)

        # After a pass the automated side replies at once; the pass delay
        # already paced it.
        if outcome.passed is not None and self._automated_turn():
            self._opponent_move()
        else:
            self._maybe_schedule_opponent()

    def _maybe_schedule_opponent(self) -> None:
        if self._opponent_scheduled or self._busy:
            return
        if self.controller.state.phase is not Phase.AWAITING_MOVE:
            return
        if not self._automated_turn():
            return
        self._opponent_scheduled = True
        self._schedule(asyncio.get_running_loop(), self._opponent_turn(self._generation))

    async def _opponent_turn(self, generation: int) -> None:
        await asyncio.sleep(self.timings.opponent_delay)
        if generation != self._generation:
            logger.debug("Dropping automated move scheduled for game %d", generation)
            return
        self._opponent_scheduled = False
        if self._busy or not self._automated_turn():
            return
        self._opponent_move()

    def _opponent_move(self) -> None:
        state = self.controller.state
        if state.phase is not Phase.AWAITING_MOVE:
            return
        coord = self.agent.select_move(state.board, state.mover)
        if coord is not None:
            self._commit(coord)
