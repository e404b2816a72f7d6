from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from discflip.ai.agent import AIAgent, Policy
from discflip.config import Timings, default_policy
from discflip.engine import (
    CellState,
    Coord,
    GameState,
    Move,
    Result,
    Status,
    TurnController,
    coord_to_notation,
    notation_to_coord,
    serialize_state,
)
from discflip.sequencer import MoveSequencer

logger = logging.getLogger(__name__)

PolicyName = Literal["basic", "greedy-corner"]


class CreateGameRequest(BaseModel):
    automated: bool = False
    policy: Optional[PolicyName] = None
    seed: Optional[int] = None


class MoveRequest(BaseModel):
    coord: str


class ConfigRequest(BaseModel):
    automated: Optional[bool] = None
    policy: Optional[PolicyName] = None


class MoveResponse(BaseModel):
    accepted: bool
    flips: List[str]
    reason: Optional[str] = None


class GameResponse(BaseModel):
    id: str
    automated: bool
    policy: PolicyName
    committable: bool
    legal: List[str]
    tally: Dict[str, int]
    state: Dict


@dataclass
class Session:
    id: str
    sequencer: MoveSequencer


class Hub:
    def __init__(self) -> None:
        self.connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, game_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self.connections[game_id].add(websocket)

    async def disconnect(self, game_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self.connections[game_id].discard(websocket)

    async def broadcast(self, game_id: str, payload: Dict) -> None:
        async with self._lock:
            recipients = list(self.connections.get(game_id, set()))
        for ws in recipients:
            try:
                await ws.send_json(payload)
            except WebSocketDisconnect:
                await self.disconnect(game_id, ws)
            except Exception:
                logger.warning("Dropping websocket for game %s after send failure", game_id)
                await self.disconnect(game_id, ws)


def create_app(timings: Optional[Timings] = None) -> FastAPI:
    sessions: Dict[str, Session] = {}
    hub = Hub()
    broadcasts: Set[asyncio.Task] = set()
    pacing = timings if timings is not None else Timings.from_env()
    fallback_policy = default_policy()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        for session in sessions.values():
            session.sequencer.close()

    app = FastAPI(title="discflip API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def serialize_session(session: Session) -> Dict:
        seq = session.sequencer
        return {
            "id": session.id,
            "automated": seq.automated,
            "policy": seq.agent.policy.value,
            "committable": seq.committable,
            "legal": [coord_to_notation(c) for c in seq.legal_moves()],
            "tally": seq.match_tally(),
            "state": serialize_state(seq.state),
        }

    def require_session(game_id: str) -> Session:
        session = sessions.get(game_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Game not found")
        return session

    def parse_coord(token: str) -> Coord:
        try:
            return notation_to_coord(token)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    def push(game_id: str, payload: Dict) -> None:
        task = asyncio.get_running_loop().create_task(hub.broadcast(game_id, payload))
        broadcasts.add(task)
        task.add_done_callback(broadcasts.discard)

    def wire_events(session: Session) -> None:
        events = session.sequencer.events
        gid = session.id

        def on_placed(move: Move) -> None:
            push(gid, {"event": "placed", "coord": coord_to_notation(move.coord), "mover": move.mover.value})

        def on_flip(coord: Coord, owner: CellState) -> None:
            push(gid, {"event": "flip", "coord": coord_to_notation(coord), "owner": owner.value})

        def on_pass(side: CellState) -> None:
            push(gid, {"event": "pass", "mover": side.value})

        def on_game_over(result: Result) -> None:
            push(gid, {"event": "game_over", "result": result.value})

        def on_settled(_status: Status) -> None:
            push(gid, {"event": "settled", **serialize_session(session)})

        def on_new_game(_state: GameState) -> None:
            push(gid, {"event": "new_game", **serialize_session(session)})

        events.on_placed.append(on_placed)
        events.on_flip.append(on_flip)
        events.on_pass.append(on_pass)
        events.on_game_over.append(on_game_over)
        events.on_settled.append(on_settled)
        events.on_new_game.append(on_new_game)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/game", response_model=GameResponse)
    async def create_game(req: CreateGameRequest) -> GameResponse:
        game_id = uuid.uuid4().hex[:8]
        sequencer = MoveSequencer(
            controller=TurnController(),
            agent=AIAgent(policy=Policy(req.policy or fallback_policy), seed=req.seed),
            timings=pacing,
            automated=req.automated,
        )
        session = Session(id=game_id, sequencer=sequencer)
        wire_events(session)
        sessions[game_id] = session
        logger.info(
            "Created game %s (automated=%s, policy=%s)",
            game_id,
            req.automated,
            sequencer.agent.policy.value,
        )
        return GameResponse(**serialize_session(session))

    @app.get("/game/{game_id}", response_model=GameResponse)
    async def get_game(game_id: str) -> GameResponse:
        return GameResponse(**serialize_session(require_session(game_id)))

    @app.get("/game/{game_id}/legal")
    async def get_legal(game_id: str, mover: Optional[Literal["black", "white"]] = None) -> Dict:
        session = require_session(game_id)
        side = CellState(mover) if mover else session.sequencer.status().mover
        return {
            "id": session.id,
            "mover": side.value,
            "moves": [coord_to_notation(c) for c in session.sequencer.legal_moves(side)],
        }

    @app.post("/game/{game_id}/move", response_model=MoveResponse)
    async def play_move(game_id: str, body: MoveRequest) -> MoveResponse:
        session = require_session(game_id)
        result = session.sequencer.submit_move(parse_coord(body.coord))
        return MoveResponse(
            accepted=result.accepted,
            flips=[coord_to_notation(c) for c in result.flips],
            reason=result.reason,
        )

    @app.post("/game/{game_id}/restart", response_model=GameResponse)
    async def restart_game(game_id: str) -> GameResponse:
        session = require_session(game_id)
        session.sequencer.new_game()
        return GameResponse(**serialize_session(session))

    @app.put("/game/{game_id}/config", response_model=GameResponse)
    async def configure_game(game_id: str, body: ConfigRequest) -> GameResponse:
        session = require_session(game_id)
        session.sequencer.configure(automated=body.automated, policy=body.policy)
        return GameResponse(**serialize_session(session))

    @app.websocket("/ws/game/{game_id}")
    async def ws_game(websocket: WebSocket, game_id: str) -> None:
        await hub.connect(game_id, websocket)
        try:
            session = sessions.get(game_id)
            if session:
                await websocket.send_json({"event": "snapshot", **serialize_session(session)})
            while True:
                # Inbound messages are ignored; commands go through HTTP.
                await websocket.receive_text()
        except WebSocketDisconnect:
            await hub.disconnect(game_id, websocket)
        except Exception:
            await hub.disconnect(game_id, websocket)

    return app
