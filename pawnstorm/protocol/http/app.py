from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore
from ...engine.board import DRAW, STARTPOS_FEN, Board
from ...engine.game import Game, parse_color
from ...engine.move import move_to_uci
from ...engine.perft import perft as perft_nodes
from ...engine.tables import WHITE
from ...search.service import SearchConfig, SearchService, format_score


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="FEN string; start position when omitted")
    color: str = Field(default="white", description="Side the engine plays: white or black")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str
    color: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")
    color: Optional[str] = Field(default=None, description="Engine side; unchanged when omitted")


class MoveRequest(BaseModel):
    move: str = Field(..., description="UCI move string, e.g., e2e4")


class MovesRequest(BaseModel):
    moves: str = Field(..., description="Full space-separated UCI move list of the game so far")


class EngineMoveRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=0, le=4)
    lines: Optional[int] = Field(default=None, ge=1, le=64)
    threshold: Optional[int] = Field(default=None, ge=0)
    seed: Optional[int] = None
    apply: bool = Field(default=True, description="Play the selected move on the game")


class PerftRequest(BaseModel):
    fen: str = Field(default=STARTPOS_FEN)
    depth: int = Field(default=1, ge=0, le=5)


class GameState(BaseModel):
    game_id: str
    fen: str
    color: str
    turn: str
    legal_moves: List[str]
    in_check: bool
    checkmate: bool
    stalemate: bool
    draw: bool
    result: Optional[str]
    last_move: Optional[str]
    move_history: List[str]


class CandidateModel(BaseModel):
    move: str
    score: str


class EngineMoveResponse(BaseModel):
    move: Optional[str]
    score: Optional[str]
    candidates: List[CandidateModel]
    nodes: int
    time_ms: int
    searched: bool
    state: GameState


def _color_name(color: int) -> str:
    return "white" if color == WHITE else "black"


def _result_name(result: Optional[int]) -> Optional[str]:
    if result is None:
        return None
    return "draw" if result == DRAW else _color_name(result)


def _state(game_id: str, game: Game) -> GameState:
    history = game.move_history_uci()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        color=_color_name(game.color),
        turn=_color_name(game.board.turn),
        legal_moves=[move_to_uci(m) for m in game.legal_moves()],
        in_check=game.in_check(),
        checkmate=game.checkmate(),
        stalemate=game.stalemate(),
        draw=game.is_draw(),
        result=_result_name(game.result),
        last_move=history[-1] if history else None,
        move_history=history,
    )


def _new_game(fen: Optional[str], color: str, search: SearchService) -> Game:
    try:
        return Game.from_fen(fen or STARTPOS_FEN, parse_color(color), search=search)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _search_config(req: EngineMoveRequest, base: SearchConfig) -> SearchConfig:
    return SearchConfig(
        depth=base.depth if req.depth is None else req.depth,
        lines=base.lines if req.lines is None else req.lines,
        threshold=base.threshold if req.threshold is None else req.threshold,
        seed=req.seed,
    )


def create_app(config: Optional[SearchConfig] = None) -> FastAPI:
    app = FastAPI(title="pawnstorm", version="0.1.0")

    logging.basicConfig(level=logging.INFO)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore()
    search = SearchService(config)

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        req = req or CreateGameRequest()
        game = _new_game(req.fen, req.color, search)
        game_id = store.create(game)
        logger.info("game created", extra={"game_id": game_id, "color": _color_name(game.color)})
        return CreateGameResponse(game_id=game_id, fen=game.to_fen(), color=_color_name(game.color))

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, str]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"status": "deleted"}

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        current = _require_game(store, game_id)
        color = req.color if req.color is not None else _color_name(current.color)
        store.replace(game_id, _new_game(req.fen, color, search))
        return _state(game_id, _require_game(store, game_id))

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.apply_move(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/moves", response_model=GameState)
    async def apply_moves(game_id: str, req: MovesRequest) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.apply_moves(req.moves)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/engine-move", response_model=EngineMoveResponse)
    async def engine_move(game_id: str, req: Optional[EngineMoveRequest] = None) -> EngineMoveResponse:
        game = _require_game(store, game_id)
        req = req or EngineMoveRequest()
        cfg = _search_config(req, search.config)
        res = game.play_engine_move(cfg) if req.apply else game.engine_move(cfg)
        if res is None:
            return EngineMoveResponse(
                move=None,
                score=None,
                candidates=[],
                nodes=0,
                time_ms=0,
                searched=False,
                state=_state(game_id, game),
            )
        return EngineMoveResponse(
            move=move_to_uci(res.move),
            score=format_score(res.score) if res.score is not None else None,
            candidates=[CandidateModel(move=move_to_uci(c.move), score=format_score(c.score)) for c in res.candidates],
            nodes=res.nodes,
            time_ms=res.time_ms,
            searched=res.searched,
            state=_state(game_id, game),
        )

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.undo_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, int]:
        try:
            board = Board.from_fen(req.fen)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid FEN")
        return {"nodes": perft_nodes(board, req.depth), "depth": req.depth}

    return app


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game
