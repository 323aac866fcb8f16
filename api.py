"""FastAPI backend for the Xiangqi engine."""

import os
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal
from time import time

from xiangqi.board import (
    Board, Move, Side, InvalidPositionError, parse_square, square_name,
)
from xiangqi.engine import Engine
from xiangqi.game import Game


logger = logging.getLogger(__name__)

# Thread pool for CPU-intensive AI operations
executor = ThreadPoolExecutor(max_workers=4)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    yield
    # Cleanup: shutdown thread pool on app shutdown
    executor.shutdown(wait=True)


app = FastAPI(title="Xiangqi AI Engine", lifespan=lifespan)


def _get_default_depth() -> int:
    """Default search depth (XIANGQI_AI_DEPTH, falls back to 3)."""
    value = os.environ.get("XIANGQI_AI_DEPTH", "3")
    try:
        depth = int(value)
    except ValueError:
        depth = 0
    if depth < 1:
        logger.warning("Ignoring invalid XIANGQI_AI_DEPTH=%r", value)
        return 3
    return depth


def _get_time_limit() -> Optional[float]:
    """Per-search time budget in seconds (XIANGQI_AI_TIME_LIMIT, unset = none)."""
    value = os.environ.get("XIANGQI_AI_TIME_LIMIT")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring invalid XIANGQI_AI_TIME_LIMIT=%r", value)
        return None


MAX_IDLE_TIME = 3600  # seconds


class GameState:
    """Thread-safe game state container."""

    def __init__(self, game: Game, engine: Engine):
        self.game = game
        self.engine = engine
        self.lock = asyncio.Lock()
        self.last_access = time()
        self.is_processing = False  # AI search in flight


# Global game state with proper locking
games: Dict[str, GameState] = {}
games_lock = asyncio.Lock()


async def get_game_state(game_id: str) -> GameState:
    """Get game state with proper error handling."""
    async with games_lock:
        if game_id not in games:
            raise HTTPException(status_code=404, detail="Game not found")
        game_state = games[game_id]
        game_state.last_access = time()
        return game_state


async def cleanup_old_games():
    """Clean up games that haven't been accessed for a long time."""
    current_time = time()

    async with games_lock:
        to_remove = [
            game_id
            for game_id, state in games.items()
            if current_time - state.last_access > MAX_IDLE_TIME
        ]
        for game_id in to_remove:
            del games[game_id]
    if to_remove:
        logger.info("Removed %d idle games", len(to_remove))


class SearchRequest(BaseModel):
    """Stateless engine request: a board snapshot plus side and depth."""

    board: List[List[Optional[str]]]  # 10 rows x 9 cells, e.g. "rK", "bH" or null
    side_to_move: Literal["red", "black"] = "red"
    depth: int = Field(default=3, ge=1, le=6)


class MoveRequest(BaseModel):
    """Request model for making a move."""

    game_id: str
    from_square: str  # e.g., "h2"
    to_square: str  # e.g., "e2"


class NewGameRequest(BaseModel):
    """Request model for creating a new game."""

    game_id: str
    depth: Optional[int] = Field(default=None, ge=1, le=6)
    fen: Optional[str] = None  # Starting position (standard opening if None)


def move_to_dict(move: Move) -> Dict[str, Any]:
    """Convert a move to its JSON form."""
    return {
        "from": square_name(move.from_row, move.from_col),
        "to": square_name(move.to_row, move.to_col),
        "from_row": move.from_row,
        "from_col": move.from_col,
        "to_row": move.to_row,
        "to_col": move.to_col,
        "iccs": move.to_iccs(),
    }


def game_to_dict(game: Game) -> Dict[str, Any]:
    """Serialize a game for the board endpoint."""
    return {
        "board": game.board.to_snapshot(),
        "fen": game.board.to_fen(),
        "side_to_move": game.side_to_move.value,
        "game_over": game.game_over,
        "winner": game.winner.value if game.winner else None,
        "in_check": game.in_check,
        "legal_moves": [move_to_dict(m) for m in game.legal_moves()],
        "move_history": [m.to_iccs() for m in game.history],
        "can_undo": bool(game.history),
    }


def _run_ai_search(engine: Engine, board: Board, side: Side):
    """Run the CPU-bound search in a worker thread."""
    return engine.search(board, side)


@app.post("/api/search")
async def search(request: SearchRequest):
    """Pick a move for an arbitrary position."""
    side = Side(request.side_to_move)
    try:
        board = Board.from_snapshot(request.board, side)
    except InvalidPositionError as e:
        raise HTTPException(status_code=400, detail=f"Invalid position: {e}")

    engine = Engine(depth=request.depth, time_limit=_get_time_limit())
    loop = asyncio.get_running_loop()
    best_move = await loop.run_in_executor(executor, _run_ai_search, engine, board, side)

    return {
        "status": "ok",
        "move": move_to_dict(best_move) if best_move else None,
        "depth": engine.completed_depth,
        "nodes_searched": engine.nodes_searched,
    }


@app.post("/api/new-game")
async def new_game(request: NewGameRequest):
    """Create a new game."""
    try:
        board = Board.from_fen(request.fen) if request.fen else Board()
    except InvalidPositionError as e:
        raise HTTPException(status_code=400, detail=f"Invalid position: {e}")

    depth = request.depth or _get_default_depth()
    engine = Engine(depth=depth, time_limit=_get_time_limit())

    async with games_lock:
        games[request.game_id] = GameState(Game(board), engine)
    logger.info("Created game %s (depth %d)", request.game_id, depth)

    # Drop idle games in the background
    asyncio.create_task(cleanup_old_games())

    return {"status": "ok", "game_id": request.game_id, "depth": depth}


@app.get("/api/board/{game_id}")
async def get_board(game_id: str):
    """Get current board state."""
    game_state = await get_game_state(game_id)
    async with game_state.lock:
        # The search mutates the board in place until it returns
        if game_state.is_processing:
            raise HTTPException(status_code=409, detail="AI is thinking. Please wait.")
        return game_to_dict(game_state.game)


@app.post("/api/move")
async def make_move(request: MoveRequest):
    """Make a player move."""
    game_state = await get_game_state(request.game_id)

    try:
        from_row, from_col = parse_square(request.from_square)
        to_row, to_col = parse_square(request.to_square)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid square notation: {e}")

    move = Move(from_row, from_col, to_row, to_col)

    async with game_state.lock:
        if game_state.is_processing:
            raise HTTPException(status_code=409, detail="AI is thinking. Please wait.")
        if not game_state.game.play(move):
            logger.info("Illegal move %s in game %s", move, request.game_id)
            raise HTTPException(status_code=400, detail="Illegal move")

        return {
            "status": "ok",
            "move": move.to_iccs(),
            "game_over": game_state.game.game_over,
            "winner": game_state.game.winner.value if game_state.game.winner else None,
        }


@app.post("/api/undo/{game_id}")
async def undo_move(game_id: str):
    """Undo the last move."""
    game_state = await get_game_state(game_id)

    async with game_state.lock:
        if game_state.is_processing:
            raise HTTPException(status_code=409, detail="AI is thinking. Please wait.")
        move = game_state.game.undo()
        if move is None:
            raise HTTPException(status_code=400, detail="No moves to undo")

    return {"status": "ok", "undone": move.to_iccs()}


@app.post("/api/ai-move/{game_id}")
async def ai_move(game_id: str):
    """Let the engine play for the side to move."""
    game_state = await get_game_state(game_id)

    async with game_state.lock:
        if game_state.is_processing:
            raise HTTPException(
                status_code=409, detail="AI is already processing a move. Please wait."
            )
        if game_state.game.game_over:
            raise HTTPException(status_code=400, detail="Game is over")
        game_state.is_processing = True

    try:
        # The flag keeps other writers away while the search owns the board
        game = game_state.game
        loop = asyncio.get_running_loop()
        best_move = await loop.run_in_executor(
            executor, _run_ai_search, game_state.engine, game.board, game.side_to_move
        )

        if best_move is None:
            raise HTTPException(status_code=400, detail="No legal moves available")

        async with game_state.lock:
            if not game.play(best_move):
                logger.error("Engine produced illegal move %s in game %s", best_move, game_id)
                raise HTTPException(status_code=500, detail="AI generated illegal move")

        logger.info("AI played %s in game %s", best_move, game_id)
        return {
            "status": "ok",
            "move": move_to_dict(best_move),
            "nodes_searched": game_state.engine.nodes_searched,
            "depth": game_state.engine.completed_depth,
            "game_over": game.game_over,
            "winner": game.winner.value if game.winner else None,
        }
    finally:
        async with game_state.lock:
            game_state.is_processing = False
