"""Game session: turn order, player moves and game-over tracking."""

import logging
from typing import List, Optional

from .board import Board, Move, PieceType, Side
from .engine import Engine
from .movegen import generate_legal_moves

logger = logging.getLogger(__name__)


class Game:
    """A single Xiangqi game between two players (either may be the engine)."""

    def __init__(self, board: Optional[Board] = None):
        self.board = board or Board()
        self.history: List[Move] = []
        self.game_over = False
        self.winner: Optional[Side] = None

    @property
    def side_to_move(self) -> Side:
        return self.board.side_to_move

    @property
    def in_check(self) -> bool:
        return self.board.is_in_check(self.board.side_to_move)

    def legal_moves(self) -> List[Move]:
        """Legal moves for the side to move (empty once the game is over)."""
        if self.game_over:
            return []
        return generate_legal_moves(self.board, self.board.side_to_move)

    def play(self, move: Move) -> bool:
        """Play a move for the side to move.

        Returns False and leaves the position untouched if the move is
        illegal or the game has already ended.
        """
        if self.game_over:
            return False
        mover = self.board.side_to_move
        if not self.board.make_move(move):
            logger.debug("Rejected move %s for %s", move, mover.value)
            return False

        self.history.append(move)
        if move.captured is not None and move.captured.piece_type == PieceType.KING:
            self.game_over = True
            self.winner = mover
            logger.info("%s captured the King; game over", mover.value)
        return True

    def play_engine_move(self, engine: Engine) -> Optional[Move]:
        """Let the engine pick and play a move. Returns None if it has none."""
        if self.game_over:
            return None
        move = engine.search(self.board, self.board.side_to_move)
        if move is None:
            return None
        if not self.play(move):
            raise RuntimeError(f"Engine produced an illegal move: {move}")
        return move

    def undo(self) -> Optional[Move]:
        """Take back the last move, reopening the game if it had ended."""
        if not self.history:
            return None
        move = self.history.pop()
        self.board.undo_move(move)
        self.game_over = False
        self.winner = None
        return move
