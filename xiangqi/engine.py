"""Xiangqi AI engine with iterative-deepening minimax search."""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from .board import Board, Move, Side
from .evaluation import Evaluator
from .movegen import generate_legal_moves

logger = logging.getLogger(__name__)

# Score for a side that has no legal reply
MATE_SCORE = 100000


@dataclass
class SearchResult:
    """Outcome of one fixed-depth search pass."""

    move: Optional[Move]
    score: float
    depth: int
    nodes: int


class Engine:
    """Xiangqi AI engine with alpha-beta search."""

    def __init__(
        self,
        depth: int = 3,
        time_limit: Optional[float] = None,
        evaluator: Optional[Evaluator] = None,
    ):
        """Initialize engine.

        Args:
            depth: Maximum search depth in plies
            time_limit: Optional budget in seconds, checked between
                iterative-deepening passes
            evaluator: Position evaluator (defaults to material + tables)
        """
        if depth < 1:
            raise ValueError(f"Search depth must be positive, got {depth}")
        self.depth = depth
        self.time_limit = time_limit
        self.evaluator = evaluator or Evaluator()
        self.nodes_searched = 0
        self.completed_depth = 0
        self.last_result: Optional[SearchResult] = None

    def search(
        self, board: Board, side: Optional[Side] = None, depth: Optional[int] = None
    ) -> Optional[Move]:
        """Search for the best move for ``side`` (default: side to move).

        Searches depth 1, 2, ... up to the maximum and keeps the move from
        the deepest completed pass. Returns None if there is no legal move.
        """
        side = side or board.side_to_move
        max_depth = self.depth if depth is None else depth
        if max_depth < 1:
            raise ValueError(f"Search depth must be positive, got {max_depth}")
        started = time.monotonic()
        deadline = started + self.time_limit if self.time_limit is not None else None

        self.nodes_searched = 0
        self.completed_depth = 0
        self.last_result = None

        best_move = None
        for current_depth in range(1, max_depth + 1):
            if current_depth > 1 and deadline is not None and time.monotonic() >= deadline:
                logger.debug("Time budget spent before depth %d", current_depth)
                break

            result = self.search_depth(board, side, current_depth, first_move=best_move)
            if result.move is None:
                break
            best_move = result.move
            self.completed_depth = current_depth
            self.last_result = result
            logger.debug(
                "depth %d: best %s score %s (%d nodes)",
                current_depth, result.move, result.score, result.nodes,
            )

        logger.info(
            "Search for %s finished: move=%s depth=%d nodes=%d in %.3fs",
            side.value, best_move, self.completed_depth,
            self.nodes_searched, time.monotonic() - started,
        )
        return best_move

    def search_depth(
        self,
        board: Board,
        side: Side,
        depth: int,
        first_move: Optional[Move] = None,
    ) -> SearchResult:
        """Run a single fixed-depth alpha-beta pass from the root."""
        nodes_before = self.nodes_searched
        moves = self._order_root(generate_legal_moves(board, side), first_move)
        if not moves:
            return SearchResult(None, -MATE_SCORE, depth, 0)

        best_move = None
        best_value = float("-inf")
        alpha = float("-inf")
        beta = float("inf")

        for move in moves:
            with board.applied(move):
                value = self._minimax(board, depth - 1, alpha, beta, False, side)

            if value > best_value:
                best_value = value
                best_move = move
            alpha = max(alpha, best_value)

        return SearchResult(best_move, best_value, depth, self.nodes_searched - nodes_before)

    @staticmethod
    def _order_root(moves: List[Move], first_move: Optional[Move]) -> List[Move]:
        """Try the previous iteration's best move first."""
        if first_move is None:
            return moves
        for i, move in enumerate(moves):
            if move.same_squares(first_move):
                return [move] + moves[:i] + moves[i + 1:]
        return moves

    def _minimax(
        self,
        board: Board,
        depth: int,
        alpha: float,
        beta: float,
        maximizing: bool,
        my_side: Side,
    ) -> float:
        """Minimax algorithm with alpha-beta pruning."""
        self.nodes_searched += 1

        if depth == 0:
            return self.evaluator.evaluate(board, my_side)

        to_move = my_side if maximizing else my_side.opponent
        moves = generate_legal_moves(board, to_move)
        if not moves:
            # No legal reply: a loss for whoever is on move
            return -MATE_SCORE if maximizing else MATE_SCORE

        if maximizing:
            max_eval = float("-inf")
            for move in moves:
                with board.applied(move):
                    eval_score = self._minimax(board, depth - 1, alpha, beta, False, my_side)
                max_eval = max(max_eval, eval_score)
                alpha = max(alpha, eval_score)
                if beta <= alpha:
                    break
            return max_eval
        else:
            min_eval = float("inf")
            for move in moves:
                with board.applied(move):
                    eval_score = self._minimax(board, depth - 1, alpha, beta, True, my_side)
                min_eval = min(min_eval, eval_score)
                beta = min(beta, eval_score)
                if beta <= alpha:
                    break
            return min_eval
