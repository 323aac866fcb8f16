"""Material and positional evaluation for Xiangqi positions."""

import numpy as np
from typing import Dict, Optional

from .board import Board, Piece, PieceType, Side


PIECE_VALUES: Dict[PieceType, int] = {
    PieceType.KING: 10000,
    PieceType.ROOK: 900,
    PieceType.CANNON: 450,
    PieceType.HORSE: 400,
    PieceType.ELEPHANT: 200,
    PieceType.ADVISOR: 200,
    PieceType.PAWN: 100,
}

# Positional bonuses from Red's point of view: row 0 is Black's back rank,
# row 9 is Red's. Black pieces read the tables upside down.
_ZERO_TABLE = [[0] * 9 for _ in range(10)]

POSITION_TABLES: Dict[PieceType, np.ndarray] = {
    PieceType.PAWN: np.array(
        [
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
            [0, 3, 6, 9, 6, 9, 6, 3, 0],
            [18, 36, 54, 72, 81, 72, 54, 36, 18],
            [14, 26, 42, 60, 80, 60, 42, 26, 14],
            [10, 20, 30, 40, 50, 40, 30, 20, 10],
            [6, 12, 18, 18, 20, 18, 18, 12, 6],
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
        ],
        dtype=np.int32,
    ),
    # Open files, the river bank and the back rank
    PieceType.ROOK: np.array(
        [
            [10, 10, 10, 10, 10, 10, 10, 10, 10],
            [10, 20, 20, 20, 20, 20, 20, 20, 10],
            [5, 10, 20, 30, 30, 30, 20, 10, 5],
            [5, 10, 15, 20, 20, 20, 15, 10, 5],
            [5, 10, 15, 20, 20, 20, 15, 10, 5],
            [5, 10, 15, 20, 20, 20, 15, 10, 5],
            [5, 10, 20, 30, 30, 30, 20, 10, 5],
            [10, 20, 20, 20, 20, 20, 20, 20, 10],
            [0, 15, 10, 10, 10, 10, 10, 15, 0],
            [5, 15, 10, 10, 10, 10, 10, 15, 5],
        ],
        dtype=np.int32,
    ),
    # Edge horses are weak
    PieceType.HORSE: np.array(
        [
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
            [0, 20, 40, 30, 20, 30, 40, 20, 0],
            [5, 20, 30, 40, 50, 40, 30, 20, 5],
            [5, 10, 15, 30, 20, 30, 15, 10, 5],
            [5, 10, 15, 20, 20, 20, 15, 10, 5],
            [5, 10, 15, 20, 20, 20, 15, 10, 5],
            [5, 20, 10, 40, 10, 40, 10, 20, 5],
            [5, 20, 10, 20, 10, 20, 10, 20, 5],
            [0, 5, 5, 5, 5, 5, 5, 5, 0],
            [0, -5, 0, 0, 0, 0, 0, -5, 0],
        ],
        dtype=np.int32,
    ),
    # Central cannon on row 7
    PieceType.CANNON: np.array(
        [
            [0, 0, 5, 10, 10, 10, 5, 0, 0],
            [0, 5, 10, 15, 20, 15, 10, 5, 0],
            [0, 5, 10, 20, 40, 20, 10, 5, 0],
            [0, 0, 5, 10, 20, 10, 5, 0, 0],
            [0, 5, 5, 10, 20, 10, 5, 5, 0],
            [-2, 5, 20, 5, 10, 5, 20, 5, -2],
            [0, 0, 5, 10, 15, 10, 5, 0, 0],
            [0, 0, 10, 20, 30, 20, 10, 0, 0],
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0, 0, 0, 0, 0],
        ],
        dtype=np.int32,
    ),
    # Palace pieces score material only
    PieceType.KING: np.array(_ZERO_TABLE, dtype=np.int32),
    PieceType.ADVISOR: np.array(_ZERO_TABLE, dtype=np.int32),
    PieceType.ELEPHANT: np.array(_ZERO_TABLE, dtype=np.int32),
}


class Evaluator:
    """Material plus piece-square evaluation."""

    def __init__(self, piece_values: Optional[Dict[PieceType, int]] = None):
        self.piece_values = dict(PIECE_VALUES)
        if piece_values:
            self.piece_values.update(piece_values)
        self.tables = POSITION_TABLES

    def positional_bonus(self, piece: Piece) -> int:
        """Look up the piece-square bonus, mirrored for Black."""
        row = piece.row if piece.side == Side.RED else Board.ROWS - 1 - piece.row
        return int(self.tables[piece.piece_type][row, piece.col])

    def piece_score(self, piece: Piece) -> int:
        return self.piece_values[piece.piece_type] + self.positional_bonus(piece)

    def evaluate(self, board: Board, side: Side) -> int:
        """Evaluate board from the perspective of ``side``.

        Positive values favor ``side``; the opponent's pieces count negative.
        """
        score = 0
        for piece in board.pieces():
            if piece.side == side:
                score += self.piece_score(piece)
            else:
                score -= self.piece_score(piece)
        return score


_default_evaluator = Evaluator()


def evaluate(board: Board, side: Side) -> int:
    """Evaluate with the default piece values and tables."""
    return _default_evaluator.evaluate(board, side)
