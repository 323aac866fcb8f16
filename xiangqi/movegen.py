"""Legal move generation for Xiangqi."""

from typing import List, Tuple

from .board import Board, Move, Piece, PieceType, Side
from .evaluation import PIECE_VALUES

ELEPHANT_OFFSETS = [(-2, -2), (-2, 2), (2, -2), (2, 2)]
HORSE_OFFSETS = [
    (-2, -1), (-2, 1), (2, -1), (2, 1),
    (-1, -2), (-1, 2), (1, -2), (1, 2),
]
PAWN_OFFSETS = [(-1, 0), (1, 0), (0, -1), (0, 1)]


def candidate_destinations(piece: Piece) -> List[Tuple[int, int]]:
    """Geometric over-approximation of a piece's destinations.

    Only board bounds are applied; legality is checked by the caller.
    """
    row, col = piece.row, piece.col
    piece_type = piece.piece_type

    if piece_type in (PieceType.KING, PieceType.ADVISOR):
        offsets = [(dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1)]
    elif piece_type == PieceType.ELEPHANT:
        offsets = ELEPHANT_OFFSETS
    elif piece_type == PieceType.HORSE:
        offsets = HORSE_OFFSETS
    elif piece_type == PieceType.PAWN:
        offsets = PAWN_OFFSETS
    elif piece_type in (PieceType.ROOK, PieceType.CANNON):
        # Whole file and rank
        return [(r, col) for r in range(Board.ROWS) if r != row] + [
            (row, c) for c in range(Board.COLS) if c != col
        ]
    else:
        raise ValueError(f"Unknown piece type: {piece_type}")

    destinations = []
    for dr, dc in offsets:
        r, c = row + dr, col + dc
        if 0 <= r < Board.ROWS and 0 <= c < Board.COLS:
            destinations.append((r, c))
    return destinations


def capture_score(board: Board, move: Move) -> int:
    """Material value of the piece standing on the destination (0 if empty)."""
    target = board.get_piece(move.to_row, move.to_col)
    if target is None:
        return 0
    return PIECE_VALUES[target.piece_type]


def generate_legal_moves(board: Board, side: Side) -> List[Move]:
    """Generate all legal moves for ``side``, best captures first.

    Every candidate is made on the live board to reject flying generals and
    then undone. Moves leaving the King open to ordinary attack are kept.
    """
    moves = []
    # Collect first: tentative moves relocate pieces while we iterate
    for piece in list(board.pieces(side)):
        for to_row, to_col in candidate_destinations(piece):
            if not board.is_legal_destination(piece, to_row, to_col):
                continue

            move = Move(piece.row, piece.col, to_row, to_col)
            move.score = capture_score(board, move)
            with board.applied(move):
                facing = board.kings_facing()
            if not facing:
                moves.append(move)

    # Stable sort keeps board order among equal scores
    moves.sort(key=lambda m: m.score, reverse=True)
    return moves
