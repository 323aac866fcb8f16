"""Xiangqi board representation and move rules."""

from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field


class InvalidPositionError(ValueError):
    """Raised when a position violates board invariants."""


class Side(Enum):
    """Player sides."""

    RED = "red"  # Bottom side (rows 5-9), moves first
    BLACK = "black"  # Top side (rows 0-4)

    @property
    def opponent(self) -> "Side":
        return Side.BLACK if self is Side.RED else Side.RED


class PieceType(Enum):
    """Piece types."""

    KING = "K"
    ADVISOR = "A"
    ELEPHANT = "E"
    HORSE = "H"
    ROOK = "R"
    CANNON = "C"
    PAWN = "P"


# Standard Xiangqi FEN letters differ from the piece codes for two kinds
FEN_LETTERS = {
    PieceType.KING: "k",
    PieceType.ADVISOR: "a",
    PieceType.ELEPHANT: "b",
    PieceType.HORSE: "n",
    PieceType.ROOK: "r",
    PieceType.CANNON: "c",
    PieceType.PAWN: "p",
}
FEN_TYPES = {letter: piece_type for piece_type, letter in FEN_LETTERS.items()}

FILES = "abcdefghi"


@dataclass(eq=False)
class Piece:
    """A piece on the board.

    Side and type never change; row and col follow the piece as it moves.
    Pieces compare by identity so make/undo can be checked exactly.
    """

    side: Side
    piece_type: PieceType
    row: int
    col: int

    @property
    def code(self) -> str:
        """Two-character code such as ``rK`` or ``bH``."""
        return f"{self.side.value[0]}{self.piece_type.value}"

    def __str__(self) -> str:
        return self.code


@dataclass
class Move:
    """Represents a move."""

    from_row: int  # 0-9, row 0 is Black's back rank
    from_col: int  # 0-8 (a-i)
    to_row: int
    to_col: int
    score: int = field(default=0, compare=False)  # Ordering hint only
    captured: Optional[Piece] = field(default=None, compare=False, repr=False)  # For undo

    def __str__(self) -> str:
        return self.to_iccs()

    def to_iccs(self) -> str:
        """Convert to ICCS notation (e.g. ``h2e2``)."""
        return square_name(self.from_row, self.from_col) + square_name(
            self.to_row, self.to_col
        )

    @classmethod
    def from_iccs(cls, iccs: str) -> "Move":
        """Parse ICCS notation."""
        if len(iccs) != 4:
            raise ValueError(f"Invalid move notation: {iccs!r}")
        from_row, from_col = parse_square(iccs[:2])
        to_row, to_col = parse_square(iccs[2:])
        return cls(from_row, from_col, to_row, to_col)

    def same_squares(self, other: "Move") -> bool:
        return (self.from_row, self.from_col, self.to_row, self.to_col) == (
            other.from_row,
            other.from_col,
            other.to_row,
            other.to_col,
        )


def square_name(row: int, col: int) -> str:
    """Convert (row, col) to ICCS square notation (``e0`` is Red's King square)."""
    return f"{FILES[col]}{9 - row}"


def parse_square(square: str) -> Tuple[int, int]:
    """Convert ICCS square notation to (row, col)."""
    if len(square) != 2 or square[0] not in FILES or not square[1].isdigit():
        raise ValueError(f"Invalid square notation: {square!r}")
    return 9 - int(square[1]), FILES.index(square[0])


class Board:
    """Xiangqi board representation."""

    ROWS = 10
    COLS = 9

    def __init__(self, custom_setup: Optional[Dict[str, str]] = None):
        """Initialize board.

        Args:
            custom_setup: Optional dictionary mapping squares (e.g., "e0") to
                piece codes (e.g., "rK" for the Red King). When omitted the
                standard opening position is used.
        """
        self.board: List[List[Optional[Piece]]] = [
            [None for _ in range(self.COLS)] for _ in range(self.ROWS)
        ]
        self.side_to_move = Side.RED
        self._kings: Dict[Side, Piece] = {}
        if custom_setup is not None:
            self._initialize_custom_position(custom_setup)
        else:
            self._initialize_starting_position()

    def _initialize_starting_position(self):
        """Set up the standard 32-piece opening."""
        back_rank = [
            PieceType.ROOK,
            PieceType.HORSE,
            PieceType.ELEPHANT,
            PieceType.ADVISOR,
            PieceType.KING,
            PieceType.ADVISOR,
            PieceType.ELEPHANT,
            PieceType.HORSE,
            PieceType.ROOK,
        ]
        for side, home, cannons, pawns in (
            (Side.BLACK, 0, 2, 3),
            (Side.RED, 9, 7, 6),
        ):
            for col, piece_type in enumerate(back_rank):
                self.place_piece(side, piece_type, home, col)
            self.place_piece(side, PieceType.CANNON, cannons, 1)
            self.place_piece(side, PieceType.CANNON, cannons, 7)
            for col in (0, 2, 4, 6, 8):
                self.place_piece(side, PieceType.PAWN, pawns, col)

    def _initialize_custom_position(self, custom_setup: Dict[str, str]):
        """Place pieces from a square -> code mapping."""
        for square, piece_code in custom_setup.items():
            try:
                row, col = parse_square(square)
            except ValueError as e:
                raise InvalidPositionError(str(e)) from e
            side, piece_type = parse_piece_code(piece_code)
            self.place_piece(side, piece_type, row, col)

    @classmethod
    def from_snapshot(
        cls, rows: Sequence[Sequence[Optional[str]]], side_to_move: Side = Side.RED
    ) -> "Board":
        """Build a board from a 10x9 grid of piece codes (``None`` = empty)."""
        if len(rows) != cls.ROWS or any(len(r) != cls.COLS for r in rows):
            raise InvalidPositionError(
                f"Snapshot must be {cls.ROWS} rows of {cls.COLS} cells"
            )
        board = cls(custom_setup={})
        for row, cells in enumerate(rows):
            for col, piece_code in enumerate(cells):
                if piece_code:
                    side, piece_type = parse_piece_code(piece_code)
                    board.place_piece(side, piece_type, row, col)
        board.side_to_move = side_to_move
        return board

    def to_snapshot(self) -> List[List[Optional[str]]]:
        """Return the board as a 10x9 grid of piece codes."""
        return [[p.code if p else None for p in cells] for cells in self.board]

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Parse a Xiangqi FEN string (``rnbakabnr/9/... w``)."""
        parts = fen.split()
        if not parts:
            raise InvalidPositionError("Empty FEN")
        ranks = parts[0].split("/")
        if len(ranks) != cls.ROWS:
            raise InvalidPositionError(f"FEN must have {cls.ROWS} ranks: {fen!r}")

        board = cls(custom_setup={})
        for row, rank_str in enumerate(ranks):
            col = 0
            for ch in rank_str:
                if ch in "123456789":
                    col += int(ch)
                    continue
                piece_type = FEN_TYPES.get(ch.lower())
                if piece_type is None:
                    raise InvalidPositionError(f"Unknown FEN piece {ch!r}")
                side = Side.RED if ch.isupper() else Side.BLACK
                board.place_piece(side, piece_type, row, col)
                col += 1
            if col != cls.COLS:
                raise InvalidPositionError(f"FEN rank {row} has {col} columns")

        if len(parts) > 1:
            if parts[1] not in ("w", "r", "b"):
                raise InvalidPositionError(f"Unknown side to move {parts[1]!r}")
            board.side_to_move = Side.BLACK if parts[1] == "b" else Side.RED
        return board

    def to_fen(self) -> str:
        """Convert board to FEN string."""
        fen_parts = []
        for cells in self.board:
            rank_str = ""
            empty_count = 0
            for piece in cells:
                if piece is None:
                    empty_count += 1
                    continue
                if empty_count > 0:
                    rank_str += str(empty_count)
                    empty_count = 0
                letter = FEN_LETTERS[piece.piece_type]
                rank_str += letter.upper() if piece.side == Side.RED else letter
            if empty_count > 0:
                rank_str += str(empty_count)
            fen_parts.append(rank_str)

        side_char = "w" if self.side_to_move == Side.RED else "b"
        return "/".join(fen_parts) + f" {side_char}"

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.ROWS and 0 <= col < self.COLS

    def get_piece(self, row: int, col: int) -> Optional[Piece]:
        """Get piece at given coordinates."""
        if self.in_bounds(row, col):
            return self.board[row][col]
        return None

    def place_piece(self, side: Side, piece_type: PieceType, row: int, col: int) -> Piece:
        """Create a piece on an empty cell."""
        if not self.in_bounds(row, col):
            raise InvalidPositionError(f"Coordinates out of range: ({row}, {col})")
        if self.board[row][col] is not None:
            raise InvalidPositionError(f"Cell ({row}, {col}) is already occupied")
        if piece_type == PieceType.KING and side in self._kings:
            raise InvalidPositionError(f"{side.value} already has a King")

        piece = Piece(side, piece_type, row, col)
        self.board[row][col] = piece
        if piece_type == PieceType.KING:
            self._kings[side] = piece
        return piece

    def remove_piece(self, row: int, col: int) -> Optional[Piece]:
        """Take a piece off the board for good."""
        piece = self.get_piece(row, col)
        if piece is not None:
            self.board[row][col] = None
            if self._kings.get(piece.side) is piece:
                del self._kings[piece.side]
        return piece

    def pieces(self, side: Optional[Side] = None) -> Iterator[Piece]:
        """Iterate over pieces in row-major order."""
        for cells in self.board:
            for piece in cells:
                if piece is not None and (side is None or piece.side == side):
                    yield piece

    def find_king(self, side: Side) -> Optional[Piece]:
        """Return the side's King if it is still on the board."""
        king = self._kings.get(side)
        # A captured King keeps its last coordinates but no longer owns the cell
        if king is not None and self.board[king.row][king.col] is king:
            return king
        return None

    @staticmethod
    def is_in_palace(row: int, col: int, side: Side) -> bool:
        """Check if a square is in the palace for the given side."""
        if not 3 <= col <= 5:
            return False
        if side == Side.RED:
            return 7 <= row <= 9
        return 0 <= row <= 2

    @staticmethod
    def has_crossed_river(row: int, side: Side) -> bool:
        """Check if a row lies on the opponent's half for the given side."""
        if side == Side.RED:
            return row <= 4
        return row >= 5

    def obstacle_count(self, r1: int, c1: int, r2: int, c2: int) -> int:
        """Count occupied cells strictly between two aligned points.

        Returns 0 when the points share neither a row nor a column.
        """
        count = 0
        if r1 == r2:
            for c in range(min(c1, c2) + 1, max(c1, c2)):
                if self.board[r1][c] is not None:
                    count += 1
        elif c1 == c2:
            for r in range(min(r1, r2) + 1, max(r1, r2)):
                if self.board[r][c1] is not None:
                    count += 1
        return count

    def kings_facing(self) -> bool:
        """Check for flying generals: both Kings on one file, nothing between."""
        red_king = self.find_king(Side.RED)
        black_king = self.find_king(Side.BLACK)
        if red_king is None or black_king is None:
            return False
        if red_king.col != black_king.col:
            return False
        return (
            self.obstacle_count(red_king.row, red_king.col, black_king.row, black_king.col)
            == 0
        )

    def is_legal_destination(self, piece: Piece, to_row: int, to_col: int) -> bool:
        """Check whether the piece may move to the target under its own rules.

        Flying generals and self-check are not considered here.
        """
        if not self.in_bounds(to_row, to_col):
            return False
        if piece.row == to_row and piece.col == to_col:
            return False

        target = self.board[to_row][to_col]
        if target is not None and target.side == piece.side:
            return False

        validator = self._RULES[piece.piece_type]
        return validator(self, piece, to_row, to_col, target)

    def _is_valid_king_move(self, piece, to_row, to_col, target) -> bool:
        if abs(to_row - piece.row) + abs(to_col - piece.col) != 1:
            return False
        return self.is_in_palace(to_row, to_col, piece.side)

    def _is_valid_advisor_move(self, piece, to_row, to_col, target) -> bool:
        if abs(to_row - piece.row) != 1 or abs(to_col - piece.col) != 1:
            return False
        return self.is_in_palace(to_row, to_col, piece.side)

    def _is_valid_elephant_move(self, piece, to_row, to_col, target) -> bool:
        row_diff = to_row - piece.row
        col_diff = to_col - piece.col
        if abs(row_diff) != 2 or abs(col_diff) != 2:
            return False
        if self.has_crossed_river(to_row, piece.side):
            return False
        # Blocked eye
        eye_row = piece.row + row_diff // 2
        eye_col = piece.col + col_diff // 2
        return self.board[eye_row][eye_col] is None

    def _is_valid_horse_move(self, piece, to_row, to_col, target) -> bool:
        row_diff = to_row - piece.row
        col_diff = to_col - piece.col

        if abs(row_diff) == 2 and abs(col_diff) == 1:
            leg_row = piece.row + (1 if row_diff > 0 else -1)
            return self.board[leg_row][piece.col] is None
        elif abs(row_diff) == 1 and abs(col_diff) == 2:
            leg_col = piece.col + (1 if col_diff > 0 else -1)
            return self.board[piece.row][leg_col] is None

        return False

    def _is_valid_rook_move(self, piece, to_row, to_col, target) -> bool:
        if piece.row != to_row and piece.col != to_col:
            return False
        return self.obstacle_count(piece.row, piece.col, to_row, to_col) == 0

    def _is_valid_cannon_move(self, piece, to_row, to_col, target) -> bool:
        if piece.row != to_row and piece.col != to_col:
            return False
        obstacles = self.obstacle_count(piece.row, piece.col, to_row, to_col)
        if target is None:
            return obstacles == 0
        # Capture needs exactly one screen
        return obstacles == 1

    def _is_valid_pawn_move(self, piece, to_row, to_col, target) -> bool:
        row_diff = to_row - piece.row
        col_diff = to_col - piece.col
        if abs(row_diff) + abs(col_diff) != 1:
            return False

        forward = -1 if piece.side == Side.RED else 1
        if row_diff == -forward:
            return False  # Never backward
        if row_diff == 0:
            # Sideways only after crossing the river
            return self.has_crossed_river(piece.row, piece.side)
        return True

    _RULES = {
        PieceType.KING: _is_valid_king_move,
        PieceType.ADVISOR: _is_valid_advisor_move,
        PieceType.ELEPHANT: _is_valid_elephant_move,
        PieceType.HORSE: _is_valid_horse_move,
        PieceType.ROOK: _is_valid_rook_move,
        PieceType.CANNON: _is_valid_cannon_move,
        PieceType.PAWN: _is_valid_pawn_move,
    }

    def make_move_fast(self, move: Move) -> None:
        """Apply a move without validation - used by search.

        Sets move.captured for undo. Must be paired with undo_move_fast.
        """
        piece = self.board[move.from_row][move.from_col]
        if piece is None:
            raise InvalidPositionError(
                f"No piece at ({move.from_row}, {move.from_col}) for {move}"
            )
        move.captured = self.board[move.to_row][move.to_col]

        self.board[move.from_row][move.from_col] = None
        self.board[move.to_row][move.to_col] = piece
        piece.row = move.to_row
        piece.col = move.to_col
        self.side_to_move = self.side_to_move.opponent

    def undo_move_fast(self, move: Move) -> None:
        """Exact inverse of make_move_fast."""
        piece = self.board[move.to_row][move.to_col]
        piece.row = move.from_row
        piece.col = move.from_col
        self.board[move.from_row][move.from_col] = piece
        self.board[move.to_row][move.to_col] = move.captured
        self.side_to_move = self.side_to_move.opponent

    @contextmanager
    def applied(self, move: Move) -> Iterator[Optional[Piece]]:
        """Make a move for the duration of a ``with`` block.

        Yields the captured piece. The move is undone on every exit path.
        """
        self.make_move_fast(move)
        try:
            yield move.captured
        finally:
            self.undo_move_fast(move)

    def is_legal_move(self, move: Move) -> bool:
        """Check if a move is legal for the side to move."""
        piece = self.get_piece(move.from_row, move.from_col)
        if piece is None or piece.side != self.side_to_move:
            return False
        if not self.is_legal_destination(piece, move.to_row, move.to_col):
            return False

        with self.applied(move):
            return not self.kings_facing()

    def make_move(self, move: Move) -> bool:
        """Make a validated move. Returns True if legal, False otherwise.

        A rejected move leaves the board unchanged.
        """
        if not self.is_legal_move(move):
            return False
        self.make_move_fast(move)
        return True

    def undo_move(self, move: Move) -> None:
        """Undo a move. Must be called with the last move made."""
        self.undo_move_fast(move)

    def is_in_check(self, side: Side) -> bool:
        """Check if any enemy piece could move onto the side's King."""
        king = self.find_king(side)
        if king is None:
            return False
        for piece in self.pieces(side.opponent):
            if self.is_legal_destination(piece, king.row, king.col):
                return True
        return False

    def __str__(self) -> str:
        lines = []
        for row, cells in enumerate(self.board):
            line = " ".join(p.code if p else " ." for p in cells)
            lines.append(f"{9 - row} {line}")
        lines.append("  " + " ".join(f" {f}" for f in FILES))
        return "\n".join(lines)


def parse_piece_code(piece_code: str) -> Tuple[Side, PieceType]:
    """Parse a piece code such as ``rK`` into (side, piece type)."""
    if not piece_code or len(piece_code) != 2:
        raise InvalidPositionError(f"Invalid piece code: {piece_code!r}")
    side_char, type_char = piece_code[0], piece_code[1]
    if side_char == "r":
        side = Side.RED
    elif side_char == "b":
        side = Side.BLACK
    else:
        raise InvalidPositionError(f"Invalid side in piece code: {piece_code!r}")
    try:
        piece_type = PieceType(type_char)
    except ValueError as e:
        raise InvalidPositionError(f"Invalid piece type in code: {piece_code!r}") from e
    return side, piece_type
