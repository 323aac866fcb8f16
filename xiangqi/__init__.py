"""Chinese chess (Xiangqi) game engine."""

from .board import (
    Board, Move, Side, PieceType, Piece, InvalidPositionError,
    square_name, parse_square, parse_piece_code,
)
from .movegen import candidate_destinations, generate_legal_moves, capture_score
from .evaluation import Evaluator, evaluate, PIECE_VALUES, POSITION_TABLES
from .engine import Engine, SearchResult, MATE_SCORE
from .game import Game

__all__ = [
    # Board and rules
    'Board', 'Move', 'Side', 'PieceType', 'Piece', 'InvalidPositionError',
    'square_name', 'parse_square', 'parse_piece_code',
    # Move generation
    'candidate_destinations', 'generate_legal_moves', 'capture_score',
    # Evaluation
    'Evaluator', 'evaluate', 'PIECE_VALUES', 'POSITION_TABLES',
    # Search
    'Engine', 'SearchResult', 'MATE_SCORE',
    # Game session
    'Game',
]
