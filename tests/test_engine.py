"""Unit tests for Engine class."""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xiangqi import (
    Board, Move, Side, PieceType, Engine, Evaluator, MATE_SCORE,
    generate_legal_moves,
)

MIDGAME_FEN = "2bak4/4a4/4b1n2/p3p3p/2r3p2/2P6/P3P1c1P/2N1B4/4A4/1R2KAB2 w"


def board_cells(board):
    return [
        [(p, p.row, p.col) if p else None for p in cells]
        for cells in board.board
    ]


def full_minimax(board, depth, maximizing, my_side, evaluator):
    """Unpruned minimax over the same move ordering, for comparison."""
    if depth == 0:
        return evaluator.evaluate(board, my_side)
    to_move = my_side if maximizing else my_side.opponent
    moves = generate_legal_moves(board, to_move)
    if not moves:
        return -MATE_SCORE if maximizing else MATE_SCORE
    values = []
    for move in moves:
        with board.applied(move):
            values.append(full_minimax(board, depth - 1, not maximizing, my_side, evaluator))
    return max(values) if maximizing else min(values)


def full_root(board, depth, side, evaluator):
    best_move, best_value = None, float("-inf")
    for move in generate_legal_moves(board, side):
        with board.applied(move):
            value = full_minimax(board, depth - 1, False, side, evaluator)
        if value > best_value:
            best_move, best_value = move, value
    return best_move, best_value


class TestEngineInitialization:
    """Test engine initialization."""

    def test_default_initialization(self):
        """Test default engine initialization."""
        engine = Engine()

        assert engine.depth == 3
        assert engine.time_limit is None
        assert engine.nodes_searched == 0
        assert engine.completed_depth == 0
        assert isinstance(engine.evaluator, Evaluator)

    def test_custom_depth(self):
        engine = Engine(depth=5)
        assert engine.depth == 5

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            Engine(depth=0)


class TestEngineSearch:
    """Test engine search functionality."""

    def test_search_returns_red_move(self):
        """Depth-1 search from the opening moves a Red piece."""
        board = Board()
        engine = Engine(depth=1)

        move = engine.search(board)

        assert isinstance(move, Move)
        piece = board.get_piece(move.from_row, move.from_col)
        assert piece is not None and piece.side == Side.RED
        target = board.get_piece(move.to_row, move.to_col)
        assert target is None or target.side == Side.BLACK

    def test_search_returns_legal_move(self):
        board = Board()
        engine = Engine(depth=2)

        move = engine.search(board)

        assert move in generate_legal_moves(board, Side.RED)

    def test_search_for_black(self):
        board = Board()
        board.make_move(Move.from_iccs("h2e2"))
        engine = Engine(depth=1)

        move = engine.search(board)

        assert board.get_piece(move.from_row, move.from_col).side == Side.BLACK

    def test_explicit_side_overrides_turn(self):
        board = Board()
        move = Engine(depth=1).search(board, Side.BLACK)
        assert board.get_piece(move.from_row, move.from_col).side == Side.BLACK

    def test_search_restores_board(self):
        board = Board.from_fen(MIDGAME_FEN)
        before = board_cells(board)

        Engine(depth=3).search(board)

        assert board_cells(board) == before
        assert board.side_to_move == Side.RED

    def test_search_updates_stats(self):
        board = Board()
        engine = Engine(depth=2)

        engine.search(board)

        assert engine.nodes_searched > 0
        assert engine.completed_depth == 2
        assert engine.last_result.depth == 2

    def test_search_no_moves(self):
        """Search with no pieces to move returns None."""
        board = Board(custom_setup={"e9": "bK"})
        engine = Engine(depth=2)

        assert engine.search(board, Side.RED) is None
        assert engine.completed_depth == 0

    def test_takes_hanging_king(self):
        board = Board(custom_setup={"d0": "rK", "e9": "bK", "a9": "rR", "e7": "bP"})
        move = Engine(depth=1).search(board)
        assert move == Move(0, 0, 0, 4)

    def test_takes_free_rook(self):
        board = Board(custom_setup={"d0": "rK", "f9": "bK", "a4": "rR", "i4": "bR"})
        move = Engine(depth=2).search(board)
        assert move == Move(5, 0, 5, 8)

    def test_avoids_losing_the_rook(self):
        """A Black cannon threatens the Red rook; depth 2 moves it away."""
        board = Board(custom_setup={
            "d0": "rK", "f9": "bK",
            "e4": "rR", "e6": "bP", "e8": "bC",
        })
        move = Engine(depth=2).search(board)
        with board.applied(move):
            rook = next(p for p in board.pieces(Side.RED) if p.piece_type == PieceType.ROOK)
            cannon = board.get_piece(1, 4)
            assert cannon is None or not board.is_legal_destination(cannon, rook.row, rook.col)


class TestTerminalScores:
    """Test the no-move terminal."""

    def test_maximizer_without_moves_loses(self):
        board = Board(custom_setup={"e9": "bK"})
        engine = Engine(depth=2)
        score = engine._minimax(board, 2, float("-inf"), float("inf"), True, Side.RED)
        assert score == -MATE_SCORE

    def test_minimizer_without_moves_wins_for_us(self):
        board = Board(custom_setup={"e9": "bK"})
        engine = Engine(depth=2)
        score = engine._minimax(board, 2, float("-inf"), float("inf"), False, Side.BLACK)
        assert score == MATE_SCORE

    def test_leaf_uses_evaluator(self):
        board = Board()
        engine = Engine()
        assert engine._minimax(board, 0, float("-inf"), float("inf"), True, Side.RED) == 0


class TestIterativeDeepening:
    """Test depth iteration and the time budget."""

    def test_zero_time_budget_completes_depth_one(self):
        board = Board()
        engine = Engine(depth=4, time_limit=0.0)

        move = engine.search(board)

        assert move is not None
        assert engine.completed_depth == 1

    @pytest.mark.parametrize("depth", [0, -1])
    def test_invalid_search_depth(self, depth):
        with pytest.raises(ValueError):
            Engine(depth=2).search(Board(), depth=depth)

    def test_depth_argument_overrides_default(self):
        board = Board()
        engine = Engine(depth=4)

        engine.search(board, depth=1)

        assert engine.completed_depth == 1

    def test_first_move_is_searched_first(self):
        moves = generate_legal_moves(Board(), Side.RED)
        ordered = Engine._order_root(moves, Move(moves[5].from_row, moves[5].from_col,
                                                 moves[5].to_row, moves[5].to_col))
        assert ordered[0] is moves[5]
        assert len(ordered) == len(moves)
        assert ordered[1:6] == moves[:5]


class TestAlphaBetaEquivalence:
    """Pruned search must agree with plain minimax."""

    @pytest.mark.parametrize("depth", [1, 2, 3])
    def test_midgame(self, depth):
        board = Board.from_fen(MIDGAME_FEN)
        engine = Engine(depth=depth)

        result = engine.search_depth(board, Side.RED, depth)
        expected_move, expected_score = full_root(board, depth, Side.RED, engine.evaluator)

        assert result.score == expected_score
        assert result.move == expected_move

    @pytest.mark.parametrize("side", [Side.RED, Side.BLACK])
    def test_opening_depth_two(self, side):
        board = Board()
        engine = Engine(depth=2)

        result = engine.search_depth(board, side, 2)
        expected_move, expected_score = full_root(board, 2, side, engine.evaluator)

        assert result.score == expected_score
        assert result.move == expected_move

    def test_pruning_never_visits_more_nodes(self):
        board = Board.from_fen(MIDGAME_FEN)
        engine = Engine(depth=3)
        result = engine.search_depth(board, Side.RED, 3)

        def count_nodes(depth, side):
            if depth == 0:
                return 1
            total = 1
            for move in generate_legal_moves(board, side):
                with board.applied(move):
                    total += count_nodes(depth - 1, side.opponent)
            return total

        # Every node below the root, as the engine counts them
        full_nodes = count_nodes(3, Side.RED) - 1
        assert 0 < result.nodes <= full_nodes
