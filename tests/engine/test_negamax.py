"""Tests for the negamax searcher and static evaluation."""

import chess
import pytest

from chessref.core.rules import Rules
from chessref.engine.evaluate import evaluate
from chessref.engine.negamax import NegamaxSearcher
from chessref.engine.search import MATE_SCORE, SearchAborted, is_decisive

BACK_RANK_MATE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


class TestEvaluate:
    def test_start_position_is_balanced(self) -> None:
        assert evaluate(chess.Board()) == 0

    def test_material_from_side_to_move(self) -> None:
        board = chess.Board("4k3/8/8/8/8/8/8/Q3K3 w - - 0 1")
        assert evaluate(board) > 0
        board.turn = chess.BLACK
        assert evaluate(board) < 0


class TestNegamaxSearcher:
    def test_returns_legal_move_from_start(self) -> None:
        board = chess.Board()
        result = NegamaxSearcher().search(board, 2)

        assert result.best_move in board.legal_moves
        assert result.depth == 2
        assert result.nodes > 0

    def test_finds_mate_in_one(self) -> None:
        board = Rules.new_board(BACK_RANK_MATE)
        result = NegamaxSearcher().search(board, 2)

        assert result.best_move == chess.Move.from_uci("a1a8")
        assert is_decisive(result.score)

    def test_checkmated_side_has_empty_line(self) -> None:
        result = NegamaxSearcher().search(Rules.new_board(FOOLS_MATE), 3)
        assert result.line == ()
        assert result.score == -MATE_SCORE

    def test_does_not_modify_board(self) -> None:
        board = chess.Board()
        NegamaxSearcher().search(board, 2)
        assert board.fen() == chess.STARTING_FEN
        assert not board.move_stack

    def test_rejects_zero_depth(self) -> None:
        with pytest.raises(ValueError):
            NegamaxSearcher().search(chess.Board(), 0)

    def test_cancellation_aborts(self) -> None:
        calls = 0

        def cancelled() -> bool:
            nonlocal calls
            calls += 1
            return calls > 10

        with pytest.raises(SearchAborted):
            NegamaxSearcher().search(chess.Board(), 3, is_cancelled=cancelled)

    def test_hint_is_ordered_first(self) -> None:
        board = chess.Board()
        hint = chess.Move.from_uci("b1c3")
        ordered = NegamaxSearcher()._order_moves(board, list(board.legal_moves), hint)
        assert ordered[0] == hint

    def test_captures_ordered_before_quiet_moves(self) -> None:
        board = chess.Board("4k3/8/8/3p4/4P3/8/8/4K3 w - - 0 1")
        ordered = NegamaxSearcher()._order_moves(board, list(board.legal_moves), None)
        assert ordered[0] == chess.Move.from_uci("e4d5")

    def test_randomized_play_stays_legal(self) -> None:
        board = chess.Board()
        for seed in range(3):
            result = NegamaxSearcher(randomized=True, seed=seed).search(board, 1)
            assert result.best_move in board.legal_moves
