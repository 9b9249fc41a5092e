"""Tests for move text encoding and decoding."""

import chess
import pytest

from chessref.core.notation import MoveParseError, move_to_text, parse_move
from chessref.core.rules import Rules


class TestMoveToText:
    def test_plain_move(self) -> None:
        assert move_to_text(chess.Move.from_uci("e2e4")) == "e2e4"

    def test_promotion(self) -> None:
        assert move_to_text(chess.Move.from_uci("e7e8q")) == "e7e8q"

    def test_null_move_has_no_text(self) -> None:
        with pytest.raises(MoveParseError):
            move_to_text(chess.Move.null())


class TestParseMove:
    def test_parses_uci(self) -> None:
        assert parse_move(" g1f3 ") == chess.Move.from_uci("g1f3")

    @pytest.mark.parametrize("text", ["", "   ", "e2", "xyz", "e2e9", "Nf3"])
    def test_rejects_malformed_text(self, text: str) -> None:
        with pytest.raises(MoveParseError):
            parse_move(text)

    def test_rejects_null_move(self) -> None:
        with pytest.raises(MoveParseError):
            parse_move("0000")

    def test_parse_error_is_value_error(self) -> None:
        assert issubclass(MoveParseError, ValueError)

    def test_every_legal_move_survives_text_form(self) -> None:
        board = Rules.new_board(
            "r3k2r/pPpp1ppp/8/4pP2/8/8/P1PPP1PP/R3K2R w KQkq e6 0 1"
        )
        for move in Rules.legal_moves(board):
            decoded = parse_move(move_to_text(move))
            original, replay = Rules.copy(board), Rules.copy(board)
            Rules.apply(original, move)
            Rules.apply(replay, decoded)
            assert original.fen() == replay.fen()
