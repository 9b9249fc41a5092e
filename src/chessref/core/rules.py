"""High-level rules contract over a python-chess board."""

from __future__ import annotations

import chess

from chessref.core.enums import Color, GameResult


class IllegalMoveError(ValueError):
    """Raised when an illegal move is applied to a board."""


class Rules:
    """Static rule-checker that operates on a :class:`chess.Board`."""

    # Product policy:
    # - Only automatic draws end the game: stalemate, insufficient material,
    #   75-move rule, fivefold repetition. Claim-based draws are never claimed.

    @staticmethod
    def new_board(fen: str | None = None) -> chess.Board:
        return chess.Board(fen) if fen else chess.Board()

    @staticmethod
    def copy(board: chess.Board) -> chess.Board:
        return board.copy(stack=True)

    @staticmethod
    def side_to_move(board: chess.Board) -> Color:
        return Color.from_turn(board.turn)

    @staticmethod
    def ply(board: chess.Board) -> int:
        return board.ply()

    @staticmethod
    def legal_moves(board: chess.Board) -> list[chess.Move]:
        return list(board.legal_moves)

    @staticmethod
    def is_legal(board: chess.Board, move: chess.Move | None) -> bool:
        """True when *move* is a real (non-null) legal move on *board*."""
        if move is None or not move:
            return False
        return board.is_legal(move)

    @staticmethod
    def apply(board: chess.Board, move: chess.Move) -> None:
        if not Rules.is_legal(board, move):
            raise IllegalMoveError(f"Illegal move {move.uci()} in {board.fen()}")
        board.push(move)

    @staticmethod
    def result(board: chess.Board) -> GameResult:
        outcome = board.outcome(claim_draw=False)
        if outcome is None:
            return GameResult.IN_PROGRESS
        if outcome.winner is None:
            return GameResult.DRAW
        return GameResult.win_for(Color.from_turn(outcome.winner))

    @staticmethod
    def is_game_over(board: chess.Board) -> bool:
        return Rules.result(board) != GameResult.IN_PROGRESS
