"""Canonical game state, the only authoritative position of a session."""

from __future__ import annotations

from dataclasses import dataclass, field

import chess

from chessref.core.enums import Color, GameResult
from chessref.core.notation import move_to_text
from chessref.core.rules import Rules
from chessref.referee.interfaces import TurnPhase


@dataclass(frozen=True, slots=True)
class MoveRecord:
    """A single committed move."""

    ply: int  # ply count before the move
    side: Color
    move: chess.Move
    text: str

    @property
    def turn_number(self) -> int:
        return self.ply // 2 + 1


@dataclass
class GameState:
    """Owns the board, the turn phase, the result and the move history.

    This is a pure data/logic class without processes or I/O. The board is
    only ever mutated through :meth:`commit`, which refuses illegal moves.
    """

    board: chess.Board = field(default_factory=Rules.new_board)
    phase: TurnPhase = TurnPhase.INIT
    result: GameResult = GameResult.IN_PROGRESS
    resigned: Color | None = None
    move_history: list[MoveRecord] = field(default_factory=list)

    @property
    def side_to_move(self) -> Color:
        return Rules.side_to_move(self.board)

    @property
    def ply(self) -> int:
        return Rules.ply(self.board)

    @property
    def is_game_over(self) -> bool:
        return self.result != GameResult.IN_PROGRESS

    def is_legal(self, move: chess.Move | None) -> bool:
        return Rules.is_legal(self.board, move)

    def commit(self, move: chess.Move) -> MoveRecord:
        """Apply a move after re-checking it against the pre-move board.

        Raises:
            IllegalMoveError: *move* is not legal here; the board is untouched.
        """
        record = MoveRecord(
            ply=self.ply,
            side=self.side_to_move,
            move=move,
            text=move_to_text(move),
        )
        Rules.apply(self.board, move)
        self.move_history.append(record)
        self.result = Rules.result(self.board)
        return record

    def resign(self, color: Color) -> None:
        if self.is_game_over:
            return
        self.resigned = color
        self.result = GameResult.win_for(color.opposite)
