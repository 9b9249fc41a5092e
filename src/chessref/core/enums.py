"""Core enumerations for the refereed game."""

from __future__ import annotations

from enum import IntEnum

import chess


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    @property
    def turn(self) -> chess.Color:
        """The python-chess turn flag for this side."""
        return chess.WHITE if self is Color.WHITE else chess.BLACK

    @classmethod
    def from_turn(cls, turn: chess.Color) -> Color:
        return cls.WHITE if turn == chess.WHITE else cls.BLACK

    @classmethod
    def parse(cls, label: str) -> Color:
        """Parse a wire side label (``white`` / ``black``)."""
        try:
            return cls[label.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown side label: {label!r}") from None

    def __str__(self) -> str:
        return self.name.lower()


class GameResult(IntEnum):
    """Outcome of a game."""

    IN_PROGRESS = 0
    WHITE_WINS = 1
    BLACK_WINS = 2
    DRAW = 3

    @classmethod
    def win_for(cls, color: Color) -> GameResult:
        return cls.WHITE_WINS if color == Color.WHITE else cls.BLACK_WINS

    @property
    def winner(self) -> Color | None:
        if self == GameResult.WHITE_WINS:
            return Color.WHITE
        if self == GameResult.BLACK_WINS:
            return Color.BLACK
        return None

    def announcement(self) -> str:
        winner = self.winner
        if winner is not None:
            return f"{winner} wins!"
        if self == GameResult.DRAW:
            return "draw"
        return "in progress"
