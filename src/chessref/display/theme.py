"""Colours of the display board."""

from __future__ import annotations

from dataclasses import dataclass

from PyQt6.QtGui import QColor


@dataclass(frozen=True)
class BoardTheme:
    """Colour scheme for the chessboard."""

    light_square: QColor
    dark_square: QColor
    selected: QColor  # origin square of the move being entered
    target: QColor  # legal destinations of the selected piece
    last_move: QColor
    white_piece: QColor
    black_piece: QColor
    coordinate: QColor

    @classmethod
    def default(cls) -> BoardTheme:
        return cls(
            light_square=QColor(240, 217, 181),
            dark_square=QColor(181, 136, 99),
            selected=QColor(255, 255, 0, 100),
            target=QColor(0, 0, 0, 40),
            last_move=QColor(155, 199, 0, 105),
            white_piece=QColor(255, 255, 255),
            black_piece=QColor(20, 20, 20),
            coordinate=QColor(90, 60, 40),
        )
