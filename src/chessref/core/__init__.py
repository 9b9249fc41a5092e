"""Board-engine layer: python-chess behind a small rules contract.

Quick start::

    from chessref.core import Rules, move_to_text, parse_move

    board = Rules.new_board()
    move = parse_move("e2e4")
    if Rules.is_legal(board, move):
        Rules.apply(board, move)
"""

from chessref.core.enums import Color, GameResult
from chessref.core.notation import (
    RESIGN_TEXT,
    MoveParseError,
    move_to_text,
    parse_move,
)
from chessref.core.rules import IllegalMoveError, Rules

__all__ = [
    # Enums
    "Color",
    "GameResult",
    # Rules
    "IllegalMoveError",
    "Rules",
    # Notation
    "RESIGN_TEXT",
    "MoveParseError",
    "move_to_text",
    "parse_move",
]
