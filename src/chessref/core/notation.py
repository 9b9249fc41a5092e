"""Move text encoding: UCI long algebraic notation."""

from __future__ import annotations

import chess

# Reply text a side sends instead of a move when it gives up.
RESIGN_TEXT = "resign"


class MoveParseError(ValueError):
    """Raised when move text does not denote a concrete move."""


def move_to_text(move: chess.Move) -> str:
    """Render *move* to its canonical wire text (``e2e4``, ``e7e8q``)."""
    if not move:
        raise MoveParseError("The null move has no text form")
    return move.uci()


def parse_move(text: str) -> chess.Move:
    """Parse canonical move text back into a move.

    The null move (``0000``) is rejected like any other malformed text:
    it never denotes a state transition of the game.
    """
    stripped = text.strip()
    if not stripped:
        raise MoveParseError("Empty move text")
    try:
        move = chess.Move.from_uci(stripped)
    except ValueError as exc:
        raise MoveParseError(f"Malformed move text: {stripped!r}") from exc
    if not move:
        raise MoveParseError(f"Null move is not a move: {stripped!r}")
    return move
