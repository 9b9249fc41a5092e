"""Protocol state of the display process, independent of Qt."""

from __future__ import annotations

import logging

import chess

from chessref.core.enums import Color
from chessref.core.notation import MoveParseError, move_to_text, parse_move
from chessref.core.rules import Rules
from chessref.errors import ProtocolViolation
from chessref.protocol.commands import ACK, InformMove, MoveReply, RequestMove, parse_command

_LOGGER = logging.getLogger(__name__)

BANNER = "chessref display ready"


class DisplaySession:
    """Mirror board plus the pending-request flag of the display peer.

    :meth:`handle_line` consumes referee commands and returns the lines to
    send back; :meth:`submit` turns a move picked on the board into a reply
    when one was requested.
    """

    def __init__(self, board: chess.Board | None = None) -> None:
        self._board = board if board is not None else Rules.new_board()
        self._awaiting = False
        self._last_move: chess.Move | None = None

    @property
    def board(self) -> chess.Board:
        return self._board

    @property
    def awaiting_move(self) -> bool:
        return self._awaiting

    @property
    def side_to_move(self) -> Color:
        return Rules.side_to_move(self._board)

    @property
    def last_move(self) -> chess.Move | None:
        return self._last_move

    def handle_line(self, line: str) -> list[str]:
        """Apply one referee command.

        Raises:
            ProtocolViolation: malformed command, or an inform-move that is
                out of turn or illegal on the mirror board.
        """
        command = parse_command(line)
        if isinstance(command, RequestMove):
            self._awaiting = True
            return []
        assert isinstance(command, InformMove)
        if command.side != self.side_to_move:
            raise ProtocolViolation("referee", line, f"{command.side} is not to move")
        try:
            move = parse_move(command.text)
        except MoveParseError as exc:
            raise ProtocolViolation("referee", line, str(exc)) from None
        if not Rules.is_legal(self._board, move):
            raise ProtocolViolation("referee", line, "illegal move")
        self._apply(move)
        return [ACK]

    def submit(self, move: chess.Move) -> str | None:
        """Reply line for a move picked by the user, or ``None`` if not wanted."""
        if not self._awaiting:
            _LOGGER.debug("Ignoring %s: no move was requested", move)
            return None
        if not Rules.is_legal(self._board, move):
            return None
        side = self.side_to_move
        text = move_to_text(move)
        self._apply(move)
        self._awaiting = False
        return MoveReply(side, text).encode()

    def resign(self) -> str | None:
        if not self._awaiting:
            return None
        self._awaiting = False
        return MoveReply.resignation(self.side_to_move).encode()

    def _apply(self, move: chess.Move) -> None:
        Rules.apply(self._board, move)
        self._last_move = move
