"""Concrete move sources: engine process, display process, terminal."""

from __future__ import annotations

import logging
from typing import IO, TYPE_CHECKING

from chessref.core.notation import RESIGN_TEXT, MoveParseError, parse_move
from chessref.core.rules import Rules
from chessref.errors import GameInterrupted, ProtocolViolation
from chessref.protocol.commands import (
    InformMove,
    MoveReply,
    RequestMove,
    is_ack,
    parse_reply,
)
from chessref.referee.interfaces import IMoveSource

if TYPE_CHECKING:
    from chessref.protocol.channel import Channel
    from chessref.protocol.lines import LineReader, StopSource
    from chessref.referee.state import GameState, MoveRecord

_LOGGER = logging.getLogger(__name__)


def _checked_reply(line: str, peer: str, state: GameState) -> MoveReply:
    reply = parse_reply(line, peer)
    if reply.side != state.side_to_move:
        raise ProtocolViolation(peer, line, f"answered for {reply.side} out of turn")
    return reply


class EngineSource(IMoveSource):
    """The search engine process, authoritative for its own side(s).

    No timeout is imposed on a move request: the engine limits itself.
    The acknowledgement of an inform-move is required; a missing or wrong
    one is a protocol violation because the engine's mirror board would
    otherwise silently diverge.
    """

    __slots__ = ("_channel",)

    def __init__(self, channel: Channel) -> None:
        self._channel = channel

    @property
    def name(self) -> str:
        return self._channel.name

    @property
    def channel(self) -> Channel:
        return self._channel

    def request_move(self, state: GameState) -> MoveReply:
        self._channel.send(RequestMove().encode())
        line = self._channel.read_line()
        if line is None:
            raise ProtocolViolation(self.name, "", "no answer to a move request")
        return _checked_reply(line, self.name, state)

    def notify(self, record: MoveRecord) -> None:
        self._channel.send(InformMove(record.side, record.text).encode())
        line = self._channel.read_line()
        if not is_ack(line):
            raise ProtocolViolation(self.name, line or "", "expected an acknowledgement")


class DisplaySource(IMoveSource):
    """The interactive display process.

    Move requests wait for the human without a timeout. Notifications are
    best effort: the acknowledgement is awaited for a few short, growing
    intervals (re-raising the wakeup each time); after that the display is
    marked degraded and later notifications are sent without waiting.
    """

    ACK_ATTEMPTS = 3
    ACK_BACKOFF = 0.08

    __slots__ = ("_channel", "_degraded")

    def __init__(self, channel: Channel) -> None:
        self._channel = channel
        self._degraded = False

    @property
    def name(self) -> str:
        return self._channel.name

    @property
    def channel(self) -> Channel:
        return self._channel

    @property
    def degraded(self) -> bool:
        return self._degraded

    def request_move(self, state: GameState) -> MoveReply:
        self._channel.send(RequestMove().encode())
        while True:
            line = self._channel.read_line()
            # Late acknowledgements from a degraded notification may still arrive.
            if is_ack(line):
                continue
            return _checked_reply(line or "", self.name, state)

    def notify(self, record: MoveRecord) -> None:
        self._channel.send(InformMove(record.side, record.text).encode())
        if self._degraded:
            return
        for attempt in range(1, self.ACK_ATTEMPTS + 1):
            line = self._channel.read_line(timeout=self.ACK_BACKOFF * attempt)
            if is_ack(line):
                return
            if line is not None:
                _LOGGER.warning("%s: unexpected line %r while awaiting ok", self.name, line)
            self._channel.wake()
        _LOGGER.warning(
            "%s did not acknowledge %s; continuing without waiting for it",
            self.name,
            record.text,
        )
        self._degraded = True


class LocalInputSource(IMoveSource):
    """Moves typed on the terminal (and the tournament text protocol).

    Input that does not parse or is illegal is re-prompted: typing errors
    are not protocol violations. End of input interrupts the game, and so
    does a stop request latched on *interrupt* while waiting for a line.
    """

    __slots__ = ("_input", "_prompt", "_interrupt")

    def __init__(
        self,
        reader: LineReader,
        prompt_stream: IO[str],
        interrupt: StopSource | None = None,
    ) -> None:
        self._input = reader
        self._prompt = prompt_stream
        self._interrupt = interrupt

    @property
    def name(self) -> str:
        return "terminal"

    def request_move(self, state: GameState) -> MoveReply:
        side = state.side_to_move
        while True:
            self._prompt.write(f"{side} to move> ")
            self._prompt.flush()
            try:
                line = self._input.read_line(interrupt=self._interrupt)
            except EOFError:
                raise GameInterrupted() from None
            except UnicodeDecodeError:
                self._prompt.write("input is not valid UTF-8; try again\n")
                continue
            assert line is not None
            text = line.strip()
            if ":" in text:
                text = text.split(":", 1)[1].strip()
            if text == RESIGN_TEXT:
                return MoveReply.resignation(side)
            try:
                move = parse_move(text)
            except MoveParseError as exc:
                self._prompt.write(f"{exc}; try again\n")
                continue
            if not Rules.is_legal(state.board, move):
                self._prompt.write(f"{text} is not legal here; try again\n")
                continue
            return MoveReply(side, text)

    def notify(self, record: MoveRecord) -> None:
        pass  # The terminal reads committed moves from the log.
