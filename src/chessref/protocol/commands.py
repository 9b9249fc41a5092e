"""Command grammar of the referee <-> peer protocol.

One command per newline-terminated line::

    <                  referee -> peer   request the peer's move
    >{side}:{move}     referee -> peer   {side} played {move}
    {side}:{move}      peer -> referee   the peer's own move (or ``resign``)
    ok                 peer -> referee   acknowledgement of an inform-move

The side label is always spelled out on inform-move lines.
"""

from __future__ import annotations

from dataclasses import dataclass

from chessref.core.enums import Color
from chessref.core.notation import RESIGN_TEXT
from chessref.errors import ProtocolViolation

REQUEST_PREFIX = "<"
INFORM_PREFIX = ">"
ACK = "ok"


@dataclass(slots=True, frozen=True)
class RequestMove:
    """Ask the peer for its move in the current position."""

    def encode(self) -> str:
        return REQUEST_PREFIX


@dataclass(slots=True, frozen=True)
class InformMove:
    """Tell the peer that *side* played *text*."""

    side: Color
    text: str

    def encode(self) -> str:
        return f"{INFORM_PREFIX}{self.side}:{self.text}"


@dataclass(slots=True, frozen=True)
class MoveReply:
    """A peer's answer to :class:`RequestMove`."""

    side: Color
    text: str

    @classmethod
    def resignation(cls, side: Color) -> MoveReply:
        return cls(side, RESIGN_TEXT)

    @property
    def is_resignation(self) -> bool:
        return self.text == RESIGN_TEXT

    def encode(self) -> str:
        return f"{self.side}:{self.text}"


Command = RequestMove | InformMove


def _split_side(body: str, peer: str, line: str) -> tuple[Color, str]:
    label, sep, text = body.partition(":")
    if not sep:
        raise ProtocolViolation(peer, line, "missing side prefix")
    try:
        side = Color.parse(label)
    except ValueError:
        raise ProtocolViolation(peer, line, f"unknown side {label!r}") from None
    text = text.strip()
    if not text:
        raise ProtocolViolation(peer, line, "empty move text")
    return side, text


def parse_command(line: str, peer: str = "referee") -> Command:
    """Parse one referee -> peer command line."""
    stripped = line.strip()
    if stripped == REQUEST_PREFIX:
        return RequestMove()
    if stripped.startswith(INFORM_PREFIX):
        side, text = _split_side(stripped[len(INFORM_PREFIX) :], peer, line)
        return InformMove(side, text)
    raise ProtocolViolation(peer, line, "unknown command")


def parse_reply(line: str, peer: str) -> MoveReply:
    """Parse one peer -> referee move line."""
    stripped = line.strip()
    if stripped.startswith((REQUEST_PREFIX, INFORM_PREFIX)) or stripped == ACK:
        raise ProtocolViolation(peer, line, "expected a move line")
    side, text = _split_side(stripped, peer, line)
    return MoveReply(side, text)


def is_ack(line: str | None) -> bool:
    return line is not None and line.strip() == ACK
