"""Line protocol between the referee and its peer processes."""

from chessref.protocol.commands import (
    ACK,
    Command,
    InformMove,
    MoveReply,
    RequestMove,
    is_ack,
    parse_command,
    parse_reply,
)
from chessref.protocol.interrupt import InterruptLatch
from chessref.protocol.lines import LineReader, StopSource, write_line
from chessref.protocol.wakeup import Wakeup, WakeupToken

__all__ = [
    "ACK",
    "Command",
    "InformMove",
    "InterruptLatch",
    "LineReader",
    "MoveReply",
    "RequestMove",
    "StopSource",
    "Wakeup",
    "WakeupToken",
    "is_ack",
    "parse_command",
    "parse_reply",
    "write_line",
]
