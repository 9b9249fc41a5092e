"""Main loop of the engine process: one command per wakeup."""

from __future__ import annotations

import logging
from typing import IO

from chessref.engine.scheduler import SearchScheduler
from chessref.errors import ProtocolViolation
from chessref.protocol.commands import ACK, InformMove, RequestMove, parse_command
from chessref.protocol.lines import LineReader, write_line
from chessref.protocol.wakeup import WakeupToken

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PROTOCOL_VIOLATION = 3

BANNER = "chessref engine ready"


class EngineProcess:
    """Glues the wakeup token and command pipes to a :class:`SearchScheduler`.

    Args:
        scheduler: Search state machine.
        token: Wakeup token (installed on SIGHUP by the entry point).
        reader: Command stream from the referee.
        output: Reply stream to the referee.
        read_grace: How long a wakeup may precede its command line.
    """

    __slots__ = ("_scheduler", "_token", "_reader", "_output", "_read_grace")

    def __init__(
        self,
        scheduler: SearchScheduler,
        token: WakeupToken,
        reader: LineReader,
        output: IO[str],
        *,
        read_grace: float = 0.5,
    ) -> None:
        self._scheduler = scheduler
        self._token = token
        self._reader = reader
        self._output = output
        self._read_grace = read_grace

    def announce(self) -> None:
        write_line(self._output, BANNER)

    def run(self) -> int:
        """Serve commands until the referee closes the pipe."""
        think_ahead = False
        while True:
            idle = not self._token.command_pending
            if idle and not self._reader.has_buffered_line():
                if think_ahead:
                    think_ahead = False
                    self._scheduler.think_ahead()
                    continue
                self._token.wait(self._reader)

            self._token.consume_command()
            try:
                line = self._reader.read_line(self._read_grace)
            except EOFError:
                _LOGGER.info("Referee closed the command pipe")
                return EXIT_OK
            except UnicodeDecodeError as exc:
                violation = ProtocolViolation("referee", repr(exc.object), "invalid UTF-8")
                _LOGGER.error("Protocol violation: %s", violation)
                return EXIT_PROTOCOL_VIOLATION
            if line is None:
                _LOGGER.debug("Spurious wakeup without a command")
                continue

            try:
                think_ahead = self._dispatch(line)
            except ProtocolViolation as exc:
                _LOGGER.error("Protocol violation: %s", exc)
                return EXIT_PROTOCOL_VIOLATION

    def _dispatch(self, line: str) -> bool:
        """Handle one command; returns whether to think on idle time."""
        command = parse_command(line)
        if isinstance(command, RequestMove):
            reply = self._scheduler.handle_request()
            write_line(self._output, reply.encode())
            return False
        if isinstance(command, InformMove):
            self._scheduler.handle_inform(command)
            write_line(self._output, ACK)
            return True
        raise ProtocolViolation("referee", line, "unhandled command")
