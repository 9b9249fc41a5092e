"""The referee: owns the canonical game and drives the turn loop.

::

    INIT -> DETERMINE_TURN -> AWAIT_MOVE -> VALIDATE -> COMMIT
         -> NOTIFY_PEERS -> DETERMINE_TURN ... -> TERMINAL

Every exit path, including fatal errors and SIGINT/SIGTERM, goes through
:func:`~chessref.protocol.channel.shutdown_children`.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import IO

import chess

from chessref.core.enums import Color
from chessref.core.notation import MoveParseError, parse_move
from chessref.core.rules import IllegalMoveError
from chessref.errors import (
    GameInterrupted,
    HistoryError,
    PeerClosedError,
    ProtocolViolation,
    RefereeError,
)
from chessref.protocol.channel import Channel, describe_exit, shutdown_children
from chessref.protocol.commands import MoveReply
from chessref.protocol.interrupt import InterruptLatch
from chessref.protocol.lines import LineReader
from chessref.referee.config import RefereeConfig
from chessref.referee.interfaces import IMoveSource, TurnPhase
from chessref.referee.sources import DisplaySource, EngineSource, LocalInputSource
from chessref.referee.state import GameState, MoveRecord
from chessref.referee.transcript import TranscriptWriter, read_history

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

TOURNAMENT_PREFIX = "@@@"

SpawnFn = Callable[[str, list[str]], Channel]


class Referee:
    """One refereed game session.

    Args:
        config: Launch configuration.
        engine: Move source for the engine side(s); spawned when omitted.
        display: Move source for the display; spawned when omitted and
            ``config.display`` is set.
        local: Terminal move source; built over stdin when omitted.
        output: Stream for results and tournament echoes.
        spawn: Factory for peer channels.
        handle_signals: Latch SIGINT/SIGTERM and end the game with
            :class:`GameInterrupted` at the next read or turn.
        banner_timeout: Seconds a spawned peer has to print its banner.
    """

    def __init__(
        self,
        config: RefereeConfig,
        *,
        engine: IMoveSource | None = None,
        display: IMoveSource | None = None,
        local: IMoveSource | None = None,
        output: IO[str] | None = None,
        spawn: SpawnFn = Channel.spawn,
        handle_signals: bool = True,
        banner_timeout: float = 15.0,
    ) -> None:
        self._config = config
        self._engine = engine
        self._display = display
        self._local = local
        self._output = output if output is not None else sys.stdout
        self._spawn = spawn
        self._handle_signals = handle_signals
        self._banner_timeout = banner_timeout

        self._state = GameState()
        self._channels: dict[str, Channel] = {}
        self._engine_channel: Channel | None = None
        self._display_channel: Channel | None = None
        self._transcript: TranscriptWriter | None = None
        self._interrupt = InterruptLatch()

    @property
    def state(self) -> GameState:
        return self._state

    # ── Public API ───────────────────────────────────────────────────────

    def run(self) -> int:
        """Play one game to completion; returns the process exit status."""
        if self._handle_signals:
            self._interrupt.install()
        try:
            self._start()
            self._loop()
            self._announce()
            return EXIT_OK
        except GameInterrupted as exc:
            _LOGGER.warning("Game interrupted: %s", exc)
            return EXIT_OK
        except RefereeError as exc:
            _LOGGER.error("Fatal: %s", exc)
            return EXIT_FAILURE
        finally:
            self._state.phase = TurnPhase.TERMINAL
            self._shutdown()

    # ── INIT ─────────────────────────────────────────────────────────────

    def _start(self) -> None:
        self._state.phase = TurnPhase.INIT
        if self._config.transcript_path is not None:
            self._transcript = TranscriptWriter(self._config.transcript_path)
            self._transcript.open()
        if self._config.history_path is not None:
            self._replay_history()

        fen = self._state.board.fen()
        if self._config.display and self._display is None:
            argv = [sys.executable, "-m", "chessref.display", "--fen", fen]
            if self._config.human_plays_black_only:
                argv.append("--flip")
            self._display_channel = self._launch("display", argv)
            self._display = DisplaySource(self._display_channel)
        if self._config.uses_engine and self._engine is None:
            argv = [
                sys.executable,
                "-m",
                "chessref.engine",
                "--fen",
                fen,
                "--avg-time",
                str(self._config.avg_time),
            ]
            if self._config.randomized:
                argv.append("--randomized")
            if self._config.verbose:
                argv.append("--verbose")
            self._engine_channel = self._launch("engine", argv)
            self._engine = EngineSource(self._engine_channel)
        if self._local is None:
            prompt = sys.stderr if self._config.tournament else self._output
            self._local = LocalInputSource(
                LineReader(sys.stdin.fileno()), prompt, self._interrupt
            )

    def _launch(self, name: str, argv: list[str]) -> Channel:
        channel = self._spawn(name, argv)
        channel.watch_interrupt(self._interrupt)
        self._channels[name] = channel
        channel.await_banner(self._banner_timeout)
        return channel

    def _replay_history(self) -> None:
        """Commit every preloaded move through the normal legality check.

        Peers are spawned afterwards from the resulting position, so nothing
        needs to be notified here.
        """
        path = self._config.history_path
        assert path is not None
        for index, (side, text) in enumerate(read_history(path), start=1):
            if self._state.is_game_over:
                raise HistoryError(f"move {index} ({text}) follows the end of the game")
            if side is not None and side != self._state.side_to_move:
                raise HistoryError(
                    f"move {index} ({text}) is for {side}, "
                    f"but {self._state.side_to_move} is to move"
                )
            try:
                record = self._state.commit(parse_move(text))
            except (MoveParseError, IllegalMoveError) as exc:
                raise HistoryError(f"move {index}: {exc}") from None
            self._write_transcript(record)
        _LOGGER.info("Replayed history; %s to move", self._state.side_to_move)

    # ── LOOP ─────────────────────────────────────────────────────────────

    def _loop(self) -> None:
        state = self._state
        while True:
            self._interrupt.check()
            self._check_children()
            if state.is_game_over:
                return

            state.phase = TurnPhase.DETERMINE_TURN
            side = state.side_to_move
            source = self._source_for(side)

            state.phase = TurnPhase.AWAIT_MOVE
            _LOGGER.debug("Asking %s for %s's move", source.name, side)
            reply = source.request_move(state)

            state.phase = TurnPhase.VALIDATE
            if reply.is_resignation:
                _LOGGER.info("%s resigns", side)
                state.resign(side)
                continue
            move = self._validate(source, reply)

            state.phase = TurnPhase.COMMIT
            record = state.commit(move)
            _LOGGER.info("%s played %s (%s)", side, record.text, source.name)
            self._write_transcript(record)
            if self._config.tournament and source is self._engine:
                self._echo(f"{TOURNAMENT_PREFIX}{record.side}:{record.text}")

            state.phase = TurnPhase.NOTIFY_PEERS
            self._notify_peers(source, record)

    def _source_for(self, side: Color) -> IMoveSource:
        if self._config.engine_plays(side) and self._engine is not None:
            return self._engine
        if self._display is not None and not self._config.tournament:
            return self._display
        assert self._local is not None
        return self._local

    def _validate(self, source: IMoveSource, reply: MoveReply) -> chess.Move:
        try:
            move = parse_move(reply.text)
        except MoveParseError as exc:
            raise ProtocolViolation(source.name, reply.encode(), str(exc)) from None
        if not self._state.is_legal(move):
            raise ProtocolViolation(source.name, reply.encode(), "illegal move")
        return move

    def _notify_peers(self, acting: IMoveSource, record: MoveRecord) -> None:
        if self._engine is not None and acting is not self._engine:
            self._engine.notify(record)
        if self._display is not None and acting is not self._display:
            try:
                self._display.notify(record)
            except PeerClosedError as exc:
                _LOGGER.warning("%s; continuing without the display", exc)
                self._display = None

    def _check_children(self) -> None:
        """Notice peers that exited since the last turn."""
        for name, channel in list(self._channels.items()):
            status = channel.poll()
            if status is None:
                continue
            del self._channels[name]
            detail = describe_exit(status)
            if channel is self._engine_channel:
                raise PeerClosedError(name, detail)
            _LOGGER.warning("%s %s; continuing without it", name, detail)
            channel.close_streams()
            if channel is self._display_channel:
                self._display = None
                self._display_channel = None

    # ── TERMINAL ─────────────────────────────────────────────────────────

    def _announce(self) -> None:
        result = self._state.result
        if self._state.resigned is not None:
            _LOGGER.info("%s resigned", self._state.resigned)
        self._echo(result.announcement())

    def _echo(self, line: str) -> None:
        self._output.write(line + "\n")
        self._output.flush()

    def _write_transcript(self, record: MoveRecord) -> None:
        if self._transcript is not None:
            self._transcript.write(record)

    def _shutdown(self) -> None:
        # A second ^C must not cut the teardown short.
        self._interrupt.ignore()
        try:
            shutdown_children(self._channels.values())
            self._channels.clear()
            if self._transcript is not None:
                self._transcript.close()
        finally:
            self._interrupt.uninstall()
