"""Tests for the referee turn loop with scripted move sources."""

import io
import logging
import os
import signal
from collections import deque
from collections.abc import Sequence
from pathlib import Path

import chess
import pytest

from chessref.core.enums import Color, GameResult
from chessref.errors import GameInterrupted, PeerClosedError, SpawnError
from chessref.protocol.commands import MoveReply
from chessref.referee.config import RefereeConfig
from chessref.referee.interfaces import IMoveSource, TurnPhase
from chessref.referee.orchestrator import EXIT_FAILURE, EXIT_OK, Referee

FOOLS_MATE = ["f2f3", "e7e5", "g2g4", "d8h4"]
SCHOLARS_MATE = ["e2e4", "e7e5", "d1h5", "b8c6", "f1c4", "g8f6", "h5f7"]


class _ScriptedSource(IMoveSource):
    def __init__(self, name: str, moves: Sequence[str] = ()) -> None:
        self._name = name
        self._moves = deque(moves)
        self.requested: list[Color] = []
        self.notified: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def request_move(self, state):
        self.requested.append(state.side_to_move)
        if not self._moves:
            raise GameInterrupted()
        return MoveReply(state.side_to_move, self._moves.popleft())

    def notify(self, record) -> None:
        self.notified.append(record.text)


class _VanishingDisplay(_ScriptedSource):
    def notify(self, record) -> None:
        raise PeerClosedError(self.name, "exited with code 0")


def _referee(config: RefereeConfig, **sources) -> tuple[Referee, io.StringIO]:
    output = io.StringIO()
    sources.setdefault("local", _ScriptedSource("terminal"))
    referee = Referee(config, output=output, handle_signals=False, **sources)
    return referee, output


def _split(moves: list[str]) -> tuple[list[str], list[str]]:
    return moves[0::2], moves[1::2]


class TestTurnLoop:
    def test_engine_self_play_to_mate(self) -> None:
        engine = _ScriptedSource("engine", SCHOLARS_MATE)
        config = RefereeConfig(engine_sides=frozenset(Color), display=False)
        referee, output = _referee(config, engine=engine)

        assert referee.run() == EXIT_OK
        assert referee.state.result == GameResult.WHITE_WINS
        assert referee.state.phase == TurnPhase.TERMINAL
        assert output.getvalue() == "white wins!\n"
        assert engine.notified == []

    def test_engine_against_local_player(self) -> None:
        white, black = _split(FOOLS_MATE)
        engine = _ScriptedSource("engine", white)
        local = _ScriptedSource("terminal", black)
        config = RefereeConfig(engine_sides=frozenset({Color.WHITE}), display=False)
        referee, output = _referee(config, engine=engine, local=local)

        assert referee.run() == EXIT_OK
        assert output.getvalue() == "black wins!\n"
        assert engine.requested == [Color.WHITE, Color.WHITE]
        assert engine.notified == ["e7e5", "d8h4"]

    def test_display_moves_and_notifications(self) -> None:
        white, black = _split(FOOLS_MATE)
        engine = _ScriptedSource("engine", black)
        display = _ScriptedSource("display", white)
        config = RefereeConfig(engine_sides=frozenset({Color.BLACK}))
        referee, _ = _referee(config, engine=engine, display=display)

        assert referee.run() == EXIT_OK
        assert display.notified == black
        assert engine.notified == white

    def test_tournament_mode_uses_local_input_and_echoes(self) -> None:
        white, black = _split(FOOLS_MATE)
        engine = _ScriptedSource("engine", black)
        display = _ScriptedSource("display")
        local = _ScriptedSource("terminal", white)
        config = RefereeConfig(engine_sides=frozenset({Color.BLACK}), tournament=True)
        referee, output = _referee(config, engine=engine, display=display, local=local)

        assert referee.run() == EXIT_OK
        assert display.requested == []
        assert display.notified == FOOLS_MATE
        assert output.getvalue().splitlines() == [
            "@@@black:e7e5",
            "@@@black:d8h4",
            "black wins!",
        ]

    def test_resignation_ends_game(self) -> None:
        engine = _ScriptedSource("engine", ["e2e4", "resign"])
        config = RefereeConfig(engine_sides=frozenset(Color), display=False)
        referee, output = _referee(config, engine=engine)

        assert referee.run() == EXIT_OK
        assert referee.state.resigned == Color.BLACK
        assert output.getvalue() == "white wins!\n"

    def test_interrupt_exits_cleanly(self) -> None:
        config = RefereeConfig(display=False)
        referee, output = _referee(config)
        assert referee.run() == EXIT_OK
        assert output.getvalue() == ""

    def test_display_loss_falls_back_to_local_input(self) -> None:
        white, black = _split(FOOLS_MATE)
        engine = _ScriptedSource("engine", white)
        display = _VanishingDisplay("display")
        local = _ScriptedSource("terminal", black)
        config = RefereeConfig(engine_sides=frozenset({Color.WHITE}))
        referee, _ = _referee(config, engine=engine, display=display, local=local)

        assert referee.run() == EXIT_OK
        assert local.requested == [Color.BLACK, Color.BLACK]
        assert display.requested == []


class TestProtocolViolations:
    def test_illegal_move_is_fatal_and_not_committed(self) -> None:
        engine = _ScriptedSource("engine", ["e2e4", "e7e4"])
        config = RefereeConfig(engine_sides=frozenset(Color), display=False)
        referee, output = _referee(config, engine=engine)

        assert referee.run() == EXIT_FAILURE
        assert [r.text for r in referee.state.move_history] == ["e2e4"]
        assert referee.state.result == GameResult.IN_PROGRESS
        assert output.getvalue() == ""

    @pytest.mark.parametrize("text", ["0000", "garbage"])
    def test_empty_or_malformed_move_is_fatal(self, text: str) -> None:
        engine = _ScriptedSource("engine", [text])
        config = RefereeConfig(engine_sides=frozenset(Color), display=False)
        referee, _ = _referee(config, engine=engine)

        assert referee.run() == EXIT_FAILURE
        assert referee.state.move_history == []


class TestHistoryAndTranscript:
    def test_transcript_replays_to_same_state(self, tmp_path: Path) -> None:
        transcript = tmp_path / "game.txt"
        engine = _ScriptedSource("engine", SCHOLARS_MATE)
        config = RefereeConfig(
            engine_sides=frozenset(Color), display=False, transcript_path=transcript
        )
        played, _ = _referee(config, engine=engine)
        assert played.run() == EXIT_OK
        assert transcript.read_text().splitlines()[:2] == [
            "1. white:e2e4",
            "1. ... black:e7e5",
        ]

        idle = _ScriptedSource("engine")
        config = RefereeConfig(
            engine_sides=frozenset(Color), display=False, history_path=transcript
        )
        replayed, output = _referee(config, engine=idle)

        assert replayed.run() == EXIT_OK
        assert idle.requested == []
        assert replayed.state.board.fen() == played.state.board.fen()
        assert replayed.state.result == GameResult.WHITE_WINS
        assert output.getvalue() == "white wins!\n"

    def test_history_then_live_play(self, tmp_path: Path) -> None:
        history = tmp_path / "opening.txt"
        history.write_text("f2f3\ne7e5\n")
        engine = _ScriptedSource("engine", ["g2g4", "d8h4"])
        config = RefereeConfig(
            engine_sides=frozenset(Color), display=False, history_path=history
        )
        referee, _ = _referee(config, engine=engine)

        assert referee.run() == EXIT_OK
        assert referee.state.result == GameResult.BLACK_WINS
        assert len(referee.state.move_history) == 4

    @pytest.mark.parametrize(
        "text", ["e2e5\n", "black:e7e5\n", "f2f3\ne7e5\ng2g4\nd8h4\na2a3\n"]
    )
    def test_bad_history_is_fatal(self, tmp_path: Path, text: str) -> None:
        history = tmp_path / "bad.txt"
        history.write_text(text)
        config = RefereeConfig(display=False, history_path=history)
        referee, _ = _referee(config)
        assert referee.run() == EXIT_FAILURE

    def test_board_untouched_by_bad_first_move(self, tmp_path: Path) -> None:
        history = tmp_path / "bad.txt"
        history.write_text("e2e5\n")
        referee, _ = _referee(RefereeConfig(display=False, history_path=history))
        referee.run()
        assert referee.state.board.fen() == chess.STARTING_FEN


class _SignalOnFirstWrite(io.StringIO):
    """A log stream that receives SIGTERM while its first record is written."""

    def __init__(self) -> None:
        super().__init__()
        self.fired = False

    def write(self, text: str) -> int:
        if not self.fired:
            self.fired = True
            os.kill(os.getpid(), signal.SIGTERM)
        return super().write(text)


class TestStopSignals:
    def test_sigterm_during_log_write_ends_the_game(self) -> None:
        engine = _ScriptedSource("engine", SCHOLARS_MATE)
        config = RefereeConfig(engine_sides=frozenset(Color), display=False)
        output = io.StringIO()
        referee = Referee(
            config,
            engine=engine,
            local=_ScriptedSource("terminal"),
            output=output,
        )
        stream = _SignalOnFirstWrite()
        handler = logging.StreamHandler(stream)
        logger = logging.getLogger("chessref.referee.orchestrator")
        level = logger.level
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            status = referee.run()
        finally:
            logger.removeHandler(handler)
            logger.setLevel(level)

        assert stream.fired
        assert status == EXIT_OK
        assert output.getvalue() == ""
        assert [r.text for r in referee.state.move_history] == ["e2e4"]
        assert "interrupted by signal" in stream.getvalue()

    def test_signal_handlers_are_restored(self) -> None:
        before = signal.getsignal(signal.SIGTERM)
        config = RefereeConfig(engine_sides=frozenset(Color), display=False)
        referee = Referee(
            config,
            engine=_ScriptedSource("engine"),
            local=_ScriptedSource("terminal"),
            output=io.StringIO(),
        )
        assert referee.run() == EXIT_OK
        assert signal.getsignal(signal.SIGTERM) == before


class TestPeerLaunch:
    @pytest.mark.parametrize(
        ("sides", "flipped"),
        [(frozenset({Color.WHITE}), True), (frozenset({Color.BLACK}), False)],
    )
    def test_display_faces_the_human(self, sides, flipped: bool) -> None:
        launched: list[list[str]] = []

        def spawn(name: str, argv: list[str]):
            launched.append(argv)
            raise SpawnError(f"{name}: not started")

        referee = Referee(
            RefereeConfig(engine_sides=sides),
            engine=_ScriptedSource("engine"),
            local=_ScriptedSource("terminal"),
            output=io.StringIO(),
            spawn=spawn,
            handle_signals=False,
        )

        assert referee.run() == EXIT_FAILURE
        assert launched[0][2] == "chessref.display"
        assert ("--flip" in launched[0]) is flipped
