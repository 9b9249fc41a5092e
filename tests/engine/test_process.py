"""Tests for the engine process loop, in-process and as a real subprocess."""

import io
import os
import sys
import time

import chess
import pytest

from chessref.engine.clock import ThinkingClock
from chessref.engine.process import (
    BANNER,
    EXIT_OK,
    EXIT_PROTOCOL_VIOLATION,
    EngineProcess,
)
from chessref.engine.scheduler import SchedulerSettings, SearchScheduler
from chessref.engine.search import SearchResult
from chessref.protocol.channel import Channel, shutdown_children
from chessref.protocol.lines import LineReader
from chessref.protocol.wakeup import WakeupToken


class _FixedLineSearcher:
    def __init__(self, *texts: str) -> None:
        self._line = tuple(chess.Move.from_uci(t) for t in texts)

    def search(self, board, depth, is_cancelled=None, hint=()):
        line = self._line if self._line and board.is_legal(self._line[0]) else ()
        return SearchResult(0, line, depth, nodes=1)


def _run_commands(commands: bytes, searcher) -> tuple[int, str]:
    r, w = os.pipe()
    os.write(w, commands)
    os.close(w)
    token = WakeupToken()
    scheduler = SearchScheduler(
        chess.Board(),
        token,
        settings=SchedulerSettings(untimed_depth=2, max_ply=3),
        searcher=searcher,
        clock=ThinkingClock(),
    )
    output = io.StringIO()
    try:
        status = EngineProcess(scheduler, token, LineReader(r), output).run()
    finally:
        os.close(r)
    return status, output.getvalue()


class TestEngineProcessLoop:
    def test_answers_request_and_acknowledges_inform(self) -> None:
        status, output = _run_commands(
            b"<\n>black:e7e5\n", _FixedLineSearcher("e2e4", "e7e5")
        )
        assert status == EXIT_OK
        assert output.splitlines() == ["white:e2e4", "ok"]

    def test_out_of_turn_inform_is_fatal(self) -> None:
        status, output = _run_commands(b">black:e7e5\n", _FixedLineSearcher())
        assert status == EXIT_PROTOCOL_VIOLATION
        assert output == ""

    def test_unknown_command_is_fatal(self) -> None:
        status, _ = _run_commands(b"hello\n", _FixedLineSearcher())
        assert status == EXIT_PROTOCOL_VIOLATION

    def test_undecodable_command_is_fatal(self) -> None:
        status, output = _run_commands(b">white:\xffe2e4\n", _FixedLineSearcher())
        assert status == EXIT_PROTOCOL_VIOLATION
        assert output == ""

    def test_eof_exits_cleanly(self) -> None:
        status, output = _run_commands(b"", _FixedLineSearcher())
        assert status == EXIT_OK
        assert output == ""


def _spawn_engine(*args: str) -> Channel:
    channel = Channel.spawn(
        "engine", [sys.executable, "-m", "chessref.engine", *args]
    )
    assert channel.await_banner(30.0) == BANNER
    return channel


@pytest.mark.slow
class TestEngineSubprocess:
    def test_reply_is_one_legal_move(self) -> None:
        channel = _spawn_engine("--avg-time", "0.3")
        try:
            channel.send("<")
            line = channel.read_line(timeout=30.0)
            assert line is not None
            side, _, text = line.partition(":")
            assert side == "white"
            assert chess.Move.from_uci(text) in chess.Board().legal_moves
        finally:
            shutdown_children([channel])

    def test_one_second_budget_is_respected(self) -> None:
        channel = _spawn_engine("--avg-time", "1.0")
        try:
            started = time.monotonic()
            channel.send("<")
            line = channel.read_line(timeout=30.0)
            elapsed = time.monotonic() - started
            assert line is not None
            assert 0.9 <= elapsed < 3.0
        finally:
            shutdown_children([channel])

    def test_inform_is_acknowledged_then_request_answered(self) -> None:
        channel = _spawn_engine("--avg-time", "0.2")
        try:
            channel.send(">white:e2e4")
            assert channel.read_line(timeout=30.0) == "ok"
            channel.send("<")
            line = channel.read_line(timeout=30.0)
            assert line is not None and line.startswith("black:")
        finally:
            shutdown_children([channel])

    def test_illegal_inform_exits_with_protocol_status(self) -> None:
        channel = _spawn_engine()
        try:
            channel.send(">white:e2e5")
            assert channel.reap(timeout=30.0) == EXIT_PROTOCOL_VIOLATION
        finally:
            shutdown_children([channel])

    def test_starts_from_fen(self) -> None:
        fen = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
        channel = _spawn_engine("--fen", fen, "--avg-time", "0.5")
        try:
            channel.send("<")
            assert channel.read_line(timeout=30.0) == "white:a1a8"
        finally:
            shutdown_children([channel])
