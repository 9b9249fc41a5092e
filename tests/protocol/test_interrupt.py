"""Tests for the SIGINT/SIGTERM interrupt latch."""

import io
import logging
import os
import signal
import threading
from collections.abc import Iterator

import pytest

from chessref.errors import GameInterrupted
from chessref.protocol.interrupt import InterruptLatch
from chessref.protocol.lines import LineReader


@pytest.fixture()
def latch() -> Iterator[InterruptLatch]:
    latch = InterruptLatch()
    latch.install([signal.SIGTERM])
    yield latch
    latch.uninstall()


@pytest.fixture()
def pipe() -> Iterator[tuple[int, int]]:
    r, w = os.pipe()
    yield r, w
    os.close(r)
    os.close(w)


class _SignallingStream(io.StringIO):
    """A log stream that receives SIGTERM in the middle of a write."""

    def write(self, text: str) -> int:
        os.kill(os.getpid(), signal.SIGTERM)
        return super().write(text)


class TestInterruptLatch:
    def test_starts_clear(self) -> None:
        latch = InterruptLatch()
        assert not latch.is_set
        assert latch.fileno() is None
        latch.check()

    def test_first_signal_wins(self) -> None:
        latch = InterruptLatch()
        latch.trip(signal.SIGTERM)
        latch.trip(signal.SIGINT)
        with pytest.raises(GameInterrupted) as info:
            latch.check()
        assert info.value.signum == signal.SIGTERM

    def test_handler_only_records(self, latch: InterruptLatch) -> None:
        os.kill(os.getpid(), signal.SIGTERM)
        assert latch.signum == signal.SIGTERM

    def test_signal_during_log_write_is_kept(self, latch: InterruptLatch) -> None:
        logger = logging.getLogger("chessref.tests.interrupt")
        handler = logging.StreamHandler(_SignallingStream())
        logger.addHandler(handler)
        try:
            logger.warning("Asking %s for %s's move", "engine", "white")
        finally:
            logger.removeHandler(handler)

        with pytest.raises(GameInterrupted):
            latch.check()

    def test_uninstall_restores_previous_handler(self) -> None:
        before = signal.getsignal(signal.SIGTERM)
        latch = InterruptLatch()
        latch.install([signal.SIGTERM])
        latch.uninstall()
        assert signal.getsignal(signal.SIGTERM) == before
        assert latch.fileno() is None


class TestInterruptibleRead:
    def test_signal_ends_blocking_read(
        self, latch: InterruptLatch, pipe: tuple[int, int]
    ) -> None:
        reader = LineReader(pipe[0])
        timer = threading.Timer(0.1, os.kill, (os.getpid(), signal.SIGTERM))
        timer.start()
        try:
            with pytest.raises(GameInterrupted):
                reader.read_line(interrupt=latch)
        finally:
            timer.cancel()

    def test_latched_request_wins_over_buffered_line(
        self, latch: InterruptLatch, pipe: tuple[int, int]
    ) -> None:
        r, w = pipe
        os.write(w, b"white:e2e4\n")
        latch.trip(signal.SIGINT)
        with pytest.raises(GameInterrupted):
            LineReader(r).read_line(interrupt=latch)

    def test_stray_wakeup_bytes_are_drained(
        self, latch: InterruptLatch, pipe: tuple[int, int]
    ) -> None:
        r, w = pipe
        write_fd = signal.set_wakeup_fd(-1)
        signal.set_wakeup_fd(write_fd, warn_on_full_buffer=False)
        os.write(write_fd, b"\x01")
        os.write(w, b"ok\n")
        assert LineReader(r).read_line(timeout=1.0, interrupt=latch) == "ok"
        assert not latch.is_set
