"""Interrupt latch: SIGINT/SIGTERM as a flag the referee checks.

The handler never raises. It records the first signal number, and
``signal.set_wakeup_fd`` makes the latch descriptor readable so that a
blocking read selecting on it returns at once. :class:`GameInterrupted` is
then raised by :meth:`InterruptLatch.check` from ordinary code, where no
library ``except Exception`` can swallow it.
"""

from __future__ import annotations

import logging
import os
import signal
from collections.abc import Iterable
from types import FrameType
from typing import Any

from chessref.errors import GameInterrupted

_LOGGER = logging.getLogger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class InterruptLatch:
    """Latched stop request, with a descriptor that turns readable on it."""

    __slots__ = ("_signum", "_read_fd", "_write_fd", "_saved")

    def __init__(self) -> None:
        self._signum: int | None = None
        self._read_fd: int | None = None
        self._write_fd: int | None = None
        self._saved: dict[int, Any] = {}

    # ── Signal wiring ────────────────────────────────────────────────────

    def install(self, signums: Iterable[int] = STOP_SIGNALS) -> None:
        """Route *signums* to this latch. Must run on the main thread."""
        self._read_fd, self._write_fd = os.pipe()
        os.set_blocking(self._read_fd, False)
        os.set_blocking(self._write_fd, False)
        signal.set_wakeup_fd(self._write_fd, warn_on_full_buffer=False)
        for signum in signums:
            self._saved[signum] = signal.signal(signum, self._on_signal)

    def ignore(self) -> None:
        """Ignore further stop signals (used during teardown)."""
        for signum in self._saved:
            signal.signal(signum, signal.SIG_IGN)

    def uninstall(self) -> None:
        if self._read_fd is None:
            return
        for signum, handler in self._saved.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._saved.clear()
        signal.set_wakeup_fd(-1)
        for fd in (self._read_fd, self._write_fd):
            if fd is not None:
                os.close(fd)
        self._read_fd = self._write_fd = None

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        self.trip(signum)

    # ── State ────────────────────────────────────────────────────────────

    def trip(self, signum: int) -> None:
        """Latch *signum*; only the first stop request is kept."""
        if self._signum is None:
            self._signum = signum

    @property
    def signum(self) -> int | None:
        return self._signum

    @property
    def is_set(self) -> bool:
        return self._signum is not None

    def fileno(self) -> int | None:
        """Descriptor to select on next to a pipe, or ``None`` if not installed."""
        return self._read_fd

    def drain(self) -> None:
        """Discard queued wakeup bytes; the latched signal stays set."""
        if self._read_fd is None:
            return
        while True:
            try:
                if not os.read(self._read_fd, 512):
                    return
            except BlockingIOError:
                return

    def check(self) -> None:
        """Raise :class:`GameInterrupted` if a stop signal was latched."""
        if self._signum is not None:
            _LOGGER.debug("stop signal %d latched", self._signum)
            raise GameInterrupted(self._signum)
