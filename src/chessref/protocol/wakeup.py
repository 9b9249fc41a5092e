"""Wakeup token: the single cancellation primitive of a peer process.

The referee raises SIGHUP after every command it writes. A peer may be
parked in :meth:`WakeupToken.wait` or deep inside a search when that
happens; the signal handler only records a coalesced ``COMMAND`` flag, and
``signal.set_wakeup_fd`` makes a pending select return immediately, so a
signal arriving just before the wait starts is never lost.
"""

from __future__ import annotations

import logging
import os
import select
import signal
import time
from collections.abc import Callable
from enum import IntFlag, auto
from types import FrameType
from typing import Protocol

_LOGGER = logging.getLogger(__name__)


class Wakeup(IntFlag):
    """Reasons a wait or a search was woken up."""

    NONE = 0
    COMMAND = auto()  # the referee wrote a command line
    TIMEOUT = auto()  # the armed move budget ran out


class _Readable(Protocol):
    def fileno(self) -> int: ...

    def has_buffered_line(self) -> bool: ...


class WakeupToken:
    """Coalesced wakeup flags plus an optional one-shot deadline.

    Args:
        clock: Monotonic time source, injectable for tests.
    """

    __slots__ = ("_pending", "_deadline", "_clock", "_wakeup_r", "_wakeup_w")

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._pending = Wakeup.NONE
        self._deadline: float | None = None
        self._clock = clock
        self._wakeup_r: int | None = None
        self._wakeup_w: int | None = None

    # ── Signal wiring ────────────────────────────────────────────────────

    def install(self, signum: int = signal.SIGHUP) -> None:
        """Route *signum* to this token. Must run on the main thread."""
        self._wakeup_r, self._wakeup_w = os.pipe()
        os.set_blocking(self._wakeup_r, False)
        os.set_blocking(self._wakeup_w, False)
        signal.set_wakeup_fd(self._wakeup_w, warn_on_full_buffer=False)
        signal.signal(signum, self._on_signal)

    def uninstall(self, signum: int = signal.SIGHUP) -> None:
        signal.signal(signum, signal.SIG_DFL)
        signal.set_wakeup_fd(-1)
        for fd in (self._wakeup_r, self._wakeup_w):
            if fd is not None:
                os.close(fd)
        self._wakeup_r = self._wakeup_w = None

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        self.notify()

    # ── Flags ────────────────────────────────────────────────────────────

    def notify(self) -> None:
        """Record that a command is waiting (what SIGHUP does)."""
        self._pending |= Wakeup.COMMAND

    def arm_timeout(self, seconds: float) -> None:
        self._deadline = self._clock() + seconds

    def disarm_timeout(self) -> None:
        self._deadline = None
        self._pending &= ~Wakeup.TIMEOUT

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the armed timeout fires, if one is armed."""
        if self._deadline is None:
            return None
        return self._deadline - self._clock()

    def pending(self) -> Wakeup:
        if self._deadline is not None and self._clock() >= self._deadline:
            self._pending |= Wakeup.TIMEOUT
        return self._pending

    def is_set(self) -> bool:
        """Cancellation check polled by the search."""
        return self.pending() != Wakeup.NONE

    @property
    def command_pending(self) -> bool:
        return bool(self._pending & Wakeup.COMMAND)

    def consume_command(self) -> None:
        """Clear the command flag and drain queued wakeup bytes."""
        self._pending &= ~Wakeup.COMMAND
        self._drain()

    def _drain(self) -> None:
        if self._wakeup_r is None:
            return
        while True:
            try:
                if not os.read(self._wakeup_r, 512):
                    return
            except BlockingIOError:
                return

    # ── Idle wait ────────────────────────────────────────────────────────

    def wait(
        self,
        stream: _Readable | None = None,
        timeout: float | None = None,
    ) -> bool:
        """Block until a command is flagged or *stream* has input.

        Returns ``True`` when woken, ``False`` on *timeout*.
        """
        fds = [fd for fd in (self._wakeup_r,) if fd is not None]
        if stream is not None:
            if stream.has_buffered_line():
                return True
            fds.append(stream.fileno())
        deadline = None if timeout is None else self._clock() + timeout
        while not self.command_pending:
            remaining = None if deadline is None else deadline - self._clock()
            if remaining is not None and remaining <= 0:
                return False
            ready, _, _ = select.select(fds, [], [], remaining)
            if stream is not None and stream.fileno() in ready:
                return True
            if not ready and not fds:
                return False
            if self._wakeup_r in ready and not self.command_pending:
                self._drain()
        _LOGGER.debug("woken by %s", self._pending)
        return True
