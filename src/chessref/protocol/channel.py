"""Referee-side handle on a spawned peer process."""

from __future__ import annotations

import logging
import signal
import subprocess
import time
from collections.abc import Iterable, Sequence

from chessref.errors import PeerClosedError, ProtocolViolation, SpawnError
from chessref.protocol.lines import LineReader, StopSource, write_line

_LOGGER = logging.getLogger(__name__)

WAKEUP_SIGNAL = signal.SIGHUP


def describe_exit(returncode: int | None) -> str:
    """Human readable form of a ``Popen.returncode``."""
    if returncode is None:
        return "still running"
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"killed by signal {name}"
    return f"exited with code {returncode}"


class Channel:
    """A peer process with a command pipe, a reply pipe and a wakeup signal.

    Every :meth:`send` writes one line and then raises :data:`WAKEUP_SIGNAL`
    on the peer, because the peer may be parked in a signal-interruptible
    wait or in the middle of a search rather than in a blocking read.
    """

    __slots__ = ("_name", "_process", "_reader", "_closed", "_interrupt")

    def __init__(self, name: str, process: subprocess.Popen[bytes]) -> None:
        if process.stdin is None or process.stdout is None:
            raise SpawnError(f"{name}: process was started without pipes")
        self._name = name
        self._process = process
        self._reader = LineReader(process.stdout.fileno())
        self._closed = False
        self._interrupt: StopSource | None = None

    @classmethod
    def spawn(cls, name: str, argv: Sequence[str]) -> Channel:
        """Start *argv* with its stdin/stdout wired to a new channel."""
        try:
            process = subprocess.Popen(
                list(argv),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                bufsize=0,
            )
        except OSError as exc:
            raise SpawnError(f"{name}: cannot start {argv[0]}: {exc}") from exc
        _LOGGER.info("%s started (pid %d)", name, process.pid)
        return cls(name, process)

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def watch_interrupt(self, interrupt: StopSource | None) -> None:
        """Make blocking reads end when *interrupt* latches a stop request."""
        self._interrupt = interrupt

    def poll(self) -> int | None:
        return self._process.poll()

    @property
    def is_alive(self) -> bool:
        return self._process.poll() is None

    # ── Protocol I/O ─────────────────────────────────────────────────────

    def await_banner(self, timeout: float) -> str:
        """Read the peer's startup line; the peer may not be signalled before it."""
        try:
            banner = self._reader.read_line(timeout, self._interrupt)
        except UnicodeDecodeError as exc:
            raise ProtocolViolation(self._name, repr(exc.object), "invalid UTF-8") from None
        except EOFError:
            raise SpawnError(
                f"{self._name} {describe_exit(self._process.wait())} during startup"
            ) from None
        if banner is None:
            raise SpawnError(f"{self._name} sent no banner within {timeout:.1f}s")
        _LOGGER.info("%s banner: %s", self._name, banner)
        return banner

    def send(self, line: str) -> None:
        """Write one command line, then wake the peer up."""
        stdin = self._process.stdin
        if self._closed or stdin is None:
            raise PeerClosedError(self._name, "channel is closed")
        try:
            write_line(stdin, line)
        except (BrokenPipeError, ValueError):
            raise PeerClosedError(self._name, "stopped reading commands") from None
        self.wake()

    def wake(self) -> None:
        try:
            self._process.send_signal(WAKEUP_SIGNAL)
        except ProcessLookupError:
            raise PeerClosedError(self._name, "is gone") from None

    def read_line(self, timeout: float | None = None) -> str | None:
        """Next reply line, or ``None`` if *timeout* elapsed first."""
        try:
            return self._reader.read_line(timeout, self._interrupt)
        except UnicodeDecodeError as exc:
            raise ProtocolViolation(self._name, repr(exc.object), "invalid UTF-8") from None
        except EOFError:
            raise PeerClosedError(self._name) from None

    # ── Lifecycle ────────────────────────────────────────────────────────

    def terminate(self) -> None:
        if self.is_alive:
            self._process.terminate()

    def kill(self) -> None:
        if self.is_alive:
            self._process.kill()

    def close_streams(self) -> None:
        if self._closed:
            return
        self._closed = True
        for stream in (self._process.stdin, self._process.stdout):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                _LOGGER.debug("%s: error closing stream", self._name, exc_info=True)

    def reap(self, timeout: float = 0.0) -> int | None:
        """Collect the exit status, waiting at most *timeout* seconds."""
        try:
            return self._process.wait(timeout)
        except subprocess.TimeoutExpired:
            return None


def shutdown_children(channels: Iterable[Channel | None], grace: float = 0.1) -> None:
    """Ordered teardown: terminate, close streams, grace period, kill, reap."""
    live = [ch for ch in channels if ch is not None]
    for ch in live:
        ch.terminate()
    for ch in live:
        ch.close_streams()
    if any(ch.is_alive for ch in live):
        time.sleep(grace)
    for ch in live:
        if ch.is_alive:
            _LOGGER.warning("%s ignored SIGTERM; killing it", ch.name)
            ch.kill()
    for ch in live:
        status = ch.reap(timeout=grace)
        if status is None:
            _LOGGER.error("%s (pid %d) could not be reaped", ch.name, ch.pid)
        else:
            _LOGGER.info("%s (pid %d) %s", ch.name, ch.pid, describe_exit(status))
