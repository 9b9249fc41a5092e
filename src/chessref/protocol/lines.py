"""Newline-delimited text over raw pipe file descriptors."""

from __future__ import annotations

import io
import os
import select
import time
from typing import IO, Protocol

_CHUNK_SIZE = 4096


class StopSource(Protocol):
    """What :meth:`LineReader.read_line` needs from an interrupt latch."""

    def fileno(self) -> int | None: ...

    def drain(self) -> None: ...

    def check(self) -> None: ...


class LineReader:
    """Reads text lines from a raw file descriptor.

    Bytes are buffered here rather than in a ``TextIOWrapper`` so that
    :meth:`has_buffered_line` can tell whether a line is already waiting
    even when the descriptor itself is no longer readable.

    Raises ``EOFError`` once the stream is exhausted, and
    ``UnicodeDecodeError`` (whose ``object`` is the raw line) for a line
    that is not valid text.
    """

    __slots__ = ("_fd", "_buffer", "_eof", "_encoding")

    def __init__(self, fd: int, encoding: str = "utf-8") -> None:
        self._fd = fd
        self._buffer = bytearray()
        self._eof = False
        self._encoding = encoding

    def fileno(self) -> int:
        return self._fd

    @property
    def at_eof(self) -> bool:
        return self._eof and not self._buffer

    def has_buffered_line(self) -> bool:
        return b"\n" in self._buffer or (self._eof and bool(self._buffer))

    def read_line(
        self,
        timeout: float | None = None,
        interrupt: StopSource | None = None,
    ) -> str | None:
        """Return the next line without its terminator.

        With a *timeout* (seconds), returns ``None`` when no complete line
        arrived in time. A final unterminated line is returned as is.
        With an *interrupt*, its descriptor is watched as well and its
        ``check()`` runs before every read, so a latched stop request ends
        the wait by raising.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        stop_fd = None if interrupt is None else interrupt.fileno()
        while True:
            if interrupt is not None:
                interrupt.check()
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                raw = bytes(self._buffer[:newline])
                del self._buffer[: newline + 1]
                return raw.decode(self._encoding).rstrip("\r")
            if self._eof:
                if self._buffer:
                    raw = bytes(self._buffer)
                    self._buffer.clear()
                    return raw.decode(self._encoding).rstrip("\r")
                raise EOFError("stream closed")
            if deadline is not None or stop_fd is not None:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                watched = [self._fd] if stop_fd is None else [self._fd, stop_fd]
                ready, _, _ = select.select(watched, [], [], remaining)
                if interrupt is not None and stop_fd in ready:
                    interrupt.drain()
                    continue
                if not ready:
                    return None
            chunk = os.read(self._fd, _CHUNK_SIZE)
            if not chunk:
                self._eof = True
                continue
            self._buffer.extend(chunk)


def write_line(stream: IO[str] | IO[bytes], line: str) -> None:
    """Write one protocol line and flush it immediately."""
    data = line.rstrip("\n") + "\n"
    if isinstance(stream, io.TextIOBase):
        stream.write(data)
    else:
        stream.write(data.encode("utf-8"))  # type: ignore[arg-type]
    stream.flush()
