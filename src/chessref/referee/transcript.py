"""Transcript output and move-history input.

Transcript lines::

    1. white:e2e4
    1. ... black:e7e5
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from types import TracebackType
from typing import IO

from chessref.core.enums import Color
from chessref.errors import HistoryError, RefereeError
from chessref.referee.state import MoveRecord

_LOGGER = logging.getLogger(__name__)

_HISTORY_LINE = re.compile(
    r"""^\s*
    (?:\d+\.\s*(?:\.\.\.\s*)?)?     # optional "12." or "12. ..."
    (?:(?P<side>[A-Za-z]+):)?       # optional "white:" / "black:"
    (?P<move>\S+)\s*$""",
    re.VERBOSE,
)


def format_entry(record: MoveRecord) -> str:
    """Render one transcript line for *record*."""
    if record.side == Color.WHITE:
        return f"{record.turn_number}. {record.side}:{record.text}"
    return f"{record.turn_number}. ... {record.side}:{record.text}"


class TranscriptWriter:
    """Append-only transcript file, flushed after every committed move."""

    __slots__ = ("_path", "_stream")

    def __init__(self, path: Path) -> None:
        self._path = path
        self._stream: IO[str] | None = None

    def open(self) -> None:
        try:
            self._stream = self._path.open("w", encoding="utf-8")
        except OSError as exc:
            raise RefereeError(f"cannot open transcript {self._path}: {exc}") from exc

    def write(self, record: MoveRecord) -> None:
        if self._stream is None:
            return
        self._stream.write(format_entry(record) + "\n")
        self._stream.flush()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> TranscriptWriter:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def parse_history(text: str) -> list[tuple[Color | None, str]]:
    """Parse history text into ``(side, move text)`` pairs.

    Accepts transcript lines, ``side:move`` lines and bare move text.
    Blank lines and ``#`` comments are skipped.
    """
    entries: list[tuple[Color | None, str]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        match = _HISTORY_LINE.match(line)
        if match is None:
            raise HistoryError(f"line {lineno}: cannot parse {raw!r}")
        side: Color | None = None
        if match["side"]:
            try:
                side = Color.parse(match["side"])
            except ValueError as exc:
                raise HistoryError(f"line {lineno}: {exc}") from None
        entries.append((side, match["move"]))
    return entries


def read_history(path: Path) -> list[tuple[Color | None, str]]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise HistoryError(f"cannot read history {path}: {exc}") from exc
    entries = parse_history(text)
    _LOGGER.info("Loaded %d moves from %s", len(entries), path)
    return entries
