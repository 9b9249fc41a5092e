"""Per-side thinking clock used for move time budgeting."""

from __future__ import annotations

import time
from collections.abc import Callable

from chessref.core.enums import Color


class ThinkingClock:
    """Accumulates the time each side has spent thinking.

    Uses a monotonic clock for sub-second accuracy. Only time between
    :meth:`start` and :meth:`stop` is charged, so speculative thinking
    while idle never counts against a side.
    """

    __slots__ = ("_used", "_moves", "_active_color", "_started_at", "_now")

    def __init__(self, now: Callable[[], float] = time.monotonic) -> None:
        self._now = now
        self._used: dict[Color, float] = {Color.WHITE: 0.0, Color.BLACK: 0.0}
        self._moves: dict[Color, int] = {Color.WHITE: 0, Color.BLACK: 0}
        self._active_color: Color | None = None
        self._started_at = 0.0

    def start(self, color: Color) -> None:
        self._active_color = color
        self._started_at = self._now()

    def stop(self) -> float:
        """Charge the running interval to the active side as one move."""
        if self._active_color is None:
            return 0.0
        elapsed = self.elapsed()
        self._used[self._active_color] += elapsed
        self._moves[self._active_color] += 1
        self._active_color = None
        return elapsed

    def elapsed(self) -> float:
        """Seconds since :meth:`start` for the running move."""
        if self._active_color is None:
            return 0.0
        return self._now() - self._started_at

    @property
    def is_running(self) -> bool:
        return self._active_color is not None

    @property
    def active_color(self) -> Color | None:
        return self._active_color

    def used(self, color: Color) -> float:
        running = self.elapsed() if self._active_color == color else 0.0
        return self._used[color] + running

    def moves(self, color: Color) -> int:
        return self._moves[color]

    def budget(self, color: Color, avg_time: float) -> float | None:
        """Time *color* may still spend on its next move, or ``None`` if untimed.

        ``avg_time * (moves + 1) - used``; may be zero or negative when the
        side is already behind its average.
        """
        if avg_time <= 0:
            return None
        return avg_time * (self._moves[color] + 1) - self._used[color]
