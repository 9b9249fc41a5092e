"""Interruptible iterative-deepening scheduler of the engine process.

Request path::

    IDLE -> THINKING -> RESPONDING -> IDLE

Notify path::

    IDLE -> APPLYING_OPPONENT_MOVE -> IDLE -> OPPORTUNISTIC_THINKING -> IDLE

All waiting and preemption goes through one :class:`WakeupToken`. A search
in progress polls it at every node; when it fires, :class:`SearchAborted`
unwinds to the resume point around the depth loop and the partially
searched depth is discarded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum, auto

import chess

from chessref.core.enums import Color
from chessref.core.notation import MoveParseError, move_to_text, parse_move
from chessref.core.rules import Rules
from chessref.engine.clock import ThinkingClock
from chessref.engine.negamax import NegamaxSearcher
from chessref.engine.search import (
    MAX_PLY,
    ISearcher,
    SearchAborted,
    SearchResult,
    is_decisive,
)
from chessref.errors import ProtocolViolation
from chessref.protocol.commands import InformMove, MoveReply
from chessref.protocol.wakeup import WakeupToken

_LOGGER = logging.getLogger(__name__)

# Predicted cost of a depth must fit this many times into the remaining budget.
_DEPTH_COST_MARGIN = 1.25
_MIN_PACING_DELAY = 0.001


class SchedulerState(IntEnum):
    """Finite-state-machine states of the search scheduler."""

    IDLE = auto()
    THINKING = auto()
    RESPONDING = auto()
    APPLYING_OPPONENT_MOVE = auto()
    OPPORTUNISTIC_THINKING = auto()


@dataclass(frozen=True, slots=True)
class SchedulerSettings:
    """Launch parameters of the engine process."""

    avg_time: float = 0.0  # seconds per move; 0 means untimed
    randomized: bool = False
    verbose: bool = False
    max_ply: int = MAX_PLY
    untimed_depth: int = 4
    min_budget: float = 0.05
    pace: bool = True


class SearchScheduler:
    """Owns the engine's mirror board and principal variation.

    Args:
        board: Mirror of the referee's position; mutated only by applied moves.
        token: Wakeup token shared with the signal handler.
        settings: Time and search parameters.
        searcher: Depth-bounded search; defaults to :class:`NegamaxSearcher`.
        clock: Per-side thinking clock.
        sleep: Used for pacing delays.
    """

    __slots__ = (
        "_board",
        "_token",
        "_settings",
        "_searcher",
        "_clock",
        "_sleep",
        "_state",
        "_pv",
        "_best_depth",
        "_next_depth",
        "_depth_times",
        "_last_score",
    )

    def __init__(
        self,
        board: chess.Board,
        token: WakeupToken,
        *,
        settings: SchedulerSettings | None = None,
        searcher: ISearcher | None = None,
        clock: ThinkingClock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._board = board
        self._token = token
        self._settings = settings or SchedulerSettings()
        self._searcher = searcher or NegamaxSearcher(
            randomized=self._settings.randomized
        )
        self._clock = clock or ThinkingClock()
        self._sleep = sleep
        self._state = SchedulerState.IDLE
        self._pv: tuple[chess.Move, ...] = ()
        self._best_depth = 0
        self._next_depth = 1
        self._depth_times: dict[int, float] = {}
        self._last_score = 0

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def board(self) -> chess.Board:
        return self._board

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def principal_variation(self) -> tuple[chess.Move, ...]:
        return self._pv

    @property
    def best_depth(self) -> int:
        return self._best_depth

    @property
    def next_depth(self) -> int:
        return self._next_depth

    @property
    def clock(self) -> ThinkingClock:
        return self._clock

    def time_budget(self, color: Color) -> float | None:
        """Seconds *color* may think on this move; ``None`` when untimed."""
        budget = self._clock.budget(color, self._settings.avg_time)
        if budget is None:
            return None
        return max(budget, self._settings.min_budget)

    # ── Request path ─────────────────────────────────────────────────────

    def handle_request(self) -> MoveReply:
        """Think on the current position and produce exactly one reply."""
        color = Rules.side_to_move(self._board)
        self._state = SchedulerState.THINKING
        self._clock.start(color)

        budget = self.time_budget(color)
        max_depth = self._settings.max_ply
        if budget is None:
            max_depth = min(max_depth, self._settings.untimed_depth)
        else:
            self._token.arm_timeout(budget)
        if self._next_depth > 1 and self._best_depth == 0:
            self._next_depth = 1

        try:
            self._deepen(max_depth, budgeted=budget is not None)
        finally:
            self._token.disarm_timeout()

        self._state = SchedulerState.RESPONDING
        move = self._checked_head()
        if move is None:
            move = self._emergency_move()
        self._pace()
        spent = self._clock.stop()

        if move is None:
            _LOGGER.warning("%s has no legal move to play; resigning", color)
            self._reset_line()
            self._state = SchedulerState.IDLE
            return MoveReply.resignation(color)

        text = move_to_text(move)
        _LOGGER.info(
            "%s plays %s after %.3fs (depth %d, score %d)",
            color,
            text,
            spent,
            self._best_depth,
            self._last_score,
        )
        self._board.push(move)
        self._shift_line()
        self._state = SchedulerState.IDLE
        return MoveReply(color, text)

    def _checked_head(self) -> chess.Move | None:
        head = self._pv[0] if self._pv else None
        if Rules.is_legal(self._board, head):
            return head
        if head is not None:
            _LOGGER.warning("Discarding illegal line head %s", head.uci())
        return None

    def _emergency_move(self) -> chess.Move | None:
        """One uninterruptible search at the shallowest depth."""
        _LOGGER.warning("No completed depth; running an emergency depth-1 search")
        result = self._searcher.search(self._board, 1)
        self._record(result)
        return self._checked_head()

    def _pace(self) -> None:
        """Sleep so the move takes close to, but not less than, the average."""
        if not self._settings.pace or self._settings.avg_time <= 0:
            return
        delay = self._settings.avg_time - self._clock.elapsed()
        if delay > _MIN_PACING_DELAY:
            self._sleep(delay)

    # ── Notify path ──────────────────────────────────────────────────────

    def handle_inform(self, command: InformMove) -> None:
        """Apply the opponent's move to the mirror board.

        Raises:
            ProtocolViolation: The move is malformed, out of turn or illegal.
        """
        self._state = SchedulerState.APPLYING_OPPONENT_MOVE
        payload = command.encode()
        if command.side != Rules.side_to_move(self._board):
            raise ProtocolViolation("referee", payload, "move is out of turn")
        try:
            move = parse_move(command.text)
        except MoveParseError as exc:
            raise ProtocolViolation("referee", payload, str(exc)) from None
        if not Rules.is_legal(self._board, move):
            raise ProtocolViolation("referee", payload, "illegal move")

        self._board.push(move)
        if self._pv and self._pv[0] == move and self._best_depth > 1:
            _LOGGER.debug("Predicted %s; keeping the rest of the line", move.uci())
            self._shift_line()
        else:
            self._reset_line()
        self._state = SchedulerState.IDLE

    def think_ahead(self) -> None:
        """Keep deepening on idle time until the next wakeup."""
        if Rules.is_game_over(self._board):
            return
        self._state = SchedulerState.OPPORTUNISTIC_THINKING
        self._deepen(self._settings.max_ply, budgeted=False)
        self._state = SchedulerState.IDLE

    # ── Iterative deepening ──────────────────────────────────────────────

    def _deepen(self, max_depth: int, *, budgeted: bool) -> None:
        try:
            for depth in range(self._next_depth, max_depth + 1):
                if self._token.is_set():
                    break
                if budgeted and not self._depth_fits(depth):
                    _LOGGER.debug("Depth %d would exceed the budget", depth)
                    break

                started = time.monotonic()
                result = self._searcher.search(
                    self._board,
                    depth,
                    is_cancelled=self._token.is_set,
                    hint=self._pv,
                )
                self._depth_times[depth] = time.monotonic() - started
                self._record(result)

                if not result.line or is_decisive(result.score):
                    break
        except SearchAborted:
            _LOGGER.debug(
                "Search interrupted (%s); keeping depth %d",
                self._token.pending().name,
                self._best_depth,
            )

    def _depth_fits(self, depth: int) -> bool:
        predicted = self._depth_times.get(depth)
        remaining = self._token.remaining()
        if predicted is None or remaining is None or depth == 1:
            return True
        return remaining >= predicted * _DEPTH_COST_MARGIN

    def _record(self, result: SearchResult) -> None:
        self._pv = result.line
        self._best_depth = result.depth
        self._next_depth = result.depth + 1
        self._last_score = result.score
        log = _LOGGER.info if self._settings.verbose else _LOGGER.debug
        log(
            "depth %d score %d nodes %d time %.3fs pv %s",
            result.depth,
            result.score,
            result.nodes,
            self._depth_times.get(result.depth, 0.0),
            " ".join(m.uci() for m in result.line),
        )

    def _shift_line(self) -> None:
        """Drop the played head; the tail is one ply shallower."""
        self._pv = self._pv[1:]
        self._best_depth = max(self._best_depth - 1, 0)
        if not self._pv:
            self._best_depth = 0
        self._next_depth = max(self._best_depth, 1)

    def _reset_line(self) -> None:
        self._pv = ()
        self._best_depth = 0
        self._next_depth = 1
