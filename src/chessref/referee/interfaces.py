"""Abstract interfaces for the referee layer.

The orchestrator depends on these ABCs, not on the concrete engine,
display and terminal move sources.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chessref.protocol.commands import MoveReply
    from chessref.referee.state import GameState, MoveRecord


# ── Turn loop FSM states ─────────────────────────────────────────────────────


class TurnPhase(IntEnum):
    """Finite-state-machine states of the referee."""

    INIT = auto()
    DETERMINE_TURN = auto()
    AWAIT_MOVE = auto()
    VALIDATE = auto()
    COMMIT = auto()
    NOTIFY_PEERS = auto()
    TERMINAL = auto()


# ── Abstract interfaces ─────────────────────────────────────────────────────


class IMoveSource(ABC):
    """A party that can be asked for a move (engine, display or terminal)."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def request_move(self, state: GameState) -> MoveReply:
        """Block until the source answers with its move for the side to move."""

    @abstractmethod
    def notify(self, record: MoveRecord) -> None:
        """Tell the source about a committed move it did not make."""
