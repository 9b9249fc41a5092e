"""Shared engine search models and protocol."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import chess

CancelCheck = Callable[[], bool]

MATE_SCORE = 100_000
MAX_PLY = 32


class SearchAborted(Exception):
    """Raised out of a search when its cancellation check fires."""


def is_decisive(score: int) -> bool:
    """True for a forced mate score in either direction."""
    return abs(score) >= MATE_SCORE - MAX_PLY * 2


@dataclass(slots=True, frozen=True)
class SearchResult:
    """Outcome of one depth-bounded search."""

    score: int
    line: tuple[chess.Move, ...]
    depth: int
    nodes: int

    @property
    def best_move(self) -> chess.Move | None:
        return self.line[0] if self.line else None


class ISearcher(Protocol):
    """One depth-bounded search over a board."""

    def search(
        self,
        board: chess.Board,
        depth: int,
        is_cancelled: CancelCheck | None = None,
        hint: Sequence[chess.Move] = (),
    ) -> SearchResult: ...
