"""Search engine peer: negamax search and the interruptible scheduler."""

from chessref.engine.clock import ThinkingClock
from chessref.engine.negamax import NegamaxSearcher
from chessref.engine.process import EngineProcess
from chessref.engine.scheduler import (
    SchedulerSettings,
    SchedulerState,
    SearchScheduler,
)
from chessref.engine.search import ISearcher, SearchAborted, SearchResult

__all__ = [
    "EngineProcess",
    "ISearcher",
    "NegamaxSearcher",
    "SchedulerSettings",
    "SchedulerState",
    "SearchAborted",
    "SearchResult",
    "SearchScheduler",
    "ThinkingClock",
]
