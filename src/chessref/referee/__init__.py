"""Referee layer: configuration, canonical state, move sources and the turn loop."""

from chessref.referee.config import RefereeConfig, build_parser, parse_config
from chessref.referee.interfaces import IMoveSource, TurnPhase
from chessref.referee.orchestrator import Referee
from chessref.referee.sources import DisplaySource, EngineSource, LocalInputSource
from chessref.referee.state import GameState, MoveRecord
from chessref.referee.transcript import (
    TranscriptWriter,
    format_entry,
    parse_history,
    read_history,
)

__all__ = [
    "DisplaySource",
    "EngineSource",
    "GameState",
    "IMoveSource",
    "LocalInputSource",
    "MoveRecord",
    "Referee",
    "RefereeConfig",
    "TranscriptWriter",
    "TurnPhase",
    "build_parser",
    "format_entry",
    "parse_config",
    "parse_history",
    "read_history",
]
