"""Immutable launch configuration and its command line."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from chessref.core.enums import Color


@dataclass(frozen=True, slots=True)
class RefereeConfig:
    """Launch parameters of one game session."""

    engine_sides: frozenset[Color] = frozenset()
    randomized: bool = False
    verbose: bool = False
    display: bool = True
    tournament: bool = False
    avg_time: float = 0.0
    history_path: Path | None = None
    transcript_path: Path | None = None

    def __post_init__(self) -> None:
        if self.avg_time < 0:
            raise ValueError("Average time per move must be >= 0")

    def engine_plays(self, color: Color) -> bool:
        return color in self.engine_sides

    @property
    def uses_engine(self) -> bool:
        return bool(self.engine_sides)

    @property
    def human_plays_black_only(self) -> bool:
        """Whether the display should show the board from black's side."""
        return self.engine_sides == frozenset({Color.WHITE})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chessref",
        description="Referee a chess game between an engine, a display and you.",
    )
    parser.add_argument(
        "-w", dest="white", action="store_true", help="engine plays white"
    )
    parser.add_argument(
        "-b", dest="black", action="store_true", help="engine plays black"
    )
    parser.add_argument(
        "-r", dest="randomized", action="store_true", help="randomized play"
    )
    parser.add_argument(
        "-v", dest="verbose", action="store_true", help="print search statistics"
    )
    parser.add_argument(
        "-d", dest="no_display", action="store_true", help="do not start the display"
    )
    parser.add_argument(
        "-t", dest="tournament", action="store_true", help="tournament mode"
    )
    parser.add_argument(
        "-a",
        dest="avg_time",
        type=float,
        default=0.0,
        metavar="SECONDS",
        help="average engine time per move",
    )
    parser.add_argument(
        "-i", dest="history", type=Path, metavar="FILE", help="move history to preload"
    )
    parser.add_argument(
        "-o", dest="transcript", type=Path, metavar="FILE", help="write a transcript"
    )
    return parser


def parse_config(argv: Sequence[str] | None = None) -> RefereeConfig:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.avg_time < 0:
        parser.error("-a must be >= 0")

    sides = set()
    if args.white:
        sides.add(Color.WHITE)
    if args.black:
        sides.add(Color.BLACK)
    return RefereeConfig(
        engine_sides=frozenset(sides),
        randomized=args.randomized,
        verbose=args.verbose,
        display=not args.no_display,
        tournament=args.tournament,
        avg_time=args.avg_time,
        history_path=args.history,
        transcript_path=args.transcript,
    )
