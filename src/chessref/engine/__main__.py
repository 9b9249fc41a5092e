"""Engine process entry point: ``python -m chessref.engine``."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from collections.abc import Sequence

from chessref.core.rules import Rules
from chessref.engine.process import EngineProcess
from chessref.engine.scheduler import SchedulerSettings, SearchScheduler
from chessref.protocol.lines import LineReader
from chessref.protocol.wakeup import WakeupToken


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chessref-engine",
        description="Search engine peer driven by the chessref referee over stdin/stdout.",
    )
    parser.add_argument("--fen", default=None, help="starting position")
    parser.add_argument(
        "--avg-time",
        type=float,
        default=0.0,
        metavar="SECONDS",
        help="average thinking time per move (0: fixed depth)",
    )
    parser.add_argument("--randomized", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[engine] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # The referee owns shutdown; a terminal ^C must not kill us first.
    signal.signal(signal.SIGINT, signal.SIG_IGN)

    token = WakeupToken()
    token.install(signal.SIGHUP)
    scheduler = SearchScheduler(
        Rules.new_board(args.fen),
        token,
        settings=SchedulerSettings(
            avg_time=args.avg_time,
            randomized=args.randomized,
            verbose=args.verbose,
        ),
    )
    process = EngineProcess(
        scheduler, token, LineReader(sys.stdin.fileno()), sys.stdout
    )
    process.announce()
    return process.run()


if __name__ == "__main__":
    sys.exit(main())
