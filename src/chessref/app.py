"""Referee entry point."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence


def configure_logging(verbose: bool) -> None:
    """Log to stderr; stdout carries results and tournament output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[referee] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run one refereed game and return the exit status."""
    from chessref.referee.config import parse_config
    from chessref.referee.orchestrator import Referee

    config = parse_config(argv)
    configure_logging(config.verbose)
    return Referee(config).run()


if __name__ == "__main__":
    sys.exit(main())
