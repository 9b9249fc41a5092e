"""Display process entry point: ``python -m chessref.display``."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chessref-display",
        description="Board window driven by the chessref referee over stdin/stdout.",
    )
    parser.add_argument("--fen", default=None, help="starting position")
    parser.add_argument(
        "--flip", action="store_true", help="show the board from black's side"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="[display] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # Commands are picked up by stdin readiness; the wakeup signal is redundant.
    signal.signal(signal.SIGHUP, signal.SIG_IGN)
    signal.signal(signal.SIGINT, signal.SIG_IGN)

    from PyQt6.QtWidgets import QApplication

    from chessref.core.rules import Rules
    from chessref.display.session import BANNER, DisplaySession
    from chessref.display.window import DisplayWindow
    from chessref.protocol.lines import LineReader, write_line

    app = QApplication(sys.argv[:1])
    app.setApplicationName("chessref")
    app.setStyle("Fusion")

    session = DisplaySession(Rules.new_board(args.fen))
    window = DisplayWindow(session, LineReader(sys.stdin.fileno()), sys.stdout)
    window.board_view.board_scene.set_flipped(args.flip)
    window.resize(560, 640)
    window.show()

    write_line(sys.stdout, BANNER)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
