"""DisplayWindow — board window driven by referee commands on stdin."""

from __future__ import annotations

import logging
from typing import IO

import chess
from PyQt6.QtCore import QSocketNotifier
from PyQt6.QtWidgets import (
    QApplication,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from chessref.display.board_scene import BoardView
from chessref.display.session import DisplaySession
from chessref.errors import ProtocolViolation
from chessref.protocol.lines import LineReader, write_line

_LOGGER = logging.getLogger(__name__)

EXIT_PROTOCOL_VIOLATION = 3


class DisplayWindow(QMainWindow):
    """Main window of the display process.

    Commands are read whenever the command descriptor becomes readable;
    the wakeup signal the referee sends alongside is not needed here.
    """

    def __init__(
        self,
        session: DisplaySession,
        reader: LineReader,
        output: IO[str],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("chessref")
        self._session = session
        self._reader = reader
        self._output = output

        self._view = BoardView()
        self._status = QLabel()
        self._resign_button = QPushButton("Resign")
        self._resign_button.clicked.connect(self._on_resign)

        layout = QVBoxLayout()
        layout.addWidget(self._view)
        layout.addWidget(self._status)
        layout.addWidget(self._resign_button)
        central = QWidget()
        central.setLayout(layout)
        self.setCentralWidget(central)

        self._view.move_made.connect(self._on_move_made)

        self._notifier = QSocketNotifier(reader.fileno(), QSocketNotifier.Type.Read, self)
        self._notifier.activated.connect(self._on_readable)

        self._refresh()

    @property
    def board_view(self) -> BoardView:
        return self._view

    @property
    def session(self) -> DisplaySession:
        return self._session

    # ── Referee input ────────────────────────────────────────────────────

    def _on_readable(self) -> None:
        while True:
            try:
                line = self._reader.read_line(timeout=0)
            except EOFError:
                _LOGGER.info("Referee closed the command pipe")
                self._notifier.setEnabled(False)
                QApplication.exit(0)
                return
            except UnicodeDecodeError as exc:
                self._fail(ProtocolViolation("referee", repr(exc.object), "invalid UTF-8"))
                return
            if line is None:
                break
            self.handle_line(line)
            if not self._notifier.isEnabled():
                return
        self._refresh()

    def handle_line(self, line: str) -> None:
        try:
            replies = self._session.handle_line(line)
        except ProtocolViolation as exc:
            self._fail(exc)
            return
        for reply in replies:
            write_line(self._output, reply)

    def _fail(self, violation: ProtocolViolation) -> None:
        _LOGGER.error("Protocol violation: %s", violation)
        self._notifier.setEnabled(False)
        QApplication.exit(EXIT_PROTOCOL_VIOLATION)

    # ── User input ───────────────────────────────────────────────────────

    def _on_move_made(self, move: chess.Move) -> None:
        reply = self._session.submit(move)
        if reply is not None:
            write_line(self._output, reply)
        self._refresh()

    def _on_resign(self) -> None:
        reply = self._session.resign()
        if reply is not None:
            write_line(self._output, reply)
        self._refresh()

    def _refresh(self) -> None:
        session = self._session
        scene = self._view.board_scene
        scene.set_board(session.board, session.last_move)
        scene.set_interactive(session.awaiting_move)
        self._resign_button.setEnabled(session.awaiting_move)
        if session.board.is_game_over(claim_draw=False):
            self._status.setText(f"Game over: {session.board.result()}")
        elif session.awaiting_move:
            self._status.setText(f"Your move ({session.side_to_move})")
        else:
            self._status.setText(f"Waiting for {session.side_to_move}")
