"""BoardScene — QGraphicsScene that draws the mirror board and takes clicks."""

from __future__ import annotations

import chess
from PyQt6.QtCore import QObject, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QBrush, QFont, QPen, QResizeEvent
from PyQt6.QtWidgets import (
    QGraphicsRectItem,
    QGraphicsScene,
    QGraphicsSceneMouseEvent,
    QGraphicsSimpleTextItem,
    QGraphicsView,
    QSizePolicy,
)

from chessref.display.theme import BoardTheme


class BoardScene(QGraphicsScene):
    """Renders squares, pieces and highlights; click-from, click-to input.

    Signals:
        move_made(chess.Move): Emitted when the user completes a legal move.
    """

    move_made = pyqtSignal(object)

    TILE = 64  # px per square

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._theme = BoardTheme.default()
        self._board = chess.Board()
        self._flipped = False
        self._interactive = False
        self._selected: chess.Square | None = None
        self._last_move: chess.Move | None = None

        self._square_items: dict[chess.Square, QGraphicsRectItem] = {}
        self._piece_items: dict[chess.Square, QGraphicsSimpleTextItem] = {}
        self._coord_items: list[QGraphicsSimpleTextItem] = []
        self._highlight_items: list[QGraphicsRectItem] = []

        self.setSceneRect(QRectF(0, 0, 8 * self.TILE, 8 * self.TILE))
        self._draw_board()
        self._sync_pieces()

    # ── Public API ───────────────────────────────────────────────────────

    def set_board(self, board: chess.Board, last_move: chess.Move | None = None) -> None:
        """Show *board*; the scene keeps its own copy."""
        self._board = board.copy(stack=False)
        self._last_move = last_move
        self._selected = None
        self._sync_pieces()
        self._sync_highlights()

    def set_interactive(self, interactive: bool) -> None:
        self._interactive = interactive
        if not interactive:
            self._selected = None
            self._sync_highlights()

    def is_interactive(self) -> bool:
        return self._interactive

    def set_flipped(self, flipped: bool) -> None:
        self._flipped = flipped
        self._draw_board()
        self._sync_pieces()
        self._sync_highlights()

    def is_flipped(self) -> bool:
        return self._flipped

    @property
    def selected_square(self) -> chess.Square | None:
        return self._selected

    def click_square(self, square: chess.Square) -> None:
        """Selection logic shared by mouse clicks and tests."""
        if not self._interactive:
            return
        if self._selected is not None:
            move = self._find_legal_move(self._selected, square)
            if move is not None:
                self._selected = None
                self._sync_highlights()
                self.move_made.emit(move)
                return
        piece = self._board.piece_at(square)
        if piece is not None and piece.color == self._board.turn:
            self._selected = square
        else:
            self._selected = None
        self._sync_highlights()

    # ── Events ───────────────────────────────────────────────────────────

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent | None) -> None:
        if event is None or event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        square = self._pos_to_square(event.scenePos())
        if square is not None:
            self.click_square(square)

    # ── Geometry ─────────────────────────────────────────────────────────

    def _visual_coords(self, square: chess.Square) -> tuple[int, int]:
        f, r = chess.square_file(square), chess.square_rank(square)
        if self._flipped:
            return 7 - f, r
        return f, 7 - r

    def _pos_to_square(self, pos: QPointF) -> chess.Square | None:
        vf, vr = int(pos.x() // self.TILE), int(pos.y() // self.TILE)
        if not (0 <= vf < 8 and 0 <= vr < 8):
            return None
        if self._flipped:
            return chess.square(7 - vf, vr)
        return chess.square(vf, 7 - vr)

    def _find_legal_move(
        self, from_sq: chess.Square, to_sq: chess.Square
    ) -> chess.Move | None:
        candidates = [
            m
            for m in self._board.legal_moves
            if m.from_square == from_sq and m.to_square == to_sq
        ]
        if not candidates:
            return None
        # Promotions always queen.
        for move in candidates:
            if move.promotion in (None, chess.QUEEN):
                return move
        return candidates[0]

    # ── Drawing ──────────────────────────────────────────────────────────

    def _draw_board(self) -> None:
        """Draw or redraw the 64 squares and the rank/file labels."""
        for item in self._square_items.values():
            self.removeItem(item)
        self._square_items.clear()
        for label in self._coord_items:
            self.removeItem(label)
        self._coord_items.clear()

        t = self.TILE
        font = QFont()
        font.setPixelSize(max(9, t // 6))
        for sq in chess.SQUARES:
            vf, vr = self._visual_coords(sq)
            is_light = (chess.square_file(sq) + chess.square_rank(sq)) % 2 == 1
            color = self._theme.light_square if is_light else self._theme.dark_square
            rect = QGraphicsRectItem(vf * t, vr * t, t, t)
            rect.setBrush(QBrush(color))
            rect.setPen(QPen(Qt.PenStyle.NoPen))
            rect.setZValue(0)
            self.addItem(rect)
            self._square_items[sq] = rect

            # Ranks along the left edge, files along the bottom, either way up.
            if vf == 0:
                rank = chess.RANK_NAMES[chess.square_rank(sq)]
                self._add_label(rank, vf * t + 2, vr * t + 1, font)
            if vr == 7:
                file = chess.FILE_NAMES[chess.square_file(sq)]
                self._add_label(file, vf * t + t - 12, vr * t + t - 16, font)

    def _add_label(self, text: str, x: float, y: float, font: QFont) -> None:
        label = QGraphicsSimpleTextItem(text)
        label.setFont(font)
        label.setBrush(QBrush(self._theme.coordinate))
        label.setPos(x, y)
        label.setZValue(0.5)
        self.addItem(label)
        self._coord_items.append(label)

    def _sync_pieces(self) -> None:
        for item in self._piece_items.values():
            self.removeItem(item)
        self._piece_items.clear()

        t = self.TILE
        font = QFont()
        font.setPixelSize(int(t * 0.8))
        for sq, piece in self._board.piece_map().items():
            glyph = chess.UNICODE_PIECE_SYMBOLS[piece.symbol().lower()]
            item = QGraphicsSimpleTextItem(glyph)
            item.setFont(font)
            fill = self._theme.white_piece if piece.color else self._theme.black_piece
            item.setBrush(QBrush(fill))
            item.setPen(QPen(self._theme.black_piece, 1))
            vf, vr = self._visual_coords(sq)
            bounds = item.boundingRect()
            item.setPos(
                vf * t + (t - bounds.width()) / 2,
                vr * t + (t - bounds.height()) / 2,
            )
            item.setZValue(2)
            self.addItem(item)
            self._piece_items[sq] = item

    def _sync_highlights(self) -> None:
        for item in self._highlight_items:
            self.removeItem(item)
        self._highlight_items.clear()

        if self._last_move is not None:
            for sq in (self._last_move.from_square, self._last_move.to_square):
                self._add_highlight(sq, self._theme.last_move)
        if self._selected is not None:
            self._add_highlight(self._selected, self._theme.selected)
            for move in self._board.legal_moves:
                if move.from_square == self._selected:
                    self._add_highlight(move.to_square, self._theme.target)

    def _add_highlight(self, square: chess.Square, color) -> None:
        t = self.TILE
        vf, vr = self._visual_coords(square)
        rect = QGraphicsRectItem(vf * t, vr * t, t, t)
        rect.setBrush(QBrush(color))
        rect.setPen(QPen(Qt.PenStyle.NoPen))
        rect.setZValue(1)
        self.addItem(rect)
        self._highlight_items.append(rect)


class BoardView(QGraphicsView):
    """Displays the board scene, scaled to fit the widget."""

    move_made = pyqtSignal(object)

    def __init__(self, parent=None) -> None:
        self._scene = BoardScene()
        super().__init__(self._scene, parent)

        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMinimumSize(320, 320)

        self._scene.move_made.connect(self.move_made.emit)

    @property
    def board_scene(self) -> BoardScene:
        return self._scene

    def resizeEvent(self, event: QResizeEvent | None) -> None:
        super().resizeEvent(event)
        self.fitInView(self._scene.sceneRect(), Qt.AspectRatioMode.KeepAspectRatio)
