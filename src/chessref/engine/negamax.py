"""Depth-bounded negamax search with alpha-beta pruning."""

from __future__ import annotations

import random
from collections.abc import Sequence

import chess

from chessref.engine.evaluate import PIECE_VALUES, evaluate
from chessref.engine.search import (
    MATE_SCORE,
    CancelCheck,
    ISearcher,
    SearchAborted,
    SearchResult,
)

_INF_SCORE = 1_000_000
_HINT_BONUS = 1_000_000
_CAPTURE_BONUS = 10_000
_PROMOTION_BONUS = 9_000


def _never_cancelled() -> bool:
    return False


class NegamaxSearcher(ISearcher):
    """Searches a fixed depth and returns the principal variation.

    The cancellation check is polled at every node; when it fires the
    search raises :class:`SearchAborted` and its partial result is lost.
    The caller's board is never modified.

    Args:
        randomized: Shuffle moves before ordering so equal-scored lines
            are picked at random.
        seed: Seed for the shuffling generator.
    """

    __slots__ = ("_nodes", "_cancel_check", "_randomized", "_rng")

    def __init__(self, *, randomized: bool = False, seed: int | None = None) -> None:
        self._nodes = 0
        self._cancel_check: CancelCheck = _never_cancelled
        self._randomized = randomized
        self._rng = random.Random(seed)

    def search(
        self,
        board: chess.Board,
        depth: int,
        is_cancelled: CancelCheck | None = None,
        hint: Sequence[chess.Move] = (),
    ) -> SearchResult:
        if depth <= 0:
            raise ValueError("Search depth must be >= 1")

        self._nodes = 0
        self._cancel_check = is_cancelled or _never_cancelled
        work = board.copy(stack=True)
        score, line = self._negamax(
            work, depth, -_INF_SCORE, _INF_SCORE, ply=0, hint=tuple(hint)
        )
        return SearchResult(score, tuple(line), depth, self._nodes)

    def _negamax(
        self,
        board: chess.Board,
        depth: int,
        alpha: int,
        beta: int,
        ply: int,
        hint: tuple[chess.Move, ...],
    ) -> tuple[int, list[chess.Move]]:
        if self._cancel_check():
            raise SearchAborted
        self._nodes += 1

        moves = list(board.legal_moves)
        if not moves:
            if board.is_check():
                return -MATE_SCORE + ply, []
            return 0, []
        if ply > 0 and board.is_insufficient_material():
            return 0, []
        if depth <= 0:
            return evaluate(board), []

        best_score = -_INF_SCORE
        best_line: list[chess.Move] = []
        for move in self._order_moves(board, moves, hint[0] if hint else None):
            child_hint = hint[1:] if hint and move == hint[0] else ()
            board.push(move)
            score, line = self._negamax(
                board, depth - 1, -beta, -alpha, ply + 1, child_hint
            )
            board.pop()
            score = -score

            if score > best_score:
                best_score = score
                best_line = [move, *line]
            if score > alpha:
                alpha = score
            if alpha >= beta:
                break

        return best_score, best_line

    def _order_moves(
        self,
        board: chess.Board,
        moves: list[chess.Move],
        hint_move: chess.Move | None,
    ) -> list[chess.Move]:
        if self._randomized:
            self._rng.shuffle(moves)

        def _score(move: chess.Move) -> int:
            if move == hint_move:
                return _HINT_BONUS
            score = 0
            if board.is_capture(move):
                victim = board.piece_type_at(move.to_square) or chess.PAWN
                attacker = board.piece_type_at(move.from_square) or chess.PAWN
                score += _CAPTURE_BONUS + PIECE_VALUES[victim] - PIECE_VALUES[attacker]
            if move.promotion is not None:
                score += _PROMOTION_BONUS + PIECE_VALUES[move.promotion]
            return score

        # sorted() is stable, so shuffled order survives among equal scores.
        return sorted(moves, key=_score, reverse=True)
