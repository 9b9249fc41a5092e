"""Error taxonomy shared by the referee and its peer processes."""

from __future__ import annotations


class RefereeError(Exception):
    """Base class for every fatal condition of a game session."""


class SpawnError(RefereeError):
    """A peer process (or its pipes) could not be created."""


class HistoryError(RefereeError):
    """The preloaded move history is unreadable or contains an illegal move."""


class ProtocolViolation(RefereeError):
    """A peer sent a malformed line, or an illegal or empty move.

    Args:
        peer: Name of the offending peer (``engine``, ``display``, ...).
        payload: The raw line that was received.
        reason: Short human readable diagnostic.
    """

    def __init__(self, peer: str, payload: str, reason: str) -> None:
        super().__init__(f"{peer}: {reason} (payload {payload!r})")
        self.peer = peer
        self.payload = payload
        self.reason = reason


class PeerClosedError(RefereeError):
    """A peer closed its stream or exited while it was needed."""

    def __init__(self, peer: str, detail: str = "closed its stream") -> None:
        super().__init__(f"{peer} {detail}")
        self.peer = peer


class GameInterrupted(RefereeError):
    """The referee received SIGINT or SIGTERM, or the player closed stdin."""

    def __init__(self, signum: int | None = None) -> None:
        if signum is None:
            super().__init__("input closed")
        else:
            super().__init__(f"interrupted by signal {signum}")
        self.signum = signum
