"""Failures raised by the queue engine.

Every error here is recoverable at the call site: the caller keeps its
original snapshot and may retry or show the message to a user.
"""

from __future__ import annotations

from typing import Dict


class QueueError(RuntimeError):
    """Base class for queue related failures."""

    code = "queue_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def serialise(self) -> Dict[str, str]:
        return {"error": self.code, "message": self.message}


class ValidationError(QueueError):
    """Raised when a move does not fit the player's current location."""

    code = "validation_error"


class InsufficientPlayersError(QueueError):
    """Raised when the queue cannot supply the players an operation needs."""

    code = "insufficient_players"


class NotFoundError(QueueError):
    """Raised when a player, entry or game id is unknown."""

    code = "not_found"


class InvalidStateError(QueueError):
    """Raised when a population or game is not in a state that allows the request."""

    code = "invalid_state"


class SessionNotFoundError(QueueError):
    """Raised when the referenced session is missing or no longer active."""

    code = "session_not_found"
