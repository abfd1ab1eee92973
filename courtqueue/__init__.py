"""Core package for the pickup-game check-in queue.

Players check in, get split into a home team, an away team and a next-up
line, play, and are either promoted back onto the court or sent back in
line.  Everything here runs without a web server and can be unit tested
against the in-memory store.
"""

from .config import SessionConfig
from .entities import MoveCommand, MoveResult, MoveType, Player, PopulationState, Snapshot
from .errors import (
    InsufficientPlayersError,
    InvalidStateError,
    NotFoundError,
    QueueError,
    SessionNotFoundError,
    ValidationError,
)
from .moves import PlayerMoveProcessor
from .population import GamePopulationEngine
from .positions import QueuePositionAllocator
from .promotion import PromotionResolver
from .service import QueueService
from .store import MemoryStore, Store

__all__ = [
    "GamePopulationEngine",
    "InsufficientPlayersError",
    "InvalidStateError",
    "MemoryStore",
    "MoveCommand",
    "MoveResult",
    "MoveType",
    "NotFoundError",
    "Player",
    "PlayerMoveProcessor",
    "PopulationState",
    "PromotionResolver",
    "QueueError",
    "QueuePositionAllocator",
    "QueueService",
    "SessionConfig",
    "SessionNotFoundError",
    "Snapshot",
    "Store",
    "ValidationError",
]
