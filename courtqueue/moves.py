"""Player movement commands applied to a population snapshot.

Moves are pure: the caller's snapshot is copied once on entry and only
the copy is modified.  A rejected move hands back the original object.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Union

from .entities import MoveCommand, MoveResult, MoveType, PlayerStatus, Snapshot, Team
from .errors import InsufficientPlayersError, NotFoundError, QueueError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamA:
    slot: int


@dataclass(frozen=True)
class TeamB:
    slot: int


@dataclass(frozen=True)
class NextUp:
    index: int


Location = Union[TeamA, TeamB, NextUp]


def locate(snapshot: Snapshot, player_id: int) -> Location:
    for slot, player in enumerate(snapshot.team_a.players):
        if player.id == player_id:
            return TeamA(slot)
    for slot, player in enumerate(snapshot.team_b.players):
        if player.id == player_id:
            return TeamB(slot)
    for index, player in enumerate(snapshot.next_up):
        if player.id == player_id:
            return NextUp(index)
    raise NotFoundError(f"Player {player_id} not found")


class PlayerMoveProcessor:
    """Applies checkout, bump and swap commands to snapshots."""

    def __init__(self) -> None:
        self._handlers: Dict[MoveType, Callable[[Snapshot, Location], None]] = {
            MoveType.CHECKOUT: self._checkout,
            MoveType.BUMP: self._bump,
            MoveType.HORIZONTAL_SWAP: self._horizontal_swap,
            MoveType.VERTICAL_SWAP: self._vertical_swap,
        }

    def apply(self, snapshot: Snapshot, command: MoveCommand) -> MoveResult:
        working = snapshot.copy()
        try:
            handler = self._handlers[MoveType.parse(command.move_type)]
            location = locate(working, command.player_id)
            handler(working, location)
        except QueueError as exc:
            logger.debug("Rejected %s for player %s: %s", command.move_type, command.player_id, exc.message)
            return MoveResult(success=False, message=exc.message, snapshot=snapshot)
        return MoveResult(success=True, snapshot=working)

    def checkout(self, snapshot: Snapshot, player_id: int) -> MoveResult:
        return self.apply(snapshot, MoveCommand(player_id, MoveType.CHECKOUT))

    def bump(self, snapshot: Snapshot, player_id: int) -> MoveResult:
        return self.apply(snapshot, MoveCommand(player_id, MoveType.BUMP))

    def horizontal_swap(self, snapshot: Snapshot, player_id: int) -> MoveResult:
        return self.apply(snapshot, MoveCommand(player_id, MoveType.HORIZONTAL_SWAP))

    def vertical_swap(self, snapshot: Snapshot, player_id: int) -> MoveResult:
        return self.apply(snapshot, MoveCommand(player_id, MoveType.VERTICAL_SWAP))

    def _checkout(self, snapshot: Snapshot, location: Location) -> None:
        if isinstance(location, NextUp):
            del snapshot.next_up[location.index]
            return
        if not snapshot.next_up:
            raise InsufficientPlayersError("No available players for replacement")
        team = self._team(snapshot, location)
        replacement = snapshot.next_up.pop(0)
        replacement.status = PlayerStatus.ASSIGNED
        team.players[location.slot] = replacement
        team.recompute(snapshot.config.og_age_threshold)

    def _bump(self, snapshot: Snapshot, location: Location) -> None:
        if isinstance(location, NextUp):
            below = location.index + 1
            if below >= len(snapshot.next_up):
                raise ValidationError("No player below to bump with")
            queue = snapshot.next_up
            queue[location.index], queue[below] = queue[below], queue[location.index]
            return
        if not snapshot.next_up:
            raise InsufficientPlayersError("No available players to bump with")
        team = self._team(snapshot, location)
        incoming = snapshot.next_up.pop(0)
        displaced = team.players[location.slot]
        incoming.status = PlayerStatus.ASSIGNED
        displaced.status = PlayerStatus.AVAILABLE
        team.players[location.slot] = incoming
        snapshot.next_up.insert(0, displaced)
        team.recompute(snapshot.config.og_age_threshold)

    def _horizontal_swap(self, snapshot: Snapshot, location: Location) -> None:
        if isinstance(location, NextUp):
            raise ValidationError("Can only swap team players horizontally")
        slot = location.slot
        home, away = snapshot.team_a.players, snapshot.team_b.players
        if slot >= len(home) or slot >= len(away):
            raise ValidationError(f"No opposing player in slot {slot}")
        home[slot], away[slot] = away[slot], home[slot]
        snapshot.team_a.recompute(snapshot.config.og_age_threshold)
        snapshot.team_b.recompute(snapshot.config.og_age_threshold)

    def _vertical_swap(self, snapshot: Snapshot, location: Location) -> None:
        if not isinstance(location, TeamB):
            raise ValidationError("Can only swap team B players vertically")
        players = snapshot.team_b.players
        below = (location.slot + 1) % len(players)
        players[location.slot], players[below] = players[below], players[location.slot]
        snapshot.team_b.recompute(snapshot.config.og_age_threshold)

    @staticmethod
    def _team(snapshot: Snapshot, location: Location) -> Team:
        return snapshot.team_a if isinstance(location, TeamA) else snapshot.team_b
