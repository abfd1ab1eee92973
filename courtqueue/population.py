"""Game population state machine."""

from __future__ import annotations

import dataclasses
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import ASSIGNMENT_BALANCED, SessionConfig
from .entities import AWAY, HOME, Player, PlayerStatus, PopulationState, Snapshot, Team
from .errors import InvalidStateError

Seat = Tuple[int, int]


class GamePopulationEngine:
    """Turns an ordered queue into two teams and a next-up list.

    ``seats`` maps player ids to a ``(team, slot)`` pair for players whose
    side is already fixed, typically a promoted team coming back on.
    Those players keep their half of the court and the open slots on both
    sides are filled from the rest of the queue in order.  Team size always
    follows the queue length, never the seated count, so a short promoted
    team is topped up and a large one is trimmed when the line is short.
    """

    def initialize(self, config: SessionConfig) -> Snapshot:
        config.validate()
        return Snapshot(config=config)

    def populate(
        self,
        queue: Sequence[Player],
        config: SessionConfig,
        seats: Optional[Mapping[int, Seat]] = None,
    ) -> Snapshot:
        snapshot = self.initialize(config)
        snapshot.next_up = [
            dataclasses.replace(player, status=PlayerStatus.AVAILABLE) for player in queue
        ]
        known = {player.id for player in queue}
        seats = {pid: seat for pid, seat in (seats or {}).items() if pid in known}
        while snapshot.state is not PopulationState.COMPLETE:
            previous = snapshot.state
            self.transition(snapshot, seats)
            if snapshot.state is previous:
                break
        return snapshot

    def transition(self, snapshot: Snapshot, seats: Mapping[int, Seat]) -> None:
        if snapshot.state is PopulationState.WAITING_FOR_PLAYERS:
            self._handle_waiting_for_players(snapshot)
        elif snapshot.state is PopulationState.TEAM_ASSIGNMENT:
            self._handle_team_assignment(snapshot, seats)
        elif snapshot.state is PopulationState.COURT_SELECTION:
            self._handle_court_selection(snapshot)
        elif snapshot.state is PopulationState.GAME_CREATION:
            self._handle_game_creation(snapshot)

    def _handle_waiting_for_players(self, snapshot: Snapshot) -> None:
        if len(snapshot.next_up) < snapshot.config.min_players_per_team * 2:
            return
        snapshot.state = PopulationState.TEAM_ASSIGNMENT

    def _handle_team_assignment(self, snapshot: Snapshot, seats: Mapping[int, Seat]) -> None:
        config = snapshot.config
        players = snapshot.next_up
        size = self._team_size(players, config)
        if seats:
            team_a, team_b, rest = self._fill_around_seats(players, size, seats)
        else:
            pool, rest = players[: size * 2], players[size * 2 :]
            if config.assignment == ASSIGNMENT_BALANCED:
                ranked = sorted(pool, key=lambda p: (-p.skill, -p.games_played))
                team_a, team_b = ranked[0::2], ranked[1::2]
            else:
                team_a, team_b = pool[:size], pool[size:]
        for player in team_a + team_b:
            player.status = PlayerStatus.ASSIGNED
        snapshot.team_a = Team.build(team_a, config.og_age_threshold)
        snapshot.team_b = Team.build(team_b, config.og_age_threshold)
        snapshot.next_up = list(rest)
        snapshot.state = PopulationState.COURT_SELECTION

    def _handle_court_selection(self, snapshot: Snapshot) -> None:
        snapshot.selected_court = snapshot.config.court_preference[0]
        snapshot.state = PopulationState.GAME_CREATION

    def _handle_game_creation(self, snapshot: Snapshot) -> None:
        if len(snapshot.team_a) != len(snapshot.team_b):
            raise InvalidStateError("Teams must be the same size")
        if len(snapshot.team_a) < snapshot.config.min_players_per_team:
            raise InvalidStateError(
                f"Teams need at least {snapshot.config.min_players_per_team} players"
            )
        if snapshot.selected_court is None:
            raise InvalidStateError("No court selected")
        snapshot.state = PopulationState.COMPLETE

    @staticmethod
    def _team_size(players: Sequence[Player], config: SessionConfig) -> int:
        return min(config.team_size, len(players) // 2)

    @staticmethod
    def _fill_around_seats(
        players: Sequence[Player], size: int, seats: Mapping[int, Seat]
    ) -> Tuple[List[Player], List[Player], List[Player]]:
        slots: Dict[int, List[Optional[Player]]] = {HOME: [None] * size, AWAY: [None] * size}
        placed = set()
        seated = sorted((p for p in players if p.id in seats), key=lambda p: seats[p.id][1])
        for player in seated:
            team, slot = seats[player.id]
            side = slots[HOME if team == HOME else AWAY]
            if 0 <= slot < size and side[slot] is None:
                side[slot] = player
            elif None in side:
                side[side.index(None)] = player
            else:
                continue
            placed.add(player.id)
        # Seated players that no longer fit only fill in once the fresh queue runs out.
        bench = [p for p in players if p.id not in placed]
        fillers = [p for p in bench if p.id not in seats] + [p for p in bench if p.id in seats]
        for side in (slots[HOME], slots[AWAY]):
            for index, occupant in enumerate(side):
                if occupant is None:
                    side[index] = fillers.pop(0)
        home, away = list(slots[HOME]), list(slots[AWAY])
        playing = {p.id for p in home + away}
        return home, away, [p for p in players if p.id not in playing]
