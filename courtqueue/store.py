"""Persistence seam for players, sessions, queue entries and games.

``Store`` is the interface the service talks to.  ``MemoryStore`` keeps
everything in dictionaries and hands out copies, so nothing a caller
holds can change stored state without going through a write method.
"""

from __future__ import annotations

import abc
import contextlib
import copy
import datetime
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from .config import SessionConfig
from .entities import (
    Game,
    GameOutcome,
    GamePlayer,
    Player,
    QueueEntry,
    QueueRow,
    Session,
)
from .errors import NotFoundError

logger = logging.getLogger(__name__)

# (player id, team hint, slot hint) in the order the queue should read.
Arrangement = Sequence[Tuple[int, Optional[int], Optional[int]]]


class Store(abc.ABC):
    """Durable home of everything the queue engine reads and writes."""

    @abc.abstractmethod
    def transaction(self) -> contextlib.AbstractAsyncContextManager:
        """Group writes so they are committed together or not at all."""

    # Players

    @abc.abstractmethod
    async def add_player(
        self, display_name: str, birth_year: Optional[int] = None, auto_rejoin: bool = False
    ) -> Player: ...

    @abc.abstractmethod
    async def get_player(self, player_id: int) -> Player: ...

    @abc.abstractmethod
    async def update_player(self, player: Player) -> None: ...

    # Sessions

    @abc.abstractmethod
    async def create_session(self, config: SessionConfig) -> Session: ...

    @abc.abstractmethod
    async def get_session(self, session_id: int) -> Optional[Session]: ...

    @abc.abstractmethod
    async def get_active_session(self) -> Optional[Session]: ...

    @abc.abstractmethod
    async def close_session(self, session_id: int) -> None: ...

    @abc.abstractmethod
    async def save_counters(self, session_id: int, head: int, tail: int) -> None: ...

    # Queue

    @abc.abstractmethod
    async def fetch_active_queue(self, session_id: int) -> List[QueueRow]: ...

    @abc.abstractmethod
    async def active_entry_for_player(self, session_id: int, player_id: int) -> Optional[QueueEntry]: ...

    @abc.abstractmethod
    async def append_to_queue(
        self,
        session_id: int,
        player_id: int,
        position: int,
        kind: str = "manual",
        team_hint: Optional[int] = None,
        slot_hint: Optional[int] = None,
    ) -> QueueEntry: ...

    @abc.abstractmethod
    async def remove_from_queue(self, entry_id: int) -> None: ...

    @abc.abstractmethod
    async def shift_positions(self, session_id: int, from_position: int, delta: int) -> None: ...

    @abc.abstractmethod
    async def assign_arrangement(self, session_id: int, arrangement: Arrangement) -> None: ...

    @abc.abstractmethod
    async def session_entries(self, session_id: int) -> List[QueueEntry]: ...

    # Games

    @abc.abstractmethod
    async def create_game(self, session_id: int, court: str, players: Sequence[GamePlayer]) -> Game: ...

    @abc.abstractmethod
    async def get_game(self, game_id: int) -> Game: ...

    @abc.abstractmethod
    async def games_for_session(self, session_id: int) -> List[Game]: ...

    @abc.abstractmethod
    async def record_game_result(self, game_id: int, team1_score: int, team2_score: int) -> Game: ...

    @abc.abstractmethod
    async def set_promoted_team(self, game_id: int, team_id: int) -> None: ...

    @abc.abstractmethod
    async def recent_games_on_court(
        self, session_id: int, court: str, before_game_id: int
    ) -> List[GameOutcome]: ...


class MemoryStore(Store):
    """Dictionary backed store used by tests, the demo and the default app."""

    def __init__(self) -> None:
        self._players: Dict[int, Player] = {}
        self._sessions: Dict[int, Session] = {}
        self._entries: Dict[int, QueueEntry] = {}
        self._games: Dict[int, Game] = {}
        self._sequences: Dict[str, int] = {"player": 0, "session": 0, "entry": 0, "game": 0}

    def _next_id(self, name: str) -> int:
        self._sequences[name] += 1
        return self._sequences[name]

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator["MemoryStore"]:
        saved = copy.deepcopy(
            (self._players, self._sessions, self._entries, self._games, self._sequences)
        )
        try:
            yield self
        except BaseException:
            self._players, self._sessions, self._entries, self._games, self._sequences = saved
            logger.warning("Rolled back store transaction")
            raise

    async def add_player(
        self, display_name: str, birth_year: Optional[int] = None, auto_rejoin: bool = False
    ) -> Player:
        player = Player(
            id=self._next_id("player"),
            display_name=display_name,
            birth_year=birth_year,
            auto_rejoin=auto_rejoin,
        )
        self._players[player.id] = player
        return copy.deepcopy(player)

    async def get_player(self, player_id: int) -> Player:
        try:
            return copy.deepcopy(self._players[player_id])
        except KeyError:
            raise NotFoundError(f"Player {player_id} not found") from None

    async def update_player(self, player: Player) -> None:
        if player.id not in self._players:
            raise NotFoundError(f"Player {player.id} not found")
        self._players[player.id] = copy.deepcopy(player)

    async def create_session(self, config: SessionConfig) -> Session:
        for session in self._sessions.values():
            session.active = False
        for entry in self._entries.values():
            entry.active = False
        session = Session(id=self._next_id("session"), config=config)
        self._sessions[session.id] = session
        return copy.deepcopy(session)

    async def get_session(self, session_id: int) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return copy.deepcopy(session) if session else None

    async def get_active_session(self) -> Optional[Session]:
        for session in self._sessions.values():
            if session.active:
                return copy.deepcopy(session)
        return None

    async def close_session(self, session_id: int) -> None:
        self._session(session_id).active = False
        for entry in self._entries.values():
            if entry.session_id == session_id:
                entry.active = False

    async def save_counters(self, session_id: int, head: int, tail: int) -> None:
        session = self._session(session_id)
        session.head, session.tail = head, tail

    async def fetch_active_queue(self, session_id: int) -> List[QueueRow]:
        rows = []
        for entry in self._active(session_id):
            player = self._players[entry.player_id]
            rows.append(
                QueueRow(
                    entry_id=entry.entry_id,
                    player_id=player.id,
                    display_name=player.display_name,
                    position=entry.position,
                    birth_year=player.birth_year,
                    auto_rejoin=player.auto_rejoin,
                    games_played=player.games_played,
                    consecutive_losses=player.consecutive_losses,
                    team_hint=entry.team_hint,
                    slot_hint=entry.slot_hint,
                )
            )
        return rows

    async def active_entry_for_player(self, session_id: int, player_id: int) -> Optional[QueueEntry]:
        for entry in self._active(session_id):
            if entry.player_id == player_id:
                return copy.deepcopy(entry)
        return None

    async def append_to_queue(
        self,
        session_id: int,
        player_id: int,
        position: int,
        kind: str = "manual",
        team_hint: Optional[int] = None,
        slot_hint: Optional[int] = None,
    ) -> QueueEntry:
        self._session(session_id)
        if player_id not in self._players:
            raise NotFoundError(f"Player {player_id} not found")
        entry = QueueEntry(
            entry_id=self._next_id("entry"),
            session_id=session_id,
            player_id=player_id,
            position=position,
            kind=kind,
            team_hint=team_hint,
            slot_hint=slot_hint,
        )
        self._entries[entry.entry_id] = entry
        return copy.deepcopy(entry)

    async def remove_from_queue(self, entry_id: int) -> None:
        try:
            self._entries[entry_id].active = False
        except KeyError:
            raise NotFoundError(f"Queue entry {entry_id} not found") from None

    async def shift_positions(self, session_id: int, from_position: int, delta: int) -> None:
        for entry in self._active(session_id):
            if entry.position >= from_position:
                entry.position += delta

    async def assign_arrangement(self, session_id: int, arrangement: Arrangement) -> None:
        by_player = {entry.player_id: entry for entry in self._active(session_id)}
        missing = [player_id for player_id, _, _ in arrangement if player_id not in by_player]
        if missing:
            raise NotFoundError(f"Players {missing} are not checked in")
        positions = sorted(by_player[player_id].position for player_id, _, _ in arrangement)
        for position, (player_id, team_hint, slot_hint) in zip(positions, arrangement):
            entry = by_player[player_id]
            entry.position = position
            entry.team_hint = team_hint
            entry.slot_hint = slot_hint

    async def session_entries(self, session_id: int) -> List[QueueEntry]:
        entries = [entry for entry in self._entries.values() if entry.session_id == session_id]
        entries.sort(key=lambda entry: (entry.position, entry.entry_id))
        return copy.deepcopy(entries)

    async def create_game(self, session_id: int, court: str, players: Sequence[GamePlayer]) -> Game:
        self._session(session_id)
        game = Game(id=self._next_id("game"), session_id=session_id, court=court, players=list(players))
        self._games[game.id] = game
        playing = {gp.player_id for gp in players}
        for entry in self._active(session_id):
            if entry.player_id in playing:
                entry.game_id = game.id
        return copy.deepcopy(game)

    async def get_game(self, game_id: int) -> Game:
        return copy.deepcopy(self._game(game_id))

    async def games_for_session(self, session_id: int) -> List[Game]:
        games = [game for game in self._games.values() if game.session_id == session_id]
        return copy.deepcopy(sorted(games, key=lambda game: game.id))

    async def record_game_result(self, game_id: int, team1_score: int, team2_score: int) -> Game:
        game = self._game(game_id)
        game.team1_score = team1_score
        game.team2_score = team2_score
        game.end_time = datetime.datetime.now()
        game.state = "final"
        return copy.deepcopy(game)

    async def set_promoted_team(self, game_id: int, team_id: int) -> None:
        self._game(game_id).promoted_team = team_id

    async def recent_games_on_court(
        self, session_id: int, court: str, before_game_id: int
    ) -> List[GameOutcome]:
        outcomes = []
        for game in sorted(self._games.values(), key=lambda game: game.id, reverse=True):
            if game.session_id != session_id or game.court != court or game.id >= before_game_id:
                continue
            winner = game.winning_team_id
            if game.state != "final" or winner is None:
                continue
            outcomes.append(
                GameOutcome(
                    game_id=game.id,
                    winning_team_id=winner,
                    winning_player_ids=frozenset(gp.player_id for gp in game.team(winner)),
                )
            )
        return outcomes

    def _session(self, session_id: int) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFoundError(f"Session {session_id} not found") from None

    def _game(self, game_id: int) -> Game:
        try:
            return self._games[game_id]
        except KeyError:
            raise NotFoundError(f"Game {game_id} not found") from None

    def _active(self, session_id: int) -> List[QueueEntry]:
        entries = [
            entry
            for entry in self._entries.values()
            if entry.session_id == session_id and entry.active
        ]
        entries.sort(key=lambda entry: (entry.position, entry.entry_id))
        return entries
