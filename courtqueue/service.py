"""High level facade the web layer and the demo driver talk to."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from .config import SessionConfig
from .entities import (
    AWAY,
    HOME,
    Game,
    GamePlayer,
    MoveCommand,
    MoveResult,
    MoveType,
    Player,
    PopulationState,
    PromotionOutcome,
    QueueEntry,
    QueueRow,
    Session,
    Snapshot,
)
from .errors import InsufficientPlayersError, InvalidStateError, SessionNotFoundError
from .moves import PlayerMoveProcessor
from .population import GamePopulationEngine
from .positions import QueuePositionAllocator
from .promotion import PromotionResolver
from .store import Store

logger = logging.getLogger(__name__)


class QueueService:
    """Runs every queue mutation as one locked read-modify-write cycle.

    Each session gets its own ``asyncio.Lock``; cycles on different
    sessions never wait for each other.
    """

    def __init__(
        self,
        store: Store,
        engine: Optional[GamePopulationEngine] = None,
        moves: Optional[PlayerMoveProcessor] = None,
    ) -> None:
        self.store = store
        self.engine = engine or GamePopulationEngine()
        self.moves = moves or PlayerMoveProcessor()
        self._locks: Dict[int, asyncio.Lock] = {}

    def _lock(self, session_id: int) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def _require_session(self, session_id: int) -> Session:
        session = await self.store.get_session(session_id)
        if session is None or not session.active:
            raise SessionNotFoundError(f"No active session {session_id}")
        return session

    # Sessions and players

    async def open_session(self, config: Optional[SessionConfig] = None) -> Session:
        config = config or SessionConfig()
        config.validate()
        session = await self.store.create_session(config)
        logger.info("Opened session %s (team size %s)", session.id, config.team_size)
        return session

    async def close_session(self, session_id: int) -> None:
        async with self._lock(session_id):
            await self._require_session(session_id)
            await self.store.close_session(session_id)
        self._locks.pop(session_id, None)
        logger.info("Closed session %s", session_id)

    async def active_session(self) -> Session:
        session = await self.store.get_active_session()
        if session is None:
            raise SessionNotFoundError("No active session")
        return session

    async def register_player(
        self, display_name: str, birth_year: Optional[int] = None, auto_rejoin: bool = False
    ) -> Player:
        return await self.store.add_player(display_name, birth_year, auto_rejoin)

    async def check_in(self, session_id: int, player_id: int) -> QueueEntry:
        async with self._lock(session_id):
            session = await self._require_session(session_id)
            await self.store.get_player(player_id)
            existing = await self.store.active_entry_for_player(session.id, player_id)
            if existing is not None:
                return existing
            allocator = QueuePositionAllocator.for_session(session)
            position = allocator.next_position()
            async with self.store.transaction():
                entry = await self.store.append_to_queue(session.id, player_id, position)
                await self.store.save_counters(session.id, *allocator.counters())
        logger.info("Player %s checked in to session %s at position %s", player_id, session.id, position)
        return entry

    # Population and moves

    async def populate_game(self, session_id: int) -> Snapshot:
        async with self._lock(session_id):
            session = await self._require_session(session_id)
            snapshot, _ = await self._build_snapshot(session)
        return snapshot

    async def apply_move(self, session_id: int, player_id: int, move_type: object) -> MoveResult:
        command = MoveCommand(player_id=player_id, move_type=MoveType.parse(move_type))
        async with self._lock(session_id):
            session = await self._require_session(session_id)
            snapshot, rows = await self._build_snapshot(session)
            result = self.moves.apply(snapshot, command)
            if not result.success:
                logger.info(
                    "Rejected %s for player %s in session %s: %s",
                    command.move_type.value,
                    player_id,
                    session.id,
                    result.message,
                )
                return result
            async with self.store.transaction():
                await self._persist_arrangement(session, result.snapshot, rows)
        logger.info("Applied %s for player %s in session %s", command.move_type.value, player_id, session.id)
        return result

    async def create_game(self, session_id: int) -> Game:
        async with self._lock(session_id):
            session = await self._require_session(session_id)
            snapshot, rows = await self._build_snapshot(session)
            if snapshot.state is not PopulationState.COMPLETE:
                raise InsufficientPlayersError("Not enough players checked in to start a game")
            for game in await self.store.games_for_session(session.id):
                if game.state == "started" and game.court == snapshot.selected_court:
                    raise InvalidStateError(f"Game {game.id} is still in progress on {game.court}")
            players = [GamePlayer(p.id, HOME, slot) for slot, p in enumerate(snapshot.team_a.players)]
            players += [GamePlayer(p.id, AWAY, slot) for slot, p in enumerate(snapshot.team_b.players)]
            async with self.store.transaction():
                await self._persist_arrangement(session, snapshot, rows)
                game = await self.store.create_game(session.id, snapshot.selected_court, players)
        logger.info("Created game %s on %s for session %s", game.id, game.court, session.id)
        return game

    async def resolve_promotion(self, game_id: int, team1_score: int, team2_score: int) -> PromotionOutcome:
        game = await self.store.get_game(game_id)
        async with self._lock(game.session_id):
            session = await self._require_session(game.session_id)
            game = await self.store.get_game(game_id)
            if game.state != "started":
                raise InvalidStateError(f"Game {game.id} already has a final score")
            resolver = PromotionResolver(session.config)
            history = await self.store.recent_games_on_court(session.id, game.court, game.id)
            decision = resolver.decide(game, team1_score, team2_score, history)
            players = {gp.player_id: await self.store.get_player(gp.player_id) for gp in game.players}
            allocator = QueuePositionAllocator.for_session(session)
            plan = resolver.plan(
                game, decision, allocator, {pid: player.auto_rejoin for pid, player in players.items()}
            )
            async with self.store.transaction():
                await self.store.record_game_result(game.id, team1_score, team2_score)
                await self.store.set_promoted_team(game.id, decision.promoted_team_id)
                for player_id, won in resolver.tally(game, decision).items():
                    player = players[player_id]
                    player.games_played += 1
                    player.consecutive_losses = 0 if won else player.consecutive_losses + 1
                    await self.store.update_player(player)
                    entry = await self.store.active_entry_for_player(session.id, player_id)
                    if entry is not None:
                        await self.store.remove_from_queue(entry.entry_id)
                await self.store.shift_positions(session.id, plan.shift_from, plan.shift_delta)
                for seat in plan.promoted:
                    await self.store.append_to_queue(
                        session.id,
                        seat.player_id,
                        seat.position,
                        kind="promoted",
                        team_hint=seat.team,
                        slot_hint=seat.slot,
                    )
                for player_id, position in plan.requeued:
                    await self.store.append_to_queue(session.id, player_id, position, kind="rejoin")
                await self.store.save_counters(session.id, *allocator.counters())
        outcome = PromotionOutcome(
            game_id=game.id,
            winning_team_id=decision.winning_team_id,
            promoted_team_id=decision.promoted_team_id,
            streak=decision.streak,
            promoted_player_ids=[seat.player_id for seat in plan.promoted],
            requeued_player_ids=[player_id for player_id, _ in plan.requeued],
        )
        logger.info(
            "Game %s final %s-%s: team %s won (streak %s), team %s promoted, %s re-queued",
            game.id,
            team1_score,
            team2_score,
            decision.winning_team_id,
            decision.streak,
            decision.promoted_team_id,
            len(plan.requeued),
        )
        return outcome

    # Reporting

    async def session_log(self, session_id: int) -> List[Dict[str, object]]:
        """Every check-in of a session with the game it fed into, in queue order."""

        if await self.store.get_session(session_id) is None:
            raise SessionNotFoundError(f"No session {session_id}")
        games = {game.id: game for game in await self.store.games_for_session(session_id)}
        names: Dict[int, str] = {}
        log = []
        for entry in await self.store.session_entries(session_id):
            if entry.player_id not in names:
                names[entry.player_id] = (await self.store.get_player(entry.player_id)).display_name
            row: Dict[str, object] = {
                "queuePosition": entry.position,
                "playerId": entry.player_id,
                "displayName": names[entry.player_id],
                "checkInTime": entry.check_in_time.isoformat(),
                "type": entry.kind,
                "active": entry.active,
                "gameId": entry.game_id,
                "gameStatus": "Pending",
                "team": None,
                "score": None,
                "court": None,
            }
            game = games.get(entry.game_id) if entry.game_id is not None else None
            if game is not None:
                side = next(gp.team for gp in game.players if gp.player_id == entry.player_id)
                row["gameStatus"] = game.state
                row["team"] = "Home" if side == HOME else "Away"
                row["score"] = (
                    f"{game.team1_score}-{game.team2_score}" if game.state == "final" else "In Progress"
                )
                row["court"] = game.court
            log.append(row)
        return log

    # Helpers

    async def _build_snapshot(self, session: Session) -> Tuple[Snapshot, List[QueueRow]]:
        rows = await self.store.fetch_active_queue(session.id)
        seats = {
            row.player_id: (row.team_hint, row.slot_hint if row.slot_hint is not None else 0)
            for row in rows
            if row.team_hint is not None
        }
        snapshot = self.engine.populate([row.to_player() for row in rows], session.config, seats)
        return snapshot, rows

    async def _persist_arrangement(self, session: Session, snapshot: Snapshot, rows: List[QueueRow]) -> None:
        kept = set(snapshot.player_ids())
        for row in rows:
            if row.player_id not in kept:
                await self.store.remove_from_queue(row.entry_id)
        # A promoted team still waiting for opponents keeps its side.
        waiting = snapshot.state is PopulationState.WAITING_FOR_PLAYERS
        hints = {row.player_id: (row.team_hint, row.slot_hint) for row in rows}
        arrangement = [(p.id, HOME, slot) for slot, p in enumerate(snapshot.team_a.players)]
        arrangement += [(p.id, AWAY, slot) for slot, p in enumerate(snapshot.team_b.players)]
        arrangement += [
            (p.id, *(hints[p.id] if waiting else (None, None))) for p in snapshot.next_up
        ]
        await self.store.assign_arrangement(session.id, arrangement)
