"""Text based driver showcasing a few rounds of pickup games."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import List

from courtqueue import MemoryStore, QueueService, SessionConfig
from courtqueue.entities import Player, PopulationState, Snapshot


def _describe(snapshot: Snapshot) -> str:
    home = ", ".join(p.display_name for p in snapshot.team_a.players)
    away = ", ".join(p.display_name for p in snapshot.team_b.players)
    waiting = ", ".join(p.display_name for p in snapshot.next_up) or "-"
    return f"  Home: {home}\n  Away: {away}\n  Next up: {waiting}"


async def _register_players(service: QueueService, count: int) -> List[Player]:
    players = []
    for idx in range(count):
        player = await service.register_player(
            f"Hooper-{idx + 1}",
            birth_year=random.randint(1945, 2005),
            auto_rejoin=random.random() < 0.7,
        )
        players.append(player)
    return players


async def run_demo(player_count: int = 14, rounds: int = 4) -> None:
    service = QueueService(MemoryStore())
    session = await service.open_session(SessionConfig(team_size=5, min_players_per_team=3))
    players = await _register_players(service, player_count)
    print(f"[Session {session.id}] Checking in {player_count} players...")
    for player in players:
        await service.check_in(session.id, player.id)
    for round_number in range(1, rounds + 1):
        snapshot = await service.populate_game(session.id)
        if snapshot.state is not PopulationState.COMPLETE:
            print(f"[Round {round_number}] Short on players, calling everyone back to the line.")
            for player in players:
                await service.check_in(session.id, player.id)
            snapshot = await service.populate_game(session.id)
        print(f"[Round {round_number}] {snapshot.state.value} on {snapshot.selected_court}")
        print(_describe(snapshot))
        game = await service.create_game(session.id)
        home, away = random.sample(range(8, 22), 2)
        outcome = await service.resolve_promotion(game.id, home, away)
        print(
            f"[Result] {home}-{away}: team {outcome.winning_team_id} wins "
            f"(streak {outcome.streak}), team {outcome.promoted_team_id} stays on, "
            f"{len(outcome.requeued_player_ids)} back in line"
        )


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(run_demo())
