"""Tests for the game population state machine."""
from __future__ import annotations

from typing import List

import pytest

from courtqueue.config import SessionConfig
from courtqueue.entities import AWAY, HOME, Player, PlayerStatus, PopulationState, Team, current_year
from courtqueue.errors import InvalidStateError
from courtqueue.population import GamePopulationEngine


def _make_players(count: int) -> List[Player]:
    return [Player(id=idx + 1, display_name=f"P{idx + 1}", queue_position=idx + 1) for idx in range(count)]


def _ids(players: List[Player]) -> List[int]:
    return [player.id for player in players]


def test_initialize_starts_empty() -> None:
    snapshot = GamePopulationEngine().initialize(SessionConfig())
    assert snapshot.state is PopulationState.WAITING_FOR_PLAYERS
    assert not snapshot.team_a.players
    assert not snapshot.team_b.players
    assert snapshot.next_up == []
    assert snapshot.selected_court is None


def test_ten_players_fill_two_teams_of_four() -> None:
    players = _make_players(10)
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=4))
    assert snapshot.state is PopulationState.COMPLETE
    assert _ids(snapshot.team_a.players) == [1, 2, 3, 4]
    assert _ids(snapshot.team_b.players) == [5, 6, 7, 8]
    assert _ids(snapshot.next_up) == [9, 10]
    assert snapshot.selected_court == "West"
    assert all(p.status is PlayerStatus.ASSIGNED for p in snapshot.team_a.players)
    assert all(p.status is PlayerStatus.AVAILABLE for p in snapshot.next_up)


def test_waits_until_enough_players_check_in() -> None:
    players = _make_players(5)
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=5, min_players_per_team=3))
    assert snapshot.state is PopulationState.WAITING_FOR_PLAYERS
    assert _ids(snapshot.next_up) == [1, 2, 3, 4, 5]
    assert not snapshot.team_a.players


def test_short_queue_plays_smaller_teams() -> None:
    players = _make_players(7)
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=5, min_players_per_team=3))
    assert snapshot.state is PopulationState.COMPLETE
    assert snapshot.team_size == 3
    assert _ids(snapshot.team_a.players) == [1, 2, 3]
    assert _ids(snapshot.team_b.players) == [4, 5, 6]
    assert _ids(snapshot.next_up) == [7]


def test_balanced_assignment_deals_by_skill() -> None:
    players = _make_players(6)
    for player, games in zip(players, [1, 6, 3, 5, 2, 4]):
        player.games_played = games
    config = SessionConfig(team_size=2, min_players_per_team=2, assignment="balanced")
    snapshot = GamePopulationEngine().populate(players, config)
    # Pool is the first four in line: skills P1=1, P2=6, P3=3, P4=5.
    assert _ids(snapshot.team_a.players) == [2, 3]
    assert _ids(snapshot.team_b.players) == [4, 1]
    assert _ids(snapshot.next_up) == [5, 6]
    assert snapshot.team_a.total_games_played == 9
    assert snapshot.team_b.avg_skill == pytest.approx(3.0)


def test_og_count_uses_age_threshold() -> None:
    players = _make_players(6)
    players[0].birth_year = current_year() - 80
    players[1].birth_year = current_year() - 75
    players[4].birth_year = current_year() - 30
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=3))
    assert snapshot.team_a.og_count == 2
    assert snapshot.team_b.og_count == 0


def test_seated_team_keeps_its_side() -> None:
    players = _make_players(9)
    # Players 1-3 come back on as the away side, in reverse slot order.
    seats = {1: (AWAY, 2), 2: (AWAY, 1), 3: (AWAY, 0)}
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=3), seats)
    assert snapshot.state is PopulationState.COMPLETE
    assert _ids(snapshot.team_b.players) == [3, 2, 1]
    assert _ids(snapshot.team_a.players) == [4, 5, 6]
    assert _ids(snapshot.next_up) == [7, 8, 9]


def test_seated_team_is_topped_up_to_queue_size() -> None:
    players = _make_players(14)
    seats = {1: (HOME, 0), 2: (HOME, 1), 3: (HOME, 2)}
    config = SessionConfig(team_size=5, min_players_per_team=3)
    snapshot = GamePopulationEngine().populate(players, config, seats)
    assert snapshot.state is PopulationState.COMPLETE
    assert _ids(snapshot.team_a.players) == [1, 2, 3, 4, 5]
    assert _ids(snapshot.team_b.players) == [6, 7, 8, 9, 10]
    assert _ids(snapshot.next_up) == [11, 12, 13, 14]


def test_gaps_in_seated_team_are_filled_in_queue_order() -> None:
    players = _make_players(6)
    seats = {1: (HOME, 0), 5: (HOME, 2)}
    config = SessionConfig(team_size=3, min_players_per_team=3)
    snapshot = GamePopulationEngine().populate(players, config, seats)
    assert snapshot.state is PopulationState.COMPLETE
    assert _ids(snapshot.team_a.players) == [1, 2, 5]
    assert _ids(snapshot.team_b.players) == [3, 4, 6]
    assert snapshot.next_up == []


def test_seated_team_is_trimmed_when_line_is_short() -> None:
    players = _make_players(6)
    seats = {1: (HOME, 0), 2: (HOME, 1), 3: (HOME, 2), 4: (HOME, 3)}
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=4), seats)
    assert snapshot.state is PopulationState.COMPLETE
    assert _ids(snapshot.team_a.players) == [1, 2, 3]
    # The extra seated player only plays because nobody else is left.
    assert _ids(snapshot.team_b.players) == [5, 6, 4]


def test_seated_players_wait_for_a_full_line() -> None:
    players = _make_players(5)
    seats = {1: (AWAY, 0), 2: (AWAY, 1), 3: (AWAY, 2)}
    snapshot = GamePopulationEngine().populate(players, SessionConfig(team_size=3), seats)
    assert snapshot.state is PopulationState.WAITING_FOR_PLAYERS
    assert _ids(snapshot.next_up) == [1, 2, 3, 4, 5]


def test_game_creation_rejects_uneven_teams() -> None:
    engine = GamePopulationEngine()
    config = SessionConfig(team_size=3)
    snapshot = engine.initialize(config)
    players = _make_players(5)
    snapshot.team_a = Team.build(players[:3], config.og_age_threshold)
    snapshot.team_b = Team.build(players[3:], config.og_age_threshold)
    snapshot.selected_court = "West"
    snapshot.state = PopulationState.GAME_CREATION
    with pytest.raises(InvalidStateError):
        engine.transition(snapshot, {})



def test_populate_does_not_touch_input_players() -> None:
    players = _make_players(8)
    GamePopulationEngine().populate(players, SessionConfig(team_size=4))
    assert all(p.status is PlayerStatus.AVAILABLE for p in players)


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(ValueError):
        GamePopulationEngine().initialize(SessionConfig(team_size=2, min_players_per_team=3))
