"""Domain entities used by the check-in queue."""

from __future__ import annotations

import copy
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional

from .config import SessionConfig
from .errors import ValidationError

HOME = 1
AWAY = 2


def current_year() -> int:
    return datetime.date.today().year


class PlayerStatus(Enum):
    """Where a player stands relative to the court."""

    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    ACTIVE = "ACTIVE"
    BENCHED = "BENCHED"


class PopulationState(Enum):
    """Progress of the game population state machine."""

    WAITING_FOR_PLAYERS = "WAITING_FOR_PLAYERS"
    TEAM_ASSIGNMENT = "TEAM_ASSIGNMENT"
    COURT_SELECTION = "COURT_SELECTION"
    GAME_CREATION = "GAME_CREATION"
    COMPLETE = "COMPLETE"


class MoveType(str, Enum):
    """Player movements an operator can request."""

    CHECKOUT = "CHECKOUT"
    BUMP = "BUMP"
    HORIZONTAL_SWAP = "HORIZONTAL_SWAP"
    VERTICAL_SWAP = "VERTICAL_SWAP"

    @classmethod
    def parse(cls, value: object) -> "MoveType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError(f"Invalid move type: {value}") from None


@dataclass
class Player:
    """A checked-in player as seen by the engine."""

    id: int
    display_name: str
    birth_year: Optional[int] = None
    games_played: int = 0
    consecutive_losses: int = 0
    auto_rejoin: bool = False
    status: PlayerStatus = PlayerStatus.AVAILABLE
    queue_position: Optional[int] = None

    @property
    def skill(self) -> float:
        return self.games_played - 0.5 * self.consecutive_losses

    def is_og(self, threshold: int, year: Optional[int] = None) -> bool:
        if not self.birth_year:
            return False
        return ((year or current_year()) - self.birth_year) >= threshold

    def serialise(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "birthYear": self.birth_year,
            "gamesPlayed": self.games_played,
            "consecutiveLosses": self.consecutive_losses,
            "autoRejoin": self.auto_rejoin,
            "status": self.status.value,
            "queuePosition": self.queue_position,
        }


@dataclass
class Team:
    """Ordered slots on one side of the court plus derived aggregates."""

    players: List[Player] = field(default_factory=list)
    avg_skill: float = 0.0
    total_games_played: int = 0
    og_count: int = 0

    @classmethod
    def build(cls, players: List[Player], og_threshold: int) -> "Team":
        team = cls(players=list(players))
        team.recompute(og_threshold)
        return team

    def recompute(self, og_threshold: int) -> None:
        self.total_games_played = sum(player.games_played for player in self.players)
        if self.players:
            self.avg_skill = sum(player.skill for player in self.players) / len(self.players)
        else:
            self.avg_skill = 0.0
        self.og_count = sum(1 for player in self.players if player.is_og(og_threshold))

    def player_ids(self) -> List[int]:
        return [player.id for player in self.players]

    def __len__(self) -> int:
        return len(self.players)

    def serialise(self) -> Dict[str, object]:
        return {
            "players": [player.serialise() for player in self.players],
            "avgSkill": self.avg_skill,
            "totalGamesPlayed": self.total_games_played,
            "ogCount": self.og_count,
        }


@dataclass
class Snapshot:
    """Working view of one session's court and queue.

    A snapshot is rebuilt from the store for every populate or move cycle
    and is never stored itself.
    """

    config: SessionConfig
    team_a: Team = field(default_factory=Team)
    team_b: Team = field(default_factory=Team)
    next_up: List[Player] = field(default_factory=list)
    selected_court: Optional[str] = None
    state: PopulationState = PopulationState.WAITING_FOR_PLAYERS

    @property
    def team_size(self) -> int:
        return len(self.team_a)

    def copy(self) -> "Snapshot":
        return copy.deepcopy(self)

    def player_ids(self) -> List[int]:
        return self.team_a.player_ids() + self.team_b.player_ids() + [p.id for p in self.next_up]

    def serialise(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "selectedCourt": self.selected_court,
            "teamSize": self.team_size,
            "configuredTeamSize": self.config.team_size,
            "teamA": self.team_a.serialise(),
            "teamB": self.team_b.serialise(),
            "nextUp": [player.serialise() for player in self.next_up],
        }


@dataclass(frozen=True)
class MoveCommand:
    player_id: int
    move_type: MoveType

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "MoveCommand":
        """Parse ``{"playerId": int, "moveType": str}``."""

        player_id = payload.get("playerId")
        if isinstance(player_id, bool) or not isinstance(player_id, int):
            raise ValidationError("playerId must be an integer")
        return cls(player_id=player_id, move_type=MoveType.parse(payload.get("moveType")))


@dataclass
class MoveResult:
    success: bool
    snapshot: Snapshot
    message: Optional[str] = None

    def serialise(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "message": self.message,
            "snapshot": self.snapshot.serialise(),
        }


@dataclass
class Session:
    """A configured run that scopes one queue and its games."""

    id: int
    config: SessionConfig
    active: bool = True
    head: int = 1
    tail: int = 1
    created_at: datetime.datetime = field(default_factory=datetime.datetime.now)

    def serialise(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "config": self.config.serialise(),
            "active": self.active,
            "head": self.head,
            "tail": self.tail,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class QueueEntry:
    """One check-in row.  Inactive rows are kept as the session's history."""

    entry_id: int
    session_id: int
    player_id: int
    position: int
    active: bool = True
    kind: str = "manual"
    team_hint: Optional[int] = None
    slot_hint: Optional[int] = None
    game_id: Optional[int] = None
    check_in_time: datetime.datetime = field(default_factory=datetime.datetime.now)

    def serialise(self) -> Dict[str, object]:
        return {
            "entryId": self.entry_id,
            "sessionId": self.session_id,
            "playerId": self.player_id,
            "position": self.position,
            "active": self.active,
            "kind": self.kind,
            "gameId": self.game_id,
            "checkInTime": self.check_in_time.isoformat(),
        }


@dataclass
class QueueRow:
    """Active queue entry joined with the player's record."""

    entry_id: int
    player_id: int
    display_name: str
    position: int
    birth_year: Optional[int] = None
    auto_rejoin: bool = False
    games_played: int = 0
    consecutive_losses: int = 0
    team_hint: Optional[int] = None
    slot_hint: Optional[int] = None

    def to_player(self) -> Player:
        return Player(
            id=self.player_id,
            display_name=self.display_name,
            birth_year=self.birth_year,
            games_played=self.games_played,
            consecutive_losses=self.consecutive_losses,
            auto_rejoin=self.auto_rejoin,
            queue_position=self.position,
        )


@dataclass
class GamePlayer:
    player_id: int
    team: int
    slot: int


@dataclass
class Game:
    id: int
    session_id: int
    court: str
    players: List[GamePlayer] = field(default_factory=list)
    state: str = "started"
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    promoted_team: Optional[int] = None
    start_time: datetime.datetime = field(default_factory=datetime.datetime.now)
    end_time: Optional[datetime.datetime] = None

    def team(self, team_id: int) -> List[GamePlayer]:
        return sorted((gp for gp in self.players if gp.team == team_id), key=lambda gp: gp.slot)

    @property
    def winning_team_id(self) -> Optional[int]:
        if self.team1_score is None or self.team2_score is None or self.team1_score == self.team2_score:
            return None
        return HOME if self.team1_score > self.team2_score else AWAY

    def serialise(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "court": self.court,
            "state": self.state,
            "team1Score": self.team1_score,
            "team2Score": self.team2_score,
            "promotedTeam": self.promoted_team,
            "players": [
                {"playerId": gp.player_id, "team": gp.team, "slot": gp.slot} for gp in self.players
            ],
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
        }


@dataclass(frozen=True)
class GameOutcome:
    """A finished game as the streak counter sees it."""

    game_id: int
    winning_team_id: int
    winning_player_ids: FrozenSet[int]


@dataclass
class PromotionOutcome:
    game_id: int
    winning_team_id: int
    promoted_team_id: int
    streak: int
    promoted_player_ids: List[int] = field(default_factory=list)
    requeued_player_ids: List[int] = field(default_factory=list)

    def serialise(self) -> Dict[str, object]:
        return {
            "gameId": self.game_id,
            "winningTeamId": self.winning_team_id,
            "promotedTeamId": self.promoted_team_id,
            "streak": self.streak,
            "promotedPlayerIds": list(self.promoted_player_ids),
            "reQueuedPlayerIds": list(self.requeued_player_ids),
        }
