"""Configuration objects for check-in sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ValidationError

DEFAULT_TEAM_SIZE = 5
DEFAULT_MIN_PLAYERS_PER_TEAM = 3
DEFAULT_MAX_CONSECUTIVE_TEAM_WINS = 2
DEFAULT_COURTS: Tuple[str, ...] = ("West", "East")
OG_AGE_THRESHOLD = 75

ASSIGNMENT_QUEUE = "queue"
ASSIGNMENT_BALANCED = "balanced"
ASSIGNMENT_MODES = (ASSIGNMENT_QUEUE, ASSIGNMENT_BALANCED)


@dataclass(frozen=True)
class SessionConfig:
    """Static configuration describing how a session fills its court.

    Attributes
    ----------
    team_size:
        Number of slots on each side of the court.  Population never
        places more than this many players on a team.
    min_players_per_team:
        Smallest team the population engine will field.  The queue waits
        until at least twice this many players are checked in.
    max_consecutive_team_wins:
        Win-streak cap.  A roster that reaches this many consecutive wins
        on the same court is sent back and the losing side stays on.
    court_preference:
        Ordered list of court names.  Court selection takes the first one.
    og_age_threshold:
        Age at which a player counts towards a team's OG tally.
    assignment:
        ``"queue"`` splits the game pool in queue order, ``"balanced"``
        deals it alternately by skill score.
    """

    team_size: int = DEFAULT_TEAM_SIZE
    min_players_per_team: int = DEFAULT_MIN_PLAYERS_PER_TEAM
    max_consecutive_team_wins: int = DEFAULT_MAX_CONSECUTIVE_TEAM_WINS
    court_preference: Tuple[str, ...] = DEFAULT_COURTS
    og_age_threshold: int = OG_AGE_THRESHOLD
    assignment: str = ASSIGNMENT_QUEUE

    def validate(self) -> None:
        if self.team_size <= 0 or self.min_players_per_team <= 0:
            raise ValueError("Team sizes must be positive")
        if self.min_players_per_team > self.team_size:
            raise ValueError("min_players_per_team cannot exceed team_size")
        if self.max_consecutive_team_wins <= 0:
            raise ValueError("Win-streak cap must be positive")
        if not self.court_preference:
            raise ValueError("At least one court is required")
        if self.assignment not in ASSIGNMENT_MODES:
            raise ValueError(f"Unknown assignment mode: {self.assignment}")

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "SessionConfig":
        """Build a config from a camelCase JSON body, keeping defaults for missing keys."""

        payload = payload or {}
        fields: Dict[str, Any] = {}
        for key, name in (
            ("teamSize", "team_size"),
            ("minPlayersPerTeam", "min_players_per_team"),
            ("maxConsecutiveTeamWins", "max_consecutive_team_wins"),
            ("ogAgeThreshold", "og_age_threshold"),
        ):
            if key in payload:
                value = payload[key]
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValidationError(f"{key} must be an integer")
                fields[name] = value
        if "courts" in payload:
            courts = payload["courts"]
            if not isinstance(courts, list) or not all(isinstance(court, str) for court in courts):
                raise ValidationError("courts must be a list of names")
            fields["court_preference"] = tuple(courts)
        if "assignment" in payload:
            fields["assignment"] = str(payload["assignment"])
        return cls(**fields)

    def serialise(self) -> Dict[str, object]:
        return {
            "teamSize": self.team_size,
            "minPlayersPerTeam": self.min_players_per_team,
            "maxConsecutiveTeamWins": self.max_consecutive_team_wins,
            "courts": list(self.court_preference),
            "ogAgeThreshold": self.og_age_threshold,
            "assignment": self.assignment,
        }
