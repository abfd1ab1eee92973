"""Post-game promotion rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .config import SessionConfig
from .entities import AWAY, HOME, Game, GameOutcome
from .errors import InvalidStateError, ValidationError
from .positions import QueuePositionAllocator


def consecutive_wins(winner_ids: Iterable[int], history: Sequence[GameOutcome]) -> int:
    """Length of the winning roster's streak, counting the game just played.

    ``history`` holds earlier games on the same court, newest first.  The
    streak continues while an earlier game was won by exactly the same
    set of players.
    """

    roster = frozenset(winner_ids)
    streak = 1
    for outcome in history:
        if outcome.winning_player_ids != roster:
            break
        streak += 1
    return streak


@dataclass(frozen=True)
class PromotionDecision:
    winning_team_id: int
    losing_team_id: int
    promoted_team_id: int
    streak: int


@dataclass(frozen=True)
class Seat:
    player_id: int
    team: int
    slot: int
    position: int


@dataclass
class RequeuePlan:
    """Queue writes that follow a promotion, in the order they must happen."""

    shift_from: int
    shift_delta: int
    promoted: List[Seat] = field(default_factory=list)
    requeued: List[Tuple[int, int]] = field(default_factory=list)


class PromotionResolver:
    """Decides which team stays on after a game and who goes back in line."""

    def __init__(self, config: SessionConfig) -> None:
        self.config = config

    def decide(
        self,
        game: Game,
        team1_score: int,
        team2_score: int,
        history: Sequence[GameOutcome],
    ) -> PromotionDecision:
        if team1_score < 0 or team2_score < 0:
            raise ValidationError("Scores cannot be negative")
        if team1_score == team2_score:
            raise ValidationError("A game needs a winner; scores are tied")
        winner = HOME if team1_score > team2_score else AWAY
        loser = AWAY if winner == HOME else HOME
        winners = [gp.player_id for gp in game.team(winner)]
        if not winners or not game.team(loser):
            raise InvalidStateError(f"Game {game.id} has no players on one side")
        streak = consecutive_wins(winners, history)
        promoted = winner if streak < self.config.max_consecutive_team_wins else loser
        return PromotionDecision(
            winning_team_id=winner,
            losing_team_id=loser,
            promoted_team_id=promoted,
            streak=streak,
        )

    def plan(
        self,
        game: Game,
        decision: PromotionDecision,
        allocator: QueuePositionAllocator,
        auto_rejoin: Mapping[int, bool],
    ) -> RequeuePlan:
        """Reserve positions for the promoted team and the auto-rejoiners."""

        promoted = game.team(decision.promoted_team_id)
        other_team = AWAY if decision.promoted_team_id == HOME else HOME
        others = [gp for gp in game.team(other_team) if auto_rejoin.get(gp.player_id)]
        size = len(promoted)
        head = allocator.advance_head(size)
        allocator.reserve(size)
        plan = RequeuePlan(shift_from=head, shift_delta=size)
        for offset, gp in enumerate(promoted):
            plan.promoted.append(Seat(gp.player_id, gp.team, gp.slot, head + offset))
        for gp, position in zip(others, allocator.reserve(len(others))):
            plan.requeued.append((gp.player_id, position))
        return plan

    @staticmethod
    def tally(game: Game, decision: PromotionDecision) -> Dict[int, bool]:
        """Map every participant to whether they were on the winning side."""

        return {gp.player_id: gp.team == decision.winning_team_id for gp in game.players}
