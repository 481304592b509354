"""Player scoring strategies.

A score answers "how much do we want this player in a starting slot right
now". Scores are only ever compared against each other, so the absolute scale
is irrelevant; the multiplicative factors below are chosen so that each one
dominates everything applied after it.

:func:`select_score_function` resolves the strategy for a snapshot once per
optimisation call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Protocol, Sequence

from roster_autopilot.data import GamesPlayed, PaceKeeper, Player, PlayerRanks, TeamSnapshot
from roster_autopilot.positions import GameCode, SportConfig, is_starting_position
from roster_autopilot.slots import RosterSlots


NOT_PLAYING_FACTOR = 1e-7
INJURY_FACTOR = 1e-3
LONG_TERM_INJURY_FACTOR = 1e-1
NOT_STARTING_PITCHER_FACTOR = 1e-2
CONFIRMED_STARTER_FACTOR = 100.0

# Scores closer than this are treated as equal.
SCORE_TOLERANCE = 1e-12

PITCHER_POSITIONS: FrozenSet[str] = frozenset({"P", "SP", "RP"})

MAX_OWNERSHIP_DELTA = 4.0
MAX_PACE_BOOST = 10.0

# Window weights for the ownership rank score.
RANK_WEIGHTS: Mapping[str, float] = {
    "last_30_days": 40,
    "last_14_days": 30,
    "next_7_days": 10,
    "rest_of_season": 20,
    "last_4_weeks": 40,
    "projected_week": 35,
    "next_4_weeks": 25,
}


class ScoringMode(str, Enum):
    PACING = "pacing"
    FOOTBALL = "football"
    WEEKLY = "weekly"
    HOCKEY = "hockey"
    BASEBALL = "baseball"
    BASKETBALL = "basketball"


class ScoreFunction(Protocol):
    mode: ScoringMode

    def __call__(self, player: Player, position: str) -> float:
        ...


def base_score(player: Player) -> float:
    """``percent_started``, falling back to ``percent_owned``, floored at 1."""

    value = player.percent_started if player.percent_started is not None else player.percent_owned
    return value or 1.0


def rank_score(ranks: PlayerRanks, num_players_in_league: int) -> float:
    total = 0.0
    for window, weight in RANK_WEIGHTS.items():
        rank = getattr(ranks, window)
        if rank <= 0:
            continue
        total += min(num_players_in_league / rank, weight / 5)
    return 5 * total


def ownership_score_function(
    num_players_in_league: int,
    positional_scarcity_offsets: Optional[Mapping[str, float]] = None,
) -> Callable[[Player], float]:
    """Build the ownership-based desirability score used for drops, adds and pacing.

    The score blends ownership (less the scarcity offset of the player's most
    plentiful position), rank across the provider windows, and recent
    ownership momentum (capped).
    """

    if num_players_in_league < 1:
        raise ValueError("num_players_in_league must be >= 1")
    offsets = dict(positional_scarcity_offsets or {})

    def score(player: Player) -> float:
        player_offsets = [offsets[p] for p in player.eligible_positions if p in offsets]
        offset = min(player_offsets) if player_offsets else 0.0
        return (
            0.5 * (player.percent_owned - offset)
            + 0.5 * rank_score(player.ranks, num_players_in_league)
            + min(player.percent_owned_delta, MAX_OWNERSHIP_DELTA)
        )

    return score


def injury_factor(player: Player, slots: RosterSlots) -> float:
    if player.is_healthy:
        return 1.0
    factor = INJURY_FACTOR
    if slots.qualifies_for_long_term(player):
        factor *= LONG_TERM_INJURY_FACTOR
    return factor


def is_not_playing(player: Player) -> bool:
    return not player.is_playing or player.is_starting == 0


def is_confirmed_starter(player: Player, sport_config: SportConfig, starting_player_keys: FrozenSet[str]) -> bool:
    if not any(p in sport_config.confirmed_starter_positions for p in player.eligible_positions):
        return False
    return player.player_key in starting_player_keys or player.is_starting == 1


def churn_threshold(season_time_progress: float) -> float:
    """Pace ratio above which the engine stops benching players to save starts.

    Rises from 0.90 at the start of the season to 0.99 at the end.
    """

    return 0.9 + min(season_time_progress * 0.09, 0.09)


@dataclass(frozen=True)
class DailyScoreFunction:
    """Ownership/start-rate based score shared by the daily sports and football."""

    mode: ScoringMode
    slots: RosterSlots
    starting_player_keys: FrozenSet[str] = frozenset()

    def __call__(self, player: Player, position: str) -> float:
        score = base_score(player)
        if self.mode == ScoringMode.FOOTBALL:
            rank = player.ranks.projected_week
            score = score / rank * 100 if rank > 0 else 0.0

        score *= injury_factor(player, self.slots)

        if is_not_playing(player):
            score *= NOT_PLAYING_FACTOR
        elif is_confirmed_starter(player, self.slots.sport_config, self.starting_player_keys):
            score *= CONFIRMED_STARTER_FACTOR
        elif self.mode == ScoringMode.BASEBALL and self._is_unconfirmed_starting_pitcher(player):
            score *= NOT_STARTING_PITCHER_FACTOR

        return score

    @staticmethod
    def _is_unconfirmed_starting_pitcher(player: Player) -> bool:
        return "SP" in player.eligible_positions and "RP" not in player.eligible_positions


@dataclass(frozen=True)
class WeeklyScoreFunction:
    """Next-seven-days rank only; provider ranks already reflect injuries."""

    mode: ScoringMode = ScoringMode.WEEKLY

    def __call__(self, player: Player, position: str) -> float:
        rank = player.ranks.next_7_days
        return 100 / rank if rank > 0 else 0.0


@dataclass(frozen=True)
class PacingScoreFunction:
    """Score for leagues that cap games played (or innings pitched) per position."""

    slots: RosterSlots
    ownership_score: Callable[[Player], float]
    threshold: float
    games_played: Mapping[str, PaceKeeper] = field(default_factory=dict)
    innings_pitched: Optional[PaceKeeper] = None
    mode: ScoringMode = ScoringMode.PACING

    def pace_keeper(self, player: Player, position: str) -> Optional[PaceKeeper]:
        if self.innings_pitched is not None and any(p in PITCHER_POSITIONS for p in player.eligible_positions):
            return self.innings_pitched

        if is_starting_position(position) and position in self.games_played:
            return self.games_played[position]

        # Bench/inactive (or untracked slot): the tightest eligible position.
        keepers = [
            self.games_played[p] for p in self.slots.eligible_starting_positions(player) if p in self.games_played
        ]
        if not keepers:
            return None
        return min(keepers, key=lambda k: k.pace)

    def pace(self, player: Player, position: str) -> float:
        keeper = self.pace_keeper(player, position)
        return keeper.pace if keeper is not None else 1.0

    def __call__(self, player: Player, position: str) -> float:
        score = self.ownership_score(player) * injury_factor(player, self.slots)

        pace = self.pace(player, position)
        if pace > self.threshold:
            if is_starting_position(position):
                score += (pace - self.threshold) / (1 - self.threshold) * MAX_PACE_BOOST
        elif is_not_playing(player):
            score *= NOT_PLAYING_FACTOR

        return score


def num_players_in_league(snapshot: TeamSnapshot, slots: RosterSlots) -> int:
    return max(snapshot.num_teams * slots.num_standard_roster_spots, 1)


def _games_played_by_position(games_played: Sequence[GamesPlayed]) -> Dict[str, PaceKeeper]:
    return {gp.position: gp.games_played for gp in games_played}


def select_score_function(snapshot: TeamSnapshot, slots: RosterSlots) -> ScoreFunction:
    """Pick the scoring strategy for ``snapshot`` (first match wins).

    1. pace table supplied -> pacing
    2. football -> rank-based football score
    3. weekly lineup deadline -> next-seven-days rank
    4. otherwise the sport's daily score
    """

    if snapshot.games_played is not None or snapshot.innings_pitched is not None:
        return PacingScoreFunction(
            slots=slots,
            ownership_score=ownership_score_function(
                num_players_in_league(snapshot, slots),
                snapshot.positional_scarcity_offsets,
            ),
            threshold=churn_threshold(snapshot.season_time_progress),
            games_played=_games_played_by_position(snapshot.games_played or ()),
            innings_pitched=snapshot.innings_pitched,
        )

    game_code = snapshot.game_code.lower()
    if game_code == GameCode.NFL.value:
        return DailyScoreFunction(ScoringMode.FOOTBALL, slots, snapshot.starting_player_keys)

    if not snapshot.is_intraday:
        return WeeklyScoreFunction()

    if game_code == GameCode.NHL.value:
        mode = ScoringMode.HOCKEY
    elif game_code == GameCode.MLB.value:
        mode = ScoringMode.BASEBALL
    else:
        mode = ScoringMode.BASKETBALL
    return DailyScoreFunction(mode, slots, snapshot.starting_player_keys)
