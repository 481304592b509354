"""Domain data model for the roster autopilot.

This module is intentionally *pure*: it defines the core enums and dataclasses
used throughout the project, with no dependency on input file formats.

Parsing of normalised JSON payloads lives in :mod:`roster_autopilot.io`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from roster_autopilot.positions import BENCH, HEALTHY_STATUSES, is_inactive_position, is_starting_position


class CoverageType(str, Enum):
    DATE = "date"
    WEEK = "week"


class OwnershipType(str, Enum):
    FREE_AGENTS = "freeagents"
    WAIVERS = "waivers"
    TEAM = "team"


class TransactionType(str, Enum):
    ADD = "add"
    DROP = "drop"


@dataclass(frozen=True, slots=True)
class PlayerRanks:
    """Provider rank figures per window. ``-1`` means unranked."""

    last_30_days: int = -1
    last_14_days: int = -1
    next_7_days: int = -1
    rest_of_season: int = -1
    last_4_weeks: int = -1
    projected_week: int = -1
    next_4_weeks: int = -1


@dataclass(frozen=True, slots=True)
class PlayerOwnership:
    ownership_type: OwnershipType = OwnershipType.TEAM
    waiver_date: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Player:
    """One player as seen in a roster snapshot or a candidate pool.

    ``selected_position`` is ``None`` only for add candidates that are not on
    the roster yet.
    """

    player_key: str
    player_name: str
    eligible_positions: Tuple[str, ...]
    selected_position: Optional[str] = None
    is_editable: bool = True
    is_playing: bool = True
    injury_status: str = "Healthy"
    percent_started: Optional[float] = None
    percent_owned: float = 0.0
    percent_owned_delta: float = 0.0
    # 1 = confirmed starting, 0 = confirmed not starting, anything else unknown.
    is_starting: Optional[int] = None
    is_undroppable: bool = False
    ranks: PlayerRanks = field(default_factory=PlayerRanks)
    ownership: PlayerOwnership = field(default_factory=PlayerOwnership)

    def __post_init__(self) -> None:
        if not self.player_key:
            raise ValueError("Player.player_key must be non-empty")
        if not isinstance(self.eligible_positions, tuple):
            object.__setattr__(self, "eligible_positions", tuple(self.eligible_positions))
        if not self.eligible_positions:
            raise ValueError(f"Player {self.player_key} must have at least one eligible position")
        if self.percent_started is not None and not 0 <= self.percent_started <= 100:
            raise ValueError(f"Player {self.player_key}: percent_started must be within [0, 100]")
        if not 0 <= self.percent_owned <= 100:
            raise ValueError(f"Player {self.player_key}: percent_owned must be within [0, 100]")

    @property
    def is_healthy(self) -> bool:
        return not self.injury_status or self.injury_status in HEALTHY_STATUSES

    @property
    def is_inactive_list(self) -> bool:
        return self.selected_position is not None and is_inactive_position(self.selected_position)

    @property
    def is_starting_roster_player(self) -> bool:
        return self.selected_position is not None and is_starting_position(self.selected_position)

    @property
    def is_reserve_player(self) -> bool:
        return self.selected_position == BENCH or self.is_inactive_list

    @property
    def is_droppable(self) -> bool:
        return not self.is_undroppable

    @property
    def is_waiver_player(self) -> bool:
        return self.ownership.ownership_type == OwnershipType.WAIVERS

    def with_selected_position(self, position: Optional[str]) -> Player:
        return replace(self, selected_position=position)


@dataclass(frozen=True, slots=True)
class PaceKeeper:
    """Games (or innings) played so far, the cap, and the projected total."""

    played: float
    max: float
    projected: float

    def __post_init__(self) -> None:
        if self.max <= 0:
            raise ValueError("PaceKeeper.max must be > 0")
        if self.played < 0 or self.projected < 0:
            raise ValueError("PaceKeeper.played and projected must be >= 0")

    @property
    def pace(self) -> float:
        return self.projected / self.max


@dataclass(frozen=True, slots=True)
class GamesPlayed:
    position: str
    games_played: PaceKeeper


@dataclass(frozen=True)
class TeamSnapshot:
    """Everything the optimiser needs to know about one team for one period."""

    team_key: str
    game_code: str
    players: Sequence[Player]
    roster_positions: Mapping[str, int]
    coverage_type: CoverageType = CoverageType.DATE
    coverage_period: str = ""
    # "intraday", "" (daily) or a weekday digit for weekly leagues.
    weekly_deadline: str = ""
    edit_key: str = ""
    num_teams: int = 12

    allow_dropping: bool = False
    allow_adding: bool = False
    allow_add_drops: bool = False
    allow_waiver_adds: bool = False

    games_played: Optional[Sequence[GamesPlayed]] = None
    innings_pitched: Optional[PaceKeeper] = None
    season_time_progress: float = 0.0

    pending_locked_player_keys: FrozenSet[str] = frozenset()
    pending_add_player_keys: FrozenSet[str] = frozenset()
    starting_player_keys: FrozenSet[str] = frozenset()

    position_caps: Optional[Mapping[str, int]] = None
    positional_scarcity_offsets: Optional[Mapping[str, float]] = None

    # None means the league has no weekly add limit.
    max_weekly_adds: Optional[int] = None
    current_weekly_adds: int = 0
    faab_balance: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.team_key:
            raise ValueError("TeamSnapshot.team_key must be non-empty")
        if not self.game_code:
            raise ValueError(f"TeamSnapshot {self.team_key}: game_code must be non-empty")
        if not self.players:
            raise ValueError(f"TeamSnapshot {self.team_key}: players must be non-empty")
        if not self.roster_positions:
            raise ValueError(f"TeamSnapshot {self.team_key}: roster_positions must be non-empty")
        try:
            object.__setattr__(self, "coverage_type", CoverageType(self.coverage_type))
        except ValueError as e:
            raise ValueError(f"TeamSnapshot {self.team_key}: unknown coverage_type {self.coverage_type!r}") from e
        for name in ("pending_locked_player_keys", "pending_add_player_keys", "starting_player_keys"):
            object.__setattr__(self, name, frozenset(getattr(self, name)))

        if self.num_teams < 1:
            raise ValueError(f"TeamSnapshot {self.team_key}: num_teams must be >= 1")
        if not 0 <= self.season_time_progress <= 1:
            raise ValueError(f"TeamSnapshot {self.team_key}: season_time_progress must be within [0, 1]")
        if self.current_weekly_adds < 0:
            raise ValueError(f"TeamSnapshot {self.team_key}: current_weekly_adds must be >= 0")
        if self.max_weekly_adds is not None and self.max_weekly_adds < 0:
            raise ValueError(f"TeamSnapshot {self.team_key}: max_weekly_adds must be >= 0")

        for position, count in self.roster_positions.items():
            if count < 0:
                raise ValueError(f"TeamSnapshot {self.team_key}: roster_positions[{position}] must be >= 0")

        seen: set[str] = set()
        for player in self.players:
            if player.player_key in seen:
                raise ValueError(f"TeamSnapshot {self.team_key}: duplicate player key {player.player_key}")
            seen.add(player.player_key)

            if player.selected_position is None:
                raise ValueError(f"TeamSnapshot {self.team_key}: player {player.player_key} has no selected_position")
            if player.selected_position != BENCH and player.selected_position not in self.roster_positions:
                raise ValueError(
                    f"TeamSnapshot {self.team_key}: player {player.player_key} is at "
                    f"{player.selected_position!r}, which is not a roster position of this league"
                )

    @cached_property
    def players_by_key(self) -> Dict[str, Player]:
        return {p.player_key: p for p in self.players}

    @property
    def same_day_transactions(self) -> bool:
        """Whether transactions made now take effect for the current period."""

        return self.weekly_deadline != "1" and self.edit_key == self.coverage_period

    @property
    def is_intraday(self) -> bool:
        return self.weekly_deadline in ("", "intraday")

    @property
    def remaining_weekly_adds(self) -> Optional[int]:
        if self.max_weekly_adds is None:
            return None
        return max(self.max_weekly_adds - self.current_weekly_adds, 0)


@dataclass(frozen=True, slots=True)
class LineupChange:
    team_key: str
    coverage_type: CoverageType
    coverage_period: str
    new_player_positions: Mapping[str, str]


@dataclass(frozen=True, slots=True)
class TransactionPlayer:
    player_key: str
    player_name: str
    transaction_type: TransactionType
    is_inactive_list: bool = False
    is_from_waivers: bool = False


@dataclass(frozen=True, slots=True)
class PlayerTransaction:
    team_key: str
    players: Tuple[TransactionPlayer, ...]
    reason: str
    same_day_transactions: bool
    is_faab_required: bool = False

    def __post_init__(self) -> None:
        if not self.players:
            raise ValueError("PlayerTransaction.players must be non-empty")

    @property
    def added_player_keys(self) -> FrozenSet[str]:
        return frozenset(p.player_key for p in self.players if p.transaction_type == TransactionType.ADD)

    @property
    def dropped_player_keys(self) -> FrozenSet[str]:
        return frozenset(p.player_key for p in self.players if p.transaction_type == TransactionType.DROP)
