"""Roster slot model: capacities, eligibility, and inactive-list qualification."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from roster_autopilot.data import Player
from roster_autopilot.positions import (
    BENCH,
    LONG_TERM_INACTIVE_POSITIONS,
    NOT_ACTIVE_POSITIONS,
    SportConfig,
    is_inactive_position,
    is_starting_position,
)


class RosterSlots:
    """League slot capacities plus the eligibility rules of one sport.

    ``position_caps`` is the per-league override: the engine will not assign
    more than ``position_caps[pos]`` players to ``pos`` even when the league
    defines more slots.
    """

    def __init__(
        self,
        roster_positions: Mapping[str, int],
        sport_config: SportConfig,
        *,
        position_caps: Optional[Mapping[str, int]] = None,
    ) -> None:
        if not roster_positions:
            raise ValueError("roster_positions must be non-empty")

        counts: Dict[str, int] = {}
        for position, count in roster_positions.items():
            if count < 0:
                raise ValueError(f"roster_positions[{position}] must be >= 0")
            counts[position] = int(count)

        for position, cap in (position_caps or {}).items():
            if cap < 0:
                raise ValueError(f"position_caps[{position}] must be >= 0")
            if position in counts:
                counts[position] = min(counts[position], int(cap))

        counts.setdefault(BENCH, 0)

        self._position_counts = counts
        self.sport_config = sport_config

    @property
    def position_counts(self) -> Dict[str, int]:
        return dict(self._position_counts)

    @property
    def positions(self) -> List[str]:
        return list(self._position_counts)

    @property
    def starting_positions(self) -> List[str]:
        return [p for p in self._position_counts if is_starting_position(p)]

    @property
    def inactive_positions(self) -> List[str]:
        """Inactive positions, long-term tiers first."""

        inactive = [p for p in self._position_counts if is_inactive_position(p)]
        return sorted(inactive, key=lambda p: p not in LONG_TERM_INACTIVE_POSITIONS)

    @property
    def num_standard_roster_spots(self) -> int:
        return sum(c for p, c in self._position_counts.items() if not is_inactive_position(p))

    def capacity(self, position: str) -> int:
        return self._position_counts.get(position, 0)

    def qualifies_for_long_term(self, player: Player) -> bool:
        return player.injury_status in self.sport_config.long_term_injury_statuses

    def qualifies_for_inactive(self, player: Player, position: str) -> bool:
        if position in NOT_ACTIVE_POSITIONS:
            return player.injury_status in self.sport_config.not_active_statuses
        if position in LONG_TERM_INACTIVE_POSITIONS:
            return self.qualifies_for_long_term(player)
        return not player.is_healthy

    def is_eligible(self, player: Player, position: str) -> bool:
        if position == BENCH:
            return True
        if is_inactive_position(position):
            return self.qualifies_for_inactive(player, position)
        if position in player.eligible_positions:
            return True
        members = self.sport_config.compound_members(position)
        return any(p in members for p in player.eligible_positions)

    def eligible_starting_positions(self, player: Player) -> List[str]:
        return [p for p in self.starting_positions if self.capacity(p) > 0 and self.is_eligible(player, p)]

    def eligible_player_counts(self, players: Iterable[Player]) -> Dict[str, int]:
        """Number of ``players`` eligible for each starting position."""

        counts = {p: 0 for p in self.starting_positions}
        for player in players:
            for position in counts:
                if self.is_eligible(player, position):
                    counts[position] += 1
        return counts

    def critical_positions(self, players: Iterable[Player]) -> FrozenSet[str]:
        """Starting positions that ``players`` can only just fill (or not fill at all)."""

        counts = self.eligible_player_counts(players)
        return frozenset(p for p, n in counts.items() if self.capacity(p) > 0 and n <= self.capacity(p))

    def underfilled_positions(self, players: Iterable[Player]) -> FrozenSet[str]:
        counts = self.eligible_player_counts(players)
        return frozenset(p for p, n in counts.items() if n < self.capacity(p))

    def at_max_capacity_positions(self, players: Iterable[Player]) -> FrozenSet[str]:
        """Positions already holding ``slots + allowed extras`` eligible players."""

        counts = self.eligible_player_counts(players)
        max_extra = self.sport_config.max_extra_players
        return frozenset(
            p for p, n in counts.items() if p in max_extra and n >= self.capacity(p) + max_extra[p]
        )
