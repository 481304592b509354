"""Position vocabulary and per-sport configuration tables.

The tables here are read-only. :class:`SportConfig` instances are injected into
:class:`roster_autopilot.slots.RosterSlots` so that callers (and tests) can swap
in a different compound-position layout without touching module state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Mapping


BENCH = "BN"

INACTIVE_POSITIONS: FrozenSet[str] = frozenset({"IR", "IR+", "IL", "IL+", "NA"})
LONG_TERM_INACTIVE_POSITIONS: FrozenSet[str] = frozenset({"IR+", "IL+"})
NOT_ACTIVE_POSITIONS: FrozenSet[str] = frozenset({"NA"})

HEALTHY_STATUSES: FrozenSet[str] = frozenset({"Healthy", "Questionable", "Probable", "Game Time Decision"})


class GameCode(str, Enum):
    """Sports supported by the default configuration tables."""

    MLB = "mlb"
    NHL = "nhl"
    NBA = "nba"
    NFL = "nfl"


def is_inactive_position(position: str) -> bool:
    return position in INACTIVE_POSITIONS


def is_starting_position(position: str) -> bool:
    return position != BENCH and position not in INACTIVE_POSITIONS


@dataclass(frozen=True, slots=True)
class SportConfig:
    """Sport-level lookup tables used by the slot model and the scorers.

    compound_positions:
        Umbrella position -> member positions. A player is eligible for the
        umbrella when any of its eligible positions is a member.
    max_extra_players:
        How many players beyond the slot count the roster may hold at a
        position before add candidates for it stop being useful. Positions
        missing from the table are unbounded.
    long_term_injury_statuses:
        Injury statuses that qualify for the long-term inactive tier (IL+/IR+).
    not_active_statuses:
        Statuses that qualify for the NA slot.
    confirmed_starter_positions:
        Positions (goalies, pitchers) whose confirmed starters get a boost.
    """

    game_code: str
    compound_positions: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    max_extra_players: Mapping[str, int] = field(default_factory=dict)
    long_term_injury_statuses: FrozenSet[str] = frozenset()
    not_active_statuses: FrozenSet[str] = frozenset({"NA"})
    confirmed_starter_positions: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.game_code:
            raise ValueError("SportConfig.game_code must be non-empty")
        for position, members in self.compound_positions.items():
            if not members:
                raise ValueError(f"Compound position {position!r} must have at least one member")
        for position, extra in self.max_extra_players.items():
            if extra < 0:
                raise ValueError(f"max_extra_players[{position}] must be >= 0")

    def compound_members(self, position: str) -> FrozenSet[str]:
        return self.compound_positions.get(position, frozenset())


_MLB_COMPOUND_POSITIONS: Dict[str, FrozenSet[str]] = {
    "CI": frozenset({"1B", "3B"}),
    "MI": frozenset({"2B", "SS"}),
    "IF": frozenset({"1B", "2B", "3B", "SS"}),
    "OF": frozenset({"LF", "CF", "RF"}),
    "Util": frozenset({"1B", "2B", "3B", "SS", "C", "LF", "CF", "RF", "CI", "MI", "IF", "OF"}),
    "P": frozenset({"SP", "RP"}),
}

_NFL_COMPOUND_POSITIONS: Dict[str, FrozenSet[str]] = {
    "W/T": frozenset({"WR", "TE"}),
    "W/R": frozenset({"WR", "RB"}),
    "W/R/T": frozenset({"WR", "RB", "TE"}),
    "Q/W/R/T": frozenset({"QB", "WR", "RB", "TE"}),
    "D": frozenset({"DL", "DB", "LB", "DT", "DE", "CB", "S"}),
}

_NBA_COMPOUND_POSITIONS: Dict[str, FrozenSet[str]] = {
    "G": frozenset({"PG", "SG"}),
    "F": frozenset({"SF", "PF"}),
    "Util": frozenset({"PG", "SG", "SF", "PF", "C", "G", "F"}),
}

_NHL_COMPOUND_POSITIONS: Dict[str, FrozenSet[str]] = {
    "W": frozenset({"LW", "RW"}),
    "F": frozenset({"LW", "RW", "C"}),
    "Util": frozenset({"LW", "RW", "C", "D", "W", "F"}),
}


DEFAULT_SPORT_CONFIGS: Mapping[str, SportConfig] = {
    GameCode.MLB.value: SportConfig(
        game_code=GameCode.MLB.value,
        compound_positions=_MLB_COMPOUND_POSITIONS,
        max_extra_players={"P": 6},
        long_term_injury_statuses=frozenset({"IL60"}),
        confirmed_starter_positions=frozenset({"P", "SP", "RP"}),
    ),
    GameCode.NFL.value: SportConfig(
        game_code=GameCode.NFL.value,
        compound_positions=_NFL_COMPOUND_POSITIONS,
        max_extra_players={"QB": 0, "K": 0, "DEF": 0},
        long_term_injury_statuses=frozenset({"IR", "IR-R", "PUP-R"}),
    ),
    GameCode.NBA.value: SportConfig(
        game_code=GameCode.NBA.value,
        compound_positions=_NBA_COMPOUND_POSITIONS,
        long_term_injury_statuses=frozenset({"Out For Season"}),
    ),
    GameCode.NHL.value: SportConfig(
        game_code=GameCode.NHL.value,
        compound_positions=_NHL_COMPOUND_POSITIONS,
        max_extra_players={"G": 2, "D": 2},
        long_term_injury_statuses=frozenset({"IR-LT", "IR-NR"}),
        confirmed_starter_positions=frozenset({"G"}),
    ),
}


def get_sport_config(game_code: str) -> SportConfig:
    """Return the default config for ``game_code``.

    Unknown codes get an empty config (no compound positions, no caps) rather
    than an error, so that custom leagues still optimise on listed positions.
    """

    try:
        return DEFAULT_SPORT_CONFIGS[game_code.lower()]
    except KeyError:
        return SportConfig(game_code=game_code)
