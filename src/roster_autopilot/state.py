"""Immutable roster assignment state passed between optimiser passes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from roster_autopilot.data import Player


@dataclass(frozen=True, slots=True)
class Move:
    player_key: str
    from_position: str
    to_position: str
    reason: str = ""


class RosterState:
    """Player key -> position, in roster input order.

    Every mutating helper returns a new state; instances are never changed in
    place.
    """

    __slots__ = ("_positions",)

    def __init__(self, positions: Mapping[str, str]) -> None:
        self._positions: Dict[str, str] = dict(positions)

    @classmethod
    def from_players(cls, players: Iterable[Player]) -> RosterState:
        positions: Dict[str, str] = {}
        for player in players:
            if player.selected_position is None:
                raise ValueError(f"Player {player.player_key} has no selected_position")
            positions[player.player_key] = player.selected_position
        return cls(positions)

    def __contains__(self, player_key: object) -> bool:
        return player_key in self._positions

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RosterState):
            return NotImplemented
        return self._positions == other._positions

    def __repr__(self) -> str:
        return f"RosterState({self._positions!r})"

    def as_dict(self) -> Dict[str, str]:
        return dict(self._positions)

    def position_of(self, player_key: str) -> str:
        try:
            return self._positions[player_key]
        except KeyError as e:
            raise KeyError(f"Player {player_key} is not on the roster") from e

    def occupants(self, position: str) -> List[str]:
        return [k for k, p in self._positions.items() if p == position]

    def occupancy(self, position: str) -> int:
        return sum(1 for p in self._positions.values() if p == position)

    def apply(self, moves: Sequence[Move]) -> RosterState:
        positions = dict(self._positions)
        for move in moves:
            if positions.get(move.player_key) != move.from_position:
                raise ValueError(
                    f"Cannot move {move.player_key} from {move.from_position}: "
                    f"player is at {positions.get(move.player_key)!r}"
                )
            positions[move.player_key] = move.to_position
        return RosterState(positions)

    def move(self, player_key: str, to_position: str, reason: str = "") -> Tuple[RosterState, Move]:
        mv = Move(player_key, self.position_of(player_key), to_position, reason)
        return self.apply([mv]), mv

    def with_player(self, player_key: str, position: str) -> RosterState:
        if player_key in self._positions:
            raise ValueError(f"Player {player_key} is already on the roster")
        positions = dict(self._positions)
        positions[player_key] = position
        return RosterState(positions)

    def without(self, player_keys: Iterable[str]) -> RosterState:
        drop = set(player_keys)
        return RosterState({k: p for k, p in self._positions.items() if k not in drop})

    def changed_positions(self, original: RosterState, *, keys: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """Positions in this state that differ from ``original``.

        Only keys present in both states (optionally narrowed by ``keys``) are
        compared.
        """

        wanted = set(keys) if keys is not None else None
        changes: Dict[str, str] = {}
        for key, position in self._positions.items():
            if wanted is not None and key not in wanted:
                continue
            if key in original and original.position_of(key) != position:
                changes[key] = position
        return changes
