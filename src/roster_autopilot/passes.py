"""Optimiser passes.

Each pass is a plain function ``(state, ctx) -> (new_state, moves)``. Scores are
recomputed from the incoming state at the start of every pass, so a pass never
sees stale scores from a previous one.

Pass order per round:

1. :func:`resolve_overfilled_positions`
2. :func:`repair_illegal_players`
3. :func:`fill_empty_starting_slots`
4. :func:`swap_bench_to_starters`

:func:`run_passes` repeats rounds until one applies no moves or the iteration
ceiling is reached.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
import logging
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from roster_autopilot.data import Player
from roster_autopilot.positions import (
    BENCH,
    LONG_TERM_INACTIVE_POSITIONS,
    NOT_ACTIVE_POSITIONS,
    is_inactive_position,
    is_starting_position,
)
from roster_autopilot.scoring import SCORE_TOLERANCE, ScoreFunction
from roster_autopilot.slots import RosterSlots
from roster_autopilot.state import Move, RosterState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassContext:
    """Read-only inputs shared by all passes of one optimisation call."""

    players: Mapping[str, Player]
    slots: RosterSlots
    score: ScoreFunction
    locked_player_keys: FrozenSet[str] = frozenset()

    @cached_property
    def order(self) -> Dict[str, int]:
        return {key: i for i, key in enumerate(self.players)}

    def scores(self, state: RosterState) -> Dict[str, float]:
        return {key: self.score(self.players[key], state.position_of(key)) for key in state}

    def is_legal(self, state: RosterState, player_key: str) -> bool:
        return self.slots.is_eligible(self.players[player_key], state.position_of(player_key))

    def has_room(self, state: RosterState, position: str) -> bool:
        return state.occupancy(position) < self.slots.capacity(position)

    def can_move(self, state: RosterState, player_key: str, to_position: str) -> bool:
        """Whether the player may legally be placed at ``to_position`` (ignoring capacity)."""

        player = self.players[player_key]
        if not player.is_editable:
            return False
        from_position = state.position_of(player_key)
        if player_key in self.locked_player_keys and (
            is_inactive_position(from_position) or is_inactive_position(to_position)
        ):
            return False
        return self.slots.is_eligible(player, to_position)

    def first_open(self, state: RosterState, player_key: str, positions: Iterable[str]) -> Optional[str]:
        for position in positions:
            if self.can_move(state, player_key, position) and self.has_room(state, position):
                return position
        return None

    def worst_first(self, keys: Iterable[str], scores: Mapping[str, float]) -> List[str]:
        # Among equal scores, later roster entries go first.
        return sorted(keys, key=lambda k: (scores[k], -self.order[k]))

    def best_first(self, keys: Iterable[str], scores: Mapping[str, float]) -> List[str]:
        return sorted(keys, key=lambda k: (-scores[k], self.order[k]))


PassFunction = Callable[[RosterState, PassContext], Tuple[RosterState, List[Move]]]


def find_illegal_players(state: RosterState, ctx: PassContext) -> List[str]:
    """Editable, unlocked players sitting in a slot they are not eligible for."""

    return [
        key
        for key in state
        if ctx.players[key].is_editable and key not in ctx.locked_player_keys and not ctx.is_legal(state, key)
    ]


def find_overfilled_positions(state: RosterState, ctx: PassContext) -> List[str]:
    return [p for p in ctx.slots.positions if state.occupancy(p) > ctx.slots.capacity(p)]


def resolve_overfilled_positions(state: RosterState, ctx: PassContext) -> Tuple[RosterState, List[Move]]:
    """Move the weakest occupants of over-capacity positions out of them.

    Displaced players go to an open starting slot they fit, else to the bench
    (even if that overfills the bench; the drop generator handles overflow).
    """

    scores = ctx.scores(state)
    moves: List[Move] = []

    for position in ctx.slots.positions:
        if position == BENCH:
            continue
        excess = state.occupancy(position) - ctx.slots.capacity(position)
        if excess <= 0:
            continue

        for key in ctx.worst_first(state.occupants(position), scores):
            if excess == 0:
                break
            others = [p for p in ctx.slots.starting_positions if p != position]
            dest = ctx.first_open(state, key, others)
            if dest is None and ctx.can_move(state, key, BENCH):
                dest = BENCH
            if dest is None:
                continue
            state, mv = state.move(key, dest, f"{position} is over capacity")
            moves.append(mv)
            excess -= 1

    return state, moves


def _repair_destinations(ctx: PassContext, player: Player, from_position: str) -> List[str]:
    """Candidate slots for an illegally placed player, most preferred first."""

    active = ctx.slots.starting_positions + [BENCH]
    inactive = ctx.slots.inactive_positions
    ordered = active if player.is_healthy else inactive + active
    return [p for p in ordered if p != from_position and ctx.slots.is_eligible(player, p)]


def _open_active_spot(
    state: RosterState,
    ctx: PassContext,
    player_key: str,
    scores: Mapping[str, float],
    moved: Set[str],
) -> Optional[List[Move]]:
    """Make room on the active roster for a player returning from an inactive slot."""

    # A bench player can step into an empty starting slot.
    if ctx.can_move(state, player_key, BENCH):
        for key in ctx.best_first(state.occupants(BENCH), scores):
            if key in moved or key in ctx.locked_player_keys:
                continue
            dest = ctx.first_open(state, key, ctx.slots.starting_positions)
            if dest is not None:
                return [
                    Move(key, BENCH, dest, "making room on the bench"),
                    Move(player_key, state.position_of(player_key), BENCH, "returning from the inactive list"),
                ]

    # An injured active player can move to an open inactive slot.
    injured = [
        k
        for k in state
        if k not in moved
        and k != player_key
        and not ctx.players[k].is_healthy
        and not is_inactive_position(state.position_of(k))
    ]
    for key in ctx.worst_first(injured, scores):
        vacated = state.position_of(key)
        if not ctx.can_move(state, player_key, vacated):
            continue
        dest = ctx.first_open(state, key, ctx.slots.inactive_positions)
        if dest is not None:
            return [
                Move(key, vacated, dest, "moved to the inactive list to make room"),
                Move(player_key, state.position_of(player_key), vacated, "returning from the inactive list"),
            ]
    return None


def _swap_repair(
    state: RosterState,
    ctx: PassContext,
    player_key: str,
    destinations: Sequence[str],
    scores: Mapping[str, float],
    moved: Set[str],
) -> Optional[List[Move]]:
    from_position = state.position_of(player_key)
    for position in destinations:
        if not ctx.can_move(state, player_key, position):
            continue
        partners = [k for k in state.occupants(position) if k not in moved]
        for partner in ctx.worst_first(partners, scores):
            if ctx.can_move(state, partner, from_position):
                return [
                    Move(player_key, from_position, position, "legality repair"),
                    Move(partner, position, from_position, "legality repair swap"),
                ]
    return None


def _three_way_repair(
    state: RosterState,
    ctx: PassContext,
    player_key: str,
    destinations: Sequence[str],
    scores: Mapping[str, float],
    moved: Set[str],
) -> Optional[List[Move]]:
    # player -> position (held by q), q -> other (held by t), t -> player's old slot
    from_position = state.position_of(player_key)
    for position in destinations:
        if not ctx.can_move(state, player_key, position):
            continue
        for q in ctx.worst_first([k for k in state.occupants(position) if k not in moved], scores):
            for other in ctx.slots.positions:
                if other in (position, from_position) or not ctx.can_move(state, q, other):
                    continue
                for t in ctx.worst_first(state.occupants(other), scores):
                    if t in moved or not ctx.can_move(state, t, from_position):
                        continue
                    return [
                        Move(player_key, from_position, position, "legality repair"),
                        Move(q, position, other, "legality repair rotation"),
                        Move(t, other, from_position, "legality repair rotation"),
                    ]
    return None


def _repair_one(
    state: RosterState,
    ctx: PassContext,
    player_key: str,
    scores: Mapping[str, float],
    moved: Set[str],
) -> Optional[List[Move]]:
    player = ctx.players[player_key]
    from_position = state.position_of(player_key)
    destinations = _repair_destinations(ctx, player, from_position)

    dest = ctx.first_open(state, player_key, destinations)
    if dest is not None:
        return [Move(player_key, from_position, dest, "legality repair")]

    if is_inactive_position(from_position):
        shuffle = _open_active_spot(state, ctx, player_key, scores, moved)
        if shuffle is not None:
            return shuffle

    return _swap_repair(state, ctx, player_key, destinations, scores, moved) or _three_way_repair(
        state, ctx, player_key, destinations, scores, moved
    )


def repair_illegal_players(state: RosterState, ctx: PassContext) -> Tuple[RosterState, List[Move]]:
    """Move illegally placed players to legal slots, then take long-term upgrades.

    A player with no legal destination stays where it is; the optimiser reports
    it through ``illegal_players``.
    """

    scores = ctx.scores(state)
    moves: List[Move] = []
    moved: Set[str] = set()

    for key in ctx.best_first(find_illegal_players(state, ctx), scores):
        if key in moved or ctx.is_legal(state, key):
            continue
        repair = _repair_one(state, ctx, key, scores, moved)
        if repair is None:
            logger.debug("No legal destination found for %s at %s", key, state.position_of(key))
            continue
        state = state.apply(repair)
        moves.extend(repair)
        moved.update(m.player_key for m in repair)

    long_term_slots = [p for p in ctx.slots.inactive_positions if p in LONG_TERM_INACTIVE_POSITIONS]
    for key in list(state):
        position = state.position_of(key)
        if key in moved or not is_inactive_position(position):
            continue
        if position in LONG_TERM_INACTIVE_POSITIONS or position in NOT_ACTIVE_POSITIONS:
            continue
        dest = ctx.first_open(state, key, long_term_slots)
        if dest is not None:
            state, mv = state.move(key, dest, "upgrade to the long-term inactive list")
            moves.append(mv)
            moved.add(key)

    return state, moves


def fill_empty_starting_slots(state: RosterState, ctx: PassContext) -> Tuple[RosterState, List[Move]]:
    """Give every empty starting slot to the best eligible bench player."""

    scores = ctx.scores(state)
    moves: List[Move] = []

    for position in ctx.slots.starting_positions:
        while ctx.has_room(state, position):
            candidates = [
                k
                for k in state.occupants(BENCH)
                if k not in ctx.locked_player_keys and ctx.can_move(state, k, position)
            ]
            if not candidates:
                break
            best = ctx.best_first(candidates, scores)[0]
            state, mv = state.move(best, position, "filling an empty slot")
            moves.append(mv)

    return state, moves


@dataclass(frozen=True, slots=True)
class SwapProposal:
    kind: str
    bench_key: str
    starter_key: str
    gain: float
    moves: Tuple[Move, ...]


def _propose_swap(
    state: RosterState,
    ctx: PassContext,
    bench_key: str,
    starter_key: str,
    scores: Mapping[str, float],
) -> Optional[SwapProposal]:
    target = state.position_of(starter_key)

    if ctx.can_move(state, bench_key, target):
        others = [p for p in ctx.slots.starting_positions if p != target]
        empty = ctx.first_open(state, starter_key, others)
        if empty is not None:
            return SwapProposal(
                "via-empty",
                bench_key,
                starter_key,
                scores[bench_key],
                (
                    Move(starter_key, target, empty, "shifting to an empty slot"),
                    Move(bench_key, BENCH, target, "swap in"),
                ),
            )
        return SwapProposal(
            "direct",
            bench_key,
            starter_key,
            scores[bench_key] - scores[starter_key],
            (
                Move(bench_key, BENCH, target, "swap in"),
                Move(starter_key, target, BENCH, "swap out"),
            ),
        )

    # The bench player cannot take the slot itself: route through a third starter.
    for middle in state:
        middle_position = state.position_of(middle)
        if middle == starter_key or not is_starting_position(middle_position):
            continue
        if ctx.can_move(state, middle, target) and ctx.can_move(state, bench_key, middle_position):
            return SwapProposal(
                "three-way",
                bench_key,
                starter_key,
                scores[bench_key] - scores[starter_key],
                (
                    Move(bench_key, BENCH, middle_position, "swap in"),
                    Move(middle, middle_position, target, "rotation"),
                    Move(starter_key, target, BENCH, "swap out"),
                ),
            )
    return None


def _is_still_valid(state: RosterState, ctx: PassContext, proposal: SwapProposal, moved: Set[str]) -> bool:
    for mv in proposal.moves:
        if mv.player_key in moved or state.position_of(mv.player_key) != mv.from_position:
            return False
    if proposal.kind == "via-empty":
        return ctx.has_room(state, proposal.moves[0].to_position)
    return True


def swap_bench_to_starters(state: RosterState, ctx: PassContext) -> Tuple[RosterState, List[Move]]:
    """Apply score-improving bench/starter swaps, largest gain first.

    Ties in gain are broken by roster input order. A player moved in this pass
    is not moved again until the next one; equal scores never swap.
    """

    scores = ctx.scores(state)
    bench = [k for k in state.occupants(BENCH) if ctx.players[k].is_editable]
    starters = [k for k in state if is_starting_position(state.position_of(k)) and ctx.players[k].is_editable]

    proposals: List[SwapProposal] = []
    for bench_key in bench:
        for starter_key in starters:
            proposal = _propose_swap(state, ctx, bench_key, starter_key, scores)
            if proposal is not None and proposal.gain > SCORE_TOLERANCE:
                proposals.append(proposal)

    proposals.sort(key=lambda p: (-p.gain, ctx.order[p.bench_key], ctx.order[p.starter_key]))

    moves: List[Move] = []
    moved: Set[str] = set()
    for proposal in proposals:
        if not _is_still_valid(state, ctx, proposal, moved):
            continue
        logger.debug(
            "Applying %s swap: %s in for %s (gain=%.6g)",
            proposal.kind,
            proposal.bench_key,
            proposal.starter_key,
            proposal.gain,
        )
        state = state.apply(proposal.moves)
        moves.extend(proposal.moves)
        moved.update(mv.player_key for mv in proposal.moves)

    return state, moves


PASSES: Tuple[PassFunction, ...] = (
    resolve_overfilled_positions,
    repair_illegal_players,
    fill_empty_starting_slots,
    swap_bench_to_starters,
)


@dataclass(frozen=True, slots=True)
class PassesResult:
    state: RosterState
    moves: Tuple[Move, ...]
    rounds: int
    hit_iteration_ceiling: bool


def run_passes(state: RosterState, ctx: PassContext, *, max_iterations: int) -> PassesResult:
    """Run pass rounds to a fixed point, or until ``max_iterations`` rounds have moved players."""

    if max_iterations < 1:
        raise ValueError("max_iterations must be >= 1")

    all_moves: List[Move] = []
    for round_number in range(1, max_iterations + 1):
        round_moves: List[Move] = []
        for pass_function in PASSES:
            state, moves = pass_function(state, ctx)
            round_moves.extend(moves)

        logger.debug("Round %d applied %d moves", round_number, len(round_moves))
        if not round_moves:
            return PassesResult(state, tuple(all_moves), round_number, False)
        all_moves.extend(round_moves)

    return PassesResult(state, tuple(all_moves), max_iterations, True)
