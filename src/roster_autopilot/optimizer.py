"""The lineup optimiser: pass orchestration plus drop/add/swap generation."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Optional, Sequence

from roster_autopilot.data import LineupChange, Player, PlayerTransaction, TeamSnapshot
from roster_autopilot.passes import (
    PassContext,
    find_illegal_players,
    find_overfilled_positions,
    run_passes,
)
from roster_autopilot.positions import BENCH, SportConfig, get_sport_config, is_inactive_position, is_starting_position
from roster_autopilot.scoring import (
    SCORE_TOLERANCE,
    ScoreFunction,
    num_players_in_league,
    ownership_score_function,
    select_score_function,
)
from roster_autopilot.slots import RosterSlots
from roster_autopilot.state import Move, RosterState
from roster_autopilot.transactions import PlayerTransactions, add_transaction, drop_transaction


logger = logging.getLogger(__name__)


FILL_EMPTY_SPOT_REASON = "Filling an already-empty spot on the roster."


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Tunable engine parameters.

    max_iterations:
        Ceiling on pass rounds; hitting it is reported, not raised.
    swap_margin:
        How much an add candidate's ownership score must exceed the incumbent's
        before an add+drop swap is proposed.
    critical_position_bonus:
        Ownership bonus for add candidates eligible at a critical position.
    """

    max_iterations: int = 50
    swap_margin: float = 5.0
    critical_position_bonus: float = 5.0

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("EngineSettings.max_iterations must be >= 1")
        if self.swap_margin < 0:
            raise ValueError("EngineSettings.swap_margin must be >= 0")
        if self.critical_position_bonus < 0:
            raise ValueError("EngineSettings.critical_position_bonus must be >= 0")


class LineupOptimizer:
    """Optimise one team snapshot.

    Typical use::

        optimizer = LineupOptimizer(snapshot)
        change = optimizer.optimize_starting_lineup()
        optimizer.generate_drop_player_transactions()
        optimizer.add_candidates = candidates
        optimizer.generate_add_player_transactions()
        optimizer.generate_swap_player_transactions()
        change = optimizer.optimize_starting_lineup()  # net change incl. folded moves

    The optimiser never mutates the snapshot. Roster state lives in an
    immutable :class:`~roster_autopilot.state.RosterState` that is replaced
    after every pass.
    """

    def __init__(
        self,
        snapshot: TeamSnapshot,
        *,
        sport_config: Optional[SportConfig] = None,
        settings: Optional[EngineSettings] = None,
        score_function: Optional[ScoreFunction] = None,
    ) -> None:
        self.snapshot = snapshot
        self.sport_config = sport_config or get_sport_config(snapshot.game_code)
        self.settings = settings or EngineSettings()
        self.slots = RosterSlots(
            snapshot.roster_positions,
            self.sport_config,
            position_caps=snapshot.position_caps,
        )
        self.score_function = score_function or select_score_function(snapshot, self.slots)
        self.ownership_score: Callable[[Player], float] = ownership_score_function(
            num_players_in_league(snapshot, self.slots),
            snapshot.positional_scarcity_offsets,
        )

        self._players: Dict[str, Player] = dict(snapshot.players_by_key)
        self._original_state = RosterState.from_players(snapshot.players)
        self._state = self._original_state
        self._ctx = self._build_context()
        self._dirty = True
        self._hit_iteration_ceiling = False
        self._moves: List[Move] = []

        self._transactions = PlayerTransactions()
        self._add_candidates: List[Player] = []

        logger.debug(
            "Optimiser for %s: %d players, scoring=%s",
            snapshot.team_key,
            len(self._players),
            self.score_function.mode.value,
        )

    # ------------------------------------------------------------------
    # state

    def _build_context(self) -> PassContext:
        return PassContext(
            players=dict(self._players),
            slots=self.slots,
            score=self.score_function,
            locked_player_keys=self.snapshot.pending_locked_player_keys,
        )

    @property
    def state(self) -> RosterState:
        return self._state

    @property
    def moves(self) -> List[Move]:
        return list(self._moves)

    @property
    def hit_iteration_ceiling(self) -> bool:
        return self._hit_iteration_ceiling

    @property
    def player_transactions(self) -> List[PlayerTransaction]:
        return self._transactions.as_list()

    def player(self, player_key: str) -> Player:
        return self._players[player_key]

    def _ensure_optimized(self) -> None:
        if not self._dirty:
            return
        result = run_passes(self._state, self._ctx, max_iterations=self.settings.max_iterations)
        self._state = result.state
        self._moves.extend(result.moves)
        self._hit_iteration_ceiling = self._hit_iteration_ceiling or result.hit_iteration_ceiling
        self._dirty = False
        if result.hit_iteration_ceiling:
            logger.error(
                "Team %s: iteration ceiling of %d rounds reached before a fixed point",
                self.snapshot.team_key,
                self.settings.max_iterations,
            )
        else:
            logger.debug("Team %s: fixed point after %d rounds", self.snapshot.team_key, result.rounds)

    def _active_keys(self) -> List[str]:
        return [k for k in self._state if not is_inactive_position(self._state.position_of(k))]

    def _returning_keys(self) -> List[str]:
        """Players stuck on an inactive slot they no longer qualify for."""

        return [
            k
            for k in find_illegal_players(self._state, self._ctx)
            if is_inactive_position(self._state.position_of(k))
        ]

    def _roster_pool(self) -> List[Player]:
        """Players who will count toward the active roster once repairs settle."""

        dropped = self._transactions.dropped_player_keys
        keys = self._active_keys() + self._returning_keys()
        return [self._players[k] for k in keys if k not in dropped]

    def _active_overflow(self) -> int:
        dropped = self._transactions.dropped_player_keys
        held = sum(1 for k in self._active_keys() if k not in dropped)
        return held - self.slots.num_standard_roster_spots

    def _is_roster_legal(self) -> bool:
        return (
            not find_illegal_players(self._state, self._ctx)
            and not find_overfilled_positions(self._state, self._ctx)
            and self._active_overflow() <= 0
        )

    # ------------------------------------------------------------------
    # lineup

    def optimize_starting_lineup(self) -> Optional[LineupChange]:
        """Run the passes and return the net change against the input snapshot.

        Same-day adds folded onto the working roster are always reported with
        their final slot. Returns ``None`` when nothing needs submitting.
        """

        self._ensure_optimized()

        dropped = self._transactions.dropped_player_keys
        keys = [k for k in self._original_state if k not in dropped]
        changes = self._state.changed_positions(self._original_state, keys=keys)
        for key in sorted(self._transactions.added_player_keys):
            if key in self._state:
                changes[key] = self._state.position_of(key)
        if not changes:
            return None

        return LineupChange(
            team_key=self.snapshot.team_key,
            coverage_type=self.snapshot.coverage_type,
            coverage_period=self.snapshot.coverage_period,
            new_player_positions=changes,
        )

    @property
    def illegal_players(self) -> List[Player]:
        self._ensure_optimized()
        return [self._players[k] for k in find_illegal_players(self._state, self._ctx)]

    def is_successfully_optimized(self) -> bool:
        """Check the final state; every failed check is logged at ERROR."""

        self._ensure_optimized()
        state, ctx = self._state, self._ctx
        team_key = self.snapshot.team_key
        ok = True

        if self._hit_iteration_ceiling:
            logger.error("Team %s: optimisation stopped at the iteration ceiling", team_key)
            ok = False

        overfilled = find_overfilled_positions(state, ctx)
        if overfilled:
            logger.error("Team %s: positions over capacity: %s", team_key, overfilled)
            ok = False

        illegal = find_illegal_players(state, ctx)
        if illegal:
            logger.error("Team %s: players still in illegal slots: %s", team_key, illegal)
            ok = False

        bench = [k for k in state.occupants(BENCH) if ctx.players[k].is_editable]
        for position in self.slots.starting_positions:
            if not ctx.has_room(state, position):
                continue
            fillers = [k for k in bench if k not in ctx.locked_player_keys and ctx.can_move(state, k, position)]
            if fillers:
                logger.error("Team %s: %s is empty but %s could fill it", team_key, position, fillers)
                ok = False

        scores = ctx.scores(state)
        for starter in state:
            position = state.position_of(starter)
            if not is_starting_position(position) or not ctx.players[starter].is_editable:
                continue
            better = [
                k for k in bench if ctx.can_move(state, k, position) and scores[k] > scores[starter] + SCORE_TOLERANCE
            ]
            if better:
                logger.error("Team %s: bench players %s outscore starter %s at %s", team_key, better, starter, position)
                ok = False

        return ok

    # ------------------------------------------------------------------
    # shared transaction helpers

    def _is_too_late_to_drop(self, player: Player) -> bool:
        return self.snapshot.same_day_transactions and not player.is_editable

    def _protected_by_critical_position(self, player: Player, replacement: Optional[Player]) -> bool:
        critical = self.slots.critical_positions(self._roster_pool())
        for position in self.slots.eligible_starting_positions(player):
            if position not in critical:
                continue
            if replacement is None or not self.slots.is_eligible(replacement, position):
                return True
        return False

    def _droppable_players(self, replacement: Optional[Player] = None) -> List[Player]:
        dropped = self._transactions.dropped_player_keys
        locked = self.snapshot.pending_locked_player_keys
        droppable: List[Player] = []
        for key in self._active_keys():
            player = self._players[key]
            if key in dropped or key in locked or not player.is_droppable:
                continue
            if self._is_too_late_to_drop(player):
                continue
            if self._protected_by_critical_position(player, replacement):
                continue
            droppable.append(player)
        return droppable

    def _fold_into_roster(self, player: Player) -> bool:
        """Put a same-day free-agent add onto the working roster. Returns whether it was placed."""

        for position in self.slots.starting_positions + [BENCH]:
            if self.slots.is_eligible(player, position) and self._ctx.has_room(self._state, position):
                placed = player.with_selected_position(position)
                self._players[placed.player_key] = placed
                self._state = self._state.with_player(placed.player_key, position)
                self._ctx = self._build_context()
                self._dirty = True
                return True
        return False

    def _fold_drop(self, player: Player) -> None:
        if not self.snapshot.same_day_transactions:
            return
        self._state = self._state.without([player.player_key])
        self._dirty = True

    def _remaining_add_budget(self) -> Optional[int]:
        remaining = self.snapshot.remaining_weekly_adds
        if remaining is None:
            return None
        return max(remaining - len(self._transactions.added_player_keys), 0)

    # ------------------------------------------------------------------
    # drops

    def player_to_drop(self, returning: Optional[Player] = None) -> Optional[Player]:
        """Lowest-ownership droppable player, or ``None`` when ``returning`` is itself the weakest."""

        compare = ([returning] if returning is not None else []) + self._droppable_players()
        if not compare:
            return None
        weakest = min(compare, key=self.ownership_score)
        if returning is not None and weakest.player_key == returning.player_key:
            return None
        return weakest

    def generate_drop_player_transactions(self) -> List[PlayerTransaction]:
        """Drop players so that healthy inactive-list players (and any overflow) fit on the roster."""

        if not self.snapshot.allow_dropping:
            return []
        self._ensure_optimized()

        issued: List[PlayerTransaction] = []
        returning = sorted(
            (self._players[k] for k in self._returning_keys() if self._players[k].is_healthy),
            key=lambda p: -self.score_function(p, self._state.position_of(p.player_key)),
        )
        for player in returning:
            drop = self.player_to_drop(player)
            if drop is None:
                logger.info("Team %s: no drop worth making for %s", self.snapshot.team_key, player.player_name)
                continue
            reason = f"Dropping {drop.player_name} to make room for {player.player_name} coming back from injury."
            transaction = self._record_drop(drop, reason)
            if transaction is not None:
                issued.append(transaction)

        for _ in range(max(self._active_overflow(), 0)):
            drop = self.player_to_drop()
            if drop is None:
                break
            reason = f"Dropping {drop.player_name} to bring the roster back within its active spots."
            transaction = self._record_drop(drop, reason)
            if transaction is not None:
                issued.append(transaction)

        self._ensure_optimized()
        return issued

    def _record_drop(self, drop: Player, reason: str) -> Optional[PlayerTransaction]:
        transaction = drop_transaction(
            self.snapshot.team_key,
            drop,
            reason,
            is_inactive_list=is_inactive_position(self._state.position_of(drop.player_key)),
            same_day_transactions=self.snapshot.same_day_transactions,
        )
        if not self._transactions.record(transaction):
            return None
        logger.info("Team %s: %s", self.snapshot.team_key, reason)
        self._fold_drop(drop)
        return transaction

    # ------------------------------------------------------------------
    # adds and swaps

    @property
    def add_candidates(self) -> List[Player]:
        return list(self._add_candidates)

    @add_candidates.setter
    def add_candidates(self, candidates: Sequence[Player]) -> None:
        if not candidates:
            raise ValueError("add_candidates must be non-empty")

        pending = self.snapshot.pending_add_player_keys
        seen: set[str] = set()
        kept: List[Player] = []
        for candidate in candidates:
            key = candidate.player_key
            if key in pending or key in self._players or key in seen:
                continue
            seen.add(key)
            kept.append(candidate)

        self._add_candidates = sorted(kept, key=lambda c: -self.ownership_score(c))
        logger.debug("Team %s: %d add candidates after filtering", self.snapshot.team_key, len(kept))

    def _usable_candidates(self) -> List[Player]:
        added = self._transactions.added_player_keys
        usable: List[Player] = []
        for candidate in self._add_candidates:
            if candidate.player_key in added or not candidate.is_healthy:
                continue
            if candidate.is_waiver_player and not self.snapshot.allow_waiver_adds:
                continue
            if not self.slots.eligible_starting_positions(candidate):
                continue
            usable.append(candidate)
        return usable

    def best_add_candidate(self) -> Optional[Player]:
        roster = self._roster_pool()
        at_max = self.slots.at_max_capacity_positions(roster)
        underfilled = self.slots.underfilled_positions(roster)
        critical = self.slots.critical_positions(roster)

        eligible: List[Player] = []
        for candidate in self._usable_candidates():
            positions = self.slots.eligible_starting_positions(candidate)
            if all(p in at_max for p in positions):
                continue
            eligible.append(candidate)

        fills_gap = [c for c in eligible if any(p in underfilled for p in self.slots.eligible_starting_positions(c))]
        if fills_gap:
            eligible = fills_gap
        if not eligible:
            return None

        def adjusted(candidate: Player) -> float:
            bonus = 0.0
            if any(p in critical for p in self.slots.eligible_starting_positions(candidate)):
                bonus = self.settings.critical_position_bonus
            return self.ownership_score(candidate) + bonus

        return max(eligible, key=adjusted)

    def _open_inactive_spot(self) -> Optional[Move]:
        """Move the weakest injured active player to an open inactive slot."""

        state, ctx = self._state, self._ctx
        scores = ctx.scores(state)
        injured = [k for k in self._active_keys() if not self._players[k].is_healthy]
        for key in ctx.worst_first(injured, scores):
            dest = ctx.first_open(state, key, self.slots.inactive_positions)
            if dest is not None:
                return Move(key, state.position_of(key), dest, "moved to the inactive list to make room for an add")
        return None

    def generate_add_player_transactions(self) -> List[PlayerTransaction]:
        """Add the best candidates into empty roster spots (or spots freed by inactive-list moves)."""

        if not self.snapshot.allow_adding:
            return []
        if not self._add_candidates:
            logger.info("Team %s: no add candidates supplied", self.snapshot.team_key)
            return []
        self._ensure_optimized()
        if not self._is_roster_legal():
            logger.info("Team %s: roster is not legal, skipping adds", self.snapshot.team_key)
            return []

        team_key = self.snapshot.team_key
        empty_spots = max(-self._active_overflow(), 0)
        issued: List[PlayerTransaction] = []

        while True:
            if self._remaining_add_budget() == 0:
                logger.info("Team %s: weekly add limit reached", team_key)
                break

            candidate = self.best_add_candidate()
            if candidate is None:
                break

            if empty_spots > 0:
                reason = f"{FILL_EMPTY_SPOT_REASON} Adding {candidate.player_name}."
                inactive_move = None
            else:
                inactive_move = self._open_inactive_spot()
                if inactive_move is None:
                    break
                moved_name = self._players[inactive_move.player_key].player_name
                reason = f"Moved {moved_name} to the inactive list to make room for {candidate.player_name}."

            transaction = add_transaction(
                team_key,
                candidate,
                reason,
                same_day_transactions=self.snapshot.same_day_transactions,
                faab_league=self.snapshot.faab_balance is not None,
            )
            if not self._transactions.record(transaction):
                self._add_candidates.remove(candidate)
                continue

            logger.info("Team %s: %s", team_key, reason)
            issued.append(transaction)
            if inactive_move is not None:
                self._state = self._state.apply([inactive_move])
                self._moves.append(inactive_move)
                self._dirty = True
            else:
                empty_spots -= 1
            if self.snapshot.same_day_transactions and not candidate.is_waiver_player:
                self._fold_into_roster(candidate)

        self._ensure_optimized()
        return issued

    def generate_swap_player_transactions(self) -> List[PlayerTransaction]:
        """Propose add+drop pairs where a candidate clearly beats a droppable incumbent."""

        if not self.snapshot.allow_add_drops:
            return []
        if not self._add_candidates:
            logger.info("Team %s: no add candidates supplied", self.snapshot.team_key)
            return []
        self._ensure_optimized()
        if not self._is_roster_legal():
            logger.info("Team %s: roster is not legal, skipping add/drop swaps", self.snapshot.team_key)
            return []

        team_key = self.snapshot.team_key
        issued: List[PlayerTransaction] = []

        for candidate in self._usable_candidates():
            if self._remaining_add_budget() == 0:
                logger.info("Team %s: weekly add limit reached", team_key)
                break

            positions = self.slots.eligible_starting_positions(candidate)
            incumbents = [
                p
                for p in self._droppable_players(replacement=candidate)
                if any(self.slots.is_eligible(p, pos) for pos in positions)
            ]
            if not incumbents:
                continue

            weakest = min(incumbents, key=self.ownership_score)
            if self.ownership_score(candidate) < self.ownership_score(weakest) + self.settings.swap_margin:
                continue

            reason = f"Dropping {weakest.player_name} to add {candidate.player_name}."
            transaction = add_transaction(
                team_key,
                candidate,
                reason,
                same_day_transactions=self.snapshot.same_day_transactions,
                faab_league=self.snapshot.faab_balance is not None,
                drop=weakest,
                drop_is_inactive_list=is_inactive_position(self._state.position_of(weakest.player_key)),
            )
            if not self._transactions.record(transaction):
                continue

            logger.info("Team %s: %s", team_key, reason)
            issued.append(transaction)
            if self.snapshot.same_day_transactions and not candidate.is_waiver_player:
                self._fold_drop(weakest)
                self._fold_into_roster(candidate)

        self._ensure_optimized()
        return issued
