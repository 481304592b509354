"""Exact starting-lineup audit.

The optimiser is a greedy local search. For auditing (and regression tests)
this module solves the same starting-slot assignment exactly as a small MILP
with PuLP and compares the optimum to the optimiser's result.

Model
-----
x[k, p] ∈ {0,1}: active-roster player k starts at starting position p.

    max   Σ score(k, p) · x[k, p]
    s.t.  Σ_p x[k, p] ≤ 1              for each player k
          Σ_k x[k, p] ≤ capacity(p)    for each starting position p
          x[k, current(k)] = 1         for locked-in (non-editable) starters

Players on inactive slots are left out; the audit only covers starting
assignment, not legality repair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Mapping, Tuple

import pulp

from roster_autopilot.data import Player
from roster_autopilot.positions import is_inactive_position, is_starting_position
from roster_autopilot.scoring import ScoreFunction
from roster_autopilot.slots import RosterSlots
from roster_autopilot.state import RosterState


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LineupAudit:
    status: str
    optimal_score: float
    current_score: float
    optimal_assignment: Mapping[str, str] = field(default_factory=dict)

    @property
    def gap(self) -> float:
        return self.optimal_score - self.current_score

    def is_optimal(self, *, rel_tol: float = 1e-6) -> bool:
        return self.gap <= rel_tol * max(abs(self.optimal_score), 1.0)


def starting_score(
    state: RosterState,
    players: Mapping[str, Player],
    score: ScoreFunction,
) -> float:
    """Total score of the players currently in starting slots."""

    total = 0.0
    for key in state:
        position = state.position_of(key)
        if is_starting_position(position):
            total += score(players[key], position)
    return total


def formulate_lineup_problem(
    state: RosterState,
    players: Mapping[str, Player],
    slots: RosterSlots,
    score: ScoreFunction,
) -> Tuple[pulp.LpProblem, Dict[Tuple[str, str], pulp.LpVariable]]:
    problem = pulp.LpProblem(name="lineup_audit", sense=pulp.LpMaximize)

    keys = [k for k in state if not is_inactive_position(state.position_of(k))]
    positions = [p for p in slots.starting_positions if slots.capacity(p) > 0]

    x: Dict[Tuple[str, str], pulp.LpVariable] = {}
    for i, key in enumerate(keys):
        player = players[key]
        current = state.position_of(key)
        for j, position in enumerate(positions):
            if not player.is_editable and position != current:
                continue
            if slots.is_eligible(player, position):
                x[key, position] = pulp.LpVariable(f"x_{i}_{j}", cat=pulp.LpBinary)

    problem += pulp.lpSum(score(players[k], p) * var for (k, p), var in x.items())

    for i, key in enumerate(keys):
        player_vars = [var for (k, _), var in x.items() if k == key]
        if player_vars:
            problem += pulp.lpSum(player_vars) <= 1, f"one_slot_{i}"

        current = state.position_of(key)
        if not players[key].is_editable and (key, current) in x:
            problem += x[key, current] == 1, f"locked_{i}"

    for j, position in enumerate(positions):
        slot_vars = [var for (_, p), var in x.items() if p == position]
        if slot_vars:
            problem += pulp.lpSum(slot_vars) <= slots.capacity(position), f"capacity_{j}"

    return problem, x


def audit_lineup(
    state: RosterState,
    players: Mapping[str, Player],
    slots: RosterSlots,
    score: ScoreFunction,
    *,
    enable_solver_output: bool = False,
) -> LineupAudit:
    """Solve the exact starting assignment and compare it with ``state``."""

    problem, x = formulate_lineup_problem(state, players, slots, score)
    current = starting_score(state, players, score)

    if not x:
        return LineupAudit(status="Optimal", optimal_score=0.0, current_score=current)

    status = pulp.LpStatus[problem.solve(pulp.PULP_CBC_CMD(msg=enable_solver_output))]
    optimum = float(pulp.value(problem.objective) or 0.0)
    assignment = {k: p for (k, p), var in x.items() if (var.value() or 0.0) >= 1.0 - 1e-6}

    logger.debug("Lineup audit: status=%s optimum=%s current=%s", status, optimum, current)
    return LineupAudit(status=status, optimal_score=optimum, current_score=current, optimal_assignment=assignment)
