from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import List, Optional, Sequence

from roster_autopilot.audit import audit_lineup
from roster_autopilot.data import LineupChange, Player, PlayerTransaction, TeamSnapshot
from roster_autopilot.optimizer import EngineSettings, LineupOptimizer
from roster_autopilot.positions import SportConfig


def configure_logging(*, level: int = logging.INFO) -> None:
    """Configure a simple root logger that writes to stdout.

    This is safe to call multiple times.
    """

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
    else:
        root.setLevel(level)


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OptimizationResult:
    """Everything one optimisation call produced.

    Submit in this order: ``drop_transactions``, then ``lineup_change``, then
    ``add_transactions``. A failed drop must not block the lineup change; a
    failed lineup change should abort the remaining steps for this team.
    """

    team_key: str
    lineup_change: Optional[LineupChange]
    drop_transactions: List[PlayerTransaction] = field(default_factory=list)
    add_transactions: List[PlayerTransaction] = field(default_factory=list)
    is_successfully_optimized: bool = True
    hit_iteration_ceiling: bool = False
    illegal_player_keys: List[str] = field(default_factory=list)
    # Exact optimum minus the final starting score; None when the audit was skipped.
    audit_gap: Optional[float] = None

    @property
    def transactions(self) -> List[PlayerTransaction]:
        return self.drop_transactions + self.add_transactions


def optimize_team(
    snapshot: TeamSnapshot,
    *,
    add_candidates: Optional[Sequence[Player]] = None,
    settings: Optional[EngineSettings] = None,
    sport_config: Optional[SportConfig] = None,
    log_level: int | None = None,
    audit: bool = True,
) -> OptimizationResult:
    """Top-level entrypoint: optimise the lineup, then drops, then adds and swaps.

    With ``audit`` the final starting lineup is checked against the exact
    assignment optimum (see :mod:`roster_autopilot.audit`).
    """

    if log_level is not None:
        configure_logging(level=log_level)

    logger.info(
        "Optimising team %s (%s, %s %s): %d players",
        snapshot.team_key,
        snapshot.game_code,
        snapshot.coverage_type.value,
        snapshot.coverage_period,
        len(snapshot.players),
    )

    optimizer = LineupOptimizer(snapshot, sport_config=sport_config, settings=settings)
    optimizer.optimize_starting_lineup()

    drops = optimizer.generate_drop_player_transactions()

    adds: List[PlayerTransaction] = []
    if add_candidates:
        optimizer.add_candidates = add_candidates
        adds.extend(optimizer.generate_add_player_transactions())
        adds.extend(optimizer.generate_swap_player_transactions())

    lineup_change = optimizer.optimize_starting_lineup()
    success = optimizer.is_successfully_optimized()

    audit_gap: Optional[float] = None
    if audit:
        players = {k: optimizer.player(k) for k in optimizer.state}
        lineup_audit = audit_lineup(optimizer.state, players, optimizer.slots, optimizer.score_function)
        audit_gap = lineup_audit.gap
        if not lineup_audit.is_optimal():
            logger.warning(
                "Team %s: starting lineup scores %.6g below the exact optimum (solver status %s)",
                snapshot.team_key,
                audit_gap,
                lineup_audit.status,
            )

    logger.info(
        "Team %s: %d position changes, %d drops, %d adds, successfully_optimized=%s",
        snapshot.team_key,
        len(lineup_change.new_player_positions) if lineup_change else 0,
        len(drops),
        len(adds),
        success,
    )

    return OptimizationResult(
        team_key=snapshot.team_key,
        lineup_change=lineup_change,
        drop_transactions=drops,
        add_transactions=adds,
        is_successfully_optimized=success,
        hit_iteration_ceiling=optimizer.hit_iteration_ceiling,
        illegal_player_keys=[p.player_key for p in optimizer.illegal_players],
        audit_gap=audit_gap,
    )
