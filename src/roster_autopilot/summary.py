from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from roster_autopilot.data import PlayerTransaction
from roster_autopilot.main import OptimizationResult


@dataclass(frozen=True, slots=True)
class TransactionPlayerEntry:
    player_key: str
    player_name: str
    transaction_type: str
    is_inactive_list: bool
    is_from_waivers: bool


@dataclass(frozen=True, slots=True)
class TransactionEntry:
    reason: str
    same_day_transactions: bool
    is_faab_required: bool
    players: List[TransactionPlayerEntry]


@dataclass(frozen=True, slots=True)
class LineupChangeEntry:
    coverage_type: str
    coverage_period: str
    new_player_positions: Dict[str, str]


@dataclass(frozen=True, slots=True)
class OptimizationSummary:
    team_key: str
    is_successfully_optimized: bool
    hit_iteration_ceiling: bool
    illegal_player_keys: List[str]
    audit_gap: Optional[float]
    lineup_change: Optional[LineupChangeEntry]
    drops: List[TransactionEntry]
    adds: List[TransactionEntry]


def _transaction_entry(transaction: PlayerTransaction) -> TransactionEntry:
    return TransactionEntry(
        reason=transaction.reason,
        same_day_transactions=transaction.same_day_transactions,
        is_faab_required=transaction.is_faab_required,
        players=[
            TransactionPlayerEntry(
                player_key=p.player_key,
                player_name=p.player_name,
                transaction_type=p.transaction_type.value,
                is_inactive_list=p.is_inactive_list,
                is_from_waivers=p.is_from_waivers,
            )
            for p in transaction.players
        ],
    )


def build_optimization_summary(result: OptimizationResult) -> OptimizationSummary:
    """Build a JSON-serialisable summary of one optimisation call."""

    lineup_change = None
    if result.lineup_change is not None:
        lineup_change = LineupChangeEntry(
            coverage_type=result.lineup_change.coverage_type.value,
            coverage_period=result.lineup_change.coverage_period,
            new_player_positions=dict(result.lineup_change.new_player_positions),
        )

    return OptimizationSummary(
        team_key=result.team_key,
        is_successfully_optimized=result.is_successfully_optimized,
        hit_iteration_ceiling=result.hit_iteration_ceiling,
        illegal_player_keys=list(result.illegal_player_keys),
        audit_gap=result.audit_gap,
        lineup_change=lineup_change,
        drops=[_transaction_entry(t) for t in result.drop_transactions],
        adds=[_transaction_entry(t) for t in result.add_transactions],
    )


def optimization_summary_to_dict(summary: OptimizationSummary) -> Dict[str, Any]:
    return asdict(summary)


def dumps_optimization_summary_pretty(summary: OptimizationSummary) -> str:
    return json.dumps(optimization_summary_to_dict(summary), indent=2, sort_keys=False)
