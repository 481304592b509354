from __future__ import annotations

import json
import logging

import pytest

from roster_autopilot.data import OwnershipType, Player, PlayerOwnership, TeamSnapshot
from roster_autopilot.main import configure_logging, optimize_team
from roster_autopilot.summary import build_optimization_summary, dumps_optimization_summary_pretty


GUARDS = ("PG", "SG", "G", "Util")


def _make_player(key: str, selected: str | None, owned: float, **kwargs: object) -> Player:
    return Player(
        player_key=key,
        player_name=key.title(),
        eligible_positions=GUARDS,
        selected_position=selected,
        percent_owned=owned,
        **kwargs,
    )


def _snapshot(**kwargs: object) -> TeamSnapshot:
    players = [
        _make_player("five", "PG", 5),
        _make_player("twenty", "SG", 20),
        _make_player("one", "G", 1),
        _make_player("thirty", "Util", 30, is_undroppable=True),
        _make_player("returning", "IL", 50),
    ]
    return TeamSnapshot(
        team_key="422.l.1.t.1",
        game_code="nba",
        players=players,
        roster_positions={"PG": 1, "SG": 1, "G": 1, "Util": 1, "IL": 1},
        coverage_period="2026-10-19",
        edit_key="2026-10-19",
        **kwargs,
    )


def test_optimize_team_reports_illegal_player_without_dropping() -> None:
    result = optimize_team(_snapshot())

    assert result.lineup_change is None
    assert result.transactions == []
    assert not result.is_successfully_optimized
    assert not result.hit_iteration_ceiling
    assert result.illegal_player_keys == ["returning"]
    assert result.audit_gap == pytest.approx(0.0)


def test_optimize_team_drops_then_activates_returning_player() -> None:
    result = optimize_team(_snapshot(allow_dropping=True))

    assert [tx.players[0].player_key for tx in result.drop_transactions] == ["one"]
    assert result.lineup_change is not None
    assert dict(result.lineup_change.new_player_positions) == {"returning": "G"}
    assert result.is_successfully_optimized
    assert result.illegal_player_keys == []


def test_optimize_team_runs_swaps_after_drops() -> None:
    candidate = Player(
        player_key="star",
        player_name="Star",
        eligible_positions=GUARDS,
        percent_owned=80,
        ownership=PlayerOwnership(OwnershipType.FREE_AGENTS),
    )

    result = optimize_team(_snapshot(allow_dropping=True, allow_add_drops=True), add_candidates=[candidate])

    assert [tx.reason for tx in result.drop_transactions] == [
        "Dropping One to make room for Returning coming back from injury."
    ]
    assert [tx.reason for tx in result.add_transactions] == ["Dropping Five to add Star."]
    assert result.lineup_change is not None
    assert dict(result.lineup_change.new_player_positions) == {"returning": "G", "star": "PG"}
    assert result.is_successfully_optimized


def test_summary_is_json_serialisable() -> None:
    result = optimize_team(_snapshot(allow_dropping=True))
    summary = build_optimization_summary(result)

    parsed = json.loads(dumps_optimization_summary_pretty(summary))

    assert parsed["team_key"] == "422.l.1.t.1"
    assert parsed["lineup_change"]["coverage_type"] == "date"
    assert parsed["lineup_change"]["new_player_positions"] == {"returning": "G"}
    assert parsed["drops"][0]["players"][0]["transaction_type"] == "drop"
    assert parsed["adds"] == []
    assert parsed["audit_gap"] == pytest.approx(0.0)


def test_configure_logging_is_idempotent() -> None:
    configure_logging(level=logging.DEBUG)
    configure_logging(level=logging.WARNING)
    assert logging.getLogger().level == logging.WARNING


def test_optimize_team_can_skip_the_exact_audit() -> None:
    result = optimize_team(_snapshot(allow_dropping=True), audit=False)

    assert result.audit_gap is None
    assert result.is_successfully_optimized
