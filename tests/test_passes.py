import pytest

from roster_autopilot.data import Player
from roster_autopilot.passes import (
    PassContext,
    fill_empty_starting_slots,
    find_illegal_players,
    repair_illegal_players,
    resolve_overfilled_positions,
    run_passes,
    swap_bench_to_starters,
)
from roster_autopilot.positions import get_sport_config
from roster_autopilot.scoring import DailyScoreFunction, ScoringMode
from roster_autopilot.slots import RosterSlots
from roster_autopilot.state import RosterState


def _make_player(key: str, positions: tuple[str, ...], selected: str, owned: float, **kwargs: object) -> Player:
    return Player(
        player_key=key,
        player_name=key,
        eligible_positions=positions,
        selected_position=selected,
        percent_owned=owned,
        **kwargs,
    )


def _context(
    players: list[Player],
    roster_positions: dict[str, int],
    *,
    game_code: str = "nba",
    locked: frozenset[str] = frozenset(),
) -> tuple[RosterState, PassContext]:
    slots = RosterSlots(roster_positions, get_sport_config(game_code))
    mode = ScoringMode.BASEBALL if game_code == "mlb" else ScoringMode.BASKETBALL
    ctx = PassContext(
        players={p.player_key: p for p in players},
        slots=slots,
        score=DailyScoreFunction(mode, slots),
        locked_player_keys=locked,
    )
    return RosterState.from_players(players), ctx


def test_fill_empty_starting_slots_takes_best_eligible_unlocked_bench_player() -> None:
    players = [
        _make_player("weak", ("PG",), "BN", 10),
        _make_player("locked", ("PG",), "BN", 90),
        _make_player("strong", ("PG",), "BN", 60),
        _make_player("center", ("C",), "BN", 99),
    ]
    state, ctx = _context(players, {"PG": 1, "C": 0, "BN": 4}, locked=frozenset({"locked"}))

    new_state, moves = fill_empty_starting_slots(state, ctx)

    assert [(m.player_key, m.to_position) for m in moves] == [("strong", "PG")]
    assert new_state.position_of("strong") == "PG"


def test_resolve_overfilled_positions_moves_weakest_out() -> None:
    players = [
        _make_player("a", ("PG", "SG"), "PG", 50),
        _make_player("b", ("PG", "SG"), "PG", 20),
        _make_player("c", ("PG",), "PG", 30),
    ]
    state, ctx = _context(players, {"PG": 1, "SG": 1, "BN": 1})

    new_state, moves = resolve_overfilled_positions(state, ctx)

    # b fits the open SG slot, c has nowhere but the bench.
    assert new_state.as_dict() == {"a": "PG", "b": "SG", "c": "BN"}
    assert len(moves) == 2


def test_repair_moves_healthy_player_off_inactive_list() -> None:
    players = [
        _make_player("starter", ("PG",), "PG", 50),
        _make_player("back", ("PG",), "IL", 40),
    ]
    state, ctx = _context(players, {"PG": 1, "BN": 1, "IL": 1})

    assert find_illegal_players(state, ctx) == ["back"]
    new_state, moves = repair_illegal_players(state, ctx)

    assert new_state.position_of("back") == "BN"
    assert find_illegal_players(new_state, ctx) == []
    assert len(moves) == 1


def test_repair_swaps_returning_player_with_injured_starter() -> None:
    players = [
        _make_player("hurt", ("PG",), "PG", 50, injury_status="O"),
        _make_player("back", ("PG",), "IL", 40),
    ]
    state, ctx = _context(players, {"PG": 1, "IL": 1})

    new_state, _ = repair_illegal_players(state, ctx)

    assert new_state.as_dict() == {"hurt": "IL", "back": "PG"}


def test_repair_leaves_unresolvable_player_in_place() -> None:
    players = [
        _make_player("starter", ("PG",), "PG", 50),
        _make_player("back", ("PG",), "IL", 40),
    ]
    state, ctx = _context(players, {"PG": 1, "IL": 1})

    new_state, moves = repair_illegal_players(state, ctx)

    assert moves == []
    assert new_state == state
    assert find_illegal_players(new_state, ctx) == ["back"]


def test_repair_rotates_three_players_when_no_direct_swap_fits() -> None:
    players = [
        _make_player("x", ("PG",), "IL", 40),
        _make_player("q", ("PG", "SG"), "PG", 50),
        _make_player("t", ("SG",), "SG", 30, injury_status="O"),
    ]
    state, ctx = _context(players, {"PG": 1, "SG": 1, "IL": 1})

    new_state, moves = repair_illegal_players(state, ctx)

    assert new_state.as_dict() == {"x": "PG", "q": "SG", "t": "IL"}
    assert [m.reason for m in moves] == [
        "legality repair",
        "legality repair rotation",
        "legality repair rotation",
    ]
    assert find_illegal_players(new_state, ctx) == []


def test_repair_upgrades_long_term_injury_to_deeper_slot() -> None:
    players = [
        _make_player("starter", ("1B",), "1B", 50),
        _make_player("out", ("1B",), "IL", 40, injury_status="IL60"),
    ]
    state, ctx = _context(players, {"1B": 1, "IL": 1, "IL+": 1}, game_code="mlb")

    new_state, moves = repair_illegal_players(state, ctx)

    assert new_state.position_of("out") == "IL+"
    assert moves[0].reason == "upgrade to the long-term inactive list"


def test_locked_player_is_not_moved_off_inactive_list() -> None:
    players = [
        _make_player("starter", ("PG",), "PG", 50),
        _make_player("back", ("PG",), "IL", 40),
    ]
    state, ctx = _context(players, {"PG": 1, "BN": 1, "IL": 1}, locked=frozenset({"back"}))

    assert find_illegal_players(state, ctx) == []
    new_state, moves = repair_illegal_players(state, ctx)
    assert moves == []
    assert new_state == state


def test_swap_direct_when_bench_player_scores_higher() -> None:
    players = [
        _make_player("starter", ("PG",), "PG", 20),
        _make_player("bench", ("PG",), "BN", 60),
    ]
    state, ctx = _context(players, {"PG": 1, "BN": 1})

    new_state, moves = swap_bench_to_starters(state, ctx)

    assert new_state.as_dict() == {"starter": "BN", "bench": "PG"}
    assert len(moves) == 2


def test_swap_through_empty_slot_keeps_both_players_starting() -> None:
    players = [
        _make_player("flex", ("PG", "G"), "PG", 80),
        _make_player("bench", ("PG",), "BN", 40),
    ]
    state, ctx = _context(players, {"PG": 1, "G": 1, "BN": 1})

    new_state, _ = swap_bench_to_starters(state, ctx)

    assert new_state.as_dict() == {"flex": "G", "bench": "PG"}


def test_swap_never_trades_equal_scores() -> None:
    players = [
        _make_player("a", ("PG",), "PG", 50),
        _make_player("b", ("PG",), "BN", 50),
    ]
    state, ctx = _context(players, {"PG": 1, "BN": 1})

    new_state, moves = swap_bench_to_starters(state, ctx)

    assert moves == []
    assert new_state == state


def test_swap_applies_largest_gain_first_and_moves_each_player_once() -> None:
    players = [
        _make_player("s1", ("PG",), "PG", 10),
        _make_player("s2", ("PG",), "PG", 30),
        _make_player("b1", ("PG",), "BN", 40),
        _make_player("b2", ("PG",), "BN", 35),
    ]
    state, ctx = _context(players, {"PG": 2, "BN": 2})

    new_state, _ = swap_bench_to_starters(state, ctx)

    # b1 -> s1 (gain 30) is applied first; b2 -> s2 (gain 5) still applies.
    assert new_state.as_dict() == {"s1": "BN", "s2": "BN", "b1": "PG", "b2": "PG"}


def test_non_editable_players_are_never_moved() -> None:
    players = [
        _make_player("locked_in", ("PG",), "PG", 1, is_editable=False),
        _make_player("bench", ("PG",), "BN", 90),
    ]
    state, ctx = _context(players, {"PG": 1, "BN": 1})

    result = run_passes(state, ctx, max_iterations=10)

    assert result.state == state
    assert not result.hit_iteration_ceiling


def test_run_passes_rejects_non_positive_ceiling() -> None:
    state, ctx = _context([_make_player("a", ("PG",), "PG", 1)], {"PG": 1})
    with pytest.raises(ValueError):
        run_passes(state, ctx, max_iterations=0)
