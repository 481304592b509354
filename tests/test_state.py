import pytest

from roster_autopilot.data import Player
from roster_autopilot.state import Move, RosterState


def _make_player(key: str, selected: str | None) -> Player:
    return Player(player_key=key, player_name=key, eligible_positions=("PG",), selected_position=selected)


def test_from_players_keeps_input_order() -> None:
    state = RosterState.from_players([_make_player("b", "BN"), _make_player("a", "PG")])
    assert list(state) == ["b", "a"]
    assert state.position_of("a") == "PG"
    assert state.occupants("BN") == ["b"]
    assert state.occupancy("PG") == 1


def test_from_players_raises_without_selected_position() -> None:
    with pytest.raises(ValueError):
        RosterState.from_players([_make_player("a", None)])


def test_move_returns_new_state() -> None:
    state = RosterState({"a": "PG", "b": "BN"})
    new_state, move = state.move("b", "PG")

    assert move == Move("b", "BN", "PG")
    assert state.position_of("b") == "BN"
    assert new_state.position_of("b") == "PG"


def test_apply_rejects_stale_moves() -> None:
    state = RosterState({"a": "PG"})
    with pytest.raises(ValueError):
        state.apply([Move("a", "BN", "PG")])


def test_position_of_unknown_player_raises() -> None:
    with pytest.raises(KeyError):
        RosterState({"a": "PG"}).position_of("zz")


def test_with_player_and_without() -> None:
    state = RosterState({"a": "PG"}).with_player("b", "BN")
    assert state.as_dict() == {"a": "PG", "b": "BN"}
    assert state.without(["a"]).as_dict() == {"b": "BN"}

    with pytest.raises(ValueError):
        state.with_player("a", "BN")


def test_changed_positions_only_compares_shared_keys() -> None:
    original = RosterState({"a": "PG", "b": "BN", "c": "IL"})
    final = RosterState({"a": "BN", "b": "PG", "d": "BN"})

    assert final.changed_positions(original) == {"a": "BN", "b": "PG"}
    assert final.changed_positions(original, keys=["a"]) == {"a": "BN"}
