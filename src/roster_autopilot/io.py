"""I/O utilities for building the optimiser's domain objects.

This module owns:
- JSON file format knowledge
- parsing and validation of normalised roster payloads
- construction of domain objects from :mod:`roster_autopilot.data`

The expected payloads are the already-normalised structures produced by the
roster-fetch layer (snake_case keys), not raw provider responses.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from roster_autopilot.data import (
    GamesPlayed,
    OwnershipType,
    PaceKeeper,
    Player,
    PlayerOwnership,
    PlayerRanks,
    TeamSnapshot,
)
from roster_autopilot.optimizer import EngineSettings
from roster_autopilot.positions import SportConfig


def _require(raw: Mapping[str, Any], key: str, context: str) -> Any:
    try:
        return raw[key]
    except KeyError as e:
        raise ValueError(f"{context}: missing required field {key!r}") from e


def _read_json(path: str | Path) -> Any:
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def parse_ranks(raw: Optional[Mapping[str, Any]]) -> PlayerRanks:
    if not raw:
        return PlayerRanks()
    known = set(PlayerRanks.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown rank windows: {unknown}")
    return PlayerRanks(**{k: int(v) for k, v in raw.items()})


def parse_ownership(raw: Optional[Mapping[str, Any]]) -> PlayerOwnership:
    if not raw:
        return PlayerOwnership()
    try:
        ownership_type = OwnershipType(raw.get("ownership_type", OwnershipType.TEAM.value))
    except ValueError as e:
        raise ValueError(f"Unknown ownership_type: {raw.get('ownership_type')!r}") from e
    return PlayerOwnership(ownership_type=ownership_type, waiver_date=raw.get("waiver_date"))


def parse_player(raw: Mapping[str, Any], *, context: str = "player") -> Player:
    """Build a :class:`~roster_autopilot.data.Player` from a normalised record."""

    key = str(_require(raw, "player_key", context))
    context = f"{context} {key}"
    eligible = _require(raw, "eligible_positions", context)
    if isinstance(eligible, str) or not isinstance(eligible, list):
        raise ValueError(f"{context}: eligible_positions must be a list of strings")

    is_starting = raw.get("is_starting")
    return Player(
        player_key=key,
        player_name=str(raw.get("player_name", key)),
        eligible_positions=tuple(str(p) for p in eligible),
        selected_position=raw.get("selected_position"),
        is_editable=bool(raw.get("is_editable", True)),
        is_playing=bool(raw.get("is_playing", True)),
        injury_status=str(raw.get("injury_status") or "Healthy"),
        percent_started=_optional_float(raw.get("percent_started")),
        percent_owned=float(raw.get("percent_owned", 0.0)),
        percent_owned_delta=float(raw.get("percent_owned_delta", 0.0)),
        is_starting=None if is_starting is None else int(is_starting),
        is_undroppable=bool(raw.get("is_undroppable", False)),
        ranks=parse_ranks(raw.get("ranks")),
        ownership=parse_ownership(raw.get("ownership")),
    )


def parse_pace_keeper(raw: Mapping[str, Any], *, context: str) -> PaceKeeper:
    return PaceKeeper(
        played=float(_require(raw, "played", context)),
        max=float(_require(raw, "max", context)),
        projected=float(_require(raw, "projected", context)),
    )


def parse_team_snapshot(raw: Mapping[str, Any]) -> TeamSnapshot:
    """Build a :class:`~roster_autopilot.data.TeamSnapshot` from a normalised team record.

    Raises
    ------
    ValueError
        If a required field is missing or any value fails validation.
    """

    team_key = str(_require(raw, "team_key", "team"))
    context = f"team {team_key}"

    raw_players = _require(raw, "players", context)
    if not isinstance(raw_players, list):
        raise ValueError(f"{context}: players must be a list")
    players = [parse_player(p, context=f"{context} player") for p in raw_players]

    roster_positions = _require(raw, "roster_positions", context)
    if not isinstance(roster_positions, dict):
        raise ValueError(f"{context}: roster_positions must be an object of position -> count")

    games_played: Optional[List[GamesPlayed]] = None
    if raw.get("games_played") is not None:
        games_played = [
            GamesPlayed(
                position=str(_require(gp, "position", f"{context} games_played")),
                games_played=parse_pace_keeper(
                    _require(gp, "games_played", f"{context} games_played"),
                    context=f"{context} games_played",
                ),
            )
            for gp in raw["games_played"]
        ]

    innings_pitched: Optional[PaceKeeper] = None
    if raw.get("innings_pitched") is not None:
        innings_pitched = parse_pace_keeper(raw["innings_pitched"], context=f"{context} innings_pitched")

    max_weekly_adds = raw.get("max_weekly_adds")

    return TeamSnapshot(
        team_key=team_key,
        game_code=str(_require(raw, "game_code", context)),
        players=players,
        roster_positions={str(k): int(v) for k, v in roster_positions.items()},
        coverage_type=raw.get("coverage_type", "date"),
        coverage_period=str(raw.get("coverage_period", "")),
        weekly_deadline=str(raw.get("weekly_deadline", "")),
        edit_key=str(raw.get("edit_key", "")),
        num_teams=int(raw.get("num_teams", 12)),
        allow_dropping=bool(raw.get("allow_dropping", False)),
        allow_adding=bool(raw.get("allow_adding", False)),
        allow_add_drops=bool(raw.get("allow_add_drops", False)),
        allow_waiver_adds=bool(raw.get("allow_waiver_adds", False)),
        games_played=games_played,
        innings_pitched=innings_pitched,
        season_time_progress=float(raw.get("season_time_progress", 0.0)),
        pending_locked_player_keys=frozenset(raw.get("pending_locked_player_keys", [])),
        pending_add_player_keys=frozenset(raw.get("pending_add_player_keys", [])),
        starting_player_keys=frozenset(raw.get("starting_player_keys", [])),
        position_caps=raw.get("position_caps"),
        positional_scarcity_offsets=raw.get("positional_scarcity_offsets"),
        max_weekly_adds=None if max_weekly_adds is None else int(max_weekly_adds),
        current_weekly_adds=int(raw.get("current_weekly_adds", 0)),
        faab_balance=_optional_float(raw.get("faab_balance")),
    )


def load_team_snapshot_from_json(path: str | Path) -> TeamSnapshot:
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return parse_team_snapshot(raw)


def load_add_candidates_from_json(path: str | Path) -> List[Player]:
    """Load a list of free-agent / waiver candidates."""

    raw = _read_json(path)
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON list of players")
    return [parse_player(p, context="add candidate") for p in raw]


def load_engine_settings_from_json(path: str | Path) -> EngineSettings:
    """Load :class:`~roster_autopilot.optimizer.EngineSettings`; missing keys keep their defaults.

    Expected JSON shape::

        {"max_iterations": 50, "swap_margin": 5.0, "critical_position_bonus": 5.0}
    """

    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a JSON object")

    known = set(EngineSettings.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown engine settings in {path}: {unknown}")

    kwargs: Dict[str, Any] = {}
    if "max_iterations" in raw:
        kwargs["max_iterations"] = int(raw["max_iterations"])
    for key in ("swap_margin", "critical_position_bonus"):
        if key in raw:
            kwargs[key] = float(raw[key])
    return EngineSettings(**kwargs)


def load_sport_configs_from_json(path: str | Path) -> Dict[str, SportConfig]:
    """Load per-sport tables keyed by game code.

    Expected JSON shape::

        {
          "mlb": {
            "compound_positions": {"CI": ["1B", "3B"]},
            "max_extra_players": {"P": 6},
            "long_term_injury_statuses": ["IL60"],
            "confirmed_starter_positions": ["SP", "RP", "P"]
          }
        }
    """

    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a JSON object keyed by game code")

    configs: Dict[str, SportConfig] = {}
    for game_code, rec in raw.items():
        if not isinstance(rec, dict):
            raise ValueError(f"{path}: config for {game_code!r} must be an object")
        configs[game_code] = SportConfig(
            game_code=game_code,
            compound_positions={k: frozenset(v) for k, v in (rec.get("compound_positions") or {}).items()},
            max_extra_players={k: int(v) for k, v in (rec.get("max_extra_players") or {}).items()},
            long_term_injury_statuses=frozenset(rec.get("long_term_injury_statuses") or ()),
            not_active_statuses=frozenset(rec.get("not_active_statuses") or ("NA",)),
            confirmed_starter_positions=frozenset(rec.get("confirmed_starter_positions") or ()),
        )
    return configs
