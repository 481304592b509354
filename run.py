from __future__ import annotations

import logging
import os
from pathlib import Path

from roster_autopilot.io import (
    load_add_candidates_from_json,
    load_engine_settings_from_json,
    load_sport_configs_from_json,
    load_team_snapshot_from_json,
)
from roster_autopilot.main import configure_logging, optimize_team
from roster_autopilot.summary import build_optimization_summary, dumps_optimization_summary_pretty


def main() -> None:
    repo_root = Path(__file__).resolve().parent
    data_dir = repo_root / "data"
    output_dir = repo_root / "output"
    output_dir.mkdir(parents=True, exist_ok=True)

    level_name = os.environ.get("ROSTER_AUTOPILOT_LOG_LEVEL", "INFO").upper()
    configure_logging(level=logging.getLevelName(level_name))

    snapshot = load_team_snapshot_from_json(data_dir / "team_snapshot.json")

    # Optional inputs.
    candidates_path = data_dir / "add_candidates.json"
    add_candidates = load_add_candidates_from_json(candidates_path) if candidates_path.exists() else None

    settings_path = data_dir / "engine_settings.json"
    settings = load_engine_settings_from_json(settings_path) if settings_path.exists() else None

    sport_config = None
    sport_configs_path = data_dir / "sport_configs.json"
    if sport_configs_path.exists():
        sport_config = load_sport_configs_from_json(sport_configs_path).get(snapshot.game_code)

    result = optimize_team(
        snapshot,
        add_candidates=add_candidates,
        settings=settings,
        sport_config=sport_config,
    )

    summary = build_optimization_summary(result)

    # Write to output file.
    out_path = output_dir / f"{snapshot.team_key}.json"
    out_path.write_text(dumps_optimization_summary_pretty(summary), encoding="utf-8")

    # Pretty JSON to stdout.
    print(dumps_optimization_summary_pretty(summary))


if __name__ == "__main__":
    main()
