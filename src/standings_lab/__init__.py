"""Convenience exports for the standings lab package."""

from .models import (
    Game,
    Outcome,
    Standing,
    Team,
    clamp,
    new_game,
    num,
    placeholder_teams,
    remove_team,
)
from .standings import (
    Cutlines,
    apply_result,
    build_standings,
    compute_standings,
    league_table,
    rank_map,
    sort_standings,
    zone_for_rank,
)
from .simulator import (
    SimulationConfig,
    SimulationSummary,
    merge_totals,
    run_iterations,
    simulate,
    simulate_standings,
    summarize,
)
from .tabular import (
    games_from_csv,
    games_to_csv,
    parse_csv,
    read_games_csv,
    read_teams_csv,
    teams_from_csv,
    teams_to_csv,
    to_csv_row,
)
from .snapshot import load_snapshot, save_snapshot, snapshot_from_dict, snapshot_to_dict

__all__ = [
    "Team",
    "Game",
    "Outcome",
    "Standing",
    "num",
    "clamp",
    "placeholder_teams",
    "new_game",
    "remove_team",
    "Cutlines",
    "build_standings",
    "apply_result",
    "sort_standings",
    "compute_standings",
    "rank_map",
    "zone_for_rank",
    "league_table",
    "SimulationConfig",
    "SimulationSummary",
    "simulate_standings",
    "run_iterations",
    "merge_totals",
    "summarize",
    "simulate",
    "to_csv_row",
    "parse_csv",
    "teams_to_csv",
    "teams_from_csv",
    "games_to_csv",
    "games_from_csv",
    "read_teams_csv",
    "read_games_csv",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "load_snapshot",
    "save_snapshot",
]
