import argparse
import json
import logging

import numpy as np

from . import (
    Cutlines,
    SimulationConfig,
    league_table,
    load_snapshot,
    placeholder_teams,
    read_games_csv,
    read_teams_csv,
    simulate,
)
from .standings import RULE_ALIASES, TIEBREAK_RULES


def _find_focus(teams, focus):
    if not focus:
        return teams[0].id if teams else None
    for team in teams:
        if team.id == focus:
            return team.id
    key = focus.strip().lower()
    for team in teams:
        if team.name.strip().lower() == key:
            return team.id
    return focus


def main() -> None:
    env_config = SimulationConfig.from_env()
    parser = argparse.ArgumentParser(
        description=(
            "Project the final league table. Decided games are applied as "
            "entered; undecided games are simulated from their home win "
            "probability with a global overtime share and home advantage."
        )
    )
    parser.add_argument("--snapshot", help="JSON file with {teams, games}")
    parser.add_argument("--teams", help="teams CSV (name,gp,pts,rw,row,gf,ga)")
    parser.add_argument("--games", help="games CSV (home,away,outcome,probHome)")
    parser.add_argument(
        "--rule",
        default="league",
        choices=sorted(TIEBREAK_RULES) + sorted(RULE_ALIASES),
        help="tiebreak rule (default: league)",
    )
    parser.add_argument("--iterations", type=int, default=2000, help="number of simulation runs")
    parser.add_argument(
        "--ot-share",
        type=float,
        default=env_config.ot_share,
        help="share of wins decided in overtime (default: $STANDINGS_LAB_OT_SHARE or 0.25)",
    )
    parser.add_argument(
        "--home-adv",
        type=float,
        default=env_config.home_adv,
        help="added to every home win probability (default: $STANDINGS_LAB_HOME_ADV or 0.05)",
    )
    parser.add_argument("--focus", help="team name or id whose rank distribution is reported")
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="random seed for repeatable simulations",
    )
    parser.add_argument(
        "--cutlines",
        nargs=4,
        type=int,
        metavar=("DIRECT", "PLAYIN_START", "PLAYIN_END", "RELEGATION_START"),
        help="table zones (default: 6 7 10 13)",
    )
    parser.add_argument(
        "--deterministic-only",
        action="store_true",
        help="only print the table from decided games",
    )
    parser.add_argument("--log-level", default="WARNING", help="logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.snapshot:
            teams, games = load_snapshot(args.snapshot)
        else:
            teams = read_teams_csv(args.teams) if args.teams else placeholder_teams()
            games = []
            if args.games:
                teams, games = read_games_csv(args.games, teams)
    except (OSError, json.JSONDecodeError) as exc:
        parser.error(str(exc))

    cutlines = Cutlines(*args.cutlines) if args.cutlines else Cutlines()

    table = league_table(teams, games, rule=args.rule, cutlines=cutlines)
    print(f"{'Pos':>3}  {'Team':20s} {'GP':>3} {'PTS':>4} {'ROW':>4} {'RW':>4} {'GD':>4}  Zone")
    for _, row in table.iterrows():
        print(
            f"{row['position']:>3d}  {row['team']:20s} {row['gp']:>3} {row['pts']:>4} "
            f"{row['row']:>4} {row['rw']:>4} {row['gd']:>4}  {row['zone']}"
        )

    if args.deterministic_only:
        return

    rng = np.random.default_rng(args.seed) if args.seed is not None else None
    focus_id = _find_focus(teams, args.focus)
    summary = simulate(
        teams,
        games,
        config=SimulationConfig(ot_share=args.ot_share, home_adv=args.home_adv),
        rule=args.rule,
        iterations=args.iterations,
        focus_id=focus_id,
        rng=rng,
    )

    print()
    print(f"Projected table ({summary.iterations} simulations)")
    print(f"{'Pos':>3}  {'Team':20s} {'Avg rank':>8} {'Avg pts':>8}")
    for _, row in summary.expected_frame().iterrows():
        print(f"{row['position']:>3d}  {row['team']:20s} {row['avg_rank']:8.2f} {row['avg_pts']:8.1f}")

    focus = summary.focus
    if focus.avg_rank is None:
        print()
        print("Focus team not found; no rank distribution.")
        return

    name = next((t.name for t in teams if t.id == focus.team_id), focus.team_id)
    print()
    print(f"{name}: best {focus.best}, worst {focus.worst}, "
          f"average rank {focus.avg_rank:.2f}, average points {focus.avg_pts:.1f}")
    for bucket in summary.rank_counts:
        print(f"{bucket.rank:>3d}  {bucket.count:>6d}  {bucket.pct:6.2f}%")
    for zone, chance in summary.zone_probabilities(cutlines).items():
        print(f"{zone:12s} {chance:.2%}")


if __name__ == "__main__":
    main()
