import copy
import itertools
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))
from standings_lab import (
    Game,
    Outcome,
    SimulationConfig,
    Team,
    merge_totals,
    placeholder_teams,
    run_iterations,
    simulate,
    simulate_standings,
    summarize,
)
from standings_lab.simulator import (
    RankCount,
    adjusted_probability,
    clamp_iterations,
    draw_outcome,
)


class FixedRandom:
    """Random source that replays ``values`` forever."""

    def __init__(self, values):
        self._values = itertools.cycle(values)

    def random(self):
        return next(self._values)


def _pair(prob_home=0.5):
    teams = [Team(id="h", name="Home"), Team(id="v", name="Visitor")]
    games = [Game(home_id="h", away_id="v", prob_home=prob_home)]
    return teams, games


def test_probability_clamping():
    assert adjusted_probability(-1, 0.0) == pytest.approx(0.05)
    assert adjusted_probability(2, 0.0) == pytest.approx(0.95)
    assert adjusted_probability(0.93, 0.2) == pytest.approx(0.95)
    assert adjusted_probability(0.5, -0.2) == pytest.approx(0.3)
    assert adjusted_probability("junk", 0.0) == pytest.approx(0.05)


def test_iteration_clamping():
    assert clamp_iterations(50) == 100
    assert clamp_iterations(50000) == 20000
    assert clamp_iterations("abc") == 100
    teams, games = _pair()
    assert simulate(teams, games, iterations=50, rng=FixedRandom([0.0])).iterations == 100


def test_config_clamping_and_env(monkeypatch):
    config = SimulationConfig(ot_share=1.5, home_adv=-0.9)
    assert config.ot_share == 1.0
    assert config.home_adv == -0.2

    monkeypatch.setenv("STANDINGS_LAB_OT_SHARE", "0.4")
    monkeypatch.setenv("STANDINGS_LAB_HOME_ADV", "oops")
    env_config = SimulationConfig.from_env()
    assert env_config.ot_share == pytest.approx(0.4)
    assert env_config.home_adv == 0


def test_draw_outcome_uses_two_draws():
    assert draw_outcome(0.5, 0.25, FixedRandom([0.1, 0.9])) is Outcome.HOME_REG_WIN
    assert draw_outcome(0.5, 0.25, FixedRandom([0.1, 0.1])) is Outcome.HOME_OT_WIN
    assert draw_outcome(0.5, 0.25, FixedRandom([0.7, 0.1])) is Outcome.AWAY_OT_WIN
    assert draw_outcome(0.5, 0.25, FixedRandom([0.7, 0.3])) is Outcome.AWAY_REG_WIN


def test_decided_games_are_not_randomised():
    teams, games = _pair()
    games[0].outcome = Outcome.AWAY_OT_WIN
    table = simulate_standings(teams, games, SimulationConfig(), "league", FixedRandom([0.0]))
    assert [(s.id, s.pts) for s in table] == [("v", 2), ("h", 1)]


def test_simulate_with_fixed_draws():
    teams, games = _pair()
    summary = simulate(
        teams, games, SimulationConfig(ot_share=0.0, home_adv=0.0),
        iterations=100, focus_id="h", rng=FixedRandom([0.0]),
    )
    assert summary.rank_counts == [RankCount(rank=1, count=100, pct=100.0)]
    assert summary.focus.best == summary.focus.worst == 1
    assert summary.focus.avg_pts == 3
    assert [e.id for e in summary.expected] == ["h", "v"]
    assert summary.expected[1].avg_rank == 2
    assert summary.zone_probabilities()["Direct QF"] == 1.0


def test_focus_defaults_to_first_team():
    teams, games = _pair()
    summary = simulate(teams, games, iterations=100, rng=FixedRandom([0.99]))
    assert summary.focus.team_id == "h"
    assert summary.focus.best == 2


def test_absent_focus_team_reports_nothing():
    teams, games = _pair()
    summary = simulate(teams, games, iterations=100, focus_id="gone", rng=FixedRandom([0.3]))
    assert summary.rank_counts == []
    assert summary.focus.best is None
    assert summary.focus.worst is None
    assert summary.focus.avg_rank is None
    assert len(summary.expected) == 2


def test_average_rank_ties_keep_input_order():
    teams = [Team(id="z", name="Zed"), Team(id="a", name="Amy")]
    games = [Game(home_id="z", away_id="a")]
    rng = FixedRandom([0.1, 0.9, 0.9, 0.9])
    summary = simulate(teams, games, SimulationConfig(ot_share=0.0, home_adv=0.0), iterations=100, rng=rng)
    assert [e.avg_rank for e in summary.expected] == [1.5, 1.5]
    assert [e.id for e in summary.expected] == ["z", "a"]


def test_simulation_converges_to_home_probability():
    teams, games = _pair(prob_home=0.9)
    summary = simulate(
        teams, games, SimulationConfig(ot_share=0.0, home_adv=0.0),
        iterations=20000, focus_id="h", rng=np.random.default_rng(2024),
    )
    first = next(b for b in summary.rank_counts if b.rank == 1)
    assert first.pct / 100 == pytest.approx(0.9, abs=0.03)
    low, high = summary.rank_interval(1)
    assert low <= first.count / summary.iterations <= high


def test_simulate_repeatable_with_seed():
    teams = placeholder_teams(6)
    games = [
        Game(home_id=teams[i].id, away_id=teams[(i + 1) % 6].id, prob_home=0.3 + 0.1 * i)
        for i in range(6)
    ]
    first = simulate(teams, games, iterations=200, rng=np.random.default_rng(7))
    second = simulate(teams, games, iterations=200, rng=np.random.default_rng(7))
    assert first == second


def test_simulate_does_not_mutate_inputs():
    teams, games = _pair(prob_home=0.6)
    before = copy.deepcopy((teams, games))
    simulate(teams, games, iterations=100, rng=np.random.default_rng(1))
    assert (teams, games) == before


def test_merged_batches_match_single_run():
    teams, games = _pair()
    config = SimulationConfig(ot_share=0.5, home_adv=0.0)
    values = [0.2, 0.7, 0.8, 0.1, 0.4, 0.4]
    whole = run_iterations(teams, games, config, "league", 6, "h", FixedRandom(values))
    rng = FixedRandom(values)
    part_a = run_iterations(teams, games, config, "league", 2, "h", rng)
    part_b = run_iterations(teams, games, config, "league", 4, "h", rng)
    assert merge_totals(part_a, part_b) == whole
    assert summarize(teams, merge_totals(part_b, part_a), "h") == summarize(teams, whole, "h")


def test_frames_have_expected_columns():
    teams, games = _pair()
    summary = simulate(teams, games, iterations=100, rng=np.random.default_rng(3))
    expected = summary.expected_frame()
    assert list(expected.columns) == ["position", "id", "team", "avg_rank", "avg_pts"]
    assert list(expected["position"]) == [1, 2]
    ranks = summary.rank_frame()
    assert ranks["count"].sum() == 100
    assert ranks["pct"].sum() == pytest.approx(100.0)
