from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np
import pandas as pd
from scipy.stats import binomtest

from .models import PROB_MAX, PROB_MIN, Game, Outcome, Standing, Team, clamp, num
from .standings import (
    DEFAULT_RULE,
    Cutlines,
    apply_result,
    build_standings,
    resolve_rule,
    sort_standings,
    zone_for_rank,
)

logger = logging.getLogger(__name__)

MIN_ITERATIONS = 100
MAX_ITERATIONS = 20000
DEFAULT_ITERATIONS = 2000
HOME_ADV_LIMIT = 0.2


class RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass
class SimulationConfig:
    """Global parameters for randomising undecided games.

    ``ot_share`` is the share of wins that come in overtime and is clamped to
    ``[0, 1]``. ``home_adv`` is added to every home win probability and is
    clamped to ``[-0.2, 0.2]``.
    """

    ot_share: float = 0.25
    home_adv: float = 0.05

    def __post_init__(self) -> None:
        self.ot_share = clamp(num(self.ot_share), 0.0, 1.0)
        self.home_adv = clamp(num(self.home_adv), -HOME_ADV_LIMIT, HOME_ADV_LIMIT)

    @classmethod
    def from_env(cls) -> "SimulationConfig":
        """Build a config from ``STANDINGS_LAB_OT_SHARE``/``STANDINGS_LAB_HOME_ADV``."""
        defaults = cls()
        ot_share = os.getenv("STANDINGS_LAB_OT_SHARE")
        home_adv = os.getenv("STANDINGS_LAB_HOME_ADV")
        return cls(
            ot_share=defaults.ot_share if ot_share is None else ot_share,
            home_adv=defaults.home_adv if home_adv is None else home_adv,
        )


@dataclass
class SimulationTotals:
    """Running sums for a batch of iterations.

    Batches combine with :func:`merge_totals`, so iterations may be split
    across workers and folded back together in any order.
    """

    iterations: int = 0
    rank_totals: dict[str, float] = field(default_factory=dict)
    points_totals: dict[str, float] = field(default_factory=dict)
    rank_counts: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ExpectedStanding:
    id: str
    name: str
    avg_rank: float
    avg_pts: float


@dataclass(frozen=True)
class RankCount:
    rank: int
    count: int
    pct: float


@dataclass(frozen=True)
class FocusSummary:
    team_id: str | None
    best: int | None = None
    worst: int | None = None
    avg_rank: float | None = None
    avg_pts: float | None = None


@dataclass
class SimulationSummary:
    iterations: int
    expected: list[ExpectedStanding]
    rank_counts: list[RankCount]
    focus: FocusSummary

    def zone_probabilities(self, cutlines: Cutlines | None = None) -> dict[str, float]:
        """Return the focus team's chance of finishing in each table zone."""
        zones = {"Direct QF": 0.0, "Play-in": 0.0, "Relegation": 0.0}
        for bucket in self.rank_counts:
            zone = zone_for_rank(bucket.rank, cutlines)
            if zone:
                zones[zone] += bucket.count / self.iterations
        return zones

    def rank_interval(self, rank: int, confidence: float = 0.95) -> tuple[float, float]:
        """Return an exact binomial confidence interval for finishing at ``rank``."""
        count = next((b.count for b in self.rank_counts if b.rank == rank), 0)
        ci = binomtest(count, self.iterations).proportion_ci(
            confidence_level=confidence, method="exact"
        )
        return float(ci.low), float(ci.high)

    def expected_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            [
                {
                    "id": e.id,
                    "team": e.name,
                    "avg_rank": e.avg_rank,
                    "avg_pts": e.avg_pts,
                }
                for e in self.expected
            ],
            columns=["id", "team", "avg_rank", "avg_pts"],
        )
        df.insert(0, "position", range(1, len(df) + 1))
        return df

    def rank_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{"rank": b.rank, "count": b.count, "pct": b.pct} for b in self.rank_counts],
            columns=["rank", "count", "pct"],
        )


def clamp_iterations(value) -> int:
    return int(clamp(num(value), MIN_ITERATIONS, MAX_ITERATIONS))


def adjusted_probability(prob_home, home_adv: float) -> float:
    """Return the home win probability after clamping and home advantage."""
    base = clamp(num(prob_home), PROB_MIN, PROB_MAX)
    return clamp(base + home_adv, PROB_MIN, PROB_MAX)


def draw_outcome(prob: float, ot_share: float, rng: RandomSource) -> Outcome:
    """Draw a decided outcome using two independent uniform values."""
    home_wins = rng.random() < prob
    goes_ot = rng.random() < ot_share
    if home_wins:
        return Outcome.HOME_OT_WIN if goes_ot else Outcome.HOME_REG_WIN
    return Outcome.AWAY_OT_WIN if goes_ot else Outcome.AWAY_REG_WIN


def simulate_standings(
    teams: Sequence[Team],
    games: Sequence[Game],
    config: SimulationConfig,
    rule: str,
    rng: RandomSource,
) -> list[Standing]:
    """Complete the season once at random and return the ranked table."""
    table = build_standings(teams)
    for game in games:
        outcome = Outcome.parse(game.outcome)
        if outcome.decided:
            apply_result(table, game.home_id, game.away_id, outcome)
            continue
        prob = adjusted_probability(game.prob_home, config.home_adv)
        outcome = draw_outcome(prob, config.ot_share, rng)
        apply_result(table, game.home_id, game.away_id, outcome)
    return sort_standings(table.values(), rule)


def run_iterations(
    teams: Sequence[Team],
    games: Sequence[Game],
    config: SimulationConfig,
    rule: str,
    iterations: int,
    focus_id: str | None,
    rng: RandomSource,
) -> SimulationTotals:
    """Run ``iterations`` season completions and return their running sums."""
    totals = SimulationTotals()
    for team in teams:
        totals.rank_totals[team.id] = 0.0
        totals.points_totals[team.id] = 0.0

    for _ in range(iterations):
        standings = simulate_standings(teams, games, config, rule, rng)
        for s in standings:
            totals.rank_totals[s.id] += s.rank
            totals.points_totals[s.id] += s.pts
            if s.id == focus_id:
                totals.rank_counts[s.rank] = totals.rank_counts.get(s.rank, 0) + 1
        totals.iterations += 1
    return totals


def merge_totals(a: SimulationTotals, b: SimulationTotals) -> SimulationTotals:
    """Combine two batches of running sums."""
    merged = SimulationTotals(iterations=a.iterations + b.iterations)
    for part in (a, b):
        for key, val in part.rank_totals.items():
            merged.rank_totals[key] = merged.rank_totals.get(key, 0.0) + val
        for key, val in part.points_totals.items():
            merged.points_totals[key] = merged.points_totals.get(key, 0.0) + val
        for rank, count in part.rank_counts.items():
            merged.rank_counts[rank] = merged.rank_counts.get(rank, 0) + count
    return merged


def summarize(
    teams: Sequence[Team],
    totals: SimulationTotals,
    focus_id: str | None,
) -> SimulationSummary:
    """Turn running sums into averages, the rank histogram and focus stats."""
    n = totals.iterations
    expected = [
        ExpectedStanding(
            id=team.id,
            name=team.name,
            avg_rank=totals.rank_totals.get(team.id, 0.0) / n,
            avg_pts=totals.points_totals.get(team.id, 0.0) / n,
        )
        for team in teams
    ]
    # sorted() is stable, so equal averages keep the input order
    expected = sorted(expected, key=lambda e: e.avg_rank)

    ranks = sorted(totals.rank_counts)
    rank_counts = [
        RankCount(rank=r, count=totals.rank_counts[r], pct=totals.rank_counts[r] / n * 100)
        for r in ranks
    ]

    target = next((e for e in expected if e.id == focus_id), None)
    focus = FocusSummary(
        team_id=focus_id,
        best=ranks[0] if ranks else None,
        worst=ranks[-1] if ranks else None,
        avg_rank=target.avg_rank if target else None,
        avg_pts=target.avg_pts if target else None,
    )
    return SimulationSummary(
        iterations=n, expected=expected, rank_counts=rank_counts, focus=focus
    )


def simulate(
    teams: Sequence[Team],
    games: Sequence[Game],
    config: SimulationConfig | None = None,
    rule: str = DEFAULT_RULE,
    iterations: int = DEFAULT_ITERATIONS,
    focus_id: str | None = None,
    rng: RandomSource | None = None,
) -> SimulationSummary:
    """Simulate the remaining fixtures and project the final table.

    Parameters
    ----------
    teams : Sequence[Team]
        Current team statistics. Never mutated.
    games : Sequence[Game]
        All fixtures. Decided games are applied as they are; undecided games
        are drawn from their home win probability on every iteration.
    config : SimulationConfig | None, optional
        Overtime share and home advantage. Defaults to ``SimulationConfig()``.
    rule : str, default "league"
        Tiebreak rule used to order each simulated table.
    iterations : int, default 2000
        Number of simulation runs, clamped to ``[100, 20000]``.
    focus_id : str | None, optional
        Team whose rank distribution is tracked. Defaults to the first team.
        An id that matches no team produces empty focus statistics.
    rng : RandomSource | None, optional
        Object with a ``random()`` method returning floats in ``[0, 1)``. A new
        ``numpy`` generator is created when ``None``.
    """
    if rng is None:
        rng = np.random.default_rng()
    if config is None:
        config = SimulationConfig()
    rule = resolve_rule(rule)

    safe_iterations = clamp_iterations(iterations)
    if safe_iterations != iterations:
        logger.debug("Clamped iterations from %r to %d", iterations, safe_iterations)
    if focus_id is None and teams:
        focus_id = teams[0].id

    totals = run_iterations(teams, games, config, rule, safe_iterations, focus_id, rng)
    summary = summarize(teams, totals, focus_id)
    logger.info(
        "Simulation complete: %d iterations, %d teams, %d games",
        safe_iterations,
        len(teams),
        len(games),
    )
    return summary
