from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import pandas as pd

from .models import Game, Outcome, Standing, Team

logger = logging.getLogger(__name__)

DEFAULT_RULE = "league"

# Points, regulation wins and regulation-or-overtime wins credited to the
# home and away side for each decided outcome.
RESULT_TABLE: dict[Outcome, tuple[tuple[int, int, int], tuple[int, int, int]]] = {
    Outcome.HOME_REG_WIN: ((3, 1, 1), (0, 0, 0)),
    Outcome.AWAY_REG_WIN: ((0, 0, 0), (3, 1, 1)),
    Outcome.HOME_OT_WIN: ((2, 0, 1), (1, 0, 0)),
    Outcome.AWAY_OT_WIN: ((1, 0, 0), (2, 0, 1)),
}


def _name_key(s: Standing) -> tuple:
    return (s.name.casefold(), s.name)


def _league_key(s: Standing) -> tuple:
    return (-s.pts, -s.row, -s.rw, -s.gd, -s.gf, *_name_key(s))


def _points_gd_key(s: Standing) -> tuple:
    return (-s.pts, -s.gd, -s.gf, *_name_key(s))


TIEBREAK_RULES = {
    "league": _league_key,
    "pointsGd": _points_gd_key,
}
RULE_ALIASES = {"shl": "league"}


@dataclass(frozen=True)
class Cutlines:
    """Table positions that separate the playoff and relegation zones."""

    direct: int = 6
    play_in_start: int = 7
    play_in_end: int = 10
    relegation_start: int = 13


def resolve_rule(rule: str) -> str:
    rule = RULE_ALIASES.get(rule, rule)
    if rule not in TIEBREAK_RULES:
        raise ValueError(
            f"unknown tiebreak rule {rule!r}; expected one of {sorted(TIEBREAK_RULES)}"
        )
    return rule


def sort_key(standing: Standing, rule: str = DEFAULT_RULE) -> tuple:
    return TIEBREAK_RULES[resolve_rule(rule)](standing)


def build_standings(teams: Iterable[Team]) -> dict[str, Standing]:
    """Return a coerced working copy of each team keyed by id."""
    return {team.id: Standing.from_team(team) for team in teams}


def apply_result(
    standings: dict[str, Standing],
    home_id: str,
    away_id: str,
    outcome: Outcome,
) -> None:
    """Credit ``outcome`` to the two standings in place.

    Games against a missing team, a team playing itself or an undecided
    outcome leave ``standings`` untouched. Goals are never changed here.
    """
    home = standings.get(home_id)
    away = standings.get(away_id)
    if home is None or away is None or home_id == away_id:
        logger.debug("Skipping game %r vs %r", home_id, away_id)
        return
    credit = RESULT_TABLE.get(Outcome.parse(outcome))
    if credit is None:
        return

    home.gp += 1
    away.gp += 1
    for side, (pts, rw, row) in zip((home, away), credit):
        side.pts += pts
        side.rw += rw
        side.row += row


def sort_standings(
    standings: Iterable[Standing], rule: str = DEFAULT_RULE
) -> list[Standing]:
    """Sort ``standings`` by ``rule`` and assign 1-based ranks."""
    key = TIEBREAK_RULES[resolve_rule(rule)]
    ordered = sorted(standings, key=key)
    for idx, standing in enumerate(ordered):
        standing.rank = idx + 1
    return ordered


def compute_standings(
    teams: Sequence[Team],
    games: Iterable[Game],
    rule: str = DEFAULT_RULE,
) -> list[Standing]:
    """Return the table produced by the decided games in ``games``."""
    table = build_standings(teams)
    for game in games:
        outcome = Outcome.parse(game.outcome)
        if outcome.decided:
            apply_result(table, game.home_id, game.away_id, outcome)
    return sort_standings(table.values(), rule)


def rank_map(standings: Iterable[Standing]) -> dict[str, int]:
    return {s.id: s.rank for s in standings}


def zone_for_rank(rank: int, cutlines: Cutlines | None = None) -> str:
    """Return the table zone label for ``rank``."""
    cutlines = cutlines or Cutlines()
    if rank <= cutlines.direct:
        return "Direct QF"
    if cutlines.play_in_start <= rank <= cutlines.play_in_end:
        return "Play-in"
    if rank >= cutlines.relegation_start:
        return "Relegation"
    return ""


def league_table(
    teams: Sequence[Team],
    games: Iterable[Game],
    rule: str = DEFAULT_RULE,
    cutlines: Cutlines | None = None,
) -> pd.DataFrame:
    """Compute the deterministic standings as a DataFrame."""
    rows = [
        {
            "position": s.rank,
            "id": s.id,
            "team": s.name,
            "gp": s.gp,
            "pts": s.pts,
            "row": s.row,
            "rw": s.rw,
            "gd": s.gd,
            "gf": s.gf,
            "ga": s.ga,
            "zone": zone_for_rank(s.rank, cutlines),
        }
        for s in compute_standings(teams, games, rule)
    ]
    columns = ["position", "id", "team", "gp", "pts", "row", "rw", "gd", "gf", "ga", "zone"]
    return pd.DataFrame(rows, columns=columns)
