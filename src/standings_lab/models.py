from __future__ import annotations

import math
import random
import string
from dataclasses import dataclass, field
from enum import Enum

TEAM_COUNT_DEFAULT = 14
PROB_MIN = 0.05
PROB_MAX = 0.95

COUNTERS = ("gp", "pts", "rw", "row", "gf", "ga")

_ID_ALPHABET = string.ascii_lowercase + string.digits


class Outcome(Enum):
    """Result of a fixture. Values are the short codes used in files."""

    TBD = "TBD"
    HOME_REG_WIN = "H_REG"
    AWAY_REG_WIN = "A_REG"
    HOME_OT_WIN = "H_OT"
    AWAY_OT_WIN = "A_OT"

    @classmethod
    def parse(cls, value) -> "Outcome":
        """Return the outcome named by ``value``.

        Both member names (``HOME_REG_WIN``) and short codes (``H_REG``) are
        accepted. Blank or unknown values give :attr:`TBD`.
        """
        if isinstance(value, cls):
            return value
        key = str(value if value is not None else "").strip().upper()
        if not key:
            return cls.TBD
        for member in cls:
            if key == member.name or key == member.value:
                return member
        return cls.TBD

    @property
    def decided(self) -> bool:
        return self is not Outcome.TBD


def num(value) -> int | float:
    """Coerce ``value`` to a finite number, collapsing anything else to 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        value = value.strip()
        # float() accepts digit separators such as "1_000"; plain numbers only
        if not value or "_" in value:
            return 0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(parsed):
        return 0
    if parsed.is_integer():
        return int(parsed)
    return parsed


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def make_id() -> str:
    return "".join(random.choices(_ID_ALPHABET, k=7))


@dataclass
class Team:
    id: str = field(default_factory=make_id)
    name: str = ""
    gp: int = 0
    pts: int = 0
    rw: int = 0
    row: int = 0
    gf: int = 0
    ga: int = 0

    @property
    def gd(self) -> int | float:
        return num(self.gf) - num(self.ga)


@dataclass
class Game:
    id: str = field(default_factory=make_id)
    home_id: str = ""
    away_id: str = ""
    outcome: Outcome = Outcome.TBD
    prob_home: float = 0.5


@dataclass
class Standing:
    """Working copy of a team's counters for one computation."""

    id: str
    name: str
    gp: int | float = 0
    pts: int | float = 0
    rw: int | float = 0
    row: int | float = 0
    gf: int | float = 0
    ga: int | float = 0
    rank: int = 0

    @classmethod
    def from_team(cls, team: Team) -> "Standing":
        return cls(
            id=team.id,
            name=str(team.name if team.name is not None else ""),
            **{key: num(getattr(team, key)) for key in COUNTERS},
        )

    @property
    def gd(self) -> int | float:
        return self.gf - self.ga


def placeholder_teams(count: int = TEAM_COUNT_DEFAULT) -> list[Team]:
    """Return ``count`` empty teams named ``Team 1`` .. ``Team N``."""
    return [Team(name=f"Team {i + 1}") for i in range(count)]


def new_game(teams: list[Team]) -> Game:
    """Return an undecided fixture between the first two teams."""
    home_id = teams[0].id if len(teams) > 0 else ""
    away_id = teams[1].id if len(teams) > 1 else ""
    return Game(home_id=home_id, away_id=away_id)


def remove_team(
    teams: list[Team], games: list[Game], team_id: str
) -> tuple[list[Team], list[Game]]:
    """Drop ``team_id`` and every fixture that references it."""
    kept_teams = [t for t in teams if t.id != team_id]
    kept_games = [
        g for g in games if g.home_id != team_id and g.away_id != team_id
    ]
    return kept_teams, kept_games
