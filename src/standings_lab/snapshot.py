"""JSON snapshots of a league: the ``{teams, games}`` payload a store hands over."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

from .models import COUNTERS, Game, Outcome, Team, make_id, num


def _team_from_dict(data: dict) -> Team:
    return Team(
        id=str(data.get("id") or make_id()),
        name=str(data.get("name") or ""),
        **{key: num(data.get(key)) for key in COUNTERS},
    )


def _game_from_dict(data: dict) -> Game:
    prob = data.get("probHome")
    return Game(
        id=str(data.get("id") or make_id()),
        home_id=str(data.get("homeId") or ""),
        away_id=str(data.get("awayId") or ""),
        outcome=Outcome.parse(data.get("outcome")),
        prob_home=0.5 if prob is None else num(prob),
    )


def snapshot_from_dict(data: dict | None) -> tuple[list[Team], list[Game]]:
    """Return the teams and games stored in a ``{teams, games}`` snapshot.

    Missing or non-list entries are read as empty, and entries that are not
    objects are ignored.
    """
    if not isinstance(data, dict):
        data = {}
    raw_teams = data.get("teams")
    raw_games = data.get("games")
    if not isinstance(raw_teams, list):
        raw_teams = []
    if not isinstance(raw_games, list):
        raw_games = []
    teams = [_team_from_dict(t) for t in raw_teams if isinstance(t, dict)]
    games = [_game_from_dict(g) for g in raw_games if isinstance(g, dict)]
    return teams, games


def snapshot_to_dict(teams: Sequence[Team], games: Sequence[Game]) -> dict:
    return {
        "teams": [
            {"id": t.id, "name": t.name, **{key: getattr(t, key) for key in COUNTERS}}
            for t in teams
        ],
        "games": [
            {
                "id": g.id,
                "homeId": g.home_id,
                "awayId": g.away_id,
                "outcome": Outcome.parse(g.outcome).value,
                "probHome": g.prob_home,
            }
            for g in games
        ],
    }


def load_snapshot(path: str | Path) -> tuple[list[Team], list[Game]]:
    with open(path, "r", encoding="utf-8-sig") as f:
        return snapshot_from_dict(json.load(f))


def save_snapshot(path: str | Path, teams: Sequence[Team], games: Sequence[Game]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(teams, games), f, indent=2, ensure_ascii=False)
