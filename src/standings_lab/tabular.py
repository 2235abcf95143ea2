"""CSV import and export for team and fixture tables."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from .models import PROB_MAX, PROB_MIN, Game, Outcome, Team, clamp, num

logger = logging.getLogger(__name__)

TEAM_COLUMNS = ["name", "gp", "pts", "rw", "row", "gf", "ga"]
GAME_COLUMNS = ["home", "away", "outcome", "probHome"]


def to_csv_row(values: Iterable) -> str:
    """Join ``values`` into one CSV line, quoting fields when needed."""
    cells = []
    for value in values:
        text = "" if value is None else str(value)
        if "," in text or '"' in text or "\n" in text:
            text = '"' + text.replace('"', '""') + '"'
        cells.append(text)
    return ",".join(cells)


def parse_csv(text: str) -> list[list[str]]:
    """Split CSV ``text`` into rows of strings.

    Quoted fields may contain commas, newlines and doubled quotes. Rows whose
    cells are all blank are dropped. Ragged rows are kept at their own
    length, and an unterminated quote runs to the end of the text as one
    field.
    """
    rows: list[list[str]] = []
    current: list[str] = []
    value: list[str] = []
    in_quotes = False
    i = 0
    while i < len(text):
        char = text[i]
        if char == '"' and in_quotes and text[i + 1:i + 2] == '"':
            value.append('"')
            i += 1
        elif char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            current.append("".join(value))
            value = []
        elif char in "\r\n" and not in_quotes:
            if value or current:
                current.append("".join(value))
                rows.append(current)
                current = []
                value = []
        else:
            value.append(char)
        i += 1
    if in_quotes:
        logger.warning("Unterminated quote in CSV; reading it to the end of the text")
    if value or current:
        current.append("".join(value))
        rows.append(current)

    rows = [row for row in rows if any(cell.strip() for cell in row)]
    if rows:
        width = len(rows[0])
        ragged = sum(1 for row in rows[1:] if len(row) != width)
        if ragged:
            logger.debug("%d CSV rows differ from the %d-column header", ragged, width)
    return rows


def _lookup(header: Sequence[str], row: Sequence[str]):
    normalized = [key.strip().lower() for key in header]

    def lookup(key: str) -> str:
        try:
            idx = normalized.index(key.lower())
        except ValueError:
            return ""
        return row[idx] if idx < len(row) else ""

    return lookup


def teams_to_csv(teams: Sequence[Team]) -> str:
    rows = [TEAM_COLUMNS]
    rows += [[getattr(team, key) for key in TEAM_COLUMNS] for team in teams]
    return "\n".join(to_csv_row(row) for row in rows)


def teams_from_csv(text: str) -> list[Team]:
    """Build teams from CSV ``text`` with a ``name,gp,pts,rw,row,gf,ga`` header.

    Missing columns default to 0 and a missing name becomes ``Unnamed team``.
    Every imported team receives a fresh id.
    """
    rows = parse_csv(text)
    if not rows:
        return []
    header, *data = rows
    teams: list[Team] = []
    for row in data:
        lookup = _lookup(header, row)
        teams.append(
            Team(
                name=lookup("name") or "Unnamed team",
                **{key: num(lookup(key)) for key in TEAM_COLUMNS[1:]},
            )
        )
    logger.debug("Imported %d teams", len(teams))
    return teams


def games_to_csv(teams: Sequence[Team], games: Sequence[Game]) -> str:
    names = {team.id: team.name for team in teams}
    rows = [GAME_COLUMNS]
    for game in games:
        rows.append(
            [
                names.get(game.home_id, ""),
                names.get(game.away_id, ""),
                Outcome.parse(game.outcome).value,
                game.prob_home,
            ]
        )
    return "\n".join(to_csv_row(row) for row in rows)


def games_from_csv(
    text: str, teams: Sequence[Team]
) -> tuple[list[Team], list[Game]]:
    """Build fixtures from CSV ``text`` with a ``home,away,outcome,probHome`` header.

    Team names are matched case-insensitively against ``teams``; unknown names
    create new teams with empty statistics. Returns the extended team list and
    the imported games. ``teams`` itself is left untouched.
    """
    rows = parse_csv(text)
    next_teams = list(teams)
    if not rows:
        return next_teams, []
    header, *data = rows
    by_name = {team.name.strip().lower(): team for team in teams}

    def find_or_create(name: str) -> str:
        key = str(name).strip().lower()
        if not key:
            return ""
        existing = by_name.get(key)
        if existing is not None:
            return existing.id
        created = Team(name=name)
        by_name[key] = created
        next_teams.append(created)
        logger.debug("Created team %r from fixture import", name)
        return created.id

    games: list[Game] = []
    for row in data:
        lookup = _lookup(header, row)
        games.append(
            Game(
                home_id=find_or_create(lookup("home")),
                away_id=find_or_create(lookup("away")),
                outcome=Outcome.parse(lookup("outcome")),
                prob_home=clamp(num(lookup("probHome")) or 0.5, PROB_MIN, PROB_MAX),
            )
        )
    logger.debug("Imported %d games", len(games))
    return next_teams, games


def read_teams_csv(path: str | Path) -> list[Team]:
    return teams_from_csv(Path(path).read_text(encoding="utf-8-sig"))


def read_games_csv(
    path: str | Path, teams: Sequence[Team]
) -> tuple[list[Team], list[Game]]:
    return games_from_csv(Path(path).read_text(encoding="utf-8-sig"), teams)


TEAMS_TEMPLATE = "\n".join(
    to_csv_row(row)
    for row in [
        TEAM_COLUMNS,
        ["Vaxjo Lakers", 38, 75, 16, 22, 112, 89],
        ["Frolunda", 38, 70, 15, 20, 104, 92],
        ["Skelleftea", 38, 68, 14, 19, 109, 95],
    ]
)

GAMES_TEMPLATE = "\n".join(
    to_csv_row(row)
    for row in [
        GAME_COLUMNS,
        ["Vaxjo Lakers", "Frolunda", "TBD", 0.58],
        ["Skelleftea", "Vaxjo Lakers", "H_REG", 0.6],
        ["Frolunda", "Skelleftea", "A_OT", 0.48],
    ]
)
