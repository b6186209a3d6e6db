"""
Schema and validation utilities for historical match records.

Match records reach Pitchside in two shapes: flat rows (CSV or JSON with
``home_team_id``/``homeTeamId`` style keys) and raw API-Football fixture
payloads (``teams.home.id``, ``goals.home``, ``fixture.status.short``...).
Both are normalized into flat rows, validated with pandas, and turned into
immutable `MatchRecord` objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from pitchside.config import FINISHED_STATUSES
from pitchside.utils.logging_utils import get_logger

logger = get_logger(__name__)

# Columns every match row must carry
REQUIRED_COLUMNS: List[str] = [
    "home_team_id",
    "away_team_id",
    "home_goals",
    "away_goals",
]

OPTIONAL_COLUMNS: List[str] = ["date", "league_id", "season"]

# camelCase keys accepted in flat JSON rows
COLUMN_ALIASES: Dict[str, str] = {
    "homeTeamId": "home_team_id",
    "awayTeamId": "away_team_id",
    "homeGoals": "home_goals",
    "awayGoals": "away_goals",
    "leagueId": "league_id",
}


@dataclass(frozen=True)
class MatchRecord:
    """A finished match. Never mutated after ingestion."""

    home_team_id: int
    away_team_id: int
    home_goals: int
    away_goals: int
    date: Optional[datetime] = None
    league_id: Optional[int] = None
    season: Optional[int | str] = None

    def __post_init__(self) -> None:
        if self.home_goals < 0 or self.away_goals < 0:
            raise ValueError(
                f"Goals cannot be negative: {self.home_goals}-{self.away_goals}"
            )

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def perspective(self, team_id: int) -> Tuple[int, int, bool]:
        """
        Return ``(goals_for, goals_against, is_home)`` for ``team_id``.

        Raises
        ------
        ValueError
            If the team did not play in this match.
        """
        if team_id == self.home_team_id:
            return self.home_goals, self.away_goals, True
        if team_id == self.away_team_id:
            return self.away_goals, self.home_goals, False
        raise ValueError(f"Team {team_id} did not play in this match.")


def is_fixture_payload(item: Mapping[str, Any]) -> bool:
    """True if ``item`` looks like an API-Football fixture payload."""
    return "teams" in item and "goals" in item


def normalize_fixture(
    fixture: Mapping[str, Any],
    finished_only: bool = True,
) -> Dict[str, Any] | None:
    """
    Flatten an API-Football fixture payload into a match row.

    Parameters
    ----------
    fixture : Mapping
        Fixture payload as returned by the ``/fixtures`` endpoints. League
        info is read from ``league`` or, for stored corpora, ``leagueInfo``.
    finished_only : bool
        Skip fixtures whose status is not one of FINISHED_STATUSES.

    Returns
    -------
    dict | None
        Flat row, or None if the fixture is unfinished or has no score.

    Raises
    ------
    ValueError
        If the payload has no team ids.
    """
    meta = fixture.get("fixture") or {}
    status = (meta.get("status") or {}).get("short")
    if finished_only and status is not None and status not in FINISHED_STATUSES:
        return None

    goals = fixture.get("goals") or {}
    if goals.get("home") is None or goals.get("away") is None:
        return None

    try:
        home_team_id = fixture["teams"]["home"]["id"]
        away_team_id = fixture["teams"]["away"]["id"]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Fixture payload has no team ids: {exc}") from exc

    league = fixture.get("league") or fixture.get("leagueInfo") or {}
    return {
        "home_team_id": home_team_id,
        "away_team_id": away_team_id,
        "home_goals": goals["home"],
        "away_goals": goals["away"],
        "date": meta.get("date"),
        "league_id": league.get("id"),
        "season": league.get("season"),
    }


def rows_from_payloads(items: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Normalize a mix of fixture payloads and flat rows into flat rows."""
    rows: List[Dict[str, Any]] = []
    skipped = 0
    for item in items:
        if is_fixture_payload(item):
            row = normalize_fixture(item)
            if row is None:
                skipped += 1
                continue
            rows.append(row)
        else:
            rows.append(dict(item))
    if skipped:
        logger.info("Skipped %d unfinished or unscored fixtures.", skipped)
    return rows


def validate_matches_df(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate that a DataFrame conforms to the match record schema.

    Checks:
    - All required columns are present (camelCase aliases are renamed).
    - Rows without a final score are dropped.
    - Team ids and goals are coerced to integers.
    - Date column is parsed to UTC datetimes.
    - Duplicate rows are dropped.

    Parameters
    ----------
    df : pandas.DataFrame
        Raw match rows.

    Returns
    -------
    pandas.DataFrame
        A validated (and possibly slightly adjusted) DataFrame.

    Raises
    ------
    ValueError
        If required columns are missing or goals are negative.
    """
    df = df.rename(columns=COLUMN_ALIASES)
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required match columns: {missing}")

    df = df.copy()
    for col in OPTIONAL_COLUMNS:
        if col not in df.columns:
            df[col] = None

    for col in REQUIRED_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    before = len(df)
    df = df.dropna(subset=REQUIRED_COLUMNS).copy()
    if len(df) < before:
        logger.warning(
            "Dropped %d rows without team ids or a final score.", before - len(df)
        )

    df[REQUIRED_COLUMNS] = df[REQUIRED_COLUMNS].astype(int)
    if (df[["home_goals", "away_goals"]] < 0).any().any():
        raise ValueError("Negative goal counts found in match data.")

    df["date"] = pd.to_datetime(df["date"], errors="coerce", utc=True)

    # Drop duplicate dated rows if any (warn but don't fail). Undated rows
    # cannot be told apart, so they are all kept.
    duplicated = df.duplicated(subset=REQUIRED_COLUMNS + ["date"]) & df["date"].notna()
    if duplicated.any():
        logger.info("Dropped %d duplicate match rows.", int(duplicated.sum()))
        df = df[~duplicated]

    return df.reset_index(drop=True)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def _season(value: Any) -> Optional[int | str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return str(value)


def records_from_df(df: pd.DataFrame) -> List[MatchRecord]:
    """Convert a validated DataFrame into MatchRecord objects."""
    records: List[MatchRecord] = []
    for row in df.itertuples(index=False):
        date = None if pd.isna(row.date) else row.date.to_pydatetime()
        records.append(
            MatchRecord(
                home_team_id=int(row.home_team_id),
                away_team_id=int(row.away_team_id),
                home_goals=int(row.home_goals),
                away_goals=int(row.away_goals),
                date=date,
                league_id=_optional_int(row.league_id),
                season=_season(row.season),
            )
        )
    return records


def records_from_payloads(items: Iterable[Mapping[str, Any]]) -> List[MatchRecord]:
    """
    Build MatchRecords from fixture payloads or flat dicts.

    Used both for training corpora and for live match data handed to the
    enrichment step. Input order is preserved.
    """
    rows = rows_from_payloads(items)
    if not rows:
        return []
    return records_from_df(validate_matches_df(pd.DataFrame(rows)))

