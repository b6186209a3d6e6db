"""
Data loading utilities for Pitchside.

This module loads historical match corpora (finished matches only) from JSON
or CSV files and turns them into validated MatchRecord objects.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd

from pitchside.data.schema import (
    MatchRecord,
    records_from_df,
    rows_from_payloads,
    validate_matches_df,
)
from pitchside.utils.logging_utils import get_logger
from pitchside.utils.paths import get_raw_data_path

logger = get_logger(__name__)


def _read_json_rows(json_path: Path) -> List[dict[str, Any]]:
    with json_path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)

    # API-Football envelopes wrap fixtures in "response"
    if isinstance(payload, dict):
        payload = payload.get("response", payload.get("matches"))
    if not isinstance(payload, list):
        raise ValueError(
            f"Expected a list of matches in {json_path}, got {type(payload).__name__}."
        )
    return rows_from_payloads(payload)


def load_matches_df(path: Optional[Path | str] = None) -> pd.DataFrame:
    """
    Load a match corpus into a validated DataFrame.

    Parameters
    ----------
    path : pathlib.Path | str | None
        Path to a .json or .csv corpus. If None, uses the default path from
        config.

    Returns
    -------
    pandas.DataFrame
        Validated match rows.

    Raises
    ------
    FileNotFoundError
        If the corpus file does not exist.
    ValueError
        If the file type is unsupported or the content fails validation.
    """
    corpus_path = Path(path) if path is not None else get_raw_data_path()
    if not corpus_path.exists():
        raise FileNotFoundError(f"Match corpus not found: {corpus_path}")

    logger.info("Loading match corpus from %s", corpus_path)
    suffix = corpus_path.suffix.lower()
    if suffix == ".json":
        df = pd.DataFrame(_read_json_rows(corpus_path))
    elif suffix == ".csv":
        df = pd.read_csv(corpus_path)
    else:
        raise ValueError(f"Unsupported corpus format: {corpus_path.suffix}")

    df = validate_matches_df(df)
    logger.info("Loaded %d valid match rows.", len(df))
    return df


def load_match_corpus(path: Optional[Path | str] = None) -> List[MatchRecord]:
    """Load a match corpus as a list of MatchRecord objects."""
    return records_from_df(load_matches_df(path))


def save_match_corpus(records: List[MatchRecord], path: Path | str) -> Path:
    """
    Write MatchRecords to a flat JSON corpus readable by load_match_corpus.

    Returns
    -------
    pathlib.Path
        The written path.
    """
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    rows = [
        {
            "homeTeamId": r.home_team_id,
            "awayTeamId": r.away_team_id,
            "homeGoals": r.home_goals,
            "awayGoals": r.away_goals,
            "date": r.date.isoformat() if r.date is not None else None,
            "leagueId": r.league_id,
            "season": r.season,
        }
        for r in records
    ]
    with out_path.open("w", encoding="utf-8") as fh:
        json.dump(rows, fh, indent=2)
    logger.info("Saved %d matches to %s", len(rows), out_path)
    return out_path

