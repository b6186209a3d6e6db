"""
Feature engineering utilities for Pitchside.

This module transforms aggregated team statistics into model-ready features:

- Creates outcome labels (home_win / draw / away_win).
- Derives the fixed 10-feature vector for a (home, away) pairing.
- Builds the labeled training set from a historical corpus, skipping
  matches whose teams have too little history or whose features are not
  finite.
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from pitchside.config import (
    CLASS_LABELS,
    FEATURE_NAMES,
    GOALS_PER_MATCH_CAP,
    MIN_TEAM_MATCHES,
)
from pitchside.data.schema import MatchRecord
from pitchside.errors import UnknownTeamError
from pitchside.features.team_stats import TeamStats
from pitchside.utils.logging_utils import get_logger

logger = get_logger(__name__)

N_FEATURES = len(FEATURE_NAMES)


def compute_outcome_label(
    home_goals: int,
    away_goals: int,
) -> str:
    """
    Compute the match outcome from the home team's perspective.

    Parameters
    ----------
    home_goals : int
        Goals scored by the home team.
    away_goals : int
        Goals scored by the away team.

    Returns
    -------
    str
        One of 'home_win', 'draw', 'away_win'.
    """
    if home_goals > away_goals:
        return "home_win"
    if home_goals < away_goals:
        return "away_win"
    return "draw"


def outcome_index(match: MatchRecord) -> int:
    """Class index of a match outcome in CLASS_LABELS order."""
    return CLASS_LABELS.index(compute_outcome_label(match.home_goals, match.away_goals))


def _goals_rate(goals: int, matches: int) -> float:
    return min(goals / matches / GOALS_PER_MATCH_CAP, 1.0)


def extract_features(
    home_stats: Optional[TeamStats],
    away_stats: Optional[TeamStats],
    home_team_id: Optional[int] = None,
    away_team_id: Optional[int] = None,
) -> np.ndarray:
    """
    Derive the feature vector for a team pairing.

    Denominators are floored at 1, goals per match are divided by
    GOALS_PER_MATCH_CAP and capped at 1. The goal difference term is clipped
    to [-1, 1] so that every feature stays in that range.

    Parameters
    ----------
    home_stats, away_stats : TeamStats
        Aggregated statistics of both teams. Both are required.
    home_team_id, away_team_id : int | None
        Fixture team ids, reported on `UnknownTeamError` when the matching
        statistics are missing.

    Returns
    -------
    np.ndarray
        Shape (10,), in FEATURE_NAMES order.

    Raises
    ------
    UnknownTeamError
        If either side has no statistics.
    """
    sides = (("home", home_stats, home_team_id), ("away", away_stats, away_team_id))
    missing = [(side, team_id) for side, stats, team_id in sides if stats is None]
    if missing:
        raise UnknownTeamError(
            [team_id for _, team_id in missing if team_id is not None],
            sides=[side for side, _ in missing],
        )

    home_matches = max(home_stats.matches_played, 1)
    away_matches = max(away_stats.matches_played, 1)
    home_matches_at_home = max(home_stats.home_matches_played, 1)
    away_matches_away = max(away_stats.away_matches_played, 1)

    home_win_rate = home_stats.wins / home_matches
    home_goals = _goals_rate(home_stats.goals_scored, home_matches)
    home_conceded = _goals_rate(home_stats.goals_conceded, home_matches)

    away_win_rate = away_stats.wins / away_matches
    away_goals = _goals_rate(away_stats.goals_scored, away_matches)
    away_conceded = _goals_rate(away_stats.goals_conceded, away_matches)

    home_win_rate_at_home = home_stats.home_wins / home_matches_at_home
    away_win_rate_away = away_stats.away_wins / away_matches_away

    form_difference = home_win_rate - away_win_rate
    goal_difference = (home_goals - home_conceded) - (away_goals - away_conceded)

    return np.array(
        [
            home_win_rate,
            home_goals,
            home_conceded,
            away_win_rate,
            away_goals,
            away_conceded,
            home_win_rate_at_home,
            away_win_rate_away,
            form_difference,
            float(np.clip(goal_difference, -1.0, 1.0)),
        ],
        dtype=float,
    )


def build_training_examples(
    matches: Sequence[MatchRecord],
    team_stats: Mapping[int, TeamStats],
    min_team_matches: int = MIN_TEAM_MATCHES,
) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    Build the labeled training set.

    A match is skipped when either team is unknown or has fewer than
    ``min_team_matches`` aggregated matches, or when any feature is NaN/Inf.

    Returns
    -------
    (X, y, n_skipped)
        X : shape (n_valid, 10) float array.
        y : shape (n_valid,) class indices in CLASS_LABELS order.
        n_skipped : number of matches dropped.
    """
    features: List[np.ndarray] = []
    labels: List[int] = []
    skipped = 0

    for match in matches:
        home = team_stats.get(match.home_team_id)
        away = team_stats.get(match.away_team_id)
        if (
            home is None
            or away is None
            or home.matches_played < min_team_matches
            or away.matches_played < min_team_matches
        ):
            skipped += 1
            continue

        x = extract_features(home, away, match.home_team_id, match.away_team_id)
        if not np.all(np.isfinite(x)):
            skipped += 1
            continue

        features.append(x)
        labels.append(outcome_index(match))

    logger.info("Valid training examples: %d", len(features))
    logger.info("Skipped matches: %d (insufficient or invalid data)", skipped)

    X = np.vstack(features) if features else np.empty((0, N_FEATURES), dtype=float)
    y = np.asarray(labels, dtype=int)
    return X, y, skipped
