"""
Scoring for the score-prediction game.

Fans predict a fixture's final score before kick-off. Once the match is
finished the prediction is settled: an exact score earns 3 points, the
right outcome (home win, draw or away win) earns 1, anything else 0.
Points accumulate into a level (one level per 20 points, starting at 1)
and a badge; exact scores and correct outcomes extend the current streak,
a wrong prediction resets it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pitchside.data.schema import normalize_fixture
from pitchside.features.feature_builder import compute_outcome_label
from pitchside.utils.logging_utils import get_logger
from pitchside.utils.rounding import round_half_up_int

logger = get_logger(__name__)

EXACT_SCORE_POINTS = 3
CORRECT_WINNER_POINTS = 1
POINTS_PER_LEVEL = 20
LEADERBOARD_SIZE = 10


class PredictionStatus(str, Enum):
    PENDING = "pending"
    CORRECT_SCORE = "correct_score"
    CORRECT_WINNER = "correct_winner"
    WRONG = "wrong"


class Badge(str, Enum):
    BEGINNER = "Beginner"
    PRO = "Pro"
    EXPERT = "Expert"
    LEGEND = "Legend"


# Highest threshold first
_BADGE_LEVELS = (
    (20, Badge.LEGEND),
    (10, Badge.EXPERT),
    (5, Badge.PRO),
)


def _check_goals(home_goals: Any, away_goals: Any) -> None:
    for goals in (home_goals, away_goals):
        if isinstance(goals, bool) or not isinstance(goals, int) or goals < 0:
            raise ValueError(f"Goals must be non-negative integers, got {goals!r}")


def score_prediction(
    predicted: Tuple[int, int],
    actual: Tuple[int, int],
) -> Tuple[PredictionStatus, int]:
    """
    Score a predicted final score against the actual one.

    Parameters
    ----------
    predicted, actual : (int, int)
        ``(home_goals, away_goals)``.

    Returns
    -------
    (PredictionStatus, int)
        Settled status and points earned.

    Raises
    ------
    ValueError
        If any goal count is not a non-negative integer.
    """
    _check_goals(*predicted)
    _check_goals(*actual)

    if tuple(predicted) == tuple(actual):
        return PredictionStatus.CORRECT_SCORE, EXACT_SCORE_POINTS
    if compute_outcome_label(*predicted) == compute_outcome_label(*actual):
        return PredictionStatus.CORRECT_WINNER, CORRECT_WINNER_POINTS
    return PredictionStatus.WRONG, 0


def calculate_level(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def badge_for_level(level: int) -> Badge:
    for threshold, badge in _BADGE_LEVELS:
        if level >= threshold:
            return badge
    return Badge.BEGINNER


@dataclass(frozen=True)
class UserPrediction:
    """One fan's predicted score for one fixture."""

    match_id: str
    predicted_home_goals: int
    predicted_away_goals: int
    status: PredictionStatus = PredictionStatus.PENDING
    actual_home_goals: Optional[int] = None
    actual_away_goals: Optional[int] = None
    points_earned: int = 0

    def __post_init__(self) -> None:
        _check_goals(self.predicted_home_goals, self.predicted_away_goals)

    @property
    def is_pending(self) -> bool:
        return self.status is PredictionStatus.PENDING

    def settle(self, actual_home_goals: int, actual_away_goals: int) -> "UserPrediction":
        """
        Return a settled copy scored against the final score.

        Raises
        ------
        ValueError
            If the prediction is already settled or the score is invalid.
        """
        if not self.is_pending:
            raise ValueError(f"Prediction for match {self.match_id} is already settled.")
        status, points = score_prediction(
            (self.predicted_home_goals, self.predicted_away_goals),
            (actual_home_goals, actual_away_goals),
        )
        return replace(
            self,
            status=status,
            actual_home_goals=actual_home_goals,
            actual_away_goals=actual_away_goals,
            points_earned=points,
        )

    def settle_from_fixture(self, fixture: Mapping[str, Any]) -> Optional["UserPrediction"]:
        """
        Settle against an API-Football fixture payload.

        Returns None while the fixture is not finished (FT, AET or PEN).
        """
        row = normalize_fixture(fixture)
        if row is None:
            logger.debug("Match %s not finished yet; prediction stays pending.", self.match_id)
            return None
        return self.settle(int(row["home_goals"]), int(row["away_goals"]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchId": self.match_id,
            "predictedHomeGoals": self.predicted_home_goals,
            "predictedAwayGoals": self.predicted_away_goals,
            "actualHomeGoals": self.actual_home_goals,
            "actualAwayGoals": self.actual_away_goals,
            "pointsEarned": self.points_earned,
            "status": self.status.value,
        }


@dataclass
class GameStats:
    """A fan's running totals in the prediction game."""

    total_points: int = 0
    total_predictions: int = 0
    perfect_predictions: int = 0
    correct_winners: int = 0
    current_streak: int = 0
    longest_streak: int = 0

    @property
    def level(self) -> int:
        return calculate_level(self.total_points)

    @property
    def badge(self) -> Badge:
        return badge_for_level(self.level)

    @property
    def success_rate(self) -> int:
        """Percentage of predictions that scored, 0 before the first one."""
        if self.total_predictions == 0:
            return 0
        hits = self.perfect_predictions + self.correct_winners
        return round_half_up_int(hits / self.total_predictions * 100)

    @property
    def points_to_next_level(self) -> int:
        return self.level * POINTS_PER_LEVEL - self.total_points

    def record_submission(self) -> None:
        """Count a newly submitted prediction."""
        self.total_predictions += 1

    def apply(self, prediction: UserPrediction) -> None:
        """
        Fold a settled prediction into the totals.

        Raises
        ------
        ValueError
            If the prediction is still pending.
        """
        if prediction.is_pending:
            raise ValueError(f"Prediction for match {prediction.match_id} is not settled.")

        self.total_points += prediction.points_earned
        if prediction.status is PredictionStatus.CORRECT_SCORE:
            self.perfect_predictions += 1
            self.current_streak += 1
        elif prediction.status is PredictionStatus.CORRECT_WINNER:
            self.correct_winners += 1
            self.current_streak += 1
        else:
            self.current_streak = 0
        self.longest_streak = max(self.longest_streak, self.current_streak)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPoints": self.total_points,
            "totalPredictions": self.total_predictions,
            "perfectPredictions": self.perfect_predictions,
            "correctWinners": self.correct_winners,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "level": self.level,
            "badge": self.badge.value,
            "successRate": self.success_rate,
            "pointsToNextLevel": self.points_to_next_level,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameStats":
        return cls(
            total_points=int(data.get("totalPoints", 0)),
            total_predictions=int(data.get("totalPredictions", 0)),
            perfect_predictions=int(data.get("perfectPredictions", 0)),
            correct_winners=int(data.get("correctWinners", 0)),
            current_streak=int(data.get("currentStreak", 0)),
            longest_streak=int(data.get("longestStreak", 0)),
        )


def leaderboard(
    players: Mapping[str, GameStats],
    limit: int = LEADERBOARD_SIZE,
) -> List[Dict[str, Any]]:
    """
    Rank players by total points, ties in input order.

    Returns
    -------
    list of dict
        ``rank`` (from 1), ``name``, ``points``, ``level``, ``badge``,
        ``predictions`` and ``successRate``.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    ranked = sorted(players.items(), key=lambda item: item[1].total_points, reverse=True)
    return [
        {
            "rank": rank,
            "name": name,
            "points": stats.total_points,
            "level": stats.level,
            "badge": stats.badge.value,
            "predictions": stats.total_predictions,
            "successRate": stats.success_rate,
        }
        for rank, (name, stats) in enumerate(ranked[:limit], start=1)
    ]
