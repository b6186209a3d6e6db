"""
Result and input types shared by the prediction service and the heuristic
predictor.

Every ``to_dict()`` uses the camelCase keys of the prediction response
(``homeWin``, ``draw``, ``awayWin``, ``confidence``, ``recentForm``...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from pitchside.config import HIGH_CONFIDENCE_PCT, MEDIUM_CONFIDENCE_PCT
from pitchside.data.schema import MatchRecord, records_from_payloads
from pitchside.utils.rounding import round_half_up_int


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def confidence_level(max_pct: float) -> Confidence:
    """Bucket the largest outcome percentage: >=50 high, >=40 medium, else low."""
    if max_pct >= HIGH_CONFIDENCE_PCT:
        return Confidence.HIGH
    if max_pct >= MEDIUM_CONFIDENCE_PCT:
        return Confidence.MEDIUM
    return Confidence.LOW


def probabilities_to_percentages(probabilities: Sequence[float]) -> Tuple[int, int, int]:
    """
    Convert three outcome probabilities to integer percentages summing to 100.

    Each probability is rounded on its own; any rounding discrepancy is
    added to (or taken from) the largest bucket.

    Raises
    ------
    ValueError
        If there are not exactly three finite, non-negative values with a
        positive sum.
    """
    probs = np.asarray(probabilities, dtype=float)
    if probs.shape != (3,):
        raise ValueError(f"Expected 3 probabilities, got shape {probs.shape}")
    if not np.all(np.isfinite(probs)) or np.any(probs < 0) or probs.sum() <= 0:
        raise ValueError(f"Invalid outcome probabilities: {probs.tolist()}")

    probs = probs / probs.sum()
    pct = [round_half_up_int(p * 100) for p in probs]
    discrepancy = 100 - sum(pct)
    if discrepancy:
        pct[int(np.argmax(pct))] += discrepancy
    return pct[0], pct[1], pct[2]


@dataclass(frozen=True)
class PredictionResult:
    """Win/draw/loss percentages (summing to 100) plus a confidence bucket."""

    home_win_pct: int
    draw_pct: int
    away_win_pct: int
    confidence_level: Confidence

    def __post_init__(self) -> None:
        values = (self.home_win_pct, self.draw_pct, self.away_win_pct)
        if any(v < 0 for v in values) or sum(values) != 100:
            raise ValueError(f"Percentages must be non-negative and sum to 100: {values}")

    @classmethod
    def from_percentages(cls, home: int, draw: int, away: int) -> "PredictionResult":
        return cls(home, draw, away, confidence_level(max(home, draw, away)))

    @classmethod
    def from_probabilities(cls, probabilities: Sequence[float]) -> "PredictionResult":
        return cls.from_percentages(*probabilities_to_percentages(probabilities))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predictions": {
                "homeWin": self.home_win_pct,
                "draw": self.draw_pct,
                "awayWin": self.away_win_pct,
            },
            "confidence": self.confidence_level.value,
        }


@dataclass(frozen=True)
class HeadToHead:
    """Results between the two teams, counted from the current home side."""

    home_wins: int = 0
    draws: int = 0
    away_wins: int = 0
    total_matches: int = 0
    last_result: Optional[str] = None
    matches: Tuple[Dict[str, Any], ...] = ()

    @property
    def home_win_rate(self) -> float:
        return self.home_wins / self.total_matches if self.total_matches else 0.0

    @property
    def away_win_rate(self) -> float:
        return self.away_wins / self.total_matches if self.total_matches else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "homeWins": self.home_wins,
            "draws": self.draws,
            "awayWins": self.away_wins,
            "totalMatches": self.total_matches,
            "lastResult": self.last_result if self.last_result is not None else "N/A",
            "matches": list(self.matches),
        }


@dataclass(frozen=True)
class HomeAdvantage:
    """Home team's win % at home and away team's win % away."""

    home_win_rate: int
    away_win_rate: int

    def to_dict(self) -> Dict[str, int]:
        return {"homeWinRate": self.home_win_rate, "awayWinRate": self.away_win_rate}


@dataclass(frozen=True)
class GoalsAverage:
    home_scored: float
    home_conceded: float
    away_scored: float
    away_conceded: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "homeScored": self.home_scored,
            "homeConceded": self.home_conceded,
            "awayScored": self.away_scored,
            "awayConceded": self.away_conceded,
        }


@dataclass(frozen=True)
class MatchFactors:
    """
    Explanatory factors attached to a prediction.

    ``synthetic_form`` is True while the recent-form letters are the
    model-side approximation rather than real recent results.
    """

    recent_form_home: Tuple[str, ...]
    recent_form_away: Tuple[str, ...]
    head_to_head: HeadToHead
    home_advantage: HomeAdvantage
    goals_average: GoalsAverage
    synthetic_form: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recentForm": {
                "home": list(self.recent_form_home),
                "away": list(self.recent_form_away),
                "synthetic": self.synthetic_form,
            },
            "headToHead": self.head_to_head.to_dict(),
            "homeAdvantage": self.home_advantage.to_dict(),
            "goalsAverage": self.goals_average.to_dict(),
        }


def _nested(payload: Mapping[str, Any], *keys: str) -> Any:
    value: Any = payload
    for key in keys:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


@dataclass(frozen=True)
class SeasonSummary:
    """Season statistics of one team, as supplied by the caller."""

    played: Optional[int] = None
    wins: Optional[int] = None
    draws: Optional[int] = None
    losses: Optional[int] = None
    goals_for: Optional[int] = None
    goals_against: Optional[int] = None
    clean_sheets: Optional[int] = None
    failed_to_score: Optional[int] = None

    @classmethod
    def from_api(cls, payload: Optional[Mapping[str, Any]]) -> Optional["SeasonSummary"]:
        """
        Summarize an API-Football ``/teams/statistics`` response body.

        Returns None when there is no payload.
        """
        if not payload:
            return None
        return cls(
            played=_nested(payload, "fixtures", "played", "total"),
            wins=_nested(payload, "fixtures", "wins", "total"),
            draws=_nested(payload, "fixtures", "draws", "total"),
            losses=_nested(payload, "fixtures", "loses", "total"),
            goals_for=_nested(payload, "goals", "for", "total", "total"),
            goals_against=_nested(payload, "goals", "against", "total", "total"),
            clean_sheets=_nested(payload, "clean_sheet", "total"),
            failed_to_score=_nested(payload, "failed_to_score", "total"),
        )

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {
            "played": self.played,
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "goalsFor": self.goals_for,
            "goalsAgainst": self.goals_against,
            "cleanSheets": self.clean_sheets,
            "failedToScore": self.failed_to_score,
        }


@dataclass(frozen=True)
class LiveMatchData:
    """
    Already-fetched live data for a fixture.

    Match sequences are expected newest first when they carry no dates;
    dated sequences are re-ordered newest first.
    """

    home_recent: Tuple[MatchRecord, ...] = ()
    away_recent: Tuple[MatchRecord, ...] = ()
    head_to_head: Tuple[MatchRecord, ...] = ()
    home_season: Optional[SeasonSummary] = None
    away_season: Optional[SeasonSummary] = None

    @classmethod
    def from_payloads(
        cls,
        home_recent: Sequence[Mapping[str, Any]] = (),
        away_recent: Sequence[Mapping[str, Any]] = (),
        head_to_head: Sequence[Mapping[str, Any]] = (),
        home_season: Optional[Mapping[str, Any]] = None,
        away_season: Optional[Mapping[str, Any]] = None,
    ) -> "LiveMatchData":
        """Build live data from fixture payloads / flat dicts and API statistics."""
        return cls(
            home_recent=tuple(records_from_payloads(home_recent)),
            away_recent=tuple(records_from_payloads(away_recent)),
            head_to_head=tuple(records_from_payloads(head_to_head)),
            home_season=SeasonSummary.from_api(home_season),
            away_season=SeasonSummary.from_api(away_season),
        )


@dataclass(frozen=True)
class MatchPrediction:
    """Full prediction response for one fixture."""

    home_team_id: int
    away_team_id: int
    result: PredictionResult
    factors: MatchFactors
    source: str
    home_season: Optional[SeasonSummary] = None
    away_season: Optional[SeasonSummary] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "homeTeam": {"id": self.home_team_id},
            "awayTeam": {"id": self.away_team_id},
            **self.result.to_dict(),
            "factors": self.factors.to_dict(),
            "seasonStats": {
                "home": self.home_season.to_dict() if self.home_season else None,
                "away": self.away_season.to_dict() if self.away_season else None,
            },
            "source": self.source,
        }
        out.update(self.extras)
        return out
