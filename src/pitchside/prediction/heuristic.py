"""
Weighted-score match predictor that needs no trained model.

Both teams start at 50 points. Form, head-to-head, home advantage, goal
averages and (optionally) league positions move points from one side to the
other; the draw share shrinks as the two scores drift apart. The three
scores are then normalized to integer percentages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pitchside.config import RECENT_FORM_WINDOW
from pitchside.prediction.enrichment import (
    goals_average,
    goals_average_factor,
    head_to_head_summary,
    recent_form,
)
from pitchside.prediction.results import (
    HomeAdvantage,
    LiveMatchData,
    MatchFactors,
    MatchPrediction,
    PredictionResult,
)
from pitchside.utils.logging_utils import get_logger
from pitchside.utils.rounding import round_half_up_int

logger = get_logger(__name__)


@dataclass(frozen=True)
class HeuristicConfig:
    """
    Weights and constants of the heuristic predictor.

    The home-advantage numbers (``home_win_rate``, ``away_win_rate``,
    ``home_benefit``) are uncalibrated defaults and should be fitted
    against real results before being trusted.
    """

    base_score: float = 50.0

    form_weight: float = 0.35
    form_scale: float = 25.0
    default_form_win_rate: float = 0.5

    h2h_weight: float = 0.25
    h2h_scale: float = 20.0
    h2h_min_matches: int = 3

    home_win_rate: int = 68
    away_win_rate: int = 45
    home_benefit: float = 1.2
    home_bonus_scale: float = 8.0
    away_penalty_scale: float = 4.0

    goals_scale: float = 2.0
    default_goals_average: float = 1.5

    position_divisor: float = 20.0
    position_scale: float = 5.0

    draw_floor: float = 10.0
    draw_base: float = 35.0

    window: int = RECENT_FORM_WINDOW


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class HeuristicPredictor:
    """Rule-based fallback predictor; stateless apart from its config."""

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config if config is not None else HeuristicConfig()

    def predict(
        self,
        home_team_id: int,
        away_team_id: int,
        live: Optional[LiveMatchData] = None,
        home_position: Optional[int] = None,
        away_position: Optional[int] = None,
    ) -> MatchPrediction:
        """
        Predict a fixture from live data alone.

        Parameters
        ----------
        home_team_id, away_team_id : int
            Teams of the fixture.
        live : LiveMatchData | None
            Recent matches, head-to-head meetings and season statistics.
            Missing data falls back to neutral defaults.
        home_position, away_position : int | None
            League positions; the position term is applied only when both
            are given.
        """
        cfg = self.config
        live = live if live is not None else LiveMatchData()

        home_score = cfg.base_score
        away_score = cfg.base_score

        # Form
        home_form = recent_form(live.home_recent, home_team_id, cfg.window)
        away_form = recent_form(live.away_recent, away_team_id, cfg.window)
        home_rate = home_form.count("W") / len(home_form) if home_form else cfg.default_form_win_rate
        away_rate = away_form.count("W") / len(away_form) if away_form else cfg.default_form_win_rate
        form_diff = (home_rate - away_rate) * cfg.form_weight
        home_score += form_diff * cfg.form_scale
        away_score -= form_diff * cfg.form_scale

        # Head-to-head
        h2h = head_to_head_summary(live.head_to_head, home_team_id, away_team_id, cfg.window)
        if h2h.total_matches >= cfg.h2h_min_matches:
            h2h_diff = (h2h.home_win_rate - h2h.away_win_rate) * cfg.h2h_weight
            home_score += h2h_diff * cfg.h2h_scale
            away_score -= h2h_diff * cfg.h2h_scale

        # Home advantage
        home_score += cfg.home_benefit * cfg.home_bonus_scale
        away_score -= cfg.home_benefit * cfg.away_penalty_scale

        # Goals
        goals = goals_average_factor(
            goals_average(live.home_recent, home_team_id, cfg.window),
            goals_average(live.away_recent, away_team_id, cfg.window),
            cfg.default_goals_average,
        )
        goals_diff = (goals.home_scored - goals.away_conceded) - (
            goals.away_scored - goals.home_conceded
        )
        home_score += goals_diff * cfg.goals_scale
        away_score -= goals_diff * cfg.goals_scale

        # League position
        if home_position and away_position:
            position_diff = (away_position - home_position) / cfg.position_divisor
            home_score += position_diff * cfg.position_scale
            away_score -= position_diff * cfg.position_scale

        home_score = _clamp(home_score)
        away_score = _clamp(away_score)
        draw_score = max(cfg.draw_floor, cfg.draw_base - abs(home_score - away_score) / 2)

        total = home_score + away_score + draw_score
        home_pct = round_half_up_int(home_score / total * 100)
        away_pct = round_half_up_int(away_score / total * 100)
        draw_pct = 100 - home_pct - away_pct

        result = PredictionResult.from_percentages(home_pct, draw_pct, away_pct)
        logger.debug(
            "Heuristic prediction %s vs %s: %s", home_team_id, away_team_id, result
        )

        factors = MatchFactors(
            recent_form_home=tuple(home_form),
            recent_form_away=tuple(away_form),
            head_to_head=h2h,
            home_advantage=HomeAdvantage(cfg.home_win_rate, cfg.away_win_rate),
            goals_average=goals,
            synthetic_form=False,
        )
        return MatchPrediction(
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            result=result,
            factors=factors,
            source="heuristic",
            home_season=live.home_season,
            away_season=live.away_season,
        )
