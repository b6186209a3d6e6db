"""
Model-backed match prediction.

Usage (from project root):

    python -m pitchside.prediction.service --home 33 --away 34

A `PredictionService` owns one loaded classifier and its metadata. Create
one per model version and pass it to whatever needs predictions; nothing
is stored at module level.
"""

from __future__ import annotations

import argparse
import json
import random
import threading
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from pitchside.config import RECENT_FORM_WINDOW
from pitchside.errors import ModelNotInitializedError, PitchsideError, UnknownTeamError
from pitchside.features.feature_builder import extract_features
from pitchside.features.team_stats import TeamStats
from pitchside.models.network import OutcomeClassifier
from pitchside.models.serialization import ModelMetadata, load_model_artifact
from pitchside.prediction.enrichment import merge_live_factors
from pitchside.prediction.results import (
    GoalsAverage,
    HeadToHead,
    HomeAdvantage,
    LiveMatchData,
    MatchFactors,
    MatchPrediction,
    PredictionResult,
)
from pitchside.utils.logging_utils import configure_logging, get_logger
from pitchside.utils.paths import PathLike, get_model_dir
from pitchside.utils.rounding import round_half_up, round_half_up_int

logger = get_logger(__name__)

# P(D) used when synthesizing form letters
SYNTHETIC_DRAW_PROBABILITY = 0.25


def synthesize_form(
    win_rate: float,
    rng: random.Random,
    length: int = RECENT_FORM_WINDOW,
) -> List[str]:
    """
    Approximate a form string from a season win rate.

    Each letter is drawn independently: W with probability ``win_rate``, D
    with probability 0.25, L otherwise. This is a stand-in for real recent
    results and is only shown when none were supplied.
    """
    form = []
    for _ in range(length):
        r = rng.random()
        if r < win_rate:
            form.append("W")
        elif r < win_rate + SYNTHETIC_DRAW_PROBABILITY:
            form.append("D")
        else:
            form.append("L")
    return form


class PredictionService:
    """
    Predict fixtures with a trained classifier.

    Parameters
    ----------
    model_dir : str | Path | None
        Artifact directory. Defaults to models/outcome_classifier.
    rng : random.Random | None
        Random source for the synthesized form letters. Pass a seeded
        instance to make them reproducible.
    """

    def __init__(
        self,
        model_dir: Optional[PathLike] = None,
        rng: Optional[random.Random] = None,
    ):
        self.model_dir = get_model_dir(model_dir)
        self._rng = rng if rng is not None else random.Random()
        self._lock = threading.Lock()
        self._classifier: Optional[OutcomeClassifier] = None
        self._metadata: Optional[ModelMetadata] = None

    @classmethod
    def from_artifacts(
        cls,
        classifier: OutcomeClassifier,
        metadata: ModelMetadata,
        rng: Optional[random.Random] = None,
    ) -> "PredictionService":
        """Build a ready service around an in-memory classifier."""
        service = cls(rng=rng)
        service._install(classifier, metadata)
        return service

    def _install(self, classifier: OutcomeClassifier, metadata: ModelMetadata) -> None:
        classifier.freeze()
        self._metadata = metadata
        self._classifier = classifier

    def initialize(self) -> "PredictionService":
        """
        Load the model artifact. Safe to call repeatedly and concurrently;
        only the first call reads from disk.

        Raises
        ------
        FileNotFoundError
            If the artifact has not been trained yet.
        """
        if self.is_ready:
            return self
        with self._lock:
            if self._classifier is None:
                logger.info("Loading prediction model from %s", self.model_dir)
                classifier, metadata = load_model_artifact(self.model_dir)
                self._install(classifier, metadata)
                logger.info("Model accuracy: %.2f%%", metadata.accuracy * 100)
                logger.info("Teams in database: %d", len(metadata.team_stats))
        return self

    @property
    def is_ready(self) -> bool:
        return self._classifier is not None

    @property
    def metadata(self) -> ModelMetadata:
        if self._metadata is None:
            raise ModelNotInitializedError()
        return self._metadata

    def _team_stats(self, home_team_id: int, away_team_id: int) -> Tuple[TeamStats, TeamStats]:
        team_stats = self.metadata.team_stats
        missing = [t for t in (home_team_id, away_team_id) if t not in team_stats]
        if missing:
            logger.warning("No training data for team(s) %s", missing)
            raise UnknownTeamError(missing)
        return team_stats[home_team_id], team_stats[away_team_id]

    def predict_probabilities(self, home_team_id: int, away_team_id: int) -> np.ndarray:
        """
        Raw (home win, draw, away win) probabilities.

        Raises
        ------
        ModelNotInitializedError
            If `initialize` has not been called.
        UnknownTeamError
            If either team is absent from the training data.
        """
        if self._classifier is None:
            raise ModelNotInitializedError()
        home, away = self._team_stats(home_team_id, away_team_id)
        features = extract_features(home, away, home_team_id, away_team_id)
        return self._classifier.predict_proba(features)[0]

    def _model_factors(self, home: TeamStats, away: TeamStats) -> MatchFactors:
        home_matches = max(home.matches_played, 1)
        away_matches = max(away.matches_played, 1)
        return MatchFactors(
            recent_form_home=tuple(synthesize_form(home.win_rate, self._rng)),
            recent_form_away=tuple(synthesize_form(away.win_rate, self._rng)),
            head_to_head=HeadToHead(),
            home_advantage=HomeAdvantage(
                home_win_rate=round_half_up_int(
                    home.home_wins / max(home.home_matches_played, 1) * 100
                ),
                away_win_rate=round_half_up_int(
                    away.away_wins / max(away.away_matches_played, 1) * 100
                ),
            ),
            goals_average=GoalsAverage(
                home_scored=round_half_up(home.goals_scored / home_matches, 1),
                home_conceded=round_half_up(home.goals_conceded / home_matches, 1),
                away_scored=round_half_up(away.goals_scored / away_matches, 1),
                away_conceded=round_half_up(away.goals_conceded / away_matches, 1),
            ),
            synthetic_form=True,
        )

    def predict(
        self,
        home_team_id: int,
        away_team_id: int,
        live: Optional[LiveMatchData] = None,
    ) -> MatchPrediction:
        """
        Predict a fixture and attach explanatory factors.

        Parameters
        ----------
        home_team_id, away_team_id : int
            Provider team ids.
        live : LiveMatchData | None
            Real recent matches, head-to-head meetings and season stats.
            Where present they replace the model-side approximations.

        Returns
        -------
        MatchPrediction
            Percentages summing to 100, confidence bucket and factors.

        Raises
        ------
        ModelNotInitializedError
            If `initialize` has not been called.
        UnknownTeamError
            If either team is absent from the training data.
        """
        probabilities = self.predict_probabilities(home_team_id, away_team_id)
        result = PredictionResult.from_probabilities(probabilities)

        home_stats, away_stats = self._team_stats(home_team_id, away_team_id)
        factors = self._model_factors(home_stats, away_stats)
        if live is not None:
            factors = merge_live_factors(factors, home_team_id, away_team_id, live)

        logger.info(
            "Prediction %s vs %s: home %d%% / draw %d%% / away %d%% (%s)",
            home_team_id,
            away_team_id,
            result.home_win_pct,
            result.draw_pct,
            result.away_win_pct,
            result.confidence_level.value,
        )
        return MatchPrediction(
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            result=result,
            factors=factors,
            source="model",
            home_season=live.home_season if live is not None else None,
            away_season=live.away_season if live is not None else None,
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Predict a fixture with the trained model.")
    parser.add_argument("--home", type=int, required=True, help="Home team id.")
    parser.add_argument("--away", type=int, required=True, help="Away team id.")
    parser.add_argument("--model-dir", type=Path, default=None)
    parser.add_argument("--live", type=Path, default=None,
                        help="JSON file with homeRecent/awayRecent/headToHead/"
                             "homeSeason/awaySeason payloads.")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the synthesized form letters.")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING...")
    args = parser.parse_args()
    configure_logging(args.log_level)

    live = None
    if args.live is not None:
        with args.live.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        live = LiveMatchData.from_payloads(
            home_recent=payload.get("homeRecent", []),
            away_recent=payload.get("awayRecent", []),
            head_to_head=payload.get("headToHead", []),
            home_season=payload.get("homeSeason"),
            away_season=payload.get("awaySeason"),
        )

    service = PredictionService(args.model_dir, rng=random.Random(args.seed))
    try:
        prediction = service.initialize().predict(args.home, args.away, live)
    except PitchsideError as exc:
        logger.error("Prediction failed: %s", exc)
        raise SystemExit(1) from exc

    print(json.dumps(prediction.to_dict(), indent=2))


if __name__ == "__main__":
    main()
