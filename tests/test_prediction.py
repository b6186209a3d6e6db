import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pytest

from pitchside.data.schema import MatchRecord
from pitchside.errors import ModelNotInitializedError, UnknownTeamError
from pitchside.models.serialization import load_model_artifact
from pitchside.prediction.enrichment import (
    goals_average,
    head_to_head_summary,
    home_away_win_rates,
    order_newest_first,
    recent_form,
)
from pitchside.prediction.game import (
    Badge,
    GameStats,
    PredictionStatus,
    UserPrediction,
    badge_for_level,
    calculate_level,
    leaderboard,
    score_prediction,
)
from pitchside.prediction.heuristic import HeuristicConfig, HeuristicPredictor
from pitchside.prediction.results import (
    Confidence,
    LiveMatchData,
    PredictionResult,
    SeasonSummary,
    confidence_level,
    probabilities_to_percentages,
)
from pitchside.prediction.service import PredictionService, synthesize_form

HOME, AWAY = 100, 101
DAY0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _match(home, away, home_goals, away_goals, day=None):
    date = DAY0 + timedelta(days=day) if day is not None else None
    return MatchRecord(home, away, home_goals, away_goals, date=date)


def _stats_payload():
    return {
        "fixtures": {
            "played": {"total": 20},
            "wins": {"total": 11},
            "draws": {"total": 5},
            "loses": {"total": 4},
        },
        "goals": {"for": {"total": {"total": 34}}, "against": {"total": {"total": 19}}},
        "clean_sheet": {"total": 8},
        "failed_to_score": {"total": 3},
    }


# ----------------------------------------------------------------------
# Percentages and confidence
# ----------------------------------------------------------------------


def test_percentages_fix_rounding_on_largest_bucket():
    assert probabilities_to_percentages([1 / 3, 1 / 3, 1 / 3]) == (34, 33, 33)
    assert probabilities_to_percentages([0.125, 0.125, 0.75]) == (13, 13, 74)
    assert sum(probabilities_to_percentages([0.2, 0.5, 0.3])) == 100


def test_percentages_reject_invalid_probabilities():
    with pytest.raises(ValueError):
        probabilities_to_percentages([0.5, 0.5])
    with pytest.raises(ValueError):
        probabilities_to_percentages([np.nan, 0.5, 0.5])
    with pytest.raises(ValueError):
        probabilities_to_percentages([0.0, 0.0, 0.0])


def test_confidence_thresholds():
    assert confidence_level(50) is Confidence.HIGH
    assert confidence_level(49) is Confidence.MEDIUM
    assert confidence_level(40) is Confidence.MEDIUM
    assert confidence_level(39) is Confidence.LOW


def test_prediction_result_requires_sum_of_100():
    with pytest.raises(ValueError):
        PredictionResult.from_percentages(50, 30, 30)
    result = PredictionResult.from_percentages(45, 30, 25)
    assert result.to_dict() == {
        "predictions": {"homeWin": 45, "draw": 30, "awayWin": 25},
        "confidence": "medium",
    }


def test_synthesize_form_is_reproducible_with_seed():
    first = synthesize_form(0.6, random.Random(42))
    second = synthesize_form(0.6, random.Random(42))
    assert first == second
    assert len(first) == 5
    assert set(first) <= {"W", "D", "L"}
    assert synthesize_form(0.0, random.Random(1), length=10).count("W") == 0


# ----------------------------------------------------------------------
# Enrichment
# ----------------------------------------------------------------------


def test_recent_form_uses_newest_five_matches():
    matches = [_match(HOME, 200 + d, 1 if d % 2 else 0, 0, day=d) for d in range(7)]
    # newest first: days 6..2
    assert recent_form(matches, HOME) == ["D", "W", "D", "W", "D"]


def test_recent_form_trusts_input_order_without_dates():
    matches = [_match(HOME, 5, 0, 1), _match(6, HOME, 0, 2), _match(HOME, 7, 1, 1)]
    assert recent_form(matches, HOME) == ["L", "W", "D"]


def test_recent_form_orders_mixed_naive_and_aware_dates():
    older_naive = MatchRecord(HOME, 5, 0, 1, date=datetime(2024, 1, 1, 12, 0))
    newer_aware = MatchRecord(HOME, 6, 2, 0, date=DAY0 + timedelta(days=3))
    newest_naive = MatchRecord(7, HOME, 1, 1, date=datetime(2024, 1, 10))

    ordered = order_newest_first([older_naive, newest_naive, newer_aware])

    assert ordered == [newest_naive, newer_aware, older_naive]
    assert recent_form([older_naive, newer_aware, newest_naive], HOME) == ["D", "W", "L"]


def test_head_to_head_counts_from_current_home_side():
    meetings = [
        _match(AWAY, HOME, 2, 1, day=3),   # home side lost away
        _match(HOME, AWAY, 3, 0, day=2),
        _match(AWAY, HOME, 0, 1, day=1),
        _match(HOME, AWAY, 2, 2, day=0),
        _match(HOME, 999, 5, 0, day=4),    # not a meeting
    ]
    h2h = head_to_head_summary(meetings, HOME, AWAY)

    assert (h2h.home_wins, h2h.draws, h2h.away_wins) == (2, 1, 1)
    assert h2h.total_matches == 4
    assert h2h.last_result == "1-2"
    assert h2h.to_dict()["matches"][0]["winner"] == "home"


def test_head_to_head_without_meetings():
    h2h = head_to_head_summary([], HOME, AWAY)
    assert h2h.total_matches == 0
    assert h2h.to_dict()["lastResult"] == "N/A"


def test_home_away_win_rates_distinguish_zero_from_missing():
    matches = [_match(HOME, 5, 2, 0), _match(HOME, 6, 0, 0), _match(7, HOME, 1, 0)]
    assert home_away_win_rates(matches, HOME) == (50, 0)
    assert home_away_win_rates([_match(HOME, 5, 1, 0)], HOME) == (100, None)


def test_goals_average_rounds_to_one_decimal():
    matches = [_match(HOME, 5, 2, 0), _match(6, HOME, 1, 1), _match(HOME, 7, 0, 1)]
    assert goals_average(matches, HOME) == (1.0, 0.7)
    assert goals_average([], HOME) is None


def test_season_summary_from_api_payload():
    summary = SeasonSummary.from_api(_stats_payload())
    assert summary.to_dict() == {
        "played": 20,
        "wins": 11,
        "draws": 5,
        "losses": 4,
        "goalsFor": 34,
        "goalsAgainst": 19,
        "cleanSheets": 8,
        "failedToScore": 3,
    }
    assert SeasonSummary.from_api(None) is None


def test_live_match_data_from_fixture_payloads():
    fixture = {
        "fixture": {"date": "2024-02-01T20:00:00+00:00", "status": {"short": "FT"}},
        "teams": {"home": {"id": HOME}, "away": {"id": AWAY}},
        "goals": {"home": 2, "away": 1},
    }
    live = LiveMatchData.from_payloads(head_to_head=[fixture], home_season=_stats_payload())
    assert len(live.head_to_head) == 1
    assert live.head_to_head[0].home_goals == 2
    assert live.home_season.played == 20
    assert live.away_season is None


# ----------------------------------------------------------------------
# Heuristic
# ----------------------------------------------------------------------


def test_heuristic_without_data_uses_neutral_defaults():
    prediction = HeuristicPredictor().predict(HOME, AWAY)
    result = prediction.result

    assert (result.home_win_pct, result.draw_pct, result.away_win_pct) == (45, 21, 34)
    assert result.confidence_level is Confidence.MEDIUM
    assert prediction.source == "heuristic"
    assert prediction.factors.home_advantage.home_win_rate == 68
    assert prediction.factors.goals_average.home_scored == 1.5


def test_heuristic_head_to_head_needs_three_meetings():
    predictor = HeuristicPredictor()
    two = LiveMatchData(head_to_head=(_match(HOME, AWAY, 2, 0, 1), _match(HOME, AWAY, 1, 0, 2)))
    three = LiveMatchData(head_to_head=two.head_to_head + (_match(AWAY, HOME, 0, 3, 0),))

    baseline = predictor.predict(HOME, AWAY).result.home_win_pct
    assert predictor.predict(HOME, AWAY, two).result.home_win_pct == baseline
    assert predictor.predict(HOME, AWAY, three).result.home_win_pct > baseline


def test_heuristic_league_position_favours_higher_team():
    predictor = HeuristicPredictor()
    neutral = predictor.predict(HOME, AWAY).result
    top_vs_bottom = predictor.predict(HOME, AWAY, home_position=1, away_position=20).result
    assert top_vs_bottom.home_win_pct > neutral.home_win_pct
    assert top_vs_bottom.away_win_pct < neutral.away_win_pct


def test_heuristic_config_overrides_home_advantage():
    config = HeuristicConfig(home_benefit=0.0, home_win_rate=50, away_win_rate=50)
    result = HeuristicPredictor(config).predict(HOME, AWAY).result
    assert result.home_win_pct == result.away_win_pct


def test_heuristic_always_sums_to_100():
    rng = random.Random(5)
    predictor = HeuristicPredictor()
    for _ in range(50):
        home_recent = tuple(
            _match(HOME, 300 + i, rng.randint(0, 6), rng.randint(0, 6), day=i) for i in range(5)
        )
        away_recent = tuple(
            _match(400 + i, AWAY, rng.randint(0, 6), rng.randint(0, 6), day=i) for i in range(5)
        )
        live = LiveMatchData(home_recent=home_recent, away_recent=away_recent)
        result = predictor.predict(
            HOME, AWAY, live, home_position=rng.randint(1, 20), away_position=rng.randint(1, 20)
        ).result
        assert result.home_win_pct + result.draw_pct + result.away_win_pct == 100
        assert min(result.home_win_pct, result.draw_pct, result.away_win_pct) >= 0


# ----------------------------------------------------------------------
# Model-backed service
# ----------------------------------------------------------------------


def test_predict_before_initialize_raises(tmp_path: Path):
    service = PredictionService(tmp_path / "no-model")
    assert not service.is_ready
    with pytest.raises(ModelNotInitializedError):
        service.predict(HOME, AWAY)


def test_initialize_is_idempotent(trained_model_dir: Path):
    service = PredictionService(trained_model_dir)
    assert service.initialize() is service
    metadata = service.metadata
    service.initialize()
    assert service.metadata is metadata
    assert service.is_ready


def test_predict_known_teams(trained_model_dir: Path):
    service = PredictionService(trained_model_dir, rng=random.Random(3)).initialize()
    prediction = service.predict(HOME, 119)
    result = prediction.result

    assert result.home_win_pct + result.draw_pct + result.away_win_pct == 100
    assert result.confidence_level is confidence_level(
        max(result.home_win_pct, result.draw_pct, result.away_win_pct)
    )
    assert prediction.source == "model"
    assert prediction.factors.synthetic_form
    assert prediction.factors.head_to_head.total_matches == 0

    payload = prediction.to_dict()
    assert set(payload["predictions"]) == {"homeWin", "draw", "awayWin"}
    assert payload["seasonStats"] == {"home": None, "away": None}


def test_predict_unknown_team(trained_model_dir: Path):
    service = PredictionService(trained_model_dir).initialize()
    with pytest.raises(UnknownTeamError) as excinfo:
        service.predict(HOME, 4242)
    assert excinfo.value.team_ids == (4242,)


def test_seeded_services_synthesize_the_same_form(trained_model_dir: Path):
    a = PredictionService(trained_model_dir, rng=random.Random(9)).initialize()
    b = PredictionService(trained_model_dir, rng=random.Random(9)).initialize()
    assert a.predict(HOME, AWAY).factors == b.predict(HOME, AWAY).factors


def test_live_data_overrides_model_factors(trained_model_dir: Path):
    service = PredictionService(trained_model_dir, rng=random.Random(0)).initialize()
    live = LiveMatchData(
        home_recent=(
            _match(HOME, 105, 2, 0, day=10),
            _match(106, HOME, 1, 1, day=9),
            _match(HOME, 107, 0, 1, day=8),
        ),
        away_recent=(_match(103, AWAY, 2, 0, day=10),),
        head_to_head=(_match(AWAY, HOME, 2, 1, day=5),),
        home_season=SeasonSummary.from_api(_stats_payload()),
    )
    without = service.predict(HOME, AWAY)
    factors = service.predict(HOME, AWAY, live).factors

    assert factors.recent_form_home == ("W", "D", "L")
    assert factors.recent_form_away == ("L",)
    assert not factors.synthetic_form
    assert factors.head_to_head.last_result == "1-2"
    assert factors.home_advantage.home_win_rate == 50
    # A real 0% away record replaces the model's figure
    assert factors.home_advantage.away_win_rate == 0
    assert factors.goals_average.home_scored == 1.0
    assert factors.goals_average.home_conceded == 0.7
    assert factors.goals_average.away_scored == 0.0
    assert factors.goals_average.away_conceded == 2.0

    # Percentages come from the model alone
    assert service.predict(HOME, AWAY, live).result == without.result


def test_partial_live_data_keeps_fallbacks(trained_model_dir: Path):
    service = PredictionService(trained_model_dir, rng=random.Random(0)).initialize()
    baseline = service.predict(HOME, AWAY).factors
    live = LiveMatchData(head_to_head=(_match(HOME, AWAY, 1, 0, day=1),))
    factors = service.predict(HOME, AWAY, live).factors

    assert factors.synthetic_form
    assert factors.head_to_head.home_wins == 1
    assert factors.home_advantage == baseline.home_advantage
    assert factors.goals_average == baseline.goals_average


def test_from_artifacts_freezes_weights(trained_model_dir: Path):
    classifier, metadata = load_model_artifact(trained_model_dir)
    service = PredictionService.from_artifacts(classifier, metadata)
    assert service.is_ready
    assert classifier.is_frozen


def test_concurrent_predictions_are_consistent(trained_model_dir: Path):
    service = PredictionService(trained_model_dir).initialize()
    pairs = [(HOME + i, HOME + 19 - i) for i in range(10)] * 4

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda p: service.predict(*p).result, pairs))

    for pair, result in zip(pairs, results):
        assert result == service.predict(*pair).result


# ----------------------------------------------------------------------
# Prediction game
# ----------------------------------------------------------------------


def test_score_prediction_points():
    assert score_prediction((2, 1), (2, 1)) == (PredictionStatus.CORRECT_SCORE, 3)
    assert score_prediction((1, 0), (3, 1)) == (PredictionStatus.CORRECT_WINNER, 1)
    assert score_prediction((1, 1), (0, 0)) == (PredictionStatus.CORRECT_WINNER, 1)
    assert score_prediction((2, 0), (0, 1)) == (PredictionStatus.WRONG, 0)


def test_score_prediction_rejects_invalid_goals():
    with pytest.raises(ValueError):
        score_prediction((-1, 0), (1, 0))
    with pytest.raises(ValueError):
        UserPrediction("m1", 1.5, 0)


def test_levels_and_badges():
    assert [calculate_level(p) for p in (0, 19, 20, 95)] == [1, 1, 2, 5]
    assert badge_for_level(4) is Badge.BEGINNER
    assert badge_for_level(5) is Badge.PRO
    assert badge_for_level(10) is Badge.EXPERT
    assert badge_for_level(20) is Badge.LEGEND
    assert GameStats(total_points=200).to_dict()["badge"] == "Expert"


def test_game_stats_track_points_and_streaks():
    stats = GameStats()
    outcomes = [((2, 1), (2, 1)), ((1, 0), (2, 0)), ((0, 0), (1, 0)), ((3, 3), (3, 3))]
    for i, (predicted, actual) in enumerate(outcomes):
        prediction = UserPrediction(f"m{i}", *predicted)
        stats.record_submission()
        stats.apply(prediction.settle(*actual))

    assert stats.total_points == 7
    assert (stats.perfect_predictions, stats.correct_winners) == (2, 1)
    assert (stats.current_streak, stats.longest_streak) == (1, 2)
    assert stats.success_rate == 75
    assert stats.level == 1
    assert stats.points_to_next_level == 13


def test_settled_predictions_cannot_be_settled_or_applied_twice():
    pending = UserPrediction("m1", 1, 0)
    with pytest.raises(ValueError):
        GameStats().apply(pending)

    settled = pending.settle(1, 0)
    assert settled.points_earned == 3
    assert pending.is_pending
    with pytest.raises(ValueError):
        settled.settle(2, 0)


def test_settle_from_fixture_waits_for_final_whistle():
    fixture = {
        "fixture": {"status": {"short": "2H"}},
        "teams": {"home": {"id": HOME}, "away": {"id": AWAY}},
        "goals": {"home": 2, "away": 2},
    }
    prediction = UserPrediction("m1", 1, 1)
    assert prediction.settle_from_fixture(fixture) is None

    fixture["fixture"]["status"]["short"] = "FT"
    settled = prediction.settle_from_fixture(fixture)
    assert settled.status is PredictionStatus.CORRECT_WINNER
    assert settled.to_dict()["actualHomeGoals"] == 2


def test_leaderboard_ranks_by_points_with_stable_ties():
    players = {
        "ana": GameStats(total_points=5, total_predictions=5, correct_winners=5),
        "ben": GameStats(total_points=40, total_predictions=20, perfect_predictions=10),
        "cy": GameStats(total_points=5),
    }
    board = leaderboard(players)

    assert [row["name"] for row in board] == ["ben", "ana", "cy"]
    assert [row["rank"] for row in board] == [1, 2, 3]
    assert board[0]["level"] == 3
    assert board[0]["successRate"] == 50
    assert board[2]["successRate"] == 0
    assert len(leaderboard(players, limit=2)) == 2
