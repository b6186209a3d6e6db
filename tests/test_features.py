import numpy as np
import pytest

from pitchside.config import FEATURE_NAMES
from pitchside.data.schema import MatchRecord
from pitchside.errors import UnknownTeamError
from pitchside.features.feature_builder import (
    build_training_examples,
    compute_outcome_label,
    extract_features,
)
from pitchside.features.team_stats import (
    TeamStats,
    aggregate_team_stats,
    team_stats_from_dict,
    team_stats_to_dict,
)


def _scenario_stats():
    home = TeamStats(
        team_id=1, matches_played=10, wins=6, draws=2, losses=2,
        goals_scored=18, goals_conceded=8,
        home_matches_played=5, home_wins=4,
        away_matches_played=5, away_wins=2,
    )
    away = TeamStats(
        team_id=2, matches_played=10, wins=3, draws=2, losses=5,
        goals_scored=10, goals_conceded=12,
        home_matches_played=5, home_wins=2,
        away_matches_played=5, away_wins=1,
    )
    return home, away


def test_aggregate_team_stats_counts_each_side():
    matches = [
        MatchRecord(1, 2, 2, 0),
        MatchRecord(2, 1, 1, 1),
        MatchRecord(3, 1, 0, 1),
    ]
    stats = aggregate_team_stats(matches)

    team1 = stats[1]
    assert team1.matches_played == 3
    assert (team1.wins, team1.draws, team1.losses) == (2, 1, 0)
    assert (team1.goals_scored, team1.goals_conceded) == (4, 1)
    assert (team1.home_matches_played, team1.home_wins) == (1, 1)
    assert (team1.away_matches_played, team1.away_wins) == (2, 1)
    assert 4 not in stats


def test_team_stats_invariants_hold_on_league(league_corpus):
    for stats in aggregate_team_stats(league_corpus).values():
        stats.check_invariants()
        assert stats.wins + stats.draws + stats.losses == stats.matches_played
        assert stats.home_wins <= stats.home_matches_played
        assert stats.away_wins <= stats.away_matches_played


def test_team_stats_from_dict_rejects_inconsistent_counts():
    with pytest.raises(ValueError):
        TeamStats.from_dict({"matchesPlayed": 3, "wins": 3, "draws": 1}, team_id=5)


def test_team_stats_from_dict_accepts_legacy_keys():
    stats = TeamStats.from_dict(
        {"matches": 2, "wins": 1, "losses": 1, "homeMatches": 1, "homeWins": 1, "awayMatches": 1},
        team_id=9,
    )
    assert stats.matches_played == 2
    assert stats.home_matches_played == 1


def test_team_stats_serialization_uses_string_keys(league_corpus):
    stats = aggregate_team_stats(league_corpus)
    data = team_stats_to_dict(stats)
    assert all(isinstance(k, str) for k in data)
    assert team_stats_from_dict(data) == stats


def test_compute_outcome_label():
    assert compute_outcome_label(2, 1) == "home_win"
    assert compute_outcome_label(1, 1) == "draw"
    assert compute_outcome_label(0, 3) == "away_win"


def test_extract_features_scenario():
    home, away = _scenario_stats()
    features = dict(zip(FEATURE_NAMES, extract_features(home, away)))

    assert features["homeWinRate"] == pytest.approx(0.6)
    assert features["awayWinRate"] == pytest.approx(0.3)
    assert features["formDifference"] == pytest.approx(0.3)
    assert features["homeGoalsPerMatch"] == pytest.approx(18 / 10 / 5)
    assert features["homeWinRateAtHome"] == pytest.approx(0.8)
    assert features["awayWinRateAway"] == pytest.approx(0.2)


def test_extract_features_bounded_and_finite_for_empty_and_extreme_teams():
    empty = TeamStats(team_id=1)
    prolific = TeamStats(
        team_id=2, matches_played=1, wins=1, goals_scored=12,
        away_matches_played=1, away_wins=1,
    )
    for home, away in [(empty, prolific), (prolific, empty), (empty, empty)]:
        x = extract_features(home, away)
        assert x.shape == (len(FEATURE_NAMES),)
        assert np.all(np.isfinite(x))
        assert np.all(x >= -1.0) and np.all(x <= 1.0)


def test_extract_features_requires_both_teams():
    home, _ = _scenario_stats()
    with pytest.raises(UnknownTeamError) as excinfo:
        extract_features(home, None, home_team_id=1, away_team_id=2)

    assert excinfo.value.team_ids == (2,)
    assert excinfo.value.sides == ("away",)
    assert "2" in str(excinfo.value)


def test_extract_features_without_ids_reports_missing_side():
    with pytest.raises(UnknownTeamError) as excinfo:
        extract_features(None, None)

    assert excinfo.value.team_ids == ()
    assert excinfo.value.sides == ("home", "away")
    assert "home team" in str(excinfo.value)


def test_build_training_examples_skips_thin_history(league_corpus):
    extra = MatchRecord(home_team_id=999, away_team_id=100, home_goals=1, away_goals=0)
    matches = league_corpus + [extra]
    stats = aggregate_team_stats(matches)

    X, y, skipped = build_training_examples(matches, stats, min_team_matches=5)

    assert X.shape == (len(league_corpus), len(FEATURE_NAMES))
    assert y.shape == (len(league_corpus),)
    assert skipped == 1
    assert set(np.unique(y)) <= {0, 1, 2}
