import json
from pathlib import Path

import pandas as pd
import pytest

from pitchside.data.data_loader import load_match_corpus, save_match_corpus
from pitchside.data.schema import (
    MatchRecord,
    normalize_fixture,
    records_from_payloads,
    validate_matches_df,
)


def _fixture(home_id, away_id, home_goals, away_goals, status="FT", date="2024-03-02T15:00:00+00:00"):
    return {
        "fixture": {"id": 1, "date": date, "status": {"short": status}},
        "league": {"id": 39, "season": 2023},
        "teams": {"home": {"id": home_id, "name": "A"}, "away": {"id": away_id, "name": "B"}},
        "goals": {"home": home_goals, "away": away_goals},
    }


def test_validate_matches_df_accepts_camel_case_and_drops_unscored_rows():
    df = pd.DataFrame(
        [
            {"homeTeamId": 1, "awayTeamId": 2, "homeGoals": 2, "awayGoals": 0},
            {"homeTeamId": 2, "awayTeamId": 1, "homeGoals": None, "awayGoals": None},
        ]
    )
    out = validate_matches_df(df)

    assert len(out) == 1
    for col in ["home_team_id", "away_team_id", "home_goals", "away_goals", "date"]:
        assert col in out.columns
    assert out.loc[0, "home_goals"] == 2


def test_validate_matches_df_rejects_missing_columns():
    with pytest.raises(ValueError, match="Missing required"):
        validate_matches_df(pd.DataFrame([{"home_team_id": 1, "away_team_id": 2}]))


def test_validate_matches_df_rejects_negative_goals():
    df = pd.DataFrame(
        [{"home_team_id": 1, "away_team_id": 2, "home_goals": -1, "away_goals": 0}]
    )
    with pytest.raises(ValueError, match="Negative"):
        validate_matches_df(df)


def test_normalize_fixture_only_keeps_finished_matches():
    row = normalize_fixture(_fixture(33, 34, 3, 1, status="AET"))
    assert row["home_team_id"] == 33
    assert row["away_goals"] == 1
    assert row["league_id"] == 39

    assert normalize_fixture(_fixture(33, 34, None, None, status="NS")) is None
    assert normalize_fixture(_fixture(33, 34, 1, 1, status="1H")) is None


def test_normalize_fixture_without_teams_raises():
    payload = _fixture(33, 34, 1, 0)
    del payload["teams"]["away"]
    with pytest.raises(ValueError):
        normalize_fixture(payload)


def test_records_from_payloads_preserves_order():
    records = records_from_payloads(
        [_fixture(1, 2, 1, 0), _fixture(3, 1, 2, 2), _fixture(1, 4, 0, 3, status="PST")]
    )
    assert [(r.home_team_id, r.away_team_id) for r in records] == [(1, 2), (3, 1)]
    assert records[0].date is not None


def test_match_record_perspective():
    match = MatchRecord(home_team_id=1, away_team_id=2, home_goals=3, away_goals=1)
    assert match.perspective(1) == (3, 1, True)
    assert match.perspective(2) == (1, 3, False)
    with pytest.raises(ValueError):
        match.perspective(99)


def test_load_match_corpus_from_api_envelope(tmp_path: Path):
    path = tmp_path / "fixtures.json"
    path.write_text(
        json.dumps({"response": [_fixture(1, 2, 2, 1), _fixture(2, 1, 0, 0, status="NS")]}),
        encoding="utf-8",
    )
    records = load_match_corpus(path)
    assert len(records) == 1
    assert records[0].season == 2023


def test_load_match_corpus_from_csv(tmp_path: Path):
    path = tmp_path / "matches.csv"
    path.write_text(
        "home_team_id,away_team_id,home_goals,away_goals,date\n"
        "1,2,1,0,2024-01-01\n"
        "2,1,2,2,2024-02-01\n",
        encoding="utf-8",
    )
    records = load_match_corpus(path)
    assert [r.home_goals for r in records] == [1, 2]


def test_load_match_corpus_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_match_corpus(tmp_path / "missing.json")

    bad = tmp_path / "matches.txt"
    bad.write_text("", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported"):
        load_match_corpus(bad)


def test_saved_corpus_can_be_reloaded(tmp_path: Path, league_corpus):
    path = save_match_corpus(league_corpus, tmp_path / "corpus.json")
    reloaded = load_match_corpus(path)
    assert len(reloaded) == len(league_corpus)
    assert reloaded[0].home_team_id == league_corpus[0].home_team_id
