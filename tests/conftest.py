import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List

import pytest

from pitchside.data.schema import MatchRecord
from pitchside.models.train_model import TrainConfig, run_training

N_TEAMS = 20
FIRST_TEAM_ID = 100


def make_league_corpus(n_teams: int = N_TEAMS, seed: int = 7) -> List[MatchRecord]:
    """
    Double round-robin league with deterministic scores.

    Lower team ids are stronger, so outcomes are learnable but not trivial.
    """
    rng = random.Random(seed)
    kickoff = datetime(2023, 8, 5, 15, 0, tzinfo=timezone.utc)
    team_ids = [FIRST_TEAM_ID + i for i in range(n_teams)]

    matches = []
    for home in team_ids:
        for away in team_ids:
            if home == away:
                continue
            home_strength = (n_teams - (home - FIRST_TEAM_ID)) / n_teams
            away_strength = (n_teams - (away - FIRST_TEAM_ID)) / n_teams
            home_goals = sum(rng.random() < 0.25 + 0.3 * home_strength for _ in range(4))
            away_goals = sum(rng.random() < 0.2 + 0.3 * away_strength for _ in range(4))
            matches.append(
                MatchRecord(
                    home_team_id=home,
                    away_team_id=away,
                    home_goals=home_goals,
                    away_goals=away_goals,
                    date=kickoff + timedelta(days=len(matches)),
                    league_id=39,
                    season=2023,
                )
            )
    return matches


@pytest.fixture
def league_corpus() -> List[MatchRecord]:
    return make_league_corpus()


@pytest.fixture
def league_factory():
    return make_league_corpus


@pytest.fixture(scope="session")
def trained_model_dir(tmp_path_factory) -> Path:
    """A small model trained once for the whole test session."""
    model_dir = tmp_path_factory.mktemp("models") / "outcome_classifier"
    cfg = TrainConfig(epochs=5, batch_size=32, learning_rate=1e-2, log_every=0)
    run_training(make_league_corpus(), cfg=cfg, model_dir=model_dir)
    return model_dir
