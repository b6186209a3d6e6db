from pathlib import Path

import numpy as np
import pytest

from pitchside.config import FEATURE_NAMES
from pitchside.data.data_loader import save_match_corpus
from pitchside.errors import InsufficientTrainingDataError
from pitchside.models.evaluate_model import run_evaluation
from pitchside.models.serialization import load_model_artifact
from pitchside.models.train_model import TrainConfig, run_training, train_outcome_model
from pitchside.utils.paths import get_metadata_path, get_model_path


def test_training_aborts_below_minimum_examples(tmp_path: Path, league_factory):
    # 8 teams -> 56 matches, all of them valid examples
    matches = league_factory(n_teams=8)[:50]
    model_dir = tmp_path / "model"

    with pytest.raises(InsufficientTrainingDataError) as excinfo:
        run_training(matches, cfg=TrainConfig(epochs=1), model_dir=model_dir)

    assert excinfo.value.found == 50
    assert not get_model_path(model_dir).exists()
    assert not get_metadata_path(model_dir).exists()


def test_train_outcome_model_in_memory(league_corpus):
    result = train_outcome_model(
        league_corpus, TrainConfig(epochs=2, learning_rate=1e-2, log_every=0)
    )

    assert result.n_examples == len(league_corpus)
    assert result.n_skipped == 0
    assert result.model_dir is None
    assert len(result.history["loss"]) == 2
    assert 0.0 <= result.metadata.accuracy <= 1.0
    assert result.metadata.feature_names == FEATURE_NAMES
    assert result.metadata.total_matches == len(league_corpus)


def test_end_to_end_training_pipeline(trained_model_dir: Path):
    """
    Train on the synthetic league and ensure a loadable artifact is produced.
    """
    assert get_model_path(trained_model_dir).exists(), "model.json should exist after training."
    assert get_metadata_path(trained_model_dir).exists()

    classifier, metadata = load_model_artifact(trained_model_dir)
    assert len(metadata.team_stats) == 20
    assert metadata.trained_on

    probs = classifier.predict_proba(np.zeros((1, len(FEATURE_NAMES))))
    assert probs.shape == (1, 3)


def test_evaluation_on_training_corpus(tmp_path: Path, trained_model_dir: Path, league_corpus):
    corpus_path = save_match_corpus(league_corpus, tmp_path / "corpus.json")
    plots_dir = tmp_path / "plots"

    metrics = run_evaluation(
        corpus_path=corpus_path, model_dir=trained_model_dir, plots_dir=plots_dir
    )

    assert metrics["n_examples"] == 380
    assert 0.0 <= metrics["accuracy"] <= 1.0
    assert (plots_dir / "confusion_matrix.png").exists()
    assert (plots_dir / "training_history.png").exists()
