"""
Train the Pitchside outcome classifier on a historical match corpus.

Usage (from project root):

    python -m pitchside.models.train_model --corpus data/raw/historical_matches.json

This will:
- Load the corpus of finished matches
- Aggregate per-team statistics over the whole corpus
- Build one feature vector + label per match, skipping matches whose teams
  have fewer than 5 aggregated matches or whose features are not finite
- Abort if fewer than 100 valid examples remain
- Fit the feed-forward classifier on an 80/20 train/validation split
- Save model.json + model_metadata.json to models/outcome_classifier/
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.model_selection import train_test_split

from pitchside.config import (
    CLASS_LABELS,
    FEATURE_NAMES,
    MIN_TEAM_MATCHES,
    MIN_TRAINING_EXAMPLES,
    MODEL_VERSION,
    RANDOM_STATE,
)
from pitchside.data.data_loader import load_match_corpus
from pitchside.data.schema import MatchRecord
from pitchside.errors import InsufficientTrainingDataError, PitchsideError
from pitchside.features.feature_builder import build_training_examples
from pitchside.features.team_stats import TeamStats, aggregate_team_stats
from pitchside.models.metrics import compute_classification_metrics
from pitchside.models.network import OutcomeClassifier, default_topology
from pitchside.models.serialization import (
    ModelMetadata,
    save_model_artifact,
    utc_timestamp,
)
from pitchside.utils.logging_utils import configure_logging, get_logger
from pitchside.utils.paths import PathLike

logger = get_logger(__name__)


@dataclass
class TrainConfig:
    """
    Configuration for the training process.

    Attributes
    ----------
    epochs : int
        Passes over the training split.
    batch_size : int
        Mini-batch size.
    learning_rate : float
        Adam step size.
    validation_split : float
        Fraction of examples held out for validation.
    min_team_matches : int
        Minimum aggregated matches per team for a match to be used.
    min_training_examples : int
        Abort threshold on valid examples.
    random_state : int
        Random seed for the split, initialization and shuffling.
    hidden_units : tuple[int, ...]
        Sizes of the hidden relu layers.
    dropout : float
        Dropout rate after each hidden layer.
    log_every : int
        Log training progress every N epochs.
    """

    epochs: int = 100
    batch_size: int = 64
    learning_rate: float = 1e-4
    validation_split: float = 0.2
    min_team_matches: int = MIN_TEAM_MATCHES
    min_training_examples: int = MIN_TRAINING_EXAMPLES
    random_state: int = RANDOM_STATE
    hidden_units: Tuple[int, ...] = (32, 16)
    dropout: float = 0.3
    log_every: int = 20


@dataclass
class TrainingResult:
    """Outcome of a training run."""

    classifier: OutcomeClassifier
    metadata: ModelMetadata
    validation_metrics: Dict[str, Any]
    n_examples: int
    n_skipped: int
    model_dir: Optional[Path] = None
    history: Dict[str, List[float]] = field(default_factory=dict)


def _split(
    X: np.ndarray,
    y: np.ndarray,
    cfg: TrainConfig,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    class_counts = np.bincount(y, minlength=len(CLASS_LABELS))
    logger.info("Class counts: %s", class_counts.tolist())

    # Stratified split fails if a class has < 2 samples
    if np.any(class_counts < 2):
        logger.warning(
            "Not using stratified split due to small sample per class. "
            "Class counts: %s",
            class_counts.tolist(),
        )
        stratify = None
    else:
        stratify = y

    X_train, X_val, y_train, y_val = train_test_split(
        X,
        y,
        test_size=cfg.validation_split,
        random_state=cfg.random_state,
        stratify=stratify,
    )
    logger.info(
        "Train/val split: train=%d, val=%d", X_train.shape[0], X_val.shape[0]
    )
    return X_train, X_val, y_train, y_val


def train_outcome_model(
    matches: Sequence[MatchRecord],
    cfg: Optional[TrainConfig] = None,
) -> TrainingResult:
    """
    Run the in-memory part of the pipeline (no files written).

    Raises
    ------
    InsufficientTrainingDataError
        If fewer than ``cfg.min_training_examples`` valid examples remain.
    """
    cfg = cfg if cfg is not None else TrainConfig()

    team_stats: Dict[int, TeamStats] = aggregate_team_stats(matches)
    X, y, n_skipped = build_training_examples(
        matches, team_stats, min_team_matches=cfg.min_team_matches
    )
    if len(y) < cfg.min_training_examples:
        raise InsufficientTrainingDataError(len(y), cfg.min_training_examples)

    X_train, X_val, y_train, y_val = _split(X, y, cfg)

    topology = default_topology(
        input_dim=len(FEATURE_NAMES),
        n_classes=len(CLASS_LABELS),
        hidden_units=cfg.hidden_units,
        dropout=cfg.dropout,
    )
    classifier = OutcomeClassifier(topology, random_state=cfg.random_state)

    logger.info(
        "Training classifier: epochs=%d, batch_size=%d, learning_rate=%g",
        cfg.epochs, cfg.batch_size, cfg.learning_rate,
    )
    history = classifier.fit(
        X_train,
        y_train,
        epochs=cfg.epochs,
        batch_size=cfg.batch_size,
        learning_rate=cfg.learning_rate,
        validation_data=(X_val, y_val),
        log_every=cfg.log_every,
    )

    y_proba = classifier.predict_proba(X_val)
    val_metrics = compute_classification_metrics(
        y_true=y_val,
        y_pred=np.argmax(y_proba, axis=1),
        y_proba=y_proba,
        labels=CLASS_LABELS,
    )
    accuracy = val_metrics["accuracy"]
    logger.info("Final validation accuracy: %.2f%%", accuracy * 100)
    logger.info("Validation metrics: %s", val_metrics)

    metadata = ModelMetadata(
        team_stats=team_stats,
        feature_names=list(FEATURE_NAMES),
        accuracy=accuracy,
        trained_on=utc_timestamp(),
        total_matches=int(len(y)),
        version=MODEL_VERSION,
        history=history,
    )

    return TrainingResult(
        classifier=classifier,
        metadata=metadata,
        validation_metrics=val_metrics,
        n_examples=int(len(y)),
        n_skipped=n_skipped,
        history=history,
    )


def run_training(
    matches: Optional[Sequence[MatchRecord]] = None,
    cfg: Optional[TrainConfig] = None,
    model_dir: Optional[PathLike] = None,
    corpus_path: Optional[PathLike] = None,
) -> TrainingResult:
    """
    Run the end-to-end training process and save the model artifact.

    Nothing is written if training aborts.

    Parameters
    ----------
    matches : Sequence[MatchRecord] | None
        Corpus to train on. If None, it is loaded from ``corpus_path`` (or
        the default raw corpus).
    cfg : TrainConfig | None
        Training configuration.
    model_dir : str | Path | None
        Artifact directory. Defaults to models/outcome_classifier.
    corpus_path : str | Path | None
        Corpus file, used when ``matches`` is None.
    """
    if matches is None:
        matches = load_match_corpus(corpus_path)
    logger.info("Training on a corpus of %d matches.", len(matches))

    result = train_outcome_model(matches, cfg)
    result.model_dir = save_model_artifact(result.classifier, result.metadata, model_dir)
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Train the Pitchside outcome classifier.")
    parser.add_argument("--corpus", type=Path, default=None,
                        help="Match corpus (.json or .csv). Defaults to data/raw/.")
    parser.add_argument("--output", type=Path, default=None,
                        help="Artifact directory. Defaults to models/outcome_classifier/.")
    parser.add_argument("--epochs", type=int, default=TrainConfig.epochs)
    parser.add_argument("--batch-size", type=int, default=TrainConfig.batch_size)
    parser.add_argument("--learning-rate", type=float, default=TrainConfig.learning_rate)
    parser.add_argument("--seed", type=int, default=RANDOM_STATE)
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING...")
    args = parser.parse_args()
    configure_logging(args.log_level)

    cfg = TrainConfig(
        epochs=args.epochs,
        batch_size=args.batch_size,
        learning_rate=args.learning_rate,
        random_state=args.seed,
    )
    try:
        result = run_training(cfg=cfg, model_dir=args.output, corpus_path=args.corpus)
    except PitchsideError as exc:
        logger.error("Training aborted: %s", exc)
        raise SystemExit(1) from exc

    print("Training complete:")
    print(f"  examples: {result.n_examples} (skipped {result.n_skipped})")
    print(f"  validation accuracy: {result.metadata.accuracy:.4f}")
    print(f"  artifact: {result.model_dir}")


if __name__ == "__main__":
    main()
