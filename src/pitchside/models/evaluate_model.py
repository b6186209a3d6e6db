# path: src/pitchside/models/evaluate_model.py
"""
Evaluate a trained Pitchside model on a match corpus.

Usage:

    python -m pitchside.models.evaluate_model --corpus data/raw/historical_matches.json

This will:
- Load the corpus and the model artifact (model.json + model_metadata.json)
- Rebuild features from the artifact's stored team statistics
- Compute accuracy, log_loss, baseline accuracy, confusion matrix
- Save confusion matrix and training history plots to plots/
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, Optional

import matplotlib.pyplot as plt
import numpy as np

from pitchside.config import CLASS_LABELS, MIN_TEAM_MATCHES, PLOTS_DIR
from pitchside.data.data_loader import load_match_corpus
from pitchside.features.feature_builder import build_training_examples
from pitchside.models.metrics import compute_classification_metrics
from pitchside.models.serialization import load_model_artifact
from pitchside.utils.logging_utils import configure_logging, get_logger
from pitchside.utils.paths import PathLike

logger = get_logger(__name__)


def _plot_confusion_matrix(cm: np.ndarray, plots_dir: Path) -> Path:
    """Save the confusion matrix, shaded by recall per true outcome."""
    plots_dir.mkdir(parents=True, exist_ok=True)
    out_path = plots_dir / "confusion_matrix.png"

    row_totals = cm.sum(axis=1, keepdims=True)
    shares = np.divide(cm, row_totals, out=np.zeros(cm.shape), where=row_totals > 0)

    fig, ax = plt.subplots(figsize=(6, 5))
    im = ax.imshow(shares, vmin=0.0, vmax=1.0, cmap="Blues")
    fig.colorbar(im, ax=ax, label="Share of true outcome")

    ticks = np.arange(len(CLASS_LABELS))
    ax.set_xticks(ticks, labels=CLASS_LABELS)
    ax.set_yticks(ticks, labels=CLASS_LABELS)
    ax.set_xlabel("Predicted outcome")
    ax.set_ylabel("True outcome")
    ax.set_title("Outcome confusion matrix")

    for (i, j), count in np.ndenumerate(cm):
        ax.text(
            j,
            i,
            f"{count}\n{shares[i, j]:.0%}",
            ha="center",
            va="center",
            color="white" if shares[i, j] > 0.5 else "black",
        )

    fig.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
    logger.info("Saved confusion matrix plot to %s", out_path)
    return out_path


def _plot_training_history(history: Dict[str, list], plots_dir: Path) -> Optional[Path]:
    """Plot and save loss/accuracy curves if the artifact carries them."""
    if not history.get("loss"):
        logger.warning("No training history found in model metadata.")
        return None

    plots_dir.mkdir(parents=True, exist_ok=True)
    out_path = plots_dir / "training_history.png"

    epochs = np.arange(1, len(history["loss"]) + 1)
    fig, (ax_loss, ax_acc) = plt.subplots(1, 2, figsize=(11, 4))
    ax_loss.plot(epochs, history["loss"], label="train")
    ax_acc.plot(epochs, history["accuracy"], label="train")
    if history.get("val_loss"):
        ax_loss.plot(epochs, history["val_loss"], label="validation")
        ax_acc.plot(epochs, history["val_accuracy"], label="validation")

    ax_loss.set_title("Loss")
    ax_acc.set_title("Accuracy")
    for ax in (ax_loss, ax_acc):
        ax.set_xlabel("Epoch")
        ax.legend()

    fig.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
    logger.info("Saved training history plot to %s", out_path)
    return out_path


def run_evaluation(
    corpus_path: Optional[PathLike] = None,
    model_dir: Optional[PathLike] = None,
    plots_dir: Optional[PathLike] = None,
    make_plots: bool = True,
) -> Dict[str, Any]:
    """
    Main evaluation routine.

    Returns
    -------
    dict
        Metrics from `compute_classification_metrics` plus ``n_examples``.
    """
    matches = load_match_corpus(corpus_path)

    logger.info("Loading trained model artifact...")
    classifier, metadata = load_model_artifact(model_dir)

    X, y, _ = build_training_examples(
        matches, metadata.team_stats, min_team_matches=MIN_TEAM_MATCHES
    )
    if len(y) == 0:
        raise ValueError("No evaluable matches in corpus for the model's teams.")

    y_proba = classifier.predict_proba(X)
    y_pred = np.argmax(y_proba, axis=1)

    metrics = compute_classification_metrics(
        y_true=y,
        y_pred=y_pred,
        y_proba=y_proba,
        labels=CLASS_LABELS,
    )
    metrics["n_examples"] = int(len(y))
    logger.info("Evaluation metrics: %s", metrics)

    if make_plots:
        out_dir = Path(plots_dir) if plots_dir is not None else PLOTS_DIR
        _plot_confusion_matrix(np.array(metrics["confusion_matrix"], dtype=int), out_dir)
        _plot_training_history(metadata.history, out_dir)

    return metrics


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Evaluate trained Pitchside model."
    )
    parser.add_argument("--corpus", type=Path, default=None)
    parser.add_argument("--model-dir", type=Path, default=None)
    parser.add_argument("--no-plots", action="store_true")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING...")
    args = parser.parse_args()
    configure_logging(args.log_level)

    metrics = run_evaluation(
        corpus_path=args.corpus,
        model_dir=args.model_dir,
        make_plots=not args.no_plots,
    )

    print(f"Evaluated {metrics['n_examples']} matches")
    print(
        f"  accuracy {metrics['accuracy']:.4f}"
        f" (baseline {metrics['baseline_accuracy']:.4f}),"
        f" log loss {metrics['log_loss']:.4f}"
    )
    print(f"  {'outcome':<10} {'precision':>9} {'recall':>7} {'f1':>6} {'n':>5}")
    for label, scores in metrics["per_class"].items():
        print(
            f"  {label:<10} {scores['precision']:>9.3f} {scores['recall']:>7.3f}"
            f" {scores['f1']:>6.3f} {scores['support']:>5d}"
        )


if __name__ == "__main__":
    main()
