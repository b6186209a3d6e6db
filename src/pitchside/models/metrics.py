"""
Classification metrics for the outcome classifier.

Metrics are computed over class indices in CLASS_LABELS order so that the
confusion matrix and per-class scores always have one row per outcome, even
when a split happens to contain no draws.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    log_loss,
    precision_recall_fscore_support,
)

from pitchside.config import CLASS_LABELS


def _per_class(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    labels: Sequence[str],
) -> Dict[str, Dict[str, float]]:
    precision, recall, f1, support = precision_recall_fscore_support(
        y_true,
        y_pred,
        labels=np.arange(len(labels)),
        zero_division=0,
    )
    return {
        label: {
            "precision": float(precision[i]),
            "recall": float(recall[i]),
            "f1": float(f1[i]),
            "support": int(support[i]),
        }
        for i, label in enumerate(labels)
    }


def compute_classification_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    y_proba: np.ndarray,
    labels: Sequence[str] | None = None,
) -> Dict[str, Any]:
    """
    Score predicted outcomes against true outcomes.

    Parameters
    ----------
    y_true, y_pred : np.ndarray
        Class indices (0 = home win, 1 = draw, 2 = away win).
    y_proba : np.ndarray
        Shape (n_samples, n_classes), columns in ``labels`` order.
    labels : Sequence[str] | None
        Outcome names. Defaults to CLASS_LABELS.

    Returns
    -------
    dict
        ``accuracy``, ``log_loss``, ``baseline_accuracy`` (always predicting
        the most frequent outcome), ``confusion_matrix`` (rows = true,
        columns = predicted) and ``per_class`` precision/recall/f1/support.
        Scores are NaN when there are no samples.
    """
    labels = list(labels) if labels is not None else list(CLASS_LABELS)
    n_classes = len(labels)
    y_true = np.asarray(y_true, dtype=int)
    y_pred = np.asarray(y_pred, dtype=int)

    if y_true.size == 0:
        nan = float("nan")
        return {
            "accuracy": nan,
            "log_loss": nan,
            "baseline_accuracy": nan,
            "confusion_matrix": np.zeros((n_classes, n_classes), dtype=int).tolist(),
            "per_class": {
                label: {"precision": nan, "recall": nan, "f1": nan, "support": 0}
                for label in labels
            },
        }

    outcome_counts = np.bincount(y_true, minlength=n_classes)
    try:
        ll = float(log_loss(y_true, y_proba, labels=np.arange(n_classes)))
    except ValueError:
        # e.g. a single sample
        ll = float("nan")

    return {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "log_loss": ll,
        "baseline_accuracy": float(outcome_counts.max() / outcome_counts.sum()),
        "confusion_matrix": confusion_matrix(
            y_true, y_pred, labels=np.arange(n_classes)
        ).tolist(),
        "per_class": _per_class(y_true, y_pred, labels),
    }
