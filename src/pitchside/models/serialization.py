"""
Library-independent model artifact format.

An artifact directory holds two JSON documents:

- ``model.json``: the network topology and an ordered list of weight
  records ``{name, shape, dtype, values}``, layer by layer, kernel before
  bias. ``values`` is the flat (row-major) tensor content.
- ``model_metadata.json``: team statistics and training summary
  (``teamStats``, ``featureNames``, ``accuracy``, ``trainedOn``,
  ``totalMatches``, ``version``, ``history``).

Loading rebuilds a fresh `OutcomeClassifier` from the topology and restores
each tensor by name, so a reordered weight list cannot be silently
misaligned. Nothing here depends on a training framework.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from pitchside.config import FEATURE_NAMES, MODEL_VERSION
from pitchside.features.team_stats import (
    TeamStats,
    team_stats_from_dict,
    team_stats_to_dict,
)
from pitchside.models.network import OutcomeClassifier, Topology
from pitchside.utils.logging_utils import get_logger
from pitchside.utils.paths import PathLike, get_metadata_path, get_model_dir, get_model_path

logger = get_logger(__name__)

FORMAT_NAME = "pitchside-outcome-classifier"
FORMAT_VERSION = 1


@dataclass(frozen=True)
class WeightRecord:
    """One named weight tensor in flat form."""

    name: str
    shape: Tuple[int, ...]
    dtype: str
    values: Tuple[float, ...]

    @classmethod
    def from_array(cls, name: str, array: np.ndarray) -> "WeightRecord":
        arr = np.asarray(array)
        return cls(
            name=name,
            shape=tuple(int(d) for d in arr.shape),
            dtype=str(arr.dtype),
            values=tuple(float(v) for v in arr.ravel()),
        )

    def to_array(self) -> np.ndarray:
        """
        Rebuild the tensor.

        Raises
        ------
        ValueError
            If the number of values does not match the shape.
        """
        size = math.prod(self.shape)
        if len(self.values) != size:
            raise ValueError(
                f"Weight {self.name}: {len(self.values)} values for shape "
                f"{list(self.shape)} ({size} expected)"
            )
        return np.asarray(self.values, dtype=self.dtype).reshape(self.shape)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "shape": list(self.shape),
            "dtype": self.dtype,
            "values": list(self.values),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeightRecord":
        try:
            return cls(
                name=str(data["name"]),
                shape=tuple(int(d) for d in data["shape"]),
                dtype=str(data.get("dtype", "float32")),
                values=tuple(float(v) for v in data["values"]),
            )
        except KeyError as exc:
            raise ValueError(f"Weight record is missing field {exc}") from exc


@dataclass
class ModelMetadata:
    """Everything inference needs besides the weights."""

    team_stats: Dict[int, TeamStats]
    feature_names: List[str] = field(default_factory=lambda: list(FEATURE_NAMES))
    accuracy: float = float("nan")
    trained_on: str = ""
    total_matches: int = 0
    version: str = MODEL_VERSION
    history: Dict[str, List[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teamStats": team_stats_to_dict(self.team_stats),
            "featureNames": list(self.feature_names),
            "accuracy": None if math.isnan(self.accuracy) else self.accuracy,
            "trainedOn": self.trained_on,
            "totalMatches": self.total_matches,
            "version": self.version,
            "history": self.history,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelMetadata":
        if "teamStats" not in data:
            raise ValueError("Metadata document has no teamStats.")
        accuracy = data.get("accuracy")
        return cls(
            team_stats=team_stats_from_dict(data["teamStats"]),
            feature_names=list(data.get("featureNames", data.get("features", FEATURE_NAMES))),
            accuracy=float("nan") if accuracy is None else float(accuracy),
            trained_on=str(data.get("trainedOn", "")),
            total_matches=int(data.get("totalMatches", 0)),
            version=str(data.get("version", MODEL_VERSION)),
            history={k: list(v) for k, v in (data.get("history") or {}).items()},
        )


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def weights_to_records(classifier: OutcomeClassifier) -> List[WeightRecord]:
    """Weight records in traversal order (layer by layer, kernel before bias)."""
    return [WeightRecord.from_array(name, arr) for name, arr in classifier.get_weights()]


def model_to_dict(classifier: OutcomeClassifier) -> Dict[str, Any]:
    return {
        "format": FORMAT_NAME,
        "formatVersion": FORMAT_VERSION,
        "topology": classifier.topology.to_dict(),
        "weights": [record.to_dict() for record in weights_to_records(classifier)],
    }


def model_from_dict(data: Mapping[str, Any]) -> OutcomeClassifier:
    """
    Rebuild a classifier from a ``model.json`` document.

    Raises
    ------
    ValueError
        If the document is not a supported artifact or the weights do not
        fit the topology.
    """
    if data.get("format") != FORMAT_NAME:
        raise ValueError(f"Unsupported model format: {data.get('format')!r}")
    if int(data.get("formatVersion", 0)) > FORMAT_VERSION:
        raise ValueError(
            f"Model format version {data.get('formatVersion')} is newer than "
            f"supported version {FORMAT_VERSION}"
        )

    topology = Topology.from_dict(data["topology"])
    records = [WeightRecord.from_dict(r) for r in data.get("weights", [])]

    classifier = OutcomeClassifier(topology)
    classifier.set_weights([(r.name, r.to_array()) for r in records])
    return classifier


def save_model_artifact(
    classifier: OutcomeClassifier,
    metadata: ModelMetadata,
    model_dir: Optional[PathLike] = None,
) -> Path:
    """
    Write ``model.json`` and ``model_metadata.json`` into ``model_dir``.

    Returns
    -------
    pathlib.Path
        The artifact directory.
    """
    out_dir = get_model_dir(model_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    model_path = get_model_path(out_dir)
    with model_path.open("w", encoding="utf-8") as fh:
        json.dump(model_to_dict(classifier), fh)

    metadata_path = get_metadata_path(out_dir)
    with metadata_path.open("w", encoding="utf-8") as fh:
        json.dump(metadata.to_dict(), fh, indent=2)

    logger.info("Saved model to %s and metadata to %s", model_path, metadata_path)
    return out_dir


def load_model_artifact(
    model_dir: Optional[PathLike] = None,
) -> Tuple[OutcomeClassifier, ModelMetadata]:
    """
    Load a classifier and its metadata from an artifact directory.

    Raises
    ------
    FileNotFoundError
        If either document is missing.
    ValueError
        If either document is malformed.
    """
    model_path = get_model_path(model_dir)
    metadata_path = get_metadata_path(model_dir)
    for path in (model_path, metadata_path):
        if not path.exists():
            raise FileNotFoundError(
                f"Model artifact file not found at {path}. Train the model first."
            )

    with metadata_path.open("r", encoding="utf-8") as fh:
        metadata = ModelMetadata.from_dict(json.load(fh))
    with model_path.open("r", encoding="utf-8") as fh:
        classifier = model_from_dict(json.load(fh))

    logger.info("Loaded model artifact from %s", model_path.parent)
    return classifier, metadata
