"""
Helper functions for file and directory paths used in Pitchside.
"""

from pathlib import Path
from typing import Union

from pitchside.config import (
    RAW_DATA_DIR,
    RAW_MATCHES_FILENAME,
    MODELS_DIR,
    DEFAULT_MODEL_DIRNAME,
    MODEL_FILENAME,
    METADATA_FILENAME,
)


PathLike = Union[str, Path]


def get_raw_data_path(filename: str | None = None) -> Path:
    """
    Return the path to a raw data file.

    Parameters
    ----------
    filename : str | None
        Specific filename, or None for the default training corpus.

    Returns
    -------
    Path
        Full path to the raw data file.
    """
    if filename is None:
        filename = RAW_MATCHES_FILENAME
    return RAW_DATA_DIR / filename


def get_model_dir(model_dir: PathLike | None = None) -> Path:
    """
    Return the directory holding a model artifact.

    Parameters
    ----------
    model_dir : str | Path | None
        Explicit directory, or None for models/outcome_classifier.

    Returns
    -------
    Path
        Model artifact directory.
    """
    if model_dir is None:
        return MODELS_DIR / DEFAULT_MODEL_DIRNAME
    return Path(model_dir)


def get_model_path(model_dir: PathLike | None = None) -> Path:
    """Return the path to the topology + weights file of a model artifact."""
    return get_model_dir(model_dir) / MODEL_FILENAME


def get_metadata_path(model_dir: PathLike | None = None) -> Path:
    """Return the path to the metadata document of a model artifact."""
    return get_model_dir(model_dir) / METADATA_FILENAME
