"""
Global configuration for the Pitchside project.

This module centralizes paths and key parameters (feature caps, training
thresholds, confidence buckets), so you can tweak them in one place.
"""

import os
from pathlib import Path

# Project root = folder that contains "src", "data", "models", etc.
PROJECT_ROOT: Path = Path(__file__).resolve().parents[2]

# Data directories
DATA_DIR: Path = PROJECT_ROOT / "data"
RAW_DATA_DIR: Path = DATA_DIR / "raw"

# Default training corpus (finished matches, JSON or CSV)
RAW_MATCHES_FILENAME: str = "historical_matches.json"

# Model artifacts
MODELS_DIR: Path = PROJECT_ROOT / "models"
DEFAULT_MODEL_DIRNAME: str = "outcome_classifier"
MODEL_FILENAME: str = "model.json"
METADATA_FILENAME: str = "model_metadata.json"
MODEL_VERSION: str = "1.0.0"

# Plot output directory (for evaluation)
PLOTS_DIR: Path = PROJECT_ROOT / "plots"

# Target and label mapping (index order is the classifier's output order)
CLASS_LABELS = ["home_win", "draw", "away_win"]

FEATURE_NAMES = [
    "homeWinRate",
    "homeGoalsPerMatch",
    "homeGoalsConcededPerMatch",
    "awayWinRate",
    "awayGoalsPerMatch",
    "awayGoalsConcededPerMatch",
    "homeWinRateAtHome",
    "awayWinRateAway",
    "formDifference",
    "goalDifference",
]

# Goals per match are divided by this and capped at 1.0
GOALS_PER_MATCH_CAP: float = 5.0

# A team needs this many aggregated matches before its fixtures are used
# as training examples.
MIN_TEAM_MATCHES: int = 5

# Training aborts below this many valid examples.
MIN_TRAINING_EXAMPLES: int = 100

# Number of recent matches used for form and goal averages
RECENT_FORM_WINDOW: int = 5

# Confidence buckets on the largest outcome percentage
HIGH_CONFIDENCE_PCT: int = 50
MEDIUM_CONFIDENCE_PCT: int = 40

# Fixture statuses that count as finished
FINISHED_STATUSES = ("FT", "AET", "PEN")

# Reproducibility
RANDOM_STATE: int = 42

# Logging
LOG_LEVEL: str = os.environ.get("PITCHSIDE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# Ensure directories exist
for _dir in (DATA_DIR, RAW_DATA_DIR, MODELS_DIR):
    _dir.mkdir(parents=True, exist_ok=True)
