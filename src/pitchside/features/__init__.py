"""
Feature engineering for Pitchside.

- `team_stats` folds historical matches into per-team aggregate counters.
- `feature_builder` turns a team pairing into the classifier's feature
  vector and builds labeled training examples.
"""
