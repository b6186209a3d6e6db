"""
Outcome classifier, training and evaluation for Pitchside.

- `network` implements the numpy feed-forward classifier.
- `serialization` reads and writes the JSON model artifact.
- `train_model` runs the offline training pipeline.
- `evaluate_model` scores a saved artifact against a corpus.
- `metrics` provides metric helpers.
"""
