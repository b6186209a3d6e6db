"""Match outcome prediction: model-backed service, live enrichment, heuristic fallback and the score-prediction game."""
