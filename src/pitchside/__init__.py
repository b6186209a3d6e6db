"""
Pitchside: football match outcome prediction and stadium seat recommendation.

Subpackages:
- `data`: match record schema and corpus loading.
- `features`: team statistics aggregation and feature extraction.
- `models`: numpy outcome classifier, training pipeline, serialization.
- `prediction`: runtime prediction service, live enrichment, heuristic fallback.
- `seating`: seat classification, preference scoring and recommendations.
"""

__version__ = "0.1.0"
