"""
Data layer for Pitchside.

Includes:
- Match record schema, fixture normalization and validation (`schema`)
- Corpus loading utilities (`data_loader`)
"""
