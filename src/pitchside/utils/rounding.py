"""
Rounding helpers.

Percentages and averages are rounded with ties going towards positive
infinity (2.5 -> 3, -2.5 -> -2), not with Python's banker's rounding.
"""

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round ``value`` to ``ndigits`` decimals, ties going up."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def round_half_up_int(value: float) -> int:
    """Round ``value`` to the nearest integer, ties going up."""
    return int(math.floor(value + 0.5))
