"""
Typed failures raised by Pitchside.

Callers can catch `PitchsideError` to handle the whole family, or a specific
subclass to tell "insufficient data" apart from programming errors.
"""

from __future__ import annotations

from typing import Iterable


class PitchsideError(Exception):
    """Base class for every failure Pitchside raises on purpose."""


class UnknownTeamError(PitchsideError, LookupError):
    """
    Raised when a team has no aggregated statistics.

    Not recoverable locally: the caller should report that there is not
    enough data to predict the fixture.
    """

    def __init__(self, team_ids: Iterable[int], sides: Iterable[str] = ()):
        self.team_ids = tuple(team_ids)
        self.sides = tuple(sides)
        missing = [str(t) for t in self.team_ids]
        if not missing:
            missing = [f"{side} team" for side in self.sides]
        super().__init__(f"Team(s) not found in training data: {', '.join(missing)}")


class InsufficientTrainingDataError(PitchsideError):
    """Raised when too few valid examples remain to fit the classifier."""

    def __init__(self, found: int, required: int):
        self.found = found
        self.required = required
        super().__init__(
            f"Not enough training data: {found} valid examples, "
            f"at least {required} required."
        )


class ModelNotInitializedError(PitchsideError, RuntimeError):
    """Raised when predict() is called before the model has been loaded."""

    def __init__(self, message: str = "Model not loaded. Call initialize() first."):
        super().__init__(message)


class InvalidPreferenceError(PitchsideError, ValueError):
    """Raised when a seat preference value is outside its enumeration."""

    def __init__(self, field: str, value: object, allowed: Iterable[str] = ()):
        self.field = field
        self.value = value
        self.allowed = tuple(allowed)
        message = f"Invalid value {value!r} for preference '{field}'"
        if self.allowed:
            message += f" (expected one of: {', '.join(self.allowed)})"
        super().__init__(message)
