"""
Fan seating preferences and the seat/preference match score.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Type, TypeVar

from pitchside.errors import InvalidPreferenceError
from pitchside.seating.classifier import (
    FieldProximity,
    NoiseLevel,
    PriceRange,
    SeatClassification,
    ViewType,
)
from pitchside.utils.rounding import round_half_up_int

E = TypeVar("E", bound=Enum)

# (full points, partial points) per criterion; full points sum to 100
NOISE_POINTS = (30, 15)
PROXIMITY_POINTS = (25, 12)
VIEW_POINTS = (20, 10)
PRICE_POINTS = (25, 12)
MAX_SCORE = NOISE_POINTS[0] + PROXIMITY_POINTS[0] + VIEW_POINTS[0] + PRICE_POINTS[0]

DEFAULT_SATISFACTION = 50
MIN_RATING = 1
MAX_RATING = 5


def _parse(enum_cls: Type[E], field_name: str, value: Any) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidPreferenceError(
            field_name, value, [member.value for member in enum_cls]
        ) from exc


@dataclass(frozen=True)
class PreferenceVector:
    """What a fan wants from a seat."""

    noise_level: NoiseLevel = NoiseLevel.MODERATE
    field_proximity: FieldProximity = FieldProximity.MEDIUM
    view_type: ViewType = ViewType.CENTRAL
    price_range: PriceRange = PriceRange.MEDIUM

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PreferenceVector":
        """
        Parse camelCase preference keys. Missing keys take the defaults.

        Raises
        ------
        InvalidPreferenceError
            If a value is outside its enumeration.
        """
        defaults = cls()
        return cls(
            noise_level=_parse(
                NoiseLevel, "noiseLevel", data.get("noiseLevel", defaults.noise_level)
            ),
            field_proximity=_parse(
                FieldProximity,
                "fieldProximity",
                data.get("fieldProximity", defaults.field_proximity),
            ),
            view_type=_parse(ViewType, "viewType", data.get("viewType", defaults.view_type)),
            price_range=_parse(
                PriceRange, "priceRange", data.get("priceRange", defaults.price_range)
            ),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "noiseLevel": self.noise_level.value,
            "fieldProximity": self.field_proximity.value,
            "viewType": self.view_type.value,
            "priceRange": self.price_range.value,
        }


def match_score(classification: SeatClassification, prefs: PreferenceVector) -> int:
    """
    Score (0-100) how well a classified seat fits a preference vector.

    Exact matches earn full points. A "middle" preference (moderate noise,
    medium proximity, medium price) earns partial points against either
    extreme; central and side views earn partial points against each other.
    """
    score = 0

    if classification.noise_level is prefs.noise_level:
        score += NOISE_POINTS[0]
    elif prefs.noise_level is NoiseLevel.MODERATE:
        score += NOISE_POINTS[1]

    if classification.field_proximity is prefs.field_proximity:
        score += PROXIMITY_POINTS[0]
    elif prefs.field_proximity is FieldProximity.MEDIUM:
        score += PROXIMITY_POINTS[1]

    if classification.view_type is prefs.view_type:
        score += VIEW_POINTS[0]
    elif {classification.view_type, prefs.view_type} == {ViewType.CENTRAL, ViewType.SIDE}:
        score += VIEW_POINTS[1]

    if classification.price_range is prefs.price_range:
        score += PRICE_POINTS[0]
    elif prefs.price_range is PriceRange.MEDIUM:
        score += PRICE_POINTS[1]

    return round_half_up_int(score / MAX_SCORE * 100)


@dataclass
class PreferenceProfile:
    """A fan's stored preferences plus booking satisfaction history."""

    preferences: PreferenceVector = field(default_factory=PreferenceVector)
    family_friendly: bool = False
    accessibility: bool = False
    satisfaction_score: int = DEFAULT_SATISFACTION
    total_bookings: int = 0

    def update(self, changes: Mapping[str, Any]) -> None:
        """
        Apply a partial update of camelCase preference keys.

        The profile is left unchanged if any value is invalid.
        """
        current = self.preferences.to_dict()
        merged = {**current, **{k: v for k, v in changes.items() if k in current}}
        self.preferences = PreferenceVector.from_dict(merged)
        if "familyFriendly" in changes:
            self.family_friendly = bool(changes["familyFriendly"])
        if "accessibility" in changes:
            self.accessibility = bool(changes["accessibility"])

    def record_feedback(self, rating: int) -> int:
        """
        Fold a 1-5 star booking rating into the satisfaction score.

        The score is the running average of ``rating * 20`` over all
        bookings, seeded with the current score.

        Returns
        -------
        int
            The new satisfaction score.

        Raises
        ------
        InvalidPreferenceError
            If the rating is outside 1-5.
        """
        if (
            isinstance(rating, bool)
            or not isinstance(rating, (int, float))
            or not MIN_RATING <= rating <= MAX_RATING
        ):
            raise InvalidPreferenceError(
                "rating", rating, [str(r) for r in range(MIN_RATING, MAX_RATING + 1)]
            )
        self.satisfaction_score = round_half_up_int(
            (self.satisfaction_score * self.total_bookings + rating * 20)
            / (self.total_bookings + 1)
        )
        self.total_bookings += 1
        return self.satisfaction_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.preferences.to_dict(),
            "familyFriendly": self.family_friendly,
            "accessibility": self.accessibility,
            "satisfactionScore": self.satisfaction_score,
            "totalBookings": self.total_bookings,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PreferenceProfile":
        return cls(
            preferences=PreferenceVector.from_dict(data),
            family_friendly=bool(data.get("familyFriendly", False)),
            accessibility=bool(data.get("accessibility", False)),
            satisfaction_score=int(data.get("satisfactionScore", DEFAULT_SATISFACTION)),
            total_bookings=int(data.get("totalBookings", 0)),
        )
