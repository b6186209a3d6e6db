"""
Seat classification from stadium coordinates.

A seat's distance from the stadium center sets its noise level, field
proximity and base price tier. The view type comes from the polar angle of
the seat coordinates themselves, ``atan2(y, x)``, whatever the configured
center. Classification is a pure function of ``(x, y, stadium)``.

At the origin the angle is undefined; it is taken to be 0 degrees, which
classifies the seat as a central view.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pitchside.utils.rounding import round_half_up_int


class NoiseLevel(str, Enum):
    QUIET = "quiet"
    MODERATE = "moderate"
    LOUD = "loud"


class FieldProximity(str, Enum):
    CLOSE = "close"
    MEDIUM = "medium"
    FAR = "far"


class ViewType(str, Enum):
    CENTRAL = "central"
    SIDE = "side"
    CORNER = "corner"


class PriceRange(str, Enum):
    BUDGET = "budget"
    MEDIUM = "medium"
    PREMIUM = "premium"


class EnergyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Distance ratio thresholds shared by noise, proximity and price tiers
NEAR_RATIO = 0.33
MID_RATIO = 0.67

BASE_PRICES = (120, 80, 60)
CENTRAL_VIEW_MULTIPLIER = 1.2
CORNER_VIEW_MULTIPLIER = 0.9

BUDGET_BELOW = 60
PREMIUM_ABOVE = 120

_ENERGY_BY_NOISE = {
    NoiseLevel.LOUD: EnergyLevel.HIGH,
    NoiseLevel.MODERATE: EnergyLevel.MEDIUM,
    NoiseLevel.QUIET: EnergyLevel.LOW,
}


@dataclass(frozen=True)
class StadiumConfig:
    center_x: float = 0.0
    center_y: float = 0.0
    max_distance: float = 100.0

    def __post_init__(self) -> None:
        if not self.max_distance > 0:
            raise ValueError(f"max_distance must be positive, got {self.max_distance}")


@dataclass(frozen=True)
class Seat:
    """A physical seat in the inventory."""

    section: str
    row: int
    number: int
    x: float
    y: float
    available: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Seat":
        try:
            return cls(
                section=str(data["section"]),
                row=int(data["row"]),
                number=int(data["number"]),
                x=float(data["x"]),
                y=float(data["y"]),
                available=bool(data.get("available", True)),
            )
        except KeyError as exc:
            raise ValueError(f"Seat is missing field {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.section,
            "row": self.row,
            "number": self.number,
            "x": self.x,
            "y": self.y,
            "available": self.available,
        }


@dataclass(frozen=True)
class SeatClassification:
    noise_level: NoiseLevel
    field_proximity: FieldProximity
    view_type: ViewType
    price_range: PriceRange
    price: int
    distance: float
    energy_level: EnergyLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "noiseLevel": self.noise_level.value,
            "fieldProximity": self.field_proximity.value,
            "viewType": self.view_type.value,
            "priceRange": self.price_range.value,
            "price": self.price,
            "distance": self.distance,
            "energyLevel": self.energy_level.value,
        }


def classify_noise_level(ratio: float) -> NoiseLevel:
    if ratio < NEAR_RATIO:
        return NoiseLevel.LOUD
    if ratio < MID_RATIO:
        return NoiseLevel.MODERATE
    return NoiseLevel.QUIET


def classify_field_proximity(ratio: float) -> FieldProximity:
    if ratio < NEAR_RATIO:
        return FieldProximity.CLOSE
    if ratio < MID_RATIO:
        return FieldProximity.MEDIUM
    return FieldProximity.FAR


def classify_view_type(x: float, y: float) -> ViewType:
    """View type from the polar angle of ``(x, y)``."""
    if x == 0 and y == 0:
        angle = 0.0
    else:
        angle = abs(math.degrees(math.atan2(y, x)))

    if angle < 30 or angle > 150:
        return ViewType.CENTRAL
    if angle < 60 or angle > 120:
        return ViewType.CORNER
    return ViewType.SIDE


def calculate_price(ratio: float, view_type: ViewType) -> int:
    if ratio < NEAR_RATIO:
        price = float(BASE_PRICES[0])
    elif ratio < MID_RATIO:
        price = float(BASE_PRICES[1])
    else:
        price = float(BASE_PRICES[2])

    if view_type is ViewType.CENTRAL:
        price *= CENTRAL_VIEW_MULTIPLIER
    elif view_type is ViewType.CORNER:
        price *= CORNER_VIEW_MULTIPLIER
    return round_half_up_int(price)


def classify_price_range(price: int) -> PriceRange:
    if price < BUDGET_BELOW:
        return PriceRange.BUDGET
    if price > PREMIUM_ABOVE:
        return PriceRange.PREMIUM
    return PriceRange.MEDIUM


def classify_position(
    x: float,
    y: float,
    stadium: Optional[StadiumConfig] = None,
) -> SeatClassification:
    """
    Classify a seat position.

    Parameters
    ----------
    x, y : float
        Seat coordinates in the stadium's frame.
    stadium : StadiumConfig | None
        Center and maximum distance. Defaults to a 100-unit stadium
        centered on the origin.
    """
    stadium = stadium if stadium is not None else StadiumConfig()
    dx = x - stadium.center_x
    dy = y - stadium.center_y
    distance = math.hypot(dx, dy)
    ratio = distance / stadium.max_distance

    noise = classify_noise_level(ratio)
    view = classify_view_type(x, y)
    price = calculate_price(ratio, view)
    return SeatClassification(
        noise_level=noise,
        field_proximity=classify_field_proximity(ratio),
        view_type=view,
        price_range=classify_price_range(price),
        price=price,
        distance=distance,
        energy_level=_ENERGY_BY_NOISE[noise],
    )


def classify_seat(seat: Seat, stadium: Optional[StadiumConfig] = None) -> SeatClassification:
    return classify_position(seat.x, seat.y, stadium)
