"""
Rank stadium seats against a fan's preferences.

Usage (from project root):

    python -m pitchside.seating.recommender --noise loud --view central --limit 5

Without a seat file the demo four-stand inventory is used.
"""

from __future__ import annotations

import argparse
import json
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pitchside.errors import PitchsideError
from pitchside.seating.classifier import Seat, SeatClassification, StadiumConfig, classify_seat
from pitchside.seating.preferences import PreferenceVector, match_score
from pitchside.utils.logging_utils import configure_logging, get_logger
from pitchside.utils.rounding import round_half_up_int

logger = get_logger(__name__)

DEFAULT_LIMIT = 3

DEMO_SECTIONS = ("North", "South", "East", "West")
DEMO_ROWS = 20
DEMO_SEATS_PER_ROW = 15
# Seats drawing at or below this are marked as taken
DEMO_TAKEN_THRESHOLD = 0.3


@dataclass(frozen=True)
class RankedRecommendation:
    seat: Seat
    classification: SeatClassification
    match_score: int
    is_top_pick: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.seat.section,
            "row": self.seat.row,
            "number": self.seat.number,
            "price": self.classification.price,
            "matchScore": self.match_score,
            "classification": self.classification.to_dict(),
            "isTopPick": self.is_top_pick,
        }


def get_recommendations(
    seats: Sequence[Seat],
    prefs: PreferenceVector,
    limit: int = DEFAULT_LIMIT,
    stadium: Optional[StadiumConfig] = None,
    only_available: bool = True,
) -> List[RankedRecommendation]:
    """
    Classify and score every seat and return the best ``limit`` of them.

    The result is sorted by match score, highest first; seats with equal
    scores keep their inventory order. Only the first result is marked as
    top pick.

    Raises
    ------
    ValueError
        If ``limit`` is negative.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    candidates = [s for s in seats if s.available] if only_available else list(seats)
    scored = []
    for seat in candidates:
        classification = classify_seat(seat, stadium)
        scored.append((seat, classification, match_score(classification, prefs)))

    # sorted() is stable, so ties keep inventory order
    ranked = sorted(scored, key=lambda item: item[2], reverse=True)[:limit]

    recommendations = [
        RankedRecommendation(seat, classification, score, is_top_pick=(i == 0))
        for i, (seat, classification, score) in enumerate(ranked)
    ]
    logger.info(
        "Ranked %d of %d seats, returning %d recommendations.",
        len(candidates), len(seats), len(recommendations),
    )
    return recommendations


def _demo_position(section: str, row: int, number: int) -> Tuple[float, float]:
    offset = (number - 7.5) * 5
    depth = 50 - row * 2
    if section == "North":
        return offset, depth
    if section == "South":
        return offset, -depth
    if section == "East":
        return depth, offset
    return -depth, offset


def generate_demo_seats(rng: Optional[random.Random] = None) -> List[Seat]:
    """
    Build a demo inventory: four stands of 20 rows by 15 seats around the
    origin, with about 70% of seats available.
    """
    rng = rng if rng is not None else random.Random()
    seats = []
    for section in DEMO_SECTIONS:
        for row in range(1, DEMO_ROWS + 1):
            for number in range(1, DEMO_SEATS_PER_ROW + 1):
                x, y = _demo_position(section, row, number)
                seats.append(
                    Seat(
                        section=section,
                        row=row,
                        number=number,
                        x=round_half_up_int(x),
                        y=round_half_up_int(y),
                        available=rng.random() > DEMO_TAKEN_THRESHOLD,
                    )
                )
    return seats


def load_seats(path: Path) -> List[Seat]:
    """Read a JSON list of seats (or ``{"seats": [...]}``)."""
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("seats", [])
    return [Seat.from_dict(item) for item in data]


def main() -> None:
    parser = argparse.ArgumentParser(description="Recommend stadium seats for a fan.")
    parser.add_argument("--seats", type=Path, default=None,
                        help="JSON seat inventory. Defaults to the demo stadium.")
    parser.add_argument("--noise", default="moderate")
    parser.add_argument("--proximity", default="medium")
    parser.add_argument("--view", default="central")
    parser.add_argument("--price", default="medium")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING...")
    args = parser.parse_args()
    configure_logging(args.log_level)

    try:
        prefs = PreferenceVector.from_dict(
            {
                "noiseLevel": args.noise,
                "fieldProximity": args.proximity,
                "viewType": args.view,
                "priceRange": args.price,
            }
        )
    except PitchsideError as exc:
        logger.error("Invalid preferences: %s", exc)
        raise SystemExit(2) from exc

    if args.seats is not None:
        seats = load_seats(args.seats)
    else:
        seats = generate_demo_seats(random.Random(args.seed))

    recommendations = get_recommendations(seats, prefs, limit=args.limit)
    print(
        json.dumps(
            {
                "preferences": prefs.to_dict(),
                "recommendations": [r.to_dict() for r in recommendations],
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
