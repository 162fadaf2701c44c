"""
minyan.engine.rating — Display Rating from Reviews
===================================================

Recomputed on every read; there is no stored running aggregate to keep in
sync.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

__all__ = ["RatingSummary", "compute_average"]


@dataclass(frozen=True, slots=True)
class RatingSummary:
    average: float
    total_reviews: int

    def to_dict(self) -> dict:
        return {"average": self.average, "totalReviews": self.total_reviews}


def _rating_of(review: Any) -> int:
    if isinstance(review, dict):
        return int(review["rating"])
    return int(review.rating)


def compute_average(reviews: Iterable[Any]) -> RatingSummary:
    """Mean rating rounded half-up to one decimal, or 0 with no reviews.

    Accepts ORM ``Review`` rows or plain ``{"rating": n}`` dicts.
    """
    ratings = [_rating_of(r) for r in reviews]
    if not ratings:
        return RatingSummary(average=0.0, total_reviews=0)

    # exact half-up: 4.25 -> 4.3, never banker's rounding
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    average = float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    return RatingSummary(average=average, total_reviews=len(ratings))
