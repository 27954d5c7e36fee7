from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Literal

from .models import ScoredCandidate, as_utc

MAX_LIMIT = 200
DEFAULT_HIGH_SCORE_THRESHOLD = 80.0

SortBy = Literal["score", "price", "bedrooms", "date", "freshness"]
SortOrder = Literal["asc", "desc"]


def clamp_limit(limit: int | None, default: int, maximum: int = MAX_LIMIT) -> int:
    """Clamp a caller-supplied limit to ``[1, maximum]``."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def clamp_threshold(threshold: float | None, default: float = DEFAULT_HIGH_SCORE_THRESHOLD) -> float:
    if threshold is None:
        return default
    return max(0.0, min(float(threshold), 100.0))


def _sort_key(scored: ScoredCandidate) -> tuple:
    return (
        -round(scored.weighted_score, 2),
        -scored.category_scores.freshness,
        -as_utc(scored.property.created_at).timestamp(),
        scored.property.id,
    )


def rank_candidates(scored: Iterable[ScoredCandidate], limit: int | None = None) -> list[ScoredCandidate]:
    """Order by weighted score, then freshness, then newest listing.

    The property id is the final key so the ordering is total.
    """
    ranked = sorted(scored, key=_sort_key)
    return ranked if limit is None else ranked[:limit]


def perfect_matches(ranked: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    return [s for s in ranked if s.perfect_match]


def high_score_matches(
    ranked: Iterable[ScoredCandidate],
    threshold: float = DEFAULT_HIGH_SCORE_THRESHOLD,
) -> list[ScoredCandidate]:
    """Candidates at or above *threshold*, in ranking order."""
    return rank_candidates(s for s in ranked if s.weighted_score >= threshold)


def days_listed(scored: ScoredCandidate, now: datetime) -> int:
    age = now - as_utc(scored.property.created_at)
    return math.ceil(age.total_seconds() / 86400)


def sort_candidates(
    ranked: list[ScoredCandidate],
    sort_by: SortBy = "score",
    order: SortOrder = "desc",
    now: datetime | None = None,
) -> list[ScoredCandidate]:
    """Re-order an already ranked list by a listing attribute.

    Ties keep their ranking order. ``"freshness"`` sorts on whole days since
    listing, so ascending puts the newest listings first.
    """
    if sort_by == "score":
        return list(ranked) if order == "desc" else list(reversed(ranked))
    if sort_by == "freshness" and now is None:
        raise ValueError("sorting by freshness needs the current time")
    keys = {
        "price": lambda s: s.property.price,
        "bedrooms": lambda s: s.property.bedrooms,
        "date": lambda s: as_utc(s.property.created_at),
        "freshness": lambda s: days_listed(s, now),
    }
    if sort_by not in keys:
        raise ValueError(f"unknown sort key: {sort_by!r}")
    return sorted(ranked, key=keys[sort_by], reverse=order == "desc")
