from __future__ import annotations

from typing import Sequence

import pandas as pd

from ..matching.models import (
    CATEGORIES,
    MatchingInsights,
    Property,
    PropertyStatistics,
    ScoredCandidate,
)

HIGH_SCORE_THRESHOLD = 80.0
FEW_CANDIDATES = 10
LOW_AVERAGE_SCORE = 60.0

WIDEN_RANGES = "Consider expanding your price range or bedroom requirements"
RELAX_LOCATION = "Try adjusting your location preferences for better matches"
RELAX_FEATURES = "Consider being more flexible with your lifestyle feature requirements"
SET_PREFERENCES = "Please set your preferences to get matching insights"


def _scores_frame(scored: Sequence[ScoredCandidate]) -> pd.DataFrame:
    rows = [
        {**s.category_scores.as_dict(), "weighted": s.weighted_score, "perfect": s.perfect_match}
        for s in scored
    ]
    return pd.DataFrame(rows, columns=[*CATEGORIES, "weighted", "perfect"])


def compute_insights(
    scored: Sequence[ScoredCandidate],
    high_score_threshold: float = HIGH_SCORE_THRESHOLD,
) -> MatchingInsights:
    df = _scores_frame(scored)
    total = len(df)

    perfect = int(df["perfect"].astype(bool).sum()) if total else 0
    high = int((df["weighted"] >= high_score_threshold).sum()) if total else 0
    average = round(float(df["weighted"].mean()), 2) if total else 0.0

    # Aggregate score per category; stable sort keeps category order on ties
    top_categories: list[str] = []
    if total:
        totals = df[list(CATEGORIES)].sum()
        top_categories = list(totals.sort_values(ascending=False, kind="mergesort").index[:3])

    recommendations: list[str] = []
    if perfect == 0:
        recommendations.append(WIDEN_RANGES)
    if average < LOW_AVERAGE_SCORE:
        recommendations.append(RELAX_LOCATION)
    if total < FEW_CANDIDATES:
        recommendations.append(RELAX_FEATURES)

    return MatchingInsights(
        total_candidates=total,
        perfect_matches=perfect,
        high_score_matches=high,
        average_score=average,
        top_categories=top_categories,
        recommendations=recommendations,
    )


def empty_insights() -> MatchingInsights:
    """Insights for a tenant with no stored preferences."""
    return MatchingInsights(recommendations=[SET_PREFERENCES])


def compute_property_statistics(properties: Sequence[Property]) -> PropertyStatistics:
    if not properties:
        return PropertyStatistics()

    df = pd.DataFrame(
        [
            {
                "price": float(p.price),
                "bedrooms": p.bedrooms,
                "property_type": p.property_type or "unknown",
                "furnishing": p.furnishing or "unknown",
                "has_coordinates": p.has_coordinates,
            }
            for p in properties
        ]
    )

    def _distribution(column: str) -> dict:
        counts = df[column].value_counts().sort_index()
        return {k: int(v) for k, v in counts.items()}

    return PropertyStatistics(
        total_properties=len(df),
        properties_with_coordinates=int(df["has_coordinates"].sum()),
        average_price=round(float(df["price"].mean()), 2),
        price_range={"min": float(df["price"].min()), "max": float(df["price"].max())},
        bedroom_distribution={int(k): v for k, v in _distribution("bedrooms").items()},
        property_type_distribution=_distribution("property_type"),
        furnishing_distribution=_distribution("furnishing"),
    )
