from __future__ import annotations

import pytest

from rentmatch.insights.aggregator import (
    RELAX_FEATURES,
    RELAX_LOCATION,
    SET_PREFERENCES,
    WIDEN_RANGES,
    compute_insights,
    compute_property_statistics,
    empty_insights,
)
from rentmatch.matching.models import CategoryScores, ScoredCandidate


def _scored(prop, weighted, perfect=False, **scores):
    return ScoredCandidate(
        property=prop,
        category_scores=CategoryScores(**scores),
        weighted_score=weighted,
        perfect_match=perfect,
    )


def test_empty_pool():
    insights = compute_insights([])
    assert insights.total_candidates == 0
    assert insights.average_score == 0
    assert insights.top_categories == []
    assert insights.recommendations == [WIDEN_RANGES, RELAX_LOCATION, RELAX_FEATURES]


def test_aggregates(make_property):
    pool = [
        _scored(make_property(id="p1"), 91.0, perfect=True, price=95, property=100, lifestyle=10),
        _scored(make_property(id="p2"), 82.5, price=85, property=90, lifestyle=20),
        _scored(make_property(id="p3"), 40.0, price=20, property=30, lifestyle=0),
    ]

    insights = compute_insights(pool)

    assert insights.total_candidates == 3
    assert insights.perfect_matches == 1
    assert insights.high_score_matches == 2
    assert insights.average_score == pytest.approx(71.17)
    # property 220, price 200, then location/availability/freshness tie at 150
    assert insights.top_categories == ["property", "price", "location"]
    assert insights.recommendations == [RELAX_FEATURES]


def test_low_average_recommends_location(make_property):
    pool = [_scored(make_property(id=f"p{i}"), 45.0) for i in range(12)]
    insights = compute_insights(pool)
    assert insights.recommendations == [WIDEN_RANGES, RELAX_LOCATION]


def test_empty_insights_prompt():
    assert empty_insights().recommendations == [SET_PREFERENCES]


def test_property_statistics(sample_properties):
    stats = compute_property_statistics(sample_properties)
    assert stats.total_properties == 4
    assert stats.properties_with_coordinates == 3
    assert stats.average_price == pytest.approx(2700.0)
    assert stats.price_range == {"min": 1400.0, "max": 5000.0}
    assert stats.bedroom_distribution == {1: 1, 2: 2, 4: 1}
    assert stats.property_type_distribution == {"apartment": 1, "flat": 1, "house": 1, "studio": 1}
    assert stats.furnishing_distribution == {"furnished": 2, "unfurnished": 2}


def test_property_statistics_empty():
    stats = compute_property_statistics([])
    assert stats.total_properties == 0
    assert stats.price_range == {"min": 0.0, "max": 0.0}
