from __future__ import annotations

from datetime import timedelta

import pytest

from rentmatch.matching.models import Preferences
from rentmatch.matching.policy import PerfectMatchPolicy
from rentmatch.matching.scoring import (
    AvailabilityStage,
    FreshnessStage,
    LifestyleStage,
    PriceStage,
    ScoringEngine,
    bedroom_fit,
    district_score,
    listing_age_days,
    neutral_candidate,
    property_type_fit,
)

engine = ScoringEngine()


# ── Scenarios ────────────────────────────────────────────────────────────


def test_strong_match_scores_high_and_is_perfect(make_property, now):
    prefs = Preferences(
        user_id="u1",
        min_price=1500,
        max_price=3000,
        min_bedrooms=2,
        max_bedrooms=3,
        property_type=["apartment"],
        furnishing="furnished",
    )
    prop = make_property(
        price=2000,
        bedrooms=2,
        property_type="apartment",
        furnishing="furnished",
        available_from=now.date(),
    )

    scored = engine.score(prop, prefs, now)

    assert scored.category_scores.price > 90
    assert scored.category_scores.property == 100
    assert scored.weighted_score >= 90
    assert scored.perfect_match
    assert any("budget" in r for r in scored.reasons)


def test_missing_feature_does_not_collapse_composite(make_property, now):
    prefs = Preferences(user_id="u1", lifestyle_features=["gym"])
    prop = make_property(lifestyle_features=[])

    scored = engine.score(prop, prefs, now)

    assert scored.category_scores.lifestyle == 0
    assert scored.weighted_score > 0
    assert not scored.perfect_match


def test_location_is_neutral_without_location_fields(sample_properties, now):
    prefs = Preferences(user_id="u1", min_price=1000, max_price=3000)
    for prop in sample_properties:
        assert engine.score(prop, prefs, now).category_scores.location == 50


def test_composite_within_bounds(sample_properties, sample_preferences, now):
    for prefs in sample_preferences:
        for scored in engine.score_many(sample_properties, prefs, now):
            assert 0 <= scored.weighted_score <= 100
            for value in scored.category_scores.as_dict().values():
                assert 0 <= value <= 100
            if scored.perfect_match:
                assert scored.weighted_score >= 80


def test_scoring_is_deterministic(sample_properties, sample_preferences, now):
    prefs = sample_preferences[0]
    first = [s.model_dump() for s in engine.score_many(sample_properties, prefs, now)]
    second = [s.model_dump() for s in engine.score_many(sample_properties, prefs, now)]
    assert first == second


# ── Price ────────────────────────────────────────────────────────────────


@pytest.fixture
def price_score(make_property):
    def _score(price, low=1000, high=2000):
        prefs = Preferences(user_id="u1", min_price=low, max_price=high)
        return PriceStage().score(make_property(price=price), prefs, None)

    return _score


def test_price_peaks_at_ideal(price_score):
    # ideal sits 30% into the range
    assert price_score(1300) == pytest.approx(100)


@pytest.mark.parametrize("price", [1000, 1150, 1500, 1999, 2000])
def test_price_positive_anywhere_in_range(price_score, price):
    assert price_score(price) > 0


def test_price_out_of_range_penalties(price_score):
    assert price_score(2200) == pytest.approx(20)   # 10% over budget
    assert price_score(9000) == pytest.approx(0)
    assert price_score(900) == pytest.approx(60)    # 10% under budget
    assert price_score(2000) > price_score(2200)


def test_malformed_price_range_is_skipped(make_property, now):
    prefs = Preferences(user_id="u1", min_price=3000, max_price=1000)
    weights = engine.category_weights(prefs)
    assert weights["price"] == 0
    scored = engine.score(make_property(price=2000), prefs, now)
    assert scored.category_scores.price == 50


# ── Location ─────────────────────────────────────────────────────────────


def test_district_score():
    assert district_score("W1D 2HX", "W1D") == 100
    assert district_score("W1D 2HX", "W2") == 70     # same area
    assert district_score("SW1A 1AA", "SE1") == 70   # adjacent area
    assert district_score("SW1A 1AA", "N1") == 30
    assert district_score("SW1A 1AA", None) == 0


def test_commute_within_limits_scores_full(make_property, now):
    prefs = Preferences(
        user_id="u1", commute_location="canary-wharf", commute_time_tube=30
    )
    prop = make_property(lat=51.5054, lng=-0.0235)
    assert engine.score(prop, prefs, now).category_scores.location == 100


def test_unknown_area_is_ignored(make_property, now):
    prefs = Preferences(user_id="u1", primary_postcode="W1D 1AA", secondary_location="atlantis")
    prop = make_property(postcode="W1D 4EE", lat=51.513, lng=-0.134)
    assert engine.score(prop, prefs, now).category_scores.location == 100


def test_far_property_scores_low_on_location(make_property, now):
    prefs = Preferences(user_id="u1", secondary_location="stratford")
    near = make_property(id="near", lat=51.5416, lng=-0.0040)
    far = make_property(id="far", lat=51.3762, lng=-0.0982)
    assert engine.score(near, prefs, now).category_scores.location == 100
    assert engine.score(far, prefs, now).category_scores.location == 20


# ── Property attributes ──────────────────────────────────────────────────


def test_bedroom_fit():
    assert bedroom_fit(2, 2, 3) == 100
    assert bedroom_fit(1, 2, 3) == 75
    assert bedroom_fit(6, 2, 3) == 25
    assert bedroom_fit(9, None, 3) == 0


def test_property_type_fit():
    assert property_type_fit("apartment", ["apartment"]) == 100
    assert property_type_fit("flat", ["apartment"]) == 80
    assert property_type_fit("house", ["apartment"]) == 20


# ── Lifestyle / availability / freshness ─────────────────────────────────


def test_lifestyle_bonus_for_unrequested_premium(make_property, now):
    prefs = Preferences(user_id="u1", lifestyle_features=["gym", "rooftop"])
    prop = make_property(lifestyle_features=["gym", "pool"])
    # half the requested features plus one premium extra
    assert LifestyleStage().score(prop, prefs, now) == pytest.approx(55)


def test_availability_curve(make_property, now):
    stage = AvailabilityStage()
    move_in = now.date()
    prefs = Preferences(user_id="u1", move_in_date=move_in)

    def at(days):
        return stage.score(make_property(available_from=move_in + timedelta(days=days)), prefs, now)

    assert at(0) == 100
    assert at(10) == 80
    assert at(-25) == 60
    assert at(40) == 40
    assert at(200) == 0


def test_available_after_move_out_scores_zero(make_property, now):
    prefs = Preferences(
        user_id="u1",
        move_in_date=now.date(),
        move_out_date=(now + timedelta(days=30)).date(),
    )
    prop = make_property(available_from=(now + timedelta(days=31)).date())
    assert AvailabilityStage().score(prop, prefs, now) == 0


def test_freshness_decay(make_property, now):
    stage = FreshnessStage()
    prefs = Preferences(user_id="u1")

    def aged(days):
        return stage.score(make_property(created_at=now - timedelta(days=days)), prefs, now)

    assert aged(3) == 100
    assert aged(20) == 80
    assert aged(50) == 70
    assert aged(400) == 20


def test_listing_age_rounds_up(now):
    assert listing_age_days(now - timedelta(hours=1), now) == 1
    assert listing_age_days(now + timedelta(hours=1), now) == 0


# ── Engine configuration ─────────────────────────────────────────────────


def test_custom_stage_list(make_property, now):
    custom = ScoringEngine(stages=[PriceStage(), FreshnessStage()])
    prefs = Preferences(user_id="u1", min_price=1000, max_price=2000, lifestyle_features=["gym"])
    scored = custom.score(make_property(price=1300), prefs, now)
    weights = custom.category_weights(prefs)
    assert weights["lifestyle"] == 0 and weights["location"] == 0
    assert scored.category_scores.lifestyle == 50
    assert scored.weighted_score == pytest.approx(100)


def test_stricter_policy(make_property, now):
    strict = ScoringEngine(policy=PerfectMatchPolicy(min_weighted_score=95))
    prefs = Preferences(
        user_id="u1",
        min_price=1500,
        max_price=3000,
        min_bedrooms=2,
        max_bedrooms=3,
        property_type=["apartment"],
        furnishing="furnished",
    )
    scored = strict.score(make_property(), prefs, now)
    assert scored.weighted_score < 95
    assert not scored.perfect_match


def test_neutral_candidate(make_property):
    neutral = neutral_candidate(make_property())
    assert neutral.weighted_score == 50
    assert set(neutral.category_scores.as_dict().values()) == {50}
    assert neutral.reasons == []
    assert not neutral.perfect_match
