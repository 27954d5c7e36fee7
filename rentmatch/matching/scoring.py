"""
Scoring engine.

Each category is produced by a ``ScoringStage``; the engine combines the
active stages with dynamic weights. Scoring is a pure function of
``(property, preferences, now)``: no I/O, no randomness, no exceptions for
well-formed models.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

from ..geo.areas import area_label, get_area
from ..geo.distance import distance_to, nearest_area, proximity_score
from .features import PREMIUM_FEATURES
from .models import (
    CATEGORIES,
    PROPERTY_TYPE_GROUPS,
    CategoryScores,
    Preferences,
    Property,
    ScoredCandidate,
    as_utc,
    outward_code,
    postcode_area,
)
from .policy import DEFAULT_PERFECT_MATCH_POLICY, PerfectMatchPolicy
from .validation import invalid_categories

NEUTRAL_SCORE = 50.0

BASE_WEIGHTS: dict[str, float] = {
    "price": 30,
    "location": 25,
    "property": 20,
    "lifestyle": 15,
    "availability": 5,
    "freshness": 5,
}

# Multiplier applied to a category's base weight when the tenant left it unset
ABSENT_WEIGHT_FACTORS: dict[str, float] = {
    "price": 0.5,
    "location": 0.2,
    "property": 0.5,
    "lifestyle": 0.2,
    "availability": 0.2,
}

POSTCODE_ADJACENCY: dict[str, frozenset[str]] = {
    "SW": frozenset({"SE", "W"}),
    "SE": frozenset({"SW", "E"}),
    "W": frozenset({"SW", "NW", "WC"}),
    "E": frozenset({"SE", "EC"}),
    "N": frozenset({"NW", "EC"}),
    "NW": frozenset({"N", "W"}),
    "EC": frozenset({"E", "N", "WC"}),
    "WC": frozenset({"W", "EC"}),
}

# Minutes per kilometre
WALK_PACE = 12.0
CYCLE_PACE = 4.0
TUBE_PACE = 2.0

HIGH_SCORE_REASON_THRESHOLD = 80.0


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def _blend(factors: Iterable[tuple[float, float]]) -> float:
    """Weighted mean of ``(score, weight)`` pairs; neutral when nothing applies."""
    total = 0.0
    weight_sum = 0.0
    for score, weight in factors:
        total += score * weight
        weight_sum += weight
    return total / weight_sum if weight_sum > 0 else NEUTRAL_SCORE


class ScoringStage:
    """One scoring category. Engines accept any list of stages."""

    category = ""

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        raise NotImplementedError

    def reason(self, prop: Property, prefs: Preferences) -> str:
        return f"Strong match in {self.category}"

    def weight(self, prefs: Preferences) -> float:
        base = float(BASE_WEIGHTS[self.category])
        if self.is_set(prefs):
            return base
        return base * ABSENT_WEIGHT_FACTORS.get(self.category, 1.0)

    def is_set(self, prefs: Preferences) -> bool:
        return True


# ── Price ────────────────────────────────────────────────────────────────


class PriceStage(ScoringStage):
    category = "price"
    ideal_offset = 0.3

    def is_set(self, prefs: Preferences) -> bool:
        return prefs.has_price_range

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        if not prefs.has_price_range:
            return NEUTRAL_SCORE
        low, high = float(prefs.min_price), float(prefs.max_price)
        price = float(prop.price)
        span = high - low

        if span <= 0:
            if price == low:
                return 100.0
            edge = 30.0 if price > high else 70.0
        elif low <= price <= high:
            ideal = low + span * self.ideal_offset
            return _clamp(100 - abs(price - ideal) / span * 100)
        else:
            edge = 30.0 if price > high else 70.0

        if price > high:
            excess = price - high
            penalty = min(30.0, excess / high * 100) if high > 0 else 30.0
            return _clamp(edge - penalty)
        deficit = low - price
        penalty = min(30.0, deficit / low * 100) if low > 0 else 30.0
        return _clamp(edge - penalty)

    def reason(self, prop: Property, prefs: Preferences) -> str:
        return f"Price fits your budget (£{prop.price:,.0f}/month)"


# ── Location ─────────────────────────────────────────────────────────────


class LocationFactor(Protocol):
    weight: float

    def evaluate(self, prop: Property, prefs: Preferences) -> float | None:
        """Score in [0, 100], or ``None`` when the factor does not apply."""
        ...


def district_score(preferred_postcode: str, property_outward: str | None) -> float:
    if not property_outward:
        return 0.0
    preferred = outward_code(preferred_postcode)
    if preferred == property_outward:
        return 100.0
    preferred_area = postcode_area(preferred)
    property_area = postcode_area(property_outward)
    if preferred_area and property_area:
        if preferred_area == property_area:
            return 70.0
        if property_area in POSTCODE_ADJACENCY.get(preferred_area, frozenset()):
            return 70.0
    return 30.0


class PostcodeDistrictFactor:
    weight = 40.0

    def evaluate(self, prop: Property, prefs: Preferences) -> float | None:
        if not prefs.primary_postcode:
            return None
        return district_score(prefs.primary_postcode, prop.outward_postcode)


class AreaProximityFactor:
    weight = 30.0

    def evaluate(self, prop: Property, prefs: Preferences) -> float | None:
        target = get_area(prefs.secondary_location)
        if target is None:
            return None
        if not prop.has_coordinates:
            return 0.0
        return proximity_score(distance_to(prop.lat, prop.lng, target))


def _commute_mode_score(minutes: float, limit: int) -> float:
    if minutes <= limit:
        return 100.0
    return max(0.0, 100 - (minutes - limit) * 2)


class CommuteFactor:
    weight = 30.0

    def evaluate(self, prop: Property, prefs: Preferences) -> float | None:
        target = get_area(prefs.commute_location)
        if target is None:
            return None
        if not prop.has_coordinates:
            return 0.0
        distance = distance_to(prop.lat, prop.lng, target)

        modes: list[tuple[float, float]] = []
        if prefs.commute_time_walk:
            modes.append((_commute_mode_score(distance * WALK_PACE, prefs.commute_time_walk), 0.3))
        if prefs.commute_time_cycle:
            modes.append((_commute_mode_score(distance * CYCLE_PACE, prefs.commute_time_cycle), 0.3))
        if prefs.commute_time_tube:
            modes.append((_commute_mode_score(distance * TUBE_PACE, prefs.commute_time_tube), 0.4))
        if not modes:
            return proximity_score(distance)
        return _blend(modes)


DEFAULT_LOCATION_FACTORS: tuple[LocationFactor, ...] = (
    PostcodeDistrictFactor(),
    AreaProximityFactor(),
    CommuteFactor(),
)


class LocationStage(ScoringStage):
    category = "location"

    def __init__(self, factors: Sequence[LocationFactor] = DEFAULT_LOCATION_FACTORS) -> None:
        self.factors = tuple(factors)

    def is_set(self, prefs: Preferences) -> bool:
        return prefs.has_location

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        applied = []
        for factor in self.factors:
            value = factor.evaluate(prop, prefs)
            if value is not None:
                applied.append((value, factor.weight))
        return _clamp(_blend(applied))

    def reason(self, prop: Property, prefs: Preferences) -> str:
        if prop.has_coordinates:
            slug, _ = nearest_area(prop.lat, prop.lng)
            return f"Great location near {area_label(slug)}"
        return "Great location for your commute"


# ── Property attributes ──────────────────────────────────────────────────


def bedroom_fit(bedrooms: int, low: int | None, high: int | None) -> float:
    below = low is not None and bedrooms < low
    above = high is not None and bedrooms > high
    if not below and not above:
        return 100.0
    gap = (low - bedrooms) if below else (bedrooms - high)
    return max(0.0, 100 - gap * 25)


def property_type_fit(property_type: str, preferred: Sequence[str]) -> float:
    if property_type in preferred:
        return 100.0
    for members in PROPERTY_TYPE_GROUPS.values():
        if property_type in members and any(p in members for p in preferred):
            return 80.0
    return 20.0


class PropertyAttributesStage(ScoringStage):
    category = "property"

    def is_set(self, prefs: Preferences) -> bool:
        return prefs.has_property_attributes

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        factors: list[tuple[float, float]] = []
        low, high = prefs.min_bedrooms, prefs.max_bedrooms
        if (low is not None or high is not None) and not (
            low is not None and high is not None and low > high
        ):
            factors.append((bedroom_fit(prop.bedrooms, low, high), 40))
        if prefs.property_type:
            factors.append((property_type_fit(prop.property_type, prefs.property_type), 35))
        if prefs.furnishing:
            factors.append((100.0 if prop.furnishing == prefs.furnishing else 0.0, 25))
        return _clamp(_blend(factors))

    def reason(self, prop: Property, prefs: Preferences) -> str:
        return f"Perfect {prop.property_type or 'home'} with {prop.bedrooms} bedrooms"


# ── Lifestyle ────────────────────────────────────────────────────────────


class LifestyleStage(ScoringStage):
    category = "lifestyle"
    bonus_per_feature = 5.0
    bonus_cap = 20.0

    def is_set(self, prefs: Preferences) -> bool:
        return bool(prefs.requested_features())

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        requested = prefs.requested_features()
        if not requested:
            return NEUTRAL_SCORE
        offered = prop.lifestyle_features.items
        matched = requested & offered
        feature_score = len(matched) / len(requested) * 100
        extras = (offered & PREMIUM_FEATURES) - requested
        bonus = min(self.bonus_cap, len(extras) * self.bonus_per_feature)
        return _clamp(feature_score + bonus)

    def reason(self, prop: Property, prefs: Preferences) -> str:
        matched = prefs.requested_features() & prop.lifestyle_features.items
        if matched:
            return f"Includes {len(matched)} of your preferred features"
        return "Includes your preferred lifestyle features"


# ── Availability ─────────────────────────────────────────────────────────


class AvailabilityStage(ScoringStage):
    category = "availability"

    def is_set(self, prefs: Preferences) -> bool:
        return prefs.move_in_date is not None

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        if prefs.move_in_date is None or prop.available_from is None:
            return NEUTRAL_SCORE
        if prefs.move_out_date is not None and prop.available_from > prefs.move_out_date:
            return 0.0
        days = abs((prop.available_from - prefs.move_in_date).days)
        if days == 0:
            return 100.0
        if days <= 30:
            return max(60.0, 100 - days * 2)
        return max(0.0, 60 - days * 0.5)

    def reason(self, prop: Property, prefs: Preferences) -> str:
        return "Available when you need it"


# ── Freshness ────────────────────────────────────────────────────────────


def listing_age_days(created_at: datetime, now: datetime) -> int:
    seconds = (as_utc(now) - as_utc(created_at)).total_seconds()
    return max(0, math.ceil(seconds / 86400))


class FreshnessStage(ScoringStage):
    category = "freshness"

    def score(self, prop: Property, prefs: Preferences, now: datetime) -> float:
        age = listing_age_days(prop.created_at, now)
        if age <= 7:
            return 100.0
        if age <= 30:
            return 80.0
        return max(20.0, 80 - (age - 30) * 0.5)

    def reason(self, prop: Property, prefs: Preferences) -> str:
        return "Recently added property"


def default_stages() -> list[ScoringStage]:
    return [
        PriceStage(),
        LocationStage(),
        PropertyAttributesStage(),
        LifestyleStage(),
        AvailabilityStage(),
        FreshnessStage(),
    ]


class ScoringEngine:
    """Combines category stages into a weighted, explained score."""

    def __init__(
        self,
        stages: Sequence[ScoringStage] | None = None,
        policy: PerfectMatchPolicy = DEFAULT_PERFECT_MATCH_POLICY,
    ) -> None:
        self.stages = {s.category: s for s in (stages if stages is not None else default_stages())}
        self.policy = policy

    def category_weights(self, prefs: Preferences) -> dict[str, float]:
        skipped = invalid_categories(prefs)
        weights: dict[str, float] = {}
        for category in CATEGORIES:
            stage = self.stages.get(category)
            if stage is None or category in skipped:
                weights[category] = 0.0
            else:
                weights[category] = stage.weight(prefs)
        return weights

    def score(
        self,
        prop: Property,
        prefs: Preferences,
        now: datetime | None = None,
    ) -> ScoredCandidate:
        now = now or datetime.now(timezone.utc)
        weights = self.category_weights(prefs)

        scores: dict[str, float] = {}
        for category in CATEGORIES:
            stage = self.stages.get(category)
            if stage is None or weights[category] == 0:
                scores[category] = NEUTRAL_SCORE
            else:
                scores[category] = _clamp(stage.score(prop, prefs, now))

        weighted_score = _clamp(_blend((scores[c], weights[c]) for c in CATEGORIES))

        reasons = [
            self.stages[c].reason(prop, prefs)
            for c in CATEGORIES
            if weights[c] > 0 and scores[c] >= HIGH_SCORE_REASON_THRESHOLD
        ]

        category_scores = CategoryScores(**scores)
        return ScoredCandidate(
            property=prop,
            category_scores=category_scores,
            weighted_score=weighted_score,
            reasons=reasons,
            perfect_match=self.policy.is_perfect(category_scores, weighted_score),
        )

    def score_many(
        self,
        properties: Iterable[Property],
        prefs: Preferences,
        now: datetime | None = None,
    ) -> list[ScoredCandidate]:
        now = now or datetime.now(timezone.utc)
        return [self.score(p, prefs, now) for p in properties]


def neutral_candidate(prop: Property) -> ScoredCandidate:
    """Placeholder score for tenants who have not stored any preferences."""
    return ScoredCandidate(
        property=prop,
        category_scores=CategoryScores(),
        weighted_score=NEUTRAL_SCORE,
        reasons=[],
        perfect_match=False,
    )
