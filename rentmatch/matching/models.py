from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .features import PREFERENCE_CATEGORIES, FeatureCategory, FeatureSet

CATEGORIES: tuple[str, ...] = (
    "price",
    "location",
    "property",
    "lifestyle",
    "availability",
    "freshness",
)

UNSET_CHOICES = frozenset({"", "any", "no-preference"})

_POSTCODE_RE = re.compile(r"[A-Z]{1,2}[0-9][0-9A-Z]?\s?[0-9][A-Z]{2}", re.IGNORECASE)


def outward_code(postcode: str | None) -> str | None:
    """Outward code (district) of a UK postcode, e.g. ``"W1D"`` for ``"W1D 2HX"``."""
    if not postcode:
        return None
    raw = postcode.strip().upper()
    if not raw:
        return None
    if " " in raw:
        return raw.split()[0]
    # Full postcodes without a space: the inward code is always three characters
    if _POSTCODE_RE.fullmatch(raw):
        return raw[:-3]
    return raw


def postcode_area(postcode: str | None) -> str | None:
    """Leading letters of a postcode, e.g. ``"SW"`` for ``"SW1A 1AA"``."""
    code = outward_code(postcode)
    if not code:
        return None
    letters = re.match(r"[A-Z]+", code)
    return letters.group(0) if letters else None


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so aware and naive values compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


PROPERTY_TYPE_GROUPS: dict[str, frozenset[str]] = {
    "apartment": frozenset({"apartment", "flat", "studio"}),
    "house": frozenset({"house", "detached", "semi-detached", "terraced"}),
}

_KNOWN_TYPES = frozenset().union(*PROPERTY_TYPE_GROUPS.values())


def canonical_property_type(value: str) -> str:
    """Lower-case a property type and fold plurals such as ``"flats"``."""
    text = value.strip().lower()
    if text not in _KNOWN_TYPES and text.endswith("s") and text[:-1] in _KNOWN_TYPES:
        return text[:-1]
    return text


def _unset_to_none(v: Any) -> Any:
    if isinstance(v, str) and v.strip().lower() in UNSET_CHOICES:
        return None
    return v


class PropertyMedia(BaseModel):
    id: str
    s3_key: str
    url: str | None = None
    type: str = "image"
    order_index: int = 0


class Property(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    address: str = ""
    postcode: str | None = None
    price: float = Field(..., ge=0)
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    property_type: str = ""
    furnishing: str = ""
    lifestyle_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.amenity)
    )
    available_from: date | None = None
    lat: float | None = None
    lng: float | None = None
    created_at: datetime
    operator_id: str | None = None
    is_btr: bool = False
    media: list[PropertyMedia] = Field(default_factory=list)

    @field_validator("lifestyle_features", mode="before")
    @classmethod
    def _as_feature_set(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.amenity)

    @field_validator("property_type", mode="before")
    @classmethod
    def _canonical_type(cls, v: Any) -> Any:
        return canonical_property_type(v) if isinstance(v, str) else v

    @field_validator("furnishing", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def outward_postcode(self) -> str | None:
        """Outward code (district) of the property, e.g. ``"W1D"``."""
        raw = self.postcode
        if not raw:
            found = _POSTCODE_RE.search(self.address or "")
            raw = found.group(0) if found else None
        return outward_code(raw)


class Preferences(BaseModel):
    user_id: str = Field(..., min_length=1)

    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    min_bedrooms: int | None = Field(default=None, ge=0)
    max_bedrooms: int | None = Field(default=None, ge=0)
    min_bathrooms: int | None = Field(default=None, ge=0)
    max_bathrooms: int | None = Field(default=None, ge=0)
    property_type: list[str] = Field(default_factory=list)
    furnishing: str | None = None

    lifestyle_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.lifestyle)
    )
    social_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.social)
    )
    work_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.work)
    )
    convenience_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.convenience)
    )
    pet_friendly_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.pet_friendly)
    )
    luxury_features: FeatureSet = Field(
        default_factory=lambda: FeatureSet(category=FeatureCategory.luxury)
    )

    primary_postcode: str | None = None
    secondary_location: str | None = None
    commute_location: str | None = None
    commute_time_walk: int | None = Field(default=None, ge=0)
    commute_time_cycle: int | None = Field(default=None, ge=0)
    commute_time_tube: int | None = Field(default=None, ge=0)

    move_in_date: date | None = None
    move_out_date: date | None = None

    @field_validator("lifestyle_features", mode="before")
    @classmethod
    def _lifestyle(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.lifestyle)

    @field_validator("social_features", mode="before")
    @classmethod
    def _social(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.social)

    @field_validator("work_features", mode="before")
    @classmethod
    def _work(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.work)

    @field_validator("convenience_features", mode="before")
    @classmethod
    def _convenience(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.convenience)

    @field_validator("pet_friendly_features", mode="before")
    @classmethod
    def _pet_friendly(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.pet_friendly)

    @field_validator("luxury_features", mode="before")
    @classmethod
    def _luxury(cls, v: Any) -> FeatureSet:
        return FeatureSet.coerce(v, FeatureCategory.luxury)

    @field_validator(
        "furnishing", "primary_postcode", "secondary_location", "commute_location",
        mode="before",
    )
    @classmethod
    def _unset_choices(cls, v: Any) -> Any:
        v = _unset_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("property_type", mode="before")
    @classmethod
    def _types(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [canonical_property_type(str(t)) for t in v if str(t).strip()]

    @model_validator(mode="after")
    def _lower_furnishing(self) -> "Preferences":
        if self.furnishing is not None:
            self.furnishing = self.furnishing.lower()
        return self

    def feature_sets(self) -> list[FeatureSet]:
        return [
            getattr(self, f"{category.value}_features")
            for category in PREFERENCE_CATEGORIES
        ]

    def requested_features(self) -> frozenset[str]:
        """Union of every requested feature across the six categories."""
        items: frozenset[str] = frozenset()
        for feature_set in self.feature_sets():
            items = items | feature_set.items
        return items

    @property
    def has_price_range(self) -> bool:
        return self.min_price is not None and self.max_price is not None

    @property
    def has_location(self) -> bool:
        return bool(self.primary_postcode or self.secondary_location or self.commute_location)

    @property
    def has_property_attributes(self) -> bool:
        return (
            self.min_bedrooms is not None
            or self.max_bedrooms is not None
            or bool(self.property_type)
            or self.furnishing is not None
        )


class CategoryScores(BaseModel):
    price: float = Field(default=50.0, ge=0, le=100)
    location: float = Field(default=50.0, ge=0, le=100)
    property: float = Field(default=50.0, ge=0, le=100)
    lifestyle: float = Field(default=50.0, ge=0, le=100)
    availability: float = Field(default=50.0, ge=0, le=100)
    freshness: float = Field(default=50.0, ge=0, le=100)

    def as_dict(self) -> dict[str, float]:
        return {c: getattr(self, c) for c in CATEGORIES}


class ScoredCandidate(BaseModel):
    property: Property
    category_scores: CategoryScores
    weighted_score: float = Field(..., ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    perfect_match: bool = False


class PropertyStatistics(BaseModel):
    total_properties: int = 0
    properties_with_coordinates: int = 0
    average_price: float = 0.0
    price_range: dict[str, float] = Field(default_factory=lambda: {"min": 0.0, "max": 0.0})
    bedroom_distribution: dict[int, int] = Field(default_factory=dict)
    property_type_distribution: dict[str, int] = Field(default_factory=dict)
    furnishing_distribution: dict[str, int] = Field(default_factory=dict)


class MatchingInsights(BaseModel):
    total_candidates: int = 0
    perfect_matches: int = 0
    high_score_matches: int = 0
    average_score: float = 0.0
    top_categories: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    property_statistics: PropertyStatistics | None = None


class MatchResult(BaseModel):
    property: Property
    match_score: float
    match_reasons: list[str] = Field(default_factory=list)
    perfect_match: bool = False
    category_scores: CategoryScores
    weighted_score: float
    primary_image_url: str | None = None
    insights: MatchingInsights | None = None

    @classmethod
    def from_candidate(cls, scored: ScoredCandidate) -> "MatchResult":
        return cls(
            property=scored.property,
            match_score=round(scored.weighted_score, 2),
            match_reasons=list(scored.reasons),
            perfect_match=scored.perfect_match,
            category_scores=scored.category_scores,
            weighted_score=scored.weighted_score,
        )


NotificationKind = Literal["perfect", "high-score"]


class MatchNotification(BaseModel):
    user_id: str
    property: Property
    match_score: float
    reasons: list[str] = Field(default_factory=list)
    kind: NotificationKind
    category_scores: CategoryScores


class RegenerationSummary(BaseModel):
    property_id: str
    found: bool = True
    users_checked: int = 0
    users_failed: int = 0
    perfect_matches: int = 0
    high_score_matches: int = 0
    notifications_sent: int = 0
