from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator


class FeatureCategory(str, Enum):
    lifestyle = "lifestyle"
    social = "social"
    work = "work"
    convenience = "convenience"
    pet_friendly = "pet_friendly"
    luxury = "luxury"
    # Features a property actually offers
    amenity = "amenity"


PREFERENCE_CATEGORIES: tuple[FeatureCategory, ...] = (
    FeatureCategory.lifestyle,
    FeatureCategory.social,
    FeatureCategory.work,
    FeatureCategory.convenience,
    FeatureCategory.pet_friendly,
    FeatureCategory.luxury,
)

PREMIUM_FEATURES = frozenset({"concierge", "gym", "pool", "rooftop", "parking"})


def _normalize_items(values: Iterable[Any]) -> frozenset[str]:
    items: set[str] = set()
    for value in values:
        if value is None:
            continue
        text = str(value).strip().lower()
        if text:
            items.add(text)
    return frozenset(items)


class FeatureSet(BaseModel):
    """A tagged, normalised set of feature names."""

    model_config = ConfigDict(frozen=True)

    category: FeatureCategory
    items: frozenset[str] = frozenset()

    @field_validator("items", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> frozenset[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = v.split(",")
        return _normalize_items(v)

    @field_serializer("items")
    def _serialize_items(self, items: frozenset[str]) -> list[str]:
        return sorted(items)

    @classmethod
    def coerce(cls, value: Any, category: FeatureCategory) -> "FeatureSet":
        """Build a FeatureSet from a raw list, comma string, dict or FeatureSet."""
        if isinstance(value, FeatureSet):
            if value.category == category:
                return value
            return cls(category=category, items=value.items)
        if isinstance(value, dict):
            return cls(category=category, items=value.get("items"))
        return cls(category=category, items=value)

    def __bool__(self) -> bool:
        return bool(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and item.strip().lower() in self.items

    def overlap(self, other: "FeatureSet | frozenset[str]") -> frozenset[str]:
        other_items = other.items if isinstance(other, FeatureSet) else other
        return self.items & other_items

    def sorted_items(self) -> list[str]:
        return sorted(self.items)
