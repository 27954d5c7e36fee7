"""
Hard filter stage.

Non-negotiable constraints are applied before any scoring happens. A
constraint is only applied when the tenant actually set the field; an empty
result is a valid outcome.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

import pandas as pd

from .models import Preferences, Property, as_utc, canonical_property_type
from .validation import invalid_fields

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "id",
    "price",
    "bedrooms",
    "bathrooms",
    "property_type",
    "furnishing",
    "available_from",
    "features",
    "has_coordinates",
    "is_btr",
    "created_ts",
]


@dataclass(frozen=True)
class FilterSpec:
    min_price: float | None = None
    max_price: float | None = None
    min_bedrooms: int | None = None
    max_bedrooms: int | None = None
    min_bathrooms: int | None = None
    max_bathrooms: int | None = None
    property_types: frozenset[str] = frozenset()
    furnishing: str | None = None
    available_by: date | None = None
    any_features: frozenset[str] = frozenset()
    all_features: frozenset[str] = frozenset()
    available_after: date | None = None
    is_btr: bool | None = None
    require_coordinates: bool = False

    @property
    def is_empty(self) -> bool:
        return self == FilterSpec()


def build_filter_spec(preferences: Preferences) -> FilterSpec:
    """Translate a preference profile into the hard constraints it implies."""
    skipped = invalid_fields(preferences)

    def _range(low_field: str, high_field: str) -> tuple:
        if low_field in skipped:
            return None, None
        return getattr(preferences, low_field), getattr(preferences, high_field)

    min_price, max_price = _range("min_price", "max_price")
    min_bedrooms, max_bedrooms = _range("min_bedrooms", "max_bedrooms")
    min_bathrooms, max_bathrooms = _range("min_bathrooms", "max_bathrooms")

    return FilterSpec(
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        min_bathrooms=min_bathrooms,
        max_bathrooms=max_bathrooms,
        property_types=frozenset(preferences.property_type),
        furnishing=preferences.furnishing,
        available_by=preferences.move_in_date,
        any_features=preferences.requested_features(),
        require_coordinates=preferences.has_location,
    )


def properties_frame(properties: Sequence[Property]) -> pd.DataFrame:
    """Columnar view of *properties*; row ``i`` describes ``properties[i]``."""
    rows = [
        {
            "id": p.id,
            "price": float(p.price),
            "bedrooms": p.bedrooms,
            "bathrooms": p.bathrooms,
            "property_type": p.property_type,
            "furnishing": p.furnishing,
            "available_from": p.available_from,
            "features": p.lifestyle_features.items,
            "has_coordinates": p.has_coordinates,
            "is_btr": p.is_btr,
            "created_ts": as_utc(p.created_at).timestamp(),
        }
        for p in properties
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["available_from"] = pd.to_datetime(df["available_from"])
    return df


def build_mask(df: pd.DataFrame, spec: FilterSpec) -> pd.Series:
    mask = pd.Series(True, index=df.index)

    if spec.min_price is not None:
        mask = mask & (df["price"] >= spec.min_price)
    if spec.max_price is not None:
        mask = mask & (df["price"] <= spec.max_price)

    if spec.min_bedrooms is not None:
        mask = mask & (df["bedrooms"] >= spec.min_bedrooms)
    if spec.max_bedrooms is not None:
        mask = mask & (df["bedrooms"] <= spec.max_bedrooms)

    if spec.min_bathrooms is not None:
        mask = mask & (df["bathrooms"] >= spec.min_bathrooms)
    if spec.max_bathrooms is not None:
        mask = mask & (df["bathrooms"] <= spec.max_bathrooms)

    if spec.property_types:
        mask = mask & df["property_type"].isin(sorted(spec.property_types))

    if spec.furnishing:
        mask = mask & (df["furnishing"] == spec.furnishing)

    if spec.available_by is not None:
        # Unknown availability is treated as available now
        mask = mask & (
            df["available_from"].isna()
            | (df["available_from"] <= pd.Timestamp(spec.available_by))
        )

    if spec.available_after is not None:
        mask = mask & (
            df["available_from"].isna()
            | (df["available_from"] >= pd.Timestamp(spec.available_after))
        )

    if spec.any_features:
        wanted = spec.any_features
        mask = mask & df["features"].apply(lambda fs: bool(wanted & fs)).astype(bool)

    if spec.all_features:
        required = spec.all_features
        mask = mask & df["features"].apply(lambda fs: required <= fs).astype(bool)

    if spec.is_btr is not None:
        mask = mask & (df["is_btr"] == spec.is_btr)

    if spec.require_coordinates:
        mask = mask & df["has_coordinates"]

    return mask


def select_candidates(
    properties: Sequence[Property],
    spec: FilterSpec,
    limit: int | None = 100,
    frame: pd.DataFrame | None = None,
) -> list[Property]:
    """Apply *spec* and return at most *limit* survivors, newest first.

    *frame* may be passed when the caller keeps a prebuilt
    ``properties_frame(properties)`` around.
    """
    if not properties:
        return []
    df = frame if frame is not None else properties_frame(properties)

    survivors = df.loc[build_mask(df, spec)]
    survivors = survivors.sort_values(
        ["created_ts", "id"], ascending=[False, True], kind="mergesort"
    )
    if limit is not None:
        survivors = survivors.head(limit)

    logger.debug("Hard filter kept %d of %d properties", len(survivors), len(df))
    return [properties[i] for i in survivors.index]


def passes_hard_filter(prop: Property, spec: FilterSpec) -> bool:
    return bool(select_candidates([prop], spec, limit=1))


def custom_filter_spec(
    min_price: float | None = None,
    max_price: float | None = None,
    min_bedrooms: int | None = None,
    max_bedrooms: int | None = None,
    property_types: Iterable[str] = (),
    furnishing: str | None = None,
    features: Iterable[str] = (),
    available_from: date | None = None,
    available_to: date | None = None,
    is_btr: bool | None = None,
    has_coordinates: bool = False,
) -> FilterSpec:
    """Explicit filters chosen by the requester, on top of their preferences.

    Every listed feature must be present; the availability window keeps
    listings with unknown availability.
    """
    return FilterSpec(
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        property_types=frozenset(canonical_property_type(t) for t in property_types if t.strip()),
        furnishing=furnishing.strip().lower() if furnishing and furnishing.strip() else None,
        available_after=available_from,
        available_by=available_to,
        all_features=frozenset(f.strip().lower() for f in features if f.strip()),
        is_btr=is_btr,
        require_coordinates=has_coordinates,
    )


def apply_filters(properties: Sequence[Property], spec: FilterSpec) -> list[Property]:
    """Properties matching *spec*, in their original order."""
    if not properties:
        return []
    df = properties_frame(properties)
    return [properties[i] for i in df.index[build_mask(df, spec)]]
