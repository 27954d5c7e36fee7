from __future__ import annotations

from typing import NamedTuple


class Coordinates(NamedTuple):
    lat: float
    lng: float


NAMED_AREAS: dict[str, Coordinates] = {
    "central-london": Coordinates(51.5074, -0.1278),
    "canary-wharf": Coordinates(51.5054, -0.0235),
    "shoreditch": Coordinates(51.5255, -0.0754),
    "kings-cross": Coordinates(51.5308, -0.1238),
    "paddington": Coordinates(51.5154, -0.1755),
    "south-bank": Coordinates(51.5074, -0.1195),
    "mayfair": Coordinates(51.5074, -0.1456),
    "holborn": Coordinates(51.5174, -0.1200),
    "clerkenwell": Coordinates(51.5200, -0.1000),
    "bermondsey": Coordinates(51.4950, -0.0800),
    "stratford": Coordinates(51.5416, -0.0036),
    "hammersmith": Coordinates(51.4920, -0.2229),
    "croydon": Coordinates(51.3762, -0.0982),
}

# Aliases seen in stored preferences
_AREA_ALIASES: dict[str, str] = {
    "kings-cross-st-pancras": "kings-cross",
    "city-of-london": "central-london",
}

UNSET_AREA_VALUES = frozenset({"", "no-preference", "any"})


def normalize_area(name: str | None) -> str | None:
    """Return the canonical area slug, or ``None`` for unset values."""
    if name is None:
        return None
    slug = name.strip().lower().replace(" ", "-").replace("'", "")
    if slug in UNSET_AREA_VALUES:
        return None
    return _AREA_ALIASES.get(slug, slug)


def get_area(name: str | None) -> Coordinates | None:
    """Look up a named area; unknown or unset names return ``None``."""
    slug = normalize_area(name)
    if slug is None:
        return None
    return NAMED_AREAS.get(slug)


def area_label(slug: str) -> str:
    return slug.replace("-", " ").title()
