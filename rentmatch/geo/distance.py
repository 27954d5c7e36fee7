from __future__ import annotations

import numpy as np

from .areas import NAMED_AREAS, Coordinates

EARTH_RADIUS_KM = 6371.0

_AREA_SLUGS = list(NAMED_AREAS)
_AREA_LATS = np.array([c.lat for c in NAMED_AREAS.values()])
_AREA_LNGS = np.array([c.lng for c in NAMED_AREAS.values()])


def haversine_km(lat1, lng1, lat2, lng2):
    """Great-circle distance in kilometres.

    Accepts scalars or array-likes (broadcast with numpy); scalar inputs
    return a plain ``float``.
    """
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    dphi = np.radians(np.subtract(lat2, lat1))
    dlambda = np.radians(np.subtract(lng2, lng1))
    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2) ** 2
    dist = EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    if np.ndim(dist) == 0:
        return float(dist)
    return dist


def distance_to(lat: float, lng: float, target: Coordinates) -> float:
    return haversine_km(lat, lng, target.lat, target.lng)


def proximity_score(distance_km: float) -> float:
    """Bucket a distance into a 0-100 proximity score."""
    if distance_km <= 1:
        return 100.0
    if distance_km <= 3:
        return 80.0
    if distance_km <= 5:
        return 60.0
    if distance_km <= 10:
        return 40.0
    return 20.0


def nearest_area(lat: float, lng: float) -> tuple[str, float]:
    """Return ``(slug, distance_km)`` of the closest named area."""
    distances = haversine_km(lat, lng, _AREA_LATS, _AREA_LNGS)
    idx = int(np.argmin(distances))
    return _AREA_SLUGS[idx], float(distances[idx])
