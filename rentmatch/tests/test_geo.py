from __future__ import annotations

import numpy as np
import pytest

from rentmatch.geo.areas import NAMED_AREAS, area_label, get_area, normalize_area
from rentmatch.geo.distance import haversine_km, nearest_area, proximity_score


def test_haversine_same_point_is_zero():
    assert haversine_km(51.5, -0.12, 51.5, -0.12) == pytest.approx(0.0)


def test_haversine_central_to_canary_wharf():
    central = NAMED_AREAS["central-london"]
    wharf = NAMED_AREAS["canary-wharf"]
    d = haversine_km(central.lat, central.lng, wharf.lat, wharf.lng)
    assert isinstance(d, float)
    assert 6.5 < d < 8.0


def test_haversine_is_symmetric():
    a = haversine_km(51.5, -0.1, 51.4, -0.2)
    b = haversine_km(51.4, -0.2, 51.5, -0.1)
    assert a == pytest.approx(b)


def test_haversine_vectorized():
    lats = np.array([51.5074, 51.5054])
    lngs = np.array([-0.1278, -0.0235])
    d = haversine_km(51.5074, -0.1278, lats, lngs)
    assert d.shape == (2,)
    assert d[0] == pytest.approx(0.0)
    assert d[1] > 6.5


@pytest.mark.parametrize(
    "distance, expected",
    [(0.5, 100.0), (1.0, 100.0), (2.5, 80.0), (4.9, 60.0), (8.0, 40.0), (25.0, 20.0)],
)
def test_proximity_buckets(distance, expected):
    assert proximity_score(distance) == expected


def test_nearest_area_finds_mayfair():
    slug, km = nearest_area(51.5080, -0.1450)
    assert slug == "mayfair"
    assert km < 0.5


def test_area_lookup_is_forgiving():
    assert get_area("Kings Cross") == NAMED_AREAS["kings-cross"]
    assert get_area("  canary-wharf ") == NAMED_AREAS["canary-wharf"]
    assert normalize_area("City of London") == "central-london"


@pytest.mark.parametrize("value", [None, "", "any", "no-preference", "Atlantis"])
def test_unset_or_unknown_area(value):
    assert get_area(value) is None


def test_area_label():
    assert area_label("canary-wharf") == "Canary Wharf"
