from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rentmatch.matching.cache import MatchCache
from rentmatch.matching.config import MatchingConfig
from rentmatch.matching.data_store import InMemoryPreferenceSource, InMemoryPropertySource
from rentmatch.matching.media import DirectUrlResolver
from rentmatch.matching.models import Preferences, Property
from rentmatch.matching.service import MatchingService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

TEST_CONFIG = MatchingConfig(media_bucket="test-bucket", media_region="eu-west-2")


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def build_property(**overrides) -> Property:
    data = {
        "id": "prop-x",
        "title": "Test listing",
        "price": 2000,
        "bedrooms": 2,
        "bathrooms": 1,
        "property_type": "apartment",
        "furnishing": "furnished",
        "created_at": NOW,
    }
    data.update(overrides)
    return Property(**data)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_property():
    return build_property


@pytest.fixture
def sample_properties() -> list[Property]:
    return [
        build_property(
            id="prop-1",
            title="Mayfair apartment",
            postcode="W1D 2HX",
            price=2000,
            bedrooms=2,
            property_type="apartment",
            furnishing="furnished",
            lifestyle_features=["Gym", "concierge"],
            available_from=NOW.date(),
            lat=51.5136,
            lng=-0.1365,
            created_at=NOW - timedelta(days=2),
            media=[{"id": "m-1", "s3_key": "props/prop-1/front.jpg"}],
        ),
        build_property(
            id="prop-2",
            title="Wimbledon family house",
            postcode="SW19 1AA",
            price=5000,
            bedrooms=4,
            bathrooms=2,
            property_type="house",
            furnishing="unfurnished",
            lat=51.4214,
            lng=-0.2064,
            created_at=NOW - timedelta(days=40),
        ),
        build_property(
            id="prop-3",
            title="Canary Wharf flat",
            postcode="E14 5AB",
            price=2400,
            bedrooms=2,
            property_type="flat",
            furnishing="furnished",
            lifestyle_features=["gym", "pool"],
            available_from=(NOW + timedelta(days=14)).date(),
            lat=51.5054,
            lng=-0.0235,
            created_at=NOW - timedelta(days=10),
        ),
        build_property(
            id="prop-4",
            title="Croydon studio",
            price=1400,
            bedrooms=1,
            property_type="studio",
            furnishing="unfurnished",
            created_at=NOW - timedelta(days=1),
        ),
    ]


@pytest.fixture
def sample_preferences() -> list[Preferences]:
    return [
        Preferences(
            user_id="tenant-a",
            min_price=1500,
            max_price=3000,
            min_bedrooms=2,
            max_bedrooms=3,
            property_type=["apartment"],
            furnishing="furnished",
        ),
        Preferences(
            user_id="tenant-b",
            min_price=4000,
            max_price=6000,
            min_bedrooms=3,
            max_bedrooms=5,
        ),
        Preferences(
            user_id="tenant-c",
            property_type=["apartment"],
            furnishing="furnished",
            lifestyle_features=["gym"],
        ),
    ]


@pytest.fixture
def property_source(sample_properties) -> InMemoryPropertySource:
    return InMemoryPropertySource(sample_properties)


@pytest.fixture
def preference_source(sample_preferences) -> InMemoryPreferenceSource:
    return InMemoryPreferenceSource(sample_preferences, users=["tenant-new"])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(property_source, preference_source, clock) -> MatchingService:
    return MatchingService(
        properties=property_source,
        preferences=preference_source,
        cache=MatchCache(ttl=300, clock=clock),
        media=DirectUrlResolver(TEST_CONFIG),
        config=TEST_CONFIG,
        now=lambda: NOW,
    )


@pytest.fixture
def matching_config() -> MatchingConfig:
    return TEST_CONFIG
