"""
In-memory property and preference sources.

Persistence lives elsewhere; these sources hold whatever the host process
loads into them, optionally seeded lazily from JSON files in the configured
data directory.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Iterable, Iterator, Protocol

import pandas as pd

from .config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .filters import FilterSpec, properties_frame, select_candidates
from .models import Preferences, Property

logger = logging.getLogger(__name__)


class PropertySource(Protocol):
    def list_candidates(self, spec: FilterSpec, limit: int | None) -> list[Property]: ...

    def get_property(self, property_id: str) -> Property | None: ...


class PreferenceSource(Protocol):
    def get_preferences(self, user_id: str) -> Preferences | None: ...

    def iter_preferences(self) -> Iterable[Preferences]: ...

    def user_exists(self, user_id: str) -> bool: ...


def _read_json_list(path: Path) -> list[dict]:
    if not path.exists():
        return []
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list")
    return data


class InMemoryPropertySource:
    """Property listings kept in a list with a cached pandas frame beside it."""

    def __init__(
        self,
        properties: Iterable[Property] | None = None,
        seed_path: Path | None = None,
    ) -> None:
        self._properties: list[Property] | None = (
            list(properties) if properties is not None else None
        )
        self._seed_path = seed_path
        self._frame: pd.DataFrame | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: MatchingConfig = DEFAULT_MATCHING_CONFIG) -> "InMemoryPropertySource":
        return cls(seed_path=config.properties_path)

    def _load(self) -> list[Property]:
        if self._seed_path is None:
            return []
        rows = _read_json_list(self._seed_path)
        logger.info("Loaded %d properties from %s", len(rows), self._seed_path)
        return [Property.model_validate(r) for r in rows]

    def _snapshot(self) -> tuple[list[Property], pd.DataFrame]:
        with self._lock:
            if self._properties is None:
                self._properties = self._load()
            if self._frame is None:
                self._frame = properties_frame(self._properties)
            return self._properties, self._frame

    def list_candidates(self, spec: FilterSpec, limit: int | None = 100) -> list[Property]:
        properties, frame = self._snapshot()
        return select_candidates(properties, spec, limit=limit, frame=frame)

    def get_property(self, property_id: str) -> Property | None:
        properties, _ = self._snapshot()
        for prop in properties:
            if prop.id == property_id:
                return prop
        return None

    def all(self) -> list[Property]:
        properties, _ = self._snapshot()
        return list(properties)

    def upsert(self, prop: Property) -> None:
        """Add *prop* or replace the listing with the same id."""
        self._snapshot()
        with self._lock:
            kept = [p for p in self._properties if p.id != prop.id]
            kept.append(prop)
            self._properties = kept
            self._frame = None

    def __len__(self) -> int:
        return len(self._snapshot()[0])


class InMemoryPreferenceSource:
    """Preference profiles by user id, plus the set of known users.

    A user can exist without preferences; such users get neutral results.
    """

    def __init__(
        self,
        preferences: Iterable[Preferences] | None = None,
        users: Iterable[str] | None = None,
        seed_path: Path | None = None,
    ) -> None:
        self._prefs: dict[str, Preferences] | None = None
        self._users: set[str] = set(users or ())
        self._seed_path = seed_path
        self._lock = threading.Lock()
        if preferences is not None:
            self._prefs = {p.user_id: p for p in preferences}
            self._users.update(self._prefs)

    @classmethod
    def from_config(cls, config: MatchingConfig = DEFAULT_MATCHING_CONFIG) -> "InMemoryPreferenceSource":
        return cls(seed_path=config.preferences_path)

    def _ensure_loaded(self) -> dict[str, Preferences]:
        with self._lock:
            if self._prefs is None:
                rows = _read_json_list(self._seed_path) if self._seed_path else []
                self._prefs = {}
                for row in rows:
                    prefs = Preferences.model_validate(row)
                    self._prefs[prefs.user_id] = prefs
                self._users.update(self._prefs)
                if rows:
                    logger.info("Loaded %d preference profiles from %s", len(rows), self._seed_path)
            return self._prefs

    def get_preferences(self, user_id: str) -> Preferences | None:
        return self._ensure_loaded().get(user_id)

    def iter_preferences(self) -> Iterator[Preferences]:
        prefs = self._ensure_loaded()
        with self._lock:
            snapshot = list(prefs.values())
        return iter(snapshot)

    def user_exists(self, user_id: str) -> bool:
        self._ensure_loaded()
        return user_id in self._users

    def add_user(self, user_id: str) -> None:
        self._ensure_loaded()
        with self._lock:
            self._users.add(user_id)

    def put(self, preferences: Preferences) -> None:
        prefs = self._ensure_loaded()
        with self._lock:
            prefs[preferences.user_id] = preferences
            self._users.add(preferences.user_id)
