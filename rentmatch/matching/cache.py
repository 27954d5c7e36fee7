from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol

logger = logging.getLogger(__name__)

_DEFAULT_TTL = 300  # 5 minutes


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    created_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.created_at < self.ttl


class KeyValueStore(Protocol):
    """Storage behind ``MatchCache``; swap in a distributed store here."""

    def get(self, key: str) -> CacheEntry | None: ...

    def set(self, key: str, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_if(self, key: str, entry: CacheEntry) -> bool: ...

    def keys(self) -> Iterator[str]: ...

    def clear(self) -> None: ...


class InMemoryStore:
    """Lock-guarded dict store, safe for concurrent request threads."""

    def __init__(self) -> None:
        self._data: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._data[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_if(self, key: str, entry: CacheEntry) -> bool:
        """Delete *key* only while it still holds *entry*."""
        with self._lock:
            if self._data.get(key) is not entry:
                return False
            del self._data[key]
            return True

    def keys(self) -> Iterator[str]:
        with self._lock:
            snapshot = list(self._data)
        return iter(snapshot)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def make_key(operation: str, user_id: str, **params: Any) -> str:
    """``"{operation}:{user_id}:{digest}"`` where digest hashes the params."""
    normalized = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(normalized.encode()).hexdigest()[:16]
    return f"{operation}:{user_id}:{digest}"


def _key_user(key: str) -> str | None:
    # operation has no ':' and the digest is the last segment
    _, sep, rest = key.partition(":")
    user_id, sep2, _ = rest.rpartition(":")
    return user_id if sep and sep2 else None


class MatchCache:
    """Time-boxed memoization of matching results keyed by requester."""

    def __init__(
        self,
        store: KeyValueStore | None = None,
        ttl: float = _DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.ttl = ttl
        self.clock = clock
        self._hits = 0
        self._misses = 0
        self._stats_lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        entry = self.store.get(key)
        if entry and entry.is_fresh(self.clock()):
            self._count(hit=True)
            return entry.value
        if entry:
            self.store.delete_if(key, entry)
        self._count(hit=False)
        return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        self.store.set(
            key,
            CacheEntry(
                key=key,
                value=value,
                created_at=self.clock(),
                ttl=self.ttl if ttl is None else ttl,
            ),
        )

    def delete(self, key: str) -> None:
        self.store.delete(key)

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry cached for *user_id*; returns how many were dropped."""
        doomed = [k for k in self.store.keys() if _key_user(k) == user_id]
        for key in doomed:
            self.store.delete(key)
        if doomed:
            logger.debug("Invalidated %d cache entries for user %s", len(doomed), user_id)
        return len(doomed)

    def invalidate_property(self, property_id: str) -> None:
        # Any user's results may contain the property, so everything goes.
        # TODO: keep a property -> keys index to evict only affected entries.
        logger.debug("Property %s changed, clearing match cache", property_id)
        self.store.clear()

    def clear(self) -> None:
        self.store.clear()
        with self._stats_lock:
            self._hits = 0
            self._misses = 0

    def _count(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def stats(self) -> dict:
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        return {
            "size": sum(1 for _ in self.store.keys()),
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / total * 100, 1) if total > 0 else 0.0,
        }
