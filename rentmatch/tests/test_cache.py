from __future__ import annotations

from rentmatch.matching.cache import InMemoryStore, MatchCache, make_key


def test_make_key_format():
    key = make_key("matches", "u1", limit=20)
    operation, user_id, digest = key.split(":")
    assert (operation, user_id) == ("matches", "u1")
    assert len(digest) == 16


def test_make_key_ignores_param_order():
    assert make_key("hs", "u1", threshold=80, limit=5) == make_key("hs", "u1", limit=5, threshold=80)
    assert make_key("hs", "u1", limit=5) != make_key("hs", "u1", limit=6)
    assert make_key("hs", "u1", limit=5) != make_key("hs", "u2", limit=5)


def test_cache_miss_then_hit(clock):
    cache = MatchCache(clock=clock)
    key = make_key("matches", "u1", limit=3)
    assert cache.get(key) is None
    cache.set(key, ["prop-1"])
    assert cache.get(key) == ["prop-1"]

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0
    assert stats["size"] == 1


def test_cache_entry_expires(clock):
    cache = MatchCache(ttl=300, clock=clock)
    cache.set("matches:u1:x", "payload")

    clock.advance(299)
    assert cache.get("matches:u1:x") == "payload"

    clock.advance(1)
    assert cache.get("matches:u1:x") is None
    # stale entry evicted on read
    assert cache.stats()["size"] == 0


def test_per_entry_ttl(clock):
    cache = MatchCache(ttl=300, clock=clock)
    cache.set("insights:u1:x", "payload", ttl=10)
    clock.advance(11)
    assert cache.get("insights:u1:x") is None


def test_write_overwrites(clock):
    cache = MatchCache(clock=clock)
    cache.set("matches:u1:x", 1)
    cache.set("matches:u1:x", 2)
    assert cache.get("matches:u1:x") == 2


def test_invalidate_user_only_touches_that_user(clock):
    cache = MatchCache(clock=clock)
    cache.set(make_key("matches", "u1", limit=1), "a")
    cache.set(make_key("perfect", "u1"), "b")
    cache.set(make_key("matches", "u2", limit=1), "c")

    assert cache.invalidate_user("u1") == 2
    assert cache.get(make_key("matches", "u1", limit=1)) is None
    assert cache.get(make_key("matches", "u2", limit=1)) == "c"


def test_invalidate_property_clears_everything(clock):
    cache = MatchCache(clock=clock)
    cache.set(make_key("matches", "u1"), "a")
    cache.set(make_key("matches", "u2"), "b")
    cache.invalidate_property("prop-1")
    assert cache.stats()["size"] == 0


def test_clear_resets_stats(clock):
    cache = MatchCache(clock=clock)
    cache.get("missing:u1:x")
    cache.clear()
    assert cache.stats() == {"size": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}


def test_shared_store():
    store = InMemoryStore()
    writer = MatchCache(store=store)
    reader = MatchCache(store=store)
    writer.set("matches:u1:x", "shared")
    assert reader.get("matches:u1:x") == "shared"
    assert len(store) == 1


def test_invalidate_user_with_colon_in_id(clock):
    cache = MatchCache(clock=clock)
    cache.set(make_key("ranked", "auth0:abc123", pool=100), "stale")
    cache.set(make_key("ranked", "auth0", pool=100), "other")

    assert cache.invalidate_user("auth0:abc123") == 1
    assert cache.get(make_key("ranked", "auth0:abc123", pool=100)) is None
    assert cache.get(make_key("ranked", "auth0", pool=100)) == "other"


def test_stale_eviction_keeps_newer_entry(clock):
    store = InMemoryStore()
    cache = MatchCache(store=store, ttl=10, clock=clock)
    cache.set("matches:u1:x", "old")
    stale = store.get("matches:u1:x")
    clock.advance(11)
    cache.set("matches:u1:x", "new")

    assert store.delete_if("matches:u1:x", stale) is False
    assert cache.get("matches:u1:x") == "new"
