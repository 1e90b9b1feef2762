"""Tests for the size-bounded TTL metadata cache."""

import pytest

from npm_resolver.cache import NOT_FOUND, Found, MetadataCache, NotFound, entry_size

from conftest import FakeClock


class TestMetadataCacheBasics:
    """Tests for get/set of tagged results."""

    def test_get_missing_returns_none(self, cache):
        """Absent keys return None, not NotFound."""
        assert cache.get("versions-react") is None

    def test_found_round_trip(self, cache):
        """Positive results come back as the same Found payload."""
        cache.set("versions-react", Found('{"versions": []}'), ttl=60)
        assert cache.get("versions-react") == Found('{"versions": []}')

    def test_not_found_distinct_from_empty_payload(self, cache):
        """A negative entry is never confused with an empty positive payload."""
        cache.set("a", NOT_FOUND, ttl=300)
        cache.set("b", Found(""), ttl=60)

        assert isinstance(cache.get("a"), NotFound)
        assert cache.get("b") == Found("")

    def test_overwrite_replaces_value_and_bytes(self, cache):
        """Setting an existing key replaces it without double counting bytes."""
        cache.set("k", Found("aaaa"), ttl=60)
        cache.set("k", Found("bb"), ttl=60)

        assert cache.get("k") == Found("bb")
        assert cache.current_bytes == entry_size("k", Found("bb"))
        assert len(cache) == 1

    def test_invalid_budget_rejected(self):
        """A cache needs a positive byte budget."""
        with pytest.raises(ValueError):
            MetadataCache(max_bytes=0)


class TestMetadataCacheExpiry:
    """Tests for per-entry TTL handling."""

    def test_entry_alive_until_ttl_elapses(self, cache, clock):
        """Entries are present up to and including their expiry instant."""
        cache.set("k", Found("v"), ttl=60)
        clock.advance(60)
        assert cache.get("k") == Found("v")

    def test_entry_absent_after_ttl(self, cache, clock):
        """Entries are absent strictly after their TTL."""
        cache.set("k", Found("v"), ttl=60)
        clock.advance(60.001)
        assert cache.get("k") is None
        assert cache.current_bytes == 0

    def test_independent_ttls(self, cache, clock):
        """Positive and negative entries expire on their own schedule."""
        cache.set("pos", Found("v"), ttl=60)
        cache.set("neg", NOT_FOUND, ttl=300)

        clock.advance(120)

        assert cache.get("pos") is None
        assert cache.get("neg") == NOT_FOUND

    def test_periodic_cleanup_removes_expired(self):
        """The sweep drops expired entries even if they are never read."""
        clock = FakeClock()
        cache = MetadataCache(cleanup_interval=10, clock=clock)
        cache.set("old", Found("v"), ttl=5)
        cache.set("fresh", Found("v"), ttl=100)

        clock.advance(11)
        cache.get("fresh")

        assert "old" not in cache._cache
        assert "fresh" in cache

    def test_contains_respects_expiry(self, cache, clock):
        cache.set("k", NOT_FOUND, ttl=1)
        assert "k" in cache
        clock.advance(2)
        assert "k" not in cache


class TestMetadataCacheEviction:
    """Tests for the byte budget and LRU eviction."""

    def test_entry_size_counts_key_and_payload(self):
        """Size is the UTF-8 length of key plus payload."""
        assert entry_size("ab", Found("é")) == 4
        assert entry_size("ab", NOT_FOUND) == 2

    def test_least_recently_used_evicted(self, clock):
        """Reading an entry protects it from the next eviction."""
        cache = MetadataCache(max_bytes=30, clock=clock)
        cache.set("a", Found("x" * 10), ttl=60)
        cache.set("b", Found("x" * 10), ttl=60)
        cache.get("a")

        cache.set("c", Found("x" * 10), ttl=60)

        assert cache.get("b") is None
        assert cache.get("a") is not None
        assert cache.get("c") is not None
        assert cache.stats()["evictions"] == 1

    def test_evicts_until_fit(self, clock):
        """Several old entries are evicted to make room for a large one."""
        cache = MetadataCache(max_bytes=40, clock=clock)
        for key in ("a", "b", "c"):
            cache.set(key, Found("x" * 9), ttl=60)

        cache.set("d", Found("x" * 25), ttl=60)

        assert cache.current_bytes <= 40
        assert cache.get("d") is not None
        assert cache.get("a") is None
        assert cache.get("b") is None

    def test_oversized_entry_not_stored(self, clock):
        """An entry bigger than the whole budget is skipped."""
        cache = MetadataCache(max_bytes=10, clock=clock)
        cache.set("small", Found("x"), ttl=60)

        cache.set("big", Found("x" * 100), ttl=60)

        assert cache.get("big") is None
        assert cache.get("small") == Found("x")

    def test_byte_tracking_add_remove(self, cache):
        """Byte tracking stays accurate across add/delete/clear."""
        cache.set("k1", Found("hello"), ttl=60)
        cache.set("k2", Found("world!"), ttl=60)
        assert cache.current_bytes == 15

        cache.delete("k1")
        assert cache.current_bytes == 8

        cache.delete("missing")
        assert cache.current_bytes == 8

        cache.clear()
        assert cache.current_bytes == 0
        assert len(cache) == 0


class TestMetadataCacheStats:
    def test_stats_counts_hits_and_misses(self, cache):
        cache.set("k", Found("v"), ttl=60)
        cache.get("k")
        cache.get("missing")

        stats = cache.stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["active_entries"] == 1
        assert stats["max_bytes"] == 40 * 1024 * 1024
