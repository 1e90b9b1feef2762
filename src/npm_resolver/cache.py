"""Size-bounded TTL cache for derived registry metadata."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from .common.logging_utils import extra_context, is_debug_enabled
from .constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    """A positive cached result holding its serialised payload."""

    payload: str


@dataclass(frozen=True)
class NotFound:
    """A cached "the registry has no such thing" result."""


NOT_FOUND = NotFound()

CachedResult = Union[Found, NotFound]


@dataclass
class CacheEntry:
    """A single cache entry with its own expiry and accounted size."""

    value: CachedResult
    expires_at: float
    size: int

    def is_expired(self, now: float) -> bool:
        """Check if this entry has expired at ``now``."""
        return now > self.expires_at


def entry_size(key: str, value: CachedResult) -> int:
    """Bytes an entry counts towards the cache budget."""
    size = len(key.encode("utf-8"))
    if isinstance(value, Found):
        size += len(value.payload.encode("utf-8"))
    return size


class MetadataCache:
    """LRU cache bounded by total bytes, with a TTL on every entry.

    Values are tagged results (``Found`` or ``NotFound``) so that negative
    lookups can be cached next to positive ones without ambiguity. Entries
    are absent once expired regardless of size pressure, and the least
    recently used entries are evicted when an insertion would overflow the
    byte budget.
    """

    def __init__(
        self,
        max_bytes: int = Constants.CACHE_MAX_BYTES,
        cleanup_interval: float = Constants.CACHE_CLEANUP_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the metadata cache.

        Args:
            max_bytes: Total byte budget across all entries.
            cleanup_interval: Seconds between sweeps for expired entries.
            clock: Monotonic time source, replaceable in tests.
        """
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self._max_bytes = max_bytes
        self._clock = clock
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._current_bytes = 0
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = clock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def current_bytes(self) -> int:
        return self._current_bytes

    def get(self, key: str) -> Optional[CachedResult]:
        """Get a cached result.

        Args:
            key: Cache key.

        Returns:
            ``Found``/``NotFound`` for a live entry, None if absent or expired.
        """
        self._maybe_cleanup()

        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(self._clock()):
            self._remove_entry(key)
            self._misses += 1
            if is_debug_enabled(logger):
                logger.debug(
                    "Cache entry expired",
                    extra=extra_context(event="cache_expired", component="cache", key=key),
                )
            return None

        self._cache.move_to_end(key)
        self._hits += 1
        return entry.value

    def set(self, key: str, value: CachedResult, ttl: float) -> None:
        """Cache a result.

        Args:
            key: Cache key.
            value: ``Found`` or ``NotFound``.
            ttl: Seconds until the entry is treated as absent.
        """
        self._maybe_cleanup()

        if key in self._cache:
            self._remove_entry(key)

        size = entry_size(key, value)
        if size > self._max_bytes:
            # Larger than the whole budget.
            logger.debug(
                "Cache entry too large, not stored",
                extra=extra_context(event="cache_skip", component="cache", key=key, size=size),
            )
            return

        while self._current_bytes + size > self._max_bytes and self._cache:
            self._evict_lru()

        self._cache[key] = CacheEntry(value=value, expires_at=self._clock() + ttl, size=size)
        self._current_bytes += size

    def delete(self, key: str) -> None:
        """Invalidate a cached entry."""
        self._remove_entry(key)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()
        self._current_bytes = 0

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        expired_count = sum(1 for e in self._cache.values() if e.is_expired(now))
        return {
            "total_entries": len(self._cache),
            "expired_entries": expired_count,
            "active_entries": len(self._cache) - expired_count,
            "current_bytes": self._current_bytes,
            "max_bytes": self._max_bytes,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        entry = self._cache.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.is_expired(self._clock())

    def _remove_entry(self, key: str) -> None:
        """Remove an entry and update byte count."""
        entry = self._cache.pop(key, None)
        if entry:
            self._current_bytes -= entry.size

    def _evict_lru(self) -> None:
        key, entry = self._cache.popitem(last=False)
        self._current_bytes -= entry.size
        self._evictions += 1
        if is_debug_enabled(logger):
            logger.debug(
                "Cache eviction",
                extra=extra_context(event="cache_evict", component="cache", key=key, size=entry.size),
            )

    def _maybe_cleanup(self) -> None:
        """Run cleanup if enough time has passed."""
        now = self._clock()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup(now)
            self._last_cleanup = now

    def _cleanup(self, now: float) -> None:
        """Remove expired entries."""
        keys_to_remove = [k for k, v in self._cache.items() if v.is_expired(now)]
        for key in keys_to_remove:
            self._remove_entry(key)
