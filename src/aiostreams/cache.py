"""Bounded in-memory caching for API responses.

The cache lives for as long as the source instance that owns it. Nothing
is written to disk. Entries are addressed by namespace/category/key:

    anilist/shows/21
    anizip/mappings/21
    tvdb/episodes/81797
    anidb/anime/69

Each entry carries its own expiry time. When the cache is full the least
recently used entry is evicted.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

# Default TTLs in hours
ANILIST_SHOW_TTL_HOURS = 24
ANIZIP_MAPPINGS_TTL_HOURS = 24
TVDB_SERIES_TTL_HOURS = 168  # 7 days (remote id mappings rarely change)
TVDB_EPISODES_TTL_HOURS = 24
ANIDB_ANIME_TTL_HOURS = 168  # AniDB bans clients that re-request the same anime
FILLER_TTL_HOURS = 168
SEADEX_TTL_HOURS = 24

DEFAULT_MAX_ENTRIES = 512


@dataclass
class CacheStats:
    """Statistics about the cache."""

    total_entries: int
    max_entries: int
    hits: int
    misses: int
    evictions: int
    entries_by_namespace: dict[str, int]

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from cache."""
        lookups = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups


@dataclass
class _Entry:
    data: dict[str, Any]
    expires_at: datetime


class MemoryCache:
    """In-memory cache with per-entry TTL and LRU eviction.

    Owned by the caller (normally one per AIOStreamsSource). Not thread-safe:
    the plugin host drives one operation at a time.
    """

    def __init__(
        self,
        enabled: bool = True,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl_hours: float = 24,
        max_ttl_hours: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            enabled: Whether caching is enabled. If False, all operations are no-ops.
            max_entries: Maximum number of entries kept before evicting the
                least recently used one. Must be at least 1.
            default_ttl_hours: TTL used when set() is called without one.
            max_ttl_hours: Upper bound on any entry's TTL, including the
                per-namespace TTLs the clients pass. None means no bound.
            clock: Returns the current time. Defaults to datetime.now(UTC).
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.enabled = enabled
        self.max_entries = max_entries
        self.default_ttl_hours = default_ttl_hours
        self.max_ttl_hours = max_ttl_hours
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _make_key(self, namespace: str, category: str, key: str) -> str:
        """Make a cache entry key from namespace/category/key."""
        return f"{namespace}/{category}/{key}"

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, namespace: str, category: str, key: str) -> dict[str, Any] | None:
        """Get a cached entry if it exists and hasn't expired.

        Args:
            namespace: Top-level namespace (e.g., "anilist", "tvdb").
            category: Category within namespace (e.g., "shows", "episodes").
            key: Unique key for the entry.

        Returns:
            Cached data dict if found and valid, None otherwise.
        """
        if not self.enabled:
            return None

        cache_key = self._make_key(namespace, category, key)
        entry = self._entries.get(cache_key)

        if entry is None:
            self._misses += 1
            return None

        if self._clock() > entry.expires_at:
            # Expired - remove and report a miss
            del self._entries[cache_key]
            self._misses += 1
            return None

        self._entries.move_to_end(cache_key)
        self._hits += 1
        return entry.data

    def set(
        self,
        namespace: str,
        category: str,
        key: str,
        data: dict[str, Any],
        ttl_hours: float | None = None,
    ) -> None:
        """Store data in the cache.

        Args:
            namespace: Top-level namespace (e.g., "anilist", "tvdb").
            category: Category within namespace (e.g., "shows", "episodes").
            key: Unique key for the entry.
            data: Data to cache.
            ttl_hours: Time-to-live in hours. Defaults to default_ttl_hours.
                Capped at max_ttl_hours.
        """
        if not self.enabled:
            return

        if ttl_hours is None:
            ttl_hours = self.default_ttl_hours
        if self.max_ttl_hours is not None:
            ttl_hours = min(ttl_hours, self.max_ttl_hours)

        cache_key = self._make_key(namespace, category, key)
        expires_at = self._clock() + timedelta(hours=ttl_hours)

        self._entries[cache_key] = _Entry(data=data, expires_at=expires_at)
        self._entries.move_to_end(cache_key)

        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self._evictions += 1

    def clear(self, namespace: str | None = None) -> int:
        """Clear cache entries.

        Args:
            namespace: If provided, only clear entries in this namespace.
                If None, clear all entries.

        Returns:
            Number of entries deleted.
        """
        if namespace is None:
            count = len(self._entries)
            self._entries.clear()
            return count

        prefix = f"{namespace}/"
        keys_to_delete = [k for k in self._entries if k.startswith(prefix)]
        for cache_key in keys_to_delete:
            del self._entries[cache_key]
        return len(keys_to_delete)

    def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        keys_to_delete = [k for k, entry in self._entries.items() if now > entry.expires_at]
        for cache_key in keys_to_delete:
            del self._entries[cache_key]
        return len(keys_to_delete)

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        by_namespace: dict[str, int] = {}
        for cache_key in self._entries:
            namespace = cache_key.split("/", 1)[0]
            by_namespace[namespace] = by_namespace.get(namespace, 0) + 1

        return CacheStats(
            total_entries=len(self._entries),
            max_entries=self.max_entries,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            entries_by_namespace=by_namespace,
        )
