"""Helper functions for API clients.

Provides reusable utilities like date parsing and the cached API call pattern.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_date(date_str: str | None) -> date | None:
    """Parse an ISO-format date string.

    Only the leading YYYY-MM-DD part is considered, so full timestamps
    such as "2024-01-07T15:00:00Z" parse to their calendar date.

    Args:
        date_str: Date string in ISO format (YYYY-MM-DD) or None.

    Returns:
        Parsed date object, or None if the string is empty/invalid.
    """
    if not date_str:
        return None
    try:
        return date.fromisoformat(date_str.strip()[:10])
    except ValueError:
        return None


def parse_air_date_millis(date_str: str | None) -> int:
    """Parse an air date into epoch milliseconds (UTC midnight).

    Args:
        date_str: Date string in ISO format or None.

    Returns:
        Milliseconds since the epoch, or 0 when the date is unknown.
    """
    parsed = parse_date(date_str)
    if parsed is None:
        return 0
    midnight = datetime(parsed.year, parsed.month, parsed.day, tzinfo=UTC)
    return int(midnight.timestamp() * 1000)


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(datetime.now(UTC).timestamp() * 1000)


def cached_api_call(
    cache: MemoryCache | None,
    namespace: str,
    category: str,
    key: str,
    ttl_hours: float,
    fetch_fn: Callable[[], T],
    parse_fn: Callable[[dict[str, Any]], T],
    serialize_fn: Callable[[T], dict[str, Any]],
) -> T:
    """Execute an API call with cache check/store pattern.

    This helper encapsulates the common pattern of:
    1. Check cache for existing data
    2. If hit, parse and return the cached result
    3. If miss, make the API call
    4. Store the serialized result in cache
    5. Return result

    Args:
        cache: Cache instance (or None if caching disabled).
        namespace: Cache namespace (e.g., "anilist", "tvdb").
        category: Cache category (e.g., "shows", "episodes").
        key: Cache key (e.g., show ID as string).
        ttl_hours: Cache TTL in hours.
        fetch_fn: Function that makes the API call and returns the model.
        parse_fn: Function that parses a cached dict back into the model.
        serialize_fn: Function that serializes the model to a dict for caching.

    Returns:
        The fetched or cached result of type T.

    Example:
        ```python
        show = cached_api_call(
            cache=self._cache,
            namespace="anilist",
            category="shows",
            key=str(show_id),
            ttl_hours=SHOW_TTL_HOURS,
            fetch_fn=lambda: self._fetch_show(show_id),
            parse_fn=ShowRecord.model_validate,
            serialize_fn=lambda s: s.model_dump(mode="json"),
        )
        ```
    """
    if cache is not None:
        cached = cache.get(namespace, category, key)
        if cached is not None:
            logger.debug("Cache hit for %s/%s/%s", namespace, category, key)
            return parse_fn(cached)

    result = fetch_fn()

    if cache is not None:
        cache.set(namespace, category, key, serialize_fn(result), ttl_hours=ttl_hours)

    return result
