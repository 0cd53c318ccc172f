"""TVDB v4 API client."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from aiostreams.api import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
    cached_api_call,
)
from aiostreams.tvdb.models import TVDBEpisode, TVDBSeries, TVDBSeriesExtended

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)


class TVDBError(APIError):
    """Base exception for TVDB API errors."""

    pass


class TVDBAuthError(TVDBError, APIAuthError):
    """Authentication error (invalid API key or token)."""

    pass


class TVDBNotFoundError(TVDBError, APINotFoundError):
    """Resource not found."""

    pass


class TVDBRateLimitError(TVDBError, APIRateLimitError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__(retry_after=retry_after)


# Tokens are valid for a month; refresh weekly
TOKEN_LIFETIME = timedelta(days=7)


def _parse_episodes(items: Iterable[Any] | None) -> list[TVDBEpisode]:
    episodes: list[TVDBEpisode] = []
    for item in items or []:
        try:
            episodes.append(TVDBEpisode.model_validate(item))
        except ValidationError:
            # Skip malformed episodes but continue processing
            continue
    return episodes


class TVDBClient(BaseAPIClient):
    """Client for the TVDB v4 API.

    TVDB v4 uses a two-step authentication:
    1. POST your API key to /login
    2. Receive a Bearer token to use in subsequent requests

    The token is kept on the client together with its expiry time and
    renewed before the first request after it expires.
    """

    BASE_URL = "https://api4.thetvdb.com/v4"

    _error_cls = TVDBError
    _auth_error_cls = TVDBAuthError
    _not_found_cls = TVDBNotFoundError
    _rate_limit_cls = TVDBRateLimitError
    _error_message_key = "message"
    _api_name = "TVDB"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        cache: MemoryCache | None = None,
        http_client: httpx.Client | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the TVDB client.

        Args:
            api_key: TVDB API key. If not provided, reads from config.
            timeout: Request timeout in seconds.
            cache: Optional cache instance for storing API responses.
            http_client: Pre-built httpx client (mostly for tests).
            clock: Returns the current time; used for token expiry.
        """
        super().__init__(cache=cache, timeout=timeout, http_client=http_client)

        # Load from config if not provided
        if api_key is None:
            from aiostreams.config import get_config

            api_key = get_config().tvdb.api_key

        self.api_key = api_key
        if not self.api_key:
            raise TVDBAuthError("TVDB API key not provided. Configure api_key in aiostreams.ini.")

        self._clock = clock or (lambda: datetime.now(UTC))
        self._token: str | None = None
        self._token_expires_at: datetime | None = None

    @property
    def token_valid(self) -> bool:
        """Whether a token is held and has not reached its refresh time."""
        if self._token is None or self._token_expires_at is None:
            return False
        return self._clock() < self._token_expires_at

    def login(self) -> None:
        """Authenticate and get a Bearer token.

        Raises:
            TVDBAuthError: If the API key is invalid.
            TVDBError: If login fails.
        """
        logger.debug("Logging in to TVDB")
        response = self._get_client().post(
            "/login",
            json={"apikey": self.api_key},
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )

        if response.status_code == 401:
            raise TVDBAuthError("Invalid TVDB API key")

        if response.status_code != 200:
            raise TVDBError(f"Login failed: {response.status_code} - {response.text}")

        data = response.json()
        token = (data.get("data") or {}).get("token")
        if not token:
            raise TVDBAuthError("No token received from TVDB login")

        self._token = token
        self._token_expires_at = self._clock() + TOKEN_LIFETIME

    def _ensure_logged_in(self) -> None:
        if not self.token_valid:
            self.login()

    def _on_auth_failure(self) -> None:
        """Clear token on 401 so re-auth is attempted on next request."""
        self._token = None
        self._token_expires_at = None

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self._ensure_logged_in()
        logger.debug("TVDB GET %s %s", path, params or "")
        response = self._get_client().get(
            path,
            params=params,
            headers={"Accept": "application/json", "Authorization": f"Bearer {self._token}"},
        )
        return self._handle_response(response)

    def search_series(self, query: str) -> list[TVDBSeries]:
        """Search for series by name.

        Args:
            query: Search query string.

        Returns:
            List of matching series.
        """
        data = self._get("/search", params={"query": query, "type": "series"})

        results = []
        for item in data.get("data") or []:
            try:
                series = TVDBSeries(
                    id=int(item["tvdb_id"]),
                    name=item.get("name"),
                    slug=item.get("slug"),
                    overview=item.get("overview"),
                    year=int(item["year"]) if item.get("year") else None,
                    image=item.get("image_url") or item.get("image"),
                    imdb_id=item.get("imdb_id"),
                )
                results.append(series)
            except (ValidationError, KeyError, ValueError, TypeError):
                continue

        return results

    def find_series_by_remote_id(self, remote_id: str) -> int | None:
        """Find the TVDB series ID for an external ID such as an IMDB ID.

        Returns:
            The TVDB ID of the first match, or None.
        """
        from aiostreams.cache import TVDB_SERIES_TTL_HOURS

        def fetch() -> dict[str, Any]:
            data = self._get("/search/remoteid", params={"id": remote_id})
            for item in data.get("data") or []:
                tvdb_id = item.get("tvdb_id") if isinstance(item, dict) else None
                if tvdb_id:
                    try:
                        return {"tvdb_id": int(tvdb_id)}
                    except (TypeError, ValueError):
                        continue
                break
            return {"tvdb_id": None}

        result = cached_api_call(
            cache=self._cache,
            namespace="tvdb",
            category="remoteid",
            key=remote_id,
            ttl_hours=TVDB_SERIES_TTL_HOURS,
            fetch_fn=fetch,
            parse_fn=lambda cached: cached,
            serialize_fn=lambda value: value,
        )
        return result.get("tvdb_id")

    def get_series_extended(self, series_id: int) -> TVDBSeriesExtended:
        """Get series info including every episode.

        Args:
            series_id: The TVDB series ID.
        """
        data = self._get(f"/series/{series_id}/extended", params={"meta": "episodes"})
        series_data = data.get("data") or {}
        return TVDBSeriesExtended(
            id=series_data.get("id"),
            name=series_data.get("name"),
            episodes=_parse_episodes(series_data.get("episodes")),
        )

    def get_all_episodes(self, series_id: int) -> list[TVDBEpisode]:
        """Get all episodes for a series.

        Tries the extended endpoint first and falls back to walking the
        paginated default-order episode listing until ``links.next`` is null.

        Args:
            series_id: The TVDB series ID.

        Returns:
            List of all episodes.
        """
        from aiostreams.cache import TVDB_EPISODES_TTL_HOURS

        return cached_api_call(
            cache=self._cache,
            namespace="tvdb",
            category="episodes",
            key=str(series_id),
            ttl_hours=TVDB_EPISODES_TTL_HOURS,
            fetch_fn=lambda: self._fetch_all_episodes(series_id),
            parse_fn=lambda cached: _parse_episodes(cached.get("episodes")),
            serialize_fn=lambda episodes: {
                "episodes": [ep.model_dump(mode="json", by_alias=True) for ep in episodes]
            },
        )

    def _fetch_all_episodes(self, series_id: int) -> list[TVDBEpisode]:
        try:
            extended = self.get_series_extended(series_id)
        except TVDBError as e:
            logger.debug("TVDB extended lookup for %s failed: %s", series_id, e)
        else:
            if extended.episodes:
                return extended.episodes

        all_episodes: list[TVDBEpisode] = []
        page: int | None = 0
        while page is not None:
            data = self._get(f"/series/{series_id}/episodes/default", params={"page": page})
            payload = data.get("data") or {}
            # The listing nests episodes under data.episodes
            items = payload.get("episodes") if isinstance(payload, dict) else payload
            episodes = _parse_episodes(items)
            if not episodes:
                break
            all_episodes.extend(episodes)

            next_page = (data.get("links") or {}).get("next")
            page = next_page if isinstance(next_page, int) and next_page > page else None

        return all_episodes


def episodes_to_map(
    episodes: Iterable[TVDBEpisode],
    use_absolute_numbering: bool = True,
) -> dict[str, TVDBEpisode]:
    """Index episodes by their number.

    Episodes with an absolute number are keyed by it. Otherwise season 1
    episodes are keyed by their plain number and other seasons by
    ``S<season>E<number>``.
    """
    result: dict[str, TVDBEpisode] = {}
    for ep in episodes:
        if use_absolute_numbering and ep.absolute_number is not None:
            result[str(ep.absolute_number)] = ep
        elif ep.episode_number is not None and ep.season_number is not None:
            if ep.season_number == 1:
                result[str(ep.episode_number)] = ep
            else:
                result[f"S{ep.season_number}E{ep.episode_number}"] = ep
    return result
