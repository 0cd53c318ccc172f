"""ani.zip episode-mapping client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from aiostreams.anizip.models import AniZipResponse
from aiostreams.api import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
    cached_api_call,
)

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)


class AniZipError(APIError):
    """Base exception for ani.zip errors."""

    pass


class AniZipAuthError(AniZipError, APIAuthError):
    pass


class AniZipNotFoundError(AniZipError, APINotFoundError):
    pass


class AniZipRateLimitError(AniZipError, APIRateLimitError):
    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__(retry_after=retry_after)


class AniZipClient(BaseAPIClient):
    """Client for https://api.ani.zip.

    One call returns the show's titles, a map of episode key to episode
    record and the cross-reference IDs (MAL, Kitsu, IMDB, TMDB, AniDB,
    TVDB) for an AniList ID.
    """

    BASE_URL = "https://api.ani.zip"

    _error_cls = AniZipError
    _auth_error_cls = AniZipAuthError
    _not_found_cls = AniZipNotFoundError
    _rate_limit_cls = AniZipRateLimitError
    _api_name = "ani.zip"

    def __init__(
        self,
        cache: MemoryCache | None = None,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(cache=cache, timeout=timeout, http_client=http_client)

    def get_mappings(self, anilist_id: int) -> AniZipResponse:
        """Get episode and ID mappings for an AniList ID.

        Raises:
            AniZipError: On a non-success status or an unparseable body.
        """
        from aiostreams.cache import ANIZIP_MAPPINGS_TTL_HOURS

        return cached_api_call(
            cache=self._cache,
            namespace="anizip",
            category="mappings",
            key=str(anilist_id),
            ttl_hours=ANIZIP_MAPPINGS_TTL_HOURS,
            fetch_fn=lambda: self._fetch_mappings(anilist_id),
            parse_fn=AniZipResponse.model_validate,
            serialize_fn=lambda r: r.model_dump(mode="json", by_alias=True),
        )

    def _fetch_mappings(self, anilist_id: int) -> AniZipResponse:
        logger.debug("Fetching ani.zip mappings for AniList %s", anilist_id)
        response = self._get_client().get("/mappings", params={"anilist_id": anilist_id})
        data = self._handle_response(response)
        try:
            return AniZipResponse.model_validate(data)
        except ValidationError as e:
            raise AniZipError(f"Failed to parse ani.zip response: {e}") from e
