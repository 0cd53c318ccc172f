"""AniList GraphQL API client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from aiostreams.anilist.models import AniListMedia, AniListPage
from aiostreams.anilist.queries import DETAILS_QUERY, POPULAR_QUERY, SEARCH_QUERY
from aiostreams.api import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
    cached_api_call,
)
from aiostreams.models import ShowPage, ShowRecord

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)


class AniListError(APIError):
    """Base exception for AniList API errors."""

    pass


class AniListAuthError(AniListError, APIAuthError):
    pass


class AniListNotFoundError(AniListError, APINotFoundError):
    pass


class AniListRateLimitError(AniListError, APIRateLimitError):
    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__(retry_after=retry_after)


class AniListClient(BaseAPIClient):
    """Client for the AniList GraphQL endpoint.

    Every operation is a POST of ``{"query": ..., "variables": ...}`` to
    the same URL.
    """

    BASE_URL = "https://graphql.anilist.co"
    PER_PAGE = 20

    _error_cls = AniListError
    _auth_error_cls = AniListAuthError
    _not_found_cls = AniListNotFoundError
    _rate_limit_cls = AniListRateLimitError
    _api_name = "AniList"

    def __init__(
        self,
        cache: MemoryCache | None = None,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(cache=cache, timeout=timeout, http_client=http_client)

    def _post(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Send a GraphQL request and return the ``data`` object.

        Raises:
            AniListError: With the first upstream error message when the
                payload carries ``errors``, or on any HTTP failure.
        """
        logger.debug("AniList query with variables %s", variables)
        response = self._get_client().post(
            self.BASE_URL,
            json={"query": query, "variables": variables},
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("errors"):
            errors = payload["errors"]
            message = "Unknown AniList error"
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                message = errors[0].get("message") or message
            raise AniListError(f"AniList API error: {message}")

        self._raise_for_status(response)
        if not isinstance(payload, dict):
            raise AniListError("AniList returned invalid JSON")
        return payload.get("data") or {}

    def _parse_page(self, data: dict[str, Any]) -> ShowPage:
        try:
            page = AniListPage.model_validate(data.get("Page") or {})
        except ValidationError as e:
            raise AniListError(f"Failed to parse page response: {e}") from e

        shows = [media.to_show_record() for media in (page.media or []) if media and media.id]
        has_next = bool(page.page_info and page.page_info.has_next_page)
        return ShowPage(shows=shows, has_next_page=has_next)

    def popular(self, page: int = 1) -> ShowPage:
        """Get one page of the most popular anime."""
        data = self._post(POPULAR_QUERY, {"page": page, "perPage": self.PER_PAGE})
        return self._parse_page(data)

    def search(self, query: str, page: int = 1) -> ShowPage:
        """Search anime by title."""
        data = self._post(
            SEARCH_QUERY, {"page": page, "perPage": self.PER_PAGE, "search": query}
        )
        return self._parse_page(data)

    def get_show(self, show_id: int) -> ShowRecord:
        """Get full details of a show including its relation graph.

        Args:
            show_id: The AniList media ID.

        Raises:
            AniListError: If AniList reports an error or returns no media.
        """
        from aiostreams.cache import ANILIST_SHOW_TTL_HOURS

        return cached_api_call(
            cache=self._cache,
            namespace="anilist",
            category="shows",
            key=str(show_id),
            ttl_hours=ANILIST_SHOW_TTL_HOURS,
            fetch_fn=lambda: self._fetch_show(show_id),
            parse_fn=ShowRecord.model_validate,
            serialize_fn=lambda show: show.model_dump(mode="json"),
        )

    def _fetch_show(self, show_id: int) -> ShowRecord:
        data = self._post(DETAILS_QUERY, {"id": show_id})
        media_data = data.get("Media")
        if not media_data:
            raise AniListError("Failed to parse anime details")
        try:
            media = AniListMedia.model_validate(media_data)
        except ValidationError as e:
            raise AniListError(f"Failed to parse anime details: {e}") from e
        return media.to_show_record()
