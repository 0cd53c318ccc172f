"""Base classes for API clients.

Provides the exception hierarchy shared by every metadata and stream
provider, and a base client class that owns the httpx client lifecycle
and maps HTTP status codes onto those exceptions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self, cast

import httpx

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "aiostreams-source/1.0"


class APIError(Exception):
    """Base exception for all API errors.

    Every provider defines its own base (AniListError, TVDBError, ...)
    that inherits from this class, so callers that only care about
    "something upstream failed" can catch APIError.
    """

    pass


class APIAuthError(APIError):
    """Authentication error (invalid API key, token or credentials)."""

    pass


class APINotFoundError(APIError):
    """Resource not found (404)."""

    pass


class APIRateLimitError(APIError):
    """Rate limit exceeded (429).

    Attributes:
        retry_after: Suggested wait time in seconds before retrying.
    """

    def __init__(self, retry_after: int | None = None, message: str | None = None) -> None:
        self.retry_after = retry_after
        if message is None:
            message = f"Rate limit exceeded. Retry after {retry_after}s"
        super().__init__(message)


class ConfigurationError(APIError):
    """User configuration is missing or malformed.

    Raised immediately and never retried: a missing manifest URL, a
    manifest URL of the wrong shape, or an episode without a usable ID.
    """

    pass


class BaseAPIClient:
    """Base class for API clients with shared cache and HTTP patterns.

    Subclasses set:
        - BASE_URL: Root URL for relative requests.
        - _error_cls: The base error class for this API (e.g., TVDBError)
        - _auth_error_cls / _not_found_cls / _rate_limit_cls: specific errors
        - _error_message_key: JSON key holding the upstream error message
        - _api_name: Human name for error messages (e.g., "TVDB")
    """

    BASE_URL = ""
    DEFAULT_TIMEOUT = 30.0

    _error_cls: type[APIError] = APIError
    _auth_error_cls: type[APIAuthError] = APIAuthError
    _not_found_cls: type[APINotFoundError] = APINotFoundError
    _rate_limit_cls: type[APIRateLimitError] = APIRateLimitError
    _error_message_key: str = "message"
    _api_name: str = "API"

    def __init__(
        self,
        cache: MemoryCache | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._cache = cache
        self._timeout = timeout
        self._client: httpx.Client | None = http_client

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.BASE_URL,
                timeout=self._timeout,
                headers={"User-Agent": DEFAULT_USER_AGENT},
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise the provider's error class for any non-2xx response."""
        if 200 <= response.status_code < 300:
            return

        if response.status_code == 401:
            self._on_auth_failure()
            raise self._auth_error_cls("Authentication failed")

        if response.status_code == 404:
            raise self._not_found_cls("Resource not found")

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise self._rate_limit_cls(int(retry_after) if retry_after else None)

        # Generic error
        try:
            error_data = response.json()
            message = error_data.get(self._error_message_key, "Unknown error")
        except Exception:
            message = response.text or "Unknown error"

        raise self._error_cls(f"{self._api_name} API error ({response.status_code}): {message}")

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle a JSON API response and raise appropriate errors."""
        self._raise_for_status(response)
        try:
            return cast(dict[str, Any], response.json())
        except ValueError as e:
            raise self._error_cls(f"{self._api_name} returned invalid JSON: {e}") from e

    def _on_auth_failure(self) -> None:
        """Hook called on 401 response. Override to clear tokens etc."""
