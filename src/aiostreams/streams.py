"""Stream resolution through an AIOStreams instance.

The user configures the manifest URL of their AIOStreams addon:

    https://host/stremio/<uuid>/<encrypted-blob>/manifest.json

The host is the API base URL and the UUID and blob are the HTTP Basic
credentials for both the search API and direct playback links.
"""

from __future__ import annotations

import base64
import logging
import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel

from aiostreams.api import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
    ConfigurationError,
)
from aiostreams.identity import EpisodeIdentifier, LookupKey, select_lookup_id
from aiostreams.models import Hoster, StreamCandidate, Video
from aiostreams.seadex import REDACTED_HASH

if TYPE_CHECKING:
    from aiostreams.config import OptionsConfig
    from aiostreams.seadex import SeaDexClient

logger = logging.getLogger(__name__)

MANIFEST_PATTERN = re.compile(r"(https?://[^/]+)/stremio/([^/]+)/([^/]+)/manifest\.json")

DEFAULT_TRACKERS = (
    "udp://tracker.opentrackr.org:1337/announce",
    "http://nyaa.tracker.wf:7777/announce",
    "udp://open.demonii.com:1337/announce",
    "udp://tracker.torrent.eu.org:451/announce",
)

MAGNET_PREFIX = "magnet:"


class StreamError(APIError):
    """Base exception for AIOStreams API errors."""

    pass


class StreamAuthError(StreamError, APIAuthError):
    pass


class StreamNotFoundError(StreamError, APINotFoundError):
    pass


class StreamRateLimitError(StreamError, APIRateLimitError):
    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__(retry_after=retry_after)


class NoStreamsFoundError(StreamError):
    """The search succeeded but returned no results."""

    pass


class ManifestConfig(BaseModel):
    """Connection details parsed from a manifest URL."""

    base_url: str
    uuid: str
    encrypted_blob: str

    @classmethod
    def from_manifest_url(cls, url: str | None) -> ManifestConfig:
        """Parse a manifest URL.

        Raises:
            ConfigurationError: If the URL is blank or not a manifest URL.
        """
        if not url or not url.strip():
            raise ConfigurationError("Please configure AIOStreams manifest URL")
        match = MANIFEST_PATTERN.search(url)
        if match is None:
            raise ConfigurationError("Invalid manifest URL format")
        return cls(base_url=match.group(1), uuid=match.group(2), encrypted_blob=match.group(3))

    @property
    def auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.uuid, self.encrypted_blob)

    @property
    def authorization_header(self) -> str:
        """Value of the Authorization header for direct playback links."""
        token = base64.b64encode(f"{self.uuid}:{self.encrypted_blob}".encode()).decode("ascii")
        return f"Basic {token}"


def build_magnet(info_hash: str, trackers: Iterable[str] = DEFAULT_TRACKERS) -> str:
    """Build a magnet URI for an info hash with the given announce URLs."""
    return f"magnet:?xt=urn:btih:{info_hash}&dn={info_hash}&tr=" + "&tr=".join(trackers)


def rank_streams(
    results: Iterable[Mapping[str, Any]],
    best_hashes: set[str] | frozenset[str] = frozenset(),
    show_p2p: bool = False,
    sort_best: bool = True,
) -> list[StreamCandidate]:
    """Turn raw search results into ordered stream candidates.

    - Results without an info hash, or with the "<redacted>" placeholder,
      are always discarded.
    - Magnet results are dropped unless ``show_p2p`` is set.
    - Results without a direct URL get a magnet built from their hash.
    - With ``sort_best`` the curated-best candidates move to the front;
      the provider order is kept otherwise.
    """
    candidates: list[StreamCandidate] = []
    for result in results:
        info_hash = str(result.get("infoHash") or "").lower()
        if not info_hash or info_hash == REDACTED_HASH:
            continue

        url = str(result.get("url") or "")
        is_magnet = url.startswith(MAGNET_PREFIX)
        if is_magnet and not show_p2p:
            continue

        direct = bool(url) and not is_magnet
        candidates.append(
            StreamCandidate(
                info_hash=info_hash,
                name=str(result.get("name") or "Stream"),
                description=str(result.get("description") or ""),
                url=url if direct else build_magnet(info_hash),
                is_best=info_hash in best_hashes,
                is_p2p=not direct,
                requires_auth=direct,
            )
        )

    if sort_best:
        # sorted() is stable, so provider order is kept within each group
        candidates = sorted(candidates, key=lambda c: 0 if c.is_best else 1)
    return candidates


class StreamClient(BaseAPIClient):
    """Client for the AIOStreams search API."""

    _error_cls = StreamError
    _auth_error_cls = StreamAuthError
    _not_found_cls = StreamNotFoundError
    _rate_limit_cls = StreamRateLimitError
    _error_message_key = "error"
    _api_name = "AIOStreams"

    def __init__(
        self,
        manifest: ManifestConfig,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(timeout=timeout, http_client=http_client)
        self.manifest = manifest
        self.BASE_URL = manifest.base_url

    def search(self, lookup: LookupKey) -> list[dict[str, Any]]:
        """Search streams for a lookup key.

        Raises:
            StreamError: If the response carries no ``data`` object.
            NoStreamsFoundError: If ``data.results`` is missing or empty.
        """
        logger.debug("Searching streams for %s (%s)", lookup.id, lookup.type)
        response = self._get_client().get(
            "/api/v1/search",
            params={
                "type": lookup.type,
                "id": lookup.id,
                "format": "true",
                "requiredFields": "infoHash",
            },
            auth=self.manifest.auth,
        )
        payload = self._handle_response(response)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise StreamError("API returned no data")
        results = data.get("results")
        if not results:
            raise NoStreamsFoundError("No streams found")
        return [r for r in results if isinstance(r, dict)]


class StreamResolver:
    """Resolves an episode identifier into ranked stream candidates.

    Args:
        options: User options (ID priority, P2P and SeaDex toggles).
        manifest_url: The configured AIOStreams manifest URL.
        seadex: SeaDex client for curated-best highlighting.
        stream_client: Pre-built stream client (mostly for tests).
    """

    def __init__(
        self,
        options: OptionsConfig,
        manifest_url: str | None,
        seadex: SeaDexClient | None = None,
        stream_client: StreamClient | None = None,
    ) -> None:
        self._options = options
        self._manifest_url = manifest_url
        self._seadex = seadex
        self._client = stream_client

    def _stream_client(self) -> StreamClient:
        if self._client is None:
            self._client = StreamClient(ManifestConfig.from_manifest_url(self._manifest_url))
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _best_hashes(self, anilist_id: int) -> set[str]:
        if not self._options.seadex_highlight or anilist_id <= 0 or self._seadex is None:
            return set()
        try:
            return self._seadex.get_best_info_hashes(anilist_id)
        except (APIError, httpx.HTTPError) as e:
            logger.warning("SeaDex lookup for %s failed: %s", anilist_id, e)
            return set()

    def list_streams(self, identifier: EpisodeIdentifier | str) -> list[StreamCandidate]:
        """Streams for one episode, curated-best first when enabled.

        Raises:
            ConfigurationError: Missing or malformed manifest URL, or no
                usable ID in the identifier.
            StreamError: If the search API fails or finds nothing.
        """
        if isinstance(identifier, str):
            identifier = EpisodeIdentifier.parse(identifier)

        client = self._stream_client()
        lookup = select_lookup_id(identifier, self._options.id_priority)
        results = client.search(lookup)

        candidates = rank_streams(
            results,
            best_hashes=self._best_hashes(identifier.anilist_id),
            show_p2p=self._options.show_p2p,
            sort_best=self._options.seadex_sort,
        )
        logger.debug("%d of %d streams kept for %s", len(candidates), len(results), lookup.id)
        return candidates

    def to_hoster(self, candidate: StreamCandidate) -> Hoster:
        """Wrap a candidate as a hoster carrying its single video."""
        headers = None
        if candidate.requires_auth:
            headers = {"Authorization": self._stream_client().manifest.authorization_header}
        video = Video(
            url=candidate.url,
            title=candidate.display_info,
            headers=headers,
            preferred=candidate.is_best,
        )
        return Hoster(url=candidate.url, name=candidate.display_name, videos=[video])
