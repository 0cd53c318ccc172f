"""SeaDex (releases.moe) best-release lookup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from aiostreams.api import APIError, BaseAPIClient, cached_api_call

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)

REDACTED_HASH = "<redacted>"


class SeaDexError(APIError):
    """Base exception for SeaDex API errors."""

    pass


def parse_best_hashes(data: dict[str, Any]) -> set[str]:
    """Collect hashes from a records response.

    Returns the hashes flagged ``isBest`` if there are any, otherwise every
    other valid hash.
    """
    best: set[str] = set()
    fallback: set[str] = set()
    for item in data.get("items") or []:
        expand = item.get("expand") if isinstance(item, dict) else None
        if not isinstance(expand, dict):
            continue
        for torrent in expand.get("trs") or []:
            if not isinstance(torrent, dict):
                continue
            info_hash = str(torrent.get("infoHash") or "").lower()
            if not info_hash or info_hash == REDACTED_HASH:
                continue
            if torrent.get("isBest"):
                best.add(info_hash)
            else:
                fallback.add(info_hash)
    return best or fallback


class SeaDexClient(BaseAPIClient):
    """Client for the releases.moe entries collection."""

    BASE_URL = "https://releases.moe"

    _error_cls = SeaDexError
    _api_name = "SeaDex"

    def __init__(
        self,
        cache: MemoryCache | None = None,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(cache=cache, timeout=timeout, http_client=http_client)

    def get_best_info_hashes(self, anilist_id: int) -> set[str]:
        """Info hashes of the curated best releases for a show.

        Raises:
            SeaDexError: On a non-success status or invalid JSON.
        """
        from aiostreams.cache import SEADEX_TTL_HOURS

        return cached_api_call(
            cache=self._cache,
            namespace="seadex",
            category="hashes",
            key=str(anilist_id),
            ttl_hours=SEADEX_TTL_HOURS,
            fetch_fn=lambda: self._fetch(anilist_id),
            parse_fn=lambda cached: set(cached["hashes"]),
            serialize_fn=lambda hashes: {"hashes": sorted(hashes)},
        )

    def _fetch(self, anilist_id: int) -> set[str]:
        logger.debug("Fetching SeaDex entry for AniList %s", anilist_id)
        response = self._get_client().get(
            "/api/collections/entries/records",
            params={"expand": "trs", "filter": f"alID={anilist_id}", "sort": "-trs.isBest"},
        )
        return parse_best_hashes(self._handle_response(response))
