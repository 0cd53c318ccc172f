"""AniDB HTTP API client.

AniDB answers with (gzip-compressed) XML and bans clients that request
faster than one call every two seconds, so every request first takes a
token from a TokenBucket.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

import httpx

from aiostreams.anidb.models import AniDBAnime, AniDBEpisode, AniDBTitle
from aiostreams.api import APIError, BaseAPIClient, cached_api_call
from aiostreams.ratelimit import TokenBucket

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

# Seconds between two requests
MIN_REQUEST_INTERVAL = 2.5


class AniDBError(APIError):
    """Base exception for AniDB API errors."""

    pass


def _text(element: ET.Element | None) -> str | None:
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def _int(value: str | None) -> int | None:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def parse_anime_xml(xml_text: str) -> AniDBAnime:
    """Parse an ``request=anime`` response.

    Raises:
        AniDBError: If the XML is malformed or AniDB returned an <error>.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise AniDBError(f"Failed to parse AniDB response: {e}") from e

    if root.tag == "error":
        raise AniDBError(f"AniDB API error: {_text(root) or 'unknown'}")
    if root.tag != "anime":
        raise AniDBError(f"Unexpected AniDB response root <{root.tag}>")

    titles = [
        AniDBTitle(title=t.text.strip(), lang=t.get(XML_LANG), type=t.get("type"))
        for t in root.findall("titles/title")
        if t.text and t.text.strip()
    ]

    episodes: list[AniDBEpisode] = []
    for ep in root.findall("episodes/episode"):
        episodes.append(
            AniDBEpisode(
                id=_int(ep.get("id")),
                epno=_text(ep.find("epno")),
                length=_int(_text(ep.find("length"))),
                airdate=_text(ep.find("airdate")),
                rating=_text(ep.find("rating")),
                titles=[
                    AniDBTitle(title=t.text.strip(), lang=t.get(XML_LANG) or "en")
                    for t in ep.findall("title")
                    if t.text and t.text.strip()
                ],
                summary=_text(ep.find("summary")),
            )
        )

    return AniDBAnime(
        id=_int(root.get("id")),
        type=_text(root.find("type")),
        episode_count=_int(_text(root.find("episodecount"))),
        start_date=_text(root.find("startdate")),
        end_date=_text(root.find("enddate")),
        titles=titles,
        episodes=episodes,
    )


class AniDBClient(BaseAPIClient):
    """Client for the AniDB HTTP API."""

    BASE_URL = "https://api.anidb.net:9001"
    CLIENT_NAME = "aiostreams"
    CLIENT_VERSION = "1"

    _error_cls = AniDBError
    _api_name = "AniDB"

    def __init__(
        self,
        cache: MemoryCache | None = None,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
        limiter: TokenBucket | None = None,
    ) -> None:
        super().__init__(cache=cache, timeout=timeout, http_client=http_client)
        self._limiter = limiter or TokenBucket.from_interval(MIN_REQUEST_INTERVAL)

    def get_anime(self, anidb_id: int) -> AniDBAnime | None:
        """Get an anime record, or None if AniDB could not provide one."""
        from aiostreams.cache import ANIDB_ANIME_TTL_HOURS

        try:
            return cached_api_call(
                cache=self._cache,
                namespace="anidb",
                category="anime",
                key=str(anidb_id),
                ttl_hours=ANIDB_ANIME_TTL_HOURS,
                fetch_fn=lambda: self._fetch_anime(anidb_id),
                parse_fn=AniDBAnime.model_validate,
                serialize_fn=lambda anime: anime.model_dump(mode="json"),
            )
        except (APIError, httpx.HTTPError) as e:
            logger.warning("AniDB lookup for %s failed: %s", anidb_id, e)
            return None

    def _fetch_anime(self, anidb_id: int) -> AniDBAnime:
        waited = self._limiter.acquire()
        if waited:
            logger.debug("Waited %.2fs for AniDB rate limit", waited)

        response = self._get_client().get(
            "/httpapi",
            params={
                "client": self.CLIENT_NAME,
                "clientver": self.CLIENT_VERSION,
                "protover": 1,
                "request": "anime",
                "aid": anidb_id,
            },
        )
        self._raise_for_status(response)
        return parse_anime_xml(response.text)

    def get_episode_titles(self, anidb_id: int) -> dict[str, str]:
        """Map of episode number ("1", "S1", ...) to its best title."""
        anime = self.get_anime(anidb_id)
        if anime is None:
            return {}
        return {(ep.epno or "1"): ep.title for ep in anime.episodes}
