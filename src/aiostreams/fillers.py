"""Filler episode lookup scraped from animefillerlist.com."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import httpx
from bs4 import BeautifulSoup

from aiostreams.api import APIError, BaseAPIClient, cached_api_call

if TYPE_CHECKING:
    from aiostreams.cache import MemoryCache

logger = logging.getLogger(__name__)

FILLER_SELECTOR = "div.filler span.Label"
FILLER_LABEL = "Filler Episodes:"
MIXED_SELECTOR = r"div.mixed_canon\/filler span.Label"
MIXED_LABEL = "Mixed Canon/Filler Episodes:"


class FillerListError(APIError):
    """Base exception for animefillerlist errors."""

    pass


def title_to_slug(title: str) -> str:
    """Convert a show title to its likely animefillerlist slug.

    "Naruto Shippuden" -> "naruto-shippuden"
    """
    slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def parse_episode_ranges(text: str) -> set[int]:
    """Parse ranges like "1-5, 7, 10-12" into episode numbers.

    Pieces that are not a number or a two-ended range are ignored.
    """
    episodes: set[int] = set()
    if not text.strip():
        return episodes

    for part in text.split(","):
        part = part.strip()
        if "-" in part:
            bounds = part.split("-")
            if len(bounds) != 2:
                continue
            try:
                start, end = int(bounds[0]), int(bounds[1])
            except ValueError:
                continue
            episodes.update(range(start, end + 1))
        else:
            try:
                episodes.add(int(part))
            except ValueError:
                continue
    return episodes


def _labelled_episodes(soup: BeautifulSoup, selector: str, label: str) -> set[int]:
    episodes: set[int] = set()
    for element in soup.select(selector):
        if element.get_text(strip=True) != label:
            continue
        sibling = element.find_next_sibling()
        if sibling is not None:
            episodes |= parse_episode_ranges(sibling.get_text(strip=True))
    return episodes


def parse_filler_page(html: str) -> tuple[set[int], set[int]]:
    """Extract (filler, mixed canon/filler) episode sets from a show page."""
    soup = BeautifulSoup(html, "html.parser")
    return (
        _labelled_episodes(soup, FILLER_SELECTOR, FILLER_LABEL),
        _labelled_episodes(soup, MIXED_SELECTOR, MIXED_LABEL),
    )


class FillerListClient(BaseAPIClient):
    """Scraper for https://www.animefillerlist.com/shows/<slug>.

    Every failure (unknown slug, network error, layout change) yields
    empty sets: filler marking is optional decoration.
    """

    BASE_URL = "https://www.animefillerlist.com"

    _error_cls = FillerListError
    _api_name = "animefillerlist"

    def __init__(
        self,
        cache: MemoryCache | None = None,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(cache=cache, timeout=timeout, http_client=http_client)

    def get_filler_episodes(self, slug: str) -> set[int]:
        """Episode numbers listed as filler for the show."""
        filler, _ = self.get_filler_and_mixed_episodes(slug)
        return filler

    def get_filler_and_mixed_episodes(self, slug: str) -> tuple[set[int], set[int]]:
        """Filler and mixed canon/filler episode numbers for the show."""
        from aiostreams.cache import FILLER_TTL_HOURS

        if not slug:
            return set(), set()

        try:
            return cached_api_call(
                cache=self._cache,
                namespace="fillers",
                category="shows",
                key=slug,
                ttl_hours=FILLER_TTL_HOURS,
                fetch_fn=lambda: self._fetch(slug),
                parse_fn=lambda cached: (set(cached["filler"]), set(cached["mixed"])),
                serialize_fn=lambda result: {
                    "filler": sorted(result[0]),
                    "mixed": sorted(result[1]),
                },
            )
        except (APIError, httpx.HTTPError) as e:
            logger.debug("No filler data for %r: %s", slug, e)
            return set(), set()

    def _fetch(self, slug: str) -> tuple[set[int], set[int]]:
        logger.debug("Fetching filler list for %r", slug)
        response = self._get_client().get(f"/shows/{slug}")
        self._raise_for_status(response)
        return parse_filler_page(response.text)
