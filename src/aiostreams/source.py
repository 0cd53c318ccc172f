"""The AIOStreams anime source.

AIOStreamsSource is what a host application talks to: it exposes the
browse/search/details/seasons/episodes/hosters/videos operations and
wires the metadata clients, the resolvers and one MemoryCache together.
"""

from __future__ import annotations

import logging
from typing import Self

from aiostreams.anidb import AniDBClient
from aiostreams.anilist import AniListClient
from aiostreams.anizip import AniZipClient
from aiostreams.api import BaseAPIClient
from aiostreams.cache import MemoryCache
from aiostreams.config import AppConfig, get_config
from aiostreams.episodes import EpisodeSynthesizer
from aiostreams.fillers import FillerListClient
from aiostreams.identity import EpisodeIdentifier
from aiostreams.models import (
    EpisodeRecord,
    Hoster,
    SeasonEntry,
    ShowPage,
    ShowRecord,
    StreamCandidate,
    Video,
)
from aiostreams.seadex import SeaDexClient
from aiostreams.seasons import SeasonResolver, has_related_seasons, show_id_from_url
from aiostreams.streams import StreamResolver
from aiostreams.tvdb import TVDBClient

logger = logging.getLogger(__name__)


class AIOStreamsSource:
    """Anime source backed by AniList metadata and AIOStreams streams.

    Args:
        config: Configuration. Defaults to the loaded config file.
        cache: Cache shared by all clients. Defaults to a new MemoryCache
            sized from the config.
    """

    name = "AIOStreams"
    lang = "all"

    def __init__(self, config: AppConfig | None = None, cache: MemoryCache | None = None) -> None:
        self.config = config or get_config()
        if cache is None:
            cache_cfg = self.config.cache
            cache = MemoryCache(
                enabled=cache_cfg.enabled,
                max_entries=cache_cfg.max_entries,
                default_ttl_hours=cache_cfg.ttl_hours,
                max_ttl_hours=cache_cfg.ttl_hours,
            )
        self.cache = cache

        options = self.config.options
        self.anilist = AniListClient(cache=cache)
        self.anizip = AniZipClient(cache=cache)
        self.seadex = SeaDexClient(cache=cache)
        tvdb_key = self.config.tvdb.api_key
        self.tvdb = TVDBClient(api_key=tvdb_key, cache=cache) if tvdb_key else None
        self.anidb = AniDBClient(cache=cache) if options.use_anidb_titles else None
        self.fillers = FillerListClient(cache=cache) if options.mark_fillers else None

        self.season_resolver = SeasonResolver(self.anilist)
        self.episode_synthesizer = EpisodeSynthesizer(
            self.anizip,
            options,
            anilist=self.anilist,
            tvdb=self.tvdb,
            anidb=self.anidb,
            fillers=self.fillers,
        )
        self.stream_resolver = StreamResolver(
            options,
            self.config.aiostreams.manifest_url,
            seadex=self.seadex,
        )

    def _clients(self) -> list[BaseAPIClient]:
        clients: list[BaseAPIClient | None] = [
            self.anilist,
            self.anizip,
            self.seadex,
            self.tvdb,
            self.anidb,
            self.fillers,
        ]
        return [c for c in clients if c is not None]

    def close(self) -> None:
        """Close every HTTP client."""
        for client in self._clients():
            client.close()
        self.stream_resolver.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # Browse

    def popular(self, page: int = 1) -> ShowPage:
        """Most popular anime on AniList."""
        return self.anilist.popular(page)

    def search(self, query: str, page: int = 1) -> ShowPage:
        return self.anilist.search(query, page)

    def uses_seasons(self, show: ShowRecord, from_list: bool = False) -> bool:
        """Whether a show is presented as seasons rather than a flat list.

        Requires the seasons option and at least one qualifying relation.
        List pages carry relation types only, so ``from_list`` skips the
        related-show check.
        """
        if not self.config.options.use_seasons:
            return False
        return has_related_seasons(show.relations, require_node=not from_list)

    # Show

    def details(self, show: int | str) -> ShowRecord:
        """Full details of a show.

        Raises:
            AniListError: With AniList's own message when the API reports one.
        """
        return self.anilist.get_show(_show_id(show))

    def seasons(self, show: int | str) -> list[SeasonEntry]:
        """Seasons of a show; empty when AniList fails."""
        return self.season_resolver.resolve_seasons(_show_id(show))

    def episodes(self, show: int | str) -> list[EpisodeRecord]:
        """Episodes of a show or season, most recent first."""
        return self.episode_synthesizer.list_episodes(_show_id(show))

    # Streams

    def streams(self, episode: EpisodeRecord | EpisodeIdentifier | str) -> list[StreamCandidate]:
        if isinstance(episode, EpisodeRecord):
            episode = episode.identifier
        return self.stream_resolver.list_streams(episode)

    def hosters(self, episode: EpisodeRecord | EpisodeIdentifier | str) -> list[Hoster]:
        """One hoster per stream, each holding its resolved video."""
        return [self.stream_resolver.to_hoster(c) for c in self.streams(episode)]

    def videos(self, hoster: Hoster) -> list[Video]:
        return list(hoster.videos)

    def clear_cache(self) -> int:
        """Drop every cached response. Returns the number removed."""
        return self.cache.clear()


def _show_id(show: int | str) -> int:
    return show if isinstance(show, int) else show_id_from_url(show)
