"""Episode list synthesis.

Episodes are built from the ani.zip mapping of a show, optionally
overlaid with TVDB episode records, AniDB titles and filler data. Each
episode carries an EpisodeIdentifier holding every cross-reference ID
known at this point, so streams can later be looked up from the
identifier alone.

Two strategies exist:

- mapping: one episode per numeric key of the ani.zip episode map.
- numbered: episodes 1..N where N is the AniList episode count (else the
  TVDB record count, else UNKNOWN_EPISODE_CEILING), overlaid with the ani.zip
  record and the TVDB record it maps to. Used when a TVDB API key is
  configured and the show resolves to a TVDB series.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, NamedTuple

import httpx

from aiostreams.api import APIError, now_millis, parse_air_date_millis
from aiostreams.fillers import title_to_slug
from aiostreams.identity import MOVIE_EPISODE, EpisodeIdentifier
from aiostreams.models import EpisodeRecord, ShowRecord
from aiostreams.tvdb import episodes_to_map

if TYPE_CHECKING:
    from aiostreams.anidb import AniDBClient
    from aiostreams.anilist import AniListClient
    from aiostreams.anizip import AniZipClient, AniZipEpisode, AniZipResponse
    from aiostreams.config import OptionsConfig
    from aiostreams.fillers import FillerListClient
    from aiostreams.tvdb import TVDBClient, TVDBEpisode

logger = logging.getLogger(__name__)

FILLER_PREFIX = "[Filler] "
MIXED_PREFIX = "[Mixed] "

# Upper bound for the numbered strategy when no episode count is known
UNKNOWN_EPISODE_CEILING = 1000

SERIES_TYPES = frozenset({"TV", "TV_SHORT", "ONA", "OVA", "SPECIAL"})
MOVIE_TYPE = "MOVIE"

# ani.zip title languages in order of preference
TITLE_LANGUAGES = ("en", "romaji", "native", "x-jat")


def _usable(value: str | None) -> str | None:
    if value is None or not value.strip() or value == "null":
        return None
    return value


def best_episode_title(
    titles: Mapping[str, str | None] | None,
    secondary: str | None = None,
) -> str:
    """Pick an episode title.

    ani.zip English, romaji, native, then transliterated Japanese, then
    the secondary (AniDB or TVDB) title. Blank values and the literal
    string "null" are ignored. Returns "" when nothing is usable.
    """
    for lang in TITLE_LANGUAGES:
        title = _usable((titles or {}).get(lang))
        if title:
            return title
    return _usable(secondary) or ""


def episode_name(key: str, title: str, filler: bool = False, mixed: bool = False) -> str:
    name = f"Episode {key}: {title}" if title else f"Episode {key}"
    if filler:
        return f"{FILLER_PREFIX}{name}"
    if mixed:
        return f"{MIXED_PREFIX}{name}"
    return name


class FillerMarks(NamedTuple):
    """Filler and mixed canon/filler episode numbers of one show."""

    filler: frozenset[int] = frozenset()
    mixed: frozenset[int] = frozenset()

    def lookup(self, number: float) -> tuple[bool, bool]:
        """(is filler, is mixed) for an episode number."""
        if not number.is_integer():
            return False, False
        return int(number) in self.filler, int(number) in self.mixed


def is_unaired(air_date_millis: int, now: int) -> bool:
    """Known air date strictly in the future. Unknown (0) never counts."""
    return air_date_millis > 0 and air_date_millis > now


def _id_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_identifier(
    response: AniZipResponse,
    anilist_id: int,
    episode: str,
    season: int | None = None,
    episode_in_season: int | None = None,
    title: str | None = None,
) -> EpisodeIdentifier:
    """Build the identifier of one episode.

    Key order: imdb, tmdb, season (only alongside imdb or tmdb), mal,
    kitsu, anilist, ep, epInSeason, title.
    """
    mappings = response.mappings
    imdb = _id_text(mappings.imdb_id) if mappings else None
    tmdb = _id_text(mappings.themoviedb_id) if mappings else None
    is_movie = episode == MOVIE_EPISODE

    return EpisodeIdentifier(
        [
            ("imdb", imdb),
            ("tmdb", tmdb),
            ("season", season if (imdb or tmdb) and not is_movie else None),
            ("mal", _id_text(mappings.mal_id) if mappings else None),
            ("kitsu", _id_text(mappings.kitsu_id) if mappings else None),
            ("anilist", anilist_id),
            ("ep", episode),
            ("epInSeason", None if is_movie else episode_in_season),
            ("title", title or None),
        ]
    )


def _key_number(key: str) -> float | None:
    try:
        return float(key)
    except ValueError:
        return None


def _tvdb_record(
    by_number: Mapping[str, TVDBEpisode],
    number: int,
    mapped: AniZipEpisode | None,
) -> TVDBEpisode | None:
    """TVDB record for an AniList-local episode number.

    ``by_number`` is keyed by absolute number (see ``episodes_to_map``), so
    the ani.zip absolute number is tried first, then the ani.zip
    season/episode pair, then the local number itself.
    """
    if mapped is None:
        return by_number.get(str(number))
    if mapped.absolute_episode_number:
        record = by_number.get(str(mapped.absolute_episode_number))
        if record is not None:
            return record
    if mapped.season_number and mapped.episode_number:
        for record in by_number.values():
            if (
                record.season_number == mapped.season_number
                and record.episode_number == mapped.episode_number
            ):
                return record
        return None
    return by_number.get(str(number))


class EpisodeSynthesizer:
    """Builds the episode list of a show.

    Args:
        anizip: ani.zip client (required).
        options: User options (filler marking, AniDB titles).
        anilist: AniList client, used for the episode count and the title
            that filler slugs and TVDB title searches are derived from.
        tvdb: TVDB client. When given, the numbered strategy is used.
        anidb: AniDB client for secondary episode titles.
        fillers: animefillerlist client.
        clock: Current time in epoch milliseconds.
    """

    def __init__(
        self,
        anizip: AniZipClient,
        options: OptionsConfig,
        anilist: AniListClient | None = None,
        tvdb: TVDBClient | None = None,
        anidb: AniDBClient | None = None,
        fillers: FillerListClient | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._anizip = anizip
        self._options = options
        self._anilist = anilist
        self._tvdb = tvdb
        self._anidb = anidb
        self._fillers = fillers
        self._clock = clock

    def list_episodes(self, show_id: int) -> list[EpisodeRecord]:
        """Episodes of a show, most recent first.

        Raises:
            AniZipError: If the mapping itself cannot be fetched.
        """
        response = self._anizip.get_mappings(show_id)
        mapping_type = response.mapping_type
        anilist_id = (response.mappings.anilist_id if response.mappings else None) or show_id
        now = self._clock()

        if mapping_type == MOVIE_TYPE:
            return self._movie(response, anilist_id, now)
        if mapping_type not in SERIES_TYPES:
            logger.debug("No episodes for %s: unsupported mapping type %r", show_id, mapping_type)
            return []

        needs_show = self._tvdb is not None or self._options.mark_fillers
        show = self._show(show_id) if needs_show else None
        secondary_titles = self._anidb_titles(response)
        fillers = self._filler_episodes(show, response)

        episodes: list[EpisodeRecord] | None = None
        if self._tvdb is not None:
            episodes = self._numbered(
                self._tvdb, show, response, anilist_id, secondary_titles, fillers, now
            )
        if episodes is None:
            episodes = self._from_mapping(response, anilist_id, secondary_titles, fillers, now)

        return sorted(episodes, key=lambda e: e.episode_number, reverse=True)

    def _show(self, show_id: int) -> ShowRecord | None:
        if self._anilist is None:
            return None
        try:
            return self._anilist.get_show(show_id)
        except (APIError, httpx.HTTPError) as e:
            logger.warning("AniList lookup for %s failed: %s", show_id, e)
            return None

    def _anidb_titles(self, response: AniZipResponse) -> dict[str, str]:
        if not self._options.use_anidb_titles or self._anidb is None:
            return {}
        anidb_id = response.mappings.anidb_id if response.mappings else None
        try:
            aid = int(anidb_id) if anidb_id is not None else 0
        except (TypeError, ValueError):
            aid = 0
        if aid <= 0:
            return {}
        return self._anidb.get_episode_titles(aid)

    def _filler_episodes(self, show: ShowRecord | None, response: AniZipResponse) -> FillerMarks:
        if not self._options.mark_fillers or self._fillers is None:
            return FillerMarks()
        title = show.title if show else best_episode_title(response.titles)
        slug = title_to_slug(title)
        if not slug:
            return FillerMarks()
        filler, mixed = self._fillers.get_filler_and_mixed_episodes(slug)
        return FillerMarks(frozenset(filler), frozenset(mixed))

    def _movie(self, response: AniZipResponse, anilist_id: int, now: int) -> list[EpisodeRecord]:
        first = response.episode("1")
        date_upload = parse_air_date_millis(first.aired) if first else 0
        if is_unaired(date_upload, now):
            return []
        return [
            EpisodeRecord(
                episode_number=1.0,
                name="Movie",
                date_upload=date_upload,
                identifier=build_identifier(response, anilist_id, MOVIE_EPISODE),
            )
        ]

    def _from_mapping(
        self,
        response: AniZipResponse,
        anilist_id: int,
        secondary_titles: Mapping[str, str],
        fillers: FillerMarks,
        now: int,
    ) -> list[EpisodeRecord]:
        episodes: list[EpisodeRecord] = []
        for key, record in (response.episodes or {}).items():
            number = _key_number(key)
            if number is None:
                continue

            date_upload = parse_air_date_millis(record.aired)
            if is_unaired(date_upload, now):
                continue

            season = record.season_number or 1
            try:
                episode_in_season = record.episode_number or int(key) or 1
            except ValueError:
                episode_in_season = 1

            title = best_episode_title(record.title, secondary_titles.get(key))
            filler, mixed = fillers.lookup(number)
            episodes.append(
                EpisodeRecord(
                    episode_number=number,
                    name=episode_name(key, title, filler, mixed),
                    date_upload=date_upload,
                    summary=_usable(record.description),
                    preview_url=_usable(record.image),
                    filler=filler,
                    identifier=build_identifier(
                        response, anilist_id, key, season, episode_in_season, title
                    ),
                )
            )
        return episodes

    def _resolve_tvdb_series(
        self, tvdb: TVDBClient, show: ShowRecord | None, response: AniZipResponse
    ) -> int | None:
        mappings = response.mappings
        try:
            if mappings and mappings.thetvdb_id:
                return int(mappings.thetvdb_id)
            if mappings and mappings.imdb_id:
                series_id = tvdb.find_series_by_remote_id(mappings.imdb_id)
                if series_id:
                    return series_id
            if show and show.title:
                results = tvdb.search_series(show.title)
                if results:
                    return results[0].id
        except (APIError, httpx.HTTPError) as e:
            logger.warning("TVDB series lookup failed: %s", e)
        except ValueError:
            logger.debug("Unusable TVDB id in mapping: %r", mappings)
        return None

    def _numbered(
        self,
        tvdb: TVDBClient,
        show: ShowRecord | None,
        response: AniZipResponse,
        anilist_id: int,
        secondary_titles: Mapping[str, str],
        fillers: FillerMarks,
        now: int,
    ) -> list[EpisodeRecord] | None:
        """Numbered strategy, or None when no TVDB series resolves."""
        series_id = self._resolve_tvdb_series(tvdb, show, response)
        if series_id is None:
            return None

        try:
            records = tvdb.get_all_episodes(series_id)
        except (APIError, httpx.HTTPError) as e:
            logger.warning("TVDB episodes for %s unavailable: %s", series_id, e)
            records = []
        by_number = episodes_to_map(records)

        regular_count = sum(1 for r in records if not r.is_special)
        count = (show.episodes if show else None) or regular_count

        # With no count at all, stop once the ani.zip records run out
        last_known: int | None = None
        if not count:
            count = UNKNOWN_EPISODE_CEILING
            known = [n for n in map(_key_number, response.episodes or {}) if n is not None]
            if known:
                last_known = int(max(known))

        episodes: list[EpisodeRecord] = []
        for number in range(1, count + 1):
            if last_known is not None and number > last_known:
                break
            mapped = response.episode(str(number))
            record = self._numbered_episode(
                number,
                mapped,
                _tvdb_record(by_number, number, mapped),
                response,
                anilist_id,
                secondary_titles,
                fillers,
            )
            if is_unaired(record.date_upload, now):
                continue
            episodes.append(record)
        return episodes

    def _numbered_episode(
        self,
        number: int,
        mapped: AniZipEpisode | None,
        tvdb_record: TVDBEpisode | None,
        response: AniZipResponse,
        anilist_id: int,
        secondary_titles: Mapping[str, str],
        fillers: FillerMarks,
    ) -> EpisodeRecord:
        key = str(number)

        aired = (mapped.aired if mapped else None) or (tvdb_record.aired if tvdb_record else None)
        secondary = secondary_titles.get(key) or (tvdb_record.name if tvdb_record else None)
        title = best_episode_title(mapped.title if mapped else None, secondary)

        # ani.zip numbering is per AniList entry, TVDB's is per series
        season = (
            (mapped.season_number if mapped else None)
            or (tvdb_record.season_number if tvdb_record and tvdb_record.season_number else None)
            or 1
        )
        episode_in_season = (
            (mapped.episode_number if mapped else None)
            or (tvdb_record.episode_number if tvdb_record and tvdb_record.season_number else None)
            or number
        )

        summary = _usable(mapped.description if mapped else None) or _usable(
            tvdb_record.overview if tvdb_record else None
        )
        preview = _usable(mapped.image if mapped else None) or _usable(
            tvdb_record.image if tvdb_record else None
        )

        filler, mixed = fillers.lookup(float(number))
        return EpisodeRecord(
            episode_number=float(number),
            name=episode_name(key, title, filler, mixed),
            date_upload=parse_air_date_millis(aired),
            summary=summary,
            preview_url=preview,
            filler=filler,
            identifier=build_identifier(
                response, anilist_id, key, season, episode_in_season, title
            ),
        )
