"""Episode identifiers and stream lookup-key selection.

An episode is identified across the plugin boundary by a single string,
the encoded EpisodeIdentifier. Format version 1:

    imdb:tt0388629|tmdb:37854|season:1|mal:21|kitsu:12|anilist:21|ep:5|epInSeason:5

- Pairs are separated by ``|``; key and value are separated by the first ``:``.
- Keys come from KNOWN_KEYS. Unknown keys survive a parse/encode cycle.
- A key appears at most once; when parsing, the first occurrence wins.
- Values never contain ``|`` (it is stripped on construction). Values may
  contain ``:``.

The string is produced once when episodes are listed and parsed again when
streams are requested, so the key names and delimiters must stay stable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from enum import Enum
from typing import NamedTuple

from aiostreams.api import ConfigurationError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

PAIR_SEPARATOR = "|"
KEY_SEPARATOR = ":"

KNOWN_KEYS = ("imdb", "tmdb", "season", "mal", "kitsu", "anilist", "ep", "epInSeason", "title")

MOVIE_EPISODE = "movie"


class NoUsableIdentifierError(ConfigurationError):
    """The episode carries no ID the stream API can be queried with."""

    pass


class EpisodeIdentifier:
    """Ordered, immutable key/value token identifying one episode."""

    __slots__ = ("_parts",)

    def __init__(self, parts: Mapping[str, object] | Iterable[tuple[str, object]] = ()) -> None:
        items = parts.items() if isinstance(parts, Mapping) else parts
        ordered: dict[str, str] = {}
        for key, value in items:
            if value is None:
                continue
            if not key or PAIR_SEPARATOR in key or KEY_SEPARATOR in key:
                raise ValueError(f"Invalid identifier key: {key!r}")
            if key in ordered:
                continue
            ordered[key] = str(value).replace(PAIR_SEPARATOR, "")
        self._parts = ordered

    @classmethod
    def parse(cls, text: str) -> EpisodeIdentifier:
        """Parse an encoded identifier.

        Segments without a ``:`` become keys with an empty value, so a bare
        numeric ID (the show URL of a flat listing) parses as ``{"21": ""}``.
        """
        pairs: list[tuple[str, str]] = []
        for segment in text.split(PAIR_SEPARATOR):
            if not segment:
                continue
            key, _, value = segment.partition(KEY_SEPARATOR)
            if not key:
                continue
            pairs.append((key, value))
        return cls(pairs)

    def encode(self) -> str:
        return PAIR_SEPARATOR.join(f"{k}{KEY_SEPARATOR}{v}" for k, v in self._parts.items())

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._parts.get(key, default)

    def as_dict(self) -> dict[str, str]:
        return dict(self._parts)

    @property
    def is_movie(self) -> bool:
        return self._parts.get("ep", "1") in (MOVIE_EPISODE, "0")

    @property
    def anilist_id(self) -> int:
        """AniList ID, or 0 when absent or not numeric."""
        try:
            return int(self._parts.get("anilist", "0"))
        except ValueError:
            return 0

    def __contains__(self, key: object) -> bool:
        return key in self._parts

    def __getitem__(self, key: str) -> str:
        return self._parts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EpisodeIdentifier):
            return NotImplemented
        return self._parts == other._parts

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._parts.items())))

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"EpisodeIdentifier({self.encode()!r})"


class IdType(str, Enum):
    """Cross-reference ID types the stream API understands."""

    IMDB = "imdb"
    TMDB = "tmdb"
    KITSU = "kitsu"
    MAL = "mal"
    ANILIST = "anilist"


def parse_priority(priority: str | Sequence[IdType | str]) -> list[IdType]:
    """Parse a priority such as "kitsu,imdb,mal,anilist".

    Unknown entries are ignored.
    """
    tokens = priority.split(",") if isinstance(priority, str) else priority
    order: list[IdType] = []
    for token in tokens:
        try:
            id_type = IdType(token.strip() if isinstance(token, str) else token)
        except ValueError:
            logger.debug("Ignoring unknown ID type in priority: %r", token)
            continue
        if id_type not in order:
            order.append(id_type)
    return order


class LookupKey(NamedTuple):
    """What to send to the stream search endpoint."""

    id: str
    type: str  # "movie" or "series"
    id_type: IdType


def _composite_key(identifier: EpisodeIdentifier, id_type: IdType) -> str:
    raw = identifier[id_type.value]
    season = identifier.get("season") or "1"
    ep_in_season = identifier.get("epInSeason") or "1"
    episode = identifier.get("ep") or "1"

    base = raw if id_type is IdType.IMDB else f"{id_type.value}:{raw}"
    if identifier.is_movie:
        return base

    match id_type:
        case IdType.IMDB | IdType.TMDB | IdType.ANILIST:
            return f"{base}:{season}:{ep_in_season}"
        case IdType.KITSU:
            # Kitsu entries are per-season already
            return f"{base}:{ep_in_season}"
        case IdType.MAL:
            return f"{base}:{episode}"


def select_lookup_id(
    identifier: EpisodeIdentifier,
    priority: str | Sequence[IdType | str],
) -> LookupKey:
    """Pick the first ID type from `priority` that the identifier carries.

    Falls back to IMDB when none of the prioritised types is present.

    Raises:
        NoUsableIdentifierError: If no usable ID exists.
    """
    lookup_type = "movie" if identifier.is_movie else "series"

    for id_type in parse_priority(priority):
        if id_type.value in identifier:
            return LookupKey(_composite_key(identifier, id_type), lookup_type, id_type)

    if IdType.IMDB.value in identifier:
        return LookupKey(_composite_key(identifier, IdType.IMDB), lookup_type, IdType.IMDB)

    raise NoUsableIdentifierError("No valid ID found")
