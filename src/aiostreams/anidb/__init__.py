"""AniDB HTTP API integration."""

from aiostreams.anidb.client import AniDBClient, AniDBError, parse_anime_xml
from aiostreams.anidb.models import AniDBAnime, AniDBEpisode, AniDBTitle

__all__ = [
    "AniDBClient",
    "AniDBError",
    "AniDBAnime",
    "AniDBEpisode",
    "AniDBTitle",
    "parse_anime_xml",
]
