"""TVDB (TheTVDB) API integration."""

from aiostreams.tvdb.client import (
    TVDBAuthError,
    TVDBClient,
    TVDBError,
    TVDBNotFoundError,
    TVDBRateLimitError,
    episodes_to_map,
)
from aiostreams.tvdb.models import (
    TVDBEpisode,
    TVDBSeries,
    TVDBSeriesExtended,
)

__all__ = [
    "TVDBClient",
    "TVDBError",
    "TVDBAuthError",
    "TVDBNotFoundError",
    "TVDBRateLimitError",
    "TVDBEpisode",
    "TVDBSeries",
    "TVDBSeriesExtended",
    "episodes_to_map",
]
