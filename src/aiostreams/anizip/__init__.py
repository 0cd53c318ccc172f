"""ani.zip episode mapping integration."""

from aiostreams.anizip.client import (
    AniZipAuthError,
    AniZipClient,
    AniZipError,
    AniZipNotFoundError,
    AniZipRateLimitError,
)
from aiostreams.anizip.models import AniZipEpisode, AniZipMappings, AniZipResponse

__all__ = [
    "AniZipAuthError",
    "AniZipClient",
    "AniZipError",
    "AniZipNotFoundError",
    "AniZipRateLimitError",
    "AniZipEpisode",
    "AniZipMappings",
    "AniZipResponse",
]
