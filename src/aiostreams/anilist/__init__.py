"""AniList GraphQL API integration."""

from aiostreams.anilist.client import (
    AniListAuthError,
    AniListClient,
    AniListError,
    AniListNotFoundError,
    AniListRateLimitError,
)
from aiostreams.anilist.models import AniListMedia, AniListPage

__all__ = [
    "AniListClient",
    "AniListError",
    "AniListAuthError",
    "AniListNotFoundError",
    "AniListRateLimitError",
    "AniListMedia",
    "AniListPage",
]
