"""Data models for ani.zip mapping responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AniZipMappings(BaseModel):
    """Cross-reference IDs for one AniList entry.

    ani.zip returns IDs with mixed types (numbers for most catalogs, a
    string for IMDB), so everything is kept as ``int | str``.
    """

    anilist_id: int | None = None
    mal_id: int | str | None = None
    kitsu_id: int | str | None = None
    imdb_id: str | None = None
    themoviedb_id: int | str | None = None
    anidb_id: int | str | None = None
    thetvdb_id: int | str | None = None
    type: str | None = None


class AniZipEpisode(BaseModel):
    """One entry of the per-episode map."""

    episode: str | None = None
    episode_number: int | None = Field(default=None, alias="episodeNumber")
    absolute_episode_number: int | None = Field(default=None, alias="absoluteEpisodeNumber")
    season_number: int | None = Field(default=None, alias="seasonNumber")
    title: dict[str, str | None] | None = None
    air_date: str | None = Field(default=None, alias="airDate")
    airdate: str | None = None
    overview: str | None = None
    summary: str | None = None
    image: str | None = None
    runtime: int | None = None
    length: int | None = None
    rating: str | float | None = None
    anidb_eid: int | None = Field(default=None, alias="anidbEid")
    tvdb_show_id: int | None = Field(default=None, alias="tvdbShowId")
    tvdb_id: int | None = Field(default=None, alias="tvdbId")

    model_config = {"populate_by_name": True}

    @property
    def aired(self) -> str | None:
        """Air date, whichever of the two spellings ani.zip used."""
        return self.air_date or self.airdate

    @property
    def description(self) -> str | None:
        return self.overview or self.summary


class AniZipResponse(BaseModel):
    """The full ani.zip response for one AniList ID."""

    titles: dict[str, str | None] | None = None
    episodes: dict[str, AniZipEpisode] | None = None
    episode_count: int | None = Field(default=None, alias="episodeCount")
    special_count: int | None = Field(default=None, alias="specialCount")
    mappings: AniZipMappings | None = None

    model_config = {"populate_by_name": True}

    @property
    def mapping_type(self) -> str:
        """Upper-cased mapping type ("TV", "MOVIE", ...), or empty."""
        if self.mappings is None or not self.mappings.type:
            return ""
        return self.mappings.type.upper()

    def episode(self, key: str) -> AniZipEpisode | None:
        return (self.episodes or {}).get(key)
