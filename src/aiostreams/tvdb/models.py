"""Data models for TVDB API responses."""

from datetime import date

from pydantic import BaseModel, Field


class TVDBEpisode(BaseModel):
    """An episode from TVDB."""

    id: int | None = None
    season_number: int | None = Field(default=None, alias="seasonNumber")
    episode_number: int | None = Field(default=None, alias="number")
    absolute_number: int | None = Field(default=None, alias="absoluteNumber")
    name: str | None = None
    overview: str | None = None
    aired: str | None = None
    image: str | None = None
    runtime: int | None = None

    model_config = {"populate_by_name": True}

    @property
    def episode_code(self) -> str:
        """Get the episode code (e.g., 'S01E05')."""
        return f"S{self.season_number or 0:02d}E{self.episode_number or 0:02d}"

    @property
    def aired_date(self) -> date | None:
        from aiostreams.api import parse_date

        return parse_date(self.aired)

    @property
    def is_special(self) -> bool:
        """Check if this is a special (Season 0)."""
        return self.season_number == 0


class TVDBSeries(BaseModel):
    """A TV series from TVDB search results."""

    id: int
    name: str | None = None  # TVDB sometimes returns None for bad data
    slug: str | None = None
    overview: str | None = None
    year: int | None = None
    image: str | None = None
    imdb_id: str | None = None

    @property
    def url(self) -> str:
        """Get the TVDB series page URL."""
        if self.slug:
            return f"https://www.thetvdb.com/series/{self.slug}"
        return f"https://www.thetvdb.com/dereferrer/series/{self.id}"


class TVDBRemoteId(BaseModel):
    id: str | None = None
    type: int | None = None  # 1 = IMDB, 2 = TMDB, ...
    source_name: str | None = Field(default=None, alias="sourceName")

    model_config = {"populate_by_name": True}


class TVDBSeriesExtended(BaseModel):
    """Extended series info with episodes."""

    id: int | None = None
    name: str | None = None
    episodes: list[TVDBEpisode] = Field(default_factory=list)
    remote_ids: list[TVDBRemoteId] = Field(default_factory=list, alias="remoteIds")

    model_config = {"populate_by_name": True}

    @property
    def regular_episodes(self) -> list[TVDBEpisode]:
        """Get non-special episodes (excluding Season 0)."""
        return [ep for ep in self.episodes if not ep.is_special]
