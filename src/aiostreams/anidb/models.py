"""Data models for AniDB HTTP API responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

# Title languages in order of preference
TITLE_PRIORITY = ("x-jat", "en", "ja", "main", "x-unk")


class AniDBTitle(BaseModel):
    title: str
    lang: str | None = None
    type: str | None = None


def best_title(titles: list[AniDBTitle]) -> str:
    """Pick a title by language priority, else the first non-blank one."""
    for lang in TITLE_PRIORITY:
        for t in titles:
            if (t.lang == lang or t.type == lang) and t.title.strip():
                return t.title
    return next((t.title for t in titles if t.title.strip()), "")


class AniDBEpisode(BaseModel):
    """An episode from an AniDB anime record.

    ``epno`` is a string: "1" for regular episodes, "S1" for specials,
    "C1" for credits and so on.
    """

    id: int | None = None
    epno: str | None = None
    length: int | None = None
    airdate: str | None = None
    rating: str | None = None
    titles: list[AniDBTitle] = Field(default_factory=list)
    summary: str | None = None

    @property
    def title(self) -> str:
        return best_title(self.titles)


class AniDBAnime(BaseModel):
    """An anime record from AniDB."""

    id: int | None = None
    type: str | None = None
    episode_count: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    titles: list[AniDBTitle] = Field(default_factory=list)
    episodes: list[AniDBEpisode] = Field(default_factory=list)

    @property
    def title(self) -> str:
        return best_title(self.titles)
