"""Domain models shared by the resolvers and the source facade."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field

from aiostreams.identity import EpisodeIdentifier

_HTML_TAG = re.compile(r"<[^>]*>")


class ShowStatus(str, Enum):
    """Lifecycle status of a show."""

    COMPLETED = "completed"
    ONGOING = "ongoing"
    NOT_YET_RELEASED = "not_yet_released"
    UNKNOWN = "unknown"

    @classmethod
    def from_anilist(cls, value: str | None) -> ShowStatus:
        """Map an AniList MediaStatus value."""
        match value:
            case "FINISHED":
                return cls.COMPLETED
            case "RELEASING":
                return cls.ONGOING
            case "NOT_YET_RELEASED":
                return cls.NOT_YET_RELEASED
            case _:
                return cls.UNKNOWN


class MediaFormat(str, Enum):
    """AniList MediaFormat values."""

    TV = "TV"
    TV_SHORT = "TV_SHORT"
    MOVIE = "MOVIE"
    SPECIAL = "SPECIAL"
    OVA = "OVA"
    ONA = "ONA"
    MUSIC = "MUSIC"

    @classmethod
    def from_anilist(cls, value: str | None) -> MediaFormat | None:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class RelationType(str, Enum):
    """Relation between two AniList entries.

    Everything AniList reports outside the recognised set collapses to OTHER.
    """

    PREQUEL = "PREQUEL"
    PARENT = "PARENT"
    SEQUEL = "SEQUEL"
    SIDE_STORY = "SIDE_STORY"
    ALTERNATIVE = "ALTERNATIVE"
    OTHER = "OTHER"

    @classmethod
    def from_anilist(cls, value: str | None) -> RelationType:
        if not value:
            return cls.OTHER
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def is_season(self) -> bool:
        """Whether this relation makes the target a season of the source."""
        return self is not RelationType.OTHER

    @property
    def rank(self) -> int:
        """Ordering group: prequel/parent, sequel, side story, alternative, other."""
        match self:
            case RelationType.PREQUEL | RelationType.PARENT:
                return 0
            case RelationType.SEQUEL:
                return 1
            case RelationType.SIDE_STORY:
                return 2
            case RelationType.ALTERNATIVE:
                return 3
            case RelationType.OTHER:
                return 4


def pick_title(english: str | None, romaji: str | None) -> str:
    """English title if non-blank, otherwise romaji (or empty)."""
    if english and english.strip():
        return english
    return romaji or ""


def pick_cover(extra_large: str | None, large: str | None) -> str:
    """Extra-large cover if non-blank, otherwise large (or empty)."""
    if extra_large and extra_large.strip():
        return extra_large
    return large or ""


def strip_html(text: str | None) -> str:
    """Remove HTML tags from an AniList description."""
    if not text:
        return ""
    return _HTML_TAG.sub("", text)


class RelationEdge(BaseModel):
    """A typed edge from a show to a related show."""

    relation_type: RelationType = RelationType.OTHER
    node: ShowRecord | None = None


class ShowRecord(BaseModel):
    """A show as described by AniList."""

    id: int
    title_romaji: str | None = None
    title_english: str | None = None
    title_native: str | None = None
    cover_large: str | None = None
    cover_extra_large: str | None = None
    description: str = ""
    genres: list[str] = Field(default_factory=list)
    status: ShowStatus = ShowStatus.UNKNOWN
    episodes: int | None = None
    format: MediaFormat | None = None
    season: str | None = None
    season_year: int | None = None
    average_score: int | None = None
    studio: str | None = None
    relations: list[RelationEdge] = Field(default_factory=list)

    @property
    def title(self) -> str:
        """Display title (English preferred, romaji fallback)."""
        return pick_title(self.title_english, self.title_romaji)

    @property
    def cover_url(self) -> str:
        return pick_cover(self.cover_extra_large, self.cover_large)

    @property
    def is_movie(self) -> bool:
        return self.format is MediaFormat.MOVIE

    @property
    def genre_text(self) -> str:
        return ", ".join(self.genres)

    @property
    def release(self) -> str:
        """Season and year, e.g. "SPRING 2024"."""
        return f"{self.season or ''} {self.season_year or ''}".strip()

    def details_text(self) -> str:
        """Long description used on the details screen."""
        lines: list[str] = []
        if self.description.strip():
            lines.append(f"{self.description}\n")
        if self.average_score and self.average_score > 0:
            lines.append(f"★ Score: {self.average_score}/100")
        if self.studio:
            lines.append(f"Studio: {self.studio}")
        if self.format:
            lines.append(f"Format: {self.format.value}")
        if self.episodes is not None:
            lines.append(f"Episodes: {self.episodes}")
        if self.release:
            lines.append(f"Release: {self.release}")
        return "\n".join(lines).strip()


class ShowPage(BaseModel):
    """One page of popular or search results."""

    shows: list[ShowRecord] = Field(default_factory=list)
    has_next_page: bool = False


class SeasonEntry(BaseModel):
    """A show exposed as one season of another."""

    show_id: int
    season_number: int
    title: str
    cover_url: str = ""
    description: str = ""
    genres: list[str] = Field(default_factory=list)
    status: ShowStatus = ShowStatus.UNKNOWN
    relation_type: RelationType | None = None

    @property
    def url(self) -> str:
        return f"{self.show_id}|season:{self.season_number}"


class EpisodeRecord(BaseModel):
    """A playable episode with its cross-reference identifier."""

    episode_number: float
    name: str
    date_upload: int = 0  # epoch millis, 0 = unknown
    summary: str | None = None
    preview_url: str | None = None
    filler: bool = False
    identifier: EpisodeIdentifier

    model_config = {"arbitrary_types_allowed": True}

    @property
    def url(self) -> str:
        return self.identifier.encode()


class StreamCandidate(BaseModel):
    """A stream returned by the aggregator, after validation."""

    info_hash: str
    name: str = "Stream"
    description: str = ""
    url: str
    is_best: bool = False
    is_p2p: bool = False
    requires_auth: bool = False

    @property
    def display_name(self) -> str:
        return f"⭐ {self.name}" if self.is_best else self.name

    @property
    def display_info(self) -> str:
        if self.description:
            return f"{self.display_name}\n{self.description}"
        return self.display_name


class Video(BaseModel):
    """A playable video handed to the host player."""

    url: str
    title: str
    headers: dict[str, str] | None = None
    preferred: bool = False


class Hoster(BaseModel):
    """A named stream host carrying its pre-resolved videos."""

    url: str
    name: str
    videos: list[Video] = Field(default_factory=list)


RelationEdge.model_rebuild()
