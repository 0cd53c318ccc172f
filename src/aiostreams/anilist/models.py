"""Data models for AniList GraphQL responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from aiostreams.models import (
    MediaFormat,
    RelationEdge,
    RelationType,
    ShowRecord,
    ShowStatus,
    strip_html,
)


class AniListTitle(BaseModel):
    romaji: str | None = None
    english: str | None = None
    native: str | None = None


class AniListCover(BaseModel):
    large: str | None = None
    extra_large: str | None = Field(default=None, alias="extraLarge")

    model_config = {"populate_by_name": True}


class AniListStudio(BaseModel):
    name: str | None = None


class AniListStudioConnection(BaseModel):
    nodes: list[AniListStudio | None] | None = None


class AniListRelationEdge(BaseModel):
    relation_type: str | None = Field(default=None, alias="relationType")
    node: AniListMedia | None = None

    model_config = {"populate_by_name": True}


class AniListRelationConnection(BaseModel):
    edges: list[AniListRelationEdge | None] | None = None


class AniListMedia(BaseModel):
    """A Media object as returned by AniList. Every field is optional."""

    id: int | None = None
    title: AniListTitle | None = None
    cover_image: AniListCover | None = Field(default=None, alias="coverImage")
    description: str | None = None
    episodes: int | None = None
    status: str | None = None
    season: str | None = None
    season_year: int | None = Field(default=None, alias="seasonYear")
    format: str | None = None
    genres: list[str | None] | None = None
    average_score: int | None = Field(default=None, alias="averageScore")
    studios: AniListStudioConnection | None = None
    relations: AniListRelationConnection | None = None

    model_config = {"populate_by_name": True}

    def to_show_record(self) -> ShowRecord:
        """Convert to the domain ShowRecord (media without an id map to id 0)."""
        title = self.title or AniListTitle()
        cover = self.cover_image or AniListCover()
        studio = None
        if self.studios:
            studio = next((s.name for s in (self.studios.nodes or []) if s and s.name), None)

        relations: list[RelationEdge] = []
        if self.relations:
            for edge in self.relations.edges or []:
                if edge is None:
                    continue
                relations.append(
                    RelationEdge(
                        relation_type=RelationType.from_anilist(edge.relation_type),
                        node=edge.node.to_show_record() if edge.node and edge.node.id else None,
                    )
                )

        return ShowRecord(
            id=self.id or 0,
            title_romaji=title.romaji,
            title_english=title.english,
            title_native=title.native,
            cover_large=cover.large,
            cover_extra_large=cover.extra_large,
            description=strip_html(self.description),
            genres=[g for g in (self.genres or []) if g],
            status=ShowStatus.from_anilist(self.status),
            episodes=self.episodes,
            format=MediaFormat.from_anilist(self.format),
            season=self.season,
            season_year=self.season_year,
            average_score=self.average_score,
            studio=studio,
            relations=relations,
        )


class AniListPageInfo(BaseModel):
    has_next_page: bool | None = Field(default=None, alias="hasNextPage")

    model_config = {"populate_by_name": True}


class AniListPage(BaseModel):
    media: list[AniListMedia | None] | None = None
    page_info: AniListPageInfo | None = Field(default=None, alias="pageInfo")

    model_config = {"populate_by_name": True}


AniListRelationEdge.model_rebuild()
