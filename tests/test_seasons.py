"""Tests for season resolution."""

from unittest.mock import MagicMock

import httpx
import pytest

from aiostreams.anilist import AniListError
from aiostreams.models import RelationEdge, RelationType, ShowRecord, ShowStatus
from aiostreams.seasons import (
    SeasonResolver,
    build_seasons,
    has_related_seasons,
    show_id_from_url,
    sort_relation_edges,
)


def _show(show_id: int, title: str | None = None, **kwargs: object) -> ShowRecord:
    if title is None:
        title = f"Show {show_id}"
    return ShowRecord(id=show_id, title_romaji=title, **kwargs)


def _edge(relation: RelationType, node: ShowRecord | None) -> RelationEdge:
    return RelationEdge(relation_type=relation, node=node)


class TestShowIdFromUrl:
    """Tests for show URL parsing."""

    def test_plain_id(self) -> None:
        """Test a bare numeric URL."""
        assert show_id_from_url("21") == 21

    def test_season_url(self) -> None:
        """Test a season URL carries the ID before the separator."""
        assert show_id_from_url("1535|season:3") == 1535

    def test_invalid_url(self) -> None:
        """Test a non-numeric URL raises ValueError."""
        with pytest.raises(ValueError):
            show_id_from_url("abc|season:1")


class TestHasRelatedSeasons:
    """Tests for seasons-mode eligibility."""

    def test_no_relations(self) -> None:
        """Test a show without relations does not use seasons."""
        assert has_related_seasons([]) is False

    def test_only_other_relations(self) -> None:
        """Test OTHER relations never qualify."""
        edges = [_edge(RelationType.OTHER, _show(2))]
        assert has_related_seasons(edges) is False

    def test_sequel_qualifies(self) -> None:
        """Test a sequel with a target qualifies."""
        assert has_related_seasons([_edge(RelationType.SEQUEL, _show(2))]) is True

    def test_list_view_ignores_missing_node(self) -> None:
        """Test list pages only need the relation type."""
        edges = [_edge(RelationType.PREQUEL, None)]
        assert has_related_seasons(edges) is False
        assert has_related_seasons(edges, require_node=False) is True


class TestSortRelationEdges:
    """Tests for relation ordering."""

    def test_group_then_id_order(self) -> None:
        """Test edges are ordered by relation group, then by ID."""
        edges = [
            _edge(RelationType.ALTERNATIVE, _show(5)),
            _edge(RelationType.SEQUEL, _show(30)),
            _edge(RelationType.OTHER, _show(1)),
            _edge(RelationType.SIDE_STORY, _show(4)),
            _edge(RelationType.SEQUEL, _show(20)),
            _edge(RelationType.PARENT, _show(50)),
            _edge(RelationType.PREQUEL, _show(40)),
        ]
        ordered = sort_relation_edges(edges)
        assert [e.node.id for e in ordered if e.node] == [40, 50, 20, 30, 4, 5]

    def test_relation_from_anilist(self) -> None:
        """Test unknown AniList relation types collapse to OTHER."""
        assert RelationType.from_anilist("ADAPTATION") is RelationType.OTHER
        assert RelationType.from_anilist(None) is RelationType.OTHER
        assert RelationType.from_anilist("SEQUEL") is RelationType.SEQUEL


class TestBuildSeasons:
    """Tests for season list construction."""

    def test_no_relations_gives_single_season(self) -> None:
        """Test the show alone becomes season 1."""
        show = _show(21, "One Piece", genres=["Action"], status=ShowStatus.ONGOING)
        seasons = build_seasons(show)

        assert len(seasons) == 1
        assert seasons[0].show_id == 21
        assert seasons[0].season_number == 1
        assert seasons[0].title == "One Piece"
        assert seasons[0].url == "21|season:1"
        assert seasons[0].relation_type is None

    def test_related_seasons_numbered_in_order(self) -> None:
        """Test related shows follow the source in sorted order."""
        show = _show(
            100,
            "Main",
            genres=["Drama"],
            relations=[
                _edge(RelationType.SEQUEL, _show(120, "Part 2", status=ShowStatus.COMPLETED)),
                _edge(RelationType.PREQUEL, _show(90, "Zero")),
            ],
        )
        seasons = build_seasons(show)

        assert [(s.show_id, s.season_number) for s in seasons] == [(100, 1), (90, 2), (120, 3)]
        assert seasons[1].description == "Related as: PREQUEL"
        assert seasons[2].description == "Related as: SEQUEL"
        assert seasons[2].genres == ["Drama"]
        assert seasons[2].status is ShowStatus.COMPLETED
        assert seasons[2].url == "120|season:3"

    def test_duplicates_and_self_skipped(self) -> None:
        """Test a show appears at most once, and the source never repeats."""
        show = _show(
            100,
            "Main",
            relations=[
                _edge(RelationType.SEQUEL, _show(120, "Part 2")),
                _edge(RelationType.ALTERNATIVE, _show(120, "Part 2")),
                _edge(RelationType.SIDE_STORY, _show(100, "Main")),
            ],
        )
        seasons = build_seasons(show)
        assert [s.show_id for s in seasons] == [100, 120]

    def test_blank_titles_do_not_consume_numbers(self) -> None:
        """Test untitled related shows are skipped without leaving a gap."""
        show = _show(
            100,
            "Main",
            relations=[
                _edge(RelationType.PREQUEL, _show(90, "  ")),
                _edge(RelationType.SEQUEL, _show(120, "Part 2")),
            ],
        )
        seasons = build_seasons(show)
        assert [(s.show_id, s.season_number) for s in seasons] == [(100, 1), (120, 2)]

    def test_english_title_preferred(self) -> None:
        """Test related seasons use the English title when present."""
        related = ShowRecord(id=120, title_romaji="Zoku", title_english="Sequel")
        show = _show(100, "Main", relations=[_edge(RelationType.SEQUEL, related)])
        assert build_seasons(show)[1].title == "Sequel"


class TestSeasonResolver:
    """Tests for SeasonResolver."""

    def test_resolve_seasons(self) -> None:
        """Test seasons are built from the fetched show."""
        anilist = MagicMock()
        anilist.get_show.return_value = _show(
            100, "Main", relations=[_edge(RelationType.SEQUEL, _show(120, "Part 2"))]
        )
        seasons = SeasonResolver(anilist).resolve_seasons(100)

        anilist.get_show.assert_called_once_with(100)
        assert len(seasons) == 2

    def test_api_error_gives_empty_list(self) -> None:
        """Test an AniList failure yields no seasons."""
        anilist = MagicMock()
        anilist.get_show.side_effect = AniListError("AniList API error: Not Found.")
        assert SeasonResolver(anilist).resolve_seasons(100) == []

    def test_network_error_gives_empty_list(self) -> None:
        """Test a transport failure yields no seasons."""
        anilist = MagicMock()
        anilist.get_show.side_effect = httpx.ConnectError("boom")
        assert SeasonResolver(anilist).resolve_seasons(100) == []
