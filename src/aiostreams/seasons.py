"""Season resolution from AniList relation graphs.

A show with sequels, prequels, side stories, a parent or alternative
versions can be presented as several "seasons": the show itself is
always season 1 and each related show gets the next number.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

import httpx

from aiostreams.api import APIError
from aiostreams.models import RelationEdge, SeasonEntry, ShowRecord

if TYPE_CHECKING:
    from aiostreams.anilist import AniListClient

logger = logging.getLogger(__name__)


def show_id_from_url(url: str) -> int:
    """Extract the AniList ID from a show URL ("21" or "21|season:2").

    Raises:
        ValueError: If the URL does not start with a numeric ID.
    """
    return int(url.split("|", 1)[0].strip())


def has_related_seasons(edges: Iterable[RelationEdge], require_node: bool = True) -> bool:
    """Whether any edge qualifies the show for seasons mode.

    List pages only fetch the relation type, so they pass
    ``require_node=False``; the details view also needs the target.
    """
    return any(
        edge.relation_type.is_season and (edge.node is not None or not require_node)
        for edge in edges
    )


def _edge_sort_key(edge: RelationEdge) -> tuple[int, float]:
    node_id = edge.node.id if edge.node is not None else math.inf
    return edge.relation_type.rank, node_id


def sort_relation_edges(edges: Iterable[RelationEdge]) -> list[RelationEdge]:
    """Filter to season relations and order them.

    Prequel/parent first, then sequel, side story and alternative; within
    a group lower AniList IDs (older entries) come first.
    """
    return sorted((e for e in edges if e.relation_type.is_season), key=_edge_sort_key)


def build_seasons(show: ShowRecord) -> list[SeasonEntry]:
    """Build the season list of a show with its relation graph loaded."""
    seasons = [
        SeasonEntry(
            show_id=show.id,
            season_number=1,
            title=show.title,
            cover_url=show.cover_url,
            description=show.description,
            genres=show.genres,
            status=show.status,
        )
    ]

    seen_ids = {show.id}
    season_number = 2
    for edge in sort_relation_edges(show.relations):
        node = edge.node
        if node is None or node.id in seen_ids:
            continue
        seen_ids.add(node.id)

        title = node.title
        if not title.strip():
            logger.debug("Skipping related show %s without a title", node.id)
            continue

        seasons.append(
            SeasonEntry(
                show_id=node.id,
                season_number=season_number,
                title=title,
                cover_url=node.cover_url,
                description=f"Related as: {edge.relation_type.value}",
                genres=show.genres,
                status=node.status,
                relation_type=edge.relation_type,
            )
        )
        season_number += 1

    return seasons


class SeasonResolver:
    """Resolves the seasons of a show through AniList."""

    def __init__(self, anilist: AniListClient) -> None:
        self._anilist = anilist

    def resolve_seasons(self, show_id: int) -> list[SeasonEntry]:
        """Season list for a show, or an empty list if AniList fails."""
        try:
            show = self._anilist.get_show(show_id)
        except (APIError, httpx.HTTPError) as e:
            logger.warning("Could not resolve seasons for %s: %s", show_id, e)
            return []
        return build_seasons(show)
