"""Tests for the ani.zip client."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from aiostreams.anizip import (
    AniZipClient,
    AniZipError,
    AniZipNotFoundError,
    AniZipRateLimitError,
    AniZipResponse,
)
from aiostreams.cache import MemoryCache

PAYLOAD = {
    "titles": {"en": "Cowboy Bebop", "x-jat": "Cowboy Bebop", "ja": "カウボーイビバップ"},
    "episodes": {
        "1": {
            "episode": "1",
            "episodeNumber": 1,
            "absoluteEpisodeNumber": 1,
            "seasonNumber": 1,
            "title": {"en": "Asteroid Blues", "x-jat": "Asteroid Blues"},
            "airDate": "1998-10-24",
            "runtime": 24,
            "overview": "Spike and Jet pursue a bounty.",
            "image": "https://img/1.jpg",
            "rating": "8.1",
            "anidbEid": 1,
            "tvdbId": 76885,
        },
        "S1": {"episode": "S1", "title": {"en": "Session XX"}, "airdate": "1999-06-26"},
    },
    "episodeCount": 26,
    "specialCount": 1,
    "mappings": {
        "animeplanet_id": "cowboy-bebop",
        "kitsu_id": 1,
        "mal_id": 1,
        "type": "TV",
        "anilist_id": 1,
        "imdb_id": "tt0213338",
        "themoviedb_id": 30991,
        "anidb_id": 23,
        "thetvdb_id": 76885,
    },
}


def _client(
    json_data: Any,
    status_code: int = 200,
    **kwargs: Any,
) -> tuple[AniZipClient, MagicMock]:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.headers = {}
    http = MagicMock()
    http.get.return_value = response
    return AniZipClient(http_client=http, **kwargs), http


class TestAniZipModels:
    """Tests for ani.zip response models."""

    def test_parse_response(self) -> None:
        """Test the mapping and episode map are parsed."""
        data = AniZipResponse.model_validate(PAYLOAD)

        assert data.mapping_type == "TV"
        assert data.mappings is not None
        assert data.mappings.imdb_id == "tt0213338"
        assert data.mappings.thetvdb_id == 76885
        assert data.episode_count == 26

        first = data.episode("1")
        assert first is not None
        assert first.episode_number == 1
        assert first.aired == "1998-10-24"
        assert first.description == "Spike and Jet pursue a bounty."
        assert data.episode("2") is None

    def test_airdate_spellings(self) -> None:
        """Test both air date spellings are accepted."""
        data = AniZipResponse.model_validate(PAYLOAD)
        special = data.episode("S1")
        assert special is not None
        assert special.aired == "1999-06-26"

    def test_mapping_type_missing(self) -> None:
        """Test a response without mappings has no type."""
        assert AniZipResponse.model_validate({}).mapping_type == ""


class TestAniZipClient:
    """Tests for ani.zip requests."""

    def test_get_mappings(self) -> None:
        """Test the request carries the AniList ID."""
        client, http = _client(PAYLOAD)

        data = client.get_mappings(1)

        assert data.mappings is not None
        assert data.mappings.anilist_id == 1
        http.get.assert_called_once_with("/mappings", params={"anilist_id": 1})

    def test_error_status(self) -> None:
        """Test a server error raises with the code and message."""
        client, _ = _client({"message": "down"}, status_code=500)
        with pytest.raises(AniZipError, match="ani.zip API error \\(500\\): down"):
            client.get_mappings(1)

    def test_not_found(self) -> None:
        """Test 404 raises the not-found error."""
        client, _ = _client({}, status_code=404)
        with pytest.raises(AniZipNotFoundError):
            client.get_mappings(999999)

    def test_rate_limited(self) -> None:
        """Test 429 raises the rate limit error with Retry-After."""
        client, http = _client({}, status_code=429)
        http.get.return_value.headers = {"Retry-After": "30"}
        with pytest.raises(AniZipRateLimitError) as exc_info:
            client.get_mappings(1)
        assert exc_info.value.retry_after == 30

    def test_cached_round_trip(self) -> None:
        """Test a cached response parses back with the same fields."""
        client, http = _client(PAYLOAD, cache=MemoryCache())

        first = client.get_mappings(1)
        second = client.get_mappings(1)

        assert http.get.call_count == 1
        assert second == first
        episode = second.episode("1")
        assert episode is not None
        assert episode.season_number == 1
        assert episode.aired == "1998-10-24"
