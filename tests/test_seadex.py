"""Tests for the SeaDex client."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from aiostreams.cache import MemoryCache
from aiostreams.seadex import SeaDexClient, SeaDexError, parse_best_hashes

BEST = "A" * 40
ALT = "b" * 40


def _records(*torrents: dict[str, Any]) -> dict[str, Any]:
    return {"page": 1, "items": [{"alID": 21, "expand": {"trs": list(torrents)}}]}


def _client(
    json_data: Any,
    status_code: int = 200,
    **kwargs: Any,
) -> tuple[SeaDexClient, MagicMock]:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.headers = {}
    response.text = ""
    http = MagicMock()
    http.get.return_value = response
    return SeaDexClient(http_client=http, **kwargs), http


class TestParseBestHashes:
    """Tests for hash collection."""

    def test_best_only(self) -> None:
        """Test only best hashes are returned when any exist."""
        data = _records({"infoHash": BEST, "isBest": True}, {"infoHash": ALT, "isBest": False})
        assert parse_best_hashes(data) == {BEST.lower()}

    def test_fallback(self) -> None:
        """Test all valid hashes are returned when none is flagged best."""
        data = _records({"infoHash": ALT, "isBest": False}, {"infoHash": "<redacted>"}, {})
        assert parse_best_hashes(data) == {ALT}

    def test_no_items(self) -> None:
        """Test an empty result gives an empty set."""
        assert parse_best_hashes({"items": []}) == set()
        assert parse_best_hashes({"items": [{"expand": None}]}) == set()


class TestSeaDexClient:
    """Tests for SeaDex requests."""

    def test_request(self) -> None:
        """Test the records query filters by AniList ID."""
        client, http = _client(_records({"infoHash": BEST, "isBest": True}))

        assert client.get_best_info_hashes(21) == {BEST.lower()}
        args, kwargs = http.get.call_args
        assert args[0] == "/api/collections/entries/records"
        assert kwargs["params"]["filter"] == "alID=21"
        assert kwargs["params"]["expand"] == "trs"

    def test_error_raises(self) -> None:
        """Test a failing request raises SeaDexError."""
        client, _ = _client({"message": "boom"}, status_code=500)
        with pytest.raises(SeaDexError, match="SeaDex API error \\(500\\): boom"):
            client.get_best_info_hashes(21)

    def test_cached(self) -> None:
        """Test the hash set survives the cache round trip."""
        client, http = _client(_records({"infoHash": BEST, "isBest": True}), cache=MemoryCache())

        client.get_best_info_hashes(21)
        assert client.get_best_info_hashes(21) == {BEST.lower()}
        assert http.get.call_count == 1
