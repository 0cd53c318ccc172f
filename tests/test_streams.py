"""Tests for stream resolution."""

import base64
from unittest.mock import MagicMock

import httpx
import pytest

from aiostreams.api import ConfigurationError
from aiostreams.config import OptionsConfig
from aiostreams.identity import EpisodeIdentifier, IdType, LookupKey, NoUsableIdentifierError
from aiostreams.seadex import SeaDexError
from aiostreams.streams import (
    DEFAULT_TRACKERS,
    ManifestConfig,
    NoStreamsFoundError,
    StreamAuthError,
    StreamClient,
    StreamError,
    StreamResolver,
    build_magnet,
    rank_streams,
)

MANIFEST_URL = "https://aio.example.com/stremio/abc-uuid/ZW5jcnlwdGVk/manifest.json"
HASH_A = "a" * 40
HASH_B = "b" * 40
HASH_C = "c" * 40


def _response(status_code: int = 200, json_data: object = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = ""
    response.headers = {}
    return response


def _stream_client(json_data: object, status_code: int = 200) -> tuple[StreamClient, MagicMock]:
    http = MagicMock()
    http.get.return_value = _response(status_code, json_data)
    manifest = ManifestConfig.from_manifest_url(MANIFEST_URL)
    return StreamClient(manifest, http_client=http), http


class TestManifestConfig:
    """Tests for manifest URL parsing."""

    def test_parse(self) -> None:
        """Test host, UUID and blob are extracted."""
        manifest = ManifestConfig.from_manifest_url(MANIFEST_URL)
        assert manifest.base_url == "https://aio.example.com"
        assert manifest.uuid == "abc-uuid"
        assert manifest.encrypted_blob == "ZW5jcnlwdGVk"

    def test_missing_url(self) -> None:
        """Test a blank URL asks for configuration."""
        for url in (None, "", "   "):
            with pytest.raises(ConfigurationError, match="Please configure AIOStreams manifest URL"):
                ManifestConfig.from_manifest_url(url)

    def test_invalid_url(self) -> None:
        """Test a URL of the wrong shape is rejected."""
        with pytest.raises(ConfigurationError, match="Invalid manifest URL format"):
            ManifestConfig.from_manifest_url("https://aio.example.com/manifest.json")

    def test_authorization_header(self) -> None:
        """Test the Basic header encodes uuid:blob."""
        manifest = ManifestConfig.from_manifest_url(MANIFEST_URL)
        expected = base64.b64encode(b"abc-uuid:ZW5jcnlwdGVk").decode()
        assert manifest.authorization_header == f"Basic {expected}"


class TestBuildMagnet:
    """Tests for magnet construction."""

    def test_magnet_has_all_trackers(self) -> None:
        """Test the magnet carries the hash and every default tracker."""
        magnet = build_magnet(HASH_A)
        assert magnet.startswith(f"magnet:?xt=urn:btih:{HASH_A}&dn={HASH_A}")
        assert magnet.count("&tr=") == len(DEFAULT_TRACKERS) == 4
        for tracker in DEFAULT_TRACKERS:
            assert f"&tr={tracker}" in magnet


class TestRankStreams:
    """Tests for candidate filtering and ordering."""

    def test_invalid_hashes_discarded(self) -> None:
        """Test missing, empty and redacted hashes are dropped."""
        results = [
            {"name": "none", "url": "https://x/1"},
            {"infoHash": "", "url": "https://x/2"},
            {"infoHash": "<redacted>", "url": "https://x/3"},
            {"infoHash": HASH_A, "url": "https://x/4"},
        ]
        candidates = rank_streams(results)
        assert [c.info_hash for c in candidates] == [HASH_A]

    def test_magnets_hidden_without_p2p(self) -> None:
        """Test magnet results are dropped unless P2P is enabled."""
        results = [
            {"infoHash": HASH_A, "url": f"magnet:?xt=urn:btih:{HASH_A}"},
            {"infoHash": HASH_B, "url": "https://x/b"},
        ]
        assert [c.info_hash for c in rank_streams(results)] == [HASH_B]

        with_p2p = rank_streams(results, show_p2p=True)
        assert [c.info_hash for c in with_p2p] == [HASH_A, HASH_B]
        assert with_p2p[0].is_p2p is True
        assert with_p2p[0].requires_auth is False

    def test_missing_url_gets_magnet(self) -> None:
        """Test a result without a URL is given a magnet."""
        candidates = rank_streams([{"infoHash": HASH_A.upper(), "name": "Torrent"}])
        assert len(candidates) == 1
        assert candidates[0].info_hash == HASH_A
        assert candidates[0].url == build_magnet(HASH_A)
        assert candidates[0].is_p2p is True

    def test_direct_link_requires_auth(self) -> None:
        """Test direct links are marked for authenticated playback."""
        candidate = rank_streams([{"infoHash": HASH_A, "url": "https://x/a"}])[0]
        assert candidate.requires_auth is True
        assert candidate.is_p2p is False
        assert candidate.name == "Stream"

    def test_best_first_stable(self) -> None:
        """Test best candidates move up while keeping provider order."""
        results = [
            {"infoHash": HASH_A, "url": "https://x/a", "name": "A"},
            {"infoHash": HASH_B, "url": "https://x/b", "name": "B"},
            {"infoHash": HASH_C, "url": "https://x/c", "name": "C"},
            {"infoHash": "d" * 40, "url": "https://x/d", "name": "D"},
        ]
        best = {HASH_C, "d" * 40}

        sorted_names = [c.name for c in rank_streams(results, best_hashes=best)]
        assert sorted_names == ["C", "D", "A", "B"]

        unsorted = rank_streams(results, best_hashes=best, sort_best=False)
        assert [c.name for c in unsorted] == ["A", "B", "C", "D"]
        assert unsorted[2].display_name == "⭐ C"
        assert unsorted[0].display_name == "A"


class TestStreamClient:
    """Tests for the search API client."""

    def test_search_request(self) -> None:
        """Test the search call carries the lookup key and credentials."""
        client, http = _stream_client({"data": {"results": [{"infoHash": HASH_A}]}})
        lookup = LookupKey("kitsu:12:5", "series", IdType.KITSU)

        results = client.search(lookup)

        assert results == [{"infoHash": HASH_A}]
        args, kwargs = http.get.call_args
        assert args[0] == "/api/v1/search"
        assert kwargs["params"] == {
            "type": "series",
            "id": "kitsu:12:5",
            "format": "true",
            "requiredFields": "infoHash",
        }
        assert isinstance(kwargs["auth"], httpx.BasicAuth)
        assert client.BASE_URL == "https://aio.example.com"

    def test_no_data(self) -> None:
        """Test a response without data raises."""
        client, _ = _stream_client({"success": False})
        with pytest.raises(StreamError, match="API returned no data"):
            client.search(LookupKey("tt1:1:1", "series", IdType.IMDB))

    def test_no_results(self) -> None:
        """Test an empty result list raises NoStreamsFoundError."""
        client, _ = _stream_client({"data": {"results": []}})
        with pytest.raises(NoStreamsFoundError, match="No streams found"):
            client.search(LookupKey("tt1:1:1", "series", IdType.IMDB))

    def test_unauthorized(self) -> None:
        """Test 401 maps to StreamAuthError."""
        client, _ = _stream_client({"error": "bad credentials"}, status_code=401)
        with pytest.raises(StreamAuthError):
            client.search(LookupKey("tt1:1:1", "series", IdType.IMDB))


class TestStreamResolver:
    """Tests for the end-to-end stream resolver."""

    IDENTIFIER = "imdb:tt1|season:1|kitsu:12|anilist:21|ep:5|epInSeason:5"

    def _resolver(
        self,
        results: list[dict[str, object]],
        seadex: MagicMock | None = None,
        **options: object,
    ) -> tuple[StreamResolver, MagicMock]:
        client, http = _stream_client({"data": {"results": results}})
        resolver = StreamResolver(
            OptionsConfig(**options),
            MANIFEST_URL,
            seadex=seadex,
            stream_client=client,
        )
        return resolver, http

    def test_list_streams(self) -> None:
        """Test identifier parsing, lookup and ranking together."""
        seadex = MagicMock()
        seadex.get_best_info_hashes.return_value = {HASH_B}
        resolver, http = self._resolver(
            [
                {"infoHash": HASH_A, "url": "https://x/a", "name": "A"},
                {"infoHash": HASH_B, "url": "https://x/b", "name": "B"},
            ],
            seadex=seadex,
        )

        candidates = resolver.list_streams(self.IDENTIFIER)

        assert http.get.call_args.kwargs["params"]["id"] == "kitsu:12:5"
        seadex.get_best_info_hashes.assert_called_once_with(21)
        assert [c.name for c in candidates] == ["B", "A"]
        assert candidates[0].is_best is True

    def test_seadex_disabled(self) -> None:
        """Test SeaDex is not consulted when highlighting is off."""
        seadex = MagicMock()
        resolver, _ = self._resolver(
            [{"infoHash": HASH_A, "url": "https://x/a"}], seadex=seadex, seadex_highlight=False
        )
        resolver.list_streams(self.IDENTIFIER)
        seadex.get_best_info_hashes.assert_not_called()

    def test_seadex_failure_ignored(self) -> None:
        """Test a SeaDex error only loses the highlighting."""
        seadex = MagicMock()
        seadex.get_best_info_hashes.side_effect = SeaDexError("SeaDex API error (500)")
        resolver, _ = self._resolver([{"infoHash": HASH_A, "url": "https://x/a"}], seadex=seadex)

        candidates = resolver.list_streams(self.IDENTIFIER)

        assert len(candidates) == 1
        assert candidates[0].is_best is False

    def test_manifest_checked_first(self) -> None:
        """Test a missing manifest URL fails before any lookup."""
        resolver = StreamResolver(OptionsConfig(), None)
        with pytest.raises(ConfigurationError, match="Please configure AIOStreams manifest URL"):
            resolver.list_streams(EpisodeIdentifier({"ep": "1"}))

    def test_no_usable_id(self) -> None:
        """Test an identifier without IDs is rejected."""
        resolver, http = self._resolver([])
        with pytest.raises(NoUsableIdentifierError):
            resolver.list_streams("ep:1|epInSeason:1")
        http.get.assert_not_called()

    def test_to_hoster_direct(self) -> None:
        """Test direct links carry the Basic auth header."""
        resolver, _ = self._resolver([{"infoHash": HASH_A, "url": "https://x/a", "name": "A"}])
        candidate = resolver.list_streams(self.IDENTIFIER)[0]

        hoster = resolver.to_hoster(candidate)

        assert hoster.name == "A"
        assert hoster.url == "https://x/a"
        assert len(hoster.videos) == 1
        video = hoster.videos[0]
        assert video.url == "https://x/a"
        assert video.headers == {
            "Authorization": ManifestConfig.from_manifest_url(MANIFEST_URL).authorization_header
        }

    def test_to_hoster_magnet(self) -> None:
        """Test magnets are handed over without headers."""
        resolver, _ = self._resolver([{"infoHash": HASH_A, "name": "T"}], show_p2p=True)
        candidate = resolver.list_streams(self.IDENTIFIER)[0]

        video = resolver.to_hoster(candidate).videos[0]

        assert video.url.startswith("magnet:?xt=urn:btih:")
        assert video.headers is None
