"""Tests for the AIOStreamsSource facade."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

from aiostreams.anizip import AniZipResponse
from aiostreams.config import AppConfig, OptionsConfig, StreamsConfig, TVDBConfig
from aiostreams.models import RelationEdge, RelationType, ShowRecord, StreamCandidate
from aiostreams.source import AIOStreamsSource

MANIFEST_URL = "https://aio.example.com/stremio/uuid/blob/manifest.json"


def _config(**options: object) -> AppConfig:
    return AppConfig(
        aiostreams=StreamsConfig(manifest_url=MANIFEST_URL),
        options=OptionsConfig(**options),
    )


class TestSourceWiring:
    """Tests for client construction from the config."""

    def test_optional_clients_off_by_default(self) -> None:
        """Test TVDB, AniDB and filler clients are only built when enabled."""
        with AIOStreamsSource(_config()) as source:
            assert source.tvdb is None
            assert source.anidb is None
            assert source.fillers is None

    def test_optional_clients_enabled(self) -> None:
        """Test optional clients follow their settings."""
        config = _config(mark_fillers=True, use_anidb_titles=True)
        config.tvdb = TVDBConfig(api_key="key")
        with AIOStreamsSource(config) as source:
            assert source.tvdb is not None
            assert source.anidb is not None
            assert source.fillers is not None

    def test_cache_from_config(self) -> None:
        """Test the shared cache is sized from the config."""
        config = _config()
        config.cache.max_entries = 7
        with AIOStreamsSource(config) as source:
            assert source.cache.max_entries == 7
            source.cache.set("a", "b", "c", {})
            assert source.clear_cache() == 1

    def test_cache_ttl_from_config(self) -> None:
        """Test ttl_hours bounds the AniList show cache."""
        config = _config()
        config.cache.ttl_hours = 1
        now = datetime(2024, 1, 1, tzinfo=UTC)
        with AIOStreamsSource(config) as source:
            source.cache._clock = lambda: now
            fetch = MagicMock(return_value=ShowRecord(id=1, title_romaji="One"))
            with patch.object(source.anilist, "_fetch_show", fetch):
                source.anilist.get_show(1)
                now += timedelta(hours=5)
                source.anilist.get_show(1)

        assert fetch.call_count == 2


class TestSourceOperations:
    """Tests for the source operations."""

    def test_uses_seasons(self) -> None:
        """Test seasons mode needs the option and a season relation."""
        show = ShowRecord(
            id=1,
            relations=[RelationEdge(relation_type=RelationType.SEQUEL, node=ShowRecord(id=2))],
        )
        list_show = ShowRecord(id=1, relations=[RelationEdge(relation_type=RelationType.SEQUEL)])

        with AIOStreamsSource(_config()) as source:
            assert source.uses_seasons(show) is True
            assert source.uses_seasons(list_show) is False
            assert source.uses_seasons(list_show, from_list=True) is True

        with AIOStreamsSource(_config(use_seasons=False)) as source:
            assert source.uses_seasons(show) is False

    def test_seasons_from_url(self) -> None:
        """Test a season URL resolves by its leading ID."""
        with AIOStreamsSource(_config()) as source:
            with patch.object(
                source.anilist, "get_show", return_value=ShowRecord(id=21, title_romaji="One Piece")
            ) as get_show:
                seasons = source.seasons("21|season:1")

        get_show.assert_called_once_with(21)
        assert [s.title for s in seasons] == ["One Piece"]

    def test_episodes_then_streams(self) -> None:
        """Test an episode URL from the listing resolves to hosters."""
        mappings = AniZipResponse.model_validate(
            {
                "episodes": {"1": {"airdate": "2000-01-01", "title": {"en": "First"}}},
                "mappings": {"type": "TV", "anilist_id": 21, "kitsu_id": 12},
            }
        )
        stream_client = MagicMock()
        stream_client.manifest.authorization_header = "Basic abc"
        stream_client.search.return_value = [
            {"infoHash": "a" * 40, "url": "https://x/a", "name": "1080p"}
        ]

        with AIOStreamsSource(_config(seadex_highlight=False)) as source:
            source.stream_resolver._client = stream_client
            with patch.object(source.anizip, "get_mappings", return_value=mappings):
                episodes = source.episodes("21")

            hosters = source.hosters(episodes[0])
            videos = source.videos(hosters[0])

        lookup = stream_client.search.call_args.args[0]
        assert lookup.id == "kitsu:12:1"
        assert episodes[0].url.startswith("kitsu:12|anilist:21|ep:1")
        assert hosters[0].name == "1080p"
        assert videos[0].headers == {"Authorization": "Basic abc"}

    def test_streams_accepts_string(self) -> None:
        """Test streams can be requested from an encoded identifier."""
        with AIOStreamsSource(_config()) as source:
            with patch.object(
                source.stream_resolver,
                "list_streams",
                return_value=[StreamCandidate(info_hash="a" * 40, url="https://x")],
            ) as list_streams:
                result = source.streams("anilist:21|ep:1")

        list_streams.assert_called_once_with("anilist:21|ep:1")
        assert len(result) == 1
