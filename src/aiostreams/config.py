"""Configuration management for the AIOStreams source.

These are the user preferences of the plugin: the AIOStreams manifest URL,
seasons mode, ID priority, filler marking, the TVDB API key and the
stream display toggles.
"""

from __future__ import annotations

import configparser
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "aiostreams.ini"

# Display label -> value, in the order shown to the user
ID_PRIORITY_CHOICES: dict[str, str] = {
    "Kitsu → IMDB → MAL → AniList": "kitsu,imdb,mal,anilist",
    "MAL → Kitsu → IMDB → AniList": "mal,kitsu,imdb,anilist",
    "Kitsu → MAL → IMDB → AniList": "kitsu,mal,imdb,anilist",
    "MAL → IMDB → Kitsu → AniList": "mal,imdb,kitsu,anilist",
    "IMDB → MAL → Kitsu → AniList": "imdb,mal,kitsu,anilist",
    "IMDB → Kitsu → MAL → AniList": "imdb,kitsu,mal,anilist",
    "IMDB → AniList → MAL → Kitsu": "imdb,anilist,mal,kitsu",
    "AniList → Kitsu → MAL → IMDB": "anilist,kitsu,mal,imdb",
    "AniList → MAL → Kitsu → IMDB": "anilist,mal,kitsu,imdb",
}
DEFAULT_ID_PRIORITY = "kitsu,imdb,mal,anilist"


class StreamsConfig(BaseModel):
    """AIOStreams aggregator configuration."""

    manifest_url: str | None = None


class OptionsConfig(BaseModel):
    """Plugin preferences."""

    use_seasons: bool = True
    id_priority: str = DEFAULT_ID_PRIORITY
    mark_fillers: bool = False
    use_anidb_titles: bool = False
    show_p2p: bool = False
    seadex_highlight: bool = True
    seadex_sort: bool = True

    @field_validator("id_priority", mode="before")
    @classmethod
    def _check_id_priority(cls, value: Any) -> str:
        if not isinstance(value, str):
            return DEFAULT_ID_PRIORITY
        normalized = ",".join(part.strip().lower() for part in value.split(",") if part.strip())
        if normalized not in ID_PRIORITY_CHOICES.values():
            logger.warning("Unsupported id_priority %r, using %s", value, DEFAULT_ID_PRIORITY)
            return DEFAULT_ID_PRIORITY
        return normalized


class TVDBConfig(BaseModel):
    """TVDB API configuration (optional, enables rich episode metadata)."""

    api_key: str | None = None


class CacheConfig(BaseModel):
    """In-memory cache configuration."""

    enabled: bool = True
    max_entries: int = Field(default=512, ge=1)
    ttl_hours: float = Field(default=24, gt=0)


class AppConfig(BaseModel):
    """Application configuration."""

    aiostreams: StreamsConfig = Field(default_factory=StreamsConfig)
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    tvdb: TVDBConfig = Field(default_factory=TVDBConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# Global config instance
_config: AppConfig | None = None
_config_path: Path | None = None  # Track where config was loaded from


def get_config_paths() -> list[Path]:
    """Get list of config file paths to search, in priority order.

    Search order:
    1. Current working directory
    2. User home directory (~/.aiostreams/)
    3. YAML files in the same two places

    Returns:
        List of paths to check for config files.
    """
    cwd = Path.cwd()
    home_dir = Path.home() / ".aiostreams"

    return [
        cwd / CONFIG_FILENAME,
        home_dir / CONFIG_FILENAME,
        cwd / "aiostreams.yaml",
        cwd / "aiostreams.yml",
        home_dir / "config.yaml",
        home_dir / "config.yml",
    ]


def find_config_file() -> Path | None:
    """Find the first existing config file."""
    for path in get_config_paths():
        if path.exists():
            return path
    return None


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports ${VAR} and $VAR syntax.

    Args:
        value: Config value (string, dict, list, or other).

    Returns:
        Value with environment variables expanded.
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or $VAR
        pattern = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, "")

        return pattern.sub(replace, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def _parse_bool(value: str) -> bool:
    """Parse a boolean value from a string (true/false/yes/no/1/0/on/off)."""
    return value.strip().lower() in ("true", "yes", "1", "on")


_BOOL_OPTIONS = (
    "use_seasons",
    "mark_fillers",
    "use_anidb_titles",
    "show_p2p",
    "seadex_highlight",
    "seadex_sort",
)


def _load_ini_config(path: Path) -> dict[str, Any]:
    """Load configuration from INI file.

    Args:
        path: Path to INI config file.

    Returns:
        Dictionary structure matching AppConfig schema.
    """
    parser = configparser.ConfigParser()
    parser.read(path, encoding="utf-8")

    config: dict[str, Any] = {}

    if parser.has_section("aiostreams"):
        manifest_url = parser.get("aiostreams", "manifest_url", fallback="").strip()
        if manifest_url:
            config["aiostreams"] = {"manifest_url": manifest_url}

    if parser.has_section("options"):
        options: dict[str, Any] = {}
        for key in _BOOL_OPTIONS:
            if parser.has_option("options", key):
                options[key] = _parse_bool(parser.get("options", key))
        if parser.has_option("options", "id_priority"):
            options["id_priority"] = parser.get("options", "id_priority")
        if options:
            config["options"] = options

    if parser.has_section("tvdb"):
        api_key = parser.get("tvdb", "api_key", fallback="").strip()
        if api_key:
            config["tvdb"] = {"api_key": api_key}

    if parser.has_section("cache"):
        cache: dict[str, Any] = {}
        if parser.has_option("cache", "enabled"):
            cache["enabled"] = _parse_bool(parser.get("cache", "enabled"))
        for key, convert in (("max_entries", int), ("ttl_hours", float)):
            if parser.has_option("cache", key):
                try:
                    cache[key] = convert(parser.get("cache", key))
                except ValueError:
                    pass  # Keep default
        if cache:
            config["cache"] = cache

    return config


def _load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file.

    Supports both INI (.ini/.cfg) and YAML (.yaml/.yml) formats.
    Environment variables are expanded in all values using ${VAR} syntax.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Loaded configuration with environment variables expanded.
    """
    global _config, _config_path

    if path is None:
        path = find_config_file()

    if path is None or not path.exists():
        # No config file, return defaults
        _config = AppConfig()
        _config_path = None
        return _config

    if path.suffix in (".ini", ".cfg"):
        raw_config = _load_ini_config(path)
    else:
        raw_config = _load_yaml_config(path)

    expanded_config = _expand_env_vars(raw_config)

    _config = AppConfig.model_validate(expanded_config)
    _config_path = path
    logger.debug("Loaded configuration from %s", path)
    return _config


def get_config_path() -> Path | None:
    """Get the path to the currently loaded config file."""
    return _config_path


def get_config() -> AppConfig:
    """Get the current configuration, loading it from file if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the cached configuration.

    Useful for testing or when config file changes.
    """
    global _config, _config_path
    _config = None
    _config_path = None


def get_config_dir() -> Path:
    """Get the user config directory, creating it if needed."""
    config_dir = Path.home() / ".aiostreams"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def save_default_config(
    path: Path | None = None,
    manifest_url: str = "",
    tvdb_api_key: str = "",
) -> Path:
    """Save a default INI config file.

    Args:
        path: Where to save. Defaults to ./aiostreams.ini.
        manifest_url: AIOStreams manifest URL (optional, can use env var).
        tvdb_api_key: TVDB API key (optional, can use env var).

    Returns:
        Path to saved config file.
    """
    if path is None:
        path = Path.cwd() / CONFIG_FILENAME

    manifest_value = manifest_url or "${AIOSTREAMS_MANIFEST_URL}"
    tvdb_key_value = tvdb_api_key or "${TVDB_API_KEY}"
    priority_lines = "\n".join(
        f"#   {value:<24} {label}" for label, value in ID_PRIORITY_CHOICES.items()
    )

    default_config = f"""\
# AIOStreams source configuration
# You can use environment variables with ${{VAR}} syntax

[aiostreams]
# Manifest URL from your AIOStreams instance, of the form
# https://host/stremio/<uuid>/<encrypted-blob>/manifest.json
manifest_url = {manifest_value}

[options]
# Group related anime (sequels, prequels, etc.) as seasons
use_seasons = true
# Which ID type to query streams with first. One of:
{priority_lines}
id_priority = {DEFAULT_ID_PRIORITY}
# Mark filler episodes using animefillerlist.com
mark_fillers = false
# Fetch extra episode titles from AniDB (slow, rate limited)
use_anidb_titles = false
# Show P2P/torrent streams (disable for debrid only)
show_p2p = false
# Highlight SeaDex best releases
seadex_highlight = true
# Move SeaDex best releases to the top
seadex_sort = true

[tvdb]
# TVDB API key for richer episode metadata - https://thetvdb.com/api-information
api_key = {tvdb_key_value}

[cache]
enabled = true
max_entries = 512
# Longest time any response is kept, in hours
ttl_hours = 24
"""

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(default_config)

    return path

