"""AIOStreams - anime source plugin backed by AniList metadata and AIOStreams streams."""

__version__ = "1.0.0"

__all__ = ["__version__"]
