"""Shared API client utilities."""

from aiostreams.api.base import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
    ConfigurationError,
)
from aiostreams.api.helpers import cached_api_call, now_millis, parse_air_date_millis, parse_date

__all__ = [
    "APIError",
    "APIAuthError",
    "APINotFoundError",
    "APIRateLimitError",
    "BaseAPIClient",
    "ConfigurationError",
    "cached_api_call",
    "now_millis",
    "parse_air_date_millis",
    "parse_date",
]
