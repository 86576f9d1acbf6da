"""Raindrop.io REST API client."""

from .client import (
    DEFAULT_API_BASE_URL,
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    FetchResult,
    RaindropClient,
)

__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_MAX_PAGES",
    "DEFAULT_PAGE_SIZE",
    "FetchResult",
    "RaindropClient",
]
