"""Shared pytest fixtures for raindrop_sync tests.

This module provides common fixtures and test utilities used across the test
suite, including environment isolation and sample Raindrop payloads.
"""

import logging
import os
import time
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from raindrop_sync.config import clear_settings_cache
from raindrop_sync.models import Bookmark, RaindropCredentials, TokenSet


def make_raindrop(
    raindrop_id: int,
    last_update: str = "2023-01-01T00:00:00Z",
    title: str | None = None,
    link: str | None = None,
) -> dict[str, Any]:
    """Build a raw raindrop item shaped like the list endpoint's items.

    Args:
        raindrop_id: Value for ``_id``
        last_update: Value for ``lastUpdate``
        title: Title; defaults to ``Example {id}``
        link: URL; defaults to ``https://example{id}.com``

    Returns:
        dict: Raw API item
    """
    return {
        "_id": raindrop_id,
        "title": title if title is not None else f"Example {raindrop_id}",
        "link": link or f"https://example{raindrop_id}.com",
        "excerpt": "",
        "note": "",
        "type": "link",
        "user": {"$id": 1},
        "cover": "",
        "media": [],
        "tags": ["test"],
        "important": False,
        "removed": False,
        "created": "2023-01-01T00:00:00Z",
        "lastUpdate": last_update,
        "domain": f"example{raindrop_id}.com",
        "creatorRef": "test",
        "sort": 0,
        "collectionId": 1,
    }


def make_bookmark(raindrop_id: int, **kwargs: Any) -> Bookmark:
    """Build a validated Bookmark from :func:`make_raindrop` arguments."""
    return Bookmark.from_api(make_raindrop(raindrop_id, **kwargs))


def now_ms() -> int:
    return int(time.time() * 1000)


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Run every test in an empty working directory with a clean environment.

    This fixture:
    - Changes to a temporary directory so no .env file is picked up
    - Removes RAINDROP_* variables from the environment
    - Clears the settings cache before and after the test
    """
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.upper().startswith("RAINDROP_"):
            monkeypatch.delenv(key, raising=False)

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def credentials() -> RaindropCredentials:
    """Sample application credentials."""
    return RaindropCredentials(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:3000/callback",
    )


@pytest.fixture
def valid_tokens() -> TokenSet:
    """Tokens expiring in ten minutes (outside the refresh margin)."""
    return TokenSet(
        access_token="valid-token",
        refresh_token="refresh-token",
        expires_at=now_ms() + 10 * 60 * 1000,
    )


@pytest.fixture
def expired_tokens() -> TokenSet:
    """Tokens that expired one second ago."""
    return TokenSet(
        access_token="expired-token",
        refresh_token="refresh-token",
        expires_at=now_ms() - 1000,
    )


@pytest.fixture
def restore_root_logger() -> Generator[logging.Logger, None, None]:
    """Put the root logger's handlers and level back after a reconfiguration."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
