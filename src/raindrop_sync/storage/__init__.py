"""Bookmark persistence backends.

The backend is chosen by configuration (``storage.backend``): ``duckdb`` keeps
the first version of every bookmark, ``files`` rewrites a bookmark whenever
its ``lastUpdate`` changes.
"""

from pathlib import Path

from ..config import StorageConfig
from .base import BatchResult, BookmarkStore, SaveOutcome
from .duckdb_store import DuckDBBookmarkStore
from .file_store import FileBookmarkStore


def create_store(config: StorageConfig, account_dir: Path) -> BookmarkStore:
    """Build the configured bookmark store rooted at ``account_dir``.

    Args:
        config: Storage settings
        account_dir: Directory owned by a single account

    Returns:
        BookmarkStore: An uninitialized store
    """
    if config.backend == "files":
        return FileBookmarkStore(account_dir / config.files_dirname)
    return DuckDBBookmarkStore(
        account_dir / config.database_filename, key_mode=config.key_mode
    )


__all__ = [
    "BatchResult",
    "BookmarkStore",
    "DuckDBBookmarkStore",
    "FileBookmarkStore",
    "SaveOutcome",
    "create_store",
]
