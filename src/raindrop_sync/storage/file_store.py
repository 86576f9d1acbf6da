"""Per-record JSON file bookmark store.

Each bookmark is written to ``{raindrop_id}.json`` holding the raw Raindrop
payload. Unlike the DuckDB store, records are rewritten when their
``lastUpdate`` changes.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..exceptions import StorageError
from ..models import Bookmark, StoredBookmark
from ..timestamps import latest_timestamp
from .base import BatchResult, BookmarkStore, SaveOutcome, UpdatePolicy

logger = logging.getLogger(__name__)


class FileBookmarkStore(BookmarkStore):
    """Overwrite-on-change bookmark store backed by a directory of JSON files."""

    update_policy: UpdatePolicy = "overwrite_on_change"

    def __init__(self, directory: Path | str):
        """Initialize the store.

        Args:
            directory: Directory holding one JSON file per bookmark
        """
        self.directory = Path(directory)

    def initialize(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create {self.directory}: {e}") from e

    def path_for(self, raindrop_id: int) -> Path:
        return self.directory / f"{raindrop_id}.json"

    def _read(self, path: Path) -> dict[str, Any]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {path.name}")
        return data

    def _iter_records(self) -> Iterable[dict[str, Any]]:
        if not self.directory.exists():
            return
        for path in self.directory.glob("*.json"):
            try:
                yield self._read(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable bookmark file {path.name}: {e}")

    def save_one(self, bookmark: Bookmark) -> SaveOutcome:
        """Write the bookmark unless an identical ``lastUpdate`` is on disk.

        Raises:
            StorageError: If the file cannot be written
        """
        path = self.path_for(bookmark.id)
        outcome = SaveOutcome.CREATED

        if path.exists():
            try:
                existing = self._read(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Overwriting unreadable bookmark file {path.name}: {e}")
                existing = {}
            if existing.get("lastUpdate") == bookmark.last_update:
                return SaveOutcome.SKIPPED
            outcome = SaveOutcome.UPDATED

        payload = bookmark.metadata or bookmark.model_dump(by_alias=True)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}") from e

        logger.debug(f"{outcome.value.capitalize()} {path.name}")
        return outcome

    def save_batch(self, bookmarks: Iterable[Bookmark]) -> BatchResult:
        """Write bookmarks one file at a time; failures are counted as skips."""
        result = BatchResult()
        for bookmark in bookmarks:
            try:
                result.record(self.save_one(bookmark))
            except StorageError as e:
                logger.error(f"❌ Failed to save bookmark {bookmark.id}: {e}")
                result.record_failure()
        return result

    def exists(self, key: int | str) -> bool:
        """Look up by Raindrop ID; a non-numeric key is looked up as a URL."""
        if isinstance(key, int) or str(key).isdigit():
            return self.path_for(int(key)).is_file()
        return any(record.get("link") == key for record in self._iter_records())

    def get_all(self) -> list[StoredBookmark]:
        stored = [
            StoredBookmark(
                raindrop_id=int(record["_id"]),
                url=str(record.get("link", "")),
                title=str(record.get("title") or ""),
                raindrop_metadata=record,
            )
            for record in self._iter_records()
            if "_id" in record
        ]
        return sorted(stored, key=lambda b: b.raindrop_id, reverse=True)

    def most_recent_update(self) -> str | None:
        return latest_timestamp(
            record.get("lastUpdate") for record in self._iter_records()
        )
