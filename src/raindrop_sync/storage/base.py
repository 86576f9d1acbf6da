"""Common interface for bookmark stores.

Two update policies exist and are kept distinct:

- ``first_write_wins``: once an ID is stored its row is never touched again;
  the store is a snapshot of what was first seen (DuckDB backend).
- ``overwrite_on_change``: a stored record is rewritten when the incoming
  ``lastUpdate`` differs and skipped when it is identical (file backend).
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ..models import Bookmark, StoredBookmark

UpdatePolicy = Literal["first_write_wins", "overwrite_on_change"]


class SaveOutcome(Enum):
    """Result of writing a single bookmark."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"

    @property
    def saved(self) -> bool:
        return self is not SaveOutcome.SKIPPED


@dataclass
class BatchResult:
    """Counts for one ``save_batch`` call.

    ``skipped`` includes records that failed to write; ``failed`` and
    ``updated`` are breakdowns for reporting.
    """

    saved: int = 0
    skipped: int = 0
    updated: int = 0
    failed: int = 0

    def record(self, outcome: SaveOutcome) -> None:
        if outcome.saved:
            self.saved += 1
            if outcome is SaveOutcome.UPDATED:
                self.updated += 1
        else:
            self.skipped += 1

    def record_failure(self) -> None:
        self.skipped += 1
        self.failed += 1

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            saved=self.saved + other.saved,
            skipped=self.skipped + other.skipped,
            updated=self.updated + other.updated,
            failed=self.failed + other.failed,
        )


class BookmarkStore(ABC):
    """Idempotent persistence for fetched bookmarks."""

    update_policy: UpdatePolicy

    @abstractmethod
    def initialize(self) -> None:
        """Create the storage target, migrating an outdated one if needed."""

    @abstractmethod
    def save_one(self, bookmark: Bookmark) -> SaveOutcome:
        """Persist one bookmark according to the store's update policy.

        Raises:
            StorageError: If the write fails
        """

    @abstractmethod
    def save_batch(self, bookmarks: Iterable[Bookmark]) -> BatchResult:
        """Persist several bookmarks, isolating per-record failures."""

    @abstractmethod
    def exists(self, key: int | str) -> bool:
        """Return True if a bookmark with this key is stored."""

    @abstractmethod
    def get_all(self) -> list[StoredBookmark]:
        """Return every stored bookmark, highest ID first."""

    @abstractmethod
    def most_recent_update(self) -> str | None:
        """Return the latest stored ``lastUpdate``, or None when empty."""

    def count(self) -> int:
        return len(self.get_all())
