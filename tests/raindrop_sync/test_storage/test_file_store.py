"""Tests for the per-record JSON file store."""

import json
from pathlib import Path

import pytest
from conftest import make_bookmark

from raindrop_sync.storage import FileBookmarkStore, SaveOutcome


@pytest.fixture
def store(tmp_path: Path) -> FileBookmarkStore:
    store = FileBookmarkStore(tmp_path / "bookmarks")
    store.initialize()
    return store


class TestFileBookmarkStore:
    """Test cases for FileBookmarkStore."""

    @pytest.mark.unit
    def test_writes_raw_payload(self, store: FileBookmarkStore) -> None:
        assert store.save_one(make_bookmark(42)) is SaveOutcome.CREATED

        data = json.loads(store.path_for(42).read_text())
        assert data["_id"] == 42
        assert data["link"] == "https://example42.com"
        assert data["lastUpdate"] == "2023-01-01T00:00:00Z"

    @pytest.mark.unit
    def test_same_last_update_is_skipped(self, store: FileBookmarkStore) -> None:
        store.save_one(make_bookmark(1))

        assert store.save_one(make_bookmark(1)) is SaveOutcome.SKIPPED

    @pytest.mark.unit
    def test_changed_last_update_overwrites(self, store: FileBookmarkStore) -> None:
        store.save_one(make_bookmark(1, title="Old"))

        outcome = store.save_one(
            make_bookmark(1, title="New", last_update="2024-01-01T00:00:00Z")
        )

        assert outcome is SaveOutcome.UPDATED
        assert json.loads(store.path_for(1).read_text())["title"] == "New"

    @pytest.mark.unit
    def test_save_batch_counts(self, store: FileBookmarkStore) -> None:
        store.save_one(make_bookmark(1))

        result = store.save_batch(
            [
                make_bookmark(1),
                make_bookmark(2),
                make_bookmark(3, last_update="2023-01-01T00:00:00Z"),
            ]
        )

        assert result.saved == 2
        assert result.skipped == 1
        assert result.failed == 0

    @pytest.mark.unit
    def test_unreadable_file_is_overwritten(self, store: FileBookmarkStore) -> None:
        store.path_for(5).write_text("{broken")

        assert store.save_one(make_bookmark(5)) is SaveOutcome.UPDATED
        assert json.loads(store.path_for(5).read_text())["_id"] == 5

    @pytest.mark.unit
    def test_exists_by_id_and_url(self, store: FileBookmarkStore) -> None:
        store.save_one(make_bookmark(3))

        assert store.exists(3)
        assert store.exists("3")
        assert store.exists("https://example3.com")
        assert not store.exists(4)
        assert not store.exists("https://missing.example.com")

    @pytest.mark.unit
    def test_get_all_and_most_recent_update(self, store: FileBookmarkStore) -> None:
        store.save_batch(
            [
                make_bookmark(1, last_update="2023-05-01T00:00:00Z"),
                make_bookmark(10, last_update="2023-01-01T00:00:00Z"),
            ]
        )

        assert [b.raindrop_id for b in store.get_all()] == [10, 1]
        assert store.most_recent_update() == "2023-05-01T00:00:00Z"
        assert store.count() == 2

    @pytest.mark.unit
    def test_empty_store(self, tmp_path: Path) -> None:
        store = FileBookmarkStore(tmp_path / "missing")

        assert store.get_all() == []
        assert store.most_recent_update() is None
