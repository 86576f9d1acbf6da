"""Tests for replacing an outdated bookmarks table."""

import logging
from pathlib import Path

import duckdb
import pytest
from conftest import make_bookmark

from raindrop_sync.storage import DuckDBBookmarkStore


def _columns(path: Path) -> set[str]:
    conn = duckdb.connect(str(path))
    try:
        rows = conn.execute(
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_name = 'bookmarks'"
        ).fetchall()
    finally:
        conn.close()
    return {row[0] for row in rows}


def _create_legacy_table(path: Path, rows: int) -> None:
    conn = duckdb.connect(str(path))
    try:
        conn.execute(
            """
            CREATE TABLE bookmarks (
                url VARCHAR PRIMARY KEY,
                title VARCHAR,
                tags VARCHAR[],
                metadata JSON,
                fetched_at TIMESTAMP
            )
            """
        )
        for i in range(rows):
            conn.execute(
                "INSERT INTO bookmarks VALUES (?, ?, ?, ?, current_timestamp)",
                [f"https://old{i}.example.com", f"Old {i}", ["a"], "{}"],
            )
    finally:
        conn.close()


class TestSchemaMigration:
    """Test cases for DuckDB schema migration."""

    @pytest.mark.integration
    def test_legacy_table_is_replaced(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "bookmarks.duckdb"
        _create_legacy_table(path, rows=1)

        store = DuckDBBookmarkStore(path)
        with caplog.at_level(logging.WARNING):
            store.initialize()

        assert _columns(path) == {"raindrop_id", "url", "title", "raindrop_metadata"}
        assert store.count() == 0
        assert "discarding 1 row(s)" in caplog.text

    @pytest.mark.integration
    def test_empty_legacy_table_is_replaced(self, tmp_path: Path) -> None:
        path = tmp_path / "bookmarks.duckdb"
        _create_legacy_table(path, rows=0)

        store = DuckDBBookmarkStore(path)
        store.initialize()
        store.save_one(make_bookmark(1))

        assert store.exists(1)

    @pytest.mark.integration
    def test_current_table_is_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "bookmarks.duckdb"
        store = DuckDBBookmarkStore(path)
        store.initialize()
        store.save_one(make_bookmark(1))

        DuckDBBookmarkStore(path).initialize()

        assert store.count() == 1
