"""DuckDB bookmark store.

Bookmarks live in a single ``bookmarks`` table. Both the Raindrop ID and the
URL are unique; one of them is the primary key depending on ``key_mode``
(``id`` by default, ``url`` for databases created by older releases that
keyed on URL). A row is written once and never updated.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Literal

import duckdb

from ..exceptions import StorageError
from ..models import Bookmark, StoredBookmark
from ..timestamps import latest_timestamp
from .base import BatchResult, BookmarkStore, SaveOutcome, UpdatePolicy

logger = logging.getLogger(__name__)

KeyMode = Literal["id", "url"]

TABLE_NAME = "bookmarks"
REQUIRED_COLUMNS = frozenset({"raindrop_id", "url", "title", "raindrop_metadata"})
# Columns of the pre-metadata schema (url PRIMARY KEY, tags, metadata, fetched_at)
LEGACY_COLUMNS = frozenset({"tags", "metadata", "fetched_at"})


def _schema_sql(key_mode: KeyMode) -> str:
    if key_mode == "url":
        id_column = "raindrop_id BIGINT NOT NULL UNIQUE"
        url_column = "url VARCHAR PRIMARY KEY"
    else:
        id_column = "raindrop_id BIGINT PRIMARY KEY"
        url_column = "url VARCHAR NOT NULL UNIQUE"
    return f"""
        CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
            {id_column},
            {url_column},
            title VARCHAR NOT NULL,
            raindrop_metadata JSON NOT NULL
        )
    """


class DuckDBBookmarkStore(BookmarkStore):
    """First-write-wins bookmark store backed by a DuckDB file."""

    update_policy: UpdatePolicy = "first_write_wins"

    def __init__(self, database_path: Path | str, key_mode: KeyMode = "id"):
        """Initialize the store.

        Args:
            database_path: Path to the DuckDB database file
            key_mode: Column used as primary key and by :meth:`exists`
        """
        self.database_path = Path(database_path)
        self.key_mode: KeyMode = key_mode

    @contextmanager
    def _connect(self) -> Iterator[duckdb.DuckDBPyConnection]:
        try:
            conn = duckdb.connect(str(self.database_path))
        except duckdb.Error as e:
            raise StorageError(
                f"Failed to open database {self.database_path}: {e}"
            ) from e
        try:
            yield conn
        finally:
            conn.close()

    def _existing_columns(self, conn: duckdb.DuckDBPyConnection) -> set[str]:
        rows = conn.execute(
            """
            SELECT column_name
            FROM information_schema.columns
            WHERE table_schema = 'main' AND table_name = ?
            """,
            [TABLE_NAME],
        ).fetchall()
        return {str(row[0]) for row in rows}

    def initialize(self) -> None:
        """Create the table, replacing an outdated one.

        A table from an older schema cannot be upgraded in place because its
        rows lack the raw Raindrop payload. It is dropped and recreated and
        its rows are discarded.

        Raises:
            StorageError: If the database cannot be opened or altered
        """
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create {self.database_path.parent}: {e}") from e

        with self._connect() as conn:
            try:
                columns = self._existing_columns(conn)
                if columns and (
                    columns & LEGACY_COLUMNS or not REQUIRED_COLUMNS <= columns
                ):
                    result = conn.execute(
                        f"SELECT COUNT(*) FROM {TABLE_NAME}"  # noqa: S608  # constant table name
                    ).fetchone()
                    dropped = result[0] if result else 0
                    logger.warning(
                        f"⚠️  Migrating outdated {TABLE_NAME} table in {self.database_path}: "
                        f"discarding {dropped} row(s) without Raindrop metadata"
                    )
                    conn.execute(f"DROP TABLE {TABLE_NAME}")

                conn.execute(_schema_sql(self.key_mode))
            except duckdb.Error as e:
                raise StorageError(
                    f"Failed to initialize {self.database_path}: {e}"
                ) from e

        logger.debug(f"Initialized bookmark table in {self.database_path}")

    def _insert_if_absent(
        self, conn: duckdb.DuckDBPyConnection, bookmark: Bookmark, payload: str
    ) -> SaveOutcome:
        existing = conn.execute(
            f"SELECT 1 FROM {TABLE_NAME} WHERE raindrop_id = ? OR url = ? LIMIT 1",  # noqa: S608  # constant table name
            [bookmark.id, bookmark.url],
        ).fetchone()
        if existing is not None:
            return SaveOutcome.SKIPPED

        conn.execute(
            f"""
            INSERT INTO {TABLE_NAME} (raindrop_id, url, title, raindrop_metadata)
            VALUES (?, ?, ?, ?)
            """,  # noqa: S608  # constant table name
            [bookmark.id, bookmark.url, bookmark.title, payload],
        )
        return SaveOutcome.CREATED

    def save_one(self, bookmark: Bookmark) -> SaveOutcome:
        """Insert the bookmark unless its ID or URL is already stored.

        Raises:
            StorageError: If the insert fails
        """
        payload = _serialize(bookmark)
        with self._connect() as conn:
            try:
                return self._insert_if_absent(conn, bookmark, payload)
            except duckdb.Error as e:
                raise StorageError(
                    f"Failed to save bookmark {bookmark.id}: {e}"
                ) from e

    def save_batch(self, bookmarks: Iterable[Bookmark]) -> BatchResult:
        """Insert new bookmarks in one transaction.

        A record that cannot be serialized or inserted is logged and counted
        as skipped. DuckDB aborts the whole transaction on a failed
        statement, so the batch is rolled back and replayed without the
        offending record; the remaining records still commit together.
        """
        result = BatchResult()
        pending: list[tuple[Bookmark, str]] = []
        for bookmark in bookmarks:
            try:
                pending.append((bookmark, _serialize(bookmark)))
            except StorageError as e:
                logger.error(f"❌ Skipping bookmark {bookmark.id}: {e}")
                result.record_failure()

        with self._connect() as conn:
            while True:
                outcomes: list[SaveOutcome] = []
                failed_index: int | None = None
                try:
                    conn.begin()
                except duckdb.Error as e:
                    raise StorageError(f"Failed to start batch: {e}") from e
                for index, (bookmark, payload) in enumerate(pending):
                    try:
                        outcomes.append(
                            self._insert_if_absent(conn, bookmark, payload)
                        )
                    except duckdb.Error as e:
                        logger.error(f"❌ Failed to save bookmark {bookmark.id}: {e}")
                        failed_index = index
                        break

                if failed_index is None:
                    try:
                        conn.commit()
                    except duckdb.Error as e:
                        conn.rollback()
                        raise StorageError(f"Failed to commit batch: {e}") from e
                    break

                conn.rollback()
                result.record_failure()
                del pending[failed_index]

        for outcome in outcomes:
            result.record(outcome)
        return result

    def exists(self, key: int | str) -> bool:
        """Look up by primary key (Raindrop ID, or URL in ``url`` key mode)."""
        column = "url" if self.key_mode == "url" else "raindrop_id"
        with self._connect() as conn:
            try:
                row = conn.execute(
                    f"SELECT 1 FROM {TABLE_NAME} WHERE {column} = ? LIMIT 1",  # noqa: S608  # constant identifiers
                    [key],
                ).fetchone()
            except duckdb.Error as e:
                raise StorageError(f"Failed to query {self.database_path}: {e}") from e
        return row is not None

    def get(self, raindrop_id: int) -> StoredBookmark | None:
        """Return one stored bookmark by Raindrop ID."""
        with self._connect() as conn:
            try:
                row = conn.execute(
                    f"""
                    SELECT raindrop_id, url, title, raindrop_metadata
                    FROM {TABLE_NAME} WHERE raindrop_id = ?
                    """,  # noqa: S608  # constant table name
                    [raindrop_id],
                ).fetchone()
            except duckdb.Error as e:
                raise StorageError(f"Failed to query {self.database_path}: {e}") from e
        return _to_stored(row) if row else None

    def get_all(self) -> list[StoredBookmark]:
        with self._connect() as conn:
            try:
                rows = conn.execute(
                    f"""
                    SELECT raindrop_id, url, title, raindrop_metadata
                    FROM {TABLE_NAME}
                    ORDER BY raindrop_id DESC
                    """  # noqa: S608  # constant table name
                ).fetchall()
            except duckdb.Error as e:
                raise StorageError(f"Failed to query {self.database_path}: {e}") from e
        return [_to_stored(row) for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            try:
                result = conn.execute(
                    f"SELECT COUNT(*) FROM {TABLE_NAME}"  # noqa: S608  # constant table name
                ).fetchone()
            except duckdb.Error as e:
                raise StorageError(f"Failed to query {self.database_path}: {e}") from e
        return result[0] if result else 0

    def most_recent_update(self) -> str | None:
        """Return the latest ``lastUpdate`` among stored payloads."""
        with self._connect() as conn:
            try:
                rows = conn.execute(
                    f"""
                    SELECT json_extract_string(raindrop_metadata, '$.lastUpdate')
                    FROM {TABLE_NAME}
                    """  # noqa: S608  # constant table name
                ).fetchall()
            except duckdb.Error as e:
                raise StorageError(f"Failed to query {self.database_path}: {e}") from e
        return latest_timestamp(row[0] for row in rows)


def _serialize(bookmark: Bookmark) -> str:
    try:
        return json.dumps(bookmark.metadata or bookmark.model_dump(by_alias=True))
    except (TypeError, ValueError) as e:
        raise StorageError(f"Bookmark {bookmark.id} is not JSON serializable: {e}") from e


def _to_stored(row: tuple[Any, ...]) -> StoredBookmark:
    raindrop_id, url, title, metadata = row
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    return StoredBookmark(
        raindrop_id=int(raindrop_id),
        url=url,
        title=title,
        raindrop_metadata=metadata or {},
    )
