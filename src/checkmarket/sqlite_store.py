"""SQLite-based data persistence for Checkmarket.

This module provides SQLite database storage as an alternative to JSON files.
It implements the same interface as DataStore for seamless switching.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from .data_store import Collection, OrderBy, build_record
from .errors import NotFoundError, StoreError
from .models import Record

logger = logging.getLogger(__name__)

# Text columns sorted case-insensitively, like the JSON backend does.
_NOCASE_FIELDS = {"name", "unit", "brand"}


def to_db(value: Any) -> Any:
    """Adapt a Python value to its SQLite column representation."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteStore:
    """Manages SQLite database persistence for Checkmarket data."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None, timeout: float = 5.0):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/checkmarket.db
            timeout: Seconds to wait on a locked database
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "checkmarket.db"
        self.db_path = db_path
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with proper cleanup.

        Inside a transaction the shared connection is returned and committing
        is left to the transaction scope.
        """
        if self._conn is not None:
            yield self._conn
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run every store call in the block on one connection and commit once.

        Nested scopes join the outermost one.
        """
        if self._conn is not None:
            yield
            return

        self._conn = self._connect()
        try:
            yield
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            logger.error(f"Transaction failed: {e}")
            raise StoreError(str(e)) from e
        except Exception:
            self._conn.rollback()
            logger.warning("Transaction failed, rolled back")
            raise
        finally:
            self._conn.close()
            self._conn = None

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection() as conn:
            conn.executescript("""
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                -- Catalog
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category_id TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
                    unit TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                -- Active list (item_id has no foreign key: orphans are kept)
                CREATE TABLE IF NOT EXISTS list_entries (
                    id TEXT PRIMARY KEY,
                    item_id TEXT NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 1),
                    unit_price REAL,
                    brand TEXT,
                    purchase_date TEXT,
                    purchased INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                -- Monthly buckets
                CREATE TABLE IF NOT EXISTS monthly_lists (
                    id TEXT PRIMARY KEY,
                    month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
                    year INTEGER NOT NULL,
                    items_count INTEGER,
                    total_value REAL,
                    finalized_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (month, year)
                );

                CREATE TABLE IF NOT EXISTS monthly_list_entries (
                    id TEXT PRIMARY KEY,
                    monthly_list_id TEXT NOT NULL
                        REFERENCES monthly_lists(id) ON DELETE CASCADE,
                    item_id TEXT NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 1),
                    unit_price REAL,
                    brand TEXT,
                    purchase_date TEXT,
                    purchased INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_items_category
                    ON items(category_id);
                CREATE INDEX IF NOT EXISTS idx_monthly_list_entries_list
                    ON monthly_list_entries(monthly_list_id);

                -- Record schema version
                INSERT OR IGNORE INTO schema_version (version) VALUES (1);
            """)

    # --- Query Helpers ---

    def _columns(self, collection: Collection) -> list[str]:
        return list(collection.model.model_fields)

    def _check_fields(self, collection: Collection, fields: list[str]) -> None:
        unknown = set(fields) - set(self._columns(collection))
        if unknown:
            raise StoreError(f"Unknown {collection.value} fields: {sorted(unknown)}")

    def _where(
        self, collection: Collection, filters: dict[str, Any] | None
    ) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        self._check_fields(collection, list(filters))
        clauses = []
        params = []
        for key, value in filters.items():
            if value is None:
                clauses.append(f"{key} IS NULL")
            else:
                clauses.append(f"{key} = ?")
                params.append(to_db(value))
        return " WHERE " + " AND ".join(clauses), params

    def _order(self, collection: Collection, order_by: OrderBy) -> str:
        self._check_fields(collection, [field for field, _ in order_by])
        terms = []
        for field, descending in order_by:
            collate = " COLLATE NOCASE" if field in _NOCASE_FIELDS else ""
            direction = "DESC" if descending else "ASC"
            terms.append(f"{field} IS NULL, {field}{collate} {direction}")
        terms.append("rowid ASC")
        return " ORDER BY " + ", ".join(terms)

    def _row_to_record(self, collection: Collection, row: sqlite3.Row) -> Record:
        return collection.model.model_validate(dict(row))

    # --- Record Operations ---

    def list_records(
        self,
        collection: Collection,
        filters: dict[str, Any] | None = None,
        order_by: OrderBy | None = None,
    ) -> list[Record]:
        """List records of a collection.

        Args:
            collection: Collection to read
            filters: Field equality filters, all of which must hold
            order_by: (field, descending) pairs. Defaults to the collection's order

        Returns:
            Matching records
        """
        where, params = self._where(collection, filters)
        order = self._order(collection, order_by or collection.default_order)

        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM {collection.value}{where}{order}", params
            ).fetchall()
            return [self._row_to_record(collection, row) for row in rows]

    def get_record(self, collection: Collection, record_id: UUID) -> Record | None:
        """Get a record by ID.

        Returns:
            The record if found, None otherwise
        """
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {collection.value} WHERE id = ?",
                (str(record_id),),
            ).fetchone()

            if not row:
                return None
            return self._row_to_record(collection, row)

    def insert(self, collection: Collection, record: Record) -> Record:
        """Insert a record and return it as stored."""
        now = datetime.now()
        stored = build_record(
            collection, {**record.model_dump(), "created_at": now, "updated_at": now}
        )
        columns = self._columns(collection)

        with self._get_connection() as conn:
            conn.execute(
                f"INSERT INTO {collection.value} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' * len(columns))})",
                [to_db(getattr(stored, c)) for c in columns],
            )

        logger.debug(f"Inserted {collection.value} {stored.id}")
        return stored

    def update(self, collection: Collection, record_id: UUID, patch: dict[str, Any]) -> Record:
        """Apply a partial update to a record.

        Raises:
            NotFoundError: If the record does not exist
        """
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {collection.value} WHERE id = ?",
                (str(record_id),),
            ).fetchone()
            if not row:
                raise NotFoundError(collection.value, record_id)

            record = self._row_to_record(collection, row)
            data = {**record.model_dump(), **patch, "updated_at": datetime.now()}
            data["id"] = record.id
            data["created_at"] = record.created_at
            updated = build_record(collection, data)

            columns = [c for c in self._columns(collection) if c != "id"]
            conn.execute(
                f"UPDATE {collection.value} SET "
                f"{', '.join(f'{c} = ?' for c in columns)} WHERE id = ?",
                [to_db(getattr(updated, c)) for c in columns] + [str(record_id)],
            )

        logger.debug(f"Updated {collection.value} {record_id}: {sorted(patch)}")
        return updated

    def delete(self, collection: Collection, record_id: UUID) -> None:
        """Delete a record.

        Raises:
            NotFoundError: If the record does not exist
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM {collection.value} WHERE id = ?",
                (str(record_id),),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(collection.value, record_id)

        logger.debug(f"Deleted {collection.value} {record_id}")

    def delete_where(self, collection: Collection, filters: dict[str, Any] | None = None) -> int:
        """Delete every record matching the filters.

        Returns:
            Number of deleted records
        """
        where, params = self._where(collection, filters)

        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {collection.value}{where}", params)
            removed = cursor.rowcount

        logger.debug(f"Deleted {removed} {collection.value} records")
        return removed
