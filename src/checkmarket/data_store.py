"""Data persistence for Checkmarket.

This module provides a generic record store with support for JSON (default)
or SQLite backends. Every backend exposes the same operations per collection:
list, get, insert, update, delete and a transaction scope.
Use create_data_store() to get the appropriate backend based on configuration.
"""

import json
import logging
from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID

import pydantic

from .errors import NotFoundError, StoreError, ValidationError
from .models import Category, Item, ListEntry, MonthlyList, MonthlyListEntry, Record

logger = logging.getLogger(__name__)

OrderBy = Sequence[tuple[str, bool]]


class BackendType(str, Enum):
    """Data storage backend types."""

    JSON = "json"
    SQLITE = "sqlite"


class Collection(str, Enum):
    """Record collections held by a data store."""

    CATEGORIES = "categories"
    ITEMS = "items"
    LIST_ENTRIES = "list_entries"
    MONTHLY_LISTS = "monthly_lists"
    MONTHLY_LIST_ENTRIES = "monthly_list_entries"

    @property
    def model(self) -> type[Record]:
        """Record type stored in this collection."""
        return RECORD_TYPES[self]

    @property
    def default_order(self) -> OrderBy:
        """Ordering applied when the caller does not pass one."""
        return DEFAULT_ORDER[self]


RECORD_TYPES: dict[Collection, type[Record]] = {
    Collection.CATEGORIES: Category,
    Collection.ITEMS: Item,
    Collection.LIST_ENTRIES: ListEntry,
    Collection.MONTHLY_LISTS: MonthlyList,
    Collection.MONTHLY_LIST_ENTRIES: MonthlyListEntry,
}

# (field, descending)
DEFAULT_ORDER: dict[Collection, OrderBy] = {
    Collection.CATEGORIES: [("name", False)],
    Collection.ITEMS: [("name", False)],
    Collection.LIST_ENTRIES: [("created_at", False)],
    Collection.MONTHLY_LISTS: [("year", True), ("month", True)],
    Collection.MONTHLY_LIST_ENTRIES: [("created_at", False)],
}


class DataStoreProtocol(Protocol):
    """Protocol defining the data store interface."""

    def list_records(
        self,
        collection: Collection,
        filters: dict[str, Any] | None = None,
        order_by: OrderBy | None = None,
    ) -> list[Record]: ...
    def get_record(self, collection: Collection, record_id: UUID) -> Record | None: ...
    def insert(self, collection: Collection, record: Record) -> Record: ...
    def update(self, collection: Collection, record_id: UUID, patch: dict[str, Any]) -> Record: ...
    def delete(self, collection: Collection, record_id: UUID) -> None: ...
    def delete_where(
        self, collection: Collection, filters: dict[str, Any] | None = None
    ) -> int: ...
    def transaction(self) -> AbstractContextManager[None]: ...


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def matches(record: Record, filters: dict[str, Any] | None) -> bool:
    """Check a record against equality filters."""
    if not filters:
        return True
    return all(getattr(record, key) == value for key, value in filters.items())


def sort_records(records: list[Record], order_by: OrderBy) -> list[Record]:
    """Sort records by several fields, each ascending or descending.

    Strings compare case-insensitively and missing values sort last. The sort
    is stable, so records that tie keep their stored order.
    """
    result = list(records)
    for field, descending in reversed(order_by):
        present = [r for r in result if getattr(r, field) is not None]
        missing = [r for r in result if getattr(r, field) is None]
        present.sort(key=lambda r: _sort_key(getattr(r, field)), reverse=descending)
        result = present + missing
    return result


def _sort_key(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    return value


def build_record(collection: Collection, data: dict[str, Any]) -> Record:
    """Validate raw field data into the collection's record type.

    Raises:
        ValidationError: If the data violates the record's constraints
    """
    try:
        return collection.model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {collection.value} record: {e}") from e


class DataStore:
    """Manages JSON file persistence, one file per collection."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize data store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self._snapshot: dict[Collection, bytes | None] | None = None
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create the data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _collection_path(self, collection: Collection) -> Path:
        """Path to a collection file."""
        return self.data_dir / f"{collection.value}.json"

    def _load(self, collection: Collection) -> list[Record]:
        """Load every record of a collection in stored order."""
        path = self._collection_path(collection)
        if not path.exists():
            return []

        try:
            with open(path) as f:
                data = json.load(f)
            return [collection.model.model_validate(row) for row in data]
        except (OSError, json.JSONDecodeError, pydantic.ValidationError) as e:
            logger.error(f"Failed to load {path}: {e}")
            raise StoreError(f"Could not read {collection.value}: {e}") from e

    def _save(self, collection: Collection, records: list[Record]) -> None:
        """Write a collection, replacing the file in one step."""
        path = self._collection_path(collection)
        tmp_path = path.with_suffix(".json.tmp")

        try:
            with open(tmp_path, "w") as f:
                json.dump([r.model_dump() for r in records], f, cls=JSONEncoder, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise StoreError(f"Could not write {collection.value}: {e}") from e

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
        records = [r for r in self._load(collection) if matches(r, filters)]
        return sort_records(records, order_by or collection.default_order)

    def get_record(self, collection: Collection, record_id: UUID) -> Record | None:
        """Get a record by ID.

        Returns:
            The record if found, None otherwise
        """
        for record in self._load(collection):
            if record.id == record_id:
                return record
        return None

    def insert(self, collection: Collection, record: Record) -> Record:
        """Insert a record and return it as stored.

        The store stamps ``created_at`` and ``updated_at``.
        """
        now = datetime.now()
        stored = build_record(
            collection, {**record.model_dump(), "created_at": now, "updated_at": now}
        )
        records = self._load(collection)
        if any(r.id == stored.id for r in records):
            raise StoreError(f"Duplicate {collection.value} ID '{stored.id}'")

        records.append(stored)
        self._save(collection, records)
        logger.debug(f"Inserted {collection.value} {stored.id}")
        return stored

    def update(self, collection: Collection, record_id: UUID, patch: dict[str, Any]) -> Record:
        """Apply a partial update to a record.

        Args:
            collection: Collection holding the record
            record_id: ID of the record
            patch: Fields to set. A None value clears the field

        Returns:
            The updated record

        Raises:
            NotFoundError: If the record does not exist
        """
        records = self._load(collection)

        for i, record in enumerate(records):
            if record.id == record_id:
                data = {**record.model_dump(), **patch, "updated_at": datetime.now()}
                data["id"] = record.id
                data["created_at"] = record.created_at
                records[i] = build_record(collection, data)
                self._save(collection, records)
                logger.debug(f"Updated {collection.value} {record_id}: {sorted(patch)}")
                return records[i]

        raise NotFoundError(collection.value, record_id)

    def delete(self, collection: Collection, record_id: UUID) -> None:
        """Delete a record.

        Raises:
            NotFoundError: If the record does not exist
        """
        records = self._load(collection)
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            raise NotFoundError(collection.value, record_id)

        self._save(collection, remaining)
        logger.debug(f"Deleted {collection.value} {record_id}")

    def delete_where(self, collection: Collection, filters: dict[str, Any] | None = None) -> int:
        """Delete every record matching the filters.

        Returns:
            Number of deleted records
        """
        records = self._load(collection)
        remaining = [r for r in records if not matches(r, filters)]
        removed = len(records) - len(remaining)
        if removed:
            self._save(collection, remaining)
        logger.debug(f"Deleted {removed} {collection.value} records")
        return removed

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes so they all land or none do.

        Collection files are snapshotted on entry and restored if the block
        raises. Nested scopes join the outermost one.
        """
        if self._snapshot is not None:
            yield
            return

        self._snapshot = {c: self._read_raw(c) for c in Collection}
        try:
            yield
        except Exception:
            logger.warning("Transaction failed, restoring collection files")
            self._restore(self._snapshot)
            raise
        finally:
            self._snapshot = None

    def _read_raw(self, collection: Collection) -> bytes | None:
        path = self._collection_path(collection)
        try:
            return path.read_bytes() if path.exists() else None
        except OSError as e:
            raise StoreError(f"Could not read {collection.value}: {e}") from e

    def _restore(self, snapshot: dict[Collection, bytes | None]) -> None:
        for collection, raw in snapshot.items():
            path = self._collection_path(collection)
            try:
                if raw is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_bytes(raw)
            except OSError as e:
                raise StoreError(f"Could not restore {collection.value}: {e}") from e


def create_data_store(
    backend: BackendType = BackendType.JSON,
    data_dir: Path | None = None,
    db_path: Path | None = None,
    timeout: float = 5.0,
) -> DataStoreProtocol:
    """Create a data store with the specified backend.

    Args:
        backend: Which backend to use (json or sqlite)
        data_dir: Directory for data files (used by JSON backend, also used
                  as base path for SQLite if db_path not specified)
        db_path: Path to SQLite database file (only used by SQLite backend)
        timeout: Seconds SQLite waits on a locked database

    Returns:
        A DataStore or SQLiteStore instance

    Example:
        # Use JSON backend (default)
        store = create_data_store()

        # Use SQLite with custom path
        store = create_data_store(
            BackendType.SQLITE,
            db_path=Path("./my_data/checkmarket.db")
        )
    """
    if backend == BackendType.SQLITE:
        from .sqlite_store import SQLiteStore

        if db_path is None and data_dir is not None:
            db_path = data_dir / "checkmarket.db"

        return SQLiteStore(db_path=db_path, timeout=timeout)
    else:
        return DataStore(data_dir=data_dir)
