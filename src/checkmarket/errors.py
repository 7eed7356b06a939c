"""Exceptions raised by the Checkmarket core."""

from uuid import UUID


class CheckmarketError(Exception):
    """Base class for all Checkmarket errors."""


class ValidationError(CheckmarketError):
    """Raised when input fails validation before anything is written."""


class NotFoundError(CheckmarketError):
    """Raised when an operation targets a record that does not exist."""

    def __init__(self, collection: str, record_id: UUID | str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record with ID '{record_id}' not found")


class StoreError(CheckmarketError):
    """Raised when the backing store fails (I/O, corrupt data, database errors)."""
