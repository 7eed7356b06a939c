"""Core data models for Checkmarket."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .errors import ValidationError

ITEM_NOT_FOUND_LABEL = "Item not found"


def parse_id(value: UUID | str, label: str = "ID") -> UUID:
    """Coerce a record ID given as a string.

    Raises:
        ValidationError: If the value is empty or not a UUID
    """
    if isinstance(value, UUID):
        return value
    if not value or not str(value).strip():
        raise ValidationError(f"{label} is required")
    try:
        return UUID(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid {label}: '{value}'") from e


class EntryStatus(str, Enum):
    """Purchase status filter for list entries."""

    ALL = "all"
    PENDING = "pending"
    PURCHASED = "purchased"


class Record(BaseModel):
    """Fields shared by every persisted record.

    The store assigns ``created_at`` and ``updated_at`` on write; the defaults
    only matter for records that have not been persisted yet.
    """

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class Category(Record):
    """A product category."""

    name: str


class Item(Record):
    """A catalog item that can be put on the shopping list."""

    name: str
    category_id: UUID
    unit: str | None = None


class ListEntry(Record):
    """A line on the active shopping list."""

    item_id: UUID
    quantity: int = Field(default=1, ge=1)
    unit_price: float | None = None
    brand: str | None = None
    purchase_date: date | None = None
    purchased: bool = False


class MonthlyList(Record):
    """A monthly bucket of archived entries, keyed by (month, year)."""

    month: int = Field(ge=1, le=12)
    year: int
    items_count: int | None = None
    total_value: float | None = None
    finalized_at: datetime | None = None


class MonthlyListEntry(ListEntry):
    """An archived snapshot of a list entry."""

    monthly_list_id: UUID


class ListSummary(BaseModel):
    """Aggregates over a set of list entries."""

    items_count: int
    purchased_count: int
    total_value: float
    purchased_value: float


class FinalizeResult(BaseModel):
    """Outcome of archiving the active list into its monthly bucket."""

    monthly_list: MonthlyList
    migrated_count: int
    created: bool


class HistorySummary(BaseModel):
    """A monthly bucket together with its entries, ready for display."""

    monthly_list: MonthlyList
    month_name: str
    entries: list[MonthlyListEntry] = Field(default_factory=list)
    purchased_count: int = 0
