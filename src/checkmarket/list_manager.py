"""Active shopping list operations."""

import logging
import math
from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import Any
from uuid import UUID

from .data_store import Collection, DataStore, DataStoreProtocol
from .errors import NotFoundError, ValidationError
from .models import EntryStatus, Item, ListEntry, ListSummary, parse_id


class _Unset:
    """Marker for arguments the caller did not pass."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

logger = logging.getLogger(__name__)


def normalize_quantity(value: Any) -> int:
    """Coerce user input into a quantity of at least 1.

    Empty, non-numeric and zero input become 1. Fractions are truncated.

    Raises:
        ValidationError: If the quantity is negative
    """
    if value is None or isinstance(value, bool):
        return 1
    try:
        quantity = int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return 1
    if quantity < 0:
        raise ValidationError(f"Quantity must be at least 1, got {value}")
    return quantity or 1


def normalize_price(value: Any) -> float | None:
    """Coerce user input into a unit price.

    Empty input and 0 mean "no price".

    Raises:
        ValidationError: If the price is negative or not a number
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        price = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid price: '{value}'") from e
    if not math.isfinite(price) or price < 0:
        raise ValidationError(f"Price must be a positive number, got {value}")
    return price or None


def normalize_date(value: Any) -> date | None:
    """Coerce a purchase date given as a date or a YYYY-MM-DD string.

    Raises:
        ValidationError: If the string is not an ISO date
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD") from e


def subtotal(entry: ListEntry) -> float:
    """Quantity times unit price, or 0 when the entry has no price."""
    if not entry.unit_price:
        return 0.0
    return entry.quantity * entry.unit_price


def total(entries: Iterable[ListEntry], only_purchased: bool = False) -> float:
    """Sum of subtotals, optionally restricted to purchased entries."""
    return sum(
        (subtotal(e) for e in entries if e.purchased or not only_purchased),
        0.0,
    )


def summarize(entries: Iterable[ListEntry]) -> ListSummary:
    """Counts and totals for a set of entries."""
    entries = list(entries)
    return ListSummary(
        items_count=len(entries),
        purchased_count=sum(1 for e in entries if e.purchased),
        total_value=total(entries),
        purchased_value=total(entries, only_purchased=True),
    )


def filter_entries(
    entries: Iterable[ListEntry],
    items: Iterable[Item],
    category_id: UUID | str | None = None,
    status: EntryStatus | str = EntryStatus.ALL,
    search_term: str | None = None,
) -> list[ListEntry]:
    """Filter entries by category, purchase status and item name.

    All given filters must hold. The search is a case-insensitive substring
    match on the referenced item's name. Entries whose item no longer exists
    never match a category or search filter.

    Args:
        entries: Entries to filter
        items: Catalog items used to resolve each entry's item
        category_id: Keep only entries whose item is in this category
        status: all, pending or purchased
        search_term: Substring of the item name

    Returns:
        Matching entries in their original order
    """
    by_id = {item.id: item for item in items}
    status = EntryStatus(status)
    wanted_category = parse_id(category_id, "category ID") if category_id else None
    term = (search_term or "").strip().lower()

    result = []
    for entry in entries:
        item = by_id.get(entry.item_id)

        if wanted_category and (item is None or item.category_id != wanted_category):
            continue
        if status == EntryStatus.PURCHASED and not entry.purchased:
            continue
        if status == EntryStatus.PENDING and entry.purchased:
            continue
        if term and (item is None or term not in item.name.lower()):
            continue

        result.append(entry)
    return result


class ListManager:
    """Manages the active shopping list."""

    def __init__(
        self,
        data_store: DataStoreProtocol | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize list manager.

        Args:
            data_store: Data store instance. Creates a JSON DataStore if not provided.
            clock: Returns the current time. Defaults to datetime.now
        """
        self.data_store = data_store or DataStore()
        self.clock = clock or datetime.now

    def today(self) -> date:
        """Current date according to the manager's clock."""
        return self.clock().date()

    def get_entries(self) -> list[ListEntry]:
        """All active entries in the order they were added."""
        return self.data_store.list_records(Collection.LIST_ENTRIES)  # type: ignore[return-value]

    def get_entry(self, entry_id: UUID | str) -> ListEntry:
        """Get a specific entry by ID.

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry_id = parse_id(entry_id, "entry ID")
        entry = self.data_store.get_record(Collection.LIST_ENTRIES, entry_id)
        if entry is None:
            raise NotFoundError(Collection.LIST_ENTRIES.value, entry_id)
        return entry  # type: ignore[return-value]

    def add_to_list(
        self,
        item_id: UUID | str,
        quantity: Any = 1,
        unit_price: Any = None,
    ) -> ListEntry:
        """Append an entry for an item.

        The same item may appear on the list any number of times; every call
        creates a new, unpurchased entry.

        Args:
            item_id: Catalog item to buy
            quantity: Amount to buy. Normalized to at least 1
            unit_price: Optional price per unit

        Returns:
            The stored entry

        Raises:
            ValidationError: If the item ID is missing, or quantity or price is invalid
            NotFoundError: If the item is not in the catalog
        """
        item_id = parse_id(item_id, "item ID")
        if self.data_store.get_record(Collection.ITEMS, item_id) is None:
            raise NotFoundError(Collection.ITEMS.value, item_id)

        entry = ListEntry(
            item_id=item_id,
            quantity=normalize_quantity(quantity),
            unit_price=normalize_price(unit_price),
            purchased=False,
        )
        stored = self.data_store.insert(Collection.LIST_ENTRIES, entry)
        logger.info(f"Added entry {entry.id} for item {entry.item_id} (x{entry.quantity})")
        return stored  # type: ignore[return-value]

    def update_entry(
        self,
        entry_id: UUID | str,
        quantity: Any = UNSET,
        unit_price: Any = UNSET,
        purchased: Any = UNSET,
        brand: Any = UNSET,
        purchase_date: Any = UNSET,
    ) -> ListEntry:
        """Partially update an entry.

        Arguments left as UNSET keep their stored value; None clears the
        field. Marking an entry purchased stamps today's date when it has no
        purchase date, and marking it pending always clears the date.

        Returns:
            The updated entry

        Raises:
            ValidationError: If a value is invalid
            NotFoundError: If the entry does not exist
        """
        entry_id = parse_id(entry_id, "entry ID")
        patch: dict[str, Any] = {}

        if quantity is not UNSET:
            patch["quantity"] = normalize_quantity(quantity)
        if unit_price is not UNSET:
            patch["unit_price"] = normalize_price(unit_price)
        if brand is not UNSET:
            patch["brand"] = (brand or "").strip() or None
        if purchase_date is not UNSET:
            patch["purchase_date"] = normalize_date(purchase_date)

        if purchased is not UNSET:
            patch["purchased"] = bool(purchased)
            if not purchased:
                patch["purchase_date"] = None
            elif patch.get("purchase_date") is None:
                if "purchase_date" in patch:
                    current = None
                else:
                    current = self.get_entry(entry_id).purchase_date
                patch["purchase_date"] = current or self.today()

        stored = self.data_store.update(Collection.LIST_ENTRIES, entry_id, patch)
        logger.info(f"Updated entry {entry_id}: {sorted(patch)}")
        return stored  # type: ignore[return-value]

    def toggle_purchased(self, entry_id: UUID | str) -> ListEntry:
        """Flip an entry between purchased and pending."""
        entry = self.get_entry(entry_id)
        return self.update_entry(entry.id, purchased=not entry.purchased)

    def remove_entry(self, entry_id: UUID | str) -> None:
        """Remove an entry from the list.

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry_id = parse_id(entry_id, "entry ID")
        self.data_store.delete(Collection.LIST_ENTRIES, entry_id)
        logger.info(f"Removed entry {entry_id}")

    def clear_all(self) -> int:
        """Remove every entry from the list.

        Returns:
            Number of removed entries
        """
        removed = self.data_store.delete_where(Collection.LIST_ENTRIES)
        logger.info(f"Cleared {removed} entries from the active list")
        return removed

    def filter(
        self,
        category_id: UUID | str | None = None,
        status: EntryStatus | str = EntryStatus.ALL,
        search_term: str | None = None,
    ) -> list[ListEntry]:
        """Active entries matching all given filters."""
        items = self.data_store.list_records(Collection.ITEMS)
        return filter_entries(
            self.get_entries(),
            items,  # type: ignore[arg-type]
            category_id=category_id,
            status=status,
            search_term=search_term,
        )

    def total(self, only_purchased: bool = False) -> float:
        """Total value of the active list."""
        return total(self.get_entries(), only_purchased=only_purchased)
