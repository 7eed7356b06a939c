"""Stateful service that ties the catalog, the active list and the archive together.

A ShoppingSession is built once per session (one CLI invocation) and holds
read-only snapshots of the categories, items and active list. Every mutating
call goes to the store first; the snapshots then reflect the record the store
returned, so they are in step with the store after each call returns.
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from .archive import MonthlyArchiveManager
from .catalog import CatalogStore
from .data_store import DataStoreProtocol, sort_records
from .history import HistoryBrowser
from .list_manager import UNSET, ListManager, filter_entries, summarize
from .models import (
    ITEM_NOT_FOUND_LABEL,
    Category,
    EntryStatus,
    FinalizeResult,
    Item,
    ListEntry,
    ListSummary,
    parse_id,
)

logger = logging.getLogger(__name__)


class ShoppingSession:
    """One user's view of the shopping data, backed by a data store."""

    def __init__(
        self,
        data_store: DataStoreProtocol,
        clock: Callable[[], datetime] | None = None,
    ):
        self.data_store = data_store
        self.catalog = CatalogStore(data_store)
        self.list_manager = ListManager(data_store, clock=clock)
        self.archive = MonthlyArchiveManager(data_store, self.list_manager)
        self.history = HistoryBrowser(data_store, self.list_manager, self.catalog)

        self.categories: list[Category] = []
        self.items: list[Item] = []
        self.active_list: list[ListEntry] = []
        self.loading = False

    def __enter__(self) -> "ShoppingSession":
        self.refresh()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self.loading = True
        try:
            yield
        finally:
            self.loading = False

    def refresh(self) -> None:
        """Reload every snapshot from the store."""
        with self._busy():
            self.categories = self.catalog.list_categories()
            self.items = self.catalog.list_items()
            self.active_list = self.list_manager.get_entries()
        logger.debug(
            f"Loaded {len(self.categories)} categories, {len(self.items)} items, "
            f"{len(self.active_list)} entries"
        )

    def close(self) -> None:
        """Drop the snapshots at the end of the session."""
        self.categories = []
        self.items = []
        self.active_list = []
        self.loading = False

    # --- Lookups over the snapshots ---

    def resolve_item(self, item_id: UUID | str) -> Item | None:
        """The cached catalog item for an ID, or None when it no longer exists."""
        item_id = parse_id(item_id, "item ID")
        return next((i for i in self.items if i.id == item_id), None)

    def item_label(self, item_id: UUID | str) -> str:
        """Item name for display, with a placeholder for deleted items."""
        item = self.resolve_item(item_id)
        return item.name if item else ITEM_NOT_FOUND_LABEL

    def category_name(self, category_id: UUID | str | None) -> str:
        """Cached category name, or an empty string when unknown."""
        if not category_id:
            return ""
        category_id = parse_id(category_id, "category ID")
        return next((c.name for c in self.categories if c.id == category_id), "")

    def filtered_entries(
        self,
        category_id: UUID | str | None = None,
        status: EntryStatus | str = EntryStatus.ALL,
        search_term: str | None = None,
    ) -> list[ListEntry]:
        """Active entries matching all given filters."""
        return filter_entries(
            self.active_list,
            self.items,
            category_id=category_id,
            status=status,
            search_term=search_term,
        )

    def summary(self, entries: Iterable[ListEntry] | None = None) -> ListSummary:
        """Totals over the given entries, or the whole active list."""
        return summarize(self.active_list if entries is None else entries)

    # --- Catalog ---

    def add_category(self, name: str) -> Category:
        """Create a category and keep the cached categories sorted by name."""
        with self._busy():
            category = self.catalog.add_category(name)
        self.categories = sort_records(  # type: ignore[assignment]
            [*self.categories, category], [("name", False)]
        )
        return category

    def edit_category(self, category_id: UUID | str, name: str) -> Category:
        """Rename a category."""
        with self._busy():
            category = self.catalog.edit_category(category_id, name)
        self.categories = sort_records(  # type: ignore[assignment]
            [c for c in self.categories if c.id != category.id] + [category],
            [("name", False)],
        )
        return category

    def delete_category(self, category_id: UUID | str) -> int:
        """Delete a category with its items.

        Returns:
            Number of items removed along with the category
        """
        category_id = parse_id(category_id, "category ID")
        with self._busy():
            removed = self.catalog.delete_category(category_id)
        self.categories = [c for c in self.categories if c.id != category_id]
        self.items = [i for i in self.items if i.category_id != category_id]
        return removed

    def add_item(self, name: str, category_id: UUID | str, unit: str | None = None) -> Item:
        """Add an item to the catalog."""
        with self._busy():
            item = self.catalog.add_item(name, category_id, unit)
        self.items = sort_records([*self.items, item], [("name", False)])  # type: ignore[assignment]
        return item

    def edit_item(
        self, item_id: UUID | str, name: str, category_id: UUID | str, unit: str | None = None
    ) -> Item:
        """Replace an item's name, category and unit."""
        with self._busy():
            item = self.catalog.edit_item(item_id, name, category_id, unit)
        self.items = sort_records(  # type: ignore[assignment]
            [i for i in self.items if i.id != item.id] + [item], [("name", False)]
        )
        return item

    def delete_item(self, item_id: UUID | str) -> None:
        """Delete an item. Entries that reference it stay on the list."""
        item_id = parse_id(item_id, "item ID")
        with self._busy():
            self.catalog.delete_item(item_id)
        self.items = [i for i in self.items if i.id != item_id]

    # --- Active list ---

    def _replace_entry(self, entry: ListEntry) -> None:
        self.active_list = [entry if e.id == entry.id else e for e in self.active_list]

    def add_to_list(
        self, item_id: UUID | str, quantity: Any = 1, unit_price: Any = None
    ) -> ListEntry:
        """Append an entry for a catalog item to the active list.

        Raises:
            ValidationError: If the quantity or price is invalid
            NotFoundError: If the item does not exist
        """
        with self._busy():
            entry = self.list_manager.add_to_list(item_id, quantity, unit_price)
        self.active_list.append(entry)
        return entry

    def update_entry(
        self,
        entry_id: UUID | str,
        quantity: Any = UNSET,
        unit_price: Any = UNSET,
        purchased: Any = UNSET,
        brand: Any = UNSET,
        purchase_date: Any = UNSET,
    ) -> ListEntry:
        """Partially update an active entry. UNSET arguments are left alone."""
        with self._busy():
            entry = self.list_manager.update_entry(
                entry_id,
                quantity=quantity,
                unit_price=unit_price,
                purchased=purchased,
                brand=brand,
                purchase_date=purchase_date,
            )
        self._replace_entry(entry)
        return entry

    def toggle_purchased(self, entry_id: UUID | str) -> ListEntry:
        """Flip an entry between purchased and pending."""
        with self._busy():
            entry = self.list_manager.toggle_purchased(entry_id)
        self._replace_entry(entry)
        return entry

    def remove_entry(self, entry_id: UUID | str) -> None:
        """Remove one entry from the active list."""
        entry_id = parse_id(entry_id, "entry ID")
        with self._busy():
            self.list_manager.remove_entry(entry_id)
        self.active_list = [e for e in self.active_list if e.id != entry_id]

    def clear_all(self) -> int:
        """Empty the active list and return how many entries were removed."""
        with self._busy():
            removed = self.list_manager.clear_all()
        self.active_list = []
        return removed

    # --- Archive and history ---

    def finalize_month(self) -> FinalizeResult:
        """Archive the active list into the current month and clear it.

        Returns:
            The bucket written to, whether it was created, and how many
            entries were migrated

        Raises:
            ValidationError: If the active list is empty
            StoreError: If the store fails. The active list snapshot is only
                cleared after the archive succeeds
        """
        with self._busy():
            result = self.archive.finalize_month()
        self.active_list = []
        return result

    def copy_selected(
        self, monthly_list_id: UUID | str, selected_entry_ids: Iterable[UUID | str]
    ) -> list[ListEntry]:
        """Copy archived entries back onto the active list as fresh entries."""
        with self._busy():
            copied = self.history.copy_selected(monthly_list_id, selected_entry_ids)
        self.active_list.extend(copied)
        return copied
