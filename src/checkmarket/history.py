"""Browsing archived monthly lists and copying entries back to the active list."""

import calendar
import logging
from collections.abc import Iterable
from uuid import UUID

from .catalog import CatalogStore
from .data_store import Collection, DataStore, DataStoreProtocol
from .errors import NotFoundError, ValidationError
from .list_manager import ListManager
from .models import (
    ITEM_NOT_FOUND_LABEL,
    HistorySummary,
    ListEntry,
    MonthlyList,
    MonthlyListEntry,
    parse_id,
)

logger = logging.getLogger(__name__)


def month_name(month: int) -> str:
    """English name of a 1-indexed month."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    return calendar.month_name[month]


class CopySelection:
    """Which entries of one bucket are picked for copying.

    Entries are kept in display order. A search term narrows the visible
    entries, and select_all() only acts on what is visible.
    """

    def __init__(self, entries: list[MonthlyListEntry], labels: dict[UUID, str]):
        self.entries = entries
        self.labels = labels
        self.search_term = ""
        self._selected: set[UUID] = set()

    def search(self, term: str | None) -> list[MonthlyListEntry]:
        """Narrow the visible entries to item names containing the term."""
        self.search_term = (term or "").strip()
        return self.visible()

    def visible(self) -> list[MonthlyListEntry]:
        term = self.search_term.lower()
        if not term:
            return list(self.entries)
        return [e for e in self.entries if term in self.labels[e.item_id].lower()]

    def toggle(self, entry_id: UUID | str, checked: bool | None = None) -> bool:
        """Select or deselect one entry. Flips it when checked is None.

        Returns:
            Whether the entry is now selected
        """
        entry_id = parse_id(entry_id, "entry ID")
        if not any(e.id == entry_id for e in self.entries):
            raise NotFoundError(Collection.MONTHLY_LIST_ENTRIES.value, entry_id)

        if checked is None:
            checked = entry_id not in self._selected
        if checked:
            self._selected.add(entry_id)
        else:
            self._selected.discard(entry_id)
        return checked

    @property
    def all_visible_selected(self) -> bool:
        return all(e.id in self._selected for e in self.visible())

    def select_all(self) -> None:
        """Deselect the visible entries if all are selected, otherwise select them."""
        visible_ids = {e.id for e in self.visible()}
        if self.all_visible_selected:
            self._selected -= visible_ids
        else:
            self._selected |= visible_ids

    @property
    def selected_ids(self) -> list[UUID]:
        """Selected entry IDs in display order."""
        return [e.id for e in self.entries if e.id in self._selected]

    @property
    def selected_count(self) -> int:
        return len(self._selected)


class HistoryBrowser:
    """Read access to monthly buckets and copy-back into the active list."""

    def __init__(
        self,
        data_store: DataStoreProtocol | None = None,
        list_manager: ListManager | None = None,
        catalog: CatalogStore | None = None,
    ):
        """Initialize history browser.

        Args:
            data_store: Data store instance. Creates a JSON DataStore if not provided.
            list_manager: Receives copied entries. Built on the same store if not provided.
            catalog: Resolves item names. Built on the same store if not provided.
        """
        self.data_store = data_store or DataStore()
        self.list_manager = list_manager or ListManager(self.data_store)
        self.catalog = catalog or CatalogStore(self.data_store)

    def list_monthly_lists(self) -> list[MonthlyList]:
        """All buckets, newest month first."""
        return self.data_store.list_records(Collection.MONTHLY_LISTS)  # type: ignore[return-value]

    def get_monthly_list(self, monthly_list_id: UUID | str) -> MonthlyList:
        """Get a bucket by ID.

        Raises:
            NotFoundError: If the bucket does not exist
        """
        monthly_list_id = parse_id(monthly_list_id, "monthly list ID")
        bucket = self.data_store.get_record(Collection.MONTHLY_LISTS, monthly_list_id)
        if bucket is None:
            raise NotFoundError(Collection.MONTHLY_LISTS.value, monthly_list_id)
        return bucket  # type: ignore[return-value]

    def item_labels(self, entries: Iterable[ListEntry]) -> dict[UUID, str]:
        """Item name per referenced item ID, with a placeholder for missing items."""
        names = {item.id: item.name for item in self.catalog.list_items()}
        return {e.item_id: names.get(e.item_id, ITEM_NOT_FOUND_LABEL) for e in entries}

    def get_entries(self, monthly_list_id: UUID | str) -> list[MonthlyListEntry]:
        """A bucket's entries sorted by item name.

        Raises:
            NotFoundError: If the bucket does not exist
        """
        bucket = self.get_monthly_list(monthly_list_id)
        entries = self.data_store.list_records(
            Collection.MONTHLY_LIST_ENTRIES, {"monthly_list_id": bucket.id}
        )
        labels = self.item_labels(entries)  # type: ignore[arg-type]
        return sorted(entries, key=lambda e: labels[e.item_id].lower())  # type: ignore[return-value]

    def summarize(self, monthly_list_id: UUID | str) -> HistorySummary:
        """A bucket with its entries and how many of them were purchased."""
        bucket = self.get_monthly_list(monthly_list_id)
        entries = self.get_entries(bucket.id)
        return HistorySummary(
            monthly_list=bucket,
            month_name=month_name(bucket.month),
            entries=entries,
            purchased_count=sum(1 for e in entries if e.purchased),
        )

    def selection(self, monthly_list_id: UUID | str) -> CopySelection:
        """Start a selection over a bucket's entries."""
        entries = self.get_entries(monthly_list_id)
        return CopySelection(entries, self.item_labels(entries))

    def copy_selected(
        self, monthly_list_id: UUID | str, selected_entry_ids: Iterable[UUID | str]
    ) -> list[ListEntry]:
        """Add the selected archived entries to the active list.

        Each copy is a fresh, unpurchased entry with the archived item,
        quantity and unit price. Brand and purchase date are not carried over.

        Args:
            monthly_list_id: Bucket the entries come from
            selected_entry_ids: Entries to copy

        Returns:
            The new active list entries, in display order

        Raises:
            ValidationError: If nothing is selected
            NotFoundError: If the bucket or a selected entry does not exist, or a
                selected entry's item has been deleted from the catalog
        """
        selected = {parse_id(e, "entry ID") for e in selected_entry_ids}
        if not selected:
            raise ValidationError("Select at least one entry to copy")

        entries = self.get_entries(monthly_list_id)
        missing = selected - {e.id for e in entries}
        if missing:
            raise NotFoundError(
                Collection.MONTHLY_LIST_ENTRIES.value, sorted(map(str, missing))[0]
            )

        to_copy = [e for e in entries if e.id in selected]
        with self.data_store.transaction():
            for entry in to_copy:
                if self.data_store.get_record(Collection.ITEMS, entry.item_id) is None:
                    raise NotFoundError(Collection.ITEMS.value, entry.item_id)
            copied = [
                self.list_manager.add_to_list(e.item_id, e.quantity, e.unit_price)
                for e in to_copy
            ]

        logger.info(f"Copied {len(copied)} entries from bucket {monthly_list_id}")
        return copied
