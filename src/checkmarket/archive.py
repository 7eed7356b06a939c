"""Monthly archival of the active shopping list.

Finalizing runs as an ordered sequence of steps:

1. work out the (month, year) bucket from the clock
2. find the bucket or create it
3. copy every active entry into the bucket
4. stamp the bucket's finalized time and refresh its totals
5. clear the active list

Steps 2 to 4 share one store transaction, so a failure in any of them leaves
both the archive and the active list as they were. Step 5 runs only after that
transaction commits. If it fails the entries are already archived, and the
caller can retry with ListManager.clear_all() without finalizing again.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .data_store import Collection, DataStore, DataStoreProtocol
from .errors import StoreError, ValidationError
from .list_manager import ListManager, total
from .models import FinalizeResult, ListEntry, MonthlyList, MonthlyListEntry

logger = logging.getLogger(__name__)


class MonthlyArchiveManager:
    """Moves the active list into its monthly bucket."""

    def __init__(
        self,
        data_store: DataStoreProtocol | None = None,
        list_manager: ListManager | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize archive manager.

        Args:
            data_store: Data store instance. Creates a JSON DataStore if not provided.
            list_manager: Manager of the active list. Built on the same store if not provided.
            clock: Returns the current time. Defaults to the list manager's clock
        """
        self.data_store = data_store or DataStore()
        self.list_manager = list_manager or ListManager(self.data_store, clock=clock)
        self.clock = clock or self.list_manager.clock

    def find_bucket(self, month: int, year: int) -> MonthlyList | None:
        """The bucket for a month, if one exists."""
        buckets = self.data_store.list_records(
            Collection.MONTHLY_LISTS, {"month": month, "year": year}
        )
        return buckets[0] if buckets else None  # type: ignore[return-value]

    def finalize_month(self) -> FinalizeResult:
        """Archive the active list into the current month's bucket.

        A second finalize in the same month reuses the bucket and appends the
        new entries to it; the bucket's item count and total value are then
        recomputed over everything it holds.

        Returns:
            The bucket, how many entries were archived and whether the bucket is new

        Raises:
            ValidationError: If the active list is empty
            StoreError: If the store fails. Before the final clear, nothing has changed
        """
        now = self.clock()
        month, year = now.month, now.year
        entries = self.list_manager.get_entries()
        if not entries:
            raise ValidationError("The active list is empty, nothing to finalize")

        logger.info(f"Finalizing {len(entries)} entries into {year}-{month:02d}")

        with self.data_store.transaction():
            bucket, created = self._resolve_bucket(month, year, entries)
            self._migrate_entries(bucket, entries)
            bucket = self._close_bucket(bucket, now)

        try:
            self.list_manager.clear_all()
        except StoreError:
            logger.error(
                f"Entries archived into {year}-{month:02d} but the active list "
                "was not cleared, clear it to finish"
            )
            raise

        return FinalizeResult(
            monthly_list=bucket, migrated_count=len(entries), created=created
        )

    def _resolve_bucket(
        self, month: int, year: int, entries: list[ListEntry]
    ) -> tuple[MonthlyList, bool]:
        existing = self.find_bucket(month, year)
        if existing is not None:
            logger.info(f"Reusing bucket {existing.id} for {year}-{month:02d}")
            return existing, False

        bucket = MonthlyList(
            month=month,
            year=year,
            items_count=len(entries),
            total_value=total(entries),
            finalized_at=None,
        )
        stored = self.data_store.insert(Collection.MONTHLY_LISTS, bucket)
        logger.info(f"Created bucket {bucket.id} for {year}-{month:02d}")
        return stored, True  # type: ignore[return-value]

    def _migrate_entries(self, bucket: MonthlyList, entries: list[ListEntry]) -> None:
        for entry in entries:
            self.data_store.insert(
                Collection.MONTHLY_LIST_ENTRIES,
                MonthlyListEntry(
                    monthly_list_id=bucket.id,
                    item_id=entry.item_id,
                    quantity=entry.quantity,
                    unit_price=entry.unit_price,
                    brand=entry.brand,
                    purchase_date=entry.purchase_date,
                    purchased=entry.purchased,
                ),
            )
        logger.info(f"Copied {len(entries)} entries into bucket {bucket.id}")

    def _close_bucket(self, bucket: MonthlyList, now: datetime) -> MonthlyList:
        archived = self.data_store.list_records(
            Collection.MONTHLY_LIST_ENTRIES, {"monthly_list_id": bucket.id}
        )
        patch: dict[str, Any] = {
            "items_count": len(archived),
            "total_value": total(archived),  # type: ignore[arg-type]
        }
        if bucket.finalized_at is None:
            patch["finalized_at"] = now
        return self.data_store.update(  # type: ignore[return-value]
            Collection.MONTHLY_LISTS, bucket.id, patch
        )
