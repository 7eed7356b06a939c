"""Tests for monthly finalization."""

from datetime import date, datetime

import pytest

from checkmarket.data_store import Collection
from checkmarket.errors import StoreError, ValidationError


def archived_entries(data_store, bucket_id):
    return data_store.list_records(
        Collection.MONTHLY_LIST_ENTRIES, {"monthly_list_id": bucket_id}
    )


@pytest.fixture
def filled_list(list_manager, items):
    """Active list with three entries, one purchased with brand and date."""
    list_manager.add_to_list(items["milk"].id, 2, 1.25)
    apples = list_manager.add_to_list(items["apples"].id, 3, 2.0)
    list_manager.update_entry(apples.id, purchased=True, brand="Orchard")
    list_manager.add_to_list(items["bananas"].id)
    return list_manager.get_entries()


class TestFinalizeMonth:
    """Tests for archiving the active list."""

    def test_empty_list_rejected(self, archive, data_store):
        with pytest.raises(ValidationError, match="empty"):
            archive.finalize_month()
        assert data_store.list_records(Collection.MONTHLY_LISTS) == []

    def test_creates_bucket_for_clock_month(self, archive, filled_list):
        result = archive.finalize_month()
        bucket = result.monthly_list
        assert result.created is True
        assert result.migrated_count == 3
        assert (bucket.month, bucket.year) == (10, 2026)
        assert bucket.items_count == 3
        assert bucket.total_value == 8.5
        assert bucket.finalized_at == datetime(2026, 10, 19, 12, 0)

    def test_two_priced_entries(self, archive, list_manager, data_store, items):
        list_manager.add_to_list(items["milk"].id, 2, 5)
        list_manager.add_to_list(items["apples"].id, 1, 3)

        bucket = archive.finalize_month().monthly_list

        assert (bucket.month, bucket.year) == (10, 2026)
        assert bucket.items_count == 2
        assert bucket.total_value == 13.0
        assert len(archived_entries(data_store, bucket.id)) == 2
        assert list_manager.get_entries() == []

    def test_entries_copied_verbatim(self, archive, data_store, filled_list):
        bucket = archive.finalize_month().monthly_list
        archived = archived_entries(data_store, bucket.id)

        assert len(archived) == len(filled_list)
        for original, copy in zip(filled_list, archived):
            assert copy.id != original.id
            assert copy.monthly_list_id == bucket.id
            assert copy.item_id == original.item_id
            assert copy.quantity == original.quantity
            assert copy.unit_price == original.unit_price
            assert copy.brand == original.brand
            assert copy.purchase_date == original.purchase_date
            assert copy.purchased == original.purchased

        apples = next(e for e in archived if e.brand == "Orchard")
        assert apples.purchased is True
        assert apples.purchase_date == date(2026, 10, 19)

    def test_active_list_cleared(self, archive, list_manager, filled_list):
        archive.finalize_month()
        assert list_manager.get_entries() == []

    def test_repeat_finalize_appends(self, archive, list_manager, data_store, items, filled_list):
        """A second finalize in the same month reuses the bucket."""
        first = archive.finalize_month()
        list_manager.add_to_list(items["milk"].id, 1, 4.0)

        second = archive.finalize_month()
        bucket = second.monthly_list

        assert second.created is False
        assert second.migrated_count == 1
        assert bucket.id == first.monthly_list.id
        assert len(data_store.list_records(Collection.MONTHLY_LISTS)) == 1
        assert len(archived_entries(data_store, bucket.id)) == 4
        assert bucket.items_count == 4
        assert bucket.total_value == 12.5

    def test_repeat_finalize_keeps_first_finalized_at(
        self, archive, list_manager, clock, items, filled_list
    ):
        first_now = clock.now
        archive.finalize_month()
        clock.now = datetime(2026, 10, 28, 9, 0)
        list_manager.add_to_list(items["milk"].id)
        bucket = archive.finalize_month().monthly_list
        assert bucket.finalized_at == first_now

    def test_new_month_new_bucket(
        self, archive, list_manager, data_store, clock, items, filled_list
    ):
        archive.finalize_month()
        clock.now = datetime(2026, 11, 2, 8, 0)
        list_manager.add_to_list(items["milk"].id)

        result = archive.finalize_month()
        assert result.created is True
        assert (result.monthly_list.month, result.monthly_list.year) == (11, 2026)
        assert len(data_store.list_records(Collection.MONTHLY_LISTS)) == 2

    def test_year_boundary(self, archive, list_manager, clock, items):
        clock.now = datetime(2027, 1, 1, 0, 5)
        list_manager.add_to_list(items["milk"].id)
        bucket = archive.finalize_month().monthly_list
        assert (bucket.month, bucket.year) == (1, 2027)

    def test_find_bucket(self, archive, filled_list):
        bucket = archive.finalize_month().monthly_list
        assert archive.find_bucket(10, 2026).id == bucket.id
        assert archive.find_bucket(9, 2026) is None


class TestFinalizeFailures:
    """Tests for failures part way through finalizing."""

    def test_migration_failure_rolls_back(
        self, archive, data_store, list_manager, monkeypatch, filled_list
    ):
        """A failed copy leaves no bucket and the active list intact."""
        insert = data_store.insert
        calls = {"entries": 0}

        def failing_insert(collection, record):
            if collection == Collection.MONTHLY_LIST_ENTRIES:
                calls["entries"] += 1
                if calls["entries"] == 2:
                    raise StoreError("disk full")
            return insert(collection, record)

        monkeypatch.setattr(data_store, "insert", failing_insert)

        with pytest.raises(StoreError, match="disk full"):
            archive.finalize_month()

        assert data_store.list_records(Collection.MONTHLY_LISTS) == []
        assert data_store.list_records(Collection.MONTHLY_LIST_ENTRIES) == []
        assert [e.id for e in list_manager.get_entries()] == [e.id for e in filled_list]

    def test_clear_failure_keeps_archive(
        self, archive, data_store, list_manager, monkeypatch, filled_list
    ):
        """If clearing fails the entries are archived and clearing can be retried."""
        clear_all = list_manager.clear_all

        def failing_clear():
            raise StoreError("locked")

        monkeypatch.setattr(list_manager, "clear_all", failing_clear)

        with pytest.raises(StoreError, match="locked"):
            archive.finalize_month()

        bucket = archive.find_bucket(10, 2026)
        assert bucket is not None
        assert bucket.finalized_at == datetime(2026, 10, 19, 12, 0)
        assert len(archived_entries(data_store, bucket.id)) == 3
        assert len(list_manager.get_entries()) == 3

        assert clear_all() == 3
        assert list_manager.get_entries() == []
