"""Shared test fixtures for Checkmarket."""

from datetime import datetime

import pytest

from checkmarket.archive import MonthlyArchiveManager
from checkmarket.catalog import CatalogStore
from checkmarket.data_store import BackendType, DataStore, create_data_store
from checkmarket.history import HistoryBrowser
from checkmarket.list_manager import ListManager
from checkmarket.session import ShoppingSession
from checkmarket.sqlite_store import SQLiteStore

FIXED_NOW = datetime(2026, 10, 19, 12, 0)


class FakeClock:
    """Callable clock whose time the test controls."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def json_store(temp_data_dir):
    """Create a JSON DataStore with temporary directory."""
    return DataStore(data_dir=temp_data_dir)


@pytest.fixture
def sqlite_store(tmp_path):
    """Create a SQLite store with a temporary database."""
    return SQLiteStore(db_path=tmp_path / "test.db")


@pytest.fixture(params=[BackendType.JSON, BackendType.SQLITE], ids=["json", "sqlite"])
def data_store(request, temp_data_dir):
    """A data store of each backend."""
    return create_data_store(backend=request.param, data_dir=temp_data_dir)


@pytest.fixture
def clock():
    """A clock fixed at 2026-10-19 12:00."""
    return FakeClock()


@pytest.fixture
def catalog(data_store):
    """Create a CatalogStore with temporary storage."""
    return CatalogStore(data_store=data_store)


@pytest.fixture
def list_manager(data_store, clock):
    """Create a ListManager with temporary storage."""
    return ListManager(data_store=data_store, clock=clock)


@pytest.fixture
def archive(data_store, list_manager, clock):
    """Create a MonthlyArchiveManager sharing the list manager's store."""
    return MonthlyArchiveManager(data_store=data_store, list_manager=list_manager, clock=clock)


@pytest.fixture
def history(data_store, list_manager, catalog):
    """Create a HistoryBrowser sharing the list manager's store."""
    return HistoryBrowser(data_store=data_store, list_manager=list_manager, catalog=catalog)


@pytest.fixture
def items(catalog):
    """A small catalog: Produce (Apples, bananas) and Dairy (Milk)."""
    produce = catalog.add_category("Produce")
    dairy = catalog.add_category("Dairy")
    return {
        "produce": produce,
        "dairy": dairy,
        "apples": catalog.add_item("Apples", produce.id, "kg"),
        "bananas": catalog.add_item("bananas", produce.id),
        "milk": catalog.add_item("Milk", dairy.id, "l"),
    }


@pytest.fixture
def session(data_store, clock):
    """A refreshed ShoppingSession."""
    with ShoppingSession(data_store, clock=clock) as s:
        yield s
