"""Checkmarket - Household shopping list with monthly history."""

from .archive import MonthlyArchiveManager
from .catalog import CatalogStore
from .config import ConfigManager
from .data_store import BackendType, Collection, create_data_store, DataStore
from .errors import CheckmarketError, NotFoundError, StoreError, ValidationError
from .history import CopySelection, HistoryBrowser, month_name
from .list_manager import UNSET, ListManager
from .models import (
    Category,
    EntryStatus,
    FinalizeResult,
    HistorySummary,
    Item,
    ListEntry,
    ListSummary,
    MonthlyList,
    MonthlyListEntry,
)
from .output_formatter import OutputFormatter
from .session import ShoppingSession
from .sqlite_store import SQLiteStore

__version__ = "0.1.0"

__all__ = [
    "BackendType",
    "CatalogStore",
    "Category",
    "CheckmarketError",
    "Collection",
    "ConfigManager",
    "CopySelection",
    "create_data_store",
    "DataStore",
    "EntryStatus",
    "FinalizeResult",
    "HistoryBrowser",
    "HistorySummary",
    "Item",
    "ListEntry",
    "ListManager",
    "ListSummary",
    "month_name",
    "MonthlyArchiveManager",
    "MonthlyList",
    "MonthlyListEntry",
    "NotFoundError",
    "OutputFormatter",
    "SQLiteStore",
    "ShoppingSession",
    "StoreError",
    "UNSET",
    "ValidationError",
]
