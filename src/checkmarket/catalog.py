"""Catalog of categories and items."""

import logging
from uuid import UUID

from .data_store import Collection, DataStore, DataStoreProtocol
from .errors import NotFoundError, ValidationError
from .models import ITEM_NOT_FOUND_LABEL, Category, Item, parse_id

logger = logging.getLogger(__name__)


def _clean_name(name: str | None, label: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} name is required")
    return cleaned


def _clean_unit(unit: str | None) -> str | None:
    cleaned = (unit or "").strip()
    return cleaned or None


class CatalogStore:
    """Manages categories and the items that belong to them."""

    def __init__(self, data_store: DataStoreProtocol | None = None):
        """Initialize catalog store.

        Args:
            data_store: Data store instance. Creates a JSON DataStore if not provided.
        """
        self.data_store = data_store or DataStore()

    # --- Categories ---

    def list_categories(self) -> list[Category]:
        """All categories, by name."""
        return self.data_store.list_records(Collection.CATEGORIES)  # type: ignore[return-value]

    def resolve_category(self, category_id: UUID | str | None) -> Category | None:
        """Look up a category, returning None when it does not exist."""
        if not category_id:
            return None
        return self.data_store.get_record(  # type: ignore[return-value]
            Collection.CATEGORIES, parse_id(category_id, "category ID")
        )

    def category_name(self, category_id: UUID | str | None) -> str:
        """Display name of a category, empty when it does not resolve."""
        category = self.resolve_category(category_id)
        return category.name if category else ""

    def add_category(self, name: str) -> Category:
        """Create a category.

        Raises:
            ValidationError: If the name is empty
        """
        category = Category(name=_clean_name(name, "Category"))
        stored = self.data_store.insert(Collection.CATEGORIES, category)
        logger.info(f"Added category '{category.name}' ({category.id})")
        return stored  # type: ignore[return-value]

    def edit_category(self, category_id: UUID | str, name: str) -> Category:
        """Rename a category.

        Raises:
            ValidationError: If the name is empty
            NotFoundError: If the category does not exist
        """
        category_id = parse_id(category_id, "category ID")
        stored = self.data_store.update(
            Collection.CATEGORIES, category_id, {"name": _clean_name(name, "Category")}
        )
        logger.info(f"Renamed category {category_id}")
        return stored  # type: ignore[return-value]

    def delete_category(self, category_id: UUID | str) -> int:
        """Delete a category together with every item in it.

        List entries and archived entries that point at the deleted items are
        left alone and show up as "Item not found".

        Returns:
            Number of items deleted along with the category

        Raises:
            NotFoundError: If the category does not exist
        """
        category_id = parse_id(category_id, "category ID")

        with self.data_store.transaction():
            if self.data_store.get_record(Collection.CATEGORIES, category_id) is None:
                raise NotFoundError(Collection.CATEGORIES.value, category_id)
            removed = self.data_store.delete_where(
                Collection.ITEMS, {"category_id": category_id}
            )
            self.data_store.delete(Collection.CATEGORIES, category_id)

        logger.info(f"Deleted category {category_id} and {removed} items")
        return removed

    # --- Items ---

    def list_items(self, category_id: UUID | str | None = None) -> list[Item]:
        """All items, by name, optionally restricted to one category."""
        filters = None
        if category_id:
            filters = {"category_id": parse_id(category_id, "category ID")}
        return self.data_store.list_records(Collection.ITEMS, filters)  # type: ignore[return-value]

    def resolve_item(self, item_id: UUID | str | None) -> Item | None:
        """Look up an item, returning None when it does not exist."""
        if not item_id:
            return None
        return self.data_store.get_record(  # type: ignore[return-value]
            Collection.ITEMS, parse_id(item_id, "item ID")
        )

    def item_label(self, item_id: UUID | str | None) -> str:
        """Display name of an item, or a placeholder for dangling references."""
        item = self.resolve_item(item_id)
        return item.name if item else ITEM_NOT_FOUND_LABEL

    def _require_category(self, category_id: UUID | str | None) -> UUID:
        if not category_id:
            raise ValidationError("Category is required")
        category_id = parse_id(category_id, "category ID")
        if self.data_store.get_record(Collection.CATEGORIES, category_id) is None:
            raise ValidationError(f"Category '{category_id}' does not exist")
        return category_id

    def add_item(
        self, name: str, category_id: UUID | str, unit: str | None = None
    ) -> Item:
        """Create an item in an existing category.

        Args:
            name: Item name
            category_id: Category the item belongs to
            unit: Unit of measurement

        Raises:
            ValidationError: If the name is empty or the category does not exist
        """
        item = Item(
            name=_clean_name(name, "Item"),
            category_id=self._require_category(category_id),
            unit=_clean_unit(unit),
        )
        stored = self.data_store.insert(Collection.ITEMS, item)
        logger.info(f"Added item '{item.name}' ({item.id})")
        return stored  # type: ignore[return-value]

    def edit_item(
        self,
        item_id: UUID | str,
        name: str,
        category_id: UUID | str,
        unit: str | None = None,
    ) -> Item:
        """Replace an item's name, category and unit.

        Raises:
            ValidationError: If the name is empty or the category does not exist
            NotFoundError: If the item does not exist
        """
        item_id = parse_id(item_id, "item ID")
        patch = {
            "name": _clean_name(name, "Item"),
            "category_id": self._require_category(category_id),
            "unit": _clean_unit(unit),
        }
        stored = self.data_store.update(Collection.ITEMS, item_id, patch)
        logger.info(f"Updated item {item_id}")
        return stored  # type: ignore[return-value]

    def delete_item(self, item_id: UUID | str) -> None:
        """Delete an item. Entries that reference it are kept.

        Raises:
            NotFoundError: If the item does not exist
        """
        item_id = parse_id(item_id, "item ID")
        self.data_store.delete(Collection.ITEMS, item_id)
        logger.info(f"Deleted item {item_id}")
