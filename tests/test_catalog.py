"""Tests for catalog operations."""

from uuid import uuid4

import pytest

from checkmarket.errors import NotFoundError, ValidationError
from checkmarket.models import ITEM_NOT_FOUND_LABEL


class TestCategories:
    """Tests for category management."""

    def test_add_category(self, catalog):
        category = catalog.add_category("  Produce ")
        assert category.name == "Produce"
        assert [c.name for c in catalog.list_categories()] == ["Produce"]

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_add_category_requires_name(self, catalog, name):
        with pytest.raises(ValidationError, match="name is required"):
            catalog.add_category(name)
        assert catalog.list_categories() == []

    def test_categories_sorted_by_name(self, catalog):
        for name in ["Snacks", "bakery", "Dairy"]:
            catalog.add_category(name)
        assert [c.name for c in catalog.list_categories()] == ["bakery", "Dairy", "Snacks"]

    def test_edit_category(self, catalog):
        category = catalog.add_category("Produce")
        renamed = catalog.edit_category(str(category.id), "Fruit & Veg")
        assert renamed.id == category.id
        assert catalog.category_name(category.id) == "Fruit & Veg"

    def test_edit_missing_category(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.edit_category(uuid4(), "Anything")

    def test_edit_category_requires_name(self, catalog):
        category = catalog.add_category("Produce")
        with pytest.raises(ValidationError):
            catalog.edit_category(category.id, " ")

    def test_category_name_unresolved(self, catalog):
        assert catalog.category_name(uuid4()) == ""
        assert catalog.category_name(None) == ""


class TestDeleteCategory:
    """Tests for deleting a category and its items."""

    def test_delete_removes_items(self, catalog, items):
        removed = catalog.delete_category(items["produce"].id)
        assert removed == 2
        assert [i.name for i in catalog.list_items()] == ["Milk"]
        assert [c.name for c in catalog.list_categories()] == ["Dairy"]

    def test_delete_empty_category(self, catalog):
        category = catalog.add_category("Empty")
        assert catalog.delete_category(category.id) == 0

    def test_delete_missing_category(self, catalog, items):
        with pytest.raises(NotFoundError):
            catalog.delete_category(uuid4())
        assert len(catalog.list_items()) == 3

    def test_entries_survive_as_orphans(self, catalog, list_manager, items):
        """Entries for deleted items stay and show a placeholder label."""
        entry = list_manager.add_to_list(items["apples"].id)
        catalog.delete_category(items["produce"].id)

        assert [e.id for e in list_manager.get_entries()] == [entry.id]
        assert catalog.item_label(entry.item_id) == ITEM_NOT_FOUND_LABEL


class TestItems:
    """Tests for item management."""

    def test_add_item(self, catalog, items):
        assert items["apples"].unit == "kg"
        assert items["apples"].category_id == items["produce"].id
        assert items["bananas"].unit is None

    def test_items_sorted_by_name(self, catalog, items):
        assert [i.name for i in catalog.list_items()] == ["Apples", "bananas", "Milk"]

    def test_list_items_by_category(self, catalog, items):
        found = catalog.list_items(items["dairy"].id)
        assert [i.name for i in found] == ["Milk"]

    def test_add_item_requires_category(self, catalog):
        with pytest.raises(ValidationError, match="Category is required"):
            catalog.add_item("Apples", None)

    def test_add_item_unknown_category(self, catalog):
        with pytest.raises(ValidationError, match="does not exist"):
            catalog.add_item("Apples", uuid4())
        assert catalog.list_items() == []

    def test_add_item_requires_name(self, catalog, items):
        with pytest.raises(ValidationError):
            catalog.add_item("", items["produce"].id)

    def test_blank_unit_is_none(self, catalog, items):
        item = catalog.add_item("Salt", items["produce"].id, "  ")
        assert item.unit is None

    def test_edit_item(self, catalog, items):
        updated = catalog.edit_item(items["milk"].id, "Oat milk", items["produce"].id, None)
        assert updated.name == "Oat milk"
        assert updated.category_id == items["produce"].id
        assert updated.unit is None

    def test_edit_item_unknown_category(self, catalog, items):
        with pytest.raises(ValidationError):
            catalog.edit_item(items["milk"].id, "Milk", uuid4())
        assert catalog.resolve_item(items["milk"].id).category_id == items["dairy"].id

    def test_edit_missing_item(self, catalog, items):
        with pytest.raises(NotFoundError):
            catalog.edit_item(uuid4(), "Ghost", items["dairy"].id)

    def test_delete_item(self, catalog, items):
        catalog.delete_item(items["milk"].id)
        assert catalog.resolve_item(items["milk"].id) is None
        assert catalog.item_label(items["milk"].id) == ITEM_NOT_FOUND_LABEL

    def test_delete_missing_item(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.delete_item(uuid4())

    def test_item_label(self, catalog, items):
        assert catalog.item_label(str(items["apples"].id)) == "Apples"
