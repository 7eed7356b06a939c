"""CLI entry point for Checkmarket."""

import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from pydantic import BaseModel

from .config import ConfigManager
from .data_store import BackendType, create_data_store
from .errors import CheckmarketError, NotFoundError, StoreError, ValidationError
from .history import month_name
from .list_manager import UNSET, subtotal
from .models import EntryStatus, Item, ListEntry
from .output_formatter import OutputFormatter
from .session import ShoppingSession

app = typer.Typer(
    name="checkmarket",
    help="Household shopping list with monthly history",
    no_args_is_help=True,
)

# Global state for formatter, config and session (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
session: ShoppingSession | None = None

ERROR_CODES: dict[type[CheckmarketError], str] = {
    ValidationError: "VALIDATION_ERROR",
    NotFoundError: "NOT_FOUND",
    StoreError: "STORE_ERROR",
}


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_session() -> ShoppingSession:
    """Get or create the ShoppingSession using config values."""
    global session
    if session is None:
        cfg = get_config()
        data_store = create_data_store(
            backend=BackendType(cfg.data.backend),
            data_dir=cfg.data.storage_dir,
            timeout=cfg.data.sqlite_timeout,
        )
        session = ShoppingSession(data_store)
        session.refresh()
    return session


def fail(error: CheckmarketError) -> NoReturn:
    """Report a core error and exit with status 1."""
    formatter.error(str(error), error_code=ERROR_CODES.get(type(error)))
    raise typer.Exit(code=1)


def dump(record: BaseModel) -> dict[str, Any]:
    return record.model_dump(mode="json")


def lookup_id(records: list[Any], value: str) -> str:
    """Accept a record name in place of its ID.

    Returns the ID of the record whose name matches case-insensitively, or
    the value unchanged so it is parsed as an ID.
    """
    wanted = value.strip().lower()
    for record in records:
        if record.name.lower() == wanted:
            return str(record.id)
    return value


def item_payload(s: ShoppingSession, item: Item) -> dict[str, Any]:
    data = dump(item)
    data["category_name"] = s.category_name(data["category_id"])
    return data


def entry_payload(s: ShoppingSession, entry: ListEntry) -> dict[str, Any]:
    data = dump(entry)
    item = s.resolve_item(entry.item_id)
    data["item_name"] = s.item_label(entry.item_id)
    data["category_name"] = s.category_name(item.category_id) if item else ""
    data["subtotal"] = subtotal(entry)
    return data


@app.callback()
def main(
    ctx: typer.Context,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    backend: Annotated[
        BackendType | None, typer.Option("--backend", help="Storage backend")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Checkmarket CLI - plan the month's shopping and keep its history."""
    global formatter, config, session

    # Load config early
    formatter = OutputFormatter(json_mode=json_output)
    try:
        config = ConfigManager()
    except CheckmarketError as e:
        fail(e)
    formatter = OutputFormatter(json_mode=json_output, currency=config.display.currency)

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.logging.level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # CLI options override config, which overrides defaults
    if data_dir:
        config.data.storage_dir = data_dir
    if backend:
        config.data.backend = backend.value

    session = None
    try:
        ctx.call_on_close(get_session().close)
    except CheckmarketError as e:
        fail(e)


# Category subcommand group
category_app = typer.Typer(help="Category commands")
app.add_typer(category_app, name="category")


@category_app.command("add")
def add_category(
    name: Annotated[str, typer.Argument(help="Category name")],
) -> None:
    """Add a category."""
    try:
        s = get_session()
        category = s.add_category(name)
        output_data = {
            "success": True,
            "message": f"Added category '{category.name}'",
            "data": {"category": dump(category)},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@category_app.command("edit")
def edit_category(
    category: Annotated[str, typer.Argument(help="Category ID or name")],
    name: Annotated[str, typer.Argument(help="New name")],
) -> None:
    """Rename a category."""
    try:
        s = get_session()
        updated = s.edit_category(lookup_id(s.categories, category), name)
        output_data = {
            "success": True,
            "message": f"Renamed category to '{updated.name}'",
            "data": {"category": dump(updated)},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@category_app.command("delete")
def delete_category(
    category: Annotated[str, typer.Argument(help="Category ID or name")],
) -> None:
    """Delete a category and every item in it."""
    try:
        s = get_session()
        category_id = lookup_id(s.categories, category)
        removed = s.delete_category(category_id)
        formatter.success(
            f"Deleted category and {removed} items",
            {"category_id": category_id, "items_removed": removed},
        )
    except CheckmarketError as e:
        fail(e)


@category_app.command("list")
def list_categories() -> None:
    """List categories by name."""
    s = get_session()
    formatter.output(
        {"success": True, "data": {"categories": [dump(c) for c in s.categories]}}
    )


# Item subcommand group
item_app = typer.Typer(help="Catalog item commands")
app.add_typer(item_app, name="item")


@item_app.command("add")
def add_item(
    name: Annotated[str, typer.Argument(help="Item name")],
    category: Annotated[str, typer.Option("--category", "-c", help="Category ID or name")],
    unit: Annotated[str | None, typer.Option("--unit", "-u", help="Unit of measurement")] = None,
) -> None:
    """Add an item to the catalog."""
    try:
        s = get_session()
        item = s.add_item(name, lookup_id(s.categories, category), unit)
        output_data = {
            "success": True,
            "message": f"Added item '{item.name}'",
            "data": {"item": item_payload(s, item)},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@item_app.command("edit")
def edit_item(
    item: Annotated[str, typer.Argument(help="Item ID or name")],
    name: Annotated[str, typer.Argument(help="New name")],
    category: Annotated[str, typer.Option("--category", "-c", help="Category ID or name")],
    unit: Annotated[str | None, typer.Option("--unit", "-u", help="Unit of measurement")] = None,
) -> None:
    """Replace an item's name, category and unit."""
    try:
        s = get_session()
        updated = s.edit_item(
            lookup_id(s.items, item), name, lookup_id(s.categories, category), unit
        )
        output_data = {
            "success": True,
            "message": f"Updated item '{updated.name}'",
            "data": {"item": item_payload(s, updated)},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@item_app.command("delete")
def delete_item(
    item: Annotated[str, typer.Argument(help="Item ID or name")],
) -> None:
    """Delete an item from the catalog."""
    try:
        s = get_session()
        item_id = lookup_id(s.items, item)
        s.delete_item(item_id)
        formatter.success("Deleted item", {"item_id": item_id})
    except CheckmarketError as e:
        fail(e)


@item_app.command("list")
def list_catalog_items(
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category ID or name")
    ] = None,
) -> None:
    """List catalog items by name."""
    try:
        s = get_session()
        if category:
            items = s.catalog.list_items(lookup_id(s.categories, category))
        else:
            items = s.items
        formatter.output(
            {"success": True, "data": {"items": [item_payload(s, i) for i in items]}}
        )
    except CheckmarketError as e:
        fail(e)


# Active list commands


@app.command()
def add(
    item: Annotated[str, typer.Argument(help="Item ID or name to put on the list")],
    quantity: Annotated[str, typer.Option("--quantity", "-q", help="Quantity to buy")] = "1",
    price: Annotated[str | None, typer.Option("--price", "-p", help="Unit price")] = None,
) -> None:
    """Add an item to the shopping list."""
    try:
        s = get_session()
        entry = s.add_to_list(lookup_id(s.items, item), quantity, price)
        payload = entry_payload(s, entry)
        output_data = {
            "success": True,
            "message": f"Added {payload['item_name']} (x{entry.quantity}) to the list",
            "data": {"entry": payload},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@app.command()
def update(
    entry_id: Annotated[str, typer.Argument(help="Entry ID to update")],
    quantity: Annotated[str | None, typer.Option("--quantity", "-q", help="New quantity")] = None,
    price: Annotated[str | None, typer.Option("--price", "-p", help="New unit price")] = None,
    clear_price: Annotated[bool, typer.Option("--clear-price", help="Remove the price")] = False,
    brand: Annotated[str | None, typer.Option("--brand", "-b", help="Brand bought")] = None,
    purchase_date: Annotated[
        str | None, typer.Option("--date", help="Purchase date (YYYY-MM-DD)")
    ] = None,
    clear_date: Annotated[
        bool, typer.Option("--clear-date", help="Remove the purchase date")
    ] = False,
    purchased: Annotated[
        bool | None, typer.Option("--purchased/--pending", help="Purchase status")
    ] = None,
) -> None:
    """Update fields of a list entry."""
    try:
        if price is not None and clear_price:
            raise ValidationError("Use either --price or --clear-price")
        if purchase_date is not None and clear_date:
            raise ValidationError("Use either --date or --clear-date")

        s = get_session()
        entry = s.update_entry(
            entry_id,
            quantity=UNSET if quantity is None else quantity,
            unit_price=None if clear_price else (UNSET if price is None else price),
            brand=UNSET if brand is None else brand,
            purchase_date=None if clear_date else (
                UNSET if purchase_date is None else purchase_date
            ),
            purchased=UNSET if purchased is None else purchased,
        )
        payload = entry_payload(s, entry)
        output_data = {
            "success": True,
            "message": f"Updated {payload['item_name']}",
            "data": {"entry": payload},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@app.command()
def toggle(
    entry_id: Annotated[str, typer.Argument(help="Entry ID to toggle")],
) -> None:
    """Flip an entry between purchased and pending."""
    try:
        s = get_session()
        entry = s.toggle_purchased(entry_id)
        payload = entry_payload(s, entry)
        status = "purchased" if entry.purchased else "pending"
        output_data = {
            "success": True,
            "message": f"Marked {payload['item_name']} as {status}",
            "data": {"entry": payload},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


@app.command()
def remove(
    entry_id: Annotated[str, typer.Argument(help="Entry ID to remove")],
) -> None:
    """Remove an entry from the shopping list."""
    try:
        get_session().remove_entry(entry_id)
        formatter.success("Removed entry from the list", {"entry_id": entry_id})
    except CheckmarketError as e:
        fail(e)


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Remove every entry from the shopping list."""
    try:
        if not yes and not formatter.json_mode:
            typer.confirm("Clear the whole shopping list?", abort=True)
        removed = get_session().clear_all()
        formatter.success(f"Cleared {removed} entries", {"removed": removed})
    except CheckmarketError as e:
        fail(e)


@app.command(name="list")
def list_entries(
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category ID or name")
    ] = None,
    status: Annotated[
        EntryStatus, typer.Option("--status", help="Filter by status")
    ] = EntryStatus.ALL,
    search: Annotated[
        str | None, typer.Option("--search", "-s", help="Filter by item name")
    ] = None,
) -> None:
    """View the shopping list with subtotals and totals."""
    try:
        s = get_session()
        category_id = lookup_id(s.categories, category) if category else None
        entries = s.filtered_entries(category_id=category_id, status=status, search_term=search)
        output_data = {
            "success": True,
            "data": {
                "list": {
                    "entries": [entry_payload(s, e) for e in entries],
                    "summary": dump(s.summary(entries)),
                    "total_entries": len(s.active_list),
                }
            },
        }
        formatter.output(output_data)
    except CheckmarketError as e:
        fail(e)


@app.command()
def finalize() -> None:
    """Archive the shopping list into this month's history and clear it."""
    try:
        result = get_session().finalize_month()
        bucket = result.monthly_list
        verb = "Created" if result.created else "Added to"
        formatter.success(
            f"{verb} {bucket.year}-{bucket.month:02d} with {result.migrated_count} entries",
            {"finalize": dump(result)},
        )
    except CheckmarketError as e:
        fail(e)


# History subcommand group
history_app = typer.Typer(help="Monthly history commands")
app.add_typer(history_app, name="history")


@history_app.command("list")
def list_history() -> None:
    """List finalized months, newest first."""
    try:
        buckets = []
        for bucket in get_session().history.list_monthly_lists():
            data = dump(bucket)
            data["month_name"] = month_name(bucket.month)
            buckets.append(data)
        formatter.output({"success": True, "data": {"monthly_lists": buckets}})
    except CheckmarketError as e:
        fail(e)


@history_app.command("show")
def show_history(
    monthly_list_id: Annotated[str, typer.Argument(help="Monthly list ID")],
) -> None:
    """Show one finalized month with its entries."""
    try:
        s = get_session()
        summary = s.history.summarize(monthly_list_id)
        detail = dump(summary)
        detail["entries"] = [entry_payload(s, e) for e in summary.entries]
        formatter.output({"success": True, "data": {"monthly_list": detail}})
    except CheckmarketError as e:
        fail(e)


@history_app.command("copy")
def copy_history(
    monthly_list_id: Annotated[str, typer.Argument(help="Monthly list ID")],
    entry_ids: Annotated[
        list[str] | None, typer.Argument(help="Archived entry IDs to copy")
    ] = None,
    select_all: Annotated[
        bool, typer.Option("--all", "-a", help="Copy every entry matching --search")
    ] = False,
    search: Annotated[
        str | None, typer.Option("--search", "-s", help="Limit --all to item names")
    ] = None,
) -> None:
    """Copy archived entries back onto the shopping list."""
    try:
        s = get_session()
        selection = s.history.selection(monthly_list_id)
        selection.search(search)
        if select_all:
            selection.select_all()
        for entry_id in entry_ids or []:
            selection.toggle(entry_id, checked=True)

        copied = s.copy_selected(monthly_list_id, selection.selected_ids)
        output_data = {
            "success": True,
            "message": f"Copied {len(copied)} entries to the list",
            "data": {"copied": [entry_payload(s, e) for e in copied]},
        }
        formatter.output(output_data, output_data["message"])
    except CheckmarketError as e:
        fail(e)


if __name__ == "__main__":
    app()
