"""Output formatting for CLI and programmatic use."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .data_store import JSONEncoder


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False, currency: str = "$"):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
            currency: Currency symbol for prices in Rich mode
        """
        self.json_mode = json_mode
        self.currency = currency
        self.console = Console()

    def money(self, value: float | None) -> str:
        """Format an amount with the configured currency symbol."""
        return f"{self.currency} {value or 0:.2f}"

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "list" in payload:
            self._render_shopping_list(data)
        elif "entry" in payload:
            self._render_entry(data)
        elif "categories" in payload:
            self._render_categories(data)
        elif "items" in payload:
            self._render_items(data)
        elif "monthly_lists" in payload:
            self._render_monthly_lists(data)
        elif "monthly_list" in payload:
            self._render_monthly_list(data)
        elif "copied" in payload:
            self._render_copied(data)

    def _render_shopping_list(self, data: dict) -> None:
        """Render the active list with subtotals and totals."""
        list_data = data["data"]["list"]
        entries = list_data["entries"]

        if not entries:
            self.console.print("[dim]No items on the list[/dim]")
            return

        table = Table(title="Shopping List", show_header=True, header_style="bold cyan")
        table.add_column("", justify="center")
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Category", style="yellow")
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Unit Price", justify="right")
        table.add_column("Subtotal", style="green", justify="right")
        table.add_column("Brand")
        table.add_column("Purchased On")
        table.add_column("ID", style="dim")

        for entry in entries:
            table.add_row(
                "[green]✓[/green]" if entry.get("purchased") else "○",
                entry["item_name"],
                entry.get("category_name") or "-",
                str(entry["quantity"]),
                self.money(entry["unit_price"]) if entry.get("unit_price") else "-",
                self.money(entry["subtotal"]) if entry.get("unit_price") else "-",
                entry.get("brand") or "-",
                entry.get("purchase_date") or "-",
                str(entry["id"]),
            )

        self.console.print(table)

        summary = list_data["summary"]
        self.console.print(
            f"\nItems: {summary['items_count']} ({summary['purchased_count']} purchased)"
        )
        if summary["total_value"] > 0:
            self.console.print(f"[bold]List total: {self.money(summary['total_value'])}[/bold]")
        if summary["purchased_value"] > 0:
            self.console.print(
                f"[bold green]Purchased total: {self.money(summary['purchased_value'])}"
                "[/bold green]"
            )

    def _render_entry(self, data: dict) -> None:
        """Render a single list entry."""
        entry = data["data"]["entry"]

        panel_content = f"""[bold]{entry["item_name"]}[/bold]

Quantity: {entry["quantity"]}
Status: {"purchased" if entry.get("purchased") else "pending"}"""

        if entry.get("unit_price"):
            panel_content += f"\nUnit price: {self.money(entry['unit_price'])}"
            panel_content += f"\nSubtotal: {self.money(entry['subtotal'])}"

        if entry.get("brand"):
            panel_content += f"\nBrand: {entry['brand']}"

        if entry.get("purchase_date"):
            panel_content += f"\nPurchased on: {entry['purchase_date']}"

        panel = Panel(panel_content, title="List Entry", border_style="green")
        self.console.print(panel)

    def _render_categories(self, data: dict) -> None:
        """Render categories."""
        categories = data["data"]["categories"]

        if not categories:
            self.console.print("[dim]No categories yet[/dim]")
            return

        table = Table(title="Categories", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="cyan")
        table.add_column("ID", style="dim")

        for category in categories:
            table.add_row(category["name"], str(category["id"]))

        self.console.print(table)

    def _render_items(self, data: dict) -> None:
        """Render catalog items."""
        items = data["data"]["items"]

        if not items:
            self.console.print("[dim]No items yet[/dim]")
            return

        table = Table(title="Items", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="cyan")
        table.add_column("Category", style="yellow")
        table.add_column("Unit")
        table.add_column("ID", style="dim")

        for item in items:
            table.add_row(
                item["name"],
                item.get("category_name") or "-",
                item.get("unit") or "-",
                str(item["id"]),
            )

        self.console.print(table)

    def _render_monthly_lists(self, data: dict) -> None:
        """Render the archive, newest month first."""
        buckets = data["data"]["monthly_lists"]

        if not buckets:
            self.console.print("[dim]No finalized lists yet. Run 'finalize' to archive one.[/dim]")
            return

        table = Table(title="History", show_header=True, header_style="bold cyan")
        table.add_column("Month", style="cyan")
        table.add_column("Items", justify="right")
        table.add_column("Total", style="green", justify="right")
        table.add_column("Finalized")
        table.add_column("ID", style="dim")

        for bucket in buckets:
            table.add_row(
                f"{bucket['month_name']} {bucket['year']}",
                str(bucket.get("items_count") or 0),
                self.money(bucket.get("total_value")),
                (bucket.get("finalized_at") or "N/A")[:10],
                str(bucket["id"]),
            )

        self.console.print(table)

    def _render_monthly_list(self, data: dict) -> None:
        """Render one archived month with its entries."""
        detail = data["data"]["monthly_list"]
        bucket = detail["monthly_list"]
        entries = detail["entries"]

        self.console.print(
            Panel(
                f"""[bold]{detail["month_name"]} {bucket["year"]}[/bold]

Finalized: {(bucket.get("finalized_at") or "N/A")[:10]}
Items: {bucket.get("items_count") or 0}
Total: {self.money(bucket.get("total_value"))}
{detail["purchased_count"]} of {len(entries)} purchased""",
                title="Monthly List",
                border_style="cyan",
            )
        )

        if not entries:
            self.console.print("[dim]No entries in this list[/dim]")
            return

        table = Table(show_header=True)
        table.add_column("", justify="center")
        table.add_column("Item")
        table.add_column("Qty", justify="right")
        table.add_column("Subtotal", justify="right")
        table.add_column("Brand")
        table.add_column("Purchased On")
        table.add_column("ID", style="dim")

        for entry in entries:
            table.add_row(
                "[green]✓[/green]" if entry.get("purchased") else "○",
                entry["item_name"],
                str(entry["quantity"]),
                self.money(entry["subtotal"]),
                entry.get("brand") or "-",
                entry.get("purchase_date") or "-",
                str(entry["id"]),
            )

        self.console.print(table)

    def _render_copied(self, data: dict) -> None:
        """Render entries copied back into the active list."""
        copied = data["data"]["copied"]
        for entry in copied:
            self.console.print(f"  + {entry['item_name']} x{entry['quantity']}")

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
