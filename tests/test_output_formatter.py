"""Tests for output formatting."""

import json
import re
from datetime import date, datetime
from io import StringIO
from uuid import uuid4

import pytest
from rich.console import Console

from checkmarket.output_formatter import JSONEncoder, OutputFormatter


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    ansi_escape = re.compile(r"\x1b\[[0-9;]*m")
    return ansi_escape.sub("", text)


@pytest.fixture
def rich_formatter():
    """Rich formatter writing to a buffer."""
    formatter = OutputFormatter(json_mode=False, currency="R$")
    formatter.console = Console(file=StringIO(), force_terminal=True, width=160)
    return formatter


def rendered(formatter: OutputFormatter) -> str:
    return strip_ansi(formatter.console.file.getvalue())


def entry(name, quantity=1, unit_price=None, purchased=False, **extra):
    return {
        "id": str(uuid4()),
        "item_name": name,
        "category_name": "Produce",
        "quantity": quantity,
        "unit_price": unit_price,
        "subtotal": quantity * (unit_price or 0),
        "brand": None,
        "purchase_date": None,
        "purchased": purchased,
        **extra,
    }


class TestJSONEncoder:
    """Tests for JSONEncoder."""

    def test_encode_uuid(self):
        test_id = uuid4()
        assert str(test_id) in json.dumps({"id": test_id}, cls=JSONEncoder)

    def test_encode_datetime(self):
        dt = datetime(2026, 10, 19, 10, 30)
        assert "2026-10-19T10:30:00" in json.dumps({"time": dt}, cls=JSONEncoder)

    def test_encode_date(self):
        assert "2026-10-19" in json.dumps({"date": date(2026, 10, 19)}, cls=JSONEncoder)

    def test_encode_fallback(self):
        """Non-special types raise TypeError."""
        with pytest.raises(TypeError):
            json.dumps({"bad": object()}, cls=JSONEncoder)


class TestOutputFormatterJSON:
    """Tests for JSON output mode."""

    def test_json_mode_output(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.output({"success": True, "data": {"test": "value"}})
        data = json.loads(capsys.readouterr().out)
        assert data["data"]["test"] == "value"

    def test_json_error(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.error("Something went wrong", error_code="NOT_FOUND")
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is False
        assert data["error"] == "Something went wrong"
        assert data["error_code"] == "NOT_FOUND"

    def test_json_success(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.success("Cleared 3 entries", data={"removed": 3})
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["message"] == "Cleared 3 entries"
        assert data["data"]["removed"] == 3

    def test_json_warning(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.warning("This is a warning")
        assert json.loads(capsys.readouterr().out)["warning"] == "This is a warning"


class TestOutputFormatterRich:
    """Tests for Rich output mode."""

    def test_money(self, rich_formatter):
        assert rich_formatter.money(3.5) == "R$ 3.50"
        assert rich_formatter.money(None) == "R$ 0.00"

    def test_messages(self, rich_formatter):
        rich_formatter.success("Saved")
        rich_formatter.error("Broken")
        rich_formatter.warning("Careful")
        output = rendered(rich_formatter)
        assert "Saved" in output
        assert "Error: Broken" in output
        assert "Careful" in output

    def test_render_empty_list(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "list": {
                        "entries": [],
                        "summary": {
                            "items_count": 0,
                            "purchased_count": 0,
                            "total_value": 0.0,
                            "purchased_value": 0.0,
                        },
                        "total_entries": 0,
                    }
                },
            }
        )
        assert "No items on the list" in rendered(rich_formatter)

    def test_render_shopping_list(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "list": {
                        "entries": [
                            entry("Apples", 2, 1.5, purchased=True, purchase_date="2026-10-19"),
                            entry("Bananas"),
                        ],
                        "summary": {
                            "items_count": 2,
                            "purchased_count": 1,
                            "total_value": 3.0,
                            "purchased_value": 3.0,
                        },
                        "total_entries": 2,
                    }
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Apples" in output
        assert "Bananas" in output
        assert "R$ 3.00" in output
        assert "2026-10-19" in output
        assert "1 purchased" in output
        assert "List total: R$ 3.00" in output
        assert "Purchased total: R$ 3.00" in output

    def test_render_entry(self, rich_formatter):
        rich_formatter.output(
            {"success": True, "data": {"entry": entry("Milk", 2, 1.25, brand="Farm")}},
            "Updated Milk",
        )
        output = rendered(rich_formatter)
        assert "Updated Milk" in output
        assert "Subtotal: R$ 2.50" in output
        assert "Brand: Farm" in output

    def test_render_categories(self, rich_formatter):
        rich_formatter.output(
            {"success": True, "data": {"categories": [{"id": "c1", "name": "Dairy"}]}}
        )
        assert "Dairy" in rendered(rich_formatter)

    def test_render_items(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "items": [
                        {"id": "i1", "name": "Milk", "category_name": "Dairy", "unit": "l"}
                    ]
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Milk" in output
        assert "Dairy" in output

    def test_render_empty_history(self, rich_formatter):
        rich_formatter.output({"success": True, "data": {"monthly_lists": []}})
        assert "No finalized lists" in rendered(rich_formatter)

    def test_render_history(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "monthly_lists": [
                        {
                            "id": "b1",
                            "month": 10,
                            "month_name": "October",
                            "year": 2026,
                            "items_count": 4,
                            "total_value": 12.5,
                            "finalized_at": "2026-10-19T12:00:00",
                        }
                    ]
                },
            }
        )
        output = rendered(rich_formatter)
        assert "October 2026" in output
        assert "R$ 12.50" in output
        assert "2026-10-19" in output

    def test_render_monthly_list(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "monthly_list": {
                        "monthly_list": {
                            "id": "b1",
                            "month": 10,
                            "year": 2026,
                            "items_count": 2,
                            "total_value": 3.0,
                            "finalized_at": None,
                        },
                        "month_name": "October",
                        "entries": [entry("Apples", 2, 1.5, purchased=True), entry("Pears")],
                        "purchased_count": 1,
                    }
                },
            }
        )
        output = rendered(rich_formatter)
        assert "October 2026" in output
        assert "1 of 2 purchased" in output
        assert "Finalized: N/A" in output
        assert "Pears" in output

    def test_render_copied(self, rich_formatter):
        rich_formatter.output(
            {"success": True, "data": {"copied": [entry("Milk", 2)]}}, "Copied 1 entries"
        )
        output = rendered(rich_formatter)
        assert "Copied 1 entries" in output
        assert "+ Milk x2" in output
