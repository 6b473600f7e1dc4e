"""Shared pytest fixtures for ledger and invoice tests."""

from datetime import datetime
from unittest.mock import Mock
from zoneinfo import ZoneInfo

import pytest

from domain.models import LineItem
from services.kv_store import InMemoryKeyValueStore
from services.table_store import InMemoryTableStore, InMemoryWorkbook

LEDGER_HEADER = ["Name", "Item", "Quantity", "Price"]
ORDER_HEADER = ["Date", "Invoice ID", "Name", "Phone", "Item", "Qty", "Unit Price", "SubTotal"]

JAKARTA = ZoneInfo("Asia/Jakarta")


def make_response(status_code: int, json_body=None, text: str = "") -> Mock:
    """Create a requests.Response stand-in."""
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    if json_body is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = json_body
    return resp


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 11, 22, 10, 30, 0, tzinfo=JAKARTA)


@pytest.fixture
def event_sheet() -> InMemoryTableStore:
    return InMemoryTableStore(
        header=LEDGER_HEADER,
        rows=[
            ["Alice", "pen", 2, 1000],
            ["", "book", 1, 5000],
            ["Bob", "ink", 3, 200],
        ],
    )


@pytest.fixture
def workbook(event_sheet) -> InMemoryWorkbook:
    return InMemoryWorkbook(
        {
            "EVENT_A": event_sheet,
            "ORDER": InMemoryTableStore(header=ORDER_HEADER),
            "CONFIG": InMemoryTableStore(header=["Key", "Value"]),
            "TEMPLATE": InMemoryTableStore(),
        }
    )


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def pen_and_book():
    return [LineItem("pen", 2, 1000), LineItem("book", 1, 5000)]
