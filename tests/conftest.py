"""Shared test fixtures for the inventory sync test suite."""

from io import BytesIO
from unittest.mock import MagicMock

import openpyxl
import pytest

from inventory_sync.core.config import PipelineConfig
from inventory_sync.core.models import InventoryRecord
from inventory_sync.core.object_store import LocalObjectStore

BUCKET = "test-bucket"

# Supplier export with a blank spacer column between "Available Qty" and "UPC"
BLANK_SPACER_HEADERS = ["Item ID", "In Stock", "Available Qty", "", "UPC", "Discontinued", "ETA"]
BLANK_SPACER_ROW = ["AAK1GLOBTXGO00Z093", "N", 0, "", "X00000014816", "N", "2026-01-27"]


def make_record(identifier: str = "A", quantity: int = 5, discontinued: bool = False) -> InventoryRecord:
    """Helper to create inventory records for testing."""
    return InventoryRecord(identifier=identifier, quantity=quantity, discontinued=discontinued)


def make_workbook_bytes(rows: list[list], sheet_name: str = "Inventory") -> bytes:
    """Create an .xlsx workbook in memory. First row is headers."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_name
    for row in rows:
        ws.append(row)
    buf = BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


@pytest.fixture
def object_store(tmp_path):
    return LocalObjectStore(tmp_path / "objects")


@pytest.fixture
def pipeline_config():
    return PipelineConfig(bucket=BUCKET)


@pytest.fixture
def notifier():
    return MagicMock()
