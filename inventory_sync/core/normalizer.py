"""Row and table normalization: raw sheet cells → canonical InventoryRecords.

Malformed cells degrade per field (skip the row or coerce the value) and are
reported as RowWarnings; only structural problems with the sheet itself raise.
"""

import logging
import math
from typing import Any, Optional

from inventory_sync.core.column_map import ColumnMap
from inventory_sync.core.errors import EmptyInputError, InvalidInputFormatError, MissingColumnsError
from inventory_sync.core.models import InventoryRecord, NormalizedTable, RowWarning, RowWarningKind

logger = logging.getLogger(__name__)

UPC_COLUMN = "UPC"
QUANTITY_COLUMN = "Available Qty"
DISCONTINUED_COLUMN = "Discontinued"

REQUIRED_COLUMNS = (UPC_COLUMN, QUANTITY_COLUMN, DISCONTINUED_COLUMN)

DISCONTINUED_TRUE_VALUES = frozenset({"yes", "1", "true"})


def cell_text(value: Any) -> str:
    """Render a cell value as trimmed text.

    Whole-number floats lose their ".0" so numeric UPCs read back as typed.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_quantity(value: Any) -> Optional[int]:
    """Parse a quantity cell to int. Returns None if the cell is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if math.isfinite(number) else None


def is_discontinued(value: Any) -> bool:
    return cell_text(value).lower() in DISCONTINUED_TRUE_VALUES


def _warn(
    warnings: Optional[list[RowWarning]],
    row_number: int,
    kind: RowWarningKind,
    message: str,
    identifier: Optional[str] = None,
    request_id: str = "",
) -> None:
    logger.warning(f"[{request_id}] Row {row_number}: {message}")
    if warnings is not None:
        warnings.append(RowWarning(
            row_number=row_number,
            kind=kind,
            message=message,
            identifier=identifier,
        ))


def normalize_row(
    row: list[Any],
    column_map: ColumnMap,
    row_number: int,
    warnings: Optional[list[RowWarning]] = None,
    request_id: str = "",
) -> Optional[InventoryRecord]:
    """Convert one data row into an InventoryRecord.

    Returns None when the row has no identifier. Bad or negative quantities
    are coerced to 0. Never raises for cell content.

    Args:
        row: raw cell values, possibly shorter or longer than the header row.
        column_map: header map built from the sheet's header row.
        row_number: 1-based sheet row number, used in diagnostics.
        warnings: optional sink for structured RowWarnings.
        request_id: correlation id used as the log prefix.
    """
    upc = cell_text(column_map.cell(row, UPC_COLUMN))
    if not upc:
        _warn(warnings, row_number, RowWarningKind.EMPTY_IDENTIFIER,
              "Empty UPC, skipping", request_id=request_id)
        return None

    raw_quantity = column_map.cell(row, QUANTITY_COLUMN)
    quantity = parse_quantity(raw_quantity)
    if quantity is None:
        _warn(warnings, row_number, RowWarningKind.INVALID_QUANTITY,
              f"Non-numeric quantity {raw_quantity!r} for UPC {upc}, setting to 0",
              identifier=upc, request_id=request_id)
        quantity = 0
    elif quantity < 0:
        _warn(warnings, row_number, RowWarningKind.NEGATIVE_QUANTITY,
              f"Negative quantity {quantity} for UPC {upc}, setting to 0",
              identifier=upc, request_id=request_id)
        quantity = 0

    return InventoryRecord(
        identifier=upc,
        quantity=quantity,
        discontinued=is_discontinued(column_map.cell(row, DISCONTINUED_COLUMN)),
    )


def validate_headers(column_map: ColumnMap, request_id: str = "") -> None:
    """Raise MissingColumnsError naming every required column that is absent."""
    missing = [name for name in REQUIRED_COLUMNS if not column_map.has(name)]
    if missing:
        raise MissingColumnsError(missing)
    logger.info(f"[{request_id}] All required columns found: {column_map.names()}")


def normalize_sheet(rows: list[list[Any]], request_id: str = "") -> NormalizedTable:
    """Normalize a raw sheet (header row first) into a NormalizedTable.

    Steps:
    1. Reject sheets with no rows, or with a header but no data rows
    2. Build the column map and validate required columns
    3. Drop rows with zero cells, normalize the rest in sheet order
    """
    if not rows:
        raise InvalidInputFormatError("Sheet contains no rows")
    if len(rows) < 2:
        raise EmptyInputError("Excel file must contain at least a header row and one data row")

    column_map = ColumnMap.from_header_row(rows[0])
    validate_headers(column_map, request_id)

    data_rows = rows[1:]
    logger.info(f"[{request_id}] Found {len(data_rows)} data rows")

    records: list[InventoryRecord] = []
    warnings: list[RowWarning] = []
    for offset, row in enumerate(data_rows):
        if len(row) == 0:
            continue
        # Header is sheet row 1
        record = normalize_row(row, column_map, offset + 2, warnings, request_id)
        if record is not None:
            records.append(record)

    logger.info(f"[{request_id}] Processed {len(records)} valid rows ({len(warnings)} warnings)")
    return NormalizedTable(records=records, warnings=warnings, data_row_count=len(data_rows))
