"""CSV rendering for the commerce platform's bulk-import tool (Matrixify headers)."""

import csv
import io
from typing import Union

from inventory_sync.core.config import PipelineConfig
from inventory_sync.core.models import DeltaRecord, InventoryRecord

BARCODE_HEADER = "Variant Barcode"
QUANTITY_HEADER = "Variant Inventory Qty"
DISCONTINUED_HEADER = "Variant Metafield: custom.internal_discontinued [single_line_text_field]"
TRACKER_HEADER = "Variant Inventory Tracker"
POLICY_HEADER = "Variant Inventory Policy"
CHANGE_TYPE_HEADER = "changeType"
CHANGE_REASON_HEADER = "changeReason"

EXPORT_HEADERS = [
    BARCODE_HEADER,
    QUANTITY_HEADER,
    DISCONTINUED_HEADER,
    TRACKER_HEADER,
    POLICY_HEADER,
]
DELTA_HEADERS = EXPORT_HEADERS + [CHANGE_TYPE_HEADER, CHANGE_REASON_HEADER]


def export_row(record: Union[InventoryRecord, DeltaRecord], config: PipelineConfig) -> dict[str, object]:
    """Map a record onto the export column set."""
    row: dict[str, object] = {
        BARCODE_HEADER: record.identifier,
        QUANTITY_HEADER: record.quantity,
        DISCONTINUED_HEADER: "Yes" if record.discontinued else "No",
        TRACKER_HEADER: config.inventory_tracker,
        POLICY_HEADER: config.inventory_policy,
    }
    if isinstance(record, DeltaRecord):
        row[CHANGE_TYPE_HEADER] = record.change_type.value
        row[CHANGE_REASON_HEADER] = record.change_reason
    return row


def _render(headers: list[str], rows: list[dict[str, object]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=headers, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def render_full_csv(records: list[InventoryRecord], config: PipelineConfig) -> str:
    return _render(EXPORT_HEADERS, [export_row(r, config) for r in records])


def render_delta_csv(delta: list[DeltaRecord], config: PipelineConfig) -> str:
    """Render change records; an empty delta still yields the header line."""
    return _render(DELTA_HEADERS, [export_row(r, config) for r in delta])
