"""Delta Engine: classifies current records against the stored baseline.

Records are joined on identifier and emitted in three fixed passes:
new, then updated, then deleted. Unchanged records produce no output.
Within a pass, order follows the pass's source table (current for new and
updated, baseline for deleted), with the last row for a repeated identifier
taking its value but the first row fixing its position.
"""

import logging
from typing import Optional

from inventory_sync.core.models import ChangeType, DeltaRecord, DeltaSummary, InventoryRecord

logger = logging.getLogger(__name__)

NEW_REASON = "New product"
DELETED_REASON = "Product removed from inventory"
DISCONTINUED_REASON = "Discontinued status changed"


def _index_by_identifier(records: list[InventoryRecord]) -> dict[str, InventoryRecord]:
    index: dict[str, InventoryRecord] = {}
    for record in records:
        index[record.identifier] = record
    return index


def has_changes(current: InventoryRecord, baseline: InventoryRecord) -> bool:
    return (
        current.quantity != baseline.quantity
        or current.discontinued != baseline.discontinued
    )


def change_reason(current: InventoryRecord, baseline: InventoryRecord) -> str:
    """Human-readable reason listing only the fields that changed."""
    reasons = []
    if current.quantity != baseline.quantity:
        reasons.append(f"Quantity changed from {baseline.quantity} to {current.quantity}")
    if current.discontinued != baseline.discontinued:
        reasons.append(DISCONTINUED_REASON)
    return ", ".join(reasons)


def _as_delta(record: InventoryRecord, change_type: ChangeType, reason: str, **overrides) -> DeltaRecord:
    fields = record.model_dump(include={"identifier", "quantity", "discontinued"})
    fields.update(overrides)
    return DeltaRecord(**fields, change_type=change_type, change_reason=reason)


def compute_delta(
    current: list[InventoryRecord],
    baseline: list[InventoryRecord],
    request_id: str = "",
) -> list[DeltaRecord]:
    """Compare the current table with the baseline and return change records."""
    logger.info(
        f"[{request_id}] Generating delta: {len(current)} current vs {len(baseline)} baseline"
    )
    current_map = _index_by_identifier(current)
    baseline_map = _index_by_identifier(baseline)

    delta: list[DeltaRecord] = []

    # New: in current, not in baseline
    for identifier, record in current_map.items():
        if identifier not in baseline_map:
            delta.append(_as_delta(record, ChangeType.NEW, NEW_REASON))

    # Updated: in both, fields differ
    for identifier, record in current_map.items():
        previous: Optional[InventoryRecord] = baseline_map.get(identifier)
        if previous is not None and has_changes(record, previous):
            delta.append(_as_delta(record, ChangeType.UPDATED, change_reason(record, previous)))

    # Deleted: in baseline, not in current; quantity forced to 0
    for identifier, record in baseline_map.items():
        if identifier not in current_map:
            delta.append(_as_delta(record, ChangeType.DELETED, DELETED_REASON, quantity=0))

    summary = summarize(delta)
    logger.info(
        f"[{request_id}] Delta generated: {summary.total} changes "
        f"(new={summary.new}, updated={summary.updated}, deleted={summary.deleted})"
    )
    return delta


def summarize(delta: list[DeltaRecord]) -> DeltaSummary:
    summary = DeltaSummary()
    for record in delta:
        if record.change_type == ChangeType.NEW:
            summary.new += 1
        elif record.change_type == ChangeType.UPDATED:
            summary.updated += 1
        else:
            summary.deleted += 1
    return summary
