"""Pydantic models for inventory records, deltas, and run results."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChangeType(str, Enum):
    NEW = "new"
    UPDATED = "updated"
    DELETED = "deleted"


class RowWarningKind(str, Enum):
    EMPTY_IDENTIFIER = "empty_identifier"
    INVALID_QUANTITY = "invalid_quantity"
    NEGATIVE_QUANTITY = "negative_quantity"


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class BatchStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"


# --- Canonical records ---


class InventoryRecord(BaseModel):
    """One normalized inventory row. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1)
    quantity: int = Field(0, ge=0)
    discontinued: bool = False


class DeltaRecord(InventoryRecord):
    """An inventory record classified against the baseline."""

    change_type: ChangeType
    change_reason: str


class RowWarning(BaseModel):
    row_number: int
    kind: RowWarningKind
    message: str
    identifier: Optional[str] = None


class NormalizedTable(BaseModel):
    records: list[InventoryRecord] = []
    warnings: list[RowWarning] = []
    data_row_count: int = 0


class DeltaSummary(BaseModel):
    new: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.new + self.updated + self.deleted


# --- Run results (camelCase on the wire) ---


class FileResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    input_file: str
    status: RunStatus
    output_file: Optional[str] = None
    total_records: int = 0
    delta_records: int = 0
    new_products: int = 0
    updated_products: int = 0
    deleted_products: int = 0
    warnings: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None


class BatchResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    correlation_id: str
    status: BatchStatus
    results: list[FileResult] = []
    processing_time_ms: int = 0

    @property
    def failed(self) -> list[FileResult]:
        return [r for r in self.results if r.status == RunStatus.FAILED]


# --- API response models ---


class BaselineResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    record_count: int
    records: list[InventoryRecord] = []
