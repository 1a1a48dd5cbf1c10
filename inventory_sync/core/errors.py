"""Error taxonomy for the inventory sync pipeline.

File-level errors abort processing of a single input file only; the
orchestrator records them per file and carries on with the rest of the batch.
Row-level problems are never raised; they are reported as warnings.
"""

from typing import Optional


class InventorySyncError(Exception):
    """Base class for all pipeline errors."""


class InvalidInputFormatError(InventorySyncError):
    """Input is not a readable workbook, has an unsupported extension, or has no rows."""


class MissingColumnsError(InventorySyncError):
    """One or more required columns are absent from the header row."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class EmptyInputError(InventorySyncError):
    """Sheet has a header row but no data rows."""


class StorageError(InventorySyncError):
    """Object store or baseline store I/O failed."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class ObjectNotFoundError(StorageError):
    """The requested object does not exist."""
