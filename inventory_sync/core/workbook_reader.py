"""Workbook reader: turns an uploaded spreadsheet blob into a raw sheet.

Only the first worksheet is read. Rows come back as plain lists of cell
values with trailing empty cells removed, so a fully blank row is [].
"""

import logging
import zipfile
from io import BytesIO
from pathlib import PurePosixPath
from typing import Any
from xml.etree.ElementTree import ParseError

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from inventory_sync.core.errors import InvalidInputFormatError

logger = logging.getLogger(__name__)

VALID_EXTENSIONS = (".xls", ".xlsx")

# Read-only workbooks parse sheet XML lazily, so these can surface while rows are read.
_READ_ERRORS = (InvalidFileException, zipfile.BadZipFile, ParseError, KeyError, ValueError, OSError)


def is_valid_file(key: str) -> bool:
    """Accept .xls/.xlsx keys, and keys without an extension."""
    extension = PurePosixPath(key).suffix.lower()
    return extension == "" or extension in VALID_EXTENSIONS


def _trim_trailing_empty(values: tuple) -> list[Any]:
    cells = list(values)
    while cells and (cells[-1] is None or (isinstance(cells[-1], str) and cells[-1] == "")):
        cells.pop()
    return cells


def read_first_sheet(data: bytes, request_id: str = "") -> tuple[str, list[list[Any]]]:
    """Parse a workbook blob and return (sheet_name, rows) for its first sheet.

    Raises InvalidInputFormatError if the blob is not a readable workbook.
    """
    try:
        wb = openpyxl.load_workbook(BytesIO(data), read_only=True, data_only=True)
    except _READ_ERRORS as e:
        raise InvalidInputFormatError(f"Input is not a readable workbook: {e}") from e

    try:
        if not wb.sheetnames:
            raise InvalidInputFormatError("Workbook contains no sheets")
        ws = wb.worksheets[0]
        sheet_name = ws.title
        rows = [_trim_trailing_empty(values) for values in ws.iter_rows(values_only=True)]
    except _READ_ERRORS as e:
        raise InvalidInputFormatError(f"Worksheet could not be read: {e}") from e
    finally:
        wb.close()

    logger.info(f"[{request_id}] Processing sheet: {sheet_name} ({len(rows)} rows)")
    return sheet_name, rows
