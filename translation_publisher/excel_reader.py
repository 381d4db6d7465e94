"""Read translation sheets from ``.xlsx`` workbooks."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from .models import SheetHandle

LOGGER = logging.getLogger(__name__)

HeaderMap = Dict[str, int]


class WorkbookError(Exception):
    """Raised when a workbook exists but cannot be decoded."""


def cell_to_text(value: Any) -> str:
    """Collapse a raw cell value to text; blanks become an empty string."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    # Whole numbers come back from openpyxl as floats.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fetch_sheet(path: str | Path, sheet_name: str) -> Optional[SheetHandle]:
    """Open the workbook and return the named sheet, or None if it is unusable."""

    workbook_path = Path(path)
    if not workbook_path.exists():
        LOGGER.error("Excel file %s doesn't exist", workbook_path)
        return None

    try:
        workbook = openpyxl.load_workbook(workbook_path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
        raise WorkbookError(f"Unable to read workbook {workbook_path}: {exc}") from exc

    try:
        if sheet_name not in workbook.sheetnames:
            LOGGER.error(
                "Sheet '%s' not found in %s (available: %s)",
                sheet_name,
                workbook_path.name,
                ", ".join(workbook.sheetnames),
            )
            return None
        rows = [tuple(row) for row in workbook[sheet_name].iter_rows(values_only=True)]
    finally:
        workbook.close()

    if not any(value is not None for row in rows for value in row):
        LOGGER.error("Sheet '%s' exists but contains no data", sheet_name)
        return None

    LOGGER.info("Sheet '%s' found with %s rows", sheet_name, len(rows))
    return SheetHandle(name=sheet_name, rows=rows)


def extract_sheet_header(sheet: SheetHandle, begin_row: int, begin_col: int) -> HeaderMap:
    """Map header labels to their absolute column index.

    Blank header cells are skipped without leaving an entry. Language columns
    are configured by position, so a sparse header only narrows what those
    positions can reach.
    """

    header: HeaderMap = {}
    if begin_row >= sheet.max_rows:
        return header
    for col in range(begin_col, sheet.max_columns):
        value = sheet.cell(begin_row, col)
        if value is None:
            continue
        header[cell_to_text(value)] = col
    LOGGER.debug("Extracted header %s", header)
    return header
