"""Read a worksheet into a string matrix and write it back in one atomic save."""
from __future__ import annotations

import datetime as dt
import logging
import os
from pathlib import Path
from typing import List

from openpyxl import Workbook, load_workbook

from .models import SheetMatrix, SheetUploadError

logger = logging.getLogger("sheet_upload.workbook")


class WorkbookNotFoundError(SheetUploadError, FileNotFoundError):
    """Raised when the workbook file or the requested worksheet does not exist."""


def cell_text(value: object) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dt.datetime) and value.time() == dt.time(0):
        return value.date().isoformat()
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def _load(path: Path) -> Workbook:
    if not path.exists():
        raise WorkbookNotFoundError(f"Workbook not found: {path}")
    return load_workbook(path)


def read_sheet(path: Path, sheet_name: str) -> SheetMatrix:
    """Return every row of *sheet_name* as a list of cell strings."""

    path = Path(path)
    workbook = _load(path)
    try:
        if sheet_name not in workbook.sheetnames:
            raise WorkbookNotFoundError(f"Worksheet {sheet_name!r} not found in {path}")
        worksheet = workbook[sheet_name]
        values: SheetMatrix = []
        for row in worksheet.iter_rows(values_only=True):
            cells: List[str] = [cell_text(value) for value in row]
            while cells and cells[-1] == '':
                cells.pop()
            values.append(cells)
    finally:
        workbook.close()

    # Drop trailing blank rows openpyxl reports for formatted-but-empty cells.
    while values and not any(values[-1]):
        values.pop()
    logger.debug("Read %s rows from %s[%s]", len(values), path, sheet_name)
    return values


def _atomic_save(workbook: Workbook, path: Path) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        workbook.save(tmp_path)
        os.replace(tmp_path, path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def write_sheet(path: Path, sheet_name: str, matrix: SheetMatrix) -> None:
    """Replace all rows of *sheet_name* with *matrix* and save the workbook."""

    path = Path(path)
    workbook = _load(path)
    if sheet_name not in workbook.sheetnames:
        raise WorkbookNotFoundError(f"Worksheet {sheet_name!r} not found in {path}")
    worksheet = workbook[sheet_name]

    if worksheet.max_row > 0:
        worksheet.delete_rows(1, worksheet.max_row)

    # Explicit cell writes: append() would continue below the deleted rows.
    width = max((len(row) for row in matrix), default=0)
    for row_idx, row in enumerate(matrix, start=1):
        padded = list(row) + [''] * (width - len(row))
        for col_idx, value in enumerate(padded, start=1):
            worksheet.cell(row=row_idx, column=col_idx, value=value if value != '' else None)

    _atomic_save(workbook, path)
    logger.info("Wrote %s rows to %s[%s]", len(matrix), path, sheet_name)
