"""Turn uploaded BOM files into a grid of trimmed string cells.

CSV text is split on line breaks first and each line is then scanned for
quote-aware commas. A quoted cell therefore cannot span lines: a newline
inside quotes ends the row like any other newline.
"""

from __future__ import annotations

import io
import logging
import re
from datetime import date, datetime
from typing import Any, List

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")

# Sheet names preferred over the workbook's active sheet
PREFERRED_SHEET_NAMES = ("bom", "lista materiale", "materiale")


def _tokenize_line(line: str) -> List[str]:
    cells: List[str] = []
    current: List[str] = []
    inside_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if inside_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                inside_quotes = not inside_quotes
        elif char == "," and not inside_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    cells.append("".join(current).strip())
    return cells


def tokenize_csv(content: str) -> List[List[str]]:
    """Parse CSV text into rows of trimmed cells.

    Blank lines are skipped entirely, so the result never contains an empty
    row. ``""`` inside a quoted cell is an escaped literal quote.
    """

    rows: List[List[str]] = []
    for line in _LINE_SPLIT_RE.split(content):
        if not line.strip():
            continue
        rows.append(_tokenize_line(line))
    return rows


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def read_xlsx_grid(content: bytes) -> List[List[str]]:
    """Read the BOM sheet of an XLSX workbook into the same grid shape.

    Picks a sheet named like a BOM sheet when present, else the active one.
    Rows whose cells are all empty are dropped, mirroring blank CSV lines.
    Raises whatever openpyxl raises for unreadable workbooks; the caller turns
    that into a file-level parse error.
    """

    import openpyxl

    workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet = None
        for name in workbook.sheetnames:
            if name.strip().lower() in PREFERRED_SHEET_NAMES:
                sheet = workbook[name]
                break
        if sheet is None:
            sheet = workbook.active or workbook[workbook.sheetnames[0]]
        logger.debug("Reading BOM grid from sheet %r", sheet.title)

        rows: List[List[str]] = []
        for values in sheet.iter_rows(values_only=True):
            cells = [_cell_to_text(value) for value in values]
            # read-only sheets pad rows to the sheet's max column
            while cells and not cells[-1]:
                cells.pop()
            if not cells:
                continue
            rows.append(cells)
        return rows
    finally:
        workbook.close()
