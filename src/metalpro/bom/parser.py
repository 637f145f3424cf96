"""End-to-end BOM ingestion: read, tokenize, detect headers, parse, match.

Nothing here raises to the caller. Bad quantities drop rows silently, rows
that blow up while parsing become ``parse_errors`` entries, and a file that
cannot be read at all yields an empty result with a single error.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from metalpro.bom.headers import HeaderVocabulary, detect_headers
from metalpro.bom.matcher import auto_match_row
from metalpro.bom.models import BOMParseOptions, BOMRow, BOMUploadResult
from metalpro.bom.normalize import normalize_string
from metalpro.bom.rows import parse_row
from metalpro.bom.tokenizer import read_xlsx_grid, tokenize_csv
from metalpro.catalog.models import Product
from metalpro.observability import log_event

logger = logging.getLogger(__name__)

XLSX_EXTENSIONS = (".xlsx", ".xlsm")

EMPTY_FILE_ERROR = "Fișierul este gol"
READ_ERROR_PREFIX = "Eroare la citirea fișierului"
ROW_ERROR_FALLBACK = "Eroare la parsare"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _read_grid(content: bytes | str, file_name: str) -> List[List[str]]:
    if isinstance(content, str):
        return tokenize_csv(content)
    if file_name.lower().endswith(XLSX_EXTENSIONS):
        return read_xlsx_grid(content)
    # strict decode: undecodable bytes are a file-level failure
    return tokenize_csv(content.decode("utf-8-sig"))


def _failed_result(file_name: str, file_size: int, error: str) -> BOMUploadResult:
    return BOMUploadResult(
        file_name=file_name,
        file_size=file_size,
        uploaded_at=_now_iso(),
        total_rows=0,
        rows=[],
        parse_errors=[error],
    )


def parse_bom(
    content: bytes | str,
    file_name: str,
    products: Iterable[Product],
    options: Optional[BOMParseOptions] = None,
    *,
    vocabulary: Optional[HeaderVocabulary] = None,
) -> BOMUploadResult:
    """Parse a BOM file and auto-match every usable row to ``products``.

    Args:
        content: Raw upload bytes (CSV text or an XLSX workbook) or CSV text.
        file_name: Original file name; ``.xlsx``/``.xlsm`` selects the
            workbook reader, anything else is read as CSV text.
        products: Catalog in display order. Iteration order breaks score ties.
        options: Header detection and empty-row handling.
        vocabulary: Header vocabulary override.

    Returns:
        BOMUploadResult with rows in source order. ``parse_errors`` is
        ``None`` unless at least one error was recorded.
    """

    opts = options or BOMParseOptions()
    file_size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
    catalog = list(products)

    try:
        grid = _read_grid(content, file_name)
    except Exception as exc:
        logger.warning("Could not read BOM file %s: %s", file_name, exc)
        return _failed_result(file_name, file_size, f"{READ_ERROR_PREFIX}: {exc}")

    if not grid:
        return _failed_result(file_name, file_size, EMPTY_FILE_ERROR)

    if opts.auto_detect_headers:
        detection = detect_headers(grid, vocabulary)
        header_row, mapping = detection.header_row, detection.mapping
    else:
        header_row, mapping = 0, dict(opts.column_mapping or {})

    rows: List[BOMRow] = []
    parse_errors: List[str] = []

    for index in range(header_row + 1, len(grid)):
        cells = grid[index]
        if opts.skip_empty_rows and all(not cell.strip() for cell in cells):
            continue
        try:
            parsed = parse_row(cells, index, mapping)
            if parsed is None:
                continue
            if parsed.family:
                parsed = parsed.model_copy(update={"parsed_family": normalize_string(parsed.family)})
            rows.append(auto_match_row(parsed, catalog))
        except Exception as exc:
            logger.warning("BOM %s row %d failed to parse: %s", file_name, index + 1, exc)
            parse_errors.append(f"Rând {index + 1}: {str(exc) or ROW_ERROR_FALLBACK}")

    log_event(
        "bom.parsed",
        file_name=file_name,
        grid_rows=len(grid),
        header_row=header_row,
        rows=len(rows),
        parse_errors=len(parse_errors),
    )

    return BOMUploadResult(
        file_name=file_name,
        file_size=file_size,
        uploaded_at=_now_iso(),
        total_rows=len(rows),
        rows=rows,
        parse_errors=parse_errors or None,
    )


async def parse_bom_upload(
    upload: Any,
    products: Iterable[Product],
    options: Optional[BOMParseOptions] = None,
) -> BOMUploadResult:
    """Await the upload's contents, then run :func:`parse_bom` on them.

    ``upload`` is anything with an async ``read()`` and a ``filename``
    (FastAPI's ``UploadFile``). A failing read degrades like an unreadable
    file.
    """

    file_name = getattr(upload, "filename", None) or "bom.csv"
    try:
        content = await upload.read()
    except Exception as exc:
        logger.warning("Could not read upload %s: %s", file_name, exc)
        return _failed_result(file_name, 0, f"{READ_ERROR_PREFIX}: {exc}")
    return parse_bom(content, file_name, products, options)
