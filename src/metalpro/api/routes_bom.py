"""BOM upload endpoints.

  1. GET  /v1/bom/template(.csv)         Download the column layout
  2. POST /v1/bom/upload                 Parse file and auto-match rows
  3. POST /v1/bom/rows/{row_index}/map   Manually map a row to a product
  4. POST /v1/bom/stats                  Recompute match statistics
  5. POST /v1/bom/export.csv             Render reviewed rows back to CSV
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict

from metalpro.api.dependencies import get_catalog
from metalpro.api.security import require_api_key
from metalpro.bom.headers import DEFAULT_COLUMN_MAPPING
from metalpro.bom.matcher import apply_manual_mapping
from metalpro.bom.models import (
    BOMMatchingStats,
    BOMParseOptions,
    BOMRow,
    BOMTemplate,
    BOMUploadResult,
)
from metalpro.bom.parser import parse_bom
from metalpro.bom.stats import get_bom_matching_stats
from metalpro.bom.template import export_rows_csv, get_bom_template, render_template_csv
from metalpro.catalog.store import ProductCatalog

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/bom", tags=["bom"])

# Max file size: 10MB
MAX_FILE_SIZE = 10 * 1024 * 1024
ALLOWED_EXTENSIONS = {".csv", ".txt", ".xlsx", ".xlsm"}
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------
class BOMUploadResponse(BOMUploadResult):
    stats: BOMMatchingStats


class BOMRowsRequest(BaseModel):
    rows: List[BOMRow]

    model_config = ConfigDict(extra="forbid")


class ManualMappingRequest(BaseModel):
    row: BOMRow
    product_id: str

    model_config = ConfigDict(extra="forbid")


def _extension(filename: str) -> str:
    return "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("/template", response_model=BOMTemplate)
def bom_template(api_key: str = Depends(require_api_key)) -> BOMTemplate:
    return get_bom_template()


@router.get("/template.csv")
def bom_template_csv(api_key: str = Depends(require_api_key)) -> Response:
    return Response(
        content=render_template_csv(),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="bom_template.csv"'},
    )


@router.post("/upload", response_model=BOMUploadResponse)
async def upload_bom(
    file: UploadFile = File(...),
    auto_detect_headers: bool = Query(True),
    skip_empty_rows: bool = Query(True),
    api_key: str = Depends(require_api_key),
    catalog: ProductCatalog = Depends(get_catalog),
) -> BOMUploadResponse:
    """Upload a BOM (CSV or XLSX) and auto-match its rows against the catalog.

    Unreadable files and broken rows are reported in ``parse_errors`` rather
    than as HTTP errors; only the transport checks below reject the upload.
    """
    filename = file.filename or "bom.csv"
    ext = _extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail={
                "message": f"Unsupported file type: {ext or '<none>'}",
                "allowed": sorted(ALLOWED_EXTENSIONS),
            },
        )

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=413,
            detail={
                "message": "File too large",
                "size": len(content),
                "max_size": MAX_FILE_SIZE,
            },
        )

    options = BOMParseOptions(
        auto_detect_headers=auto_detect_headers,
        column_mapping=None if auto_detect_headers else dict(DEFAULT_COLUMN_MAPPING),
        skip_empty_rows=skip_empty_rows,
    )
    # workbook loading and matching are CPU bound
    result = await run_in_threadpool(parse_bom, content, filename, catalog, options)
    stats = get_bom_matching_stats(result.rows)
    logger.info(
        "BOM %s parsed: %d rows, match rate %d%%", filename, result.total_rows, stats.match_rate
    )
    return BOMUploadResponse(**result.model_dump(), stats=stats)


@router.post("/stats", response_model=BOMMatchingStats)
def bom_stats(
    req: BOMRowsRequest,
    api_key: str = Depends(require_api_key),
) -> BOMMatchingStats:
    return get_bom_matching_stats(req.rows)


@router.post("/rows/{row_index}/map", response_model=BOMRow)
def map_bom_row(
    row_index: int,
    req: ManualMappingRequest,
    api_key: str = Depends(require_api_key),
    catalog: ProductCatalog = Depends(get_catalog),
) -> BOMRow:
    if req.row.row_index != row_index:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Row index mismatch",
                "path_row_index": row_index,
                "body_row_index": req.row.row_index,
            },
        )
    product = catalog.get(req.product_id)
    if product is None:
        raise HTTPException(
            status_code=404,
            detail={"message": "Product not found", "product_id": req.product_id},
        )
    return apply_manual_mapping(req.row, product)


@router.post("/export.csv")
def export_bom_csv(
    req: BOMRowsRequest,
    api_key: str = Depends(require_api_key),
) -> Response:
    return Response(
        content=export_rows_csv(req.rows),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="bom_export.csv"'},
    )
