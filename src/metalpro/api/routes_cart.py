from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from metalpro.api.dependencies import get_catalog
from metalpro.api.security import require_api_key
from metalpro.bom.models import BOMRow
from metalpro.cart.estimate import (
    CartLineRequest,
    EstimateCart,
    UnknownProductError,
    bom_rows_to_line_requests,
    build_cart,
)
from metalpro.catalog.store import ProductCatalog

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/cart", tags=["cart"])


class CartEstimateRequest(BaseModel):
    lines: List[CartLineRequest] = Field(default_factory=list)
    disclaimer_accepted: bool = False

    model_config = ConfigDict(extra="forbid")


class CartFromBOMRequest(BaseModel):
    rows: List[BOMRow]
    disclaimer_accepted: bool = False

    model_config = ConfigDict(extra="forbid")


def _build(lines: List[CartLineRequest], catalog: ProductCatalog, disclaimer_accepted: bool) -> EstimateCart:
    try:
        return build_cart(lines, catalog, disclaimer_accepted=disclaimer_accepted)
    except UnknownProductError as exc:
        raise HTTPException(
            status_code=404,
            detail={"message": "Product not found", "product_id": exc.product_id},
        ) from exc


@router.post("/estimate", response_model=EstimateCart)
def estimate_cart(
    req: CartEstimateRequest,
    api_key: str = Depends(require_api_key),
    catalog: ProductCatalog = Depends(get_catalog),
) -> EstimateCart:
    return _build(req.lines, catalog, req.disclaimer_accepted)


@router.post("/from-bom", response_model=EstimateCart)
def cart_from_bom(
    req: CartFromBOMRequest,
    api_key: str = Depends(require_api_key),
    catalog: ProductCatalog = Depends(get_catalog),
) -> EstimateCart:
    """Price the matched rows of a reviewed BOM; unmatched rows are left out."""
    lines = bom_rows_to_line_requests(req.rows, catalog)
    skipped = len(req.rows) - len(lines)
    if skipped:
        logger.info("Cart from BOM skipped %d unmatched rows", skipped)
    return _build(lines, catalog, req.disclaimer_accepted)
