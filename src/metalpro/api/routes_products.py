from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from metalpro.api.dependencies import get_catalog
from metalpro.api.security import require_api_key
from metalpro.catalog.models import Product
from metalpro.catalog.store import ProductCatalog, filter_products

router = APIRouter(prefix="/v1/products", tags=["products"])


class ProductListResponse(BaseModel):
    total: int
    items: List[Product]


@router.get("", response_model=ProductListResponse)
def list_products(
    family: List[str] = Query([]),
    grade: List[str] = Query([]),
    standard: List[str] = Query([]),
    availability: List[str] = Query([]),
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    api_key: str = Depends(require_api_key),
    catalog: ProductCatalog = Depends(get_catalog),
) -> ProductListResponse:
    """List catalog products; repeated facet parameters are OR-ed."""
    items = filter_products(
        catalog,
        family=family,
        grade=grade,
        standard=standard,
        availability=availability,
        search=search,
        include_inactive=include_inactive,
    )
    return ProductListResponse(total=len(items), items=items)


@router.get("/{product_id}", response_model=Product)
def get_product(
    product_id: str,
    api_key: str = Depends(require_api_key),
    catalog: ProductCatalog = Depends(get_catalog),
) -> Product:
    product = catalog.get(product_id)
    if product is None:
        raise HTTPException(
            status_code=404,
            detail={"message": "Product not found", "product_id": product_id},
        )
    return product
