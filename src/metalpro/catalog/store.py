from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from metalpro.catalog.models import Product

logger = logging.getLogger(__name__)

BUNDLED_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "products.json"


def _default_path() -> Path:
    env_value = os.getenv("METALPRO_CATALOG_PATH")
    if env_value:
        return Path(env_value)
    return BUNDLED_CATALOG_PATH


class ProductCatalog:
    """Read-only, ordered product catalog.

    Order is preserved from the source because the BOM matcher breaks score
    ties by catalog order.
    """

    def __init__(self, products: Iterable[Product], path: Path | None = None):
        self.path = path
        self._products: List[Product] = list(products)
        self._by_id: Dict[str, Product] = {}
        for product in self._products:
            self._by_id.setdefault(product.id, product)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def all(self) -> List[Product]:
        return list(self._products)

    def active(self) -> List[Product]:
        return [product for product in self._products if product.is_active]

    def get(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)


def load_catalog(path: Path | str) -> ProductCatalog:
    """Load a catalog from a JSON array or a ``{"products": [...]}`` object."""

    source = Path(path)
    with source.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)

    if isinstance(raw, dict):
        raw = raw.get("products", [])
    if not isinstance(raw, list):
        raise ValueError(f"Catalog {source} must be a JSON array of products")

    products = [Product.model_validate(entry) for entry in raw]
    logger.info("Loaded %d products from %s", len(products), source)
    return ProductCatalog(products, path=source)


_DEFAULT_CATALOG: Optional[ProductCatalog] = None


def default_catalog(path: Path | None = None) -> ProductCatalog:
    """Return the process-wide catalog, reloading when the source path changes."""

    global _DEFAULT_CATALOG
    target = path or _default_path()
    if _DEFAULT_CATALOG is None or _DEFAULT_CATALOG.path != target:
        _DEFAULT_CATALOG = load_catalog(target)
    return _DEFAULT_CATALOG


def _matches_any(value: str, wanted: Sequence[str]) -> bool:
    lowered = value.lower()
    return any(lowered == item.lower() for item in wanted)


def filter_products(
    products: Iterable[Product],
    *,
    family: Sequence[str] = (),
    grade: Sequence[str] = (),
    standard: Sequence[str] = (),
    availability: Sequence[str] = (),
    search: Optional[str] = None,
    include_inactive: bool = False,
) -> List[Product]:
    """Faceted filter: AND across facets, OR within one facet, case-insensitive."""

    needle = (search or "").strip().lower()
    results: List[Product] = []
    for product in products:
        if not include_inactive and not product.is_active:
            continue
        if family and not _matches_any(product.family, family):
            continue
        if grade and not _matches_any(product.grade, grade):
            continue
        if standard and not any(_matches_any(std, standard) for std in product.standards):
            continue
        if availability and not _matches_any(product.availability.value, availability):
            continue
        if needle:
            haystack = " ".join([product.title, product.sku, product.grade]).lower()
            if needle not in haystack:
                continue
        results.append(product)
    return results
