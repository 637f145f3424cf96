"""Product catalog models and loading."""

from metalpro.catalog.models import (
    Availability,
    CartUnit,
    IndicativePrice,
    Product,
    ProductFamily,
    SectionProps,
)
from metalpro.catalog.store import ProductCatalog, default_catalog, filter_products, load_catalog

__all__ = [
    "Availability",
    "CartUnit",
    "IndicativePrice",
    "Product",
    "ProductCatalog",
    "ProductFamily",
    "SectionProps",
    "default_catalog",
    "filter_products",
    "load_catalog",
]
