"""MetalPro storefront services: BOM ingestion, catalog, estimate cart and ANAF checks."""

__version__ = "0.3.0"
