from __future__ import annotations

from metalpro.anaf.service import ANAFService, get_anaf_service
from metalpro.catalog.store import ProductCatalog, default_catalog


def get_catalog() -> ProductCatalog:
    return default_catalog()


def get_anaf() -> ANAFService:
    return get_anaf_service()
