"""ANAF CUI/VAT validation client and caches."""

from metalpro.anaf.cache import RedisValidationCache, TTLCache, build_cache
from metalpro.anaf.models import (
    ANAFCompanyData,
    ANAFRequest,
    ANAFResponse,
    CacheStats,
    ValidationResponse,
)
from metalpro.anaf.service import (
    ANAFService,
    extract_county,
    close_anaf_service,
    get_anaf_service,
    normalize_cui,
    set_anaf_service,
)

__all__ = [
    "ANAFCompanyData",
    "ANAFRequest",
    "ANAFResponse",
    "ANAFService",
    "CacheStats",
    "RedisValidationCache",
    "TTLCache",
    "ValidationResponse",
    "build_cache",
    "close_anaf_service",
    "extract_county",
    "get_anaf_service",
    "normalize_cui",
    "set_anaf_service",
]
