"""Public ANAF validation endpoints used by the checkout form."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from metalpro.anaf.models import CacheStats, ValidationResponse
from metalpro.anaf.service import ANAFService, normalize_cui
from metalpro.api.dependencies import get_anaf
from metalpro.api.security import limit_by_client

router = APIRouter(prefix="/api/anaf", tags=["anaf"], dependencies=[Depends(limit_by_client)])

MIN_CUI_DIGITS = 2
MAX_CUI_DIGITS = 10


@router.post("/validate-cui", response_model=ValidationResponse)
def validate_cui(
    payload: Dict[str, Any] = Body(...),
    service: ANAFService = Depends(get_anaf),
) -> ValidationResponse:
    cui = payload.get("cui")
    if not cui or not isinstance(cui, str):
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid request", "message": "CUI is required and must be a string"},
        )

    digits = normalize_cui(cui)
    if not MIN_CUI_DIGITS <= len(digits) <= MAX_CUI_DIGITS:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid CUI format", "message": "CUI must be between 2 and 10 digits"},
        )

    return service.validate_cui(digits)


@router.get("/cache-stats", response_model=CacheStats)
def cache_stats(service: ANAFService = Depends(get_anaf)) -> CacheStats:
    return service.cache_stats()


@router.post("/clear-cache")
def clear_cache(service: ANAFService = Depends(get_anaf)) -> Dict[str, Any]:
    removed = service.clear_cache()
    return {"message": "Cache cleared successfully", "removed": removed}


@router.get("/health")
def anaf_health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": "ANAF Validation API",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
