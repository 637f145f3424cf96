from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from metalpro.api.routes_anaf import router as anaf_router
from metalpro.api.routes_bom import router as bom_router
from metalpro.api.routes_cart import router as cart_router
from metalpro.api.routes_products import router as products_router
from metalpro.api.security import ENGINE_VERSION
from metalpro.anaf.service import close_anaf_service
from metalpro.catalog.store import default_catalog
from metalpro.observability import (
    bind_run_id,
    current_run_id,
    log_event,
    new_run_id,
    redact_api_key,
    reset_run_id,
)

# -----------------------------------------------------------------------------
# App setup
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        catalog = default_catalog()
        logger.info("Catalog ready with %d products", len(catalog))
    except (OSError, ValueError):
        logger.exception("Catalog bootstrap failed")
    yield
    close_anaf_service()


app = FastAPI(title="MetalPro API", version="v1", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(bom_router)
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(anaf_router)


@app.middleware("http")
async def attach_run_id(request: Request, call_next):
    run_id = current_run_id() or new_run_id()
    token = bind_run_id(run_id)
    redacted_key = redact_api_key(request.headers.get("X-API-Key"))
    log_event("request.start", path=str(request.url.path), api_key=redacted_key)
    try:
        response = await call_next(request)
        response.headers["X-Run-ID"] = run_id
        return response
    finally:
        log_event("request.end", path=str(request.url.path), api_key=redacted_key)
        reset_run_id(token)


def _redact_message(msg: str) -> str:
    if msg.lower().startswith("value error, "):
        msg = msg.split(", ", 1)[1]
    lowered = msg.lower()
    if "key" in lowered or "token" in lowered or "secret" in lowered:
        return "Invalid request payload"
    return msg


def _normalize_validation_errors(raw_errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    fields: List[Dict[str, str]] = []
    for err in raw_errors:
        loc = err.get("loc", [])
        loc_parts = [str(part) for part in loc if part != "body"]
        path = ".".join(["request", *loc_parts]) if loc_parts else "request"
        message = _redact_message(err.get("msg", "Invalid request"))
        fields.append({"path": path, "message": message})
    return {"error": "VALIDATION_ERROR", "fields": fields}


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    content = _normalize_validation_errors(exc.errors())
    return JSONResponse(status_code=422, content=content)


@app.exception_handler(ValidationError)
async def handle_pydantic_validation_error(request: Request, exc: ValidationError):
    content = _normalize_validation_errors(exc.errors())
    return JSONResponse(status_code=422, content=content)


# -----------------------------------------------------------------------------
# Health & version
# -----------------------------------------------------------------------------
class VersionResp(BaseModel):
    engine_version: str
    build: Optional[str] = None
    catalog_path: Optional[str] = None


@app.get("/health")
def health() -> Dict[str, Any]:
    catalog = default_catalog()
    return {"ok": True, "status": "ok", "products": len(catalog)}


@app.get("/v1/health")
def legacy_health() -> Dict[str, Any]:
    return health()


@app.get("/v1/version", response_model=VersionResp)
def version() -> VersionResp:
    catalog = default_catalog()
    return VersionResp(
        engine_version=ENGINE_VERSION,
        build=os.getenv("GIT_COMMIT"),
        catalog_path=str(catalog.path) if catalog.path else None,
    )
