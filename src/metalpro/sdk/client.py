"""Typed Python SDK for the MetalPro API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests  # type: ignore[import-untyped]
from pydantic import BaseModel

from metalpro.anaf.models import ValidationResponse
from metalpro.bom.models import BOMMatchingStats, BOMRow, BOMTemplate, BOMUploadResult
from metalpro.cart.estimate import CartLineRequest, EstimateCart
from metalpro.catalog.models import Product


class VersionInfo(BaseModel):
    engine_version: str
    build: Optional[str] = None
    catalog_path: Optional[str] = None


class BOMUpload(BOMUploadResult):
    stats: BOMMatchingStats


class ProductList(BaseModel):
    total: int
    items: List[Product]


@dataclass
class MetalProConfig:
    """Configuration for :class:`MetalProClient`."""

    base_url: Optional[str] = None
    api_key: Optional[str] = None

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url
        env_value = os.getenv("METALPRO_BASE_URL")
        if env_value:
            return env_value
        return "http://localhost:8000"

    @property
    def resolved_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        env_value = os.getenv("METALPRO_API_KEY")
        if env_value:
            return env_value
        return "dev-key"


class MetalProClient:
    """High-level synchronous client for the MetalPro REST API."""

    def __init__(self, cfg: Optional[MetalProConfig] = None, session: Optional[requests.Session] = None):
        self.cfg = cfg or MetalProConfig()
        self._session = session or requests.Session()
        self._session.headers.setdefault("X-API-Key", self.cfg.resolved_api_key)

    @property
    def base_url(self) -> str:
        return self.cfg.resolved_base_url.rstrip("/")

    def _get(self, path: str, **kwargs: Any) -> Any:
        response = self._session.get(f"{self.base_url}{path}", **kwargs)
        response.raise_for_status()
        return response

    def _post(self, path: str, **kwargs: Any) -> Any:
        response = self._session.post(f"{self.base_url}{path}", **kwargs)
        response.raise_for_status()
        return response

    def version(self) -> VersionInfo:
        return VersionInfo.model_validate(self._get("/v1/version").json())

    # ------------------------------------------------------------------
    # BOM
    # ------------------------------------------------------------------
    def upload_bom(
        self,
        source: Path | str | bytes,
        file_name: Optional[str] = None,
        *,
        auto_detect_headers: bool = True,
        skip_empty_rows: bool = True,
    ) -> BOMUpload:
        """Upload a BOM file and return the parsed, auto-matched rows.

        Args:
            source: Path to a CSV/XLSX file, or the raw file bytes.
            file_name: Name sent with the upload; required for raw bytes
                unless the default ``bom.csv`` is right.
            auto_detect_headers: Let the server look for a header row.
            skip_empty_rows: Drop rows whose cells are all blank.
        Returns:
            Parsed :class:`BOMUpload` payload, including matching stats.
        """

        if isinstance(source, bytes):
            content = source
            name = file_name or "bom.csv"
        else:
            path = Path(source)
            content = path.read_bytes()
            name = file_name or path.name

        response = self._post(
            "/v1/bom/upload",
            files={"file": (name, content, "application/octet-stream")},
            params={
                "auto_detect_headers": str(auto_detect_headers).lower(),
                "skip_empty_rows": str(skip_empty_rows).lower(),
            },
        )
        return BOMUpload.model_validate(response.json())

    def bom_template(self) -> BOMTemplate:
        return BOMTemplate.model_validate(self._get("/v1/bom/template").json())

    def bom_template_csv(self) -> str:
        return self._get("/v1/bom/template.csv").text

    def bom_stats(self, rows: Iterable[BOMRow]) -> BOMMatchingStats:
        payload = {"rows": [row.model_dump(mode="json") for row in rows]}
        return BOMMatchingStats.model_validate(self._post("/v1/bom/stats", json=payload).json())

    def map_row(self, row: BOMRow, product_id: str) -> BOMRow:
        response = self._post(
            f"/v1/bom/rows/{row.row_index}/map",
            json={"row": row.model_dump(mode="json"), "product_id": product_id},
        )
        return BOMRow.model_validate(response.json())

    def export_bom_csv(self, rows: Iterable[BOMRow]) -> str:
        payload = {"rows": [row.model_dump(mode="json") for row in rows]}
        return self._post("/v1/bom/export.csv", json=payload).text

    # ------------------------------------------------------------------
    # Catalog & cart
    # ------------------------------------------------------------------
    def list_products(
        self,
        *,
        family: Sequence[str] = (),
        grade: Sequence[str] = (),
        standard: Sequence[str] = (),
        search: Optional[str] = None,
    ) -> ProductList:
        params: Dict[str, Any] = {}
        if family:
            params["family"] = list(family)
        if grade:
            params["grade"] = list(grade)
        if standard:
            params["standard"] = list(standard)
        if search:
            params["search"] = search
        return ProductList.model_validate(self._get("/v1/products", params=params).json())

    def get_product(self, product_id: str) -> Product:
        return Product.model_validate(self._get(f"/v1/products/{product_id}").json())

    def estimate_cart(self, lines: Iterable[CartLineRequest]) -> EstimateCart:
        payload = {"lines": [line.model_dump(mode="json") for line in lines]}
        return EstimateCart.model_validate(self._post("/v1/cart/estimate", json=payload).json())

    def cart_from_bom(self, rows: Iterable[BOMRow]) -> EstimateCart:
        payload = {"rows": [row.model_dump(mode="json") for row in rows]}
        return EstimateCart.model_validate(self._post("/v1/cart/from-bom", json=payload).json())

    # ------------------------------------------------------------------
    # ANAF
    # ------------------------------------------------------------------
    def validate_cui(self, cui: str) -> ValidationResponse:
        response = self._post("/api/anaf/validate-cui", json={"cui": cui})
        return ValidationResponse.model_validate(response.json())
