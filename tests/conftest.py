"""Shared fixtures: catalog, ANAF mock transport and API clients."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterator, List

import httpx
import pytest
from fastapi.testclient import TestClient

from metalpro.anaf.cache import TTLCache
from metalpro.anaf.service import ANAFService, set_anaf_service
from metalpro.api.security import set_rate_limit
from metalpro.catalog.models import Product
from metalpro.catalog.store import BUNDLED_CATALOG_PATH, ProductCatalog, load_catalog

ANAF_TEST_URL = "https://anaf.test/api/v8/ws/tva"
API_KEY = "test-key"

# CUIs understood by the fake ANAF endpoint
KNOWN_CUI = 14399840
UNKNOWN_CUI = 99999
SERVER_ERROR_CUI = 5000
TIMEOUT_CUI = 4040

KNOWN_COMPANY = {
    "cui": KNOWN_CUI,
    "data": "2026-10-17",
    "denumire": "METAL CONSTRUCT SRL",
    "nume": "METAL CONSTRUCT SRL",
    "adresa": "Str. Fabricii nr. 46, Cluj-Napoca, Jud. Cluj",
    "scpTVA": True,
    "statusInactivi": False,
    "data_inregistrare": "2001-03-12",
}


@pytest.fixture()
def catalog() -> ProductCatalog:
    return load_catalog(BUNDLED_CATALOG_PATH)


@pytest.fixture()
def make_product() -> Callable[..., Product]:
    """Factory for ad-hoc products; keyword overrides win over the defaults."""

    def _factory(**overrides: Any) -> Product:
        data: Dict[str, Any] = {
            "id": "prod-test",
            "title": "Test product",
            "family": "profiles",
            "grade": "S235JR",
            "standards": ["EN 10025"],
        }
        data.update(overrides)
        return Product.model_validate(data)

    return _factory


class FakeANAF:
    """Records requests and answers them like the ANAF VAT endpoint."""

    def __init__(self) -> None:
        self.requests: List[List[Dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        cui = payload[0]["cui"]
        if cui == TIMEOUT_CUI:
            raise httpx.ReadTimeout("timed out", request=request)
        if cui == SERVER_ERROR_CUI:
            return httpx.Response(500, request=request)
        if cui == KNOWN_CUI:
            body = {"cod": 200, "message": "SUCCESS", "found": [KNOWN_COMPANY], "notfound": []}
        else:
            body = {"cod": 200, "message": "SUCCESS", "found": [], "notfound": [cui]}
        return httpx.Response(200, json=body, request=request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture()
def fake_anaf() -> FakeANAF:
    return FakeANAF()


@pytest.fixture()
def anaf_service(fake_anaf) -> Iterator[ANAFService]:
    service = ANAFService(
        api_url=ANAF_TEST_URL,
        timeout=2.0,
        cache=TTLCache(ttl_seconds=3600),
        client=httpx.Client(transport=httpx.MockTransport(fake_anaf)),
    )
    yield service
    service.close()


@pytest.fixture()
def api_app(monkeypatch, anaf_service):
    monkeypatch.setenv("METALPRO_API_KEYS", f"{API_KEY},alt-key")
    monkeypatch.delenv("METALPRO_CATALOG_PATH", raising=False)
    set_rate_limit(100)
    set_anaf_service(anaf_service)

    from metalpro.api.app import app

    yield app
    set_anaf_service(None)


@pytest.fixture()
def api_client(api_app) -> Iterator[TestClient]:
    with TestClient(api_app, headers={"X-API-Key": API_KEY}) as client:
        yield client
