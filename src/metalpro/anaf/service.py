"""CUI/VAT validation against the ANAF public web service.

Results for registered and unregistered CUIs are cached; upstream failures are
reported as invalid results and never cached, so the next call retries.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import date
from typing import Optional

import httpx
from pydantic import ValidationError

from metalpro.anaf.cache import ValidationCache, build_cache
from metalpro.anaf.models import ANAFRequest, ANAFResponse, CacheStats, ValidationResponse
from metalpro.observability import log_event

logger = logging.getLogger(__name__)

DEFAULT_ANAF_API_URL = "https://webservicesp.anaf.ro/PlatitorTvaRest/api/v8/ws/tva"
DEFAULT_TIMEOUT_SEC = 10.0

MSG_VALID = "CUI/VAT validat în baza ANAF"
MSG_NOT_FOUND = "CUI/VAT nu este înregistrat în baza ANAF"
MSG_INVALID_NUMBER = "CUI invalid - nu este un număr valid"
MSG_TIMEOUT = "Timeout la conectarea cu serviciul ANAF. Vă rugăm să încercați din nou."
MSG_UNAVAILABLE = "Eroare la conectarea cu serviciul ANAF. Vă rugăm să verificați manual."

_NON_DIGITS = re.compile(r"\D")
_COUNTY_PATTERN = re.compile(r"JUD\.\s*([A-ZĂÂÎȘȚŞŢ\-]+)", re.IGNORECASE)


def normalize_cui(raw: str) -> str:
    """Digits only: ``"RO 123-45"`` becomes ``"12345"``."""

    return _NON_DIGITS.sub("", raw or "")


def extract_county(address: Optional[str]) -> str:
    if not address:
        return ""
    match = _COUNTY_PATTERN.search(address)
    if match:
        return match.group(1).strip()

    parts = [part.strip() for part in address.split(",")]
    if len(parts) >= 2:
        last = parts[-1]
        if 2 < len(last) < 30:
            return last.upper()
    return ""


def _timeout_from_env() -> float:
    raw = os.getenv("ANAF_TIMEOUT_SEC")
    if not raw:
        return DEFAULT_TIMEOUT_SEC
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric ANAF_TIMEOUT_SEC=%r", raw)
        return DEFAULT_TIMEOUT_SEC


class ANAFService:
    """Validates CUIs with ANAF, caching answers per normalized CUI."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        cache: Optional[ValidationCache] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_url = api_url or os.getenv("ANAF_API_URL", DEFAULT_ANAF_API_URL)
        self.timeout = timeout if timeout is not None else _timeout_from_env()
        self.cache = cache if cache is not None else build_cache()
        self._client = client or httpx.Client(timeout=self.timeout)

    def close(self) -> None:
        self._client.close()

    def validate_cui(self, cui: str, on_date: Optional[date] = None) -> ValidationResponse:
        normalized = normalize_cui(cui)

        cached = self.cache.get(normalized)
        if cached is not None:
            logger.debug("ANAF cache hit for CUI %s", normalized)
            return cached

        if not normalized.isdigit():
            return ValidationResponse(valid=False, cui=normalized, message=MSG_INVALID_NUMBER)

        payload = [ANAFRequest(cui=int(normalized), data=(on_date or date.today()).isoformat())]
        logger.info("ANAF lookup for CUI %s", normalized)

        try:
            response = self._client.post(
                self.api_url,
                json=[entry.model_dump() for entry in payload],
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = ANAFResponse.model_validate(response.json())
        except httpx.TimeoutException:
            logger.warning("ANAF timeout for CUI %s", normalized)
            return ValidationResponse(valid=False, cui=normalized, message=MSG_TIMEOUT)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("ANAF returned HTTP %s for CUI %s", status, normalized)
            return ValidationResponse(
                valid=False,
                cui=normalized,
                message=f"Eroare ANAF: {status} - {exc.response.reason_phrase}",
            )
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.error("ANAF request failed for CUI %s: %s", normalized, exc)
            return ValidationResponse(valid=False, cui=normalized, message=MSG_UNAVAILABLE)

        if body.found:
            company = body.found[0]
            result = ValidationResponse(
                valid=True,
                cui=normalized,
                legal_name=company.legal_name,
                address=company.adresa,
                county=extract_county(company.adresa),
                vat_payer=company.scp_tva,
                active=not company.status_inactivi,
                registration_date=company.data_inregistrare,
                message=MSG_VALID,
            )
        else:
            result = ValidationResponse(valid=False, cui=normalized, message=MSG_NOT_FOUND)

        self.cache.set(normalized, result)
        log_event("anaf.validated", cui=normalized, valid=result.valid)
        return result

    def clear_cache(self) -> int:
        removed = self.cache.clear()
        logger.info("Cleared %d ANAF cache entries", removed)
        return removed

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()


# -------------------------------------------------------------------------
# Singleton instance
# -------------------------------------------------------------------------

_anaf_service: Optional[ANAFService] = None


def get_anaf_service() -> ANAFService:
    global _anaf_service
    if _anaf_service is None:
        _anaf_service = ANAFService()
    return _anaf_service


def set_anaf_service(service: Optional[ANAFService]) -> None:
    """Replace the process-wide service (``None`` rebuilds it on next use)."""

    global _anaf_service
    _anaf_service = service


def close_anaf_service() -> None:
    """Close the process-wide service's HTTP client and drop it."""

    global _anaf_service
    if _anaf_service is not None:
        _anaf_service.close()
        _anaf_service = None
