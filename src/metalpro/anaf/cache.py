"""Caches for ANAF validation results.

Cache Keys (redis backend):
- anaf:cui:{cui} → Serialized ValidationResponse (TTL: ANAF_CACHE_TTL, 24h)
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import redis

from metalpro.anaf.models import CacheEntryStats, CacheStats, ValidationResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
REDIS_KEY_PREFIX = "anaf:cui:"


def cache_ttl_seconds() -> int:
    raw = os.getenv("ANAF_CACHE_TTL")
    if not raw:
        return DEFAULT_TTL_SECONDS
    try:
        return max(1, int(raw))
    except ValueError:
        logger.warning("Ignoring non-integer ANAF_CACHE_TTL=%r", raw)
        return DEFAULT_TTL_SECONDS


class ValidationCache(Protocol):
    def get(self, cui: str) -> Optional[ValidationResponse]: ...

    def set(self, cui: str, result: ValidationResponse) -> None: ...

    def clear(self) -> int: ...

    def stats(self) -> CacheStats: ...


class TTLCache:
    """In-process cache with per-entry expiry, safe across threads."""

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else cache_ttl_seconds()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[ValidationResponse, float]] = {}

    def get(self, cui: str) -> Optional[ValidationResponse]:
        with self._lock:
            entry = self._entries.get(cui)
            if entry is None:
                return None
            result, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[cui]
                return None
            return result

    def set(self, cui: str, result: ValidationResponse) -> None:
        with self._lock:
            self._entries[cui] = (result, self._clock())

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            entries = [
                CacheEntryStats(
                    cui=cui,
                    age=int(now - stored_at),
                    valid=now - stored_at < self.ttl_seconds,
                )
                for cui, (_, stored_at) in self._entries.items()
            ]
        return CacheStats(backend="memory", size=len(entries), entries=entries)


class RedisValidationCache:
    """Redis-backed cache shared by every worker; expiry is left to ``SETEX``."""

    def __init__(
        self,
        url: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.url = url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else cache_ttl_seconds()
        self._client = client or redis.from_url(
            self.url,
            decode_responses=True,
            socket_keepalive=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )

    def _key(self, cui: str) -> str:
        return f"{REDIS_KEY_PREFIX}{cui}"

    def _keys(self) -> List[str]:
        return list(self._client.scan_iter(match=f"{REDIS_KEY_PREFIX}*"))

    def get(self, cui: str) -> Optional[ValidationResponse]:
        data = self._client.get(self._key(cui))
        if not data:
            return None
        try:
            return ValidationResponse.model_validate(json.loads(data))
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.warning("Discarding unreadable cache entry for CUI %s", cui)
            return None

    def set(self, cui: str, result: ValidationResponse) -> None:
        self._client.setex(self._key(cui), self.ttl_seconds, result.model_dump_json())

    def clear(self) -> int:
        keys = self._keys()
        if not keys:
            return 0
        return int(self._client.delete(*keys))

    def stats(self) -> CacheStats:
        entries: List[CacheEntryStats] = []
        for key in self._keys():
            remaining = self._client.ttl(key)
            if remaining is None or remaining < 0:
                continue
            data = self._client.get(key)
            valid = False
            if data:
                try:
                    valid = bool(json.loads(data).get("valid"))
                except (json.JSONDecodeError, AttributeError):
                    valid = False
            entries.append(
                CacheEntryStats(
                    cui=key[len(REDIS_KEY_PREFIX):],
                    age=max(0, self.ttl_seconds - int(remaining)),
                    valid=valid,
                )
            )
        return CacheStats(backend="redis", size=len(entries), entries=entries)

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.exceptions.ConnectionError:
            return False


def build_cache() -> ValidationCache:
    """Cache backend selected by ``METALPRO_ANAF_CACHE`` (``memory`` or ``redis``)."""

    backend = os.getenv("METALPRO_ANAF_CACHE", "memory").strip().lower()
    if backend == "redis":
        return RedisValidationCache()
    if backend != "memory":
        logger.warning("Unknown METALPRO_ANAF_CACHE=%r, using in-memory cache", backend)
    return TTLCache()
