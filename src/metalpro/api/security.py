from __future__ import annotations

import os
import threading
import time
from typing import Dict, Optional, Tuple

from fastapi import Header, HTTPException, Request

from metalpro import __version__

ENGINE_VERSION = os.getenv("METALPRO_ENGINE_VERSION", __version__)


def _parse_api_keys(raw: str | None) -> set[str]:
    if not raw:
        return set()
    return {key.strip() for key in raw.split(",") if key.strip()}


def allowed_api_keys() -> set[str]:
    """Return the configured API keys from env or fallback to a dev key."""

    keys = _parse_api_keys(os.getenv("METALPRO_API_KEYS"))
    if not keys:
        keys = {"dev-key"}
    return keys


def _window_from_env(default: int = 60) -> int:
    try:
        return max(1, int(os.getenv("METALPRO_RATE_WINDOW_SEC", str(default))))
    except ValueError:
        return default


class RateLimiter:
    """In-process fixed-window limiter keyed by (caller, route)."""

    def __init__(self, rate_per_minute: int = 60, window_seconds: int | None = None) -> None:
        self.rate_per_minute = max(1, rate_per_minute)
        self.window_seconds = max(1, window_seconds or _window_from_env())
        self._lock = threading.Lock()
        self._counters: Dict[Tuple[str, str], Tuple[int, int]] = {}

    def _current_window(self) -> int:
        return int(time.time() // self.window_seconds)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def check(self, caller: str, route: str) -> None:
        window = self._current_window()
        key = (caller, route)
        with self._lock:
            count, active_window = self._counters.get(key, (0, window))
            if active_window != window:
                count = 0
                active_window = window

            if count >= self.rate_per_minute:
                raise HTTPException(
                    status_code=429,
                    detail={
                        "message": "Rate limit exceeded",
                        "limit_per_minute": self.rate_per_minute,
                        "route": route,
                    },
                )

            self._counters[key] = (count + 1, active_window)


def _limit_from_env() -> int:
    try:
        return int(os.getenv("METALPRO_RATE_LIMIT_PER_MINUTE", "60"))
    except ValueError:
        return 60


rate_limiter = RateLimiter(rate_per_minute=_limit_from_env())


def require_api_key(
    request: Request, x_api_key: Optional[str] = Header(None)
) -> str:
    """Validate the provided API key and enforce per-route rate limits."""

    keys = allowed_api_keys()
    if not x_api_key:
        raise HTTPException(status_code=401, detail={"message": "Missing API key"})
    if x_api_key not in keys:
        raise HTTPException(status_code=401, detail={"message": "Invalid API key"})

    rate_limiter.check(x_api_key, request.url.path)
    return x_api_key


def limit_by_client(request: Request) -> None:
    """Rate limit unauthenticated routes by the caller's address."""

    host = request.client.host if request.client else "unknown"
    rate_limiter.check(f"client:{host}", request.url.path)


def set_rate_limit(limit: int) -> None:
    """Utility hook for tests to reconfigure the limiter."""

    global rate_limiter
    rate_limiter = RateLimiter(
        rate_per_minute=max(1, int(limit)),
        window_seconds=_window_from_env(),
    )
