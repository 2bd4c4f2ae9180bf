# kuurier/core/circuit_breaker.py

import threading
import time
from typing import Callable, Dict, Optional

from limits import RateLimitItemPerMinute
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from loguru import logger
from slowapi import Limiter
from starlette.requests import Request

from kuurier.core.config import get_settings
from kuurier.core.crypto import fingerprint

_settings = get_settings()


def anonymous_key(request: Request) -> str:
    """
    Rate limit key for unauthenticated callers, derived from non-identifying
    headers. Client IPs are never used or stored.
    """
    data = "|".join(
        request.headers.get(h, "") for h in ("user-agent", "accept-language", "accept-encoding")
    )
    return "anon:" + fingerprint(_settings.jwt_secret, data)


# Limiter for the unauthenticated auth endpoints
limiter = Limiter(
    key_func=anonymous_key,
    storage_uri=_settings.rate_limit_storage_uri,
    in_memory_fallback_enabled=True,
)

PUBLIC_AUTH_LIMIT = _settings.public_rate_limit


class RequestCounter:
    """
    Fixed one-minute window counter keyed by caller identity.

    In-process fallback for SubjectRateLimiter. Owned by a limiter instance
    rather than the module, so each app (and each test) gets its own counts.
    """

    # Sweep expired keys once the table grows past this size
    SWEEP_THRESHOLD = 10000

    def __init__(self, limit: int, window_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}
        self._expiry: Dict[str, float] = {}

    def hit(self, key: str) -> int:
        """Record one request for `key` and return the count in the current window."""
        with self._lock:
            now = self._clock()

            if len(self._counts) > self.SWEEP_THRESHOLD:
                for k, exp in list(self._expiry.items()):
                    if now >= exp:
                        del self._counts[k]
                        del self._expiry[k]

            exp = self._expiry.get(key)
            if exp is not None and now >= exp:
                del self._counts[key]
                del self._expiry[key]

            count = self._counts.get(key, 0) + 1
            self._counts[key] = count
            self._expiry.setdefault(key, now + self.window_seconds)
            return count

    def allow(self, key: str) -> bool:
        return self.hit(key) <= self.limit

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._counts.clear()
                self._expiry.clear()
            else:
                self._counts.pop(key, None)
                self._expiry.pop(key, None)


class SubjectRateLimiter:
    """
    Per-subject limit for authenticated endpoints.

    Counts live in the shared `limits` storage at `storage_uri` so every
    worker sees the same window. While that storage is unreachable the
    instance's own RequestCounter takes over.
    """

    def __init__(self, limit: int, storage_uri: str = "memory://", fallback: Optional[RequestCounter] = None):
        self.item = RateLimitItemPerMinute(limit)
        self.storage = storage_from_string(storage_uri)
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.fallback = fallback or RequestCounter(limit)

    def allow(self, key: str) -> bool:
        try:
            return self.strategy.hit(self.item, key)
        except Exception as e:
            logger.warning(f"Rate limit storage unreachable, using in-memory counter: {e}")
            return self.fallback.allow(key)

    def reset(self) -> None:
        self.storage.reset()
        self.fallback.reset()
