from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from compliance.api.errors import error_response
from compliance.core.config import get_settings
from compliance.metrics import observe_anonymous_submission_limited


logger = logging.getLogger("compliance.rate_limit")

ANONYMOUS_SUBMISSION_PATH = "/api/grievances"
ANONYMOUS_SUBMISSION_GROUP = "grievances.anonymous"


@dataclass
class _Bucket:
    capacity: float
    tokens: float
    refilled_at: float

    def refill(self, now: float, window_seconds: int) -> None:
        elapsed = max(0.0, now - self.refilled_at)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.capacity / window_seconds)
        self.refilled_at = now

    def seconds_until_token(self, window_seconds: int) -> int:
        return max(1, math.ceil((1.0 - self.tokens) * window_seconds / self.capacity))


class TokenBucketLimiter:
    """In-memory token buckets keyed by (client, route group).

    A bucket holds ``capacity`` tokens and refills evenly over
    ``window_seconds``. A bucket idle for a whole window is full again, so it
    is dropped on the next sweep and recreated on demand.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[tuple[str, str], _Bucket] = {}
        self._last_sweep = clock()

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    def take(self, client_key: str, route_group: str, capacity: int, window_seconds: int) -> tuple[bool, int]:
        """Consume one token. Returns ``(allowed, retry_after_seconds)``."""

        if capacity <= 0:
            return False, window_seconds

        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(now, window_seconds)
            bucket = self._buckets.setdefault(
                (client_key, route_group),
                _Bucket(capacity=float(capacity), tokens=float(capacity), refilled_at=now),
            )
            bucket.capacity = float(capacity)
            bucket.refill(now, window_seconds)
            if bucket.tokens < 1.0:
                return False, bucket.seconds_until_token(window_seconds)
            bucket.tokens -= 1.0
            return True, 0

    def _sweep(self, now: float, window_seconds: int) -> None:
        idle = [key for key, bucket in self._buckets.items() if now - bucket.refilled_at >= window_seconds]
        for key in idle:
            del self._buckets[key]
        self._last_sweep = now

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()


def client_key_for(request: Request) -> str:
    return request.client.host if request.client is not None else "unknown"


def is_anonymous_submission(request: Request) -> bool:
    if request.method.upper() != "POST" or request.url.path.rstrip("/") != ANONYMOUS_SUBMISSION_PATH:
        return False
    return not request.headers.get("authorization", "").startswith("Bearer ")


class AnonymousGrievanceRateLimitMiddleware(BaseHTTPMiddleware):
    """Throttles unauthenticated grievance submissions per client address."""

    def __init__(self, app: ASGIApp, limiter: TokenBucketLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        settings = get_settings()
        if settings.rate_limit_disabled or not is_anonymous_submission(request):
            return await call_next(request)

        client_key = client_key_for(request)
        allowed, retry_after = self.limiter.take(
            client_key,
            ANONYMOUS_SUBMISSION_GROUP,
            capacity=settings.rate_limit_anonymous_grievances_per_minute,
            window_seconds=60,
        )
        if allowed:
            return await call_next(request)

        observe_anonymous_submission_limited()
        logger.warning(
            "rate_limit.exceeded",
            extra={"method": request.method, "path": ANONYMOUS_SUBMISSION_PATH, "action": ANONYMOUS_SUBMISSION_GROUP},
        )
        response = error_response(
            request,
            status_code=429,
            code="rate_limited",
            message="too many anonymous submissions, retry later",
            details={"retry_after": retry_after},
        )
        response.headers["Retry-After"] = str(retry_after)
        return response
