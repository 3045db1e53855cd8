from __future__ import annotations

import logging
import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from compliance.metrics import observe_http_request, resolve_http_path_label


logger = logging.getLogger("compliance.request")

QUIET_PATHS = frozenset({"/health", "/metrics"})


def _request_fields(request: Request, status_code: int, started: float) -> dict[str, Any]:
    return {
        "method": request.method,
        "path": resolve_http_path_label(request),
        "status_code": status_code,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        "actor_id": getattr(request.state, "actor_id", None),
        "tenant_id": getattr(request.state, "tenant_id", None),
    }


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line and one metric sample per request, labelled by route template."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            fields = _request_fields(request, 500, started)
            observe_http_request(request.method, fields["path"], 500, fields["duration_ms"] / 1000)
            logger.error("http.error", exc_info=True, extra=fields)
            raise

        fields = _request_fields(request, response.status_code, started)
        observe_http_request(request.method, fields["path"], response.status_code, fields["duration_ms"] / 1000)
        logger.log(_level_for(request.url.path, response.status_code), "http.request", extra=fields)
        return response
