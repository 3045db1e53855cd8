from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

scope_denials_total = Counter(
    "scope_denials_total",
    "Total access denials by resource and reason",
    ["resource", "reason"],
)

transition_rejections_total = Counter(
    "transition_rejections_total",
    "Total rejected lifecycle transitions",
    ["resource", "transition"],
)

activity_log_failures_total = Counter(
    "activity_log_failures_total",
    "Total activity log writes that failed",
    ["resource"],
)

anonymous_submissions_limited_total = Counter(
    "anonymous_submissions_limited_total",
    "Total anonymous submissions rejected by the rate limiter",
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        route_path = getattr(route, "path_format", None) or getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _PATH_PARAM_RE.sub("{id}", route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_scope_denial(resource: str, reason: str) -> None:
    scope_denials_total.labels(resource=resource, reason=reason).inc()


def observe_transition_rejected(resource: str, transition: str) -> None:
    transition_rejections_total.labels(resource=resource, transition=transition).inc()


def observe_activity_log_failure(resource: str) -> None:
    activity_log_failures_total.labels(resource=resource).inc()


def observe_anonymous_submission_limited() -> None:
    anonymous_submissions_limited_total.inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
