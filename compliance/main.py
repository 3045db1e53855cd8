from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from compliance.api.errors import register_exception_handlers
from compliance.api.routes import router as api_router
from compliance.core.config import Settings, get_settings
from compliance.core.events import InternalEvent
from compliance.logging import configure_logging
from compliance.middleware.correlation_id import CorrelationIdMiddleware
from compliance.middleware.rate_limit import AnonymousGrievanceRateLimitMiddleware, TokenBucketLimiter
from compliance.middleware.request_logging import RequestLoggingMiddleware
from compliance.otel import get_fastapi_server_request_hook, setup_otel
from compliance.services import ServiceRegistry, build_services


logger = logging.getLogger("compliance.lifecycle")

NOTIFICATION_EVENTS = [
    "audit.created",
    "audit.started",
    "audit.completed",
    "document.published",
    "document.archived",
    "grievance.submitted",
    "grievance.assigned",
    "grievance.resolved",
    "grievance.closed",
    "factory.created",
    "factory.deleted",
]


def _on_system_started(event: InternalEvent) -> None:
    logger.info("system_event", extra={"event_name": event.name})


def _on_notification(event: InternalEvent) -> None:
    logger.info(
        "notification.dispatched",
        extra={"event_name": event.name, "entity_id": event.payload.get("entity_id")},
    )


def create_app(
    settings: Settings | None = None,
    *,
    services: ServiceRegistry | None = None,
    limiter: TokenBucketLimiter | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    services = services or build_services(settings)
    limiter = limiter or TokenBucketLimiter()

    services.events.subscribe("system.started", _on_system_started)
    for event_name in NOTIFICATION_EVENTS:
        services.events.subscribe(event_name, _on_notification)

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        services.events.publish("system.started", {"service": settings.app_name})
        yield

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.state.rate_limiter = limiter

    app.add_middleware(AnonymousGrievanceRateLimitMiddleware, limiter=limiter)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)

    if settings.otel_enabled:
        setup_otel(settings.app_name, True)

    if not getattr(app, "_is_instrumented_by_opentelemetry", False):
        FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
    return app


app = create_app()
