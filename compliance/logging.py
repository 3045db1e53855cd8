from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from compliance.context import get_actor_context, get_correlation_id


MAX_ERROR_LENGTH = 500

# Only these record attributes are emitted; anything else passed via ``extra`` is dropped.
STRUCTURED_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "actor_id",
    "tenant_id",
    "entity_type",
    "entity_id",
    "action",
    "event_name",
    "error",
)


class RequestContextFilter(logging.Filter):
    """Stamps each record with the correlation id and, when known, the acting user."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        for key, value in get_actor_context().items():
            if value is not None and getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


def structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {name: getattr(record, name) for name in STRUCTURED_FIELDS if getattr(record, name, None) is not None}
    if isinstance(fields.get("error"), str):
        fields["error"] = fields["error"][:MAX_ERROR_LENGTH]
    return fields


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = structured_fields(record)
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        return json.dumps(
            {
                "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "correlation_id": getattr(record, "correlation_id", None),
                "fields": fields,
            },
            default=str,
        )


def configure_logging(level: str = "INFO") -> None:
    """Install the JSON stdout handler on the root logger. Later calls are no-ops."""

    root_logger = logging.getLogger()
    if getattr(root_logger, "_compliance_configured", False):
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(RequestContextFilter())

    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(handler)
    root_logger._compliance_configured = True  # type: ignore[attr-defined]
