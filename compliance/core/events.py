from __future__ import annotations

import logging
import uuid
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from compliance.context import get_correlation_id


logger = logging.getLogger("compliance.events")


@dataclass
class InternalEvent:
    name: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: str | None = field(default_factory=get_correlation_id)


EventHandler = Callable[[InternalEvent], None]


class InProcessEventBus:
    """Fire-and-forget notification dispatcher.

    Handlers run synchronously in publish order. A failing handler is logged and
    skipped so the operation that emitted the event is never affected.
    """

    def __init__(self, *, history_size: int = 500) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self.published: deque[InternalEvent] = deque(maxlen=history_size)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._subscribers[event_name].append(handler)

    def publish(self, event_name: str, payload: dict[str, Any]) -> InternalEvent:
        event = InternalEvent(name=event_name, payload=payload)
        self.published.append(event)
        for handler in self._subscribers.get(event_name, []):
            try:
                handler(event)
            except Exception as exc:
                logger.exception("event_handler_failed", extra={"event_name": event_name, "error": str(exc)})
        return event
