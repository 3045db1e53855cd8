from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from compliance.context import get_correlation_id
from compliance.metrics import observe_activity_log_failure
from compliance.models.activity import Activity
from compliance.platform.security.context import Actor


logger = logging.getLogger("compliance.activity")


@dataclass(slots=True)
class ActivityLogger:
    """Best-effort activity trail.

    Runs after the primary write has committed. A failure here is logged and
    counted, and never undoes or fails the operation being recorded.
    """

    def record(
        self,
        session: Session,
        *,
        actor: Actor | None,
        entity_type: str,
        action: str,
        entity_id: uuid.UUID,
        factory_id: uuid.UUID | None = None,
        tenant_id: uuid.UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> Activity | None:
        activity = Activity(
            entity_type=entity_type,
            action=action,
            entity_id=entity_id,
            user_id=actor.id if actor is not None else None,
            tenant_id=tenant_id or (actor.tenant_id if actor is not None else None),
            factory_id=factory_id,
            correlation_id=get_correlation_id(),
            details=details or {},
        )
        try:
            session.add(activity)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            observe_activity_log_failure(resource=entity_type)
            logger.warning(
                "activity.log_failed",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "action": action,
                    "error": str(exc)[:500],
                },
            )
            return None
        return activity
