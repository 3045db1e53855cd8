from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, select, update
from sqlalchemy.orm import Session

from compliance.metrics import observe_transition_rejected
from compliance.otel import entity_span, get_tracer
from compliance.platform.security.errors import InvalidStateError

if TYPE_CHECKING:
    from compliance.platform.security.policy import EntityPolicy


logger = logging.getLogger("compliance.transitions")
tracer = get_tracer("compliance.transitions")


@dataclass(frozen=True, slots=True)
class Transition:
    name: str
    from_states: frozenset[str]
    to_state: str
    rejections: Mapping[str, str] = field(default_factory=dict)

    def rejection_message(self, resource: str, current_status: str | None) -> str:
        if current_status in self.rejections:
            return self.rejections[current_status]
        return f"cannot {self.name} {resource} in status {current_status}"


def assert_transition(resource: str, current_status: str | None, transition: Transition) -> None:
    if current_status not in transition.from_states:
        _reject(resource, current_status, transition)


def apply_transition(
    session: Session,
    policy: EntityPolicy,
    entity: Any,
    transition: Transition,
    values: Mapping[str, Any] | None = None,
) -> None:
    """Write the new status and its effects only if the row is still in an allowed state.

    The write is a conditional ``UPDATE``; when another request moved the row
    first no rows match and the current status is reported back.
    """

    model = policy.model
    status_column = getattr(model, policy.status_attr)
    with entity_span(tracer, policy.resource, transition.name, entity.id) as span:
        span.set_attribute("transition.to_state", transition.to_state)

        assert_transition(policy.resource, getattr(entity, policy.status_attr), transition)

        result = session.execute(
            update(model)
            .where(and_(model.id == entity.id, status_column.in_(sorted(transition.from_states))))
            .values({policy.status_attr: transition.to_state, **(values or {})})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            session.rollback()
            actual = session.scalar(select(status_column).where(model.id == entity.id))
            span.set_attribute("rejected", True)
            _reject(policy.resource, actual, transition)

        session.commit()
        session.refresh(entity)


def _reject(resource: str, current_status: str | None, transition: Transition) -> None:
    observe_transition_rejected(resource=resource, transition=transition.name)
    logger.info(
        "transition.rejected",
        extra={"entity_type": resource, "action": transition.name, "error": current_status},
    )
    raise InvalidStateError(
        transition.rejection_message(resource, current_status),
        expected=transition.from_states,
        actual=current_status,
    )
