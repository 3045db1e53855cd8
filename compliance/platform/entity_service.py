from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from compliance.activity import ActivityLogger
from compliance.core.events import InProcessEventBus
from compliance.platform.pagination import PageRequest, PageResult, paginate
from compliance.platform.security.context import Actor, EntityScope
from compliance.platform.security.errors import NotFoundError
from compliance.platform.security.gate import assert_can_mutate, assert_can_read
from compliance.platform.security.policy import EntityPolicy
from compliance.platform.security.scope import ScopeFilter, build_scope_filter, tenant_boundary
from compliance.platform.security.transitions import apply_transition, assert_transition


logger = logging.getLogger("compliance.entities")


@dataclass(slots=True)
class AccessScopedEntityService:
    """Scoped reads, gated mutations and lifecycle transitions for one entity type.

    Entity services hold one of these configured with their ``EntityPolicy``
    and add only their own business rules on top.
    """

    policy: EntityPolicy
    activity: ActivityLogger
    events: InProcessEventBus

    @property
    def resource(self) -> str:
        return self.policy.resource

    def read_scope(self, actor: Actor, factory_id: uuid.UUID | None = None) -> ScopeFilter:
        assert_can_read(actor, self.policy)
        return build_scope_filter(actor, self.policy, factory_id)

    def list(
        self,
        session: Session,
        actor: Actor,
        page_request: PageRequest,
        *,
        factory_id: uuid.UUID | None = None,
        criteria: Iterable[ColumnElement[bool]] = (),
        order_by: Iterable[Any] = (),
    ) -> PageResult[Any]:
        scope = self.read_scope(actor, factory_id)
        stmt = scope.apply(select(self.policy.model)).where(*criteria)
        ordering = list(order_by) or [self.policy.model.id]
        return paginate(session, stmt.order_by(*ordering), page_request)

    def get(self, session: Session, actor: Actor, entity_id: uuid.UUID) -> Any:
        scope = self.read_scope(actor)
        return self._load(session, scope, entity_id)

    def load_for_mutation(self, session: Session, actor: Actor, entity_id: uuid.UUID, operation: str) -> Any:
        """Locate the row inside the actor's tenant, then run the full gate against it.

        Rows of other tenants are reported as missing; rows inside the tenant
        but outside the actor's factory or participation are forbidden.
        """

        assert_can_mutate(actor, operation, self.policy)
        entity = self._load(session, tenant_boundary(actor, self.policy), entity_id)
        assert_can_mutate(actor, operation, self.policy, self.policy.scope_of(entity))
        return entity

    def assert_can_create(self, actor: Actor, target: EntityScope, operation: str = "create") -> None:
        assert_can_mutate(actor, operation, self.policy, target)

    def update_fields(self, session: Session, entity: Any, changes: Mapping[str, Any]) -> Any:
        for key, value in changes.items():
            setattr(entity, key, value)
        session.commit()
        session.refresh(entity)
        return entity

    def check_transition(self, entity: Any, name: str) -> None:
        assert_transition(self.resource, getattr(entity, self.policy.status_attr), self.policy.transition(name))

    def transition(self, session: Session, entity: Any, name: str, values: Mapping[str, Any] | None = None) -> Any:
        apply_transition(session, self.policy, entity, self.policy.transition(name), values)
        return entity

    def record(
        self,
        session: Session,
        actor: Actor | None,
        action: str,
        entity: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.activity.record(
            session,
            actor=actor,
            entity_type=self.resource,
            action=action,
            entity_id=entity.id,
            tenant_id=getattr(entity, self.policy.tenant_attr),
            factory_id=getattr(entity, self.policy.factory_attr),
            details=details,
        )
        logger.info(
            "entity.changed",
            extra={
                "entity_type": self.resource,
                "entity_id": str(entity.id),
                "action": action,
                "actor_id": str(actor.id) if actor is not None else None,
            },
        )

    def notify(self, event_name: str, entity: Any, **payload: Any) -> None:
        self.events.publish(
            event_name,
            {
                "entity_id": str(entity.id),
                "tenant_id": str(getattr(entity, self.policy.tenant_attr)),
                "factory_id": str(getattr(entity, self.policy.factory_attr)),
                **payload,
            },
        )

    def _load(self, session: Session, scope: ScopeFilter, entity_id: uuid.UUID) -> Any:
        stmt: Select[Any] = select(self.policy.model).where(self.policy.model.id == entity_id)
        entity = session.scalar(scope.apply(stmt))
        if entity is None:
            raise NotFoundError(self.resource)
        return entity
