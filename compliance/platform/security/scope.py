from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.sql import Select

from compliance.platform.security.context import Actor
from compliance.platform.security.policy import EntityPolicy, Participation


@dataclass(frozen=True, slots=True)
class ScopeFilter:
    """Row predicate derived from an actor.

    The same predicate is rendered either as a SQL ``WHERE`` clause (``apply``)
    or evaluated against a loaded object (``matches``). ``tenant_id=None``
    means global scope.
    """

    policy: EntityPolicy
    tenant_id: uuid.UUID | None = None
    factory_id: uuid.UUID | None = None
    pinned: bool = False
    participant_id: uuid.UUID | None = None
    participation: Participation | None = None

    @property
    def is_global(self) -> bool:
        return self.tenant_id is None

    def matches(self, entity: Any) -> bool:
        if self.tenant_id is not None and getattr(entity, self.policy.tenant_attr) != self.tenant_id:
            return False
        if self.factory_id is not None and getattr(entity, self.policy.factory_attr) != self.factory_id:
            return False
        if self.participation is not None and self.participant_id is not None:
            return self.participant_id in self.participation.participants(entity)
        return True

    def apply(self, stmt: Select[Any]) -> Select[Any]:
        if self.tenant_id is not None:
            stmt = stmt.where(self.policy.tenant_column() == self.tenant_id)
        if self.factory_id is not None:
            stmt = stmt.where(self.policy.factory_column() == self.factory_id)
        if self.participation is not None and self.participant_id is not None:
            stmt = stmt.where(self.participation.clause(self.policy.model, self.participant_id))
        return stmt


def build_scope_filter(
    actor: Actor,
    policy: EntityPolicy,
    explicit_factory_id: uuid.UUID | None = None,
) -> ScopeFilter:
    if actor.is_super_admin:
        return ScopeFilter(policy=policy, factory_id=explicit_factory_id)

    pinned_factory_id = actor.pinned_factory_id
    participation = policy.participation_for(actor.role)
    return ScopeFilter(
        policy=policy,
        tenant_id=actor.tenant_id,
        factory_id=pinned_factory_id or explicit_factory_id,
        pinned=pinned_factory_id is not None,
        participant_id=actor.id if participation is not None else None,
        participation=participation,
    )


def tenant_boundary(actor: Actor, policy: EntityPolicy) -> ScopeFilter:
    """Tenant-only predicate used to locate an entity before a mutation gate runs."""

    if actor.is_super_admin:
        return ScopeFilter(policy=policy)
    return ScopeFilter(policy=policy, tenant_id=actor.tenant_id)
