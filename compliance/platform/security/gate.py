from __future__ import annotations

import logging

from compliance.metrics import observe_scope_denial
from compliance.platform.security.context import Actor, EntityScope
from compliance.platform.security.errors import ForbiddenError
from compliance.platform.security.policy import EntityPolicy


logger = logging.getLogger("compliance.security")


def assert_can_read(actor: Actor, policy: EntityPolicy) -> None:
    if actor.role not in policy.read_roles:
        _deny(actor, policy, "read", "role", f"role {actor.role} may not read {policy.resource}")


def assert_can_perform(actor: Actor, operation: str, policy: EntityPolicy) -> None:
    if actor.role not in policy.allowed_roles(operation):
        _deny(actor, policy, operation, "role", f"role {actor.role} may not {operation} {policy.resource}")


def assert_can_mutate(
    actor: Actor,
    operation: str,
    policy: EntityPolicy,
    target: EntityScope | None = None,
) -> None:
    """Check the role allow-list, then tenant, pinned factory and participation.

    ``target`` is the scope of the existing row, or of the row about to be
    created. Without a target only the role allow-list is checked.
    """

    assert_can_perform(actor, operation, policy)

    if actor.is_super_admin or target is None:
        return

    if target.tenant_id != actor.tenant_id:
        _deny(actor, policy, operation, "tenant", f"{policy.resource} belongs to another tenant")

    pinned_factory_id = actor.pinned_factory_id
    if pinned_factory_id is not None and target.factory_id != pinned_factory_id:
        _deny(actor, policy, operation, "factory", f"{policy.resource} belongs to another factory")

    if policy.participation_for(actor.role) is not None and actor.id not in target.participants:
        _deny(actor, policy, operation, "participation", f"actor does not participate in this {policy.resource}")


def _deny(actor: Actor, policy: EntityPolicy, operation: str, reason: str, message: str) -> None:
    observe_scope_denial(resource=policy.resource, reason=reason)
    logger.info(
        "scope.denied",
        extra={
            "actor_id": str(actor.id),
            "tenant_id": str(actor.tenant_id),
            "entity_type": policy.resource,
            "action": operation,
            "error": reason,
        },
    )
    raise ForbiddenError(message, reason=reason)
