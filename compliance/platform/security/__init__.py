from compliance.platform.security.actors import ActorResolver
from compliance.platform.security.context import ALL_ROLES, FACTORY_SCOPED_ROLES, Actor, EntityScope, Role
from compliance.platform.security.errors import (
    ComplianceError,
    ConflictError,
    DomainValidationError,
    ForbiddenError,
    InvalidReferenceError,
    InvalidStateError,
    NotFoundError,
    UnauthenticatedError,
)
from compliance.platform.security.gate import assert_can_mutate, assert_can_perform, assert_can_read
from compliance.platform.security.policy import EntityPolicy, Participation
from compliance.platform.security.scope import ScopeFilter, build_scope_filter, tenant_boundary
from compliance.platform.security.transitions import Transition, apply_transition, assert_transition

__all__ = [
    "ALL_ROLES",
    "FACTORY_SCOPED_ROLES",
    "Actor",
    "ActorResolver",
    "ComplianceError",
    "ConflictError",
    "DomainValidationError",
    "EntityPolicy",
    "EntityScope",
    "ForbiddenError",
    "InvalidReferenceError",
    "InvalidStateError",
    "NotFoundError",
    "Participation",
    "Role",
    "ScopeFilter",
    "Transition",
    "UnauthenticatedError",
    "apply_transition",
    "assert_can_mutate",
    "assert_can_perform",
    "assert_can_read",
    "assert_transition",
    "build_scope_filter",
    "tenant_boundary",
]
