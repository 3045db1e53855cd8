from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum


class Role(StrEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    FACTORY_ADMIN = "FACTORY_ADMIN"
    HR_STAFF = "HR_STAFF"
    GRIEVANCE_COMMITTEE = "GRIEVANCE_COMMITTEE"
    AUDITOR = "AUDITOR"
    ANALYTICS_USER = "ANALYTICS_USER"
    WORKER = "WORKER"


ALL_ROLES: frozenset[Role] = frozenset(Role)
FACTORY_SCOPED_ROLES: frozenset[Role] = frozenset({Role.FACTORY_ADMIN, Role.HR_STAFF, Role.GRIEVANCE_COMMITTEE})


@dataclass(frozen=True, slots=True)
class Actor:
    """Identity performing an operation, resolved from the user store per request."""

    id: uuid.UUID
    role: Role
    tenant_id: uuid.UUID
    factory_id: uuid.UUID | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @property
    def pinned_factory_id(self) -> uuid.UUID | None:
        """Factory the actor is confined to, or ``None`` when not factory-scoped."""

        if self.role in FACTORY_SCOPED_ROLES:
            return self.factory_id
        return None


@dataclass(frozen=True, slots=True)
class EntityScope:
    """Ownership coordinates of an existing row or of a row about to be created."""

    tenant_id: uuid.UUID
    factory_id: uuid.UUID | None
    participants: frozenset[uuid.UUID] = field(default_factory=frozenset)
