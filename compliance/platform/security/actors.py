from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from compliance.platform.security.context import Actor, Role
from compliance.platform.security.errors import NotFoundError
from compliance.tenancy.models import User


@dataclass(slots=True)
class ActorResolver:
    """Turns an authenticated user id into an ``Actor``.

    The user row is read on every call so role, tenant and factory changes
    apply immediately; nothing is cached between requests.
    """

    def resolve(self, session: Session, actor_id: uuid.UUID) -> Actor:
        user = session.get(User, actor_id, populate_existing=True)
        if user is None or not user.is_active:
            raise NotFoundError("actor")
        return Actor(id=user.id, role=Role(user.role), tenant_id=user.tenant_id, factory_id=user.factory_id)
