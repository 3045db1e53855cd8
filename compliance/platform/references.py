from __future__ import annotations

import uuid
from collections.abc import Collection, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from compliance.business.factories.models import Factory
from compliance.platform.security.context import Role
from compliance.platform.security.errors import InvalidReferenceError
from compliance.tenancy.models import User


def require_active_factory(
    session: Session,
    factory_id: uuid.UUID,
    *,
    tenant_id: uuid.UUID | None,
    field: str = "factory_id",
) -> Factory:
    """Return the factory if it exists, is active and belongs to ``tenant_id``.

    ``tenant_id=None`` accepts a factory of any tenant (super admin callers).
    """

    factory = session.get(Factory, factory_id)
    if factory is None or not factory.is_active:
        raise InvalidReferenceError(field, "factory not found or inactive")
    if tenant_id is not None and factory.tenant_id != tenant_id:
        raise InvalidReferenceError(field, "factory belongs to another tenant")
    return factory


def require_active_users(
    session: Session,
    user_ids: Iterable[uuid.UUID],
    *,
    tenant_id: uuid.UUID,
    field: str,
    roles: Collection[Role] | None = None,
) -> list[User]:
    requested = list(dict.fromkeys(user_ids))
    if not requested:
        return []

    stmt = select(User).where(
        User.id.in_(requested),
        User.tenant_id == tenant_id,
        User.is_active.is_(True),
    )
    if roles is not None:
        stmt = stmt.where(User.role.in_([str(role) for role in roles]))
    users = list(session.scalars(stmt).all())
    if len(users) != len(requested):
        raise InvalidReferenceError(field, f"{field} must reference active users of the tenant")
    by_id = {user.id: user for user in users}
    return [by_id[user_id] for user_id in requested]


def require_active_user(
    session: Session,
    user_id: uuid.UUID,
    *,
    tenant_id: uuid.UUID,
    field: str,
    roles: Collection[Role] | None = None,
) -> User:
    return require_active_users(session, [user_id], tenant_id=tenant_id, field=field, roles=roles)[0]
