from __future__ import annotations

from compliance.business.factories.models import Factory
from compliance.platform.security.context import Role
from compliance.platform.security.policy import EntityPolicy


FACTORY_SORT_FIELDS = frozenset({"name", "code", "country", "industry", "size", "created_at"})
FACTORY_READERS = frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN, Role.FACTORY_ADMIN, Role.AUDITOR})

FACTORY_POLICY = EntityPolicy(
    resource="factory",
    model=Factory,
    read_roles=FACTORY_READERS,
    factory_attr="id",
    operations={
        "create": frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN}),
        "update": frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN, Role.FACTORY_ADMIN}),
        "delete": frozenset({Role.SUPER_ADMIN}),
        "stats": FACTORY_READERS,
    },
)
