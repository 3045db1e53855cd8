from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from compliance.platform.security.context import EntityScope, Role
from compliance.platform.security.transitions import Transition


@dataclass(frozen=True, slots=True)
class Participation:
    """Restricts a role to rows naming the actor in one of the given attributes.

    ``columns`` are scalar user-id columns, ``collections`` are many-to-many
    relationships to users.
    """

    columns: tuple[str, ...] = ()
    collections: tuple[str, ...] = ()

    def participants(self, entity: Any) -> frozenset[uuid.UUID]:
        found: set[uuid.UUID] = set()
        for name in self.columns:
            value = getattr(entity, name, None)
            if value is not None:
                found.add(value)
        for name in self.collections:
            found.update(member.id for member in getattr(entity, name, None) or ())
        return frozenset(found)

    def clause(self, model: type, user_id: uuid.UUID) -> ColumnElement[bool]:
        terms: list[ColumnElement[bool]] = [getattr(model, name) == user_id for name in self.columns]
        terms.extend(getattr(model, name).any(id=user_id) for name in self.collections)
        return or_(*terms)


@dataclass(frozen=True, slots=True)
class EntityPolicy:
    """Access rules for one entity type: role tables, scoping columns and lifecycle."""

    resource: str
    model: type
    read_roles: frozenset[Role]
    operations: Mapping[str, frozenset[Role]]
    tenant_attr: str = "tenant_id"
    factory_attr: str = "factory_id"
    status_attr: str = "status"
    participation: Mapping[Role, Participation] = field(default_factory=dict)
    transitions: Mapping[str, Transition] = field(default_factory=dict)

    def allowed_roles(self, operation: str) -> frozenset[Role]:
        try:
            return self.operations[operation]
        except KeyError:
            raise ValueError(f"unknown operation {operation!r} for {self.resource}") from None

    def transition(self, name: str) -> Transition:
        return self.transitions[name]

    def participation_for(self, role: Role) -> Participation | None:
        return self.participation.get(role)

    def tenant_column(self) -> Any:
        return getattr(self.model, self.tenant_attr)

    def factory_column(self) -> Any:
        return getattr(self.model, self.factory_attr)

    def scope_of(self, entity: Any) -> EntityScope:
        participants: set[uuid.UUID] = set()
        for rule in self.participation.values():
            participants.update(rule.participants(entity))
        return EntityScope(
            tenant_id=getattr(entity, self.tenant_attr),
            factory_id=getattr(entity, self.factory_attr),
            participants=frozenset(participants),
        )
