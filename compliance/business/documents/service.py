from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from compliance.business.documents.models import Document
from compliance.business.documents.policy import (
    DOCUMENT_SORT_FIELDS,
    DOCUMENT_STATUSES,
    DOCUMENT_TYPES,
    EDITABLE_DOCUMENT_STATUSES,
)
from compliance.business.documents.schemas import DocumentCreate, DocumentRead, DocumentStatsRead, DocumentUpdate
from compliance.platform.entity_service import AccessScopedEntityService
from compliance.platform.pagination import Page, PageRequest, resolve_ordering
from compliance.platform.references import require_active_factory
from compliance.platform.security.context import Actor, EntityScope
from compliance.platform.security.errors import InvalidStateError
from compliance.platform.security.gate import assert_can_perform
from compliance.platform.stats import StatsAggregator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class DocumentFilters:
    search: str | None = None
    type: str | None = None
    category: str | None = None
    status: str | None = None
    factory_id: uuid.UUID | None = None
    is_active: bool | None = None
    sort_by: str | None = None
    sort_order: str = "desc"


@dataclass(slots=True)
class DocumentService:
    entities: AccessScopedEntityService
    stats: StatsAggregator = field(default_factory=StatsAggregator)

    def create_document(self, session: Session, actor: Actor, payload: DocumentCreate) -> DocumentRead:
        assert_can_perform(actor, "create", self.entities.policy)
        factory = require_active_factory(
            session,
            payload.factory_id,
            tenant_id=None if actor.is_super_admin else actor.tenant_id,
        )
        self.entities.assert_can_create(actor, EntityScope(tenant_id=factory.tenant_id, factory_id=factory.id))

        document = Document(
            **payload.model_dump(exclude={"factory_id"}),
            tenant_id=factory.tenant_id,
            factory_id=factory.id,
            uploaded_by_id=actor.id,
            status="DRAFT",
            version=1,
            is_active=True,
        )
        session.add(document)
        session.commit()
        session.refresh(document)

        self.entities.record(session, actor, "created", document, {"title": document.title, "type": document.type})
        return DocumentRead.model_validate(document)

    def list_documents(
        self,
        session: Session,
        actor: Actor,
        page_request: PageRequest,
        filters: DocumentFilters | None = None,
    ) -> Page[DocumentRead]:
        filters = filters or DocumentFilters()
        criteria = []
        if filters.search:
            pattern = f"%{filters.search}%"
            criteria.append(or_(Document.title.ilike(pattern), Document.content.ilike(pattern)))
        if filters.type:
            criteria.append(Document.type == filters.type)
        if filters.category:
            criteria.append(Document.category == filters.category)
        if filters.status:
            criteria.append(Document.status == filters.status)
        if filters.is_active is not None:
            criteria.append(Document.is_active.is_(filters.is_active))

        order_by = resolve_ordering(
            Document, filters.sort_by, filters.sort_order, allowed=DOCUMENT_SORT_FIELDS, default="created_at"
        )
        result = self.entities.list(
            session,
            actor,
            page_request,
            factory_id=filters.factory_id,
            criteria=criteria,
            order_by=order_by,
        )
        return Page[DocumentRead].from_result(result, [DocumentRead.model_validate(item) for item in result.items])

    def get_document(self, session: Session, actor: Actor, document_id: uuid.UUID) -> DocumentRead:
        return DocumentRead.model_validate(self.entities.get(session, actor, document_id))

    def update_document(
        self,
        session: Session,
        actor: Actor,
        document_id: uuid.UUID,
        payload: DocumentUpdate,
    ) -> DocumentRead:
        document = self.entities.load_for_mutation(session, actor, document_id, "update")
        if document.status not in EDITABLE_DOCUMENT_STATUSES:
            raise InvalidStateError(
                "archived documents cannot be edited",
                expected=EDITABLE_DOCUMENT_STATUSES,
                actual=document.status,
            )

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return DocumentRead.model_validate(document)

        self.entities.update_fields(session, document, {**changes, "version": Document.version + 1})
        self.entities.record(session, actor, "updated", document, {"fields": sorted(changes), "version": document.version})
        return DocumentRead.model_validate(document)

    def publish_document(self, session: Session, actor: Actor, document_id: uuid.UUID) -> DocumentRead:
        document = self.entities.load_for_mutation(session, actor, document_id, "publish")
        now = utcnow()
        self.entities.transition(
            session,
            document,
            "publish",
            {"published_at": now, "updated_at": now, "version": Document.version + 1},
        )

        self.entities.record(session, actor, "published", document, {"version": document.version})
        self.entities.notify("document.published", document, version=document.version)
        return DocumentRead.model_validate(document)

    def archive_document(self, session: Session, actor: Actor, document_id: uuid.UUID) -> DocumentRead:
        document = self.entities.load_for_mutation(session, actor, document_id, "archive")
        now = utcnow()
        self.entities.transition(
            session,
            document,
            "archive",
            {"archived_at": now, "updated_at": now, "version": Document.version + 1},
        )

        self.entities.record(session, actor, "archived", document, {"version": document.version})
        self.entities.notify("document.archived", document, version=document.version)
        return DocumentRead.model_validate(document)

    def delete_document(self, session: Session, actor: Actor, document_id: uuid.UUID) -> DocumentRead:
        document = self.entities.load_for_mutation(session, actor, document_id, "delete")
        self.entities.update_fields(session, document, {"is_active": False})
        self.entities.record(session, actor, "deleted", document)
        return DocumentRead.model_validate(document)

    def purge_document(self, session: Session, actor: Actor, document_id: uuid.UUID) -> None:
        document = self.entities.load_for_mutation(session, actor, document_id, "purge")
        tenant_id, factory_id = document.tenant_id, document.factory_id
        snapshot = {"title": document.title, "version": document.version}
        session.delete(document)
        session.commit()

        self.entities.activity.record(
            session,
            actor=actor,
            entity_type=self.entities.resource,
            action="purged",
            entity_id=document_id,
            tenant_id=tenant_id,
            factory_id=factory_id,
            details=snapshot,
        )

    def get_stats(self, session: Session, actor: Actor, factory_id: uuid.UUID | None = None) -> DocumentStatsRead:
        scope = self.entities.read_scope(actor, factory_id)

        total = self.stats.total(session, scope)
        active = self.stats.total(session, scope, Document.is_active.is_(True))
        categories = self.stats.distinct_values(session, scope, Document.category)
        return DocumentStatsRead(
            total=total,
            active=active,
            inactive=total - active,
            by_status=self.stats.count_by(session, scope, Document.status, DOCUMENT_STATUSES),
            by_type=self.stats.count_by(session, scope, Document.type, DOCUMENT_TYPES),
            by_category=self.stats.count_by(session, scope, Document.category, categories),
        )

    def list_categories(self, session: Session, actor: Actor, factory_id: uuid.UUID | None = None) -> list[str]:
        scope = self.entities.read_scope(actor, factory_id)
        return self.stats.distinct_values(session, scope, Document.category, Document.is_active.is_(True))
