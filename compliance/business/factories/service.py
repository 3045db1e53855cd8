from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from compliance.business.audits.models import Audit, AuditFinding, CorrectiveAction
from compliance.business.documents.models import Document
from compliance.business.factories.models import Factory
from compliance.business.factories.policy import FACTORY_SORT_FIELDS
from compliance.business.factories.schemas import (
    ActivityRead,
    ComplianceOverview,
    FactoryComplianceRead,
    FactoryCounts,
    FactoryCreate,
    FactoryRead,
    FactoryStatsRead,
    FactorySummary,
    FactoryUpdate,
    UserCounts,
)
from compliance.business.grievances.models import Grievance
from compliance.models.activity import Activity
from compliance.platform.entity_service import AccessScopedEntityService
from compliance.platform.pagination import Page, PageRequest, resolve_ordering
from compliance.platform.security.context import Actor, EntityScope
from compliance.platform.security.errors import ConflictError, InvalidReferenceError
from compliance.platform.security.gate import assert_can_perform
from compliance.platform.stats import compliance_score
from compliance.tenancy.models import Tenant, User


ACTIVE_USER_WINDOW = timedelta(days=30)
OPEN_GRIEVANCE_STATUSES = ("SUBMITTED", "ASSIGNED")
OPEN_FINDING_STATUSES = ("OPEN", "IN_PROGRESS")
PENDING_ACTION_STATUSES = ("PENDING", "IN_PROGRESS")


def unique_violation(exc: IntegrityError) -> ConflictError:
    """Name the field whose unique constraint the store rejected."""

    detail = str(exc.orig)
    if "uq_factory_tenant_active_name" in detail or "factory.name" in detail:
        return ConflictError("name", "factory name already exists in this tenant")
    return ConflictError("code", "factory code already exists")


@dataclass(slots=True)
class FactoryFilters:
    search: str | None = None
    country: str | None = None
    industry: str | None = None
    is_active: bool | None = None
    sort_by: str | None = None
    sort_order: str = "asc"


@dataclass(slots=True)
class FactoryService:
    entities: AccessScopedEntityService
    recent_activity_limit: int = field(default=10)

    def create_factory(self, session: Session, actor: Actor, payload: FactoryCreate) -> FactoryRead:
        tenant_id = payload.tenant_id or actor.tenant_id
        self.entities.assert_can_create(actor, EntityScope(tenant_id=tenant_id, factory_id=None))

        tenant = session.get(Tenant, tenant_id)
        if tenant is None or not tenant.is_active:
            raise InvalidReferenceError("tenant_id", "tenant not found or inactive")

        self._assert_unique(session, tenant_id, name=payload.name, code=payload.code)

        factory = Factory(**payload.model_dump(exclude={"tenant_id"}), tenant_id=tenant_id)
        session.add(factory)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise unique_violation(exc) from exc
        session.refresh(factory)

        self.entities.record(session, actor, "created", factory, {"name": factory.name, "code": factory.code})
        self.entities.notify("factory.created", factory, name=factory.name)
        return FactoryRead.model_validate(factory)

    def list_factories(
        self,
        session: Session,
        actor: Actor,
        page_request: PageRequest,
        filters: FactoryFilters | None = None,
    ) -> Page[FactoryRead]:
        filters = filters or FactoryFilters()
        criteria = []
        if filters.search:
            pattern = f"%{filters.search}%"
            criteria.append(or_(Factory.name.ilike(pattern), Factory.code.ilike(pattern)))
        if filters.country:
            criteria.append(Factory.country == filters.country)
        if filters.industry:
            criteria.append(Factory.industry == filters.industry)
        if filters.is_active is not None:
            criteria.append(Factory.is_active.is_(filters.is_active))

        order_by = resolve_ordering(
            Factory, filters.sort_by, filters.sort_order, allowed=FACTORY_SORT_FIELDS, default="name"
        )
        result = self.entities.list(session, actor, page_request, criteria=criteria, order_by=order_by)
        return Page[FactoryRead].from_result(result, [FactoryRead.model_validate(item) for item in result.items])

    def get_factory(self, session: Session, actor: Actor, factory_id: uuid.UUID) -> FactoryRead:
        return FactoryRead.model_validate(self.entities.get(session, actor, factory_id))

    def update_factory(self, session: Session, actor: Actor, factory_id: uuid.UUID, payload: FactoryUpdate) -> FactoryRead:
        factory = self.entities.load_for_mutation(session, actor, factory_id, "update")
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return FactoryRead.model_validate(factory)

        self._assert_unique(
            session,
            factory.tenant_id,
            name=changes.get("name"),
            code=changes.get("code"),
            exclude_id=factory.id,
        )
        try:
            self.entities.update_fields(session, factory, changes)
        except IntegrityError as exc:
            session.rollback()
            raise unique_violation(exc) from exc

        self.entities.record(session, actor, "updated", factory, {"fields": sorted(changes)})
        return FactoryRead.model_validate(factory)

    def delete_factory(self, session: Session, actor: Actor, factory_id: uuid.UUID) -> FactoryRead:
        factory = self.entities.load_for_mutation(session, actor, factory_id, "delete")

        active_users = session.scalar(
            select(func.count()).select_from(User).where(User.factory_id == factory.id, User.is_active.is_(True))
        )
        if active_users:
            raise ConflictError("users", "cannot delete factory with active users")

        self.entities.update_fields(session, factory, {"is_active": False})
        self.entities.record(session, actor, "deleted", factory)
        self.entities.notify("factory.deleted", factory)
        return FactoryRead.model_validate(factory)

    def get_factory_stats(self, session: Session, actor: Actor, factory_id: uuid.UUID) -> FactoryStatsRead:
        assert_can_perform(actor, "stats", self.entities.policy)
        factory = self.entities.get(session, actor, factory_id)

        active_since = datetime.now(timezone.utc) - ACTIVE_USER_WINDOW
        users_total = self._count(session, User, User.factory_id == factory.id)
        users_active = self._count(
            session,
            User,
            User.factory_id == factory.id,
            User.is_active.is_(True),
            User.last_login_at >= active_since,
        )
        counts = FactoryCounts(
            users=UserCounts(total=users_total, active=users_active),
            documents=self._count(session, Document, Document.factory_id == factory.id, Document.is_active.is_(True)),
            audits=self._count(session, Audit, Audit.factory_id == factory.id),
            open_grievances=self._count(
                session,
                Grievance,
                Grievance.factory_id == factory.id,
                Grievance.status.in_(OPEN_GRIEVANCE_STATUSES),
            ),
        )
        recent = session.scalars(
            select(Activity)
            .where(Activity.factory_id == factory.id)
            .order_by(Activity.created_at.desc())
            .limit(self.recent_activity_limit)
        ).all()
        return FactoryStatsRead(
            factory=FactorySummary.model_validate(factory),
            stats=counts,
            recent_activities=[ActivityRead.model_validate(item) for item in recent],
        )

    def get_compliance_overview(self, session: Session, actor: Actor, factory_id: uuid.UUID) -> FactoryComplianceRead:
        assert_can_perform(actor, "stats", self.entities.policy)
        factory = self.entities.get(session, actor, factory_id)

        completed_scores = session.scalars(
            select(Audit.score).where(Audit.factory_id == factory.id, Audit.status == "COMPLETED")
        ).all()
        active_audits = self._count(session, Audit, Audit.factory_id == factory.id, Audit.status == "IN_PROGRESS")
        open_findings = self._count(
            session,
            AuditFinding,
            AuditFinding.factory_id == factory.id,
            AuditFinding.status.in_(OPEN_FINDING_STATUSES),
        )
        overdue_actions = self._count(
            session,
            CorrectiveAction,
            CorrectiveAction.factory_id == factory.id,
            CorrectiveAction.status.in_(PENDING_ACTION_STATUSES),
            CorrectiveAction.due_date < date.today(),
        )

        result = compliance_score(completed_scores, open_findings=open_findings, overdue_actions=overdue_actions)
        return FactoryComplianceRead(
            factory=FactorySummary.model_validate(factory),
            compliance=ComplianceOverview(
                score=result.score,
                status=result.status,
                completed_audits=result.completed_audits,
                passed_audits=result.passed_audits,
                active_audits=active_audits,
                open_findings=result.open_findings,
                overdue_actions=result.overdue_actions,
            ),
        )

    def _assert_unique(
        self,
        session: Session,
        tenant_id: uuid.UUID,
        *,
        name: str | None,
        code: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if name is not None:
            stmt = select(Factory.id).where(
                Factory.tenant_id == tenant_id,
                Factory.name == name,
                Factory.is_active.is_(True),
            )
            if exclude_id is not None:
                stmt = stmt.where(Factory.id != exclude_id)
            if session.scalar(stmt) is not None:
                raise ConflictError("name", "factory name already exists in this tenant")

        if code is not None:
            stmt = select(Factory.id).where(Factory.code == code)
            if exclude_id is not None:
                stmt = stmt.where(Factory.id != exclude_id)
            if session.scalar(stmt) is not None:
                raise ConflictError("code", "factory code already exists")

    @staticmethod
    def _count(session: Session, model: type, *criteria) -> int:  # type: ignore[no-untyped-def]
        return int(session.scalar(select(func.count()).select_from(model).where(*criteria)) or 0)
