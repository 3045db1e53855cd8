from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from compliance.business.audits.models import Audit, AuditFinding, CorrectiveAction
from compliance.business.audits.policy import AUDIT_SORT_FIELDS, AUDIT_STATUSES, AUDIT_TYPES, AUDITOR_ROLES
from compliance.business.audits.schemas import (
    AuditComplete,
    AuditCreate,
    AuditRead,
    AuditStatsRead,
    AuditUpdate,
    CorrectiveActionCreate,
    CorrectiveActionRead,
    FindingCreate,
    FindingRead,
)
from compliance.platform.entity_service import AccessScopedEntityService
from compliance.platform.pagination import Page, PageRequest, resolve_ordering
from compliance.platform.references import require_active_factory, require_active_user, require_active_users
from compliance.platform.security.context import Actor, EntityScope
from compliance.platform.security.errors import DomainValidationError, NotFoundError
from compliance.platform.security.gate import assert_can_perform
from compliance.platform.stats import StatsAggregator


MIN_AUDIT_SCORE = 0.0
MAX_AUDIT_SCORE = 100.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class AuditFilters:
    search: str | None = None
    type: str | None = None
    status: str | None = None
    standard: str | None = None
    factory_id: uuid.UUID | None = None
    auditor_id: uuid.UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    sort_by: str | None = None
    sort_order: str = "desc"


@dataclass(slots=True)
class AuditService:
    entities: AccessScopedEntityService
    stats: StatsAggregator = field(default_factory=StatsAggregator)

    def create_audit(self, session: Session, actor: Actor, payload: AuditCreate) -> AuditRead:
        assert_can_perform(actor, "create", self.entities.policy)
        factory = require_active_factory(
            session,
            payload.factory_id,
            tenant_id=None if actor.is_super_admin else actor.tenant_id,
        )
        self.entities.assert_can_create(
            actor,
            EntityScope(tenant_id=factory.tenant_id, factory_id=factory.id, participants=frozenset({actor.id})),
        )

        auditors = require_active_users(
            session,
            payload.auditor_ids,
            tenant_id=factory.tenant_id,
            field="auditor_ids",
            roles=AUDITOR_ROLES,
        )
        witnesses = require_active_users(session, payload.witness_ids, tenant_id=factory.tenant_id, field="witness_ids")

        audit = Audit(
            **payload.model_dump(exclude={"factory_id", "auditor_ids", "witness_ids"}),
            tenant_id=factory.tenant_id,
            factory_id=factory.id,
            created_by_id=actor.id,
            status="PLANNED",
            auditors=auditors,
            witnesses=witnesses,
        )
        session.add(audit)
        session.commit()
        session.refresh(audit)

        self.entities.record(session, actor, "created", audit, {"title": audit.title, "type": audit.type})
        self.entities.notify("audit.created", audit, auditor_ids=[str(user.id) for user in auditors])
        return AuditRead.model_validate(audit)

    def list_audits(
        self,
        session: Session,
        actor: Actor,
        page_request: PageRequest,
        filters: AuditFilters | None = None,
    ) -> Page[AuditRead]:
        filters = filters or AuditFilters()
        criteria = []
        if filters.search:
            pattern = f"%{filters.search}%"
            criteria.append(or_(Audit.title.ilike(pattern), Audit.standard.ilike(pattern), Audit.scope.ilike(pattern)))
        if filters.type:
            criteria.append(Audit.type == filters.type)
        if filters.status:
            criteria.append(Audit.status == filters.status)
        if filters.standard:
            criteria.append(Audit.standard == filters.standard)
        if filters.auditor_id:
            criteria.append(Audit.auditors.any(id=filters.auditor_id))
        if filters.date_from:
            criteria.append(Audit.planned_start_date >= filters.date_from)
        if filters.date_to:
            criteria.append(Audit.planned_start_date <= filters.date_to)

        order_by = resolve_ordering(
            Audit, filters.sort_by, filters.sort_order, allowed=AUDIT_SORT_FIELDS, default="created_at"
        )
        result = self.entities.list(
            session,
            actor,
            page_request,
            factory_id=filters.factory_id,
            criteria=criteria,
            order_by=order_by,
        )
        return Page[AuditRead].from_result(result, [AuditRead.model_validate(item) for item in result.items])

    def get_audit(self, session: Session, actor: Actor, audit_id: uuid.UUID) -> AuditRead:
        return AuditRead.model_validate(self.entities.get(session, actor, audit_id))

    def update_audit(self, session: Session, actor: Actor, audit_id: uuid.UUID, payload: AuditUpdate) -> AuditRead:
        audit = self.entities.load_for_mutation(session, actor, audit_id, "update")
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return AuditRead.model_validate(audit)

        start = changes.get("planned_start_date", audit.planned_start_date)
        end = changes.get("planned_end_date", audit.planned_end_date)
        if _as_utc(end) < _as_utc(start):
            raise DomainValidationError("planned_end_date", "must not be before planned_start_date")

        self.entities.update_fields(session, audit, changes)
        self.entities.record(session, actor, "updated", audit, {"fields": sorted(changes)})
        return AuditRead.model_validate(audit)

    def start_audit(self, session: Session, actor: Actor, audit_id: uuid.UUID) -> AuditRead:
        audit = self.entities.load_for_mutation(session, actor, audit_id, "start")
        now = utcnow()
        self.entities.transition(session, audit, "start", {"actual_start_date": now, "updated_at": now})

        self.entities.record(session, actor, "started", audit)
        self.entities.notify("audit.started", audit)
        return AuditRead.model_validate(audit)

    def complete_audit(self, session: Session, actor: Actor, audit_id: uuid.UUID, payload: AuditComplete) -> AuditRead:
        audit = self.entities.load_for_mutation(session, actor, audit_id, "complete")
        self.entities.check_transition(audit, "complete")
        if not MIN_AUDIT_SCORE <= payload.score <= MAX_AUDIT_SCORE:
            raise DomainValidationError("score", f"must be between {MIN_AUDIT_SCORE:g} and {MAX_AUDIT_SCORE:g}")

        now = utcnow()
        self.entities.transition(
            session,
            audit,
            "complete",
            {
                "score": payload.score,
                "summary": payload.summary,
                "recommendations": payload.recommendations,
                "actual_end_date": now,
                "updated_at": now,
            },
        )

        self.entities.record(session, actor, "completed", audit, {"score": payload.score})
        self.entities.notify("audit.completed", audit, score=payload.score)
        return AuditRead.model_validate(audit)

    def add_finding(self, session: Session, actor: Actor, audit_id: uuid.UUID, payload: FindingCreate) -> FindingRead:
        audit = self.entities.load_for_mutation(session, actor, audit_id, "add_finding")

        finding = AuditFinding(
            **payload.model_dump(),
            audit_id=audit.id,
            tenant_id=audit.tenant_id,
            factory_id=audit.factory_id,
            created_by_id=actor.id,
            status="OPEN",
        )
        session.add(finding)
        session.commit()
        session.refresh(finding)

        self.entities.record(
            session,
            actor,
            "finding_added",
            audit,
            {"finding_id": str(finding.id), "severity": finding.severity},
        )
        return FindingRead.model_validate(finding)

    def add_corrective_action(
        self,
        session: Session,
        actor: Actor,
        finding_id: uuid.UUID,
        payload: CorrectiveActionCreate,
    ) -> CorrectiveActionRead:
        stmt = select(AuditFinding).where(AuditFinding.id == finding_id)
        if not actor.is_super_admin:
            stmt = stmt.where(AuditFinding.tenant_id == actor.tenant_id)
        finding = session.scalar(stmt)
        if finding is None:
            raise NotFoundError("audit_finding")

        audit = self.entities.load_for_mutation(session, actor, finding.audit_id, "add_corrective_action")
        require_active_user(session, payload.assigned_to_id, tenant_id=audit.tenant_id, field="assigned_to_id")

        action = CorrectiveAction(
            **payload.model_dump(),
            finding_id=finding.id,
            tenant_id=audit.tenant_id,
            factory_id=audit.factory_id,
            created_by_id=actor.id,
            status="PENDING",
        )
        session.add(action)
        session.commit()
        session.refresh(action)

        self.entities.record(
            session,
            actor,
            "corrective_action_added",
            audit,
            {"finding_id": str(finding.id), "corrective_action_id": str(action.id)},
        )
        return CorrectiveActionRead.model_validate(action)

    def get_stats(self, session: Session, actor: Actor, factory_id: uuid.UUID | None = None) -> AuditStatsRead:
        assert_can_perform(actor, "stats", self.entities.policy)
        scope = self.entities.read_scope(actor, factory_id)

        average = self.stats.average(session, scope, Audit.score, Audit.status == "COMPLETED")
        return AuditStatsRead(
            total=self.stats.total(session, scope),
            by_status=self.stats.count_by(session, scope, Audit.status, AUDIT_STATUSES),
            by_type=self.stats.count_by(session, scope, Audit.type, AUDIT_TYPES),
            average_score=average or 0.0,
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
