from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from compliance.business.grievances.models import Grievance
from compliance.business.grievances.policy import (
    GRIEVANCE_CATEGORIES,
    GRIEVANCE_HANDLER_ROLES,
    GRIEVANCE_SEVERITIES,
    GRIEVANCE_SORT_FIELDS,
    GRIEVANCE_STATUSES,
    PRIORITY_BY_SEVERITY,
)
from compliance.business.grievances.schemas import (
    GrievanceAssign,
    GrievanceCreate,
    GrievanceRead,
    GrievanceResolve,
    GrievanceStatsRead,
    GrievanceUpdate,
)
from compliance.platform.entity_service import AccessScopedEntityService
from compliance.platform.pagination import Page, PageRequest, resolve_ordering
from compliance.platform.references import require_active_factory, require_active_user
from compliance.platform.security.context import Actor, EntityScope
from compliance.platform.security.errors import InvalidStateError
from compliance.platform.security.gate import assert_can_perform
from compliance.platform.security.scope import build_scope_filter
from compliance.platform.stats import StatsAggregator


EDITABLE_GRIEVANCE_STATUSES = frozenset({"SUBMITTED", "ASSIGNED", "RESOLVED"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class GrievanceFilters:
    search: str | None = None
    category: str | None = None
    severity: str | None = None
    status: str | None = None
    factory_id: uuid.UUID | None = None
    department: str | None = None
    assigned_to_id: uuid.UUID | None = None
    is_anonymous: bool | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    sort_by: str | None = None
    sort_order: str = "desc"


@dataclass(slots=True)
class GrievanceService:
    entities: AccessScopedEntityService
    sla_days: int = 14
    stats: StatsAggregator = field(default_factory=StatsAggregator)

    def submit_grievance(self, session: Session, actor: Actor | None, payload: GrievanceCreate) -> GrievanceRead:
        """Record a grievance. ``actor=None`` is an unauthenticated, anonymous submission."""

        if actor is not None:
            assert_can_perform(actor, "create", self.entities.policy)
        factory = require_active_factory(
            session,
            payload.factory_id,
            tenant_id=None if actor is None or actor.is_super_admin else actor.tenant_id,
        )
        if actor is not None:
            self.entities.assert_can_create(
                actor,
                EntityScope(tenant_id=factory.tenant_id, factory_id=factory.id, participants=frozenset({actor.id})),
            )

        is_anonymous = payload.is_anonymous or actor is None
        grievance = Grievance(
            **payload.model_dump(exclude={"factory_id", "is_anonymous"}),
            tenant_id=factory.tenant_id,
            factory_id=factory.id,
            submitted_by_id=None if is_anonymous else actor.id,
            is_anonymous=is_anonymous,
            priority=PRIORITY_BY_SEVERITY.get(payload.severity, "MEDIUM"),
            status="SUBMITTED",
        )
        session.add(grievance)
        session.commit()
        session.refresh(grievance)

        recorded_actor = None if is_anonymous else actor
        self.entities.record(session, recorded_actor, "submitted", grievance, {"category": grievance.category})
        self.entities.notify(
            "grievance.submitted",
            grievance,
            severity=grievance.severity,
            is_anonymous=grievance.is_anonymous,
        )
        return GrievanceRead.model_validate(grievance)

    def list_grievances(
        self,
        session: Session,
        actor: Actor,
        page_request: PageRequest,
        filters: GrievanceFilters | None = None,
    ) -> Page[GrievanceRead]:
        filters = filters or GrievanceFilters()
        criteria = []
        if filters.search:
            pattern = f"%{filters.search}%"
            criteria.append(or_(Grievance.title.ilike(pattern), Grievance.description.ilike(pattern)))
        if filters.category:
            criteria.append(Grievance.category == filters.category)
        if filters.severity:
            criteria.append(Grievance.severity == filters.severity)
        if filters.status:
            criteria.append(Grievance.status == filters.status)
        if filters.department:
            criteria.append(Grievance.department == filters.department)
        if filters.assigned_to_id:
            criteria.append(Grievance.assigned_to_id == filters.assigned_to_id)
        if filters.is_anonymous is not None:
            criteria.append(Grievance.is_anonymous.is_(filters.is_anonymous))
        if filters.date_from:
            criteria.append(Grievance.submitted_at >= filters.date_from)
        if filters.date_to:
            criteria.append(Grievance.submitted_at <= filters.date_to)

        order_by = resolve_ordering(
            Grievance, filters.sort_by, filters.sort_order, allowed=GRIEVANCE_SORT_FIELDS, default="submitted_at"
        )
        result = self.entities.list(
            session,
            actor,
            page_request,
            factory_id=filters.factory_id,
            criteria=criteria,
            order_by=order_by,
        )
        return Page[GrievanceRead].from_result(result, [GrievanceRead.model_validate(item) for item in result.items])

    def get_grievance(self, session: Session, actor: Actor, grievance_id: uuid.UUID) -> GrievanceRead:
        return GrievanceRead.model_validate(self.entities.get(session, actor, grievance_id))

    def update_grievance(
        self,
        session: Session,
        actor: Actor,
        grievance_id: uuid.UUID,
        payload: GrievanceUpdate,
    ) -> GrievanceRead:
        grievance = self.entities.load_for_mutation(session, actor, grievance_id, "update")
        if grievance.status not in EDITABLE_GRIEVANCE_STATUSES:
            raise InvalidStateError(
                "closed grievances cannot be edited",
                expected=EDITABLE_GRIEVANCE_STATUSES,
                actual=grievance.status,
            )

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return GrievanceRead.model_validate(grievance)
        if "severity" in changes and "priority" not in changes:
            changes["priority"] = PRIORITY_BY_SEVERITY.get(changes["severity"], "MEDIUM")

        self.entities.update_fields(session, grievance, changes)
        self.entities.record(session, actor, "updated", grievance, {"fields": sorted(changes)})
        return GrievanceRead.model_validate(grievance)

    def assign_grievance(
        self,
        session: Session,
        actor: Actor,
        grievance_id: uuid.UUID,
        payload: GrievanceAssign,
    ) -> GrievanceRead:
        grievance = self.entities.load_for_mutation(session, actor, grievance_id, "assign")
        self.entities.check_transition(grievance, "assign")
        assignee = require_active_user(
            session,
            payload.assigned_to_id,
            tenant_id=grievance.tenant_id,
            field="assigned_to_id",
            roles=GRIEVANCE_HANDLER_ROLES,
        )

        now = utcnow()
        self.entities.transition(
            session,
            grievance,
            "assign",
            {"assigned_to_id": assignee.id, "assigned_at": now, "updated_at": now},
        )

        self.entities.record(session, actor, "assigned", grievance, {"assigned_to_id": str(assignee.id)})
        self.entities.notify("grievance.assigned", grievance, assigned_to_id=str(assignee.id))
        return GrievanceRead.model_validate(grievance)

    def resolve_grievance(
        self,
        session: Session,
        actor: Actor,
        grievance_id: uuid.UUID,
        payload: GrievanceResolve,
    ) -> GrievanceRead:
        grievance = self.entities.load_for_mutation(session, actor, grievance_id, "resolve")
        now = utcnow()
        self.entities.transition(
            session,
            grievance,
            "resolve",
            {"resolution": payload.resolution, "resolved_at": now, "updated_at": now},
        )

        self.entities.record(session, actor, "resolved", grievance)
        self.entities.notify("grievance.resolved", grievance)
        return GrievanceRead.model_validate(grievance)

    def close_grievance(self, session: Session, actor: Actor, grievance_id: uuid.UUID) -> GrievanceRead:
        grievance = self.entities.load_for_mutation(session, actor, grievance_id, "close")
        now = utcnow()
        self.entities.transition(session, grievance, "close", {"closed_at": now, "updated_at": now})

        self.entities.record(session, actor, "closed", grievance)
        self.entities.notify("grievance.closed", grievance)
        return GrievanceRead.model_validate(grievance)

    def get_stats(self, session: Session, actor: Actor, factory_id: uuid.UUID | None = None) -> GrievanceStatsRead:
        assert_can_perform(actor, "stats", self.entities.policy)
        scope = build_scope_filter(actor, self.entities.policy, factory_id)

        resolved_rows = session.execute(
            scope.apply(select(Grievance.submitted_at, Grievance.resolved_at)).where(
                Grievance.resolved_at.is_not(None)
            )
        ).all()
        total = self.stats.total(session, scope)
        average_days, within_sla = resolution_metrics(resolved_rows, sla=timedelta(days=self.sla_days))

        return GrievanceStatsRead(
            total=total,
            by_status=self.stats.count_by(session, scope, Grievance.status, GRIEVANCE_STATUSES),
            by_category=self.stats.count_by(session, scope, Grievance.category, GRIEVANCE_CATEGORIES),
            by_severity=self.stats.count_by(session, scope, Grievance.severity, GRIEVANCE_SEVERITIES),
            average_resolution_days=average_days,
            sla_compliance=round(within_sla / total * 100, 2) if total else 0.0,
        )


def resolution_metrics(
    rows: Iterable[tuple[datetime, datetime | None]],
    *,
    sla: timedelta,
) -> tuple[float, int]:
    """Return (average resolution time in days, count resolved within ``sla``)."""

    durations = [resolved_at - submitted_at for submitted_at, resolved_at in rows if resolved_at is not None]
    if not durations:
        return 0.0, 0
    average = sum(duration.total_seconds() for duration in durations) / len(durations) / 86400
    return round(average, 2), sum(1 for duration in durations if duration <= sla)
