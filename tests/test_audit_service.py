from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import Seeder, actor_for
from compliance.business.audits.schemas import (
    AuditComplete,
    AuditCreate,
    AuditUpdate,
    CorrectiveActionCreate,
    FindingCreate,
)
from compliance.business.audits.service import AuditFilters
from compliance.business.factories.models import Factory
from compliance.models.activity import Activity
from compliance.platform.pagination import PageRequest
from compliance.platform.security import (
    Actor,
    DomainValidationError,
    ForbiddenError,
    InvalidReferenceError,
    InvalidStateError,
    NotFoundError,
    Role,
)
from compliance.services import ServiceRegistry
from compliance.tenancy.models import Tenant, User


START = datetime(2026, 11, 2, 8, 0, tzinfo=timezone.utc)


@dataclass
class AuditWorld:
    tenant: Tenant
    factory: Factory
    admin: Actor
    auditor: User
    outsider_auditor: User


@pytest.fixture()
def world(seed: Seeder) -> AuditWorld:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    return AuditWorld(
        tenant=tenant,
        factory=factory,
        admin=seed.actor(tenant, Role.TENANT_ADMIN),
        auditor=seed.user(tenant, Role.AUDITOR),
        outsider_auditor=seed.user(tenant, Role.AUDITOR),
    )


def _create(services: ServiceRegistry, session: Session, world: AuditWorld, **overrides):  # type: ignore[no-untyped-def]
    payload = {
        "title": "Annual social audit",
        "type": "EXTERNAL",
        "standard": "SA8000",
        "scope": "Production and dormitories",
        "planned_start_date": START,
        "planned_end_date": START + timedelta(days=2),
        "factory_id": world.factory.id,
        "auditor_ids": [world.auditor.id],
        **overrides,
    }
    return services.audits.create_audit(session, world.admin, AuditCreate(**payload))


def test_audit_lifecycle_records_activity_and_events(
    db_session: Session,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    audit = _create(services, db_session, world)
    assert audit.status == "PLANNED"
    assert [ref.id for ref in audit.auditors] == [world.auditor.id]

    auditor = actor_for(world.auditor)
    started = services.audits.start_audit(db_session, auditor, audit.id)
    assert started.status == "IN_PROGRESS"
    assert started.actual_start_date is not None

    completed = services.audits.complete_audit(
        db_session,
        auditor,
        audit.id,
        AuditComplete(score=86.5, summary="Minor gaps", recommendations="Update fire drills"),
    )
    assert completed.status == "COMPLETED"
    assert completed.score == 86.5
    assert completed.actual_end_date is not None

    actions = db_session.scalars(
        select(Activity.action).where(Activity.entity_id == audit.id).order_by(Activity.created_at)
    ).all()
    assert actions == ["created", "started", "completed"]
    assert [event.name for event in services.events.published] == [
        "audit.created",
        "audit.started",
        "audit.completed",
    ]


def test_starting_twice_reports_current_state(db_session: Session, services: ServiceRegistry, world: AuditWorld) -> None:
    audit = _create(services, db_session, world)
    services.audits.start_audit(db_session, world.admin, audit.id)

    with pytest.raises(InvalidStateError) as exc_info:
        services.audits.start_audit(db_session, world.admin, audit.id)

    assert exc_info.value.message == "audit already in progress"


def test_completion_rejects_out_of_range_score_without_side_effects(
    db_session: Session,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    audit = _create(services, db_session, world)
    services.audits.start_audit(db_session, world.admin, audit.id)

    with pytest.raises(DomainValidationError) as exc_info:
        services.audits.complete_audit(
            db_session,
            world.admin,
            audit.id,
            AuditComplete(score=140, summary="x", recommendations="y"),
        )

    assert exc_info.value.field == "score"
    assert services.audits.get_audit(db_session, world.admin, audit.id).status == "IN_PROGRESS"


def test_completing_a_planned_audit_is_rejected(db_session: Session, services: ServiceRegistry, world: AuditWorld) -> None:
    audit = _create(services, db_session, world)

    with pytest.raises(InvalidStateError) as exc_info:
        services.audits.complete_audit(
            db_session,
            world.admin,
            audit.id,
            AuditComplete(score=90, summary="x", recommendations="y"),
        )

    assert exc_info.value.actual == "PLANNED"


def test_auditor_outside_the_audit_cannot_start_it(
    db_session: Session,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    audit = _create(services, db_session, world)

    with pytest.raises(ForbiddenError) as exc_info:
        services.audits.start_audit(db_session, actor_for(world.outsider_auditor), audit.id)

    assert exc_info.value.reason == "participation"


def test_auditor_lists_only_audits_they_participate_in(
    db_session: Session,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    _create(services, db_session, world, title="Mine")
    _create(services, db_session, world, title="Theirs", auditor_ids=[world.outsider_auditor.id])

    page = services.audits.list_audits(db_session, actor_for(world.auditor), PageRequest())

    assert [item.title for item in page.data] == ["Mine"]


def test_auditor_ids_must_reference_auditors_of_the_tenant(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    worker = seed.user(world.tenant, Role.WORKER)
    foreign_auditor = seed.user(seed.tenant("Other"), Role.AUDITOR)

    with pytest.raises(InvalidReferenceError) as exc_info:
        _create(services, db_session, world, auditor_ids=[worker.id])
    assert exc_info.value.field == "auditor_ids"

    with pytest.raises(InvalidReferenceError):
        _create(services, db_session, world, auditor_ids=[foreign_auditor.id])


def test_inactive_factory_is_an_invalid_reference(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    closed = seed.factory(world.tenant, "Closed plant", is_active=False)

    with pytest.raises(InvalidReferenceError) as exc_info:
        _create(services, db_session, world, factory_id=closed.id)

    assert exc_info.value.field == "factory_id"


def test_factory_admin_cannot_plan_audit_for_another_factory(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    other_factory = seed.factory(world.tenant, "Plant Two")
    factory_admin = seed.actor(world.tenant, Role.FACTORY_ADMIN, factory=other_factory)

    with pytest.raises(ForbiddenError) as exc_info:
        services.audits.create_audit(
            db_session,
            factory_admin,
            AuditCreate(
                title="Spot check",
                type="INTERNAL",
                standard="ISO 45001",
                scope="Warehouse",
                planned_start_date=START,
                planned_end_date=START,
                factory_id=world.factory.id,
                auditor_ids=[world.auditor.id],
            ),
        )

    assert exc_info.value.reason == "factory"


def test_update_rejects_end_before_start(db_session: Session, services: ServiceRegistry, world: AuditWorld) -> None:
    audit = _create(services, db_session, world)

    with pytest.raises(DomainValidationError):
        services.audits.update_audit(
            db_session,
            world.admin,
            audit.id,
            AuditUpdate(planned_end_date=START - timedelta(days=1)),
        )


def test_findings_and_corrective_actions(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    audit = _create(services, db_session, world)
    finding = services.audits.add_finding(
        db_session,
        world.admin,
        audit.id,
        FindingCreate(title="Blocked exit", description="Exit 3 obstructed", severity="HIGH"),
    )
    assert finding.status == "OPEN"
    assert finding.factory_id == world.factory.id

    assignee = seed.user(world.tenant, Role.FACTORY_ADMIN, factory=world.factory)
    action = services.audits.add_corrective_action(
        db_session,
        world.admin,
        finding.id,
        CorrectiveActionCreate(
            title="Clear exit",
            assigned_to_id=assignee.id,
            due_date=date.today() + timedelta(days=7),
        ),
    )

    assert action.status == "PENDING"
    assert action.finding_id == finding.id
    assert action.priority == "MEDIUM"


def test_corrective_action_for_foreign_finding_is_not_found(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    audit = _create(services, db_session, world)
    finding = services.audits.add_finding(
        db_session,
        world.admin,
        audit.id,
        FindingCreate(title="No PPE", description="Gloves missing", severity="MEDIUM"),
    )
    foreign_admin = seed.actor(seed.tenant("Other"), Role.TENANT_ADMIN)

    with pytest.raises(NotFoundError):
        services.audits.add_corrective_action(
            db_session,
            foreign_admin,
            finding.id,
            CorrectiveActionCreate(title="Buy gloves", assigned_to_id=foreign_admin.id, due_date=date.today()),
        )


def test_stats_are_zero_filled_and_average_completed_scores(
    db_session: Session,
    services: ServiceRegistry,
    world: AuditWorld,
) -> None:
    first = _create(services, db_session, world, type="INTERNAL")
    _create(services, db_session, world, type="INTERNAL")
    services.audits.start_audit(db_session, world.admin, first.id)
    services.audits.complete_audit(
        db_session,
        world.admin,
        first.id,
        AuditComplete(score=75, summary="ok", recommendations="more"),
    )

    stats = services.audits.get_stats(db_session, world.admin)

    assert stats.total == 2
    assert stats.by_status == {"PLANNED": 1, "IN_PROGRESS": 0, "COMPLETED": 1}
    assert stats.by_type == {"INTERNAL": 2, "EXTERNAL": 0, "CERTIFICATION": 0, "FOLLOW_UP": 0}
    assert stats.average_score == 75.0


def test_list_filters_by_status(db_session: Session, services: ServiceRegistry, world: AuditWorld) -> None:
    started = _create(services, db_session, world, title="Started")
    _create(services, db_session, world, title="Planned")
    services.audits.start_audit(db_session, world.admin, started.id)

    page = services.audits.list_audits(db_session, world.admin, PageRequest(), AuditFilters(status="IN_PROGRESS"))

    assert [item.title for item in page.data] == ["Started"]


def test_super_admin_of_another_tenant_reads_and_starts_audit(
    db_session: Session,
    services: ServiceRegistry,
    seed: Seeder,
    world: AuditWorld,
) -> None:
    audit = _create(services, db_session, world)
    platform_admin = seed.actor(seed.tenant("Platform"), Role.SUPER_ADMIN)

    assert services.audits.get_audit(db_session, platform_admin, audit.id).id == audit.id
    started = services.audits.start_audit(db_session, platform_admin, audit.id)

    assert started.status == "IN_PROGRESS"
    assert started.tenant_id == world.tenant.id
    activity = db_session.scalars(
        select(Activity).where(Activity.entity_id == audit.id, Activity.action == "started")
    ).one()
    assert activity.tenant_id == world.tenant.id
    assert activity.user_id == platform_admin.id
