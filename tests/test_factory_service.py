from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from conftest import Seeder, recently
from compliance.business.audits.models import Audit, AuditFinding, CorrectiveAction
from compliance.business.factories.schemas import FactoryCreate, FactoryUpdate
from compliance.business.factories.models import Factory
from compliance.business.factories.service import FactoryFilters, FactoryService
from compliance.platform.pagination import PageRequest
from compliance.platform.security import (
    ConflictError,
    ForbiddenError,
    InvalidReferenceError,
    NotFoundError,
    Role,
)
from compliance.services import ServiceRegistry


def _create_payload(**overrides) -> FactoryCreate:  # type: ignore[no-untyped-def]
    data = {
        "name": "Dhaka Knit",
        "code": "DK-01",
        "address": "Plot 7, EPZ",
        "country": "Bangladesh",
        "industry": "Knitwear",
        "size": 1200,
        **overrides,
    }
    return FactoryCreate(**data)


def test_tenant_admin_creates_factory_in_own_tenant(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
) -> None:
    tenant = seed.tenant()
    admin = seed.actor(tenant, Role.TENANT_ADMIN)

    factory = services.factories.create_factory(db_session, admin, _create_payload())

    assert factory.tenant_id == tenant.id
    assert factory.is_active
    assert [event.name for event in services.events.published] == ["factory.created"]


def test_tenant_admin_cannot_create_factory_for_another_tenant(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
) -> None:
    tenant = seed.tenant()
    other = seed.tenant("Other")
    admin = seed.actor(tenant, Role.TENANT_ADMIN)

    with pytest.raises(ForbiddenError) as exc_info:
        services.factories.create_factory(db_session, admin, _create_payload(tenant_id=other.id))

    assert exc_info.value.reason == "tenant"


def test_super_admin_must_target_an_active_tenant(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
) -> None:
    home = seed.tenant("Platform")
    suspended = seed.tenant("Suspended", is_active=False)
    super_admin = seed.actor(home, Role.SUPER_ADMIN)

    with pytest.raises(InvalidReferenceError) as exc_info:
        services.factories.create_factory(db_session, super_admin, _create_payload(tenant_id=suspended.id))

    assert exc_info.value.field == "tenant_id"


def test_duplicate_name_in_tenant_conflicts(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    tenant = seed.tenant()
    admin = seed.actor(tenant, Role.TENANT_ADMIN)
    services.factories.create_factory(db_session, admin, _create_payload())

    with pytest.raises(ConflictError) as exc_info:
        services.factories.create_factory(db_session, admin, _create_payload(code="DK-02"))

    assert exc_info.value.field == "name"


def test_duplicate_code_conflicts_across_tenants(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    first = seed.actor(seed.tenant("First"), Role.TENANT_ADMIN)
    second = seed.actor(seed.tenant("Second"), Role.TENANT_ADMIN)
    services.factories.create_factory(db_session, first, _create_payload())

    with pytest.raises(ConflictError) as exc_info:
        services.factories.create_factory(db_session, second, _create_payload(name="Other name"))

    assert exc_info.value.field == "code"


def test_same_name_allowed_in_different_tenants(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    first = seed.actor(seed.tenant("First"), Role.TENANT_ADMIN)
    second = seed.actor(seed.tenant("Second"), Role.TENANT_ADMIN)

    services.factories.create_factory(db_session, first, _create_payload())
    created = services.factories.create_factory(db_session, second, _create_payload(code="DK-99"))

    assert created.name == "Dhaka Knit"


def test_factory_admin_updates_only_own_factory(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    tenant = seed.tenant()
    own = seed.factory(tenant, "Own")
    other = seed.factory(tenant, "Other")
    factory_admin = seed.actor(tenant, Role.FACTORY_ADMIN, factory=own)

    updated = services.factories.update_factory(db_session, factory_admin, own.id, FactoryUpdate(size=300))
    assert updated.size == 300

    with pytest.raises(ForbiddenError):
        services.factories.update_factory(db_session, factory_admin, other.id, FactoryUpdate(size=1))


def test_cross_tenant_update_is_not_found(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    foreign = seed.factory(seed.tenant("Other"))
    admin = seed.actor(seed.tenant(), Role.TENANT_ADMIN)

    with pytest.raises(NotFoundError):
        services.factories.update_factory(db_session, admin, foreign.id, FactoryUpdate(size=10))


def test_delete_refuses_factory_with_active_users(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    seed.user(tenant, Role.HR_STAFF, factory=factory)
    super_admin = seed.actor(tenant, Role.SUPER_ADMIN)

    with pytest.raises(ConflictError) as exc_info:
        services.factories.delete_factory(db_session, super_admin, factory.id)

    assert exc_info.value.field == "users"


def test_delete_soft_deletes_and_hides_from_active_filter(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    seed.user(tenant, Role.HR_STAFF, factory=factory, is_active=False)
    super_admin = seed.actor(tenant, Role.SUPER_ADMIN)

    deleted = services.factories.delete_factory(db_session, super_admin, factory.id)
    assert not deleted.is_active

    page = services.factories.list_factories(db_session, super_admin, PageRequest(), FactoryFilters(is_active=True))
    assert page.pagination.total == 0


def test_tenant_admin_cannot_delete(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)

    with pytest.raises(ForbiddenError):
        services.factories.delete_factory(db_session, seed.actor(tenant, Role.TENANT_ADMIN), factory.id)


def test_factory_stats_count_users_documents_and_activity(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
) -> None:
    tenant = seed.tenant()
    admin = seed.actor(tenant, Role.TENANT_ADMIN)
    created = services.factories.create_factory(db_session, admin, _create_payload())
    factory = services.factories.entities.get(db_session, admin, created.id)
    seed.user(tenant, Role.HR_STAFF, factory=factory, last_login_at=recently())
    seed.user(tenant, Role.GRIEVANCE_COMMITTEE, factory=factory)

    stats = services.factories.get_factory_stats(db_session, admin, created.id)

    assert stats.factory.id == created.id
    assert stats.stats.users.total == 2
    assert stats.stats.users.active == 1
    assert stats.stats.documents == 0
    assert [activity.action for activity in stats.recent_activities] == ["created"]


def test_worker_cannot_view_factory_stats(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)

    with pytest.raises(ForbiddenError):
        services.factories.get_factory_stats(db_session, seed.actor(tenant, Role.WORKER), factory.id)


def test_compliance_overview_applies_penalties(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    admin = seed.actor(tenant, Role.TENANT_ADMIN)
    creator = seed.user(tenant, Role.AUDITOR)
    when = datetime(2026, 2, 1, tzinfo=timezone.utc)

    audits = []
    for score in (90.0, 85.0, 60.0, 82.0):
        audit = Audit(
            tenant_id=tenant.id,
            factory_id=factory.id,
            created_by_id=creator.id,
            title=f"Audit {score}",
            type="INTERNAL",
            standard="SA8000",
            scope="Site",
            status="COMPLETED",
            score=score,
            planned_start_date=when,
            planned_end_date=when,
        )
        db_session.add(audit)
        audits.append(audit)
    db_session.flush()

    finding = AuditFinding(
        audit_id=audits[2].id,
        tenant_id=tenant.id,
        factory_id=factory.id,
        created_by_id=creator.id,
        title="Locked exit",
        description="Exit locked during shift",
        severity="CRITICAL",
    )
    db_session.add(finding)
    db_session.flush()
    db_session.add(
        CorrectiveAction(
            finding_id=finding.id,
            tenant_id=tenant.id,
            factory_id=factory.id,
            created_by_id=creator.id,
            assigned_to_id=creator.id,
            title="Unlock exits",
            due_date=date.today() - timedelta(days=3),
        )
    )
    db_session.commit()

    overview = services.factories.get_compliance_overview(db_session, admin, factory.id)

    assert overview.compliance.completed_audits == 4
    assert overview.compliance.passed_audits == 3
    assert overview.compliance.open_findings == 1
    assert overview.compliance.overdue_actions == 1
    assert overview.compliance.score == 67.0
    assert overview.compliance.status == "Fair"


@pytest.mark.parametrize("role", [Role.WORKER, Role.ANALYTICS_USER, Role.HR_STAFF, Role.GRIEVANCE_COMMITTEE])
def test_roles_outside_factory_readers_cannot_list_or_read(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    role: Role,
) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    outsider = seed.actor(tenant, role)

    with pytest.raises(ForbiddenError):
        services.factories.list_factories(db_session, outsider, PageRequest())
    with pytest.raises(ForbiddenError):
        services.factories.get_factory(db_session, outsider, factory.id)


def test_auditor_reads_factories_of_own_tenant(db_session: Session, seed: Seeder, services: ServiceRegistry) -> None:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    seed.factory(seed.tenant("Other"), "Elsewhere")
    auditor = seed.actor(tenant, Role.AUDITOR)

    page = services.factories.list_factories(db_session, auditor, PageRequest())

    assert [item.id for item in page.data] == [factory.id]


def test_store_rejects_second_active_factory_with_same_name(db_session: Session, seed: Seeder) -> None:
    tenant = seed.tenant()
    seed.factory(tenant, "Plant")

    db_session.add(
        Factory(
            tenant_id=tenant.id,
            name="Plant",
            code="RACE-1",
            address="x",
            country="y",
            industry="z",
            size=1,
        )
    )
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

    seed.factory(tenant, "Plant", is_active=False)
    seed.factory(seed.tenant("Other"), "Plant")


def test_name_race_past_the_precheck_reports_name_conflict(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    tenant = seed.tenant()
    seed.factory(tenant, "Dhaka Knit")
    admin = seed.actor(tenant, Role.TENANT_ADMIN)
    monkeypatch.setattr(FactoryService, "_assert_unique", lambda self, *args, **kwargs: None)

    with pytest.raises(ConflictError) as exc_info:
        services.factories.create_factory(db_session, admin, _create_payload())

    assert exc_info.value.field == "name"


def test_code_race_past_the_precheck_reports_code_conflict(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    tenant = seed.tenant()
    seed.factory(seed.tenant("Other"), "Somewhere", code="DK-01")
    admin = seed.actor(tenant, Role.TENANT_ADMIN)
    monkeypatch.setattr(FactoryService, "_assert_unique", lambda self, *args, **kwargs: None)

    with pytest.raises(ConflictError) as exc_info:
        services.factories.create_factory(db_session, admin, _create_payload())

    assert exc_info.value.field == "code"
