from __future__ import annotations

from dataclasses import dataclass

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from conftest import Seeder
from compliance.business.documents.models import Document
from compliance.business.documents.schemas import DocumentCreate, DocumentUpdate
from compliance.business.documents.service import DocumentFilters
from compliance.business.factories.models import Factory
from compliance.models.activity import Activity
from compliance.platform.pagination import PageRequest
from compliance.platform.security import Actor, ForbiddenError, InvalidStateError, NotFoundError, Role
from compliance.services import ServiceRegistry
from compliance.tenancy.models import Tenant


@dataclass
class DocumentWorld:
    tenant: Tenant
    factory: Factory
    hr: Actor


@pytest.fixture()
def world(seed: Seeder) -> DocumentWorld:
    tenant = seed.tenant()
    factory = seed.factory(tenant)
    return DocumentWorld(tenant=tenant, factory=factory, hr=seed.actor(tenant, Role.HR_STAFF, factory=factory))


def _create(services: ServiceRegistry, session: Session, world: DocumentWorld, **overrides):  # type: ignore[no-untyped-def]
    data = {
        "title": "Code of Conduct",
        "type": "POLICY",
        "category": "Ethics",
        "content": "Be fair.",
        "factory_id": world.factory.id,
        **overrides,
    }
    return services.documents.create_document(session, world.hr, DocumentCreate(**data))


def test_document_lifecycle_bumps_version(db_session: Session, services: ServiceRegistry, world: DocumentWorld) -> None:
    document = _create(services, db_session, world)
    assert (document.status, document.version) == ("DRAFT", 1)

    edited = services.documents.update_document(db_session, world.hr, document.id, DocumentUpdate(content="Be kind."))
    assert edited.version == 2

    published = services.documents.publish_document(db_session, world.hr, document.id)
    assert (published.status, published.version) == ("ACTIVE", 3)
    assert published.published_at is not None

    archived = services.documents.archive_document(db_session, world.hr, document.id)
    assert (archived.status, archived.version) == ("ARCHIVED", 4)

    with pytest.raises(InvalidStateError):
        services.documents.update_document(db_session, world.hr, document.id, DocumentUpdate(title="Revive"))

    assert [event.name for event in services.events.published] == ["document.published", "document.archived"]


def test_publishing_twice_is_rejected(db_session: Session, services: ServiceRegistry, world: DocumentWorld) -> None:
    document = _create(services, db_session, world)
    services.documents.publish_document(db_session, world.hr, document.id)

    with pytest.raises(InvalidStateError) as exc_info:
        services.documents.publish_document(db_session, world.hr, document.id)

    assert exc_info.value.message == "document already published"


def test_archiving_a_draft_is_rejected(db_session: Session, services: ServiceRegistry, world: DocumentWorld) -> None:
    document = _create(services, db_session, world)

    with pytest.raises(InvalidStateError) as exc_info:
        services.documents.archive_document(db_session, world.hr, document.id)

    assert exc_info.value.actual == "DRAFT"


def test_empty_update_does_not_bump_version(db_session: Session, services: ServiceRegistry, world: DocumentWorld) -> None:
    document = _create(services, db_session, world)

    unchanged = services.documents.update_document(db_session, world.hr, document.id, DocumentUpdate())

    assert unchanged.version == 1


def test_pinned_hr_cannot_create_in_other_factory(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: DocumentWorld,
) -> None:
    other = seed.factory(world.tenant, "Plant Two")

    with pytest.raises(ForbiddenError):
        _create(services, db_session, world, factory_id=other.id)


@pytest.mark.parametrize("role", [Role.WORKER, Role.ANALYTICS_USER, Role.GRIEVANCE_COMMITTEE])
def test_roles_outside_document_readers_cannot_read_or_write(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: DocumentWorld,
    role: Role,
) -> None:
    document = _create(services, db_session, world)
    outsider = seed.actor(world.tenant, role)

    with pytest.raises(ForbiddenError):
        services.documents.list_documents(db_session, outsider, PageRequest())
    with pytest.raises(ForbiddenError):
        services.documents.get_document(db_session, outsider, document.id)
    with pytest.raises(ForbiddenError):
        services.documents.publish_document(db_session, outsider, document.id)


def test_auditor_reads_documents_without_writing(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: DocumentWorld,
) -> None:
    document = _create(services, db_session, world)
    auditor = seed.actor(world.tenant, Role.AUDITOR)

    assert services.documents.get_document(db_session, auditor, document.id).id == document.id
    with pytest.raises(ForbiddenError):
        services.documents.publish_document(db_session, auditor, document.id)


def test_soft_delete_keeps_row_and_purge_removes_it(
    db_session: Session,
    seed: Seeder,
    services: ServiceRegistry,
    world: DocumentWorld,
) -> None:
    document = _create(services, db_session, world)
    deleted = services.documents.delete_document(db_session, world.hr, document.id)
    assert not deleted.is_active

    with pytest.raises(ForbiddenError):
        services.documents.purge_document(db_session, world.hr, document.id)

    super_admin = seed.actor(seed.tenant("Platform"), Role.SUPER_ADMIN)
    services.documents.purge_document(db_session, super_admin, document.id)

    assert db_session.get(Document, document.id) is None
    with pytest.raises(NotFoundError):
        services.documents.get_document(db_session, super_admin, document.id)
    purged = db_session.scalar(select(Activity).where(Activity.entity_id == document.id, Activity.action == "purged"))
    assert purged is not None
    assert purged.details["title"] == "Code of Conduct"
    assert purged.tenant_id == world.tenant.id
    assert purged.factory_id == world.factory.id
    assert purged.user_id == super_admin.id


def test_list_filters_and_categories(db_session: Session, services: ServiceRegistry, world: DocumentWorld) -> None:
    _create(services, db_session, world, title="Fire drill", category="Safety", type="PROCEDURE")
    _create(services, db_session, world, title="Wage policy", category="Wages")
    retired = _create(services, db_session, world, title="Old wage policy", category="Legacy")
    services.documents.delete_document(db_session, world.hr, retired.id)

    page = services.documents.list_documents(
        db_session,
        world.hr,
        PageRequest(),
        DocumentFilters(search="wage", is_active=True),
    )
    assert [item.title for item in page.data] == ["Wage policy"]

    assert services.documents.list_categories(db_session, world.hr) == ["Safety", "Wages"]


def test_stats_zero_fill_types_and_count_categories(
    db_session: Session,
    services: ServiceRegistry,
    world: DocumentWorld,
) -> None:
    first = _create(services, db_session, world, category="Safety")
    _create(services, db_session, world, category="Safety", type="CERTIFICATE")
    services.documents.publish_document(db_session, world.hr, first.id)
    retired = _create(services, db_session, world, category="Wages")
    services.documents.delete_document(db_session, world.hr, retired.id)

    stats = services.documents.get_stats(db_session, world.hr)

    assert (stats.total, stats.active, stats.inactive) == (3, 2, 1)
    assert stats.by_status == {"DRAFT": 2, "ACTIVE": 1, "ARCHIVED": 0}
    assert stats.by_type["POLICY"] == 2
    assert stats.by_type["REPORT"] == 0
    assert stats.by_category == {"Safety": 2, "Wages": 1}


def test_concurrent_edits_each_bump_the_version(
    db_session: Session,
    session_factory: sessionmaker[Session],
    services: ServiceRegistry,
    world: DocumentWorld,
) -> None:
    document = _create(services, db_session, world)
    first = session_factory()
    second = session_factory()
    try:
        stale = first.get(Document, document.id)
        assert stale is not None and stale.version == 1

        services.documents.update_document(second, world.hr, document.id, DocumentUpdate(title="Revised"))
        updated = services.documents.update_document(first, world.hr, document.id, DocumentUpdate(category="HR"))
    finally:
        first.close()
        second.close()

    assert updated.version == 3
    assert db_session.scalar(select(Document.version).where(Document.id == document.id)) == 3
