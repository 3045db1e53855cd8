from __future__ import annotations

import uuid

import pytest
from prometheus_client import REGISTRY

from compliance.business.audits.policy import AUDIT_POLICY
from compliance.business.documents.policy import DOCUMENT_POLICY
from compliance.business.factories.policy import FACTORY_POLICY
from compliance.business.grievances.policy import GRIEVANCE_POLICY
from compliance.platform.security import (
    Actor,
    EntityScope,
    ForbiddenError,
    Role,
    assert_can_mutate,
    assert_can_perform,
    assert_can_read,
)


TENANT_A = uuid.uuid4()
TENANT_B = uuid.uuid4()
FACTORY_1 = uuid.uuid4()
FACTORY_2 = uuid.uuid4()


def _actor(role: Role, *, tenant_id: uuid.UUID = TENANT_A, factory_id: uuid.UUID | None = None) -> Actor:
    return Actor(id=uuid.uuid4(), role=role, tenant_id=tenant_id, factory_id=factory_id)


@pytest.mark.parametrize(
    ("role", "allowed"),
    [
        (Role.SUPER_ADMIN, True),
        (Role.TENANT_ADMIN, True),
        (Role.FACTORY_ADMIN, False),
        (Role.AUDITOR, False),
        (Role.WORKER, False),
    ],
)
def test_factory_creation_is_limited_to_admins(role: Role, allowed: bool) -> None:
    actor = _actor(role)
    target = EntityScope(tenant_id=TENANT_A, factory_id=None)

    if allowed:
        assert_can_mutate(actor, "create", FACTORY_POLICY, target)
    else:
        with pytest.raises(ForbiddenError) as exc_info:
            assert_can_mutate(actor, "create", FACTORY_POLICY, target)
        assert exc_info.value.reason == "role"


def test_worker_cannot_read_audits() -> None:
    with pytest.raises(ForbiddenError):
        assert_can_read(_actor(Role.WORKER), AUDIT_POLICY)


def test_analytics_user_may_read_grievance_stats_but_not_grievances() -> None:
    analyst = _actor(Role.ANALYTICS_USER)

    assert_can_perform(analyst, "stats", GRIEVANCE_POLICY)
    with pytest.raises(ForbiddenError):
        assert_can_read(analyst, GRIEVANCE_POLICY)


def test_cross_tenant_target_is_denied_even_for_tenant_admin() -> None:
    with pytest.raises(ForbiddenError) as exc_info:
        assert_can_mutate(
            _actor(Role.TENANT_ADMIN),
            "publish",
            DOCUMENT_POLICY,
            EntityScope(tenant_id=TENANT_B, factory_id=FACTORY_1),
        )

    assert exc_info.value.reason == "tenant"


def test_super_admin_crosses_tenants() -> None:
    assert_can_mutate(
        _actor(Role.SUPER_ADMIN),
        "purge",
        DOCUMENT_POLICY,
        EntityScope(tenant_id=TENANT_B, factory_id=FACTORY_2),
    )


def test_pinned_actor_cannot_touch_another_factory() -> None:
    hr = _actor(Role.HR_STAFF, factory_id=FACTORY_1)

    assert_can_mutate(hr, "update", DOCUMENT_POLICY, EntityScope(tenant_id=TENANT_A, factory_id=FACTORY_1))
    with pytest.raises(ForbiddenError) as exc_info:
        assert_can_mutate(hr, "update", DOCUMENT_POLICY, EntityScope(tenant_id=TENANT_A, factory_id=FACTORY_2))

    assert exc_info.value.reason == "factory"


def test_auditor_must_participate_in_audit() -> None:
    auditor = _actor(Role.AUDITOR)

    assert_can_mutate(
        auditor,
        "start",
        AUDIT_POLICY,
        EntityScope(tenant_id=TENANT_A, factory_id=FACTORY_1, participants=frozenset({auditor.id})),
    )
    with pytest.raises(ForbiddenError) as exc_info:
        assert_can_mutate(
            auditor,
            "start",
            AUDIT_POLICY,
            EntityScope(tenant_id=TENANT_A, factory_id=FACTORY_1, participants=frozenset({uuid.uuid4()})),
        )

    assert exc_info.value.reason == "participation"


def test_tenant_admin_is_not_subject_to_participation() -> None:
    assert_can_mutate(
        _actor(Role.TENANT_ADMIN),
        "complete",
        AUDIT_POLICY,
        EntityScope(tenant_id=TENANT_A, factory_id=FACTORY_1),
    )


def test_unknown_operation_is_a_programming_error() -> None:
    with pytest.raises(ValueError):
        assert_can_perform(_actor(Role.SUPER_ADMIN), "teleport", AUDIT_POLICY)


def test_denials_are_counted_by_reason() -> None:
    labels = {"resource": "document", "reason": "factory"}
    before = REGISTRY.get_sample_value("scope_denials_total", labels) or 0.0

    with pytest.raises(ForbiddenError):
        assert_can_mutate(
            _actor(Role.FACTORY_ADMIN, factory_id=FACTORY_1),
            "archive",
            DOCUMENT_POLICY,
            EntityScope(tenant_id=TENANT_A, factory_id=FACTORY_2),
        )

    after = REGISTRY.get_sample_value("scope_denials_total", labels)
    assert after == before + 1
