from __future__ import annotations

from compliance.business.audits.models import Audit
from compliance.platform.security.context import Role
from compliance.platform.security.policy import EntityPolicy, Participation
from compliance.platform.security.transitions import Transition


AUDIT_TYPES = ("INTERNAL", "EXTERNAL", "CERTIFICATION", "FOLLOW_UP")
AUDIT_STATUSES = ("PLANNED", "IN_PROGRESS", "COMPLETED")
AUDIT_SORT_FIELDS = frozenset({"title", "type", "status", "standard", "planned_start_date", "created_at", "score"})

AUDITOR_ROLES = frozenset({Role.SUPER_ADMIN, Role.AUDITOR})

_AUDIT_WRITERS = frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN, Role.FACTORY_ADMIN, Role.AUDITOR})
_AUDIT_READERS = _AUDIT_WRITERS | {Role.HR_STAFF, Role.ANALYTICS_USER}

AUDIT_POLICY = EntityPolicy(
    resource="audit",
    model=Audit,
    read_roles=_AUDIT_READERS,
    operations={
        "create": _AUDIT_WRITERS,
        "update": _AUDIT_WRITERS,
        "start": _AUDIT_WRITERS,
        "complete": _AUDIT_WRITERS,
        "add_finding": _AUDIT_WRITERS,
        "add_corrective_action": _AUDIT_WRITERS | {Role.HR_STAFF},
        "stats": _AUDIT_READERS,
    },
    participation={
        Role.AUDITOR: Participation(columns=("created_by_id",), collections=("auditors", "witnesses")),
    },
    transitions={
        "start": Transition(
            name="start",
            from_states=frozenset({"PLANNED"}),
            to_state="IN_PROGRESS",
            rejections={
                "IN_PROGRESS": "audit already in progress",
                "COMPLETED": "audit already completed",
            },
        ),
        "complete": Transition(
            name="complete",
            from_states=frozenset({"IN_PROGRESS"}),
            to_state="COMPLETED",
            rejections={
                "PLANNED": "audit has not been started",
                "COMPLETED": "audit already completed",
            },
        ),
    },
)
