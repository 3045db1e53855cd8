from __future__ import annotations

from compliance.business.grievances.models import Grievance
from compliance.platform.security.context import ALL_ROLES, Role
from compliance.platform.security.policy import EntityPolicy, Participation
from compliance.platform.security.transitions import Transition


GRIEVANCE_CATEGORIES = (
    "WAGES",
    "WORKING_HOURS",
    "HEALTH_SAFETY",
    "HARASSMENT",
    "DISCRIMINATION",
    "WORKING_CONDITIONS",
    "OTHER",
)
GRIEVANCE_SEVERITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
GRIEVANCE_STATUSES = ("SUBMITTED", "ASSIGNED", "RESOLVED", "CLOSED")
GRIEVANCE_SORT_FIELDS = frozenset({"title", "category", "severity", "priority", "status", "submitted_at", "updated_at"})

PRIORITY_BY_SEVERITY = {
    "LOW": "LOW",
    "MEDIUM": "MEDIUM",
    "HIGH": "HIGH",
    "CRITICAL": "CRITICAL",
}

GRIEVANCE_HANDLER_ROLES = frozenset(
    {Role.SUPER_ADMIN, Role.TENANT_ADMIN, Role.FACTORY_ADMIN, Role.HR_STAFF, Role.GRIEVANCE_COMMITTEE}
)

GRIEVANCE_POLICY = EntityPolicy(
    resource="grievance",
    model=Grievance,
    read_roles=GRIEVANCE_HANDLER_ROLES | {Role.WORKER},
    operations={
        "create": ALL_ROLES,
        "update": GRIEVANCE_HANDLER_ROLES,
        "assign": GRIEVANCE_HANDLER_ROLES,
        "resolve": GRIEVANCE_HANDLER_ROLES,
        "close": GRIEVANCE_HANDLER_ROLES,
        "stats": GRIEVANCE_HANDLER_ROLES | {Role.ANALYTICS_USER},
    },
    participation={Role.WORKER: Participation(columns=("submitted_by_id",))},
    transitions={
        "assign": Transition(
            name="assign",
            from_states=frozenset({"SUBMITTED"}),
            to_state="ASSIGNED",
            rejections={"ASSIGNED": "grievance already assigned"},
        ),
        "resolve": Transition(
            name="resolve",
            from_states=frozenset({"ASSIGNED"}),
            to_state="RESOLVED",
            rejections={"SUBMITTED": "grievance has not been assigned", "RESOLVED": "grievance already resolved"},
        ),
        "close": Transition(
            name="close",
            from_states=frozenset({"RESOLVED"}),
            to_state="CLOSED",
            rejections={"CLOSED": "grievance already closed"},
        ),
    },
)
