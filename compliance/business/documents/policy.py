from __future__ import annotations

from compliance.business.documents.models import Document
from compliance.platform.security.context import Role
from compliance.platform.security.policy import EntityPolicy
from compliance.platform.security.transitions import Transition


DOCUMENT_TYPES = ("POLICY", "PROCEDURE", "CERTIFICATE", "REPORT", "RECORD", "OTHER")
DOCUMENT_STATUSES = ("DRAFT", "ACTIVE", "ARCHIVED")
EDITABLE_DOCUMENT_STATUSES = frozenset({"DRAFT", "ACTIVE"})
DOCUMENT_SORT_FIELDS = frozenset({"title", "type", "category", "status", "version", "created_at", "updated_at"})

_DOCUMENT_WRITERS = frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN, Role.FACTORY_ADMIN, Role.HR_STAFF})
DOCUMENT_READERS = _DOCUMENT_WRITERS | {Role.AUDITOR}

DOCUMENT_POLICY = EntityPolicy(
    resource="document",
    model=Document,
    read_roles=DOCUMENT_READERS,
    operations={
        "create": _DOCUMENT_WRITERS,
        "update": _DOCUMENT_WRITERS,
        "publish": _DOCUMENT_WRITERS,
        "archive": _DOCUMENT_WRITERS,
        "delete": _DOCUMENT_WRITERS,
        "purge": frozenset({Role.SUPER_ADMIN}),
    },
    transitions={
        "publish": Transition(
            name="publish",
            from_states=frozenset({"DRAFT"}),
            to_state="ACTIVE",
            rejections={"ACTIVE": "document already published", "ARCHIVED": "document is archived"},
        ),
        "archive": Transition(
            name="archive",
            from_states=frozenset({"ACTIVE"}),
            to_state="ARCHIVED",
            rejections={"DRAFT": "document has not been published", "ARCHIVED": "document already archived"},
        ),
    },
)
