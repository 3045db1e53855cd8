from compliance.business.audits.models import Audit, AuditFinding, CorrectiveAction, audit_auditor, audit_witness
from compliance.business.documents.models import Document
from compliance.business.factories.models import Factory
from compliance.business.grievances.models import Grievance
from compliance.models.activity import Activity
from compliance.tenancy.models import Tenant, User

__all__ = [
    "Activity",
    "Audit",
    "AuditFinding",
    "CorrectiveAction",
    "Document",
    "Factory",
    "Grievance",
    "Tenant",
    "User",
    "audit_auditor",
    "audit_witness",
]
