from compliance.business.audits.models import Audit, AuditFinding, CorrectiveAction
from compliance.business.audits.policy import AUDIT_POLICY

__all__ = ["AUDIT_POLICY", "Audit", "AuditFinding", "CorrectiveAction"]
