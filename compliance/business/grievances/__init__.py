from compliance.business.grievances.models import Grievance
from compliance.business.grievances.policy import GRIEVANCE_POLICY

__all__ = ["GRIEVANCE_POLICY", "Grievance"]
