from compliance.tenancy.models import Tenant, User

__all__ = ["Tenant", "User"]
