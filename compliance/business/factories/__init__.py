from compliance.business.factories.models import Factory
from compliance.business.factories.policy import FACTORY_POLICY

__all__ = ["FACTORY_POLICY", "Factory"]
