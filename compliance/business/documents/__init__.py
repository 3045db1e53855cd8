from compliance.business.documents.models import Document
from compliance.business.documents.policy import DOCUMENT_POLICY

__all__ = ["DOCUMENT_POLICY", "Document"]
