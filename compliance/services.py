from __future__ import annotations

from dataclasses import dataclass

from compliance.activity import ActivityLogger
from compliance.business.audits.policy import AUDIT_POLICY
from compliance.business.audits.service import AuditService
from compliance.business.documents.policy import DOCUMENT_POLICY
from compliance.business.documents.service import DocumentService
from compliance.business.factories.policy import FACTORY_POLICY
from compliance.business.factories.service import FactoryService
from compliance.business.grievances.policy import GRIEVANCE_POLICY
from compliance.business.grievances.service import GrievanceService
from compliance.core.config import Settings
from compliance.core.events import InProcessEventBus
from compliance.platform.entity_service import AccessScopedEntityService
from compliance.platform.security.actors import ActorResolver


@dataclass(slots=True)
class ServiceRegistry:
    actors: ActorResolver
    audits: AuditService
    documents: DocumentService
    factories: FactoryService
    grievances: GrievanceService
    events: InProcessEventBus
    activity: ActivityLogger


def build_services(
    settings: Settings,
    *,
    events: InProcessEventBus | None = None,
    activity: ActivityLogger | None = None,
) -> ServiceRegistry:
    events = events or InProcessEventBus()
    activity = activity or ActivityLogger()

    def entities(policy):  # type: ignore[no-untyped-def]
        return AccessScopedEntityService(policy=policy, activity=activity, events=events)

    return ServiceRegistry(
        actors=ActorResolver(),
        audits=AuditService(entities=entities(AUDIT_POLICY)),
        documents=DocumentService(entities=entities(DOCUMENT_POLICY)),
        factories=FactoryService(entities=entities(FACTORY_POLICY)),
        grievances=GrievanceService(entities=entities(GRIEVANCE_POLICY), sla_days=settings.grievance_sla_days),
        events=events,
        activity=activity,
    )
