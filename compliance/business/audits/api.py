from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_actor, get_page_request, get_services
from compliance.business.audits.schemas import (
    AuditComplete,
    AuditCreate,
    AuditRead,
    AuditStatsRead,
    AuditStatus,
    AuditType,
    AuditUpdate,
    CorrectiveActionCreate,
    CorrectiveActionRead,
    FindingCreate,
    FindingRead,
)
from compliance.business.audits.service import AuditFilters
from compliance.core.database import get_db
from compliance.platform.pagination import Page, PageRequest
from compliance.platform.security.context import Actor
from compliance.services import ServiceRegistry


router = APIRouter(prefix="/api/audits", tags=["audits"])


@router.get("", response_model=Page[AuditRead])
def list_audits(
    search: str | None = Query(default=None),
    audit_type: AuditType | None = Query(default=None, alias="type"),
    audit_status: AuditStatus | None = Query(default=None, alias="status"),
    standard: str | None = Query(default=None),
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    auditor_id: uuid.UUID | None = Query(default=None, alias="auditorId"),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page_request: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> Page[AuditRead]:
    filters = AuditFilters(
        search=search,
        type=audit_type,
        status=audit_status,
        standard=standard,
        factory_id=factory_id,
        auditor_id=auditor_id,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return services.audits.list_audits(db, actor, page_request, filters)


@router.post("", response_model=AuditRead, status_code=status.HTTP_201_CREATED)
def create_audit(
    payload: AuditCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> AuditRead:
    return services.audits.create_audit(db, actor, payload)


@router.get("/stats", response_model=AuditStatsRead)
def get_audit_stats(
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> AuditStatsRead:
    return services.audits.get_stats(db, actor, factory_id)


@router.post(
    "/findings/{finding_id}/corrective-actions",
    response_model=CorrectiveActionRead,
    status_code=status.HTTP_201_CREATED,
)
def add_corrective_action(
    finding_id: uuid.UUID,
    payload: CorrectiveActionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> CorrectiveActionRead:
    return services.audits.add_corrective_action(db, actor, finding_id, payload)


@router.get("/{audit_id}", response_model=AuditRead)
def get_audit(
    audit_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> AuditRead:
    return services.audits.get_audit(db, actor, audit_id)


@router.patch("/{audit_id}", response_model=AuditRead)
def update_audit(
    audit_id: uuid.UUID,
    payload: AuditUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> AuditRead:
    return services.audits.update_audit(db, actor, audit_id, payload)


@router.post("/{audit_id}/start", response_model=AuditRead)
def start_audit(
    audit_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> AuditRead:
    return services.audits.start_audit(db, actor, audit_id)


@router.post("/{audit_id}/complete", response_model=AuditRead)
def complete_audit(
    audit_id: uuid.UUID,
    payload: AuditComplete,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> AuditRead:
    return services.audits.complete_audit(db, actor, audit_id, payload)


@router.post("/{audit_id}/findings", response_model=FindingRead, status_code=status.HTTP_201_CREATED)
def add_finding(
    audit_id: uuid.UUID,
    payload: FindingCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FindingRead:
    return services.audits.add_finding(db, actor, audit_id, payload)
