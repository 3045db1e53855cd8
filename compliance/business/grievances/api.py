from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_actor, get_optional_actor, get_page_request, get_services
from compliance.business.grievances.schemas import (
    GrievanceAssign,
    GrievanceCategory,
    GrievanceCreate,
    GrievanceRead,
    GrievanceResolve,
    GrievanceSeverity,
    GrievanceStatsRead,
    GrievanceStatus,
    GrievanceUpdate,
)
from compliance.business.grievances.service import GrievanceFilters
from compliance.core.database import get_db
from compliance.platform.pagination import Page, PageRequest
from compliance.platform.security.context import Actor
from compliance.services import ServiceRegistry


router = APIRouter(prefix="/api/grievances", tags=["grievances"])


@router.get("", response_model=Page[GrievanceRead])
def list_grievances(
    search: str | None = Query(default=None),
    category: GrievanceCategory | None = Query(default=None),
    severity: GrievanceSeverity | None = Query(default=None),
    grievance_status: GrievanceStatus | None = Query(default=None, alias="status"),
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    department: str | None = Query(default=None),
    assigned_to_id: uuid.UUID | None = Query(default=None, alias="assignedToId"),
    is_anonymous: bool | None = Query(default=None, alias="isAnonymous"),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page_request: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> Page[GrievanceRead]:
    filters = GrievanceFilters(
        search=search,
        category=category,
        severity=severity,
        status=grievance_status,
        factory_id=factory_id,
        department=department,
        assigned_to_id=assigned_to_id,
        is_anonymous=is_anonymous,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return services.grievances.list_grievances(db, actor, page_request, filters)


@router.post("", response_model=GrievanceRead, status_code=status.HTTP_201_CREATED)
def submit_grievance(
    payload: GrievanceCreate,
    db: Session = Depends(get_db),
    actor: Actor | None = Depends(get_optional_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceRead:
    return services.grievances.submit_grievance(db, actor, payload)


@router.get("/stats", response_model=GrievanceStatsRead)
def get_grievance_stats(
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceStatsRead:
    return services.grievances.get_stats(db, actor, factory_id)


@router.get("/{grievance_id}", response_model=GrievanceRead)
def get_grievance(
    grievance_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceRead:
    return services.grievances.get_grievance(db, actor, grievance_id)


@router.patch("/{grievance_id}", response_model=GrievanceRead)
def update_grievance(
    grievance_id: uuid.UUID,
    payload: GrievanceUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceRead:
    return services.grievances.update_grievance(db, actor, grievance_id, payload)


@router.post("/{grievance_id}/assign", response_model=GrievanceRead)
def assign_grievance(
    grievance_id: uuid.UUID,
    payload: GrievanceAssign,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceRead:
    return services.grievances.assign_grievance(db, actor, grievance_id, payload)


@router.post("/{grievance_id}/resolve", response_model=GrievanceRead)
def resolve_grievance(
    grievance_id: uuid.UUID,
    payload: GrievanceResolve,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceRead:
    return services.grievances.resolve_grievance(db, actor, grievance_id, payload)


@router.post("/{grievance_id}/close", response_model=GrievanceRead)
def close_grievance(
    grievance_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> GrievanceRead:
    return services.grievances.close_grievance(db, actor, grievance_id)
