from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_actor, get_page_request, get_services
from compliance.business.factories.schemas import (
    FactoryComplianceRead,
    FactoryCreate,
    FactoryRead,
    FactoryStatsRead,
    FactoryUpdate,
)
from compliance.business.factories.service import FactoryFilters
from compliance.core.database import get_db
from compliance.platform.pagination import Page, PageRequest
from compliance.platform.security.context import Actor
from compliance.services import ServiceRegistry


router = APIRouter(prefix="/api/factories", tags=["factories"])


@router.get("", response_model=Page[FactoryRead])
def list_factories(
    search: str | None = Query(default=None),
    country: str | None = Query(default=None),
    industry: str | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="isActive"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="asc", alias="sortOrder"),
    page_request: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> Page[FactoryRead]:
    filters = FactoryFilters(
        search=search,
        country=country,
        industry=industry,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return services.factories.list_factories(db, actor, page_request, filters)


@router.post("", response_model=FactoryRead, status_code=status.HTTP_201_CREATED)
def create_factory(
    payload: FactoryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FactoryRead:
    return services.factories.create_factory(db, actor, payload)


@router.get("/{factory_id}", response_model=FactoryRead)
def get_factory(
    factory_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FactoryRead:
    return services.factories.get_factory(db, actor, factory_id)


@router.patch("/{factory_id}", response_model=FactoryRead)
def update_factory(
    factory_id: uuid.UUID,
    payload: FactoryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FactoryRead:
    return services.factories.update_factory(db, actor, factory_id, payload)


@router.delete("/{factory_id}", response_model=FactoryRead)
def delete_factory(
    factory_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FactoryRead:
    return services.factories.delete_factory(db, actor, factory_id)


@router.get("/{factory_id}/stats", response_model=FactoryStatsRead)
def get_factory_stats(
    factory_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FactoryStatsRead:
    return services.factories.get_factory_stats(db, actor, factory_id)


@router.get("/{factory_id}/compliance", response_model=FactoryComplianceRead)
def get_factory_compliance(
    factory_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> FactoryComplianceRead:
    return services.factories.get_compliance_overview(db, actor, factory_id)
