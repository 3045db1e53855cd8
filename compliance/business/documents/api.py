from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_actor, get_page_request, get_services
from compliance.business.documents.schemas import (
    DocumentCreate,
    DocumentRead,
    DocumentStatsRead,
    DocumentStatus,
    DocumentType,
    DocumentUpdate,
)
from compliance.business.documents.service import DocumentFilters
from compliance.core.database import get_db
from compliance.platform.pagination import Page, PageRequest
from compliance.platform.security.context import Actor
from compliance.services import ServiceRegistry


router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=Page[DocumentRead])
def list_documents(
    search: str | None = Query(default=None),
    document_type: DocumentType | None = Query(default=None, alias="type"),
    category: str | None = Query(default=None),
    document_status: DocumentStatus | None = Query(default=None, alias="status"),
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page_request: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> Page[DocumentRead]:
    filters = DocumentFilters(
        search=search,
        type=document_type,
        category=category,
        status=document_status,
        factory_id=factory_id,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return services.documents.list_documents(db, actor, page_request, filters)


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentRead:
    return services.documents.create_document(db, actor, payload)


@router.get("/stats", response_model=DocumentStatsRead)
def get_document_stats(
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentStatsRead:
    return services.documents.get_stats(db, actor, factory_id)


@router.get("/categories", response_model=list[str])
def list_document_categories(
    factory_id: uuid.UUID | None = Query(default=None, alias="factoryId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> list[str]:
    return services.documents.list_categories(db, actor, factory_id)


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentRead:
    return services.documents.get_document(db, actor, document_id)


@router.patch("/{document_id}", response_model=DocumentRead)
def update_document(
    document_id: uuid.UUID,
    payload: DocumentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentRead:
    return services.documents.update_document(db, actor, document_id, payload)


@router.post("/{document_id}/publish", response_model=DocumentRead)
def publish_document(
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentRead:
    return services.documents.publish_document(db, actor, document_id)


@router.post("/{document_id}/archive", response_model=DocumentRead)
def archive_document(
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentRead:
    return services.documents.archive_document(db, actor, document_id)


@router.delete("/{document_id}", response_model=DocumentRead)
def delete_document(
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> DocumentRead:
    return services.documents.delete_document(db, actor, document_id)


@router.delete("/{document_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
def purge_document(
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    services: ServiceRegistry = Depends(get_services),
) -> Response:
    services.documents.purge_document(db, actor, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
