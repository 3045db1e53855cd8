from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from compliance.api.deps import get_actor
from compliance.business.audits.api import router as audits_router
from compliance.business.documents.api import router as documents_router
from compliance.business.factories.api import router as factories_router
from compliance.business.grievances.api import router as grievances_router
from compliance.core.config import get_settings
from compliance.core.database import get_db
from compliance.metrics import generate_metrics_payload, metrics_content_type
from compliance.platform.security.context import Actor, Role
from compliance.platform.security.errors import ForbiddenError, NotFoundError
from compliance.tenancy.models import User


router = APIRouter()
router.include_router(audits_router)
router.include_router(documents_router)
router.include_router(factories_router)
router.include_router(grievances_router)


class MeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    tenant_id: UUID
    factory_id: UUID | None


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/api/auth/me", response_model=MeRead, tags=["auth"])
def me(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> MeRead:
    user = db.get(User, actor.id)
    if user is None:
        raise NotFoundError("actor")
    return MeRead.model_validate(user)


@router.get("/metrics", tags=["system"])
def metrics(actor: Actor = Depends(get_actor)) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise NotFoundError("metrics")
    if actor.role != Role.SUPER_ADMIN:
        raise ForbiddenError("metrics are restricted to super admins", reason="role")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
