from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from compliance.context import bind_actor
from compliance.core.auth import get_token_subject
from compliance.core.config import get_settings
from compliance.core.database import get_db
from compliance.platform.pagination import PageRequest
from compliance.platform.security.context import Actor
from compliance.platform.security.errors import NotFoundError, UnauthenticatedError

if TYPE_CHECKING:
    from compliance.services import ServiceRegistry


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


async def get_optional_actor(request: Request, db: Session = Depends(get_db)) -> Actor | None:
    subject = await get_token_subject(request)
    if subject is None:
        return None

    try:
        actor_id = uuid.UUID(subject.sub)
    except ValueError as exc:
        raise UnauthenticatedError("access token subject is not a user id") from exc

    try:
        actor = get_services(request).actors.resolve(db, actor_id)
    except NotFoundError as exc:
        raise UnauthenticatedError("user not found or inactive") from exc

    request.state.actor_id = str(actor.id)
    request.state.tenant_id = str(actor.tenant_id)
    bind_actor(str(actor.id), str(actor.tenant_id))
    return actor


async def get_actor(actor: Actor | None = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise UnauthenticatedError("missing bearer token")
    return actor


def get_page_request(
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
) -> PageRequest:
    return PageRequest(page=page, limit=limit if limit is not None else get_settings().default_page_limit)
