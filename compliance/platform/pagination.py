from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from compliance.platform.security.errors import DomainValidationError


MAX_PAGE_LIMIT = 100

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise DomainValidationError("page", "must be >= 1")
        if self.limit < 1 or self.limit > MAX_PAGE_LIMIT:
            raise DomainValidationError("limit", f"must be between 1 and {MAX_PAGE_LIMIT}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(slots=True)
class PageResult(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def resolve_ordering(
    model: type,
    sort_by: str | None,
    sort_order: str,
    *,
    allowed: frozenset[str],
    default: str,
) -> list[Any]:
    field = sort_by or default
    if field not in allowed:
        raise DomainValidationError("sort_by", f"must be one of {', '.join(sorted(allowed))}")
    if sort_order not in ("asc", "desc"):
        raise DomainValidationError("sort_order", "must be asc or desc")
    column = getattr(model, field)
    primary = column.desc() if sort_order == "desc" else column.asc()
    return [primary, model.id]


def paginate(session: Session, stmt: Select[Any], page_request: PageRequest) -> PageResult[Any]:
    """Count the full filtered set, then fetch one page of it."""

    total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    items = list(session.scalars(stmt.limit(page_request.limit).offset(page_request.offset)).all())
    return PageResult(items=items, page=page_request.page, limit=page_request.limit, total=total)


class PaginationRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class Page(BaseModel, Generic[T]):
    data: list[T]
    pagination: PaginationRead

    @classmethod
    def from_result(cls, result: PageResult[Any], items: list[T]) -> Page[T]:
        return cls(
            data=items,
            pagination=PaginationRead(
                page=result.page,
                limit=result.limit,
                total=result.total,
                total_pages=result.total_pages,
            ),
        )
