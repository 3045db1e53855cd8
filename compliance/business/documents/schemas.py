from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


DocumentType = Literal["POLICY", "PROCEDURE", "CERTIFICATE", "REPORT", "RECORD", "OTHER"]
DocumentStatus = Literal["DRAFT", "ACTIVE", "ARCHIVED"]


class DocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    type: DocumentType
    category: str = Field(min_length=1, max_length=128)
    content: str | None = None
    factory_id: UUID


class DocumentUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    type: DocumentType | None = None
    category: str | None = Field(default=None, min_length=1, max_length=128)
    content: str | None = None


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    factory_id: UUID
    uploaded_by_id: UUID
    title: str
    type: DocumentType | str
    category: str
    content: str | None
    status: DocumentStatus | str
    version: int
    is_active: bool
    published_at: datetime | None
    archived_at: datetime | None
    created_at: datetime
    updated_at: datetime


class DocumentStatsRead(BaseModel):
    total: int
    active: int
    inactive: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    by_category: dict[str, int]
