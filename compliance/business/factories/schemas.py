from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


ComplianceStatus = Literal["Good", "Fair", "Poor"]


class FactoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=64)
    address: str = Field(min_length=1)
    country: str = Field(min_length=1)
    industry: str = Field(min_length=1)
    size: int = Field(ge=1)
    tenant_id: UUID | None = None


class FactoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    code: str | None = Field(default=None, min_length=1, max_length=64)
    address: str | None = Field(default=None, min_length=1)
    country: str | None = Field(default=None, min_length=1)
    industry: str | None = Field(default=None, min_length=1)
    size: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class FactoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    code: str
    address: str
    country: str
    industry: str
    size: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FactorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str
    industry: str
    size: int
    is_active: bool


class UserCounts(BaseModel):
    total: int = 0
    active: int = 0


class FactoryCounts(BaseModel):
    users: UserCounts = Field(default_factory=UserCounts)
    documents: int = 0
    audits: int = 0
    open_grievances: int = 0


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_type: str
    action: str
    entity_id: UUID
    user_id: UUID | None
    created_at: datetime


class FactoryStatsRead(BaseModel):
    factory: FactorySummary
    stats: FactoryCounts
    recent_activities: list[ActivityRead] = Field(default_factory=list)


class ComplianceOverview(BaseModel):
    score: float
    status: ComplianceStatus
    completed_audits: int
    passed_audits: int
    active_audits: int
    open_findings: int
    overdue_actions: int


class FactoryComplianceRead(BaseModel):
    factory: FactorySummary
    compliance: ComplianceOverview
