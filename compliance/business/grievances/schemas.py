from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


GrievanceCategory = Literal[
    "WAGES",
    "WORKING_HOURS",
    "HEALTH_SAFETY",
    "HARASSMENT",
    "DISCRIMINATION",
    "WORKING_CONDITIONS",
    "OTHER",
]
GrievanceSeverity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
GrievanceStatus = Literal["SUBMITTED", "ASSIGNED", "RESOLVED", "CLOSED"]


class GrievanceCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    category: GrievanceCategory
    severity: GrievanceSeverity
    factory_id: UUID
    is_anonymous: bool = False
    department: str | None = None
    contact_info: str | None = None


class GrievanceUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    category: GrievanceCategory | None = None
    severity: GrievanceSeverity | None = None
    priority: GrievanceSeverity | None = None
    department: str | None = None


class GrievanceAssign(BaseModel):
    assigned_to_id: UUID


class GrievanceResolve(BaseModel):
    resolution: str = Field(min_length=1)


class GrievanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    factory_id: UUID
    submitted_by_id: UUID | None
    assigned_to_id: UUID | None
    title: str
    description: str
    category: GrievanceCategory | str
    severity: GrievanceSeverity | str
    priority: GrievanceSeverity | str
    status: GrievanceStatus | str
    is_anonymous: bool
    department: str | None
    contact_info: str | None
    resolution: str | None
    submitted_at: datetime
    assigned_at: datetime | None
    resolved_at: datetime | None
    closed_at: datetime | None
    updated_at: datetime


class GrievanceStatsRead(BaseModel):
    total: int
    by_status: dict[str, int]
    by_category: dict[str, int]
    by_severity: dict[str, int]
    average_resolution_days: float
    sla_compliance: float
