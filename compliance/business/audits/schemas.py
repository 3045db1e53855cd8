from __future__ import annotations

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


AuditType = Literal["INTERNAL", "EXTERNAL", "CERTIFICATION", "FOLLOW_UP"]
AuditStatus = Literal["PLANNED", "IN_PROGRESS", "COMPLETED"]
Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
ActionType = Literal["IMMEDIATE", "SHORT_TERM", "LONG_TERM"]


class AuditCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    type: AuditType
    standard: str = Field(min_length=1)
    scope: str = Field(min_length=1)
    objectives: str | None = None
    methodology: str | None = None
    planned_start_date: datetime
    planned_end_date: datetime
    factory_id: UUID
    auditor_ids: list[UUID] = Field(min_length=1)
    witness_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_dates(self) -> AuditCreate:
        if self.planned_end_date < self.planned_start_date:
            raise ValueError("planned_end_date must not be before planned_start_date")
        return self


class AuditUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    type: AuditType | None = None
    standard: str | None = Field(default=None, min_length=1)
    scope: str | None = Field(default=None, min_length=1)
    objectives: str | None = None
    methodology: str | None = None
    planned_start_date: datetime | None = None
    planned_end_date: datetime | None = None


class AuditComplete(BaseModel):
    score: float
    summary: str = Field(min_length=1)
    recommendations: str = Field(min_length=1)


class UserRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str


class AuditRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    factory_id: UUID
    created_by_id: UUID
    title: str
    type: AuditType | str
    standard: str
    scope: str
    objectives: str | None
    methodology: str | None
    status: AuditStatus | str
    planned_start_date: datetime
    planned_end_date: datetime
    actual_start_date: datetime | None
    actual_end_date: datetime | None
    score: float | None
    summary: str | None
    recommendations: str | None
    auditors: list[UserRef] = Field(default_factory=list)
    witnesses: list[UserRef] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class FindingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    severity: Severity
    category: str | None = None
    requirement: str | None = None
    evidence: str | None = None


class FindingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    audit_id: UUID
    tenant_id: UUID
    factory_id: UUID
    created_by_id: UUID
    title: str
    description: str
    severity: Severity | str
    category: str | None
    requirement: str | None
    evidence: str | None
    status: str
    created_at: datetime


class CorrectiveActionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    action_type: ActionType = "SHORT_TERM"
    priority: Severity = "MEDIUM"
    assigned_to_id: UUID
    due_date: date


class CorrectiveActionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    finding_id: UUID
    tenant_id: UUID
    factory_id: UUID
    created_by_id: UUID
    assigned_to_id: UUID
    title: str
    description: str | None
    action_type: ActionType | str
    priority: Severity | str
    status: str
    due_date: date
    created_at: datetime


class AuditStatsRead(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    average_score: float
