from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, String, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance.core.database import Base
from compliance.tenancy.models import User, utcnow


audit_auditor = Table(
    "audit_auditor",
    Base.metadata,
    Column("audit_id", Uuid(as_uuid=True), ForeignKey("audit.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid(as_uuid=True), ForeignKey("app_user.id"), primary_key=True),
)

audit_witness = Table(
    "audit_witness",
    Base.metadata,
    Column("audit_id", Uuid(as_uuid=True), ForeignKey("audit.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid(as_uuid=True), ForeignKey("app_user.id"), primary_key=True),
)


class Audit(Base):
    __tablename__ = "audit"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("tenant.id"), nullable=False)
    factory_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("factory.id"), nullable=False)
    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    standard: Mapped[str] = mapped_column(String(128), nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False)
    objectives: Mapped[str | None] = mapped_column(Text, nullable=True)
    methodology: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PLANNED", server_default="PLANNED")
    planned_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    planned_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    actual_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommendations: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    auditors: Mapped[list[User]] = relationship(secondary=audit_auditor, lazy="selectin")
    witnesses: Mapped[list[User]] = relationship(secondary=audit_witness, lazy="selectin")
    findings: Mapped[list[AuditFinding]] = relationship(
        back_populates="audit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AuditFinding.created_at",
    )

    __table_args__ = (
        Index("ix_audit_scope_status", "tenant_id", "factory_id", "status"),
        Index("ix_audit_created_by", "created_by_id"),
    )


class AuditFinding(Base):
    __tablename__ = "audit_finding"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    audit_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("audit.id", ondelete="CASCADE"), nullable=False)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("tenant.id"), nullable=False)
    factory_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("factory.id"), nullable=False)
    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    requirement: Mapped[str | None] = mapped_column(Text, nullable=True)
    evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="OPEN", server_default="OPEN")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    audit: Mapped[Audit] = relationship(back_populates="findings")
    corrective_actions: Mapped[list[CorrectiveAction]] = relationship(
        back_populates="finding",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_audit_finding_factory_status", "factory_id", "status"),)


class CorrectiveAction(Base):
    __tablename__ = "corrective_action"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    finding_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("audit_finding.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("tenant.id"), nullable=False)
    factory_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("factory.id"), nullable=False)
    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    assigned_to_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False, default="SHORT_TERM", server_default="SHORT_TERM")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="MEDIUM", server_default="MEDIUM")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PENDING", server_default="PENDING")
    due_date: Mapped[date] = mapped_column(Date(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    finding: Mapped[AuditFinding] = relationship(back_populates="corrective_actions")

    __table_args__ = (Index("ix_corrective_action_factory_status_due", "factory_id", "status", "due_date"),)
