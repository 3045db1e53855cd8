from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from compliance.platform.security.scope import ScopeFilter


PASSING_AUDIT_SCORE = 80.0
OPEN_FINDING_PENALTY = 5.0
OPEN_FINDING_PENALTY_CAP = 20.0
OVERDUE_ACTION_PENALTY = 3.0
OVERDUE_ACTION_PENALTY_CAP = 15.0


@dataclass(slots=True)
class StatsAggregator:
    """Scoped counting helpers. Every grouping is zero-filled over its known keys."""

    def total(self, session: Session, scope: ScopeFilter, *criteria: ColumnElement[bool]) -> int:
        stmt = scope.apply(select(func.count()).select_from(scope.policy.model)).where(*criteria)
        return int(session.scalar(stmt) or 0)

    def count_by(
        self,
        session: Session,
        scope: ScopeFilter,
        column: Any,
        keys: Iterable[str],
        *criteria: ColumnElement[bool],
    ) -> dict[str, int]:
        counts = {key: 0 for key in keys}
        stmt = scope.apply(select(column, func.count()).select_from(scope.policy.model)).where(*criteria).group_by(column)
        for key, count in session.execute(stmt).all():
            if key is not None:
                counts[str(key)] = int(count)
        return counts

    def average(self, session: Session, scope: ScopeFilter, column: Any, *criteria: ColumnElement[bool]) -> float | None:
        stmt = scope.apply(select(func.avg(column)).select_from(scope.policy.model)).where(*criteria)
        value = session.scalar(stmt)
        return round(float(value), 2) if value is not None else None

    def distinct_values(self, session: Session, scope: ScopeFilter, column: Any, *criteria: ColumnElement[bool]) -> list[str]:
        stmt = scope.apply(select(column).select_from(scope.policy.model)).where(*criteria).distinct().order_by(column)
        return [value for value in session.scalars(stmt).all() if value is not None]


@dataclass(frozen=True, slots=True)
class ComplianceScore:
    score: float
    status: str
    completed_audits: int
    passed_audits: int
    open_findings: int
    overdue_actions: int


def compliance_score(
    completed_audit_scores: Iterable[float | None],
    *,
    open_findings: int,
    overdue_actions: int,
) -> ComplianceScore:
    """Pass rate of completed audits less capped penalties, clamped to [0, 100].

    A factory with no completed audit scores 0.
    """

    scores = list(completed_audit_scores)
    passed = sum(1 for score in scores if score is not None and score >= PASSING_AUDIT_SCORE)
    if not scores:
        value = 0.0
    else:
        value = (passed / len(scores)) * 100
        value -= min(open_findings * OPEN_FINDING_PENALTY, OPEN_FINDING_PENALTY_CAP)
        value -= min(overdue_actions * OVERDUE_ACTION_PENALTY, OVERDUE_ACTION_PENALTY_CAP)
        value = min(max(value, 0.0), 100.0)

    return ComplianceScore(
        score=round(value, 2),
        status=compliance_status(value),
        completed_audits=len(scores),
        passed_audits=passed,
        open_findings=open_findings,
        overdue_actions=overdue_actions,
    )


def compliance_status(score: float) -> str:
    if score >= 80:
        return "Good"
    if score >= 60:
        return "Fair"
    return "Poor"
