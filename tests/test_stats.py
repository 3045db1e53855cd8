from __future__ import annotations

import pytest

from compliance.platform.stats import compliance_score, compliance_status


def test_no_completed_audits_scores_zero() -> None:
    result = compliance_score([], open_findings=3, overdue_actions=2)

    assert result.score == 0.0
    assert result.status == "Poor"
    assert result.completed_audits == 0


def test_all_passing_audits_without_penalties_score_full_marks() -> None:
    result = compliance_score([80.0, 95.5], open_findings=0, overdue_actions=0)

    assert result.score == 100.0
    assert result.passed_audits == 2
    assert result.status == "Good"


def test_penalties_are_capped() -> None:
    result = compliance_score([90.0], open_findings=50, overdue_actions=50)

    assert result.score == 65.0
    assert result.status == "Fair"


def test_score_never_drops_below_zero() -> None:
    result = compliance_score([10.0, 20.0], open_findings=10, overdue_actions=10)

    assert result.score == 0.0


def test_unscored_completed_audit_counts_as_not_passed() -> None:
    result = compliance_score([None, 85.0], open_findings=0, overdue_actions=0)

    assert result.completed_audits == 2
    assert result.score == 50.0


@pytest.mark.parametrize(
    ("score", "status"),
    [(100.0, "Good"), (80.0, "Good"), (79.99, "Fair"), (60.0, "Fair"), (59.9, "Poor"), (0.0, "Poor")],
)
def test_compliance_status_bands(score: float, status: str) -> None:
    assert compliance_status(score) == status
