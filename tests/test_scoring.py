"""Tests for category and compliance scoring."""

from __future__ import annotations

from repo_auditor.report import AuditReport, CategoryResult
from repo_auditor.rules.base import Finding
from repo_auditor.scoring import (
    category_score,
    compliance_score,
    finalize_report,
    penalty,
    record_finding,
)


def _finding(severity: str) -> Finding:
    return Finding(severity=severity, message=f"{severity} issue", description="d", file="f")


def test_penalties_by_severity() -> None:
    assert [penalty(level) for level in ("critical", "high", "medium", "low", "info")] == [
        25,
        15,
        10,
        5,
        0,
    ]


def test_category_score_deducts_penalties() -> None:
    findings = [_finding("high"), _finding("medium"), _finding("low")]
    assert category_score(findings) == 70


def test_category_score_floors_at_zero() -> None:
    assert category_score([_finding("critical")] * 5) == 0


def test_category_score_without_findings_is_full() -> None:
    assert category_score([]) == 100


def test_compliance_score_is_rounded_mean() -> None:
    assert compliance_score([100, 75, 90, 60, 85, 95]) == 84


def test_compliance_score_rounds_half_up() -> None:
    assert compliance_score([84, 85]) == 85
    assert compliance_score([0, 1]) == 1


def test_compliance_score_of_nothing_is_zero() -> None:
    assert compliance_score([]) == 0


def test_record_finding_updates_counts_and_score() -> None:
    report = AuditReport(owner="acme", repo="web", timestamp="2026-01-01T00:00:00Z")

    record_finding(report, "Build Configuration", _finding("high"))
    record_finding(report, "Build Configuration", _finding("medium"))
    record_finding(report, "Documentation", _finding("info"))

    assert report.summary.total_issues == 3
    assert report.summary.high_issues == 1
    assert report.summary.medium_issues == 1
    assert report.summary.info_issues == 1
    assert report.categories["Build Configuration"].score == 75
    assert report.categories["Documentation"].score == 100


def test_record_finding_never_goes_negative() -> None:
    report = AuditReport(owner="acme", repo="web", timestamp="t")
    for _ in range(6):
        record_finding(report, "Repository Structure", _finding("critical"))
    assert report.categories["Repository Structure"].score == 0


def test_finalize_report_is_idempotent() -> None:
    report = AuditReport(owner="acme", repo="web", timestamp="t")
    report.categories["A"] = CategoryResult(issues=[_finding("high")])
    report.categories["B"] = CategoryResult()

    finalize_report(report)
    first = report.to_dict()
    finalize_report(report)

    assert report.to_dict() == first
    assert report.categories["A"].score == 85
    assert report.summary.compliance_score == 93
