"""Severity-weighted category scores and the overall compliance score."""

from __future__ import annotations

import math

from repo_auditor.report import MAX_SCORE, AuditReport, CategoryResult
from repo_auditor.rules.base import Finding

SEVERITY_PENALTIES: dict[str, int] = {
    "critical": 25,
    "high": 15,
    "medium": 10,
    "low": 5,
    "info": 0,
}

_SUMMARY_COUNTERS: dict[str, str] = {
    "critical": "critical_issues",
    "high": "high_issues",
    "medium": "medium_issues",
    "low": "low_issues",
    "info": "info_issues",
}


def penalty(severity: str) -> int:
    """Points deducted from a category score for one finding."""
    return SEVERITY_PENALTIES.get(severity, 0)


def record_finding(report: AuditReport, category: str, finding: Finding) -> None:
    """Append ``finding`` to ``category`` and update counts and score in place."""
    result = report.categories.setdefault(category, CategoryResult())
    result.issues.append(finding)
    result.score = max(0, result.score - penalty(finding.severity))

    summary = report.summary
    summary.total_issues += 1
    counter = _SUMMARY_COUNTERS.get(finding.severity)
    if counter is not None:
        setattr(summary, counter, getattr(summary, counter) + 1)


def category_score(findings: list[Finding]) -> int:
    """Return ``100 - sum(penalties)`` floored at 0."""
    deducted = sum(penalty(finding.severity) for finding in findings)
    return max(0, MAX_SCORE - deducted)


def compliance_score(scores: list[int]) -> int:
    """Unweighted mean of category scores, rounded half up."""
    if not scores:
        return 0
    mean = sum(scores) / len(scores)
    return int(math.floor(mean + 0.5))


def finalize_report(report: AuditReport) -> AuditReport:
    """Recompute every category score and the compliance score."""
    for result in report.categories.values():
        result.score = category_score(result.issues)
    report.summary.compliance_score = compliance_score(
        [result.score for result in report.categories.values()]
    )
    return report
