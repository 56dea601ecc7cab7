"""Audit report data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from repo_auditor.rules.base import Finding

MAX_SCORE = 100


@dataclass(slots=True)
class CategoryResult:
    """Findings and score for one audit category.

    ``aborted`` is set when the check stopped early on malformed data; the
    findings recorded before that point are kept.
    """

    issues: list[Finding] = field(default_factory=list)
    score: int = MAX_SCORE
    aborted: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "issues": [issue.to_dict() for issue in self.issues],
            "score": self.score,
            "aborted": self.aborted,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CategoryResult:
        return cls(
            issues=[Finding.from_dict(item) for item in payload.get("issues", [])],
            score=int(payload.get("score", MAX_SCORE)),
            aborted=bool(payload.get("aborted", False)),
            error=payload.get("error"),
        )


@dataclass(slots=True)
class ReportSummary:
    """Finding counts by severity plus the overall compliance score."""

    total_issues: int = 0
    critical_issues: int = 0
    high_issues: int = 0
    medium_issues: int = 0
    low_issues: int = 0
    info_issues: int = 0
    compliance_score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_issues": self.total_issues,
            "critical_issues": self.critical_issues,
            "high_issues": self.high_issues,
            "medium_issues": self.medium_issues,
            "low_issues": self.low_issues,
            "info_issues": self.info_issues,
            "compliance_score": self.compliance_score,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ReportSummary:
        return cls(**{key: int(payload.get(key, 0)) for key in cls.__dataclass_fields__})


@dataclass(slots=True)
class AuditReport:
    """Complete audit outcome for one repository."""

    owner: str
    repo: str
    timestamp: str
    summary: ReportSummary = field(default_factory=ReportSummary)
    categories: dict[str, CategoryResult] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)

    def all_findings(self) -> list[tuple[str, Finding]]:
        return [
            (name, finding)
            for name, category in self.categories.items()
            for finding in category.issues
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": {"owner": self.owner, "repo": self.repo},
            "timestamp": self.timestamp,
            "summary": self.summary.to_dict(),
            "categories": {name: result.to_dict() for name, result in self.categories.items()},
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> AuditReport:
        repository = payload.get("repository", {})
        return cls(
            owner=repository["owner"],
            repo=repository["repo"],
            timestamp=payload["timestamp"],
            summary=ReportSummary.from_dict(payload.get("summary", {})),
            categories={
                name: CategoryResult.from_dict(result)
                for name, result in payload.get("categories", {}).items()
            },
            recommendations=list(payload.get("recommendations", [])),
        )
