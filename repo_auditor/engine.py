"""Audit orchestration: run category checks and score the results."""

from __future__ import annotations

from collections.abc import Sequence

from repo_auditor.collector import RepositoryCollector
from repo_auditor.config import AppConfig
from repo_auditor.logging import get_logger
from repo_auditor.models import FileRecord, RepositoryDataset, utc_timestamp
from repo_auditor.report import AuditReport, CategoryResult
from repo_auditor.rules import default_checks
from repo_auditor.rules.base import AuditContext, Check, MalformedDataError
from repo_auditor.scoring import finalize_report, record_finding

logger = get_logger("engine")


class AuditEngine:
    """Evaluates a repository snapshot against the category checks.

    Checks run in a fixed order and never see each other's results. A check
    that hits a malformed manifest keeps the findings it already produced and
    is marked aborted; any other exception propagates and no report is built.
    """

    def __init__(self, config: AppConfig, checks: list[Check] | None = None) -> None:
        self._config = config
        self._checks = checks if checks is not None else default_checks()

    def evaluate(
        self,
        target: RepositoryDataset,
        boilerplate: Sequence[FileRecord] = (),
        common_config: Sequence[FileRecord] = (),
        *,
        timestamp: str | None = None,
    ) -> AuditReport:
        """Run every check against already-fetched data and return the report."""
        context = AuditContext(
            target=target,
            boilerplate=tuple(boilerplate),
            common_config=tuple(common_config),
            rules=self._config.audit,
        )
        report = AuditReport(
            owner=target.metadata.owner,
            repo=target.metadata.repo,
            timestamp=timestamp or utc_timestamp(),
        )

        for check in self._checks:
            report.categories[check.category] = CategoryResult()
            try:
                for finding in check.evaluate(context):
                    record_finding(report, check.category, finding)
            except MalformedDataError as exc:
                logger.warning("Check %s stopped early: %s", check.check_id, exc)
                result = report.categories[check.category]
                result.aborted = True
                result.error = str(exc)

        finalize_report(report)
        logger.info(
            "Audit of %s/%s completed with %d issues, compliance score %d",
            report.owner,
            report.repo,
            report.summary.total_issues,
            report.summary.compliance_score,
        )
        return report

    def audit_repository(
        self,
        collector: RepositoryCollector,
        owner: str,
        repo: str,
        ref: str | None = None,
    ) -> AuditReport:
        """Fetch target and reference data sequentially, then evaluate."""
        logger.info("Starting audit for %s/%s", owner, repo)
        target = collector.collect(owner, repo, ref)
        boilerplate = collector.fetch_boilerplate_reference()
        common_config = collector.fetch_common_config_reference()
        return self.evaluate(target, boilerplate, common_config)
