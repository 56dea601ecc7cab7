"""Tests for audit orchestration."""

from __future__ import annotations

import json
import re
from collections.abc import Iterator

import pytest

from repo_auditor.collector import RepositoryCollector
from repo_auditor.config import AppConfig, RateLimitConfig
from repo_auditor.engine import AuditEngine
from repo_auditor.rules.base import AuditContext, Finding, MalformedDataError
from repo_auditor.source import SourceError
from tests.helpers_source import (
    COMPLIANT_CONFIG_FILES,
    InMemorySource,
    compliant_manifest,
    compliant_repo_files,
    make_dataset,
)

TIMESTAMP = "2026-01-01T00:00:00Z"


class _PartialCheck:
    check_id = "partial"
    category = "Partial"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        _ = context
        yield Finding(severity="high", message="first", description="d", file="a")
        raise MalformedDataError("broken manifest")


class _ExplodingCheck:
    check_id = "exploding"
    category = "Exploding"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        _ = context
        raise RuntimeError("bug in check")
        yield


class _StaticCheck:
    check_id = "static"
    category = "Static"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        _ = context
        yield Finding(severity="medium", message="static", description="d", file="b")


def _quiet_config() -> AppConfig:
    return AppConfig(rate_limiting=RateLimitConfig(batch_delay_seconds=0, retry_attempts=0))


def test_empty_repository_scores_every_category() -> None:
    report = AuditEngine(AppConfig()).evaluate(make_dataset(), timestamp=TIMESTAMP)

    assert list(report.categories) == [
        "Repository Structure",
        "Dependencies & Package Management",
        "Build Configuration",
        "Code Quality & Standards",
        "Testing Setup",
        "Documentation",
    ]
    structure = report.categories["Repository Structure"]
    assert [issue.severity for issue in structure.issues] == ["critical"]
    assert structure.score == 75
    assert report.categories["Dependencies & Package Management"].issues == []
    assert report.summary.total_issues == sum(
        len(result.issues) for result in report.categories.values()
    )
    assert report.timestamp == TIMESTAMP


def test_compliant_repository_scores_near_full_marks() -> None:
    dataset = make_dataset(
        root_manifest=compliant_manifest(),
        workspace_packages=("apps/web/package.json",),
        config_paths=COMPLIANT_CONFIG_FILES,
    )

    report = AuditEngine(AppConfig()).evaluate(dataset, timestamp=TIMESTAMP)

    assert report.summary.total_issues == 1
    assert report.summary.low_issues == 1
    assert report.categories["Documentation"].score == 95
    assert report.summary.compliance_score == 99


def test_malformed_manifest_aborts_only_that_category() -> None:
    engine = AuditEngine(AppConfig(), checks=[_PartialCheck(), _StaticCheck()])

    report = engine.evaluate(make_dataset(), timestamp=TIMESTAMP)

    partial = report.categories["Partial"]
    assert partial.aborted is True
    assert partial.error == "broken manifest"
    assert [issue.message for issue in partial.issues] == ["first"]
    assert partial.score == 85
    assert report.categories["Static"].aborted is False
    assert report.summary.total_issues == 2
    assert report.summary.compliance_score == 88


def test_malformed_root_manifest_keeps_other_categories() -> None:
    dataset = make_dataset(root_manifest="{oops", config_paths=COMPLIANT_CONFIG_FILES)

    report = AuditEngine(AppConfig()).evaluate(dataset, timestamp=TIMESTAMP)

    assert report.categories["Repository Structure"].aborted is True
    assert report.categories["Dependencies & Package Management"].aborted is True
    assert report.categories["Build Configuration"].aborted is False
    assert report.categories["Build Configuration"].issues == []


def test_unexpected_check_errors_propagate() -> None:
    engine = AuditEngine(AppConfig(), checks=[_ExplodingCheck()])
    with pytest.raises(RuntimeError, match="bug in check"):
        engine.evaluate(make_dataset(), timestamp=TIMESTAMP)


def test_evaluate_is_deterministic() -> None:
    dataset = make_dataset(root_manifest={"name": "bare"})
    engine = AuditEngine(AppConfig())

    first = engine.evaluate(dataset, timestamp=TIMESTAMP)
    second = engine.evaluate(dataset, timestamp=TIMESTAMP)

    assert first.to_dict() == second.to_dict()


def test_audit_repository_fetches_target_then_references() -> None:
    config = _quiet_config()
    target = config.repositories.target
    boilerplate = config.repositories.boilerplate
    common = config.repositories.common_config
    source = InMemorySource(
        {
            (target.owner, target.repo): compliant_repo_files(),
            (boilerplate.owner, boilerplate.repo): {
                f"{boilerplate.path}/package.json": json.dumps({"workspaces": ["apps/*"]}),
            },
            (common.owner, common.repo): {"eslint.json": "{}"},
        }
    )
    collector = RepositoryCollector(source, config)

    report = AuditEngine(config).audit_repository(collector, target.owner, target.repo)

    assert report.owner == target.owner
    assert report.summary.compliance_score == 99
    repos_in_order = [call[2] for call in source.calls]
    first_reference = repos_in_order.index(boilerplate.repo)
    assert set(repos_in_order[:first_reference]) == {target.repo}
    assert repos_in_order[-1] == common.repo


def test_audit_repository_propagates_missing_target() -> None:
    config = _quiet_config()
    collector = RepositoryCollector(InMemorySource(), config)
    with pytest.raises(SourceError):
        AuditEngine(config).audit_repository(collector, "acme", "missing")


def test_report_and_dataset_timestamps_share_format() -> None:
    config = _quiet_config()
    source = InMemorySource({("acme", "web"): compliant_repo_files()})
    collector = RepositoryCollector(source, config)

    dataset = collector.collect("acme", "web")
    report = AuditEngine(config).evaluate(dataset)

    pattern = r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z"
    assert re.fullmatch(pattern, dataset.metadata.fetched_at)
    assert re.fullmatch(pattern, report.timestamp)
