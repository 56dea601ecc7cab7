"""Tests for report rendering."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest

from repo_auditor.config import AppConfig
from repo_auditor.engine import AuditEngine
from repo_auditor.output import (
    filter_findings,
    render_executive,
    render_html,
    render_json,
    render_markdown,
    render_report,
    render_table,
    save_report,
)
from repo_auditor.report import AuditReport
from repo_auditor.rules.base import Finding
from repo_auditor.scoring import finalize_report, record_finding
from tests.helpers_source import make_dataset

TIMESTAMP = "2026-01-01T00:00:00Z"


def _sample_report() -> AuditReport:
    return AuditEngine(AppConfig()).evaluate(
        make_dataset(root_manifest={"name": "bare", "dependencies": {"lodash": "4"}}),
        timestamp=TIMESTAMP,
    )


def test_json_round_trips_through_report_model() -> None:
    report = _sample_report()

    payload = json.loads(render_json(report))
    restored = AuditReport.from_dict(payload)

    assert payload["repository"] == {"owner": "acme", "repo": "web"}
    assert list(payload["categories"]) == list(report.categories)
    assert restored.to_dict() == report.to_dict()


def test_json_ignores_severity_filter() -> None:
    report = _sample_report()
    assert render_report(report, "json", min_severity="critical") == render_json(report)


def test_table_lists_summary_and_categories() -> None:
    text = click.unstyle(render_table(_sample_report()))

    assert "Audit Report for acme/web" in text
    assert "Compliance Score" in text
    assert "Category Breakdown:" in text
    assert "Missing workspaces configuration" in text


def test_markdown_has_section_per_category() -> None:
    report = _sample_report()

    text = render_markdown(report)

    assert text.startswith("# Compliance Audit Report: acme/web")
    assert "## Summary" in text
    for name, result in report.categories.items():
        assert f"### {name} (Score: {result.score}/100)" in text
    assert "- **[HIGH]** Missing workspaces configuration (`package.json`)" in text
    assert "_None._" in text


def test_severity_filter_hides_findings_but_keeps_scores() -> None:
    report = _sample_report()

    text = render_markdown(report, min_severity="high")

    assert "Missing workspaces configuration" in text
    assert "Missing packageManager field" not in text
    assert "Consider using lodash-es instead of lodash" not in text
    assert f"| Compliance Score | {report.summary.compliance_score}/100 |" in text


def test_html_escapes_finding_text() -> None:
    report = AuditReport(owner="acme", repo="<web>", timestamp=TIMESTAMP)
    record_finding(
        report,
        "Code Quality & Standards",
        Finding(severity="high", message="<script>x</script>", description="a & b", file="f"),
    )
    finalize_report(report)

    text = render_html(report)

    assert text.startswith("<!DOCTYPE html>")
    assert "&lt;script&gt;x&lt;/script&gt;" in text
    assert "<script>x</script>" not in text
    assert "a &amp; b" in text
    assert "acme/&lt;web&gt;" in text


def test_executive_summary_ranks_most_severe_findings() -> None:
    report = AuditEngine(AppConfig()).evaluate(make_dataset(), timestamp=TIMESTAMP)

    text = render_executive(report)
    lines = text.splitlines()

    assert lines[0] == "Executive Summary: acme/web"
    assert lines[1].startswith(f"Compliance score: {report.summary.compliance_score}/100")
    assert "Top findings:" in lines
    top = lines[lines.index("Top findings:") + 1 :]
    assert len(top) == 5
    assert top[0] == "1. [CRITICAL] Repository Structure: Missing root package.json file"
    assert top[1].startswith("2. [HIGH]")


def test_executive_summary_without_visible_findings() -> None:
    report = AuditEngine(AppConfig()).evaluate(
        make_dataset(root_manifest={}), timestamp=TIMESTAMP
    )
    text = render_executive(report, min_severity="critical")
    assert text.splitlines()[-1] == "No findings at the selected severity."


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported format"):
        render_report(_sample_report(), "xml")


def test_filter_findings_rejects_unknown_severity() -> None:
    with pytest.raises(ValueError, match="min_severity"):
        filter_findings([], "urgent")


def test_filter_findings_info_threshold_includes_everything() -> None:
    findings = [
        Finding(severity="info", message="i", description="d", file="f"),
        Finding(severity="low", message="l", description="d", file="f"),
    ]
    assert filter_findings(findings, "info") == findings
    assert filter_findings(findings, "low") == findings[1:]


def test_save_report_creates_parent_directories(tmp_path: Path) -> None:
    target = tmp_path / "reports" / "audit.md"

    save_report("# report\n", target)

    assert target.read_text(encoding="utf-8") == "# report\n"
