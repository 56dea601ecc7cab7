"""Report rendering."""

from __future__ import annotations

import html
import json
from pathlib import Path

import click

from repo_auditor import __version__
from repo_auditor.report import AuditReport, CategoryResult
from repo_auditor.rules.base import SEVERITY_ORDER, Finding

SEVERITY_COLORS: dict[str, str] = {
    "critical": "red",
    "high": "yellow",
    "medium": "blue",
    "low": "white",
    "info": "cyan",
}

EXECUTIVE_TOP_FINDINGS = 5


def render_report(report: AuditReport, format: str, min_severity: str = "low") -> str:
    """Render ``report`` in one of the supported output formats."""
    output_format = format.lower()
    if output_format == "json":
        return render_json(report)
    if output_format == "table":
        return render_table(report, min_severity=min_severity)
    if output_format in {"markdown", "md"}:
        return render_markdown(report, min_severity=min_severity)
    if output_format == "html":
        return render_html(report, min_severity=min_severity)
    if output_format == "executive":
        return render_executive(report, min_severity=min_severity)
    raise ValueError(f"Unsupported format: {format}")


def render_json(report: AuditReport) -> str:
    """Render the full report as JSON; ``AuditReport.from_dict`` reverses it."""
    return json.dumps(report.to_dict(), indent=2)


def render_table(report: AuditReport, min_severity: str = "low") -> str:
    """Render a colorized terminal summary followed by per-category issues."""
    summary = report.summary
    lines: list[str] = [
        click.style(f"Audit Report for {report.owner}/{report.repo}", fg="blue", bold=True),
        "",
        f"  Total Issues      {summary.total_issues}",
        f"  Critical Issues   {click.style(str(summary.critical_issues), fg='red')}",
        f"  High Issues       {click.style(str(summary.high_issues), fg='yellow')}",
        f"  Medium Issues     {click.style(str(summary.medium_issues), fg='blue')}",
        f"  Low Issues        {summary.low_issues}",
        f"  Compliance Score  {_styled_score(summary.compliance_score)}%",
    ]

    sections: list[str] = []
    for name, result in report.categories.items():
        issues = filter_findings(result.issues, min_severity)
        if not issues:
            continue
        sections.append(click.style(f"{name} (Score: {_styled_score(result.score)}%)", bold=True))
        for issue in issues:
            sections.append(f"  {_severity_label(issue.severity)}  {issue.file}  {issue.message}")
        if result.aborted:
            sections.append(f"  (check stopped early: {result.error})")

    if sections:
        lines.append("")
        lines.append(click.style("Category Breakdown:", fg="blue", bold=True))
        lines.extend(sections)
    return "\n".join(lines)


def render_markdown(report: AuditReport, min_severity: str = "low") -> str:
    """Render a long-form Markdown narrative with one section per category."""
    summary = report.summary
    lines: list[str] = [
        f"# Compliance Audit Report: {report.owner}/{report.repo}",
        "",
        f"_Generated {report.timestamp} by repo-auditor {__version__}_",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "| --- | --- |",
        f"| Compliance Score | {summary.compliance_score}/100 |",
        f"| Total Issues | {summary.total_issues} |",
        f"| Critical | {summary.critical_issues} |",
        f"| High | {summary.high_issues} |",
        f"| Medium | {summary.medium_issues} |",
        f"| Low | {summary.low_issues} |",
        "",
        "## Categories",
    ]

    for name, result in report.categories.items():
        lines.append("")
        lines.append(f"### {name} (Score: {result.score}/100)")
        lines.append("")
        if result.aborted:
            lines.append(f"> Check stopped early: {result.error}")
            lines.append("")
        issues = filter_findings(result.issues, min_severity)
        if not issues:
            lines.append("_No issues at the selected severity._")
            continue
        for issue in issues:
            lines.append(f"- **[{issue.severity.upper()}]** {issue.message} (`{issue.file}`)")
            lines.append(f"  - {issue.description}")
            if issue.suggestion:
                lines.append(f"  - Suggestion: {issue.suggestion}")

    lines.extend(["", "## Recommendations", ""])
    if report.recommendations:
        lines.extend(f"- {item}" for item in report.recommendations)
    else:
        lines.append("_None._")
    return "\n".join(lines) + "\n"


def render_html(report: AuditReport, min_severity: str = "low") -> str:
    """Render a standalone styled HTML page."""
    summary = report.summary
    title = html.escape(f"Compliance Audit Report: {report.owner}/{report.repo}")
    parts: list[str] = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{title}</title>",
        "<style>",
        _HTML_STYLE,
        "</style>",
        "</head>",
        "<body>",
        f"<h1>{title}</h1>",
        f'<p class="meta">Generated {html.escape(report.timestamp)}</p>',
        '<section class="summary">',
        f'<div class="score {_score_band(summary.compliance_score)}">'
        f"{summary.compliance_score}<span>/100</span></div>",
        "<table>",
        f"<tr><th>Total issues</th><td>{summary.total_issues}</td></tr>",
        f"<tr><th>Critical</th><td>{summary.critical_issues}</td></tr>",
        f"<tr><th>High</th><td>{summary.high_issues}</td></tr>",
        f"<tr><th>Medium</th><td>{summary.medium_issues}</td></tr>",
        f"<tr><th>Low</th><td>{summary.low_issues}</td></tr>",
        "</table>",
        "</section>",
    ]

    for name, result in report.categories.items():
        parts.extend(_html_category(name, result, min_severity))

    parts.extend(["</body>", "</html>"])
    return "\n".join(parts) + "\n"


def render_executive(report: AuditReport, min_severity: str = "low") -> str:
    """Render headline numbers and the most severe findings only."""
    summary = report.summary
    lines = [
        f"Executive Summary: {report.owner}/{report.repo}",
        f"Compliance score: {summary.compliance_score}/100 "
        f"({_compliance_status(summary.compliance_score)})",
        (
            f"Issues: {summary.total_issues} total "
            f"({summary.critical_issues} critical, {summary.high_issues} high, "
            f"{summary.medium_issues} medium, {summary.low_issues} low)"
        ),
    ]

    ranked = _top_findings(report, min_severity, limit=EXECUTIVE_TOP_FINDINGS)
    if ranked:
        lines.append("Top findings:")
        for index, (category, finding) in enumerate(ranked, start=1):
            lines.append(f"{index}. [{finding.severity.upper()}] {category}: {finding.message}")
    else:
        lines.append("No findings at the selected severity.")
    return "\n".join(lines)


def save_report(text: str, path: Path) -> Path:
    """Write rendered report text verbatim to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def filter_findings(findings: list[Finding], min_severity: str) -> list[Finding]:
    """Keep findings at ``min_severity`` or above; scores are unaffected."""
    if min_severity not in SEVERITY_ORDER:
        choices = ", ".join(SEVERITY_ORDER)
        raise ValueError(f"min_severity must be one of: {choices}")
    threshold = SEVERITY_ORDER.index(min_severity)
    return [item for item in findings if SEVERITY_ORDER.index(item.severity) <= threshold]


def _top_findings(
    report: AuditReport, min_severity: str, *, limit: int
) -> list[tuple[str, Finding]]:
    candidates = [
        (category, finding)
        for category, result in report.categories.items()
        for finding in filter_findings(result.issues, min_severity)
    ]
    ranked = sorted(candidates, key=lambda item: SEVERITY_ORDER.index(item[1].severity))
    return ranked[:limit]


def _html_category(name: str, result: CategoryResult, min_severity: str) -> list[str]:
    parts = [
        '<section class="category">',
        f"<h2>{html.escape(name)} <small>{result.score}/100</small></h2>",
    ]
    if result.aborted:
        error = html.escape(result.error or "")
        parts.append(f'<p class="aborted">Check stopped early: {error}</p>')
    issues = filter_findings(result.issues, min_severity)
    if not issues:
        parts.append('<p class="empty">No issues at the selected severity.</p>')
    else:
        parts.append("<ul>")
        for issue in issues:
            suggestion = (
                f'<div class="suggestion">{html.escape(issue.suggestion)}</div>'
                if issue.suggestion
                else ""
            )
            parts.append(
                f'<li class="{issue.severity}">'
                f'<span class="badge">{issue.severity.upper()}</span> '
                f"<strong>{html.escape(issue.message)}</strong> "
                f"<code>{html.escape(issue.file)}</code>"
                f"<p>{html.escape(issue.description)}</p>{suggestion}</li>"
            )
        parts.append("</ul>")
    parts.append("</section>")
    return parts


def _severity_label(severity: str) -> str:
    color = SEVERITY_COLORS.get(severity, "white")
    return click.style(severity.upper().ljust(8), fg=color, bold=True)


def _styled_score(score: int) -> str:
    if score >= 90:
        return click.style(str(score), fg="green", bold=True)
    if score >= 70:
        return click.style(str(score), fg="yellow", bold=True)
    if score >= 50:
        return click.style(str(score), fg="red")
    return click.style(str(score), fg="red", bold=True)


def _score_band(score: int) -> str:
    if score >= 90:
        return "good"
    if score >= 70:
        return "fair"
    return "poor"


def _compliance_status(score: int) -> str:
    if score >= 90:
        return "compliant"
    if score >= 70:
        return "needs attention"
    return "non-compliant"


_HTML_STYLE = """
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
       max-width: 960px; margin: 2rem auto; color: #1f2328; }
h1 { border-bottom: 1px solid #d0d7de; padding-bottom: .5rem; }
.meta { color: #656d76; }
.summary { display: flex; gap: 2rem; align-items: center; }
.score { font-size: 3rem; font-weight: 700; }
.score span { font-size: 1rem; color: #656d76; }
.score.good { color: #1a7f37; } .score.fair { color: #9a6700; } .score.poor { color: #cf222e; }
table th { text-align: left; padding-right: 1rem; }
.category ul { list-style: none; padding-left: 0; }
.category li { border-left: 4px solid #d0d7de; margin: .5rem 0; padding: .25rem .75rem; }
.category li p { margin: .25rem 0; color: #424a53; }
li.critical { border-color: #cf222e; } li.high { border-color: #bc4c00; }
li.medium { border-color: #0969da; } li.low { border-color: #8c959f; }
.badge { font-size: .75rem; font-weight: 700; }
.suggestion { font-style: italic; }
.aborted { color: #cf222e; } .empty { color: #656d76; }
""".strip()
