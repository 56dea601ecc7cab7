"""CLI entrypoint for repo-auditor."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import click
import typer

from repo_auditor import __version__
from repo_auditor.collector import RepositoryCollector, compare_datasets
from repo_auditor.config import (
    OUTPUT_FORMATS,
    TOKEN_ENV_VAR,
    AppConfig,
    ConfigurationError,
    default_config_template,
    load_app_config,
    resolve_token,
)
from repo_auditor.engine import AuditEngine
from repo_auditor.logging import configure_logging
from repo_auditor.output import render_report, save_report
from repo_auditor.rules import SEVERITY_ORDER, list_check_info
from repo_auditor.source import ContentSource, GitHubContentClient, SourceError

app = typer.Typer(
    name="repo-auditor",
    no_args_is_help=True,
    help="Audit repositories against shared monorepo conventions.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Root command callback."""
    _ = version


@app.command("audit")
def audit_command(
    owner: Annotated[str, typer.Option("--owner", "-o", help="Repository owner.")],
    repo: Annotated[str, typer.Option("--repo", "-r", help="Repository name.")],
    token: Annotated[
        str | None,
        typer.Option("--token", "-t", help=f"GitHub access token (or set {TOKEN_ENV_VAR})."),
    ] = None,
    ref: Annotated[str | None, typer.Option(help="Branch, tag or commit to audit.")] = None,
    format: Annotated[
        str | None,
        typer.Option(
            help="Output format: table|json|markdown|html|executive.", show_default="table"
        ),
    ] = None,
    output: Annotated[Path | None, typer.Option(help="Write the report to this file.")] = None,
    severity: Annotated[
        str, typer.Option(help="Minimum severity to display: critical|high|medium|low|info.")
    ] = "low",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    log_file: Annotated[Path | None, typer.Option(help="Also write logs to this file.")] = None,
) -> None:
    """Audit a repository against the configured conventions."""
    configure_logging(verbose=verbose, log_file=log_file)
    app_config = _load_config_or_raise(config_file)
    output_format = _choice_or_default(
        value=format,
        default=app_config.format,
        allowed=set(OUTPUT_FORMATS),
        field_name="--format",
    )
    min_severity = _choice_or_default(
        value=severity,
        default="low",
        allowed=set(SEVERITY_ORDER),
        field_name="--severity",
    )
    api_token = _resolve_token_or_exit(token)

    collector = RepositoryCollector(_build_source(api_token, app_config), app_config)
    engine = AuditEngine(app_config)
    try:
        report = engine.audit_repository(collector, owner, repo, ref)
    except SourceError as exc:
        typer.echo(f"Audit failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        f"Audit completed! Found {report.summary.total_issues} issues.",
        err=True,
    )
    text = render_report(report, output_format, min_severity=min_severity)
    if output is None:
        typer.echo(text)
        return

    save_report(click.unstyle(text), output)
    typer.echo(f"Report saved to {output}")


@app.command("compare")
def compare_command(
    owner: Annotated[str, typer.Option(help="First repository owner.")],
    repo: Annotated[str, typer.Option(help="First repository name.")],
    other_owner: Annotated[str, typer.Option(help="Second repository owner.")],
    other_repo: Annotated[str, typer.Option(help="Second repository name.")],
    token: Annotated[
        str | None,
        typer.Option("--token", "-t", help=f"GitHub access token (or set {TOKEN_ENV_VAR})."),
    ] = None,
    ref: Annotated[str | None, typer.Option(help="Ref for the first repository.")] = None,
    other_ref: Annotated[str | None, typer.Option(help="Ref for the second repository.")] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Compare the manifest and config files collected from two repositories."""
    configure_logging(verbose=verbose)
    app_config = _load_config_or_raise(config_file)
    api_token = _resolve_token_or_exit(token)

    collector = RepositoryCollector(_build_source(api_token, app_config), app_config)
    try:
        first = collector.collect(owner, repo, ref)
        second = collector.collect(other_owner, other_repo, other_ref)
    except SourceError as exc:
        typer.echo(f"Comparison failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(json.dumps(compare_datasets(first, second), indent=2, sort_keys=True))


@app.command("checks")
def checks_command(
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """List the audit category checks in evaluation order."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    check_info = list_check_info()
    if output_format == "json":
        payload = {
            "checks": [
                {
                    "check_id": item.check_id,
                    "name": item.name,
                    "category": item.category,
                    "description": item.description,
                }
                for item in check_info
            ]
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = ["Audit checks:"]
    for item in check_info:
        lines.append(f"- {item.check_id} [{item.category}] - {item.description}")
    typer.echo("\n".join(lines))


@app.command("config")
def config_command(
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(config_file)
    payload = app_config.to_dict()
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    repositories = app_config.repositories
    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- api_url: {payload['api_url']}",
        f"- target: {repositories.target.owner}/{repositories.target.repo}"
        f"@{repositories.target.branch}",
        f"- boilerplate: {repositories.boilerplate.owner}/{repositories.boilerplate.repo}"
        f"/{repositories.boilerplate.path}",
        f"- common_config: {repositories.common_config.owner}/{repositories.common_config.repo}",
        f"- chunking: {payload['chunking']}",
        f"- rate_limiting: {payload['rate_limiting']}",
        f"- required_dependencies: {payload['audit']['required_dependencies']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".repo-auditor.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("config-validate")
def config_validate_command(
    config_file: Annotated[
        Path,
        typer.Option("--config", help="Path to config TOML file to validate."),
    ] = Path(".repo-auditor.toml"),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Validate a config file."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(config_file)
    payload = {
        "ok": True,
        "source": app_config.source,
        "check_ids": [item.check_id for item in list_check_info()],
    }
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo("\n".join(["Config is valid.", f"- source: {payload['source']}"]))


@app.command("setup")
def setup_command() -> None:
    """Print environment requirements and usage examples."""
    lines = [
        click.style("Setting up repo-auditor...", fg="blue"),
        "",
        click.style("Required environment variables:", fg="yellow"),
        f"- {TOKEN_ENV_VAR}: a GitHub personal access token with repository read access",
        "",
        click.style("Usage examples:", fg="yellow"),
        "# Audit a repository",
        "repo-auditor audit --owner DTSL --repo dnd-editor",
        "",
        "# Generate a markdown report",
        "repo-auditor audit --owner DTSL --repo dnd-editor --format markdown "
        "--output audit-report.md",
        "",
        "# Show only high and critical findings",
        "repo-auditor audit --owner DTSL --repo dnd-editor --severity high",
        "",
        "# Scaffold a config file",
        "repo-auditor config-init",
        "",
        click.style("Setup complete! You can now run audits.", fg="green"),
    ]
    typer.echo("\n".join(lines))


def main() -> None:
    """Console script entrypoint."""
    app()


def _build_source(token: str, app_config: AppConfig) -> ContentSource:
    return GitHubContentClient(
        token,
        api_url=app_config.api_url,
        chunking=app_config.chunking,
        rate_limiting=app_config.rate_limiting,
    )


def _resolve_token_or_exit(token: str | None) -> str:
    try:
        return resolve_token(token)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


def _load_config_or_raise(config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(Path.cwd(), config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _choice_or_default(
    *,
    value: str | None,
    default: str,
    allowed: set[str],
    field_name: str,
) -> str:
    resolved = (value or default).lower()
    if resolved not in allowed:
        choices = ", ".join(sorted(allowed))
        raise typer.BadParameter(f"{field_name} must be one of: {choices}", param_hint=field_name)
    return resolved
