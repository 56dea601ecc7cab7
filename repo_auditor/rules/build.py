"""Build tooling configuration check."""

from __future__ import annotations

from collections.abc import Iterator

from repo_auditor.rules.base import AuditContext, Finding


class BuildCheck:
    """Checks for build orchestration, type-checker and transpiler configs."""

    check_id = "build"
    category = "Build Configuration"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        target = context.target

        if target.find_config(lambda path: path == "turbo.json") is None:
            yield Finding(
                severity="high",
                message="Missing turbo.json configuration",
                description="Monorepo should use Turborepo for build orchestration",
                file="turbo.json",
            )

        if target.find_config(lambda path: path == "tsconfig.json") is None:
            yield Finding(
                severity="medium",
                message="Missing TypeScript configuration",
                description=(
                    "Should have TypeScript configuration for better development experience"
                ),
                file="tsconfig.json",
            )

        if target.find_config(lambda path: "babel.config" in path) is None:
            yield Finding(
                severity="medium",
                message="Missing Babel configuration",
                description="Should have Babel configuration for consistent transpilation",
                file="babel.config.json",
            )
