"""Lint, format and pre-commit tooling check."""

from __future__ import annotations

from collections.abc import Iterator

from repo_auditor.rules.base import AuditContext, Finding, is_present, load_manifest, section

GIT_HOOK_PACKAGE = "husky"
STAGED_LINT_PACKAGE = "lint-staged"


class CodeQualityCheck:
    """Checks for linter and formatter configs plus git-hook dev dependencies."""

    check_id = "code_quality"
    category = "Code Quality & Standards"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        target = context.target

        if target.find_config(_is_eslint_config) is None:
            yield Finding(
                severity="high",
                message="Missing ESLint configuration",
                description="Should have ESLint configuration for code quality",
                file="eslint.config.js",
            )

        if target.find_config(_is_prettier_config) is None:
            yield Finding(
                severity="medium",
                message="Missing Prettier configuration",
                description="Should have Prettier configuration for consistent formatting",
                file="prettier.config.js",
            )

        root = target.root_manifest
        if root is None:
            return

        dev_dependencies = section(load_manifest(root), "devDependencies")
        if not is_present(dev_dependencies.get(GIT_HOOK_PACKAGE)):
            yield Finding(
                severity="medium",
                message="Missing Husky for git hooks",
                description="Should use Husky for pre-commit quality checks",
                file="package.json",
            )

        if not is_present(dev_dependencies.get(STAGED_LINT_PACKAGE)):
            yield Finding(
                severity="medium",
                message="Missing lint-staged",
                description="Should use lint-staged for efficient pre-commit linting",
                file="package.json",
            )


def _is_eslint_config(path: str) -> bool:
    return "eslint.config" in path or ".eslintrc" in path


def _is_prettier_config(path: str) -> bool:
    return "prettier.config" in path or ".prettierrc" in path
