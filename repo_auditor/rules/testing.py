"""Test runner setup check."""

from __future__ import annotations

from collections.abc import Iterator

from repo_auditor.rules.base import AuditContext, Finding, is_present, load_manifest, section


class TestingCheck:
    """Checks for a Jest config and the test scripts CI relies on."""

    __test__ = False

    check_id = "testing"
    category = "Testing Setup"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        target = context.target

        if target.find_config(lambda path: "jest.config" in path) is None:
            yield Finding(
                severity="high",
                message="Missing Jest configuration",
                description="Should have Jest configuration for testing",
                file="jest.config.js",
            )

        root = target.root_manifest
        if root is None:
            return

        scripts = section(load_manifest(root), "scripts")
        if not is_present(scripts.get("test")):
            yield Finding(
                severity="medium",
                message="Missing test script",
                description="Should have test script in package.json",
                file="package.json",
            )

        if not is_present(scripts.get("test:ci")):
            yield Finding(
                severity="low",
                message="Missing CI test script",
                description="Should have test:ci script for CI/CD pipelines",
                file="package.json",
            )
