"""Root manifest shape and monorepo layout check."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

from repo_auditor.rules.base import AuditContext, Finding, is_present, load_manifest


class StructureCheck:
    """Checks the root manifest exists and declares workspaces, package manager and engines."""

    check_id = "structure"
    category = "Repository Structure"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        root = context.target.root_manifest
        if root is None:
            yield Finding(
                severity="critical",
                message="Missing root package.json file",
                description="Every monorepo should have a root package.json file",
                file="package.json",
            )
            return

        manifest = load_manifest(root)
        boilerplate_record = context.boilerplate_manifest()
        boilerplate = load_manifest(boilerplate_record) if boilerplate_record else {}

        if not is_present(manifest.get("workspaces")):
            yield Finding(
                severity="high",
                message="Missing workspaces configuration",
                description="Monorepo should define workspaces in package.json",
                file="package.json",
                suggestion=_workspaces_suggestion(boilerplate),
            )

        if not is_present(manifest.get("packageManager")):
            yield Finding(
                severity="medium",
                message="Missing packageManager field",
                description="Should specify package manager version for consistency",
                file="package.json",
            )

        if not is_present(manifest.get("engines")):
            yield Finding(
                severity="medium",
                message="Missing engines configuration",
                description="Should specify Node.js and npm/yarn version requirements",
                file="package.json",
            )

        roots = context.rules.workspace_roots
        if not any(context.target.has_package_under(f"{root_dir}/") for root_dir in roots):
            expected = " or ".join(f"{root_dir}/" for root_dir in roots) or "workspace"
            yield Finding(
                severity="high",
                message="Missing standard monorepo structure",
                description=f"Should have {expected} directories",
                file="root",
            )


def _workspaces_suggestion(boilerplate: dict[str, Any]) -> str:
    workspaces = boilerplate.get("workspaces")
    if is_present(workspaces):
        return f"Add workspaces configuration similar to boilerplate: {json.dumps(workspaces)}"
    return "Add workspaces configuration similar to boilerplate"
