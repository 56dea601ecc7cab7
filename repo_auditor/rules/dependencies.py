"""Required and discouraged dependency check."""

from __future__ import annotations

from collections.abc import Iterator

from repo_auditor.rules.base import AuditContext, Finding, is_present, load_manifest, section


class DependenciesCheck:
    """Checks the root manifest pulls in shared configs and avoids discouraged packages."""

    check_id = "dependencies"
    category = "Dependencies & Package Management"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        root = context.target.root_manifest
        if root is None:
            return

        manifest = load_manifest(root)
        dependencies = section(manifest, "dependencies")
        dev_dependencies = section(manifest, "devDependencies")

        for name in context.rules.required_dependencies:
            if is_present(dev_dependencies.get(name)) or is_present(dependencies.get(name)):
                continue
            yield Finding(
                severity="medium",
                message=f"Missing common dependency: {name}",
                description="Should use the shared common configurations for consistency",
                file="package.json",
                suggestion=f"Add {name} to devDependencies",
            )

        for item in context.rules.discouraged_dependencies:
            if is_present(dependencies.get(item.name)) or is_present(
                dev_dependencies.get(item.name)
            ):
                yield Finding(
                    severity="low",
                    message=f"Consider using {item.replacement} instead of {item.name}",
                    description=item.reason,
                    file="package.json",
                )
