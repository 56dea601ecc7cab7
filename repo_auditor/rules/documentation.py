"""Documentation placeholder check."""

from __future__ import annotations

from collections.abc import Iterator

from repo_auditor.rules.base import AuditContext, Finding


class DocumentationCheck:
    """Placeholder: README and docs presence is not inspected yet."""

    check_id = "documentation"
    category = "Documentation"

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        _ = context
        # TODO: inspect README.md and docs/ once the expected documentation layout is agreed.
        yield Finding(
            severity="low",
            message="Documentation audit not fully implemented",
            description="README and documentation checks need to be implemented",
            file="various",
        )
