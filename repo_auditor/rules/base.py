"""Base check protocol, finding model and manifest helpers."""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from repo_auditor.config import AuditRulesConfig
from repo_auditor.models import FileRecord, RepositoryDataset

Severity = Literal["critical", "high", "medium", "low", "info"]

SEVERITY_ORDER: tuple[str, ...] = ("critical", "high", "medium", "low", "info")


class MalformedDataError(ValueError):
    """Raised when a fetched manifest cannot be parsed as a JSON object."""


@dataclass(frozen=True, slots=True)
class Finding:
    """A single compliance deviation emitted by a check."""

    severity: Severity
    message: str
    description: str
    file: str
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "severity": self.severity,
            "message": self.message,
            "description": self.description,
            "file": self.file,
        }
        if self.suggestion is not None:
            payload["suggestion"] = self.suggestion
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Finding:
        severity = payload["severity"]
        if severity not in SEVERITY_ORDER:
            raise ValueError(f"Unknown severity: {severity}")
        return cls(
            severity=severity,
            message=payload["message"],
            description=payload["description"],
            file=payload["file"],
            suggestion=payload.get("suggestion"),
        )


@dataclass(frozen=True, slots=True)
class AuditContext:
    """Everything a check may inspect."""

    target: RepositoryDataset
    boilerplate: tuple[FileRecord, ...] = ()
    common_config: tuple[FileRecord, ...] = ()
    rules: AuditRulesConfig = field(default_factory=AuditRulesConfig)

    def boilerplate_manifest(self) -> FileRecord | None:
        for record in self.boilerplate:
            if record.path.endswith("package.json"):
                return record
        return None


class Check(Protocol):
    """Protocol for one audit category check."""

    check_id: str
    category: str

    def evaluate(self, context: AuditContext) -> Iterator[Finding]:
        """Yield findings in order; may raise MalformedDataError part way."""


def load_manifest(record: FileRecord) -> dict[str, Any]:
    """Parse a package manifest, raising MalformedDataError if it is unusable."""
    try:
        loaded = json.loads(record.content)
    except json.JSONDecodeError as exc:
        raise MalformedDataError(f"{record.path} is not valid JSON: {exc}") from exc
    if not isinstance(loaded, dict):
        raise MalformedDataError(f"{record.path} must contain a JSON object")
    return loaded


def section(manifest: dict[str, Any], key: str) -> dict[str, Any]:
    """Return a mapping-valued manifest field, or an empty mapping."""
    value = manifest.get(key)
    return value if isinstance(value, dict) else {}


def is_present(value: Any) -> bool:
    """Null, false, zero and empty strings count as absent; empty objects do not."""
    return value is not None and value is not False and value != "" and value != 0
