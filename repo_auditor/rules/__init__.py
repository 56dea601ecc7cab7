"""Checks package."""

from dataclasses import dataclass

from repo_auditor.rules.base import (
    SEVERITY_ORDER,
    AuditContext,
    Check,
    Finding,
    MalformedDataError,
    load_manifest,
)
from repo_auditor.rules.build import BuildCheck
from repo_auditor.rules.code_quality import CodeQualityCheck
from repo_auditor.rules.dependencies import DependenciesCheck
from repo_auditor.rules.documentation import DocumentationCheck
from repo_auditor.rules.structure import StructureCheck
from repo_auditor.rules.testing import TestingCheck

_CHECK_CLASSES: tuple[type, ...] = (
    StructureCheck,
    DependenciesCheck,
    BuildCheck,
    CodeQualityCheck,
    TestingCheck,
    DocumentationCheck,
)


@dataclass(frozen=True, slots=True)
class CheckInfo:
    """Check metadata for listing."""

    check_id: str
    name: str
    category: str
    description: str


def default_checks() -> list[Check]:
    """Return the six category checks in evaluation order."""
    return [check_cls() for check_cls in _CHECK_CLASSES]


def list_check_info() -> list[CheckInfo]:
    """Return metadata for every check in evaluation order."""
    return [
        CheckInfo(
            check_id=check_cls.check_id,
            name=check_cls.__name__,
            category=check_cls.category,
            description=(check_cls.__doc__ or "").strip(),
        )
        for check_cls in _CHECK_CLASSES
    ]


__all__ = [
    "SEVERITY_ORDER",
    "AuditContext",
    "Check",
    "CheckInfo",
    "Finding",
    "MalformedDataError",
    "default_checks",
    "list_check_info",
    "load_manifest",
]
