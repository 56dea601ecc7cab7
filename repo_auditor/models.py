"""Fetched repository snapshot models."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

PACKAGE_MANIFEST = "package.json"


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One item of a remote directory listing."""

    name: str
    path: str
    type: str

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Decoded file content as returned by the content source."""

    path: str
    content: str
    size: int
    content_hash: str


@dataclass(frozen=True, slots=True)
class RepositoryMetadata:
    """Identity and bookkeeping for one collected repository."""

    owner: str
    repo: str
    fetched_at: str
    total_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "repo": self.repo,
            "fetched_at": self.fetched_at,
            "total_files": self.total_files,
        }


@dataclass(frozen=True, slots=True)
class RepositoryDataset:
    """Manifest and configuration files collected for one repository."""

    metadata: RepositoryMetadata
    package_files: tuple[FileRecord, ...] = field(default_factory=tuple)
    config_files: tuple[FileRecord, ...] = field(default_factory=tuple)

    @property
    def root_manifest(self) -> FileRecord | None:
        return self.find_package(PACKAGE_MANIFEST)

    def find_package(self, path: str) -> FileRecord | None:
        for record in self.package_files:
            if record.path == path:
                return record
        return None

    def find_config(self, predicate: Callable[[str], bool]) -> FileRecord | None:
        """Return the first config file whose path satisfies ``predicate``."""
        for record in self.config_files:
            if predicate(record.path):
                return record
        return None

    def has_package_under(self, prefix: str) -> bool:
        return any(record.path.startswith(prefix) for record in self.package_files)


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with second precision and a ``Z`` suffix."""
    return datetime.now(tz=UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
