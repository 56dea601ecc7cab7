"""Repository data collection on top of a ContentSource."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from repo_auditor.config import AppConfig
from repo_auditor.logging import get_logger
from repo_auditor.models import (
    PACKAGE_MANIFEST,
    DirectoryEntry,
    FileRecord,
    RepositoryDataset,
    RepositoryMetadata,
    utc_timestamp,
)
from repo_auditor.source import ContentSource, NotFoundError, SourceError, matches_any

logger = get_logger("collector")


class RepositoryCollector:
    """Assembles manifest and configuration snapshots for audits.

    All reads go through ``source`` one at a time. File fetches are grouped
    into batches of ``chunking.max_files_per_batch`` separated by
    ``rate_limiting.batch_delay_seconds``, and the same delay follows the
    manifest phase and the config phase.
    """

    def __init__(
        self,
        source: ContentSource,
        config: AppConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = source
        self._config = config
        self._sleep = sleep

    def collect(self, owner: str, repo: str, ref: str | None = None) -> RepositoryDataset:
        """Fetch package manifests and config files for ``owner/repo``."""
        resolved_ref = self._resolve_ref(owner, repo, ref)
        fetched_at = utc_timestamp()
        logger.info("Fetching chunked data for %s/%s", owner, repo)

        logger.info("Fetching package manifests")
        package_files = self._collect_package_files(owner, repo, resolved_ref)
        self._pause()

        logger.info("Fetching configuration files")
        config_files = self._collect_config_files(owner, repo, resolved_ref)
        self._pause()

        total = len(package_files) + len(config_files)
        logger.info("Fetched %d files from %s/%s", total, owner, repo)
        return RepositoryDataset(
            metadata=RepositoryMetadata(
                owner=owner,
                repo=repo,
                fetched_at=fetched_at,
                total_files=total,
            ),
            package_files=tuple(package_files),
            config_files=tuple(config_files),
        )

    def fetch_boilerplate_reference(self) -> list[FileRecord]:
        """Fetch the key template files; failures are logged and skipped."""
        ref = self._config.repositories.boilerplate
        records: list[FileRecord] = []
        for filename in self._config.audit.boilerplate_files:
            path = f"{ref.path}/{filename}" if ref.path else filename
            try:
                record = self._source.read_file(ref.owner, ref.repo, path, ref.branch)
            except SourceError as exc:
                logger.warning("Skipping boilerplate file %s: %s", path, exc)
                continue
            if record is not None:
                records.append(record)
        return records

    def fetch_common_config_reference(self) -> list[FileRecord]:
        """Fetch root-level JSON/script files of the common-config repository."""
        ref = self._config.repositories.common_config
        suffixes = tuple(self._config.audit.common_config_suffixes)
        try:
            entries = self._source.list_directory(ref.owner, ref.repo, "", ref.branch)
        except SourceError as exc:
            logger.warning("Unable to list common config repository: %s", exc)
            return []

        records: list[FileRecord] = []
        for entry in entries:
            if not entry.is_file or not entry.name.endswith(suffixes):
                continue
            try:
                record = self._source.read_file(ref.owner, ref.repo, entry.path, ref.branch)
            except SourceError as exc:
                logger.warning("Skipping common config file %s: %s", entry.path, exc)
                continue
            if record is not None:
                records.append(record)
        return records

    def _collect_package_files(self, owner: str, repo: str, ref: str | None) -> list[FileRecord]:
        paths = [PACKAGE_MANIFEST]
        for root in self._config.audit.workspace_roots:
            for entry in self._list_optional(owner, repo, root, ref):
                if entry.is_dir:
                    paths.append(f"{entry.path}/{PACKAGE_MANIFEST}")
        return self._fetch_batched(owner, repo, paths, ref)

    def _collect_config_files(self, owner: str, repo: str, ref: str | None) -> list[FileRecord]:
        patterns = self._config.audit.config_patterns
        paths = [
            entry.path
            for entry in self._source.list_directory(owner, repo, "", ref)
            if entry.is_file and matches_any(entry.name, patterns)
        ]
        config_dir = self._config.audit.config_dir
        if config_dir:
            paths.extend(
                entry.path
                for entry in self._list_optional(owner, repo, config_dir, ref)
                if entry.is_file
            )
        return self._fetch_batched(owner, repo, paths, ref)

    def _list_optional(
        self, owner: str, repo: str, path: str, ref: str | None
    ) -> list[DirectoryEntry]:
        try:
            return self._source.list_directory(owner, repo, path, ref)
        except NotFoundError:
            logger.debug("Directory %s not present in %s/%s", path, owner, repo)
            return []

    def _fetch_batched(
        self, owner: str, repo: str, paths: list[str], ref: str | None
    ) -> list[FileRecord]:
        batch_size = self._config.chunking.max_files_per_batch
        records: list[FileRecord] = []
        for index, path in enumerate(paths):
            if index and index % batch_size == 0:
                self._pause()
            try:
                record = self._source.read_file(owner, repo, path, ref)
            except NotFoundError:
                logger.debug("File %s not present in %s/%s", path, owner, repo)
                continue
            if record is not None:
                records.append(record)
        return records

    def _pause(self) -> None:
        delay = self._config.rate_limiting.batch_delay_seconds
        if delay > 0:
            self._sleep(delay)

    def _resolve_ref(self, owner: str, repo: str, ref: str | None) -> str | None:
        if ref:
            return ref
        target = self._config.repositories.target
        if (owner, repo) == (target.owner, target.repo):
            return target.branch
        return None


def compare_datasets(first: RepositoryDataset, second: RepositoryDataset) -> dict[str, Any]:
    """Summarize which manifest and config files two repositories share."""
    first_paths = _dataset_paths(first)
    second_paths = _dataset_paths(second)
    return {
        "repository1": first.metadata.to_dict(),
        "repository2": second.metadata.to_dict(),
        "comparison": {
            "package_file_count": {
                "repo1": len(first.package_files),
                "repo2": len(second.package_files),
            },
            "config_file_count": {
                "repo1": len(first.config_files),
                "repo2": len(second.config_files),
            },
            "only_in_repo1": sorted(first_paths - second_paths),
            "only_in_repo2": sorted(second_paths - first_paths),
            "shared": sorted(first_paths & second_paths),
        },
    }


def _dataset_paths(dataset: RepositoryDataset) -> set[str]:
    records = (*dataset.package_files, *dataset.config_files)
    return {record.path for record in records}
