"""Tests for repository data collection."""

from __future__ import annotations

import json

import pytest

from repo_auditor.collector import RepositoryCollector, compare_datasets
from repo_auditor.config import AppConfig, ChunkingConfig, RateLimitConfig
from repo_auditor.source import NotFoundError, SourceError, TransientError
from tests.helpers_source import InMemorySource, compliant_repo_files, make_dataset


def _config(*, batch: int = 10, delay: float = 0.0) -> AppConfig:
    return AppConfig(
        chunking=ChunkingConfig(max_files_per_batch=batch),
        rate_limiting=RateLimitConfig(batch_delay_seconds=delay),
    )


def test_collect_gathers_workspace_manifests_and_config_files() -> None:
    files = compliant_repo_files()
    files["config/jest/setup.js"] = "module.exports = {}"
    files["docs/guide.md"] = "# guide"
    source = InMemorySource({("acme", "web"): files})

    dataset = RepositoryCollector(source, _config()).collect("acme", "web")

    assert [record.path for record in dataset.package_files] == [
        "package.json",
        "apps/web/package.json",
        "packages/ui/package.json",
    ]
    config_paths = [record.path for record in dataset.config_files]
    assert "turbo.json" in config_paths
    assert "config/jest" not in config_paths
    assert "README.md" not in config_paths
    assert "package.json" not in config_paths
    assert dataset.metadata.total_files == len(dataset.package_files) + len(config_paths)
    assert dataset.metadata.fetched_at.endswith("Z")


def test_collect_reads_files_in_config_directory() -> None:
    source = InMemorySource(
        {
            ("acme", "web"): {
                "package.json": "{}",
                "config/webpack.common.js": "module.exports = {}",
                "config/env/dev.json": "{}",
            }
        }
    )

    dataset = RepositoryCollector(source, _config()).collect("acme", "web")

    assert [record.path for record in dataset.config_files] == ["config/webpack.common.js"]


def test_collect_tolerates_missing_root_manifest_and_workspaces() -> None:
    source = InMemorySource({("acme", "web"): {"turbo.json": "{}"}})

    dataset = RepositoryCollector(source, _config()).collect("acme", "web")

    assert dataset.package_files == ()
    assert dataset.root_manifest is None
    assert [record.path for record in dataset.config_files] == ["turbo.json"]


def test_collect_fails_when_repository_is_missing() -> None:
    collector = RepositoryCollector(InMemorySource(), _config())
    with pytest.raises(NotFoundError):
        collector.collect("acme", "missing")


def test_collect_propagates_non_missing_errors() -> None:
    source = InMemorySource(
        {("acme", "web"): compliant_repo_files()},
        failures={"turbo.json": TransientError("rate limited")},
    )
    with pytest.raises(TransientError):
        RepositoryCollector(source, _config()).collect("acme", "web")


def test_collect_pauses_between_batches_and_phases() -> None:
    files = {"package.json": "{}"}
    for index in range(5):
        files[f"packages/pkg{index}/package.json"] = "{}"
    source = InMemorySource({("acme", "web"): files})
    sleeps: list[float] = []

    RepositoryCollector(source, _config(batch=2, delay=0.5), sleep=sleeps.append).collect(
        "acme", "web"
    )

    # six manifests in batches of two, then one pause after each phase
    assert sleeps == [0.5, 0.5, 0.5, 0.5]


def test_collect_uses_target_branch_only_for_configured_target() -> None:
    config = _config()
    target = config.repositories.target
    source = InMemorySource(
        {
            (target.owner, target.repo): {"package.json": "{}"},
            ("acme", "web"): {"package.json": "{}"},
        }
    )
    collector = RepositoryCollector(source, config)

    collector.collect(target.owner, target.repo)
    collector.collect("acme", "web")
    collector.collect("acme", "web", ref="feature/x")

    refs = {(call[2], call[4]) for call in source.calls}
    assert (target.repo, target.branch) in refs
    assert ("web", None) in refs
    assert ("web", "feature/x") in refs


def test_boilerplate_reference_skips_unavailable_files() -> None:
    config = _config()
    boilerplate = config.repositories.boilerplate
    source = InMemorySource(
        {
            (boilerplate.owner, boilerplate.repo): {
                f"{boilerplate.path}/package.json": json.dumps({"workspaces": ["apps/*"]}),
                f"{boilerplate.path}/turbo.json": "{}",
            }
        },
        failures={f"{boilerplate.path}/tsconfig.json": SourceError("HTTP 500")},
    )

    records = RepositoryCollector(source, config).fetch_boilerplate_reference()

    assert [record.path for record in records] == [
        f"{boilerplate.path}/package.json",
        f"{boilerplate.path}/turbo.json",
    ]
    assert {call[4] for call in source.calls} == {boilerplate.branch}


def test_common_config_reference_keeps_root_json_and_js_files() -> None:
    config = _config()
    common = config.repositories.common_config
    source = InMemorySource(
        {
            (common.owner, common.repo): {
                "eslint.js": "module.exports = {}",
                "tsconfig.base.json": "{}",
                "README.md": "# common",
                "packages/jest/index.js": "module.exports = {}",
            }
        }
    )

    records = RepositoryCollector(source, config).fetch_common_config_reference()

    assert sorted(record.path for record in records) == ["eslint.js", "tsconfig.base.json"]


def test_common_config_reference_is_empty_when_repository_unreachable() -> None:
    records = RepositoryCollector(InMemorySource(), _config()).fetch_common_config_reference()
    assert records == []


def test_compare_datasets_reports_shared_and_unique_paths() -> None:
    first = make_dataset(
        root_manifest={}, config_paths=("turbo.json", "tsconfig.json"), repo="one"
    )
    second = make_dataset(
        root_manifest={}, config_paths=("tsconfig.json", "jest.config.js"), repo="two"
    )

    comparison = compare_datasets(first, second)

    assert comparison["repository1"]["repo"] == "one"
    assert comparison["repository2"]["repo"] == "two"
    assert comparison["comparison"]["config_file_count"] == {"repo1": 2, "repo2": 2}
    assert comparison["comparison"]["only_in_repo1"] == ["turbo.json"]
    assert comparison["comparison"]["only_in_repo2"] == ["jest.config.js"]
    assert comparison["comparison"]["shared"] == ["package.json", "tsconfig.json"]
