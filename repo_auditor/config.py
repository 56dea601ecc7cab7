"""Configuration loading for repo-auditor."""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAMES = (".repo-auditor.toml", "repo-auditor.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("repo_auditor", "repo-auditor")
TOKEN_ENV_VAR = "GITHUB_TOKEN"

OUTPUT_FORMATS = ("table", "json", "markdown", "html", "executive")
DEFAULT_API_URL = "https://api.github.com"

DEFAULT_INCLUDE = [
    "*.json",
    "*.js",
    "*.cjs",
    "*.mjs",
    "*.ts",
    ".eslintrc*",
    ".prettierrc*",
    "*.md",
    "config/**",
]
DEFAULT_EXCLUDE = [
    "node_modules/**",
    "**/node_modules/**",
    "coverage/**",
    "dist/**",
    "build/**",
    "*.log",
    "*.lock",
    "yarn.lock",
    "package-lock.json",
]
DEFAULT_CONFIG_PATTERNS = [
    "babel.config.*",
    "jest.config.*",
    "webpack.config.*",
    "tsconfig.json",
    "jsconfig.json",
    "eslint.config.*",
    ".eslintrc*",
    "prettier.config.*",
    ".prettierrc*",
    "turbo.json",
]
DEFAULT_REQUIRED_DEPENDENCIES = [
    "@dtsl/jest-config",
    "@dtsl/eslint-config",
    "@dtsl/prettier-config",
    "@dtsl/typescript-config",
]
DEFAULT_BOILERPLATE_FILES = [
    "package.json",
    "babel.config.json",
    "jest.config.js",
    "tsconfig.json",
    "turbo.json",
]


class ConfigurationError(RuntimeError):
    """Raised when a required setting such as the API token is missing."""


@dataclass(slots=True)
class RepositoryRef:
    """Coordinates of one remote repository."""

    owner: str
    repo: str
    branch: str = "main"
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner, "repo": self.repo, "branch": self.branch, "path": self.path}


@dataclass(slots=True)
class RepositoriesConfig:
    """Target and reference repositories."""

    target: RepositoryRef = field(
        default_factory=lambda: RepositoryRef(owner="DTSL", repo="dnd-editor", branch="dev")
    )
    boilerplate: RepositoryRef = field(
        default_factory=lambda: RepositoryRef(
            owner="DTSL",
            repo="backstage-templates",
            branch="main",
            path="templates/monorepo-app-boilerplate/template",
        )
    )
    common_config: RepositoryRef = field(
        default_factory=lambda: RepositoryRef(owner="DTSL", repo="fe-common-config", branch="main")
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.to_dict(),
            "boilerplate": self.boilerplate.to_dict(),
            "common_config": self.common_config.to_dict(),
        }


@dataclass(slots=True)
class ChunkingConfig:
    """File size and path eligibility limits for remote reads."""

    max_file_size: int = 50000
    max_files_per_batch: int = 10
    include: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_file_size": self.max_file_size,
            "max_files_per_batch": self.max_files_per_batch,
            "include": list(self.include),
            "exclude": list(self.exclude),
        }


@dataclass(slots=True)
class RateLimitConfig:
    """Request pacing and retry policy for the remote API."""

    requests_per_minute: int = 60
    batch_delay_seconds: float = 1.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 2.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "requests_per_minute": self.requests_per_minute,
            "batch_delay_seconds": self.batch_delay_seconds,
            "retry_attempts": self.retry_attempts,
            "retry_delay_seconds": self.retry_delay_seconds,
        }


@dataclass(slots=True)
class DiscouragedDependency:
    """A dependency that should be replaced by another package."""

    name: str
    replacement: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "replacement": self.replacement, "reason": self.reason}


@dataclass(slots=True)
class AuditRulesConfig:
    """Repository layout and dependency expectations used by the checks."""

    workspace_roots: list[str] = field(default_factory=lambda: ["apps", "packages"])
    config_dir: str = "config"
    config_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_CONFIG_PATTERNS))
    required_dependencies: list[str] = field(
        default_factory=lambda: list(DEFAULT_REQUIRED_DEPENDENCIES)
    )
    discouraged_dependencies: list[DiscouragedDependency] = field(
        default_factory=lambda: [
            DiscouragedDependency(
                name="lodash",
                replacement="lodash-es",
                reason="lodash-es provides better tree-shaking support",
            )
        ]
    )
    boilerplate_files: list[str] = field(default_factory=lambda: list(DEFAULT_BOILERPLATE_FILES))
    common_config_suffixes: list[str] = field(default_factory=lambda: [".json", ".js"])

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace_roots": list(self.workspace_roots),
            "config_dir": self.config_dir,
            "config_patterns": list(self.config_patterns),
            "required_dependencies": list(self.required_dependencies),
            "discouraged_dependencies": [
                item.to_dict() for item in self.discouraged_dependencies
            ],
            "boilerplate_files": list(self.boilerplate_files),
            "common_config_suffixes": list(self.common_config_suffixes),
        }


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "table"
    api_url: str = DEFAULT_API_URL
    repositories: RepositoriesConfig = field(default_factory=RepositoriesConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    rate_limiting: RateLimitConfig = field(default_factory=RateLimitConfig)
    audit: AuditRulesConfig = field(default_factory=AuditRulesConfig)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "api_url": self.api_url,
            "repositories": self.repositories.to_dict(),
            "chunking": self.chunking.to_dict(),
            "rate_limiting": self.rate_limiting.to_dict(),
            "audit": self.audit.to_dict(),
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from explicit path or directory-local files with precedence."""
    repo = repo.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (repo / config_path)
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = repo / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = repo / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def resolve_token(explicit: str | None, environ: dict[str, str] | None = None) -> str:
    """Return the API token from the option or environment, else fail."""
    env = os.environ if environ is None else environ
    token = explicit or env.get(TOKEN_ENV_VAR)
    if not token:
        raise ConfigurationError(
            f"GitHub token is required. Use --token option or set {TOKEN_ENV_VAR} "
            "environment variable."
        )
    return token


def default_config_template() -> str:
    """Return a starter config template users can customize."""
    return "\n".join(
        [
            'format = "table"',
            f'api_url = "{DEFAULT_API_URL}"',
            "",
            "[repositories.target]",
            'owner = "DTSL"',
            'repo = "dnd-editor"',
            'branch = "dev"',
            "",
            "[repositories.boilerplate]",
            'owner = "DTSL"',
            'repo = "backstage-templates"',
            'branch = "main"',
            'path = "templates/monorepo-app-boilerplate/template"',
            "",
            "[repositories.common_config]",
            'owner = "DTSL"',
            'repo = "fe-common-config"',
            'branch = "main"',
            "",
            "[chunking]",
            "max_file_size = 50000",
            "max_files_per_batch = 10",
            f"include = {_toml_string_list(DEFAULT_INCLUDE)}",
            f"exclude = {_toml_string_list(DEFAULT_EXCLUDE)}",
            "",
            "[rate_limiting]",
            "requests_per_minute = 60",
            "batch_delay_seconds = 1.0",
            "retry_attempts = 3",
            "retry_delay_seconds = 2.0",
            "",
            "[audit]",
            'workspace_roots = ["apps", "packages"]',
            'config_dir = "config"',
            "required_dependencies = [",
            '  "@dtsl/jest-config",',
            '  "@dtsl/eslint-config",',
            '  "@dtsl/prettier-config",',
            '  "@dtsl/typescript-config",',
            "]",
            "discouraged_dependencies = [",
            (
                '  { name = "lodash", replacement = "lodash-es", '
                'reason = "lodash-es provides better tree-shaking support" },'
            ),
            "]",
            "",
        ]
    )


def _toml_string_list(items: list[str]) -> str:
    return json.dumps(items)


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    repositories_mapping = _as_table(mapping.get("repositories"), "repositories")
    chunking_mapping = _as_table(mapping.get("chunking"), "chunking")
    rate_mapping = _as_table(mapping.get("rate_limiting"), "rate_limiting")
    audit_mapping = _as_table(mapping.get("audit"), "audit")

    return AppConfig(
        format=_as_choice(mapping.get("format", "table"), set(OUTPUT_FORMATS), "format"),
        api_url=_as_str(mapping.get("api_url", DEFAULT_API_URL), "api_url").rstrip("/"),
        repositories=_parse_repositories_config(repositories_mapping),
        chunking=_parse_chunking_config(chunking_mapping),
        rate_limiting=_parse_rate_limit_config(rate_mapping),
        audit=_parse_audit_config(audit_mapping),
        source=source,
    )


def _parse_repositories_config(value: dict[str, Any]) -> RepositoriesConfig:
    defaults = RepositoriesConfig()
    return RepositoriesConfig(
        target=_parse_repository_ref(
            value.get("target"), defaults.target, "repositories.target"
        ),
        boilerplate=_parse_repository_ref(
            value.get("boilerplate"), defaults.boilerplate, "repositories.boilerplate"
        ),
        common_config=_parse_repository_ref(
            value.get("common_config"), defaults.common_config, "repositories.common_config"
        ),
    )


def _parse_repository_ref(value: Any, default: RepositoryRef, field_name: str) -> RepositoryRef:
    table = _as_table(value, field_name)
    owner = _as_str(table.get("owner", default.owner), f"{field_name}.owner")
    repo = _as_str(table.get("repo", default.repo), f"{field_name}.repo")
    # branch and path belong to the default repository; a different repository starts fresh
    base = default if (owner, repo) == (default.owner, default.repo) else RepositoryRef(owner, repo)
    return RepositoryRef(
        owner=owner,
        repo=repo,
        branch=_as_str(table.get("branch", base.branch), f"{field_name}.branch"),
        path=_as_str(table.get("path", base.path), f"{field_name}.path").strip("/"),
    )


def _parse_chunking_config(value: dict[str, Any]) -> ChunkingConfig:
    max_file_size = _as_int(value.get("max_file_size", 50000), "chunking.max_file_size")
    if max_file_size <= 0:
        raise ValueError("chunking.max_file_size must be > 0")
    per_batch = _as_int(value.get("max_files_per_batch", 10), "chunking.max_files_per_batch")
    if per_batch <= 0:
        raise ValueError("chunking.max_files_per_batch must be > 0")
    include = value.get("include")
    exclude = value.get("exclude")
    return ChunkingConfig(
        max_file_size=max_file_size,
        max_files_per_batch=per_batch,
        include=_as_str_list(include) if include is not None else list(DEFAULT_INCLUDE),
        exclude=_as_str_list(exclude) if exclude is not None else list(DEFAULT_EXCLUDE),
    )


def _parse_rate_limit_config(value: dict[str, Any]) -> RateLimitConfig:
    rpm = _as_int(value.get("requests_per_minute", 60), "rate_limiting.requests_per_minute")
    if rpm < 0:
        raise ValueError("rate_limiting.requests_per_minute must be >= 0")
    attempts = _as_int(value.get("retry_attempts", 3), "rate_limiting.retry_attempts")
    if attempts < 0:
        raise ValueError("rate_limiting.retry_attempts must be >= 0")
    batch_delay = _as_float(
        value.get("batch_delay_seconds", 1.0), "rate_limiting.batch_delay_seconds"
    )
    retry_delay = _as_float(
        value.get("retry_delay_seconds", 2.0), "rate_limiting.retry_delay_seconds"
    )
    if batch_delay < 0 or retry_delay < 0:
        raise ValueError("rate_limiting delays must be >= 0")
    return RateLimitConfig(
        requests_per_minute=rpm,
        batch_delay_seconds=batch_delay,
        retry_attempts=attempts,
        retry_delay_seconds=retry_delay,
    )


def _parse_audit_config(value: dict[str, Any]) -> AuditRulesConfig:
    defaults = AuditRulesConfig()
    discouraged_raw = value.get("discouraged_dependencies")
    if discouraged_raw is None:
        discouraged = defaults.discouraged_dependencies
    else:
        discouraged = _parse_discouraged_list(discouraged_raw, "audit.discouraged_dependencies")

    return AuditRulesConfig(
        workspace_roots=_str_list_or_default(
            value.get("workspace_roots"), defaults.workspace_roots
        ),
        config_dir=_as_str(value.get("config_dir", defaults.config_dir), "audit.config_dir").strip(
            "/"
        ),
        config_patterns=_str_list_or_default(
            value.get("config_patterns"), defaults.config_patterns
        ),
        required_dependencies=_str_list_or_default(
            value.get("required_dependencies"), defaults.required_dependencies
        ),
        discouraged_dependencies=discouraged,
        boilerplate_files=_str_list_or_default(
            value.get("boilerplate_files"), defaults.boilerplate_files
        ),
        common_config_suffixes=_str_list_or_default(
            value.get("common_config_suffixes"), defaults.common_config_suffixes
        ),
    )


def _parse_discouraged_list(value: Any, field_name: str) -> list[DiscouragedDependency]:
    items = _as_table_list(value, field_name)
    parsed: list[DiscouragedDependency] = []
    for item in items:
        name = _as_str(item.get("name"), f"{field_name}.name")
        replacement = _as_str(item.get("replacement"), f"{field_name}.replacement")
        reason = item.get("reason", f"Prefer {replacement} over {name}")
        parsed.append(
            DiscouragedDependency(
                name=name,
                replacement=replacement,
                reason=_as_str(reason, f"{field_name}.reason"),
            )
        )
    return parsed


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a table/object")
    return value


def _as_table_list(value: Any, field_name: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of tables")
    output: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            raise ValueError(f"{field_name} must be a list of tables")
        output.append(item)
    return output


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("Expected a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError("Expected a list of strings")
        items.append(item)
    return items


def _str_list_or_default(value: Any, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    return _as_str_list(value)


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).lower()
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return value


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{field_name} must be an integer")
    return raw


def _as_float(raw: Any, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    return float(raw)
