"""Remote repository content access over the GitHub contents API."""

from __future__ import annotations

import base64
import binascii
import fnmatch
import json
import time
from http.client import HTTPException
from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Any, Protocol
from urllib.error import HTTPError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from repo_auditor import __version__
from repo_auditor.config import DEFAULT_API_URL, ChunkingConfig, RateLimitConfig
from repo_auditor.logging import get_logger
from repo_auditor.models import DirectoryEntry, FileRecord

logger = get_logger("source")


class SourceError(RuntimeError):
    """Raised when the remote content service cannot satisfy a request."""


class NotFoundError(SourceError):
    """Raised when the requested path does not exist."""


class TransientError(SourceError):
    """Raised on network failures and rate limiting; safe to retry."""


class ContentSource(Protocol):
    """Directory listing and single-file retrieval for a remote repository."""

    def list_directory(
        self, owner: str, repo: str, path: str = "", ref: str | None = None
    ) -> list[DirectoryEntry]:
        """Return entries of ``path``; raise NotFoundError if it is absent."""

    def read_file(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileRecord | None:
        """Return file content, or None when the file is not eligible."""


class PathFilter:
    """Include/exclude glob filter for repository-relative paths.

    Patterns use ``fnmatch`` semantics. A leading ``**/`` also matches zero
    directories, and patterns without a ``/`` are tried against the file name
    as well as the full path.
    """

    def __init__(self, include: list[str], exclude: list[str]) -> None:
        self.include = list(include)
        self.exclude = list(exclude)

    @classmethod
    def from_config(cls, chunking: ChunkingConfig) -> PathFilter:
        return cls(include=chunking.include, exclude=chunking.exclude)

    def allows(self, path: str) -> bool:
        if matches_any(path, self.exclude):
            return False
        if not self.include:
            return True
        return matches_any(path, self.include)


def matches_any(path: str, patterns: list[str]) -> bool:
    """Return True when ``path`` matches at least one glob pattern."""
    return any(_matches(path, pattern) for pattern in patterns)


def _matches(path: str, pattern: str) -> bool:
    if fnmatch.fnmatchcase(path, pattern):
        return True
    if pattern.startswith("**/") and _matches(path, pattern[3:]):
        return True
    if "/" not in pattern:
        return fnmatch.fnmatchcase(PurePosixPath(path).name, pattern)
    return False


class RequestThrottle:
    """Spaces requests evenly to stay under a requests-per-minute quota."""

    def __init__(
        self,
        requests_per_minute: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None

    def wait(self) -> None:
        if self._interval > 0 and self._last_request is not None:
            remaining = self._last_request + self._interval - self._clock()
            if remaining > 0:
                self._sleep(remaining)
        self._last_request = self._clock()


class GitHubContentClient:
    """ContentSource backed by ``GET /repos/{owner}/{repo}/contents/{path}``."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        chunking: ChunkingConfig | None = None,
        rate_limiting: RateLimitConfig | None = None,
        opener: Callable[..., Any] = urlopen,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        timeout: float = 30.0,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._chunking = chunking or ChunkingConfig()
        self._rate_limiting = rate_limiting or RateLimitConfig()
        self._filter = PathFilter.from_config(self._chunking)
        self._opener = opener
        self._sleep = sleep
        self._timeout = timeout
        self._throttle = RequestThrottle(
            self._rate_limiting.requests_per_minute, clock=clock, sleep=sleep
        )

    def list_directory(
        self, owner: str, repo: str, path: str = "", ref: str | None = None
    ) -> list[DirectoryEntry]:
        payload = self._get_contents(owner, repo, path, ref)
        items = payload if isinstance(payload, list) else [payload]
        entries: list[DirectoryEntry] = []
        for item in items:
            if not isinstance(item, dict):
                raise SourceError(f"Unexpected listing entry for {owner}/{repo}:{path}")
            entries.append(
                DirectoryEntry(
                    name=str(item.get("name", "")),
                    path=str(item.get("path", "")),
                    type=str(item.get("type", "")),
                )
            )
        return entries

    def read_file(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileRecord | None:
        if not self._filter.allows(path):
            logger.debug("Skipping %s: excluded by path filters", path)
            return None

        payload = self._get_contents(owner, repo, path, ref)
        if not isinstance(payload, dict) or payload.get("type", "file") != "file":
            raise SourceError(f"{owner}/{repo}:{path} is not a file")

        size = int(payload.get("size", 0))
        if size > self._chunking.max_file_size:
            logger.warning("File %s exceeds max size (%d bytes), skipping", path, size)
            return None

        return FileRecord(
            path=str(payload.get("path", path)),
            content=_decode_content(payload, path),
            size=size,
            content_hash=str(payload.get("sha", "")),
        )

    def _get_contents(self, owner: str, repo: str, path: str, ref: str | None) -> Any:
        url = self._contents_url(owner, repo, path, ref)
        attempts = self._rate_limiting.retry_attempts
        attempt = 0
        while True:
            self._throttle.wait()
            try:
                return self._request_json(url)
            except TransientError as exc:
                if attempt >= attempts:
                    raise
                delay = self._rate_limiting.retry_delay_seconds * (2**attempt)
                attempt += 1
                logger.warning(
                    "Request for %s failed (%s); retry %d/%d in %.1fs",
                    path or "/",
                    exc,
                    attempt,
                    attempts,
                    delay,
                )
                self._sleep(delay)

    def _contents_url(self, owner: str, repo: str, path: str, ref: str | None) -> str:
        url = (
            f"{self._api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"
            f"/contents/{quote(path.strip('/'))}"
        )
        if ref:
            url = f"{url}?{urlencode({'ref': ref})}"
        return url

    def _request_json(self, url: str) -> Any:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "User-Agent": f"repo-auditor/{__version__}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        request = Request(url, headers=headers, method="GET")
        logger.debug("GET %s", url)
        try:
            with self._opener(request, timeout=self._timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            raise _classify_http_error(exc, url) from exc
        except (OSError, HTTPException) as exc:
            raise TransientError(f"Network error for {url}: {exc}") from exc

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceError(f"Invalid JSON response from {url}") from exc


def _classify_http_error(exc: HTTPError, url: str) -> SourceError:
    status = exc.code
    if status == 404:
        return NotFoundError(f"Not found: {url}")
    if status == 429 or status >= 500:
        return TransientError(f"HTTP {status} for {url}")
    if status == 403:
        headers = exc.headers
        remaining = headers.get("X-RateLimit-Remaining") if headers is not None else None
        if remaining == "0":
            return TransientError(f"Rate limit exhausted for {url}")
    return SourceError(f"HTTP {status} for {url}")


def _decode_content(payload: dict[str, Any], path: str) -> str:
    content = payload.get("content")
    if not isinstance(content, str):
        raise SourceError(f"No inline content returned for {path}")
    encoding = payload.get("encoding", "base64")
    if encoding != "base64":
        return content
    try:
        raw = base64.b64decode(content)
    except (binascii.Error, ValueError) as exc:
        raise SourceError(f"Undecodable content for {path}") from exc
    return raw.decode("utf-8", errors="replace")
