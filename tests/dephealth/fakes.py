"""Fakes for the repository provider, registry and cache (no network)."""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any

from dephealth.core.cache import CacheUnavailable, MemoryCache
from dephealth.engines.insight.models import DependencyEnrichment, Failed, Resolved
from dephealth.engines.insight.npm_client import LOOKUP_FAILED_REASON, is_outdated


def encode_manifest(document: Any) -> str:
    """Base64-encode a manifest the way the GitHub contents API does."""
    raw = base64.b64encode(json.dumps(document).encode()).decode()
    # GitHub wraps content at 60 columns
    return "\n".join(raw[i : i + 60] for i in range(0, len(raw), 60))


class FakeGitHub:
    """In-memory stand-in for GitHubClient."""

    def __init__(
        self,
        *,
        branch: str = "main",
        tree: list[dict[str, Any]] | None = None,
        files: dict[str, str] | None = None,
    ) -> None:
        self.branch = branch
        self.tree = tree if tree is not None else []
        self.files = files or {}
        self.calls: list[tuple[str, ...]] = []

    async def get_default_branch(self, owner: str, repo: str) -> str:
        self.calls.append(("repo", owner, repo))
        return self.branch

    async def get_tree(self, owner: str, repo: str, ref: str) -> tuple[list[dict[str, Any]], bool]:
        self.calls.append(("tree", owner, repo, ref))
        return self.tree, False

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        self.calls.append(("content", owner, repo, path))
        return self.files[path]

    @property
    def manifest_fetches(self) -> int:
        return sum(1 for c in self.calls if c[0] == "content")


def github_with_manifest(document: Any, path: str = "package.json") -> FakeGitHub:
    return FakeGitHub(
        tree=[{"path": "README.md", "type": "blob"}, {"path": path, "type": "blob"}],
        files={path: encode_manifest(document)},
    )


class FakeRegistry:
    """Registry stand-in returning canned metadata, tracking concurrency."""

    def __init__(
        self,
        packages: dict[str, dict[str, Any]] | None = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.packages = packages or {}
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def enrich(self, name: str, declared_version: str) -> DependencyEnrichment:
        self.calls.append(name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            meta = self.packages.get(name)
            if meta is None:
                return Failed(name=name, declared_version=declared_version, reason=LOOKUP_FAILED_REASON)
            latest = meta.get("latest", "1.0.0")
            return Resolved(
                name=name,
                declared_version=declared_version,
                latest_version=latest,
                license=meta.get("license", "MIT"),
                is_outdated=is_outdated(declared_version, latest),
                is_deprecated=meta.get("deprecated", False),
            )
        finally:
            self.in_flight -= 1


class BrokenCache:
    """Cache whose every operation fails."""

    def __init__(self) -> None:
        self.get_calls = 0
        self.set_calls = 0

    async def get(self, key: str) -> str | None:
        self.get_calls += 1
        raise CacheUnavailable("connection refused")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.set_calls += 1
        raise CacheUnavailable("connection refused")

    async def close(self) -> None:
        pass


class RecordingCache(MemoryCache):
    """MemoryCache that records writes."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[str, str, int]] = []

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.writes.append((key, value, ttl_seconds))
        await super().set(key, value, ttl_seconds)
