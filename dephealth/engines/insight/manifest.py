"""Find and decode a repository's package.json through the GitHub API."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

import httpx
import structlog

from dephealth.engines.insight.github_client import GitHubClient, RateLimitError
from dephealth.engines.insight.models import RepositoryCoordinates
from dephealth.services import ManifestUnreadable, UpstreamUnavailable

log = structlog.get_logger("dephealth.engine")

MANIFEST_FILENAME = "package.json"

# Later groups overwrite earlier ones on name collisions.
DEPENDENCY_GROUPS = ("dependencies", "devDependencies")


def find_manifest_path(entries: list[dict[str, Any]], suffix: str = MANIFEST_FILENAME) -> str | None:
    """Return the path of the first tree entry ending with *suffix*."""
    for entry in entries:
        path = entry.get("path")
        if isinstance(path, str) and path.endswith(suffix):
            return path
    return None


def decode_manifest(encoded: str) -> dict[str, Any]:
    """Decode base64 file content into a JSON object.

    Raises ``ManifestUnreadable`` for bad base64, bad UTF-8, bad JSON, or a
    document that is not a JSON object.
    """
    try:
        # GitHub wraps base64 content at 60 columns.
        raw = base64.b64decode(encoded)
        document = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestUnreadable(f"cannot decode manifest: {exc}") from exc
    if not isinstance(document, dict):
        raise ManifestUnreadable(
            f"manifest must be a JSON object, got {type(document).__name__}"
        )
    return document


def merge_dependency_groups(document: dict[str, Any]) -> dict[str, str]:
    """Union the dependency groups of a manifest, in declaration order."""
    merged: dict[str, str] = {}
    for group in DEPENDENCY_GROUPS:
        entries = document.get(group)
        if not isinstance(entries, dict):
            continue
        for name, version in entries.items():
            merged[name] = version if isinstance(version, str) else str(version)
    return merged


class ManifestLocator:
    """Resolve a repository's manifest into its merged dependency map."""

    def __init__(self, github: GitHubClient, suffix: str = MANIFEST_FILENAME) -> None:
        self._github = github
        self._suffix = suffix

    async def locate_manifest(self, coords: RepositoryCoordinates) -> dict[str, str] | None:
        """Return the merged dependency map, or ``None`` if no manifest exists.

        Raises ``UpstreamUnavailable`` when the repository or its tree cannot
        be fetched, and ``ManifestUnreadable`` when the manifest file cannot
        be fetched or decoded.
        """
        owner, repo = coords.owner, coords.name
        try:
            branch = await self._github.get_default_branch(owner, repo)
            entries, truncated = await self._github.get_tree(owner, repo, branch)
        except RateLimitError as exc:
            raise UpstreamUnavailable(str(exc), status_code=exc.status_code) from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(
                f"GitHub returned {exc.response.status_code} for {coords.slug}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(f"GitHub request failed for {coords.slug}: {exc}") from exc

        if truncated:
            log.warning("github.tree_truncated", repo=coords.slug, entries=len(entries))

        path = find_manifest_path(entries, self._suffix)
        if path is None:
            log.info("manifest.not_found", repo=coords.slug, branch=branch)
            return None

        try:
            encoded = await self._github.get_file_content(owner, repo, path, ref=branch)
        except (RateLimitError, httpx.HTTPError, ValueError) as exc:
            log.warning("manifest.fetch_failed", repo=coords.slug, path=path, error=str(exc))
            raise ManifestUnreadable(f"cannot fetch {path}: {exc}") from exc

        try:
            document = decode_manifest(encoded)
        except ManifestUnreadable as exc:
            log.warning("manifest.unreadable", repo=coords.slug, path=path, error=str(exc))
            raise

        dependencies = merge_dependency_groups(document)
        log.info(
            "manifest.located",
            repo=coords.slug,
            path=path,
            dependencies=len(dependencies),
        )
        return dependencies
