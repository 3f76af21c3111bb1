"""Async client for the npm registry."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from dephealth.engines.insight.models import DependencyEnrichment, Failed, Resolved

log = structlog.get_logger("dephealth.engine")

NPM_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_TIMEOUT = 5.0

LOOKUP_FAILED_REASON = "Package not found in npm registry"
UNKNOWN_LICENSE = "N/A"

_RANGE_OPERATORS = "^~>=<"


def normalize_version(declared: str) -> str:
    """Strip leading range operators (``^ ~ > = <``) and whitespace."""
    return declared.strip().lstrip(_RANGE_OPERATORS).strip()


def is_outdated(declared: str, latest: str) -> bool:
    """Literal comparison of the normalized declared version against *latest*.

    ``1.2`` and ``1.2.0`` compare as different.
    """
    return normalize_version(declared) != latest


def extract_license(document: dict[str, Any]) -> str:
    """Read the license from a packument.

    Accepts an SPDX string or the legacy ``{"type": ..., "url": ...}`` form.
    """
    value = document.get("license")
    if isinstance(value, dict):
        value = value.get("type")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return UNKNOWN_LICENSE


def extract_deprecated(document: dict[str, Any], latest: str) -> bool:
    """True when the packument or its latest version manifest is deprecated."""
    if document.get("deprecated"):
        return True
    versions = document.get("versions")
    if isinstance(versions, dict):
        manifest = versions.get(latest)
        if isinstance(manifest, dict) and manifest.get("deprecated"):
            return True
    return False


class NpmRegistryClient:
    """Query the npm registry for a package's latest metadata.

    :meth:`enrich` never raises; every failure becomes a :class:`Failed`.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = NPM_REGISTRY_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._timeout = timeout

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> NpmRegistryClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def fetch_packument(self, name: str) -> dict[str, Any]:
        """GET the registry document for *name*.

        Scoped names keep their ``@`` and get ``/`` percent-encoded.
        """
        resp = await self._client.get(f"/{quote(name, safe='@')}", timeout=self._timeout)
        resp.raise_for_status()
        document = resp.json()
        if not isinstance(document, dict):
            raise ValueError(f"unexpected registry document for {name!r}")
        return document

    async def enrich(self, name: str, declared_version: str) -> DependencyEnrichment:
        try:
            document = await self.fetch_packument(name)
            latest = document["dist-tags"]["latest"]
            if not isinstance(latest, str):
                raise TypeError(f"dist-tags.latest is {type(latest).__name__}")
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            log.warning(
                "registry.lookup_failed",
                package=name,
                error=str(exc) or type(exc).__name__,
            )
            return Failed(name=name, declared_version=declared_version, reason=LOOKUP_FAILED_REASON)

        return Resolved(
            name=name,
            declared_version=declared_version,
            latest_version=latest,
            license=extract_license(document),
            is_outdated=is_outdated(declared_version, latest),
            is_deprecated=extract_deprecated(document, latest),
        )
