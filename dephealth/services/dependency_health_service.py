"""DependencyHealthService — end-to-end dependency health pipeline."""

from __future__ import annotations

import time
from typing import Protocol

import structlog

from dephealth.core.config import DEFAULT_CONCURRENCY
from dephealth.engines.insight.aggregator import aggregate
from dephealth.engines.insight.batch import run_batched
from dephealth.engines.insight.github_client import GitHubClient
from dephealth.engines.insight.manifest import ManifestLocator
from dephealth.engines.insight.models import (
    EMPTY_REPORT,
    DependencyEnrichment,
    DependencyHealthReport,
    Failed,
    RepositoryCoordinates,
    SoftError,
)
from dephealth.engines.insight.npm_client import LOOKUP_FAILED_REASON
from dephealth.services import ManifestUnreadable
from dephealth.services.report_cache import ReportCache, ReportOutcome

log = structlog.get_logger("dephealth.service")

MANIFEST_NOT_FOUND = "package.json not found in this repository."
MANIFEST_UNREADABLE = "Could not read the package.json file."


class RegistryClient(Protocol):
    async def enrich(self, name: str, declared_version: str) -> DependencyEnrichment: ...


class DependencyHealthService:
    """Compose cache, manifest lookup, registry enrichment and aggregation.

    The registry client and report cache are process-scoped and injected
    here; the GitHub client is supplied per call because it carries the
    caller's credential.
    """

    def __init__(
        self,
        report_cache: ReportCache,
        registry: RegistryClient,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._report_cache = report_cache
        self._registry = registry
        self._concurrency = concurrency

    async def get_dependency_health(
        self,
        coords: RepositoryCoordinates,
        github: GitHubClient,
        *,
        refresh: bool = False,
    ) -> ReportOutcome:
        """Return the health report for *coords*, or a soft error.

        Raises ``UpstreamUnavailable`` if the repository cannot be read.
        """

        async def compute() -> ReportOutcome:
            return await self._build_report(coords, github)

        return await self._report_cache.get_or_compute(coords, compute, refresh=refresh)

    async def enrich_all(self, dependencies: dict[str, str]) -> list[DependencyEnrichment]:
        """Enrich every dependency, preserving declaration order."""

        async def work(entry: tuple[str, str]) -> DependencyEnrichment:
            name, version = entry
            return await self._registry.enrich(name, version)

        def on_error(entry: tuple[str, str], exc: BaseException) -> DependencyEnrichment:
            name, version = entry
            log.warning("registry.enrich_error", package=name, error=repr(exc))
            return Failed(name=name, declared_version=version, reason=LOOKUP_FAILED_REASON)

        return await run_batched(
            list(dependencies.items()), self._concurrency, work, on_error=on_error
        )

    async def _build_report(
        self, coords: RepositoryCoordinates, github: GitHubClient
    ) -> ReportOutcome:
        start = time.perf_counter()
        locator = ManifestLocator(github)
        try:
            dependencies = await locator.locate_manifest(coords)
        except ManifestUnreadable:
            return SoftError(MANIFEST_UNREADABLE)

        if dependencies is None:
            return SoftError(MANIFEST_NOT_FOUND)
        if not dependencies:
            return EMPTY_REPORT

        enrichments = await self.enrich_all(dependencies)
        report = DependencyHealthReport(
            dependencies=tuple(enrichments),
            summary=aggregate(enrichments),
        )
        log.info(
            "dependency_health.computed",
            repo=coords.slug,
            total=report.summary.total,
            outdated=report.summary.outdated,
            deprecated=report.summary.deprecated,
            failed=sum(1 for d in enrichments if isinstance(d, Failed)),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return report
