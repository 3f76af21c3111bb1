"""Dependency insight engine: find the manifest, enrich each dependency, summarize."""

from dephealth.engines.insight.aggregator import aggregate
from dephealth.engines.insight.batch import run_batched
from dephealth.engines.insight.github_client import GitHubClient
from dephealth.engines.insight.manifest import ManifestLocator
from dephealth.engines.insight.models import (
    DependencyEnrichment,
    DependencyHealthReport,
    Failed,
    InsightSummary,
    RepositoryCoordinates,
    Resolved,
    SoftError,
)
from dephealth.engines.insight.npm_client import NpmRegistryClient

__all__ = [
    "DependencyEnrichment",
    "DependencyHealthReport",
    "Failed",
    "GitHubClient",
    "InsightSummary",
    "ManifestLocator",
    "NpmRegistryClient",
    "RepositoryCoordinates",
    "Resolved",
    "SoftError",
    "aggregate",
    "run_batched",
]
