"""Summarize enrichment outcomes into report totals."""

from __future__ import annotations

from collections.abc import Iterable

from dephealth.engines.insight.models import DependencyEnrichment, InsightSummary, Resolved


def aggregate(enrichments: Iterable[DependencyEnrichment]) -> InsightSummary:
    """Build the summary for a set of enrichments.

    Failed lookups count toward ``total`` only.
    """
    total = 0
    outdated = 0
    deprecated = 0
    licenses: set[str] = set()

    for item in enrichments:
        total += 1
        if not isinstance(item, Resolved):
            continue
        if item.is_outdated:
            outdated += 1
        if item.is_deprecated:
            deprecated += 1
        licenses.add(item.license)

    return InsightSummary(
        total=total,
        outdated=outdated,
        deprecated=deprecated,
        licenses=tuple(sorted(licenses)),
    )
