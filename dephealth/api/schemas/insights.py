"""Dependency insight response schemas (camelCase on the wire)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dephealth.engines.insight.models import (
    DependencyHealthReport,
    Failed,
    InsightSummary,
    Resolved,
    SoftError,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResolvedDependency(_CamelModel):
    name: str
    version: str
    latest_version: str
    license: str
    is_outdated: bool
    is_deprecated: bool


class FailedDependency(_CamelModel):
    name: str
    version: str
    error: str


class InsightSummaryResponse(_CamelModel):
    total: int
    outdated: int
    deprecated: int
    licenses: list[str]


class DependencyHealthResponse(_CamelModel):
    dependencies: list[ResolvedDependency | FailedDependency]
    summary: InsightSummaryResponse

    @classmethod
    def from_report(cls, report: DependencyHealthReport) -> DependencyHealthResponse:
        items: list[ResolvedDependency | FailedDependency] = []
        for dep in report.dependencies:
            if isinstance(dep, Resolved):
                items.append(
                    ResolvedDependency(
                        name=dep.name,
                        version=dep.declared_version,
                        latest_version=dep.latest_version,
                        license=dep.license,
                        is_outdated=dep.is_outdated,
                        is_deprecated=dep.is_deprecated,
                    )
                )
            elif isinstance(dep, Failed):
                items.append(
                    FailedDependency(name=dep.name, version=dep.declared_version, error=dep.reason)
                )
        return cls(dependencies=items, summary=_summary(report.summary))


def _summary(summary: InsightSummary) -> InsightSummaryResponse:
    return InsightSummaryResponse(
        total=summary.total,
        outdated=summary.outdated,
        deprecated=summary.deprecated,
        licenses=list(summary.licenses),
    )


class SoftErrorResponse(BaseModel):
    error: str

    @classmethod
    def from_soft_error(cls, soft_error: SoftError) -> SoftErrorResponse:
        return cls(error=soft_error.message)


class UpstreamErrorResponse(BaseModel):
    message: str
