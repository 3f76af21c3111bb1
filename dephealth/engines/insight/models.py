"""Data models for the dependency insight engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from dephealth.core.github import is_valid_name, parse_repo_url


@dataclass(frozen=True)
class RepositoryCoordinates:
    """Immutable (owner, name) pair identifying a GitHub repository."""

    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> RepositoryCoordinates:
        """Build coordinates from ``owner/name`` or a GitHub URL.

        Raises ValueError if *value* cannot be parsed.
        """
        owner, name = parse_repo_url(value)
        return cls(owner=owner, name=name)

    @classmethod
    def from_parts(cls, owner: str, name: str) -> RepositoryCoordinates:
        """Build coordinates from separate owner and name, taken verbatim.

        Raises ValueError if either part is not a valid GitHub name.
        """
        if not (is_valid_name(owner) and is_valid_name(name)):
            raise ValueError(f"invalid GitHub repository: {owner!r}/{name!r}")
        return cls(owner=owner, name=name)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Resolved:
    """A dependency enriched with registry metadata."""

    name: str
    declared_version: str
    latest_version: str
    license: str
    is_outdated: bool
    is_deprecated: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.declared_version,
            "latestVersion": self.latest_version,
            "license": self.license,
            "isOutdated": self.is_outdated,
            "isDeprecated": self.is_deprecated,
        }


@dataclass(frozen=True)
class Failed:
    """A dependency whose registry lookup did not succeed."""

    name: str
    declared_version: str
    reason: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.declared_version,
            "error": self.reason,
        }


DependencyEnrichment = Union[Resolved, Failed]


def enrichment_from_payload(data: dict[str, Any]) -> DependencyEnrichment:
    """Inverse of ``to_payload`` for either variant."""
    if "error" in data:
        return Failed(
            name=data["name"],
            declared_version=data["version"],
            reason=data["error"],
        )
    return Resolved(
        name=data["name"],
        declared_version=data["version"],
        latest_version=data["latestVersion"],
        license=data["license"],
        is_outdated=bool(data["isOutdated"]),
        is_deprecated=bool(data["isDeprecated"]),
    )


@dataclass(frozen=True)
class InsightSummary:
    """Aggregate counts over a set of enrichments."""

    total: int = 0
    outdated: int = 0
    deprecated: int = 0
    licenses: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "outdated": self.outdated,
            "deprecated": self.deprecated,
            "licenses": list(self.licenses),
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> InsightSummary:
        return cls(
            total=int(data["total"]),
            outdated=int(data["outdated"]),
            deprecated=int(data["deprecated"]),
            licenses=tuple(data["licenses"]),
        )


@dataclass(frozen=True)
class DependencyHealthReport:
    """Per-dependency outcomes in manifest order plus their summary."""

    dependencies: tuple[DependencyEnrichment, ...] = ()
    summary: InsightSummary = field(default_factory=InsightSummary)

    @property
    def is_empty(self) -> bool:
        return not self.dependencies

    def to_payload(self) -> dict[str, Any]:
        return {
            "dependencies": [d.to_payload() for d in self.dependencies],
            "summary": self.summary.to_payload(),
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> DependencyHealthReport:
        return cls(
            dependencies=tuple(enrichment_from_payload(d) for d in data["dependencies"]),
            summary=InsightSummary.from_payload(data["summary"]),
        )


@dataclass(frozen=True)
class SoftError:
    """An error outcome delivered with a successful HTTP status."""

    message: str

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


EMPTY_REPORT = DependencyHealthReport()
