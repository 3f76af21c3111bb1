"""Insights router — dependency health per repository."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dephealth.api.deps import get_dependency_health_service, get_github_client
from dephealth.api.schemas.insights import (
    DependencyHealthResponse,
    SoftErrorResponse,
    UpstreamErrorResponse,
)
from dephealth.engines.insight.github_client import GitHubClient
from dephealth.engines.insight.models import RepositoryCoordinates, SoftError
from dephealth.services import ValidationError
from dephealth.services.dependency_health_service import DependencyHealthService

router = APIRouter()


@router.get(
    "/{username}/{reponame}/insights/dependencies",
    response_model=DependencyHealthResponse | SoftErrorResponse,
    responses={500: {"model": UpstreamErrorResponse}},
)
async def get_dependency_health(
    username: str,
    reponame: str,
    github: GitHubClient = Depends(get_github_client),
    svc: DependencyHealthService = Depends(get_dependency_health_service),
) -> DependencyHealthResponse | SoftErrorResponse:
    try:
        coords = RepositoryCoordinates.from_parts(username, reponame)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    outcome = await svc.get_dependency_health(coords, github)
    if isinstance(outcome, SoftError):
        return SoftErrorResponse.from_soft_error(outcome)
    return DependencyHealthResponse.from_report(outcome)
