"""Dependency injection — process-scoped clients and service singletons."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dephealth.core.cache import KeyValueCache, create_cache
from dephealth.core.config import Settings
from dephealth.engines.insight.github_client import GitHubClient
from dephealth.engines.insight.npm_client import NpmRegistryClient
from dephealth.services.dependency_health_service import DependencyHealthService
from dephealth.services.report_cache import ReportCache

# ---------------------------------------------------------------------------
# Process-scoped handles (initialised by app lifespan)
# ---------------------------------------------------------------------------
_settings: Settings | None = None
_github_http: httpx.AsyncClient | None = None
_registry: NpmRegistryClient | None = None
_cache: KeyValueCache | None = None
_service: DependencyHealthService | None = None


def init_resources(settings: Settings) -> DependencyHealthService:
    """Create shared HTTP clients, the cache and the service. Called once at startup."""
    global _settings, _github_http, _registry, _cache, _service  # noqa: PLW0603
    _settings = settings
    _github_http = httpx.AsyncClient(
        base_url=settings.github_api_url,
        timeout=settings.github_timeout,
    )
    _registry = NpmRegistryClient(
        base_url=settings.registry_url,
        timeout=settings.registry_timeout,
    )
    _cache = create_cache(settings.redis_url)
    _service = DependencyHealthService(
        ReportCache(_cache, settings.cache_ttl, single_flight=settings.single_flight),
        _registry,
        concurrency=settings.concurrency,
    )
    return _service


async def dispose_resources() -> None:
    """Close pooled connections and the cache connection."""
    global _github_http, _registry, _cache, _service  # noqa: PLW0603
    if _github_http is not None:
        await _github_http.aclose()
        _github_http = None
    if _registry is not None:
        await _registry.close()
        _registry = None
    if _cache is not None:
        await _cache.close()
        _cache = None
    _service = None


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_settings() -> Settings:
    if _settings is None:
        raise RuntimeError("call init_resources() before handling requests")
    return _settings


def get_dependency_health_service() -> DependencyHealthService:
    if _service is None:
        raise RuntimeError("call init_resources() before handling requests")
    return _service


# ---------------------------------------------------------------------------
# Upstream credential
# ---------------------------------------------------------------------------

_bearer = HTTPBearer(auto_error=False)


async def get_github_client(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[GitHubClient, None]:
    """Yield a per-request GitHub client on the shared connection pool.

    A bearer token on the request is forwarded to GitHub; otherwise the
    server's configured token is used, else the request is anonymous.
    """
    if _github_http is None:
        raise RuntimeError("call init_resources() before handling requests")
    token = credentials.credentials if credentials is not None else settings.github_token
    async with GitHubClient(token, client=_github_http) as client:
        yield client
