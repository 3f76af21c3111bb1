"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_CACHE_TTL = 3600 * 6
DEFAULT_CONCURRENCY = 10


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
    return value


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    Environment variables:
        GITHUB_TOKEN                — default upstream credential (optional)
        DEPHEALTH_GITHUB_API_URL    — GitHub REST base URL
        DEPHEALTH_GITHUB_TIMEOUT    — GitHub request timeout in seconds (default: 10)
        DEPHEALTH_REGISTRY_URL      — npm registry base URL
        DEPHEALTH_REGISTRY_TIMEOUT  — registry request timeout in seconds (default: 5)
        DEPHEALTH_CONCURRENCY       — registry lookups per batch (default: 10)
        DEPHEALTH_CACHE_TTL         — report TTL in seconds (default: 21600)
        DEPHEALTH_REDIS_URL         — Redis URL; unset means in-process cache
        DEPHEALTH_SINGLE_FLIGHT     — share concurrent computations per key
        DEPHEALTH_CORS_ORIGINS      — comma-separated allowed origins
    """

    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 10.0
    registry_url: str = "https://registry.npmjs.org"
    registry_timeout: float = 5.0
    concurrency: int = DEFAULT_CONCURRENCY
    cache_ttl: int = DEFAULT_CACHE_TTL
    redis_url: str | None = None
    single_flight: bool = False
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        cors = env.get("DEPHEALTH_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            github_token=env.get("GITHUB_TOKEN") or None,
            github_api_url=env.get("DEPHEALTH_GITHUB_API_URL", cls.github_api_url),
            github_timeout=_env_float(env, "DEPHEALTH_GITHUB_TIMEOUT", cls.github_timeout),
            registry_url=env.get("DEPHEALTH_REGISTRY_URL", cls.registry_url),
            registry_timeout=_env_float(env, "DEPHEALTH_REGISTRY_TIMEOUT", cls.registry_timeout),
            concurrency=_env_int(env, "DEPHEALTH_CONCURRENCY", DEFAULT_CONCURRENCY),
            cache_ttl=_env_int(env, "DEPHEALTH_CACHE_TTL", DEFAULT_CACHE_TTL),
            redis_url=env.get("DEPHEALTH_REDIS_URL") or None,
            single_flight=_env_bool(env, "DEPHEALTH_SINGLE_FLIGHT", False),
            cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()),
        )
