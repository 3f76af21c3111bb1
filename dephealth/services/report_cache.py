"""ReportCache — cache-aside storage of dependency health reports."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable

import structlog

from dephealth.core.cache import CacheUnavailable, KeyValueCache
from dephealth.core.config import DEFAULT_CACHE_TTL
from dephealth.engines.insight.models import (
    DependencyHealthReport,
    RepositoryCoordinates,
    SoftError,
)

log = structlog.get_logger("dephealth.service")

KEY_PREFIX = "repo:insights:dependencies"

ReportOutcome = DependencyHealthReport | SoftError


def cache_key(coords: RepositoryCoordinates) -> str:
    return f"{KEY_PREFIX}:{coords.owner}:{coords.name}"


def serialize_report(report: DependencyHealthReport) -> str:
    return json.dumps(report.to_payload(), separators=(",", ":"))


def deserialize_report(raw: str) -> DependencyHealthReport:
    return DependencyHealthReport.from_payload(json.loads(raw))


class ReportCache:
    """Cache-aside layer keyed by repository coordinates.

    A hit is returned without revalidating against the repository. Only
    non-empty reports are stored; soft errors and empty reports always go
    back to *compute* on the next request.

    With ``single_flight=True`` concurrent misses for the same key share
    one computation; otherwise each caller computes and writes
    independently, and the last write wins.

    Cache store failures never fail the request: reads fall through to
    *compute* and writes are skipped, both logged as warnings.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        ttl_seconds: int = DEFAULT_CACHE_TTL,
        *,
        single_flight: bool = False,
    ) -> None:
        self._cache = cache
        self._ttl = ttl_seconds
        self._single_flight = single_flight
        self._in_flight: dict[str, asyncio.Future[ReportOutcome]] = {}

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    async def lookup(self, coords: RepositoryCoordinates) -> DependencyHealthReport | None:
        key = cache_key(coords)
        try:
            raw = await self._cache.get(key)
        except CacheUnavailable as exc:
            log.warning("cache.unavailable", op="get", key=key, error=str(exc))
            return None
        if raw is None:
            log.debug("cache.miss", key=key)
            return None
        try:
            report = deserialize_report(raw)
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("cache.corrupt", key=key, error=str(exc))
            return None
        log.info("cache.hit", key=key)
        return report

    async def store(self, coords: RepositoryCoordinates, report: DependencyHealthReport) -> bool:
        """Write *report* with the configured TTL. Returns False if skipped."""
        if report.is_empty:
            return False
        key = cache_key(coords)
        try:
            await self._cache.set(key, serialize_report(report), self._ttl)
        except CacheUnavailable as exc:
            log.warning("cache.unavailable", op="set", key=key, error=str(exc))
            return False
        log.debug("cache.store", key=key, ttl=self._ttl)
        return True

    async def get_or_compute(
        self,
        coords: RepositoryCoordinates,
        compute: Callable[[], Awaitable[ReportOutcome]],
        *,
        refresh: bool = False,
    ) -> ReportOutcome:
        """Return the cached report for *coords*, or compute and store one.

        ``refresh=True`` skips the lookup; the fresh result is still stored.
        """
        if not refresh:
            cached = await self.lookup(coords)
            if cached is not None:
                return cached

        if not self._single_flight:
            return await self._compute_and_store(coords, compute)

        key = cache_key(coords)
        pending = self._in_flight.get(key)
        if pending is not None:
            log.debug("cache.join_in_flight", key=key)
            return await asyncio.shield(pending)

        future: asyncio.Future[ReportOutcome] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            outcome = await self._compute_and_store(coords, compute)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unjoined future does not log a warning.
            future.exception()
            raise
        else:
            future.set_result(outcome)
            return outcome
        finally:
            self._in_flight.pop(key, None)

    async def _compute_and_store(
        self,
        coords: RepositoryCoordinates,
        compute: Callable[[], Awaitable[ReportOutcome]],
    ) -> ReportOutcome:
        outcome = await compute()
        if isinstance(outcome, DependencyHealthReport):
            await self.store(coords, outcome)
        return outcome
