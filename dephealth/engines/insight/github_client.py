"""Async GitHub API client for the repository content endpoints."""

from __future__ import annotations

import time
from typing import Any
from urllib.parse import quote

import httpx
import structlog

log = structlog.get_logger("dephealth.engine")

GITHUB_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 10.0


class RateLimitError(Exception):
    """Raised when the GitHub rate limit is exhausted."""

    status_code = 403

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class GitHubClient:
    """Thin async wrapper around the GitHub REST API.

    *client* lets callers share one connection pool across requests while
    each request carries its own *token*. When omitted, the instance owns
    a private client and closes it in :meth:`close`.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"token {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @property
    def is_authenticated(self) -> bool:
        return "Authorization" in self._headers

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── endpoints ──────────────────────────────────────────────────────────

    async def get_default_branch(self, owner: str, repo: str) -> str:
        info = _expect_object(await self.get(f"/repos/{owner}/{repo}"), "repository")
        return info.get("default_branch") or "main"

    async def get_tree(self, owner: str, repo: str, ref: str) -> tuple[list[dict[str, Any]], bool]:
        """Return (entries, truncated) for the recursive tree at *ref*.

        Entries keep the order GitHub lists them in.
        """
        data = await self.get(
            f"/repos/{owner}/{repo}/git/trees/{quote(ref, safe='')}",
            params={"recursive": "1"},
        )
        data = _expect_object(data, "tree")
        raw = data.get("tree")
        entries = [e for e in raw if isinstance(e, dict)] if isinstance(raw, list) else []
        return entries, bool(data.get("truncated"))

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        """Return the base64-encoded content of the file at *path*."""
        params = {"ref": ref} if ref else None
        data = await self.get(f"/repos/{owner}/{repo}/contents/{quote(path)}", params=params)
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str):
            raise ValueError(f"no inline content for {path!r}")
        return content

    # ── internal ───────────────────────────────────────────────────────────

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single GET, returns parsed JSON.

        Raises ``RateLimitError`` on an exhausted rate limit and
        ``httpx.HTTPStatusError`` for any other non-2xx response.
        """
        resp = await self._client.get(path, params=params, headers=self._headers)
        if resp.status_code in (403, 429) and self._is_rate_limited(resp):
            wait = self._get_rate_limit_wait(resp)
            log.warning("github.rate_limit", path=path, wait_seconds=wait)
            raise RateLimitError(wait)
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a 403/429 response is due to rate limiting."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                return int(remaining) == 0
            except (ValueError, TypeError):
                pass
        # Secondary rate limits only send Retry-After
        return "Retry-After" in response.headers

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        """Seconds until the rate limit resets, from response headers."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except (ValueError, TypeError):
                pass
        reset_ts = response.headers.get("X-RateLimit-Reset")
        if reset_ts is not None:
            try:
                return max(int(reset_ts) - int(time.time()), 1)
            except (ValueError, TypeError):
                pass
        return 60


def _expect_object(payload: Any, what: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected {what} payload: {type(payload).__name__}")
    return payload
