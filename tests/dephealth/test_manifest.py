"""Tests for the GitHub client and manifest locator."""

from __future__ import annotations

import base64

import httpx
import pytest
import respx

from dephealth.engines.insight.github_client import GitHubClient, RateLimitError
from dephealth.engines.insight.manifest import (
    ManifestLocator,
    decode_manifest,
    find_manifest_path,
    merge_dependency_groups,
)
from dephealth.engines.insight.models import RepositoryCoordinates
from dephealth.services import ManifestUnreadable, UpstreamUnavailable

from fakes import FakeGitHub, encode_manifest, github_with_manifest

API = "https://api.github.com"
COORDS = RepositoryCoordinates("octo", "app")


# ── pure helpers ─────────────────────────────────────────────────────────


class TestFindManifestPath:
    def test_first_match_in_listing_order(self):
        entries = [
            {"path": "src", "type": "tree"},
            {"path": "packages/b/package.json", "type": "blob"},
            {"path": "package.json", "type": "blob"},
        ]
        assert find_manifest_path(entries) == "packages/b/package.json"

    def test_no_match(self):
        assert find_manifest_path([{"path": "setup.py"}, {"path": "package-lock.json"}]) is None

    def test_ignores_entries_without_path(self):
        assert find_manifest_path([{"type": "blob"}, {"path": "package.json"}]) == "package.json"


class TestDecodeManifest:
    def test_wrapped_base64(self):
        assert decode_manifest(encode_manifest({"name": "x"})) == {"name": "x"}

    def test_bad_base64(self):
        with pytest.raises(ManifestUnreadable):
            decode_manifest("abc")

    def test_bad_utf8(self):
        with pytest.raises(ManifestUnreadable):
            decode_manifest(base64.b64encode(b"\xff\xfe{}").decode())

    def test_bad_json(self):
        with pytest.raises(ManifestUnreadable):
            decode_manifest(base64.b64encode(b"{not json").decode())

    def test_non_object_document(self):
        with pytest.raises(ManifestUnreadable, match="JSON object"):
            decode_manifest(base64.b64encode(b"[1, 2]").decode())


class TestMergeDependencyGroups:
    def test_union_in_declaration_order(self):
        merged = merge_dependency_groups(
            {
                "dependencies": {"react": "^18.0.0", "lodash": "^4.17.0"},
                "devDependencies": {"jest": "^29.0.0"},
            }
        )
        assert list(merged.items()) == [
            ("react", "^18.0.0"),
            ("lodash", "^4.17.0"),
            ("jest", "^29.0.0"),
        ]

    def test_dev_group_wins_on_collision(self):
        merged = merge_dependency_groups(
            {
                "dependencies": {"typescript": "^4.0.0", "react": "^18.0.0"},
                "devDependencies": {"typescript": "^5.0.0"},
            }
        )
        assert merged == {"typescript": "^5.0.0", "react": "^18.0.0"}
        assert list(merged) == ["typescript", "react"]

    def test_missing_or_malformed_groups(self):
        assert merge_dependency_groups({}) == {}
        assert merge_dependency_groups({"dependencies": ["a"], "devDependencies": None}) == {}

    def test_non_string_versions_are_stringified(self):
        assert merge_dependency_groups({"dependencies": {"a": 1}}) == {"a": "1"}


# ── locator against a fake provider ──────────────────────────────────────


class TestManifestLocator:
    @pytest.mark.asyncio
    async def test_returns_merged_map(self):
        github = github_with_manifest(
            {"dependencies": {"left-pad": "^1.3.0"}, "devDependencies": {"jest": "^29.0.0"}}
        )
        deps = await ManifestLocator(github).locate_manifest(COORDS)
        assert deps == {"left-pad": "^1.3.0", "jest": "^29.0.0"}
        assert ("tree", "octo", "app", "main") in github.calls

    @pytest.mark.asyncio
    async def test_no_manifest_returns_none(self):
        github = FakeGitHub(tree=[{"path": "README.md", "type": "blob"}])
        assert await ManifestLocator(github).locate_manifest(COORDS) is None
        assert github.manifest_fetches == 0

    @pytest.mark.asyncio
    async def test_empty_groups_return_empty_map(self):
        github = github_with_manifest({"name": "app", "version": "1.0.0"})
        assert await ManifestLocator(github).locate_manifest(COORDS) == {}

    @pytest.mark.asyncio
    async def test_undecodable_manifest_raises_unreadable(self):
        github = FakeGitHub(
            tree=[{"path": "package.json", "type": "blob"}],
            files={"package.json": base64.b64encode(b"{oops").decode()},
        )
        with pytest.raises(ManifestUnreadable):
            await ManifestLocator(github).locate_manifest(COORDS)


# ── locator + GitHubClient over HTTP ─────────────────────────────────────


@pytest.fixture
async def github():
    async with GitHubClient(token="gh-token", base_url=API) as client:
        yield client


class TestGitHubClient:
    def test_auth_header(self):
        assert GitHubClient(token="t").is_authenticated
        assert not GitHubClient().is_authenticated

    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_token(self, github):
        route = respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(200, json={"default_branch": "develop"})
        )
        assert await github.get_default_branch("octo", "app") == "develop"
        assert route.calls.last.request.headers["Authorization"] == "token gh-token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_shared_client_is_not_closed(self):
        shared = httpx.AsyncClient(base_url=API)
        async with GitHubClient(client=shared):
            pass
        assert not shared.is_closed
        await shared.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit(self, github):
        respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(
                403,
                headers={"X-RateLimit-Remaining": "0", "Retry-After": "30"},
                json={"message": "API rate limit exceeded"},
            )
        )
        with pytest.raises(RateLimitError) as info:
            await github.get_default_branch("octo", "app")
        assert info.value.retry_after == 30


class TestManifestLocatorHttp:
    def _mock_repo(self, tree: list[dict], truncated: bool = False) -> None:
        respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(200, json={"default_branch": "main"})
        )
        respx.get(f"{API}/repos/octo/app/git/trees/main", params={"recursive": "1"}).mock(
            return_value=httpx.Response(200, json={"tree": tree, "truncated": truncated})
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_end_to_end(self, github):
        self._mock_repo(
            [{"path": "web", "type": "tree"}, {"path": "web/package.json", "type": "blob"}],
            truncated=True,
        )
        respx.get(f"{API}/repos/octo/app/contents/web/package.json").mock(
            return_value=httpx.Response(
                200,
                json={"content": encode_manifest({"dependencies": {"left-pad": "^1.3.0"}})},
            )
        )
        deps = await ManifestLocator(github).locate_manifest(COORDS)
        assert deps == {"left-pad": "^1.3.0"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_repository_is_upstream_unavailable(self, github):
        respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(404, json={"message": "Not Found"})
        )
        with pytest.raises(UpstreamUnavailable) as info:
            await ManifestLocator(github).locate_manifest(COORDS)
        assert info.value.status_code == 404

    @pytest.mark.asyncio
    @respx.mock
    async def test_tree_failure_is_upstream_unavailable(self, github):
        respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(200, json={"default_branch": "main"})
        )
        respx.get(f"{API}/repos/octo/app/git/trees/main").mock(
            return_value=httpx.Response(502)
        )
        with pytest.raises(UpstreamUnavailable) as info:
            await ManifestLocator(github).locate_manifest(COORDS)
        assert info.value.status_code == 502

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_maps_to_500(self, github):
        respx.get(f"{API}/repos/octo/app").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(UpstreamUnavailable) as info:
            await ManifestLocator(github).locate_manifest(COORDS)
        assert info.value.status_code == 500

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_maps_to_403(self, github):
        respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(403, headers={"X-RateLimit-Remaining": "0"})
        )
        with pytest.raises(UpstreamUnavailable) as info:
            await ManifestLocator(github).locate_manifest(COORDS)
        assert info.value.status_code == 403

    @pytest.mark.asyncio
    @respx.mock
    async def test_content_fetch_failure_is_unreadable(self, github):
        self._mock_repo([{"path": "package.json", "type": "blob"}])
        respx.get(f"{API}/repos/octo/app/contents/package.json").mock(
            return_value=httpx.Response(500)
        )
        with pytest.raises(ManifestUnreadable):
            await ManifestLocator(github).locate_manifest(COORDS)

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_repository_body_is_upstream_unavailable(self, github):
        respx.get(f"{API}/repos/octo/app").mock(return_value=httpx.Response(200, json=[1, 2]))
        with pytest.raises(UpstreamUnavailable) as info:
            await ManifestLocator(github).locate_manifest(COORDS)
        assert info.value.status_code == 500

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_tree_body_is_upstream_unavailable(self, github):
        respx.get(f"{API}/repos/octo/app").mock(
            return_value=httpx.Response(200, json={"default_branch": "main"})
        )
        respx.get(f"{API}/repos/octo/app/git/trees/main").mock(
            return_value=httpx.Response(200, json="not a tree")
        )
        with pytest.raises(UpstreamUnavailable):
            await ManifestLocator(github).locate_manifest(COORDS)

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_tree_entries_are_skipped(self, github):
        self._mock_repo(["junk", 7, {"path": "package.json", "type": "blob"}])
        respx.get(f"{API}/repos/octo/app/contents/package.json").mock(
            return_value=httpx.Response(
                200, json={"content": encode_manifest({"dependencies": {"a": "1.0.0"}})}
            )
        )
        assert await ManifestLocator(github).locate_manifest(COORDS) == {"a": "1.0.0"}
