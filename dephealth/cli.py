"""Command-line entry point.

Usage:
    dephealth check facebook/react
    dephealth check https://github.com/org/repo --json
    dephealth check org/repo --refresh --concurrency 5
    dephealth serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace

from dephealth.core.cache import create_cache
from dephealth.core.config import Settings
from dephealth.core.logging import setup_logging
from dephealth.engines.insight.github_client import GitHubClient
from dephealth.engines.insight.models import (
    DependencyHealthReport,
    Failed,
    RepositoryCoordinates,
    SoftError,
)
from dephealth.engines.insight.npm_client import NpmRegistryClient
from dephealth.services import UpstreamUnavailable
from dephealth.services.dependency_health_service import DependencyHealthService
from dephealth.services.report_cache import ReportCache, ReportOutcome


def _print_report(coords: RepositoryCoordinates, outcome: ReportOutcome, as_json: bool) -> None:
    if as_json:
        print(json.dumps(outcome.to_payload(), indent=2))
        return

    if isinstance(outcome, SoftError):
        print(f"{coords.slug}: {outcome.message}")
    else:
        _print_table(coords, outcome)


def _print_table(coords: RepositoryCoordinates, report: DependencyHealthReport) -> None:
    summary = report.summary
    print(
        f"{coords.slug}: {summary.total} dependencies, "
        f"{summary.outdated} outdated, {summary.deprecated} deprecated\n"
    )
    for dep in report.dependencies:
        if isinstance(dep, Failed):
            print(f"  {dep.name} {dep.declared_version}  !! {dep.reason}")
            continue
        flags = []
        if dep.is_outdated:
            flags.append(f"-> {dep.latest_version}")
        if dep.is_deprecated:
            flags.append("DEPRECATED")
        print(f"  {dep.name} {dep.declared_version}  [{dep.license}]  {' '.join(flags)}".rstrip())
    if summary.licenses:
        print(f"\nLicenses: {', '.join(summary.licenses)}")


async def _check(settings: Settings, coords: RepositoryCoordinates, refresh: bool) -> ReportOutcome:
    cache = create_cache(settings.redis_url)
    try:
        async with (
            GitHubClient(
                settings.github_token,
                base_url=settings.github_api_url,
                timeout=settings.github_timeout,
            ) as github,
            NpmRegistryClient(
                base_url=settings.registry_url,
                timeout=settings.registry_timeout,
            ) as registry,
        ):
            service = DependencyHealthService(
                ReportCache(cache, settings.cache_ttl),
                registry,
                concurrency=settings.concurrency,
            )
            return await service.get_dependency_health(coords, github, refresh=refresh)
    finally:
        await cache.close()


def _cmd_check(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    if args.concurrency is not None:
        settings = replace(settings, concurrency=args.concurrency)

    try:
        coords = RepositoryCoordinates.parse(args.repo)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    try:
        outcome = asyncio.run(_check(settings, coords, args.refresh))
    except UpstreamUnavailable as exc:
        print(f"Error: {exc} (HTTP {exc.status_code})", file=sys.stderr)
        return 1

    _print_report(coords, outcome, args.as_json)
    return 1 if isinstance(outcome, SoftError) else 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "dephealth.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_config=None,
    )
    return 0


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dephealth",
        description="Dependency health insights for GitHub repositories",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Report dependency health for one repository")
    check.add_argument("repo", help="owner/repo or GitHub URL")
    check.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON")
    check.add_argument("--refresh", action="store_true", help="Ignore any cached report")
    check.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Registry lookups per batch (default: DEPHEALTH_CONCURRENCY or 10)",
    )
    check.set_defaults(func=_cmd_check)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=_cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    from dotenv import load_dotenv

    load_dotenv()  # GITHUB_TOKEN, DEPHEALTH_* from a local .env

    args = build_parser().parse_args(argv)
    if args.command == "check":
        setup_logging("DEBUG" if args.verbose else "WARNING", stream="ext://sys.stderr")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
