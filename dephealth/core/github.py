"""GitHub repository reference helpers."""

from __future__ import annotations

import re

# GitHub owner and repository names: alphanumerics, '-', '_', '.'
_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def is_valid_name(value: str) -> bool:
    """True when *value* is a plausible GitHub owner or repository name."""
    return bool(_NAME_RE.fullmatch(value))


def parse_repo_url(value: str) -> tuple[str, str]:
    """Extract (owner, repo) from ``owner/repo`` or a GitHub URL.

    Raises ValueError if *value* cannot be parsed.
    """
    result = _extract_owner_repo(value)
    if result is None:
        raise ValueError(f"cannot parse GitHub repository: {value!r}")
    return result


def _extract_owner_repo(value: str) -> tuple[str, str] | None:
    """Extract (owner, repo) from a repository reference.

    Handles:
      - owner/repo
      - https://github.com/owner/repo
      - https://github.com/owner/repo.git
      - git@github.com:owner/repo.git
    """
    value = value.strip().rstrip("/")
    if value.endswith(".git"):
        value = value[:-4]

    # SSH format: git@github.com:owner/repo
    if value.startswith("git@"):
        colon_idx = value.find(":")
        if colon_idx == -1:
            return None
        parts = value[colon_idx + 1 :].split("/")
        if len(parts) != 2:
            return None
    elif "://" in value:
        parts = value.split("://", 1)[1].split("/")[1:]
        if len(parts) < 2:
            return None
        parts = parts[:2]
    else:
        parts = value.split("/")
        if len(parts) != 2:
            return None

    owner, repo = parts
    if not (is_valid_name(owner) and is_valid_name(repo)):
        return None
    return owner, repo
