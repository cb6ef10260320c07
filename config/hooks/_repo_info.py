#!/usr/bin/env python3
"""
Repository identity for learning-queue metadata.

Best-effort: git failures never raise, they produce null fields.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from typing import Protocol

from _common import log_debug

GIT_TIMEOUT_SECONDS = 5

# Matches both https://host/org/repo(.git) and host:org/repo(.git)
REMOTE_URL_RE = re.compile(r"[:/]([^/]+)/([^/]+?)(\.git)?$")


@dataclass(frozen=True)
class GitInfo:
    remote: str | None = None
    branch: str | None = None
    repo_name: str | None = None
    org: str | None = None

    def to_dict(self) -> dict:
        return {
            "remote": self.remote,
            "branch": self.branch,
            "repoName": self.repo_name,
            "org": self.org,
        }


def parse_remote_url(url: str | None) -> tuple[str | None, str | None]:
    """Extract (org, repo_name) from a git remote URL.

    >>> parse_remote_url("git@github.com:acme/widgets.git")
    ('acme', 'widgets')
    """
    if not url:
        return None, None
    match = REMOTE_URL_RE.search(url.strip())
    if not match:
        return None, None
    return match.group(1), match.group(2)


def build_git_info(remote: str | None, branch: str | None) -> GitInfo:
    org, repo_name = parse_remote_url(remote)
    return GitInfo(
        remote=remote or None,
        branch=branch or None,
        repo_name=repo_name,
        org=org,
    )


class RepositoryInfoProvider(Protocol):
    def get_info(self, directory: str) -> GitInfo | None:
        ...


class GitRepositoryInfoProvider:
    """Queries the git binary in the target directory."""

    def __init__(self, timeout: float = GIT_TIMEOUT_SECONDS):
        self.timeout = timeout

    def _git(self, args: list[str], directory: str) -> str | None:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=self.timeout,
            cwd=directory or None,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def get_info(self, directory: str) -> GitInfo | None:
        try:
            remote = self._git(["remote", "get-url", "origin"], directory)
            branch = self._git(["branch", "--show-current"], directory)
        except (subprocess.TimeoutExpired, FileNotFoundError, NotADirectoryError, OSError) as e:
            log_debug(
                f"git info unavailable for {directory}",
                hook_name="repo-info",
                error=e,
            )
            return None
        return build_git_info(remote, branch)


class StaticRepositoryInfoProvider:
    """In-memory provider mapping directories to (remote, branch) pairs."""

    def __init__(self, repos: dict[str, tuple[str | None, str | None]] | None = None):
        self.repos = dict(repos or {})
        self.calls: list[str] = []

    def get_info(self, directory: str) -> GitInfo | None:
        self.calls.append(directory)
        if directory not in self.repos:
            return None
        remote, branch = self.repos[directory]
        return build_git_info(remote, branch)


def resolve_git_info(provider: RepositoryInfoProvider, directory: str) -> GitInfo:
    """Ask the provider, degrading to an all-null record on any failure."""
    try:
        info = provider.get_info(directory)
    except Exception as e:
        log_debug("Repository info provider failed", hook_name="repo-info", error=e)
        return GitInfo()
    return info or GitInfo()
