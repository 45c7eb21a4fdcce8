"""GitHub integration through the ``gh`` CLI.

Covers repository identification (from configuration or the origin remote),
token discovery for tools that call the GitHub API themselves, and release
publication.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from relflow.core.result import Err, Ok, Result
from relflow.core.structured import as_str_dict, get_str
from relflow.git.repository import Repository
from relflow.platform.process import command_available
from relflow.platform.process import run as run_process
from relflow.release.errors import ReleaseError

if TYPE_CHECKING:
    from relflow.output.console import ConsoleProtocol

__all__ = [
    "GH_TIMEOUT_SECONDS",
    "TOKEN_ENV_VARS",
    "ReleaseRequest",
    "GhPublisher",
    "parse_remote_url",
    "resolve_repository",
    "resolve_token",
]

GH_TIMEOUT_SECONDS = 120.0
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN", "TOKEN")

_REPOSITORY_RE = re.compile(r"^[\w.-]+/[\w.-]+$")
_REMOTE_RE = re.compile(
    r"^(?:git@[^:]+:|ssh://(?:[^@/]+@)?[^/]+/|https?://(?:[^@/]+@)?[^/]+/)"
    r"([\w.-]+)/([\w.-]+?)(?:\.git)?/?$"
)


def parse_remote_url(url: str) -> str | None:
    """Extract ``owner/repo`` from an SSH or HTTPS remote URL."""
    m = _REMOTE_RE.match(url.strip())
    if m is None:
        return None
    return f"{m.group(1)}/{m.group(2)}"


def resolve_repository(configured: str, repo: Repository) -> Result[str, ReleaseError]:
    """Return the ``owner/repo`` a release targets.

    "auto" reads the origin remote; anything else must already be owner/repo.
    """
    if configured != "auto":
        if _REPOSITORY_RE.match(configured) is None:
            return Err(
                ReleaseError(
                    kind="config",
                    message=f"invalid repository identifier: {configured}",
                    hint='Use "owner/repo" or "auto"',
                )
            )
        return Ok(configured)

    match repo.remote_url("origin"):
        case Err(e):
            return Err(
                ReleaseError(
                    kind="config",
                    message="could not read the origin remote to detect the repository",
                    hint=e.message,
                )
            )
        case Ok(url):
            identifier = parse_remote_url(url)
            if identifier is None:
                return Err(
                    ReleaseError(
                        kind="config",
                        message=f"unsupported remote URL: {url}",
                        hint='Set git.repository = "owner/repo" in the config',
                    )
                )
            return Ok(identifier)


def resolve_token(cwd: Path, env: Mapping[str, str] | None = None) -> str | None:
    """Find a GitHub token in the environment, else ask ``gh auth token``."""
    source = os.environ if env is None else env
    for name in TOKEN_ENV_VARS:
        value = source.get(name, "").strip()
        if value:
            return value

    if not command_available("gh"):
        return None
    result = run_process(["gh", "auth", "token"], cwd=cwd, timeout=GH_TIMEOUT_SECONDS)
    match result:
        case Ok(stdout):
            return stdout.strip() or None
        case Err(_):
            return None


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    """Fields of a GitHub release."""

    repository: str
    tag_name: str
    title: str
    body: str
    draft: bool = False
    prerelease: bool = False
    latest: bool = False

    def gh_args(self) -> list[str]:
        return [
            "gh",
            "api",
            "--method",
            "POST",
            "-H",
            "Accept: application/vnd.github+json",
            f"repos/{self.repository}/releases",
            "-f",
            f"tag_name={self.tag_name}",
            "-f",
            f"name={self.title}",
            "-f",
            f"body={self.body}",
            "-F",
            f"draft={_flag(self.draft)}",
            "-F",
            f"prerelease={_flag(self.prerelease)}",
            "-f",
            f"make_latest={_flag(self.latest)}",
            "-F",
            "generate_release_notes=false",
        ]


def _flag(value: bool) -> str:
    return "true" if value else "false"


class GhPublisher:
    """Publishes releases with ``gh api``."""

    def __init__(self, cwd: Path, *, console: ConsoleProtocol | None = None) -> None:
        self.cwd = cwd
        self._console = console

    def publish(self, request: ReleaseRequest) -> Result[str, ReleaseError]:
        """Create the release.

        Returns:
            Ok(html_url) of the new release ("" if GitHub did not return one).
        """
        if self._console is not None:
            self._console.verbose(
                f"$ gh api --method POST repos/{request.repository}/releases "
                f"(tag={request.tag_name}, draft={_flag(request.draft)}, "
                f"prerelease={_flag(request.prerelease)}, latest={_flag(request.latest)})"
            )

        result = run_process(request.gh_args(), cwd=self.cwd, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return Err(
                ReleaseError(
                    kind="command_failed",
                    message=f"failed to create GitHub release {request.tag_name}",
                    hint=e.detail or None,
                )
            )

        try:
            obj: object = json.loads(result.value or "{}")
        except json.JSONDecodeError:
            return Ok("")
        data = as_str_dict(obj) or {}
        return Ok(get_str(data, "html_url") or "")
