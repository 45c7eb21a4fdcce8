"""Changelog generation with git-cliff.

relflow does not format changelogs itself. It runs the ``git-cliff`` binary
against the project's ``cliff.toml`` and captures the section it renders for
the new tag.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from relflow.core.result import Err, Ok, Result
from relflow.core.structured import get_table
from relflow.platform.process import run as run_process
from relflow.release.errors import ReleaseError

if TYPE_CHECKING:
    from relflow.output.console import ConsoleProtocol

__all__ = [
    "CLIFF_CONFIG_FILE",
    "ChangelogRequest",
    "GitCliff",
    "read_cliff_header",
    "strip_header",
]

CLIFF_CONFIG_FILE = "cliff.toml"
GIT_CLIFF_TIMEOUT_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class ChangelogRequest:
    """Inputs of one git-cliff run.

    Attributes:
        tag: Tag the unreleased commits are rendered under
        prepend: Changelog file to prepend to, None for stdout only
        repository: ``owner/repo`` for GitHub metadata in templates
        token: GitHub token exported to git-cliff
    """

    tag: str
    prepend: Path | None = None
    repository: str | None = None
    token: str | None = None


def read_cliff_header(path: Path) -> Result[str | None, ReleaseError]:
    """Return ``[changelog].header`` from a cliff.toml, None if unset."""
    try:
        data: dict[str, object] = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(ReleaseError(kind="io", message=f"failed to read {path.name}: {e}"))
    except tomllib.TOMLDecodeError as e:
        return Err(ReleaseError(kind="config", message=f"Failed to parse {path.name}: {e}"))

    changelog = get_table(data, "changelog") or {}
    header = changelog.get("header")
    if isinstance(header, str) and header:
        return Ok(header)
    return Ok(None)


def strip_header(content: str, header: str | None) -> str:
    """Drop everything up to and including the first occurrence of ``header``."""
    if not header:
        return content
    index = content.find(header)
    if index == -1:
        return content
    return content[index + len(header) :]


class GitCliff:
    """Runs git-cliff in a project root."""

    def __init__(self, cwd: Path, *, console: ConsoleProtocol | None = None) -> None:
        self.cwd = cwd
        self.config_path = cwd / CLIFF_CONFIG_FILE
        self._console = console

    def command(self, request: ChangelogRequest) -> list[str]:
        cmd = [
            "git-cliff",
            "--config",
            str(self.config_path),
            "--tag",
            request.tag,
            "--unreleased",
            "--output",
            "-",
        ]
        if request.prepend is not None:
            cmd += ["--prepend", str(request.prepend)]
        if request.repository:
            cmd += ["--github-repo", request.repository]
        return cmd

    def generate(self, request: ChangelogRequest) -> Result[str, ReleaseError]:
        """Render the unreleased section, prepending it to a file when asked."""
        cmd = self.command(request)
        if self._console is not None:
            self._console.verbose(f"$ {' '.join(cmd)}")

        env: dict[str, str] | None = None
        if request.token:
            env = {**os.environ, "GITHUB_TOKEN": request.token}

        result = run_process(cmd, cwd=self.cwd, env=env, timeout=GIT_CLIFF_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return Err(
                ReleaseError(
                    kind="command_failed",
                    message="git-cliff failed to generate the changelog",
                    hint=e.detail or None,
                )
            )
        return Ok(result.value)

    def strip_header(self, content: str) -> Result[str, ReleaseError]:
        """Remove the cliff.toml header so the text fits a release body."""
        header = read_cliff_header(self.config_path)
        if isinstance(header, Err):
            return header
        return Ok(strip_header(content, header.value))
