"""Collaborators a release run talks to.

Stages never construct their own I/O objects; they receive a ``ReleaseEnv``.
Production wiring lives in ``relflow.cli.app``; tests pass fakes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from relflow.core.result import Result
from relflow.git.repository import Repository
from relflow.output.console import ConsoleProtocol
from relflow.platform.process import command_available
from relflow.release.errors import ReleaseError
from relflow.services.changelog import ChangelogRequest
from relflow.services.github import ReleaseRequest
from relflow.services.manifests import Manifests

__all__ = [
    "Choice",
    "ChangelogGenerator",
    "Prompter",
    "ReleaseEnv",
    "ReleasePublisher",
]


@dataclass(frozen=True, slots=True)
class Choice:
    """One entry of an interactive list."""

    value: str
    label: str
    detail: str | None = None


class Prompter(Protocol):
    """Interactive input. Cancellation and missing TTY come back as errors."""

    def select(
        self, title: str, choices: list[Choice], *, initial_index: int = 0
    ) -> Result[str, ReleaseError]: ...

    def text(self, message: str) -> Result[str, ReleaseError]: ...


class ChangelogGenerator(Protocol):
    def generate(self, request: ChangelogRequest) -> Result[str, ReleaseError]: ...

    def strip_header(self, content: str) -> Result[str, ReleaseError]: ...


class ReleasePublisher(Protocol):
    def publish(self, request: ReleaseRequest) -> Result[str, ReleaseError]: ...


def _no_token() -> str | None:
    return None


@dataclass(frozen=True, slots=True)
class ReleaseEnv:
    """Everything a stage may touch outside the run context.

    Attributes:
        console: Progress and verbose output
        repository: Git working tree of the project
        manifests: Version files of the project
        changelog: git-cliff runner
        publisher: GitHub release publisher
        prompter: Interactive input (version choices)
        token_provider: GitHub token lookup for the changelog generator
        which: Executable lookup used by the tool checks
    """

    console: ConsoleProtocol
    repository: Repository
    manifests: Manifests
    changelog: ChangelogGenerator
    publisher: ReleasePublisher
    prompter: Prompter
    token_provider: Callable[[], str | None] = _no_token
    which: Callable[[str], bool] = command_available
