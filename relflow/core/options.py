"""Run options: the validated form of the command line flags."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from .result import Err, Ok, Result

__all__ = [
    "BumpStrategy",
    "ReleaseType",
    "PrereleaseBase",
    "RunOptions",
    "DEFAULT_PRERELEASE_ID",
    "validate_release_flags",
]

DEFAULT_PRERELEASE_ID = "alpha"


class BumpStrategy(StrEnum):
    """How the next version is chosen."""

    AUTO = "auto"  # from conventional commits since the last tag
    MANUAL = "manual"  # explicit release type or interactive choice


class ReleaseType(StrEnum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PREMAJOR = "premajor"
    PREMINOR = "preminor"
    PREPATCH = "prepatch"
    PRERELEASE = "prerelease"

    @property
    def is_prerelease(self) -> bool:
        return self.value.startswith("pre")


class PrereleaseBase(StrEnum):
    """Starting point of the numeric prerelease identifier.

    ``0`` and ``1`` are numeric starts. The distribution channels (``next``,
    ``canary``, ``nightly``) disable the numeric identifier entirely.
    """

    ZERO = "0"
    ONE = "1"
    NEXT = "next"
    CANARY = "canary"
    NIGHTLY = "nightly"

    def identifier_base(self) -> Literal["0", "1", False]:
        """Value handed to the semver increment as its identifier base."""
        match self:
            case PrereleaseBase.ZERO:
                return "0"
            case PrereleaseBase.ONE:
                return "1"
            case PrereleaseBase.NEXT | PrereleaseBase.CANARY | PrereleaseBase.NIGHTLY:
                return False


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Flags for one release run.

    ``bump_strategy``, ``release_type`` and ``pre_release_id`` are None when
    the flag was not given. An unset ``pre_release_id`` still increments
    prereleases with ``alpha`` but does not turn automatic bumps into
    prerelease bumps.
    """

    verbose: bool = False
    dry_run: bool = False
    ci: bool = False
    name: str = ""
    bump_strategy: BumpStrategy | None = None
    release_type: ReleaseType | None = None
    pre_release_id: str | None = None
    pre_release_base: PrereleaseBase = PrereleaseBase.ZERO
    skip_bump: bool = False
    skip_changelog: bool = False
    skip_release: bool = False
    skip_tag: bool = False
    skip_commit: bool = False
    skip_push: bool = False
    skip_push_tag: bool = False
    bump_only: bool = False
    bump_only_with_changelog: bool = False
    github_release_draft: bool = False
    github_release_prerelease: bool = False
    github_release_latest: bool = False

    @property
    def effective_pre_release_id(self) -> str:
        return self.pre_release_id or DEFAULT_PRERELEASE_ID

    @property
    def bump_only_family(self) -> bool:
        """True when either umbrella flag stops the run after bump/changelog."""
        return self.bump_only or self.bump_only_with_changelog


def validate_release_flags(options: RunOptions) -> Result[None, str]:
    """Check the GitHub release flag combination.

    Returns:
        Ok(None) when valid, Err(message) naming the first violated rule.
    """
    draft = options.github_release_draft
    prerelease = options.github_release_prerelease
    latest = options.github_release_latest

    if draft and not prerelease:
        return Err("A draft release must be a prerelease.")
    if latest and (draft or prerelease):
        return Err("A latest release cannot be a draft or prerelease.")
    if prerelease and draft:
        return Err("A prerelease cannot be a draft.")
    return Ok(None)
