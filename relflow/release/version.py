"""Next-version resolution.

Two strategies exist. AUTO counts conventional commits since the latest
release tag; MANUAL applies an explicit release type or asks the user.
"""

from __future__ import annotations

import re
from enum import IntEnum

from relflow.core.context import RunContext
from relflow.core.options import BumpStrategy, ReleaseType
from relflow.core.result import Err, Ok, Result
from relflow.git.commits import ConventionalCommit, drop_reverted, parse_commit
from relflow.git.repository import Repository
from relflow.release import semver
from relflow.release.env import Choice, Prompter
from relflow.release.errors import ReleaseError
from relflow.release.semver import SemVer, SemVerError

__all__ = [
    "BumpLevel",
    "CUSTOM_CHOICE",
    "increment",
    "recommend_level",
    "release_type_for_level",
    "latest_release_tag",
    "collect_commits",
    "auto_resolve",
    "version_choices",
    "validate_custom_version",
    "manual_resolve",
    "select_strategy",
    "resolve_version",
]

CUSTOM_CHOICE = "custom"

DEFAULT_CHOICES = (
    ReleaseType.PATCH,
    ReleaseType.MINOR,
    ReleaseType.MAJOR,
    ReleaseType.PREPATCH,
    ReleaseType.PREMINOR,
    ReleaseType.PREMAJOR,
)
PRERELEASE_ONLY_CHOICES = (ReleaseType.PREPATCH, ReleaseType.PREMINOR, ReleaseType.PREMAJOR)
FROM_PRERELEASE_CHOICES = (
    ReleaseType.PRERELEASE,
    ReleaseType.PATCH,
    ReleaseType.MINOR,
    ReleaseType.MAJOR,
)

_DANGLING_PRERELEASE_RE = re.compile(r"^(\d+\.\d+\.\d+)-([\w.-]+)$")
_LOOSE_PRERELEASE_RE = re.compile(r"^\D*\d+(?:\.\d+){0,2}-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)")


class BumpLevel(IntEnum):
    MAJOR = 0
    MINOR = 1
    PATCH = 2


def _current(context: RunContext) -> Result[SemVer, ReleaseError]:
    try:
        return Ok(SemVer.parse(context.current_version))
    except SemVerError:
        return Err(
            ReleaseError(
                kind="resolution",
                message=f"current version is not valid semver: {context.current_version!r}",
            )
        )


def increment(context: RunContext, release_type: ReleaseType) -> Result[str, ReleaseError]:
    """Apply ``release_type`` to the current version.

    Prerelease types use the configured identifier (``alpha`` by default) and
    the configured base. A distribution channel base drops the numeric
    identifier: ``1.2.3`` premajor with ``next`` gives ``2.0.0-alpha``.
    """
    current = _current(context)
    if isinstance(current, Err):
        return current

    options = context.options
    try:
        nxt = current.value.inc(
            release_type.value,
            options.effective_pre_release_id,
            options.pre_release_base.identifier_base(),
        )
    except SemVerError as e:
        return Err(
            ReleaseError(
                kind="resolution",
                message=f"cannot apply a {release_type} increment to {current.value}: {e}",
                hint="Pick another release type or a different --pre-release-id",
            )
        )
    return Ok(str(nxt))


# -----------------------------------------------------------------------------
# Automatic strategy
# -----------------------------------------------------------------------------


def recommend_level(commits: list[ConventionalCommit]) -> BumpLevel:
    """Major on any breaking note, minor on any feat, patch otherwise."""
    breakings = sum(len(c.notes) for c in commits)
    features = sum(1 for c in commits if c.type == "feat")
    if breakings > 0:
        return BumpLevel.MAJOR
    if features > 0:
        return BumpLevel.MINOR
    return BumpLevel.PATCH


def release_type_for_level(context: RunContext, level: BumpLevel) -> ReleaseType:
    options = context.options
    if options.release_type is ReleaseType.PRERELEASE:
        return ReleaseType.PRERELEASE

    match level:
        case BumpLevel.MAJOR:
            plain, pre = ReleaseType.MAJOR, ReleaseType.PREMAJOR
        case BumpLevel.MINOR:
            plain, pre = ReleaseType.MINOR, ReleaseType.PREMINOR
        case BumpLevel.PATCH:
            plain, pre = ReleaseType.PATCH, ReleaseType.PREPATCH
    return pre if options.pre_release_id else plain


def latest_release_tag(repository: Repository) -> Result[str | None, ReleaseError]:
    """Newest tag reachable from HEAD whose name carries a semver version."""
    match repository.merged_tags():
        case Err(e):
            return Err(
                ReleaseError(kind="command_failed", message="failed to list git tags", hint=e.message)
            )
        case Ok(tags):
            for tag in tags:
                # Accepts "v1.2.3", "1.2.3" and "name@1.2.3".
                if semver.clean(tag.rsplit("@", 1)[-1]) is not None:
                    return Ok(tag)
            return Ok(None)


def collect_commits(repository: Repository) -> Result[list[ConventionalCommit], ReleaseError]:
    """Parsed commits since the latest release tag, reverts cancelled out."""
    tag = latest_release_tag(repository)
    if isinstance(tag, Err):
        return tag

    match repository.log(since=tag.value):
        case Err(e):
            return Err(
                ReleaseError(kind="command_failed", message="failed to read git history", hint=e.message)
            )
        case Ok(raw):
            return Ok(drop_reverted([parse_commit(c) for c in raw]))


def auto_resolve(context: RunContext, repository: Repository) -> Result[str, ReleaseError]:
    commits = collect_commits(repository)
    if isinstance(commits, Err):
        return commits
    level = recommend_level(commits.value)
    return increment(context, release_type_for_level(context, level))


# -----------------------------------------------------------------------------
# Manual strategy
# -----------------------------------------------------------------------------


def version_choices(context: RunContext) -> list[tuple[ReleaseType, str]]:
    """Release types offered to the user with the version each would produce.

    Types whose increment fails are left out.
    """
    if context.options.release_type is ReleaseType.PRERELEASE:
        types = PRERELEASE_ONLY_CHOICES
    elif (current := semver.parse(context.current_version)) is not None and current.is_prerelease:
        types = FROM_PRERELEASE_CHOICES
    else:
        types = DEFAULT_CHOICES

    out: list[tuple[ReleaseType, str]] = []
    for release_type in types:
        result = increment(context, release_type)
        if isinstance(result, Ok):
            out.append((release_type, result.value))
    return out


def validate_custom_version(context: RunContext, text: str) -> Result[str | None, ReleaseError]:
    """Normalize a user-typed version.

    Returns:
        Ok(None) for empty input (the caller falls back to the automatic
        strategy), Ok(version) for an acceptable version.
    """
    raw = text.strip()
    if not raw:
        return Ok(None)

    candidate = semver.clean(raw)
    if candidate is None:
        candidate = _normalize_dangling(raw)
    if candidate is None:
        candidate = _coerce_keeping_prerelease(raw)
    if candidate is None:
        return Err(
            ReleaseError(kind="resolution", message=f"Invalid semver version format: {raw}")
        )
    return _ensure_greater(context, candidate)


def _normalize_dangling(raw: str) -> str | None:
    m = _DANGLING_PRERELEASE_RE.match(raw)
    if m is None or semver.valid(m.group(1)) is None:
        return None
    suffix = m.group(2).rstrip(".")
    return semver.valid(f"{m.group(1)}-{suffix}.0")


def _coerce_keeping_prerelease(raw: str) -> str | None:
    coerced = semver.coerce(raw)
    if coerced is None:
        return None
    m = _LOOSE_PRERELEASE_RE.match(raw)
    if m is not None:
        with_pre = semver.valid(f"{coerced.core}-{m.group(1)}")
        if with_pre is not None:
            return with_pre
    return str(coerced)


def _ensure_greater(context: RunContext, candidate: str) -> Result[str, ReleaseError]:
    current = _current(context)
    if isinstance(current, Err):
        return current
    if SemVer.parse(candidate) <= current.value:
        return Err(
            ReleaseError(
                kind="resolution",
                message=f"Version must be higher than current version: {candidate}",
                hint=f"current version is {current.value}",
            )
        )
    return Ok(candidate)


def manual_resolve(
    context: RunContext, repository: Repository, prompter: Prompter
) -> Result[str, ReleaseError]:
    if context.options.release_type is not None:
        return increment(context, context.options.release_type)
    if context.options.ci:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message="--ci with a manual strategy needs --release-type",
                hint="Pass --release-type, or drop --bump-strategy manual to pick from commits",
            )
        )

    options = [
        Choice(value=version, label=version, detail=str(release_type))
        for release_type, version in version_choices(context)
    ]
    options.append(Choice(value=CUSTOM_CHOICE, label=CUSTOM_CHOICE, detail="type a version"))

    selected = prompter.select(f"Current version {context.current_version}, next version?", options)
    if isinstance(selected, Err):
        return selected
    if selected.value != CUSTOM_CHOICE:
        return Ok(selected.value)

    typed = prompter.text("Custom version (empty for automatic)")
    if isinstance(typed, Err):
        return typed
    custom = validate_custom_version(context, typed.value)
    if isinstance(custom, Err):
        return custom
    if custom.value is None:
        return auto_resolve(context, repository)
    return Ok(custom.value)


# -----------------------------------------------------------------------------
# Strategy
# -----------------------------------------------------------------------------


def select_strategy(context: RunContext, prompter: Prompter) -> Result[BumpStrategy, ReleaseError]:
    """Pick the bump strategy.

    Precedence: explicit strategy, explicit release type (manual), CI mode
    (auto), then an interactive prompt with manual preselected.
    """
    options = context.options
    if options.bump_strategy is not None:
        return Ok(options.bump_strategy)
    if options.release_type is not None:
        return Ok(BumpStrategy.MANUAL)
    if options.ci:
        return Ok(BumpStrategy.AUTO)

    selected = prompter.select(
        "How should the next version be chosen?",
        [
            Choice(value=BumpStrategy.AUTO.value, label="auto", detail="from conventional commits"),
            Choice(value=BumpStrategy.MANUAL.value, label="manual", detail="pick a release type"),
        ],
        initial_index=1,
    )
    if isinstance(selected, Err):
        return selected
    return Ok(BumpStrategy(selected.value))


def resolve_version(
    context: RunContext, repository: Repository, prompter: Prompter
) -> Result[str, ReleaseError]:
    """Resolve the next version, guaranteed greater than the current one."""
    strategy = select_strategy(context, prompter)
    if isinstance(strategy, Err):
        return strategy

    match strategy.value:
        case BumpStrategy.AUTO:
            resolved = auto_resolve(context, repository)
        case BumpStrategy.MANUAL:
            resolved = manual_resolve(context, repository, prompter)

    if isinstance(resolved, Err):
        return resolved
    return _ensure_greater(context, resolved.value)
