"""Release stages.

A stage takes the current ``RunContext`` and returns a new one, plus the undo
action for what it changed. Stages never touch the ledger themselves; the
pipeline driver records the returned action.

Every mutating stage honours ``--dry-run`` by reporting what it would do.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from relflow.core.context import RunContext
from relflow.core.result import Err, Ok, Result
from relflow.release.env import ReleaseEnv
from relflow.release.errors import ReleaseError
from relflow.release.policy import StageName, skip_reason
from relflow.release.rollback import (
    DeleteTag,
    ResetCommit,
    RestoreChangelog,
    RestoreManifests,
    RevertPush,
    UndoAction,
)
from relflow.release.verify import run_verification
from relflow.release.version import resolve_version
from relflow.services.changelog import ChangelogRequest
from relflow.services.github import ReleaseRequest

__all__ = [
    "Stage",
    "StageOutput",
    "STAGES",
    "verify_stage",
    "version_stage",
    "bump_stage",
    "changelog_stage",
    "commit_stage",
    "tag_stage",
    "push_stage",
    "release_stage",
]

DEFAULT_REMOTE = "origin"


@dataclass(frozen=True, slots=True)
class StageOutput:
    """What a successful stage hands back to the driver."""

    context: RunContext
    undo: UndoAction | None = None
    description: str = ""


type StageResult = Result[StageOutput, ReleaseError]
type StageFn = Callable[[RunContext, ReleaseEnv], StageResult]


@dataclass(frozen=True, slots=True)
class Stage:
    name: StageName
    title: str
    run: StageFn


def _passthrough(context: RunContext) -> StageResult:
    return Ok(StageOutput(context=context))


def _skipped(context: RunContext, env: ReleaseEnv, stage: StageName) -> StageResult | None:
    reason = skip_reason(stage, context)
    if reason is None:
        return None
    env.console.info(f"skipping {stage} ({reason})")
    return _passthrough(context)


def _dry(env: ReleaseEnv, message: str) -> None:
    env.console.info(f"[dry-run] {message}")


def _git_failed(message: str, detail: str) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="command_failed", message=message, hint=detail or None))


# -----------------------------------------------------------------------------
# verify / version
# -----------------------------------------------------------------------------


def verify_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    verified = run_verification(context, env)
    if isinstance(verified, Err):
        return verified
    return _passthrough(context)


def version_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    if (skipped := _skipped(context, env, "version")) is not None:
        return skipped

    resolved = resolve_version(context, env.repository, env.prompter)
    if isinstance(resolved, Err):
        return resolved

    env.console.success(f"{context.current_version} -> {resolved.value}")
    return _passthrough(context.with_next_version(resolved.value))


# -----------------------------------------------------------------------------
# bump
# -----------------------------------------------------------------------------


def bump_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    """Write the next version into every manifest present."""
    if context.options.skip_bump:
        env.console.info("skipping bump (--skip-bump), keeping the current version")
        return _passthrough(context.with_next_version(context.current_version))

    paths = env.manifests.present()
    if not paths:
        return Err(ReleaseError(kind="config", message="no project manifest to bump"))

    version = context.next_version
    if context.options.dry_run:
        for path in paths:
            _dry(env, f"write version {version} to {path.name}")
        return _passthrough(context)

    previous: list[tuple[Path, str]] = []
    for path in paths:
        info = env.manifests.read(path)
        if isinstance(info, Err):
            _restore_partial(env, previous)
            return info

        written = env.manifests.write_version(path, version)
        if isinstance(written, Err):
            _restore_partial(env, previous)
            return written
        if written.value:
            previous.append((path, info.value.version))
            env.console.verbose(f"{path.name}: {info.value.version} -> {version}")

    env.console.success(f"bumped {', '.join(p.name for p in paths)} to {version}")
    if not previous:
        return _passthrough(context)
    undo = RestoreManifests(files=tuple((str(p), v) for p, v in previous))
    return Ok(StageOutput(context, undo, f"version bump to {version}"))


def _restore_partial(env: ReleaseEnv, previous: list[tuple[Path, str]]) -> None:
    for path, version in previous:
        restored = env.manifests.write_version(path, version)
        if isinstance(restored, Err):
            env.console.warning(f"could not restore {path.name}: {restored.error.message}")


# -----------------------------------------------------------------------------
# changelog
# -----------------------------------------------------------------------------


def changelog_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    if (skipped := _skipped(context, env, "changelog")) is not None:
        return skipped

    path = context.changelog_path
    if context.options.dry_run:
        _dry(env, f"prepend the {context.tag_name} section to {context.config.changelog.path}")
        return _passthrough(context)

    created = not path.exists()
    previous: str | None = None
    if created:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
        except OSError as e:
            return Err(ReleaseError(kind="io", message=f"failed to create {path.name}: {e}"))
    elif not env.repository.is_tracked(str(path)):
        try:
            previous = path.read_text(encoding="utf-8")
        except OSError as e:
            return Err(ReleaseError(kind="io", message=f"failed to read {path.name}: {e}"))

    request = ChangelogRequest(
        tag=context.tag_name,
        prepend=path,
        repository=context.repository or None,
        token=env.token_provider(),
    )
    generated = env.changelog.generate(request)
    if isinstance(generated, Err):
        if created:
            path.unlink(missing_ok=True)
        return generated

    if not generated.value.strip():
        env.console.warning("git-cliff produced an empty changelog section")
    env.console.success(f"updated {context.config.changelog.path}")
    undo = RestoreChangelog(path=str(path), created=created, previous=previous)
    return Ok(
        StageOutput(
            context.with_changelog(generated.value),
            undo,
            f"changelog update of {context.config.changelog.path}",
        )
    )


# -----------------------------------------------------------------------------
# commit / tag
# -----------------------------------------------------------------------------


def commit_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    if (skipped := _skipped(context, env, "commit")) is not None:
        return skipped

    message = context.commit_message
    if context.options.dry_run:
        _dry(env, f'commit all changes as "{message}"')
        return _passthrough(context)

    added = env.repository.add_all()
    if isinstance(added, Err):
        return _git_failed("failed to stage release changes", added.error.message)
    committed = env.repository.commit(message)
    if isinstance(committed, Err):
        return _git_failed("failed to create the release commit", committed.error.message)

    env.console.success(f'committed "{message}"')
    return Ok(StageOutput(context, ResetCommit(), f'commit "{message}"'))


def tag_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    """Create an annotated tag, signed when ``user.signingkey`` is set."""
    if (skipped := _skipped(context, env, "tag")) is not None:
        return skipped

    tag = context.tag_name
    if context.options.dry_run:
        _dry(env, f"create tag {tag}")
        return _passthrough(context)

    sign = env.repository.signing_key() is not None
    env.console.verbose("signing key configured, creating a signed tag" if sign else "no signing key")
    created = env.repository.create_tag(tag, context.tag_annotation, sign=sign)
    if isinstance(created, Err):
        return _git_failed(f"failed to create tag {tag}", created.error.message)

    env.console.success(f"{'signed ' if sign else ''}tag {tag} created")
    return Ok(StageOutput(context, DeleteTag(tag=tag), f"tag {tag}"))


# -----------------------------------------------------------------------------
# push
# -----------------------------------------------------------------------------


def push_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    """Push the commit and/or the tag, whichever half is not skipped."""
    if (skipped := _skipped(context, env, "push")) is not None:
        return skipped

    options = context.options
    push_commit = not options.skip_push
    push_tag = not options.skip_push_tag
    tag = context.tag_name

    if options.dry_run:
        if push_commit:
            _dry(env, "push the release commit")
        if push_tag:
            _dry(env, f"push tag {tag}")
        return _passthrough(context)

    repo = env.repository
    upstream = repo.upstream()
    remote = upstream.split("/", 1)[0] if upstream else DEFAULT_REMOTE

    branch: str | None = None
    previous_sha: str | None = None
    if push_commit:
        if upstream is None:
            return Err(
                ReleaseError(
                    kind="command_failed",
                    message="cannot push: the current branch has no upstream",
                    hint="git push --set-upstream origin <branch>, or pass --skip-push",
                )
            )
        branch = upstream.split("/", 1)[1]
        sha = repo.rev_parse(upstream)
        if isinstance(sha, Err):
            return _git_failed(f"failed to resolve {upstream}", sha.error.message)
        previous_sha = sha.value

        pushed = repo.push()
        if isinstance(pushed, Err):
            return _git_failed("failed to push the release commit", pushed.error.message)
        env.console.success(f"pushed to {upstream}")

    if push_tag:
        pushed_tag = repo.push_tag(remote, tag)
        if isinstance(pushed_tag, Err):
            if branch is not None and previous_sha is not None:
                reverted = repo.force_push(remote, previous_sha, branch)
                if isinstance(reverted, Err):
                    env.console.warning(f"could not revert the pushed commit: {reverted.error.message}")
            return _git_failed(f"failed to push tag {tag}", pushed_tag.error.message)
        env.console.success(f"pushed tag {tag} to {remote}")

    undo = RevertPush(
        remote=remote,
        branch=branch,
        previous_sha=previous_sha,
        tag=tag if push_tag else None,
    )
    return Ok(StageOutput(context, undo, f"push to {remote}"))


# -----------------------------------------------------------------------------
# release
# -----------------------------------------------------------------------------


def release_stage(context: RunContext, env: ReleaseEnv) -> StageResult:
    """Publish the GitHub release. Published releases are not rolled back."""
    if (skipped := _skipped(context, env, "release")) is not None:
        return skipped

    options = context.options
    title = context.release_title
    if options.dry_run:
        _dry(
            env,
            f'publish GitHub release "{title}" for {context.tag_name} on {context.repository} '
            f"(draft={options.github_release_draft}, prerelease={options.github_release_prerelease}, "
            f"latest={options.github_release_latest})",
        )
        return _passthrough(context)

    body = env.changelog.strip_header(context.changelog_content)
    if isinstance(body, Err):
        return body

    request = ReleaseRequest(
        repository=context.repository,
        tag_name=context.tag_name,
        title=title,
        body=body.value.strip(),
        draft=options.github_release_draft,
        prerelease=options.github_release_prerelease,
        latest=options.github_release_latest,
    )
    published = env.publisher.publish(request)
    if isinstance(published, Err):
        return published

    env.console.success(f"published {title}" + (f": {published.value}" if published.value else ""))
    return _passthrough(context)


STAGES: tuple[Stage, ...] = (
    Stage("verify", "Verifying", verify_stage),
    Stage("version", "Resolving version", version_stage),
    Stage("bump", "Bumping version", bump_stage),
    Stage("changelog", "Generating changelog", changelog_stage),
    Stage("commit", "Committing", commit_stage),
    Stage("tag", "Tagging", tag_stage),
    Stage("push", "Pushing", push_stage),
    Stage("release", "Publishing release", release_stage),
)
