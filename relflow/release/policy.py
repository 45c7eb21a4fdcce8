"""Which stages a run skips, and why."""

from __future__ import annotations

from typing import Literal

from relflow.core.context import RunContext

__all__ = ["StageName", "skip_reason"]

StageName = Literal["verify", "version", "bump", "changelog", "commit", "tag", "push", "release"]


def skip_reason(stage: StageName, context: RunContext) -> str | None:
    """Return why ``stage`` is skipped for this run, None if it runs.

    The bump stage is never skipped outright: with ``--skip-bump`` it still
    pins the next version to the current one.
    """
    o = context.options
    match stage:
        case "verify" | "bump":
            return None
        case "version":
            return "--skip-bump" if o.skip_bump else None
        case "changelog":
            if o.bump_only:
                return "--bump-only"
            if o.skip_changelog:
                return "--skip-changelog"
            if not context.config.changelog.enabled:
                return "changelog disabled in config"
            return None
        case "commit":
            return _bump_only_reason(context) or ("--skip-commit" if o.skip_commit else None)
        case "tag":
            return _bump_only_reason(context) or ("--skip-tag" if o.skip_tag else None)
        case "push":
            if o.skip_push and o.skip_push_tag:
                return "--skip-push and --skip-push-tag"
            return _bump_only_reason(context)
        case "release":
            if reason := _bump_only_reason(context):
                return reason
            if o.skip_release:
                return "--skip-release"
            if not context.config.release.enabled:
                return "GitHub release disabled in config"
            return None


def _bump_only_reason(context: RunContext) -> str | None:
    if context.options.bump_only:
        return "--bump-only"
    if context.options.bump_only_with_changelog:
        return "--bump-only-with-changelog"
    return None
