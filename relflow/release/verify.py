"""Preflight and repository-state verification.

Checks run in a fixed order and stop at the first failure. Tool checks are
fatal environment errors; repository checks are precondition failures.
"""

from __future__ import annotations

from collections.abc import Callable

from relflow.core.context import RunContext
from relflow.core.result import Err, Ok, Result
from relflow.release.checks import CheckResult
from relflow.release.env import ReleaseEnv
from relflow.release.errors import ReleaseError
from relflow.release.policy import skip_reason
from relflow.services.changelog import CLIFF_CONFIG_FILE

__all__ = [
    "check_git",
    "check_release_tools",
    "check_cliff_config",
    "check_work_tree",
    "check_branch",
    "check_clean",
    "check_upstream",
    "run_verification",
]

type Check = Callable[[RunContext, ReleaseEnv], CheckResult]

_DRY_RUN = "skipped (dry run)"


def check_git(context: RunContext, env: ReleaseEnv) -> CheckResult:
    if not env.which("git"):
        return CheckResult.error(
            "git",
            "Git is not available. Please install Git and try again.",
            hint="https://git-scm.com/downloads",
        )
    match env.repository.version():
        case Ok(version):
            return CheckResult.success("git", version)
        case Err(e):
            return CheckResult.error("git", "Git is installed but `git --version` failed", e.message)


def check_release_tools(context: RunContext, env: ReleaseEnv) -> CheckResult:
    """git-cliff and gh, only when a real run will call them."""
    if context.options.dry_run:
        return CheckResult.skipped("tools", _DRY_RUN)

    missing: list[str] = []
    if skip_reason("changelog", context) is None and not env.which("git-cliff"):
        missing.append("git-cliff")
    if skip_reason("release", context) is None and not env.which("gh"):
        missing.append("gh")

    if missing:
        return CheckResult.error(
            "tools",
            f"missing required tools: {', '.join(missing)}",
            hint="git-cliff: https://git-cliff.org  gh: https://cli.github.com",
        )
    return CheckResult.success("tools", "release tools available")


def check_cliff_config(context: RunContext, env: ReleaseEnv) -> CheckResult:
    """cliff.toml must exist, dry run included."""
    if (context.cwd / CLIFF_CONFIG_FILE).is_file():
        return CheckResult.success("cliff", f"{CLIFF_CONFIG_FILE} found")
    return CheckResult.error(
        "cliff",
        f"Could not find {CLIFF_CONFIG_FILE} in the current working directory.",
        hint="Run `git-cliff --init` to create one",
    )


def check_work_tree(context: RunContext, env: ReleaseEnv) -> CheckResult:
    if context.options.dry_run:
        return CheckResult.skipped("repository", _DRY_RUN)
    if env.repository.is_inside_work_tree():
        return CheckResult.success("repository", "inside a git working tree")
    return CheckResult.error(
        "repository", "Could not find a git repository in the current working directory."
    )


def check_branch(context: RunContext, env: ReleaseEnv) -> CheckResult:
    git = context.config.git
    if not git.require_branch:
        return CheckResult.skipped("branch", "branch check not required")
    if context.options.dry_run:
        return CheckResult.skipped("branch", _DRY_RUN)

    allowed = ", ".join(git.branches)
    match env.repository.current_branch():
        case Err(e):
            return CheckResult.error("branch", "Could not determine the current branch.", e.message)
        case Ok(branch):
            if branch in git.branches:
                return CheckResult.success("branch", f"on {branch}")
            return CheckResult.error(
                "branch",
                f"Current branch is not allowed for releasing. Allowed branches: {allowed}",
                hint=f"current branch is {branch}",
            )


def check_clean(context: RunContext, env: ReleaseEnv) -> CheckResult:
    if not context.config.git.require_clean_working_dir:
        return CheckResult.skipped("clean", "clean working directory not required")
    if context.options.dry_run:
        return CheckResult.skipped("clean", _DRY_RUN)

    match env.repository.is_clean():
        case Err(e):
            return CheckResult.error("clean", "Could not read the working tree status.", e.message)
        case Ok(True):
            return CheckResult.success("clean", "working tree clean")
        case Ok(_):
            return CheckResult.error(
                "clean",
                "There are uncommitted changes in the current working directory.",
                hint="Commit or stash them, or set git.require_clean_working_dir = false",
            )


def check_upstream(context: RunContext, env: ReleaseEnv) -> CheckResult:
    if not context.config.git.require_upstream:
        return CheckResult.skipped("upstream", "upstream not required")
    if context.options.dry_run:
        return CheckResult.skipped("upstream", _DRY_RUN)

    upstream = env.repository.upstream()
    if upstream is not None:
        return CheckResult.success("upstream", f"tracking {upstream}")
    return CheckResult.error(
        "upstream",
        "No upstream branch found. Please set an upstream branch before running this command.",
        hint="git push --set-upstream origin <branch>",
    )


PREFLIGHT_CHECKS: tuple[Check, ...] = (check_git, check_release_tools)
REPOSITORY_CHECKS: tuple[Check, ...] = (
    check_cliff_config,
    check_work_tree,
    check_branch,
    check_clean,
    check_upstream,
)


def _report(env: ReleaseEnv, result: CheckResult) -> None:
    env.console.verbose(f"{result.name}: [{result.status.name.lower()}] {result.message}")


def run_verification(context: RunContext, env: ReleaseEnv) -> Result[None, ReleaseError]:
    """Run preflight then repository checks, stopping at the first failure."""
    for check in PREFLIGHT_CHECKS:
        result = check(context, env)
        _report(env, result)
        if result.is_error:
            return Err(ReleaseError(kind="tool_missing", message=result.message, hint=result.hint))

    for check in REPOSITORY_CHECKS:
        result = check(context, env)
        _report(env, result)
        if result.is_error:
            return Err(ReleaseError(kind="precondition", message=result.message, hint=result.hint))

    env.console.success("verification passed")
    return Ok(None)
