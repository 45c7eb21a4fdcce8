"""Tests for release/verify.py."""

from __future__ import annotations

from typing import TYPE_CHECKING

from relflow.core.config import GitConfig, ReleaseConfig
from relflow.core.options import RunOptions
from relflow.core.result import Err, Ok
from relflow.release.checks import CheckStatus
from relflow.release.verify import (
    check_branch,
    check_clean,
    check_release_tools,
    check_upstream,
    run_verification,
)

if TYPE_CHECKING:
    from conftest import World


def git_config(**kwargs: object) -> ReleaseConfig:
    return ReleaseConfig(git=GitConfig(**kwargs))  # type: ignore[arg-type]


class TestRunVerification:
    def test_all_checks_pass(self, world: World) -> None:
        assert run_verification(world.context(), world.env) == Ok(None)
        assert world.console.find("verification passed")

    def test_missing_git(self, world: World) -> None:
        world.missing_tools.add("git")

        result = run_verification(world.context(), world.env)

        assert isinstance(result, Err)
        assert result.error.kind == "tool_missing"
        assert result.error.message == "Git is not available. Please install Git and try again."

    def test_missing_cliff_config(self, world: World) -> None:
        (world.root / "cliff.toml").unlink()

        result = run_verification(world.context(RunOptions(dry_run=True)), world.env)

        assert isinstance(result, Err)
        assert result.error.kind == "precondition"
        assert "cliff.toml" in result.error.message

    def test_not_a_repository(self, world: World) -> None:
        world.repo.fail["is_inside_work_tree"] = "fatal"

        result = run_verification(world.context(), world.env)

        assert isinstance(result, Err)
        assert result.error.message == (
            "Could not find a git repository in the current working directory."
        )

    def test_stops_at_first_failure(self, world: World) -> None:
        world.repo.clean = False
        world.repo.tracking = None
        config = git_config(require_upstream=True)

        result = run_verification(world.context(config=config), world.env)

        assert isinstance(result, Err)
        assert "uncommitted changes" in result.error.message

    def test_dry_run_skips_repository_state(self, world: World) -> None:
        world.repo.clean = False
        world.repo.fail["is_inside_work_tree"] = "fatal"

        result = run_verification(world.context(RunOptions(dry_run=True)), world.env)

        assert result == Ok(None)


class TestReleaseTools:
    def test_missing_tools_for_stages_that_run(self, world: World) -> None:
        world.missing_tools.update({"git-cliff", "gh"})

        result = check_release_tools(world.context(), world.env)

        assert result.status is CheckStatus.ERROR
        assert result.message == "missing required tools: git-cliff, gh"

    def test_tools_not_needed_when_stages_skip(self, world: World) -> None:
        world.missing_tools.update({"git-cliff", "gh"})
        ctx = world.context(RunOptions(bump_only=True))

        assert check_release_tools(ctx, world.env).status is CheckStatus.OK

    def test_skipped_in_dry_run(self, world: World) -> None:
        world.missing_tools.add("gh")
        ctx = world.context(RunOptions(dry_run=True))

        assert check_release_tools(ctx, world.env).status is CheckStatus.SKIPPED


class TestRepositoryChecks:
    def test_branch_not_required(self, world: World) -> None:
        world.repo.branch = "feature/x"
        assert check_branch(world.context(), world.env).status is CheckStatus.SKIPPED

    def test_branch_allowed(self, world: World) -> None:
        ctx = world.context(config=git_config(require_branch=True))
        assert check_branch(ctx, world.env).status is CheckStatus.OK

    def test_branch_rejected(self, world: World) -> None:
        world.repo.branch = "feature/x"
        ctx = world.context(config=git_config(require_branch=True, branches=("release",)))

        result = check_branch(ctx, world.env)

        assert result.is_error
        assert result.message == (
            "Current branch is not allowed for releasing. Allowed branches: release"
        )

    def test_clean_not_required(self, world: World) -> None:
        world.repo.clean = False
        ctx = world.context(config=git_config(require_clean_working_dir=False))
        assert check_clean(ctx, world.env).status is CheckStatus.SKIPPED

    def test_upstream_required(self, world: World) -> None:
        world.repo.tracking = None
        ctx = world.context(config=git_config(require_upstream=True))

        result = check_upstream(ctx, world.env)

        assert result.is_error
        assert result.message.startswith("No upstream branch found.")
