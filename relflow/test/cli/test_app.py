from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from relflow import __version__
from relflow.core.config import ReleaseConfig
from relflow.core.context import RunContext
from relflow.core.errors import ErrorCode
from relflow.core.options import BumpStrategy, PrereleaseBase, ReleaseType, RunOptions
from relflow.core.result import Err, Ok
from relflow.release.errors import ReleaseError
from relflow.release.pipeline import PipelineFailure
from relflow.release.rollback import RollbackReport

runner = CliRunner()


def _capture_pipeline(
    monkeypatch: pytest.MonkeyPatch, outcome: object = None
) -> list[RunOptions]:
    import relflow.cli.app as app_mod

    seen: list[RunOptions] = []

    def fake_run(options: RunOptions, config: ReleaseConfig, cwd: Path, env: object) -> object:
        seen.append(options)
        if outcome is not None:
            return outcome
        return Ok(RunContext(options=options, config=config, cwd=cwd))

    monkeypatch.setattr(app_mod, "run_pipeline", fake_run)
    return seen


def test_version_flag() -> None:
    from relflow.cli.app import app

    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_flags_map_to_options(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from relflow.cli.app import app

    seen = _capture_pipeline(monkeypatch)
    result = runner.invoke(
        app,
        [
            "--cwd",
            str(tmp_path),
            "-d",
            "-s",
            "manual",
            "-r",
            "preminor",
            "-p",
            "beta",
            "-B",
            "next",
            "--skip-push-tag",
            "--github-release-prerelease",
        ],
    )

    assert result.exit_code == 0, result.output
    options = seen[0]
    assert options.dry_run is True
    assert options.bump_strategy is BumpStrategy.MANUAL
    assert options.release_type is ReleaseType.PREMINOR
    assert options.pre_release_id == "beta"
    assert options.pre_release_base is PrereleaseBase.NEXT
    assert options.skip_push_tag is True
    assert options.github_release_prerelease is True


def test_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from relflow.cli.app import app

    seen = _capture_pipeline(monkeypatch)
    result = runner.invoke(app, ["--cwd", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert seen[0] == RunOptions()


@pytest.mark.parametrize(
    "args",
    [
        ["--release-type", "huge"],
        ["--bump-strategy", "random"],
        ["--pre-release-base", "2"],
    ],
)
def test_invalid_enum_values_are_usage_errors(tmp_path: Path, args: list[str]) -> None:
    from relflow.cli.app import app

    result = runner.invoke(app, ["--cwd", str(tmp_path), *args])

    assert result.exit_code == 2


def test_invalid_config_is_user_error(tmp_path: Path) -> None:
    from relflow.cli.app import app

    (tmp_path / "relflow.toml").write_text("[git]\nrequire_branch = 'yes'\n")

    result = runner.invoke(app, ["--cwd", str(tmp_path)])

    assert result.exit_code == int(ErrorCode.USER_ERROR)
    assert "git.require_branch must be a boolean" in result.output


def test_draft_without_prerelease_is_user_error(tmp_path: Path) -> None:
    from relflow.cli.app import app

    result = runner.invoke(app, ["--cwd", str(tmp_path), "--github-release-draft"])

    assert result.exit_code == int(ErrorCode.USER_ERROR)
    assert "A draft release must be a prerelease." in result.output


@pytest.mark.parametrize(
    ("failure", "code"),
    [
        (PipelineFailure(ReleaseError(kind="tool_missing", message="gh: missing")), ErrorCode.ENV_ERROR),
        (
            PipelineFailure(ReleaseError(kind="precondition", message="dirty"), stage="verify"),
            ErrorCode.PRECONDITION_ERROR,
        ),
        (
            PipelineFailure(
                ReleaseError(kind="command_failed", message="push rejected"),
                stage="push",
                rollback=RollbackReport(undone=("tag v1.3.0",)),
            ),
            ErrorCode.COMMAND_ERROR,
        ),
        (
            PipelineFailure(
                ReleaseError(kind="command_failed", message="push rejected"),
                stage="push",
                rollback=RollbackReport(
                    fallback_ran=True,
                    fallback_error=ReleaseError(kind="rollback_failed", message="reset failed"),
                ),
            ),
            ErrorCode.ROLLBACK_ERROR,
        ),
    ],
)
def test_failure_exit_codes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, failure: PipelineFailure, code: ErrorCode
) -> None:
    from relflow.cli.app import app

    _capture_pipeline(monkeypatch, Err(failure))
    result = runner.invoke(app, ["--cwd", str(tmp_path)])

    assert result.exit_code == int(code)
    assert failure.error.message in result.output
