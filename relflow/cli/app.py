from __future__ import annotations

from functools import partial
from pathlib import Path

import typer

from relflow import __version__
from relflow.core.config import ConfigError, load_release_config
from relflow.core.errors import ErrorCode
from relflow.core.options import BumpStrategy, PrereleaseBase, ReleaseType, RunOptions
from relflow.core.result import Err, Ok
from relflow.git.repository import Repository
from relflow.output.console import RichConsole
from relflow.release.env import ReleaseEnv
from relflow.release.pipeline import run_pipeline
from relflow.services.changelog import GitCliff
from relflow.services.github import GhPublisher, resolve_token
from relflow.services.manifests import Manifests

from .common import exit_release, failure_exit_code, print_failure
from .prompts import TerminalPrompter

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def _check_choice(value: str, allowed: list[str], *, optional: bool) -> str:
    if optional and not value:
        return value
    if value not in allowed:
        raise typer.BadParameter(f"{value!r} is not one of: {', '.join(allowed)}")
    return value


def _strategy_choice(value: str) -> str:
    return _check_choice(value, [m.value for m in BumpStrategy], optional=True)


def _release_type_choice(value: str) -> str:
    return _check_choice(value, [m.value for m in ReleaseType], optional=True)


def _base_choice(value: str) -> str:
    return _check_choice(value, [m.value for m in PrereleaseBase], optional=False)


def _resolve_cwd(cwd: Path | None) -> Path:
    try:
        root = (cwd or Path.cwd()).expanduser().resolve()
    except OSError as e:
        exit_release(f"invalid --cwd: {e}", code=ErrorCode.USER_ERROR)
    if not root.is_dir():
        exit_release(f"--cwd '{root}' is not a directory", code=ErrorCode.USER_ERROR)
    return root


def _config_message(e: ConfigError) -> str:
    return f"{e.path}: {e.message}" if e.path else e.message


@app.command()
def release(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show commands and details"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Print actions without mutating"),
    ci: bool = typer.Option(
        False, "--ci", help="No prompts; pick the version from commits unless told otherwise"
    ),
    name: str = typer.Option("", "--name", "-n", help="Package name (default: from manifest)"),
    bump_strategy: str = typer.Option(
        "",
        "--bump-strategy",
        "-s",
        help="auto or manual",
        callback=_strategy_choice,
    ),
    release_type: str = typer.Option(
        "",
        "--release-type",
        "-r",
        help="major/minor/patch/premajor/preminor/prepatch/prerelease",
        callback=_release_type_choice,
    ),
    pre_release_id: str = typer.Option(
        "", "--pre-release-id", "-p", help="Prerelease identifier (defaults to alpha)"
    ),
    pre_release_base: str = typer.Option(
        "0",
        "--pre-release-base",
        "-B",
        help="0, 1, next, canary or nightly",
        callback=_base_choice,
    ),
    skip_bump: bool = typer.Option(False, "--skip-bump", help="Keep the current version"),
    skip_changelog: bool = typer.Option(False, "--skip-changelog", help="Do not update the changelog"),
    skip_release: bool = typer.Option(False, "--skip-release", help="Do not publish a GitHub release"),
    skip_tag: bool = typer.Option(False, "--skip-tag", help="Do not create a tag"),
    skip_commit: bool = typer.Option(False, "--skip-commit", help="Do not commit"),
    skip_push: bool = typer.Option(False, "--skip-push", help="Do not push the commit"),
    skip_push_tag: bool = typer.Option(False, "--skip-push-tag", help="Do not push the tag"),
    bump_only: bool = typer.Option(False, "--bump-only", help="Only bump manifest versions"),
    bump_only_with_changelog: bool = typer.Option(
        False, "--bump-only-with-changelog", help="Only bump versions and update the changelog"
    ),
    github_release_draft: bool = typer.Option(
        False, "--github-release-draft", help="Publish the release as a draft"
    ),
    github_release_prerelease: bool = typer.Option(
        False, "--github-release-prerelease", help="Mark the release as a prerelease"
    ),
    github_release_latest: bool = typer.Option(
        False, "--github-release-latest", help="Mark the release as latest"
    ),
    config: Path | None = typer.Option(None, "--config", help="Config file (default: auto detect)"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Project root (default: current directory)"),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Bump, tag, push and publish a release of the current project."""
    options = RunOptions(
        verbose=verbose,
        dry_run=dry_run,
        ci=ci,
        name=name.strip(),
        bump_strategy=BumpStrategy(bump_strategy) if bump_strategy else None,
        release_type=ReleaseType(release_type) if release_type else None,
        pre_release_id=pre_release_id.strip() or None,
        pre_release_base=PrereleaseBase(pre_release_base),
        skip_bump=skip_bump,
        skip_changelog=skip_changelog,
        skip_release=skip_release,
        skip_tag=skip_tag,
        skip_commit=skip_commit,
        skip_push=skip_push,
        skip_push_tag=skip_push_tag,
        bump_only=bump_only,
        bump_only_with_changelog=bump_only_with_changelog,
        github_release_draft=github_release_draft,
        github_release_prerelease=github_release_prerelease,
        github_release_latest=github_release_latest,
    )

    root = _resolve_cwd(cwd)
    loaded = load_release_config(root, config)
    if isinstance(loaded, Err):
        exit_release(_config_message(loaded.error), code=ErrorCode.USER_ERROR)

    console = RichConsole(verbose=verbose)
    env = ReleaseEnv(
        console=console,
        repository=Repository(root, console=console),
        manifests=Manifests(root),
        changelog=GitCliff(root, console=console),
        publisher=GhPublisher(root, console=console),
        prompter=TerminalPrompter(),
        token_provider=partial(resolve_token, root),
    )

    match run_pipeline(options, loaded.value, root, env):
        case Ok(_):
            raise typer.Exit(code=int(ErrorCode.OK))
        case Err(failure):
            print_failure(failure, console)
            raise typer.Exit(code=int(failure_exit_code(failure)))


def main() -> None:
    app()
