"""Release pipeline driver.

Runs the stages in order, records each stage's undo action in a
``RollbackLedger`` and unwinds the ledger when a stage fails.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from relflow.core.config import ReleaseConfig
from relflow.core.context import RunContext
from relflow.core.options import RunOptions, validate_release_flags
from relflow.core.result import Err, Ok, Result
from relflow.release.env import ReleaseEnv
from relflow.release.errors import ReleaseError
from relflow.release.rollback import (
    Compensator,
    GitCompensator,
    RollbackLedger,
    RollbackReport,
    rollback,
)
from relflow.release.semver import valid
from relflow.release.stages import STAGES, Stage
from relflow.services.github import resolve_repository

__all__ = ["PipelineFailure", "build_context", "run_pipeline"]


@dataclass(frozen=True, slots=True)
class PipelineFailure:
    """A failed run.

    Attributes:
        error: The error that stopped the run
        stage: Stage that failed, None when the run failed before the stages
        context: Last context reached, None when it could not be built
        rollback: Outcome of the rollback, None when nothing was recorded
    """

    error: ReleaseError
    stage: str | None = None
    context: RunContext | None = None
    rollback: RollbackReport | None = None


def build_context(
    options: RunOptions, config: ReleaseConfig, cwd: Path, env: ReleaseEnv
) -> Result[RunContext, ReleaseError]:
    """Read the project manifest and remote to fill in the initial context."""
    manifest = env.manifests.primary()
    if isinstance(manifest, Err):
        return manifest
    info = manifest.value

    if valid(info.version) is None:
        return Err(
            ReleaseError(
                kind="config",
                message=f"{info.path.name} holds an invalid version: {info.version!r}",
            )
        )

    repository = resolve_repository(config.git.repository, env.repository)
    if isinstance(repository, Err):
        return repository

    name = options.name or info.name or cwd.name
    context = RunContext(options=options, config=config, cwd=cwd)
    return Ok(
        context.with_enrichment(
            name=name, repository=repository.value, current_version=info.version
        )
    )


def run_pipeline(
    options: RunOptions,
    config: ReleaseConfig,
    cwd: Path,
    env: ReleaseEnv,
    *,
    stages: Sequence[Stage] = STAGES,
    compensator: Compensator | None = None,
) -> Result[RunContext, PipelineFailure]:
    """Run a release from flag validation to publication.

    Returns:
        Ok(final context), or Err(PipelineFailure) after rollback.
    """
    console = env.console

    flags = validate_release_flags(options)
    if isinstance(flags, Err):
        return Err(PipelineFailure(ReleaseError(kind="config", message=flags.error)))

    built = build_context(options, config, cwd, env)
    if isinstance(built, Err):
        return Err(PipelineFailure(built.error))
    context = built.value

    if options.dry_run:
        console.warning("dry run: nothing will be written, committed or pushed")
    console.verbose(
        f"releasing {context.name} ({context.repository}) from {context.current_version}"
    )

    ledger = RollbackLedger()
    for stage in stages:
        console.header(stage.title)
        result = stage.run(context, env)
        match result:
            case Ok(output):
                context = output.context
                if output.undo is not None:
                    ledger.record(stage.name, output.description or stage.name, output.undo)
            case Err(error):
                console.error(f"{stage.name} failed: {error.message}")
                if error.hint:
                    console.verbose(error.hint)
                report = _unwind(ledger, env, compensator)
                return Err(PipelineFailure(error, stage.name, context, report))

    console.newline()
    console.success(
        f"{'[dry-run] ' if options.dry_run else ''}released {context.name} {context.release_version}"
    )
    return Ok(context)


def _unwind(
    ledger: RollbackLedger, env: ReleaseEnv, compensator: Compensator | None
) -> RollbackReport | None:
    if len(ledger) == 0:
        return None
    active = compensator or GitCompensator(env.repository, env.manifests)
    return rollback(ledger, active, env.console)
