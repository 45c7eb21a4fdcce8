"""Shared helpers for the command line: exit codes and failure output."""

from __future__ import annotations

from typing import NoReturn

import typer

from relflow.core.errors import ErrorCode
from relflow.output.console import ConsoleProtocol, Style
from relflow.release.errors import ReleaseError, ReleaseErrorKind
from relflow.release.pipeline import PipelineFailure

__all__ = ["exit_code_for", "exit_release", "failure_exit_code", "print_failure"]


def exit_code_for(kind: ReleaseErrorKind) -> ErrorCode:
    if kind == "tool_missing":
        return ErrorCode.ENV_ERROR
    if kind == "precondition":
        return ErrorCode.PRECONDITION_ERROR
    if kind in {"command_failed", "io"}:
        return ErrorCode.COMMAND_ERROR
    if kind == "rollback_failed":
        return ErrorCode.ROLLBACK_ERROR
    return ErrorCode.USER_ERROR


def failure_exit_code(failure: PipelineFailure) -> ErrorCode:
    """A failed fallback reset outranks the error that started the rollback."""
    report = failure.rollback
    if report is not None and report.fallback_error is not None:
        return ErrorCode.ROLLBACK_ERROR
    return exit_code_for(failure.error.kind)


def print_failure(failure: PipelineFailure, console: ConsoleProtocol) -> None:
    console.newline()
    where = f" during {failure.stage}" if failure.stage else ""
    console.error(f"release failed{where}: {failure.error.message}")
    if failure.error.hint:
        console.print(f"hint: {failure.error.hint}", Style.DIM)

    report = failure.rollback
    if report is None:
        return
    if report.clean:
        console.warning(f"rolled back {len(report.undone)} step(s)")
        return
    if report.fallback_error is None:
        console.warning("rollback incomplete; the working tree was reset to HEAD")
    else:
        console.error("rollback failed; inspect the repository manually")


def exit_release(error: ReleaseError | str, *, code: ErrorCode) -> NoReturn:
    message = error if isinstance(error, str) else error.pretty()
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code=int(code))
