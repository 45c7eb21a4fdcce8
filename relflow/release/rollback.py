"""Rollback ledger.

Each mutating stage that succeeds records one undo entry: the stage name, a
description and a plain-data action describing what to revert. On failure the
ledger is unwound newest first. If any compensation fails the walk stops and
the working tree is reset to HEAD with untracked files removed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from relflow.core.result import Err, Ok, Result
from relflow.git.repository import GitError, Repository
from relflow.output.console import ConsoleProtocol
from relflow.release.errors import ReleaseError
from relflow.services.manifests import Manifests

__all__ = [
    "RestoreManifests",
    "RestoreChangelog",
    "ResetCommit",
    "DeleteTag",
    "RevertPush",
    "UndoAction",
    "LedgerEntry",
    "RollbackLedger",
    "Compensator",
    "GitCompensator",
    "RollbackReport",
    "rollback",
]


@dataclass(frozen=True, slots=True)
class RestoreManifests:
    """Write each manifest's previous version back."""

    files: tuple[tuple[str, str], ...]  # (path, previous version)

    def as_dict(self) -> dict[str, object]:
        return {
            "action": "restore_manifests",
            "files": [{"path": p, "version": v} for p, v in self.files],
        }


@dataclass(frozen=True, slots=True)
class RestoreChangelog:
    """Delete a changelog this run created, else put back its previous content.

    ``previous`` holds the text of a changelog that existed but was not
    tracked in HEAD; a tracked one is restored from HEAD instead.
    """

    path: str
    created: bool
    previous: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "action": "restore_changelog",
            "path": self.path,
            "created": self.created,
            "untracked": self.previous is not None,
        }


@dataclass(frozen=True, slots=True)
class ResetCommit:
    def as_dict(self) -> dict[str, object]:
        return {"action": "reset_commit"}


@dataclass(frozen=True, slots=True)
class DeleteTag:
    tag: str

    def as_dict(self) -> dict[str, object]:
        return {"action": "delete_tag", "tag": self.tag}


@dataclass(frozen=True, slots=True)
class RevertPush:
    """Undo the halves of a push that happened.

    ``branch``/``previous_sha`` are set when the commit was pushed, ``tag``
    when the tag was pushed.
    """

    remote: str
    branch: str | None = None
    previous_sha: str | None = None
    tag: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "action": "revert_push",
            "remote": self.remote,
            "branch": self.branch,
            "previous_sha": self.previous_sha,
            "tag": self.tag,
        }


type UndoAction = RestoreManifests | RestoreChangelog | ResetCommit | DeleteTag | RevertPush


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    stage: str
    description: str
    action: UndoAction


def _empty_entries() -> list[LedgerEntry]:
    return []


@dataclass
class RollbackLedger:
    """Append-only during the run, drained once on failure."""

    _entries: list[LedgerEntry] = field(default_factory=_empty_entries)

    def record(self, stage: str, description: str, action: UndoAction) -> None:
        self._entries.append(LedgerEntry(stage=stage, description=description, action=action))

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def drain(self) -> list[LedgerEntry]:
        """Return entries newest first and empty the ledger."""
        out = list(reversed(self._entries))
        self._entries.clear()
        return out


class Compensator(Protocol):
    def apply(self, action: UndoAction) -> Result[None, ReleaseError]: ...

    def fallback(self) -> Result[None, ReleaseError]:
        """Last-resort reset of the working tree."""
        ...


def _git_failed(message: str, e: GitError) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="rollback_failed", message=message, hint=e.message))


class GitCompensator:
    """Applies undo actions with git and the manifest writer."""

    def __init__(self, repository: Repository, manifests: Manifests) -> None:
        self.repository = repository
        self.manifests = manifests

    def apply(self, action: UndoAction) -> Result[None, ReleaseError]:
        match action:
            case RestoreManifests(files=files):
                return self._restore_manifests(files)
            case RestoreChangelog(path=path, created=created, previous=previous):
                return self._restore_changelog(path, created, previous)
            case ResetCommit():
                match self.repository.reset_soft("HEAD~1"):
                    case Err(e):
                        return _git_failed("failed to undo the release commit", e)
                    case Ok(_):
                        return Ok(None)
            case DeleteTag(tag=tag):
                return self._delete_local_tag(tag)
            case RevertPush():
                return self._revert_push(action)

    def fallback(self) -> Result[None, ReleaseError]:
        reset = self.repository.reset_hard("HEAD")
        if isinstance(reset, Err):
            return _git_failed("git reset --hard HEAD failed", reset.error)
        cleaned = self.repository.clean_untracked()
        if isinstance(cleaned, Err):
            return _git_failed("git clean -fd failed", cleaned.error)
        return Ok(None)

    def _restore_manifests(self, files: tuple[tuple[str, str], ...]) -> Result[None, ReleaseError]:
        for path, version in files:
            written = self.manifests.write_version(Path(path), version)
            if isinstance(written, Err):
                return Err(
                    ReleaseError(
                        kind="rollback_failed",
                        message=f"failed to restore version {version} in {path}",
                        hint=written.error.message,
                    )
                )
        unstaged = self.repository.unstage([p for p, _ in files])
        if isinstance(unstaged, Err):
            return _git_failed("failed to unstage restored manifests", unstaged.error)
        return Ok(None)

    def _restore_changelog(
        self, path: str, created: bool, previous: str | None
    ) -> Result[None, ReleaseError]:
        if not created and previous is None:
            match self.repository.restore_from_head(path):
                case Err(e):
                    return _git_failed(f"failed to restore {path}", e)
                case Ok(_):
                    return Ok(None)

        unstaged = self.repository.unstage([path])
        if isinstance(unstaged, Err):
            return _git_failed(f"failed to unstage {path}", unstaged.error)
        try:
            if previous is None:
                Path(path).unlink(missing_ok=True)
            else:
                Path(path).write_text(previous, encoding="utf-8")
        except OSError as e:
            return Err(ReleaseError(kind="rollback_failed", message=f"failed to restore {path}: {e}"))
        return Ok(None)

    def _delete_local_tag(self, tag: str) -> Result[None, ReleaseError]:
        # Push rollback may already have removed it.
        if not self.repository.tag_exists(tag):
            return Ok(None)
        match self.repository.delete_tag(tag):
            case Err(e):
                return _git_failed(f"failed to delete tag {tag}", e)
            case Ok(_):
                return Ok(None)

    def _revert_push(self, action: RevertPush) -> Result[None, ReleaseError]:
        if action.tag is not None:
            local = self._delete_local_tag(action.tag)
            if isinstance(local, Err):
                return local
            remote = self.repository.delete_remote_tag(action.remote, action.tag)
            if isinstance(remote, Err):
                return _git_failed(f"failed to delete remote tag {action.tag}", remote.error)

        if action.branch is not None and action.previous_sha is not None:
            forced = self.repository.force_push(action.remote, action.previous_sha, action.branch)
            if isinstance(forced, Err):
                return _git_failed(
                    f"failed to move {action.remote}/{action.branch} back to {action.previous_sha[:12]}",
                    forced.error,
                )
        return Ok(None)


@dataclass(frozen=True, slots=True)
class RollbackReport:
    """Outcome of unwinding a ledger.

    Attributes:
        undone: Descriptions of the compensations that succeeded, in order
        failed: Entry whose compensation failed, if any
        failure: Error of that compensation
        fallback_ran: Whether the destructive reset ran
        fallback_error: Error of the reset itself, if it failed too
    """

    undone: tuple[str, ...] = ()
    failed: LedgerEntry | None = None
    failure: ReleaseError | None = None
    fallback_ran: bool = False
    fallback_error: ReleaseError | None = None

    @property
    def clean(self) -> bool:
        return self.failed is None


def rollback(
    ledger: RollbackLedger, compensator: Compensator, console: ConsoleProtocol
) -> RollbackReport:
    """Unwind ``ledger`` newest first, falling back to a hard reset on error."""
    entries = ledger.drain()
    if not entries:
        return RollbackReport()

    console.header("Rolling back")
    undone: list[str] = []
    for entry in entries:
        console.verbose(f"undo {entry.stage}: {entry.action.as_dict()}")
        result = compensator.apply(entry.action)
        if isinstance(result, Ok):
            console.warning(f"reverted: {entry.description}")
            undone.append(entry.description)
            continue

        console.warning(f"rollback of {entry.stage} failed: {result.error.pretty()}")
        console.warning("resetting the working tree to HEAD and removing untracked files")
        fallback = compensator.fallback()
        fallback_error = fallback.error if isinstance(fallback, Err) else None
        if fallback_error is not None:
            console.warning(f"fallback reset failed: {fallback_error.pretty()}")
        return RollbackReport(
            undone=tuple(undone),
            failed=entry,
            failure=result.error,
            fallback_ran=True,
            fallback_error=fallback_error,
        )

    return RollbackReport(undone=tuple(undone))
