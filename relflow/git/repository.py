"""Git repository abstraction.

``Repository`` wraps the ``git`` binary for the commands a release run needs.
Every operation returns a Result; nothing raises on a failing command.

Usage:
    repo = Repository(Path("."), console=console)

    match repo.create_tag("v1.3.0", "v1.3.0", sign=False):
        case Ok(_):
            console.success("tagged")
        case Err(e):
            console.error(f"git {e.command}: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from relflow.core.result import Err, Ok, Result
from relflow.platform.process import ProcessError
from relflow.platform.process import run as run_process

from .commits import RawCommit

if TYPE_CHECKING:
    from relflow.output.console import ConsoleProtocol

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Record and field separators for `git log` output.
_RS = "\x1e"
_FS = "\x1f"

__all__ = [
    "GitError",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand line that failed (without "git")
        message: Error message (stderr, or a fallback)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """Git operations on one working tree.

    Attributes:
        path: Directory git runs in (``git -C path``)
    """

    def __init__(self, path: Path, *, console: ConsoleProtocol | None = None) -> None:
        self.path = path
        self._console = console

    # -- queries -----------------------------------------------------------

    def version(self) -> Result[str, GitError]:
        """Return the ``git --version`` line."""
        return self._text(["--version"])

    def is_inside_work_tree(self) -> bool:
        result = self._run(["rev-parse", "--is-inside-work-tree"])
        match result:
            case Ok(stdout):
                return stdout.strip() == "true"
            case Err(_):
                return False

    def current_branch(self) -> Result[str, GitError]:
        """Return the checked out branch ("HEAD" when detached)."""
        return self._text(["rev-parse", "--abbrev-ref", "HEAD"])

    def is_clean(self) -> Result[bool, GitError]:
        """True if ``git status --porcelain`` reports nothing."""
        return self._text(["status", "--porcelain"]).map(lambda out: out == "")

    def upstream(self) -> str | None:
        """Return the upstream of the current branch (e.g. "origin/main")."""
        result = self._run(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        return self._text(["rev-parse", ref])

    def remote_url(self, remote: str = "origin") -> Result[str, GitError]:
        return self._text(["remote", "get-url", remote])

    def signing_key(self) -> str | None:
        """Return ``user.signingkey``, None when unset."""
        result = self._run(["config", "--get", "user.signingkey"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def tag_exists(self, name: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{name}"])
        return isinstance(result, Ok)

    def merged_tags(self) -> Result[list[str], GitError]:
        """Tags reachable from HEAD, newest first."""
        result = self._text(["tag", "--merged", "HEAD", "--sort=-creatordate"])
        return result.map(lambda out: [ln.strip() for ln in out.splitlines() if ln.strip()])

    def log(self, since: str | None = None) -> Result[list[RawCommit], GitError]:
        """Commits in ``since..HEAD`` (all of HEAD when since is None), newest first."""
        rev = f"{since}..HEAD" if since else "HEAD"
        result = self._run(["log", f"--format=%H{_FS}%B{_RS}", rev])
        match result:
            case Err(e):
                return Err(self._error(["log", rev], e))
            case Ok(stdout):
                return Ok(self._parse_log(stdout))

    # -- mutations ---------------------------------------------------------

    def add_all(self) -> Result[None, GitError]:
        return self._unit(["add", "-A"])

    def commit(self, message: str) -> Result[None, GitError]:
        return self._unit(["commit", "-m", message])

    def reset_soft(self, ref: str = "HEAD~1") -> Result[None, GitError]:
        return self._unit(["reset", "--soft", ref])

    def reset_hard(self, ref: str = "HEAD") -> Result[None, GitError]:
        return self._unit(["reset", "--hard", ref])

    def clean_untracked(self) -> Result[None, GitError]:
        """Remove untracked files and directories (``git clean -fd``)."""
        return self._unit(["clean", "-fd"])

    def is_tracked(self, path: str) -> bool:
        """Whether ``path`` exists in the HEAD tree."""
        result = self._run(["ls-tree", "--name-only", "HEAD", "--", path])
        return isinstance(result, Ok) and bool(result.value.strip())

    def restore_from_head(self, path: str) -> Result[None, GitError]:
        """Reset both index and worktree copy of ``path`` to HEAD."""
        return self._unit(["restore", "--source=HEAD", "--staged", "--worktree", "--", path])

    def unstage(self, paths: list[str]) -> Result[None, GitError]:
        return self._unit(["reset", "-q", "HEAD", "--", *paths])

    def create_tag(self, name: str, message: str, *, sign: bool) -> Result[None, GitError]:
        args = ["tag", "-a", name, "-m", message]
        if sign:
            args.append("-s")
        return self._unit(args)

    def delete_tag(self, name: str) -> Result[None, GitError]:
        return self._unit(["tag", "-d", name])

    def push(self) -> Result[None, GitError]:
        """Push the current branch to its upstream."""
        return self._unit(["push"])

    def push_tag(self, remote: str, name: str) -> Result[None, GitError]:
        return self._unit(["push", remote, f"refs/tags/{name}"])

    def force_push(self, remote: str, sha: str, branch: str) -> Result[None, GitError]:
        """Move ``remote``'s ``branch`` back to ``sha``."""
        return self._unit(["push", "--force", remote, f"{sha}:refs/heads/{branch}"])

    def delete_remote_tag(self, remote: str, name: str) -> Result[None, GitError]:
        return self._unit(["push", remote, f":refs/tags/{name}"])

    # -- plumbing ----------------------------------------------------------

    def _text(self, args: list[str]) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(self._error(args, e))
            case Ok(stdout):
                return Ok(stdout.strip())

    def _unit(self, args: list[str]) -> Result[None, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(self._error(args, e))
            case Ok(stdout):
                if stdout.strip() and self._console is not None:
                    self._console.verbose(stdout.strip())
                return Ok(None)

    def _error(self, args: list[str], e: ProcessError) -> GitError:
        return GitError(
            command=" ".join(args),
            message=e.detail or f"git {args[0]} failed",
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push", "ls-remote"}
            else _GIT_TIMEOUT_SECONDS
        )
        if self._console is not None:
            self._console.verbose(f"$ git {' '.join(args)}")
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_log(self, output: str) -> list[RawCommit]:
        commits: list[RawCommit] = []
        for record in output.split(_RS):
            record = record.strip("\n")
            if not record.strip():
                continue
            sha, _, message = record.partition(_FS)
            commits.append(RawCommit(sha=sha.strip(), message=message.strip()))
        return commits
