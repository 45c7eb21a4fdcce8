"""Tests for git/repository.py."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from relflow.core.result import Err, Ok
from relflow.git.commits import RawCommit
from relflow.git.repository import Repository
from relflow.output.console import MockConsole


def make_completed_process(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
) -> subprocess.CompletedProcess[str]:
    """Create a mock CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


def git_args(mock_run: MagicMock) -> list[str]:
    """Arguments after ``git -C <path>`` of the last call."""
    cmd: list[str] = mock_run.call_args.args[0]
    assert cmd[:2] == ["git", "-C"]
    return cmd[3:]


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    """Tests for read-only git commands."""

    @patch("subprocess.run")
    def test_current_branch(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="main\n")

        result = Repository(tmp_path).current_branch()

        assert result == Ok("main")
        assert git_args(mock_run) == ["rev-parse", "--abbrev-ref", "HEAD"]

    @patch("subprocess.run")
    def test_is_clean(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="")
        assert Repository(tmp_path).is_clean() == Ok(True)

        mock_run.return_value = make_completed_process(stdout=" M package.json\n")
        assert Repository(tmp_path).is_clean() == Ok(False)

    @patch("subprocess.run")
    def test_upstream(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="origin/main\n")
        assert Repository(tmp_path).upstream() == "origin/main"

        mock_run.return_value = make_completed_process(
            stderr="fatal: no upstream configured", returncode=128
        )
        assert Repository(tmp_path).upstream() is None

    @patch("subprocess.run")
    def test_is_tracked(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="CHANGELOG.md\n")
        assert Repository(tmp_path).is_tracked("CHANGELOG.md") is True
        assert git_args(mock_run) == ["ls-tree", "--name-only", "HEAD", "--", "CHANGELOG.md"]

        mock_run.return_value = make_completed_process(stdout="")
        assert Repository(tmp_path).is_tracked("CHANGELOG.md") is False

    @patch("subprocess.run")
    def test_signing_key(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="ABCDEF12\n")
        assert Repository(tmp_path).signing_key() == "ABCDEF12"

        mock_run.return_value = make_completed_process(returncode=1)
        assert Repository(tmp_path).signing_key() is None

    @patch("subprocess.run")
    def test_is_inside_work_tree(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="true\n")
        assert Repository(tmp_path).is_inside_work_tree() is True

        mock_run.return_value = make_completed_process(
            stderr="fatal: not a git repository", returncode=128
        )
        assert Repository(tmp_path).is_inside_work_tree() is False

    @patch("subprocess.run")
    def test_merged_tags(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="v1.2.0\nv1.1.0\n\n")

        assert Repository(tmp_path).merged_tags() == Ok(["v1.2.0", "v1.1.0"])
        assert git_args(mock_run) == ["tag", "--merged", "HEAD", "--sort=-creatordate"]

    @patch("subprocess.run")
    def test_log_since_tag(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stdout=(
                "aaa111\x1ffeat: add export\n\nmore text\n\x1e\n"
                "bbb222\x1ffix: crash\n\x1e\n"
            )
        )

        result = Repository(tmp_path).log(since="v1.2.0")

        assert result == Ok(
            [
                RawCommit(sha="aaa111", message="feat: add export\n\nmore text"),
                RawCommit(sha="bbb222", message="fix: crash"),
            ]
        )
        assert git_args(mock_run)[-1] == "v1.2.0..HEAD"

    @patch("subprocess.run")
    def test_log_without_tag_reads_all_history(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="")

        assert Repository(tmp_path).log() == Ok([])
        assert git_args(mock_run)[-1] == "HEAD"

    @patch("subprocess.run")
    def test_error_keeps_stderr(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stderr="fatal: bad revision\n", returncode=128
        )

        result = Repository(tmp_path).rev_parse("origin/main")

        assert isinstance(result, Err)
        assert result.error.message == "fatal: bad revision"
        assert result.error.command == "rev-parse origin/main"
        assert result.error.returncode == 128


# =============================================================================
# Mutations
# =============================================================================


class TestMutations:
    """Tests for commands that change the repository."""

    @patch("subprocess.run")
    def test_create_unsigned_tag(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()

        assert Repository(tmp_path).create_tag("v1.3.0", "v1.3.0", sign=False) == Ok(None)
        assert git_args(mock_run) == ["tag", "-a", "v1.3.0", "-m", "v1.3.0"]

    @patch("subprocess.run")
    def test_create_signed_tag(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()

        Repository(tmp_path).create_tag("v1.3.0", "release", sign=True)

        assert git_args(mock_run) == ["tag", "-a", "v1.3.0", "-m", "release", "-s"]

    @patch("subprocess.run")
    def test_push_uses_network_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()

        Repository(tmp_path).push()

        assert mock_run.call_args.kwargs["timeout"] == 180

    @patch("subprocess.run")
    def test_local_commands_use_short_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()

        Repository(tmp_path).commit("chore(release): 1.3.0")

        assert mock_run.call_args.kwargs["timeout"] == 30
        assert git_args(mock_run) == ["commit", "-m", "chore(release): 1.3.0"]

    @patch("subprocess.run")
    def test_force_push_and_remote_tag_delete(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        repo = Repository(tmp_path)

        repo.force_push("origin", "abc123", "main")
        assert git_args(mock_run) == ["push", "--force", "origin", "abc123:refs/heads/main"]

        repo.delete_remote_tag("origin", "v1.3.0")
        assert git_args(mock_run) == ["push", "origin", ":refs/tags/v1.3.0"]

        repo.push_tag("origin", "v1.3.0")
        assert git_args(mock_run) == ["push", "origin", "refs/tags/v1.3.0"]

    @patch("subprocess.run")
    def test_fallback_commands(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        repo = Repository(tmp_path)

        repo.reset_hard()
        assert git_args(mock_run) == ["reset", "--hard", "HEAD"]
        repo.clean_untracked()
        assert git_args(mock_run) == ["clean", "-fd"]

    @patch("subprocess.run")
    def test_commands_are_echoed_in_verbose(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        console = MockConsole()

        Repository(tmp_path, console=console).add_all()

        assert console.messages == ["$ git add -A"]
