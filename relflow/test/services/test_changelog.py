"""Tests for services/changelog.py."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from relflow.core.result import Err, Ok
from relflow.services.changelog import (
    ChangelogRequest,
    GitCliff,
    read_cliff_header,
    strip_header,
)


class TestCommand:
    def test_minimal(self, tmp_path: Path) -> None:
        cmd = GitCliff(tmp_path).command(ChangelogRequest(tag="v1.3.0"))
        assert cmd == [
            "git-cliff",
            "--config",
            str(tmp_path / "cliff.toml"),
            "--tag",
            "v1.3.0",
            "--unreleased",
            "--output",
            "-",
        ]

    def test_prepend_and_repo(self, tmp_path: Path) -> None:
        cmd = GitCliff(tmp_path).command(
            ChangelogRequest(tag="v1.3.0", prepend=tmp_path / "CHANGELOG.md", repository="acme/w")
        )
        assert cmd[-4:] == ["--prepend", str(tmp_path / "CHANGELOG.md"), "--github-repo", "acme/w"]


class TestGenerate:
    @patch("subprocess.run")
    def test_exports_token(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["git-cliff"], 0, "## v1.3.0\n", "")

        result = GitCliff(tmp_path).generate(ChangelogRequest(tag="v1.3.0", token="ghp_x"))

        assert result == Ok("## v1.3.0\n")
        assert mock_run.call_args.kwargs["env"]["GITHUB_TOKEN"] == "ghp_x"

    @patch("subprocess.run")
    def test_without_token_inherits_env(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["git-cliff"], 0, "", "")

        GitCliff(tmp_path).generate(ChangelogRequest(tag="v1.3.0"))

        assert mock_run.call_args.kwargs["env"] is None

    @patch("subprocess.run")
    def test_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["git-cliff"], 1, "", "bad template")

        result = GitCliff(tmp_path).generate(ChangelogRequest(tag="v1.3.0"))

        assert isinstance(result, Err)
        assert result.error.kind == "command_failed"
        assert result.error.hint == "bad template"


class TestHeader:
    def test_read_header(self, tmp_path: Path) -> None:
        path = tmp_path / "cliff.toml"
        path.write_text('[changelog]\nheader = "# Changelog\\n"\nbody = "x"\n')
        assert read_cliff_header(path) == Ok("# Changelog\n")

    def test_no_header(self, tmp_path: Path) -> None:
        path = tmp_path / "cliff.toml"
        path.write_text('[changelog]\nbody = "x"\n')
        assert read_cliff_header(path) == Ok(None)

    def test_strip_header(self) -> None:
        assert strip_header("# Changelog\n## v1\n- a\n", "# Changelog\n") == "## v1\n- a\n"
        assert strip_header("## v1\n", "# Changelog\n") == "## v1\n"
        assert strip_header("## v1\n", None) == "## v1\n"

    def test_git_cliff_strip_header(self, tmp_path: Path) -> None:
        (tmp_path / "cliff.toml").write_text('[changelog]\nheader = "# Changes\\n"\n')
        assert GitCliff(tmp_path).strip_header("# Changes\n## v2\n") == Ok("## v2\n")
