"""In-memory collaborators for release tests.

``World`` bundles a project directory with fake git, git-cliff, gh and
prompt implementations. Manifests are real files under ``tmp_path``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from relflow.core.config import ReleaseConfig
from relflow.core.context import RunContext
from relflow.core.options import RunOptions
from relflow.core.result import Err, Ok, Result
from relflow.git.commits import RawCommit
from relflow.git.repository import GitError
from relflow.output.console import MockConsole
from relflow.release.env import Choice, ReleaseEnv
from relflow.release.errors import ReleaseError
from relflow.services.changelog import ChangelogRequest
from relflow.services.github import ReleaseRequest
from relflow.services.manifests import Manifests

CLIFF_HEADER = "# Changelog\n"


def _empty_calls() -> list[str]:
    return []


@dataclass
class FakeRepository:
    """Git double. ``fail`` maps a method name to the stderr it fails with."""

    tags: list[str] = field(default_factory=list)
    commits: list[RawCommit] = field(default_factory=list)
    branch: str = "main"
    clean: bool = True
    tracking: str | None = "origin/main"
    key: str | None = None
    fail: dict[str, str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=_empty_calls)
    local_tags: set[str] = field(default_factory=set)
    untracked: set[str] = field(default_factory=set)
    head: int = 0

    def _result[T](self, name: str, value: T) -> Result[T, GitError]:
        self.calls.append(name)
        if name in self.fail:
            return Err(GitError(command=name, message=self.fail[name]))
        return Ok(value)

    def version(self) -> Result[str, GitError]:
        return self._result("version", "git version 2.45.0")

    def is_inside_work_tree(self) -> bool:
        return "is_inside_work_tree" not in self.fail

    def current_branch(self) -> Result[str, GitError]:
        return self._result("current_branch", self.branch)

    def is_clean(self) -> Result[bool, GitError]:
        return self._result("is_clean", self.clean)

    def upstream(self) -> str | None:
        return self.tracking

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        return self._result("rev_parse", "0123456789abcdef0123456789abcdef01234567")

    def remote_url(self, remote: str = "origin") -> Result[str, GitError]:
        return self._result("remote_url", "git@github.com:acme/widgets.git")

    def signing_key(self) -> str | None:
        return self.key

    def tag_exists(self, name: str) -> bool:
        return name in self.local_tags

    def merged_tags(self) -> Result[list[str], GitError]:
        return self._result("merged_tags", list(self.tags))

    def log(self, since: str | None = None) -> Result[list[RawCommit], GitError]:
        return self._result(f"log {since}", list(self.commits))

    def add_all(self) -> Result[None, GitError]:
        return self._result("add_all", None)

    def commit(self, message: str) -> Result[None, GitError]:
        result = self._result("commit", None)
        if isinstance(result, Ok):
            self.head += 1
        return result

    def reset_soft(self, ref: str = "HEAD~1") -> Result[None, GitError]:
        result = self._result("reset_soft", None)
        if isinstance(result, Ok):
            self.head -= 1
        return result

    def reset_hard(self, ref: str = "HEAD") -> Result[None, GitError]:
        return self._result("reset_hard", None)

    def clean_untracked(self) -> Result[None, GitError]:
        return self._result("clean_untracked", None)

    def is_tracked(self, path: str) -> bool:
        return Path(path).name not in self.untracked

    def restore_from_head(self, path: str) -> Result[None, GitError]:
        return self._result(f"restore_from_head {Path(path).name}", None)

    def unstage(self, paths: list[str]) -> Result[None, GitError]:
        return self._result("unstage", None)

    def create_tag(self, name: str, message: str, *, sign: bool) -> Result[None, GitError]:
        result = self._result("create_tag signed" if sign else "create_tag", None)
        if isinstance(result, Ok):
            self.local_tags.add(name)
        return result

    def delete_tag(self, name: str) -> Result[None, GitError]:
        result = self._result("delete_tag", None)
        if isinstance(result, Ok):
            self.local_tags.discard(name)
        return result

    def push(self) -> Result[None, GitError]:
        return self._result("push", None)

    def push_tag(self, remote: str, name: str) -> Result[None, GitError]:
        return self._result("push_tag", None)

    def force_push(self, remote: str, sha: str, branch: str) -> Result[None, GitError]:
        return self._result(f"force_push {remote} {branch}", None)

    def delete_remote_tag(self, remote: str, name: str) -> Result[None, GitError]:
        return self._result("delete_remote_tag", None)


@dataclass
class FakeChangelog:
    """git-cliff double that prepends a fixed section to the target file."""

    section: str = "## [{tag}]\n\n### Features\n\n- add export\n"
    error: ReleaseError | None = None
    requests: list[ChangelogRequest] = field(default_factory=list)

    def generate(self, request: ChangelogRequest) -> Result[str, ReleaseError]:
        self.requests.append(request)
        if self.error is not None:
            return Err(self.error)
        content = CLIFF_HEADER + self.section.format(tag=request.tag)
        if request.prepend is not None:
            existing = request.prepend.read_text(encoding="utf-8")
            request.prepend.write_text(content + existing, encoding="utf-8")
        return Ok(content)

    def strip_header(self, content: str) -> Result[str, ReleaseError]:
        return Ok(content.removeprefix(CLIFF_HEADER))


@dataclass
class FakePublisher:
    error: ReleaseError | None = None
    requests: list[ReleaseRequest] = field(default_factory=list)

    def publish(self, request: ReleaseRequest) -> Result[str, ReleaseError]:
        self.requests.append(request)
        if self.error is not None:
            return Err(self.error)
        return Ok(f"https://github.com/{request.repository}/releases/tag/{request.tag_name}")


@dataclass
class FakePrompter:
    """Answers prompts from queues; an empty queue means the user cancelled."""

    selections: list[str] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)
    seen: list[tuple[str, list[Choice], int]] = field(default_factory=list)

    def select(
        self, title: str, choices: list[Choice], *, initial_index: int = 0
    ) -> Result[str, ReleaseError]:
        self.seen.append((title, choices, initial_index))
        if not self.selections:
            return Err(ReleaseError(kind="cancelled", message="release cancelled"))
        return Ok(self.selections.pop(0))

    def text(self, message: str) -> Result[str, ReleaseError]:
        if not self.texts:
            return Err(ReleaseError(kind="cancelled", message="release cancelled"))
        return Ok(self.texts.pop(0))


@dataclass
class World:
    root: Path
    repo: FakeRepository
    changelog: FakeChangelog
    publisher: FakePublisher
    prompter: FakePrompter
    console: MockConsole
    missing_tools: set[str] = field(default_factory=set)

    @property
    def env(self) -> ReleaseEnv:
        return ReleaseEnv(
            console=self.console,
            repository=self.repo,  # type: ignore[arg-type]
            manifests=Manifests(self.root),
            changelog=self.changelog,
            publisher=self.publisher,
            prompter=self.prompter,
            token_provider=lambda: "ghp_test",
            which=lambda name: name not in self.missing_tools,
        )

    @property
    def manifest(self) -> Path:
        return self.root / "package.json"

    def manifest_version(self) -> str:
        data: dict[str, object] = json.loads(self.manifest.read_text(encoding="utf-8"))
        return str(data["version"])

    def context(
        self,
        options: RunOptions | None = None,
        config: ReleaseConfig | None = None,
        *,
        current: str = "1.2.3",
        next_version: str = "",
    ) -> RunContext:
        ctx = RunContext(
            options=options or RunOptions(),
            config=config or ReleaseConfig(),
            cwd=self.root,
        ).with_enrichment(name="widgets", repository="acme/widgets", current_version=current)
        return ctx.with_next_version(next_version) if next_version else ctx


@pytest.fixture
def world(tmp_path: Path) -> World:
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "widgets", "version": "1.2.3"}, indent=2) + "\n", encoding="utf-8"
    )
    (tmp_path / "cliff.toml").write_text(
        '[changelog]\nheader = """\n# Changelog\n"""\n', encoding="utf-8"
    )
    return World(
        root=tmp_path,
        repo=FakeRepository(
            tags=["v1.2.3"],
            commits=[RawCommit(sha="aaaa1111", message="feat: add export")],
        ),
        changelog=FakeChangelog(),
        publisher=FakePublisher(),
        prompter=FakePrompter(),
        console=MockConsole(),
    )
