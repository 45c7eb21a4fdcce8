"""Run context threaded through the release stages.

A ``RunContext`` is never mutated. Each stage receives the current value and
returns a new one built with the ``with_*`` methods.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from .config import ReleaseConfig
from .options import RunOptions

__all__ = ["RunContext", "render_template"]


def render_template(template: str, *, version: str, name: str) -> str:
    """Substitute ``{{version}}`` and ``{{name}}`` placeholders."""
    return template.replace("{{version}}", version).replace("{{name}}", name)


@dataclass(frozen=True, slots=True)
class RunContext:
    """State of one release run.

    Attributes:
        options: Validated command line flags
        config: Merged configuration
        cwd: Root of the project being released
        name: Package name (flag or manifest)
        repository: Resolved ``owner/repo``
        current_version: Version read from the manifest, fixed for the run
        next_version: Empty until the version stage resolves it
        changelog_content: Empty until the changelog stage runs
    """

    options: RunOptions
    config: ReleaseConfig
    cwd: Path
    name: str = ""
    repository: str = ""
    current_version: str = ""
    next_version: str = ""
    changelog_content: str = ""

    def with_enrichment(self, *, name: str, repository: str, current_version: str) -> RunContext:
        return replace(self, name=name, repository=repository, current_version=current_version)

    def with_next_version(self, version: str) -> RunContext:
        """Set the next version.

        Raises:
            ValueError: A different next version was already set.
        """
        if self.next_version and self.next_version != version:
            raise ValueError(
                f"next version already resolved to {self.next_version}, refusing {version}"
            )
        return replace(self, next_version=version)

    def with_changelog(self, content: str) -> RunContext:
        return replace(self, changelog_content=content)

    @property
    def release_version(self) -> str:
        """Version the templates render with."""
        return self.next_version or self.current_version

    def render(self, template: str) -> str:
        return render_template(template, version=self.release_version, name=self.name)

    @property
    def tag_name(self) -> str:
        return self.render(self.config.git.tag_name)

    @property
    def tag_annotation(self) -> str:
        return self.render(self.config.git.tag_annotation)

    @property
    def commit_message(self) -> str:
        return self.render(self.config.git.commit_message)

    @property
    def release_title(self) -> str:
        return self.render(self.config.release.title)

    @property
    def changelog_path(self) -> Path:
        return self.cwd / self.config.changelog.path
