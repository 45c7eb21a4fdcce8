"""Typed release configuration.

Configuration is read from TOML and merged over built-in defaults. Any key a
file omits keeps its default value.

Lookup order (first hit wins):
    1. an explicit path (``--config``)
    2. ``relflow.toml`` in the project root
    3. ``.relflow.toml`` in the project root
    4. the ``[tool.relflow]`` table of ``pyproject.toml``
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_str_list, get_table

__all__ = [
    "ChangelogConfig",
    "GitConfig",
    "GithubReleaseConfig",
    "ReleaseConfig",
    "ConfigError",
    "CONFIG_FILE_NAMES",
    "find_config_file",
    "load_config",
    "load_release_config",
]

CONFIG_FILE_NAMES = ("relflow.toml", ".relflow.toml")
PYPROJECT_FILE_NAME = "pyproject.toml"

DEFAULT_CHANGELOG_PATH = "CHANGELOG.md"
DEFAULT_BRANCHES = ("main", "master")
DEFAULT_COMMIT_MESSAGE = "chore(release): {{name}}@{{version}}"
DEFAULT_TAG_NAME = "v{{version}}"
DEFAULT_TAG_ANNOTATION = "v{{version}}"
DEFAULT_RELEASE_TITLE = "v{{version}}"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ChangelogConfig:
    enabled: bool = True
    path: str = DEFAULT_CHANGELOG_PATH


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Git requirements and message templates.

    Attributes:
        repository: "auto" (read from the origin remote) or "owner/repo"
        require_branch: Only release from one of ``branches``
        branches: Branch allow-list
        require_clean_working_dir: Refuse to run with uncommitted changes
        require_upstream: Current branch must track a remote branch
        commit_message: Template for the release commit
        tag_name: Template for the tag name
        tag_annotation: Template for the annotated tag message
    """

    repository: str = "auto"
    require_branch: bool = False
    branches: tuple[str, ...] = DEFAULT_BRANCHES
    require_clean_working_dir: bool = True
    require_upstream: bool = False
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    tag_name: str = DEFAULT_TAG_NAME
    tag_annotation: str = DEFAULT_TAG_ANNOTATION


@dataclass(frozen=True, slots=True)
class GithubReleaseConfig:
    enabled: bool = True
    title: str = DEFAULT_RELEASE_TITLE


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Merged configuration for one release run."""

    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)
    git: GitConfig = field(default_factory=GitConfig)
    release: GithubReleaseConfig = field(default_factory=GithubReleaseConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create a config from parsed TOML, keeping defaults for missing keys.

        Raises:
            TypeError: A present key holds a value of the wrong type.
        """
        changelog: StrDict = _table(data, "changelog")
        git: StrDict = _table(data, "git")
        github: StrDict = _table(data, "github")
        release: StrDict = _table(github, "release", prefix="github.")

        defaults = cls()
        return cls(
            changelog=ChangelogConfig(
                enabled=_bool(changelog, "enabled", defaults.changelog.enabled, "changelog"),
                path=_str(changelog, "path", defaults.changelog.path, "changelog"),
            ),
            git=GitConfig(
                repository=_str(git, "repository", defaults.git.repository, "git"),
                require_branch=_bool(git, "require_branch", defaults.git.require_branch, "git"),
                branches=_branches(git, defaults.git.branches),
                require_clean_working_dir=_bool(
                    git,
                    "require_clean_working_dir",
                    defaults.git.require_clean_working_dir,
                    "git",
                ),
                require_upstream=_bool(
                    git, "require_upstream", defaults.git.require_upstream, "git"
                ),
                commit_message=_str(git, "commit_message", defaults.git.commit_message, "git"),
                tag_name=_str(git, "tag_name", defaults.git.tag_name, "git"),
                tag_annotation=_str(git, "tag_annotation", defaults.git.tag_annotation, "git"),
            ),
            release=GithubReleaseConfig(
                enabled=_bool(release, "enabled", defaults.release.enabled, "github.release"),
                title=_str(release, "title", defaults.release.title, "github.release"),
            ),
        )


def _table(data: Mapping[str, object], key: str, *, prefix: str = "") -> StrDict:
    if key not in data:
        return {}
    table = get_table(data, key)
    if table is None:
        raise TypeError(f"[{prefix}{key}] must be a table")
    return table


def _bool(table: Mapping[str, object], key: str, default: bool, section: str) -> bool:
    if key not in table:
        return default
    value = get_bool(table, key)
    if value is None:
        raise TypeError(f"{section}.{key} must be a boolean")
    return value


def _str(table: Mapping[str, object], key: str, default: str, section: str) -> str:
    if key not in table:
        return default
    value = get_str(table, key)
    if value is None:
        raise TypeError(f"{section}.{key} must be a non-empty string")
    return value


def _branches(git: Mapping[str, object], default: tuple[str, ...]) -> tuple[str, ...]:
    if "branches" not in git:
        return default
    value = get_str_list(git, "branches")
    if value is None:
        raise TypeError("git.branches must be a string or a list of strings")
    return tuple(b.strip() for b in value if b.strip())


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def find_config_file(root: Path) -> Path | None:
    """Return the first dedicated config file in ``root``, if any."""
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load a dedicated relflow TOML file.

    Args:
        path: Path to relflow.toml (or any file with the same layout)

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return _from_data(result.value, path)


def load_release_config(
    root: Path, explicit: Path | None = None
) -> Result[ReleaseConfig, ConfigError]:
    """Resolve and load the configuration for a project root.

    Returns defaults when no configuration source exists.
    """
    if explicit is not None:
        return load_config(explicit)

    found = find_config_file(root)
    if found is not None:
        return load_config(found)

    pyproject = root / PYPROJECT_FILE_NAME
    if not pyproject.is_file():
        return Ok(ReleaseConfig())

    parsed = _parse_toml(pyproject)
    if isinstance(parsed, Err):
        return parsed
    tool = get_table(parsed.value, "tool") or {}
    section = get_table(tool, "relflow")
    if section is None:
        return Ok(ReleaseConfig())
    return _from_data(section, pyproject)


def _from_data(data: StrDict, path: Path) -> Result[ReleaseConfig, ConfigError]:
    try:
        return Ok(ReleaseConfig.from_dict(data))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
