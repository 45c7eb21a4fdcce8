"""Project manifest reading and version rewriting.

Supported manifests, in priority order for the package name and current
version: ``package.json``, ``Cargo.toml`` (``[package]``) and
``pyproject.toml`` (``[project]``). Bumps rewrite every manifest present.

TOML files are read with tomllib but rewritten with a section-scoped regex so
comments and formatting survive.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path

from relflow.core.result import Err, Ok, Result
from relflow.core.structured import as_str_dict, get_str, get_str_list, get_table
from relflow.platform.files import atomic_write_text
from relflow.release.errors import ReleaseError

__all__ = [
    "MANIFEST_FILES",
    "ManifestInfo",
    "Manifests",
]

MANIFEST_FILES = ("package.json", "Cargo.toml", "pyproject.toml")

_TOML_SECTIONS = {
    "Cargo.toml": "package",
    "pyproject.toml": "project",
}


@dataclass(frozen=True, slots=True)
class ManifestInfo:
    path: Path
    name: str | None
    version: str


class Manifests:
    """Manifests found in a project root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def present(self) -> list[Path]:
        return [self.root / n for n in MANIFEST_FILES if (self.root / n).is_file()]

    def primary(self) -> Result[ManifestInfo, ReleaseError]:
        """Read the highest-priority manifest present."""
        paths = self.present()
        if not paths:
            return Err(
                ReleaseError(
                    kind="config",
                    message="no project manifest found",
                    hint=f"Expected one of {', '.join(MANIFEST_FILES)} in {self.root}",
                )
            )
        return self.read(paths[0])

    def read(self, path: Path) -> Result[ManifestInfo, ReleaseError]:
        if path.name == "package.json":
            return _read_json(path)
        section = _TOML_SECTIONS.get(path.name)
        if section is None:
            return Err(ReleaseError(kind="invalid_input", message=f"unsupported manifest: {path.name}"))
        return _read_toml(path, section)

    def write_version(self, path: Path, version: str) -> Result[bool, ReleaseError]:
        """Rewrite the version field.

        Returns:
            Ok(True) if the file changed, Ok(False) if it already held ``version``.
        """
        if path.name == "package.json":
            return _write_json(path, version)
        section = _TOML_SECTIONS.get(path.name)
        if section is None:
            return Err(ReleaseError(kind="invalid_input", message=f"unsupported manifest: {path.name}"))
        return _write_toml(path, section, version)


def _read_text(path: Path) -> Result[str, ReleaseError]:
    try:
        return Ok(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(ReleaseError(kind="io", message=f"failed to read {path.name}: {e}", hint=str(path)))


def _write_text(path: Path, text: str) -> Result[None, ReleaseError]:
    try:
        atomic_write_text(path, text)
    except OSError as e:
        return Err(ReleaseError(kind="io", message=f"failed to write {path.name}: {e}", hint=str(path)))
    return Ok(None)


def _load_json(path: Path) -> Result[dict[str, object], ReleaseError]:
    text = _read_text(path)
    if isinstance(text, Err):
        return text

    try:
        obj: object = json.loads(text.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(kind="invalid_input", message=f"invalid JSON in {path.name}: {e}", hint=str(path))
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(kind="invalid_input", message=f"invalid JSON root in {path.name}", hint=str(path))
        )
    return Ok(data)


def _read_json(path: Path) -> Result[ManifestInfo, ReleaseError]:
    loaded = _load_json(path)
    if isinstance(loaded, Err):
        return loaded
    data = loaded.value

    version = get_str(data, "version")
    if version is None:
        return Err(
            ReleaseError(kind="invalid_input", message=f"missing version in {path.name}", hint=str(path))
        )
    return Ok(ManifestInfo(path=path, name=get_str(data, "name"), version=version))


def _write_json(path: Path, version: str) -> Result[bool, ReleaseError]:
    loaded = _load_json(path)
    if isinstance(loaded, Err):
        return loaded
    data = loaded.value

    if get_str(data, "version") == version:
        return Ok(False)
    data["version"] = version

    written = _write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    if isinstance(written, Err):
        return written
    return Ok(True)


def _read_toml(path: Path, section: str) -> Result[ManifestInfo, ReleaseError]:
    text = _read_text(path)
    if isinstance(text, Err):
        return text

    try:
        data: dict[str, object] = tomllib.loads(text.value)
    except tomllib.TOMLDecodeError as e:
        return Err(
            ReleaseError(kind="invalid_input", message=f"invalid TOML in {path.name}: {e}", hint=str(path))
        )

    table = get_table(data, section)
    if table is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"missing [{section}] section in {path.name}",
                hint=str(path),
            )
        )

    version = get_str(table, "version")
    if version is None:
        dynamic = get_str_list(table, "dynamic") or []
        hint = (
            "the version is dynamic, set a static version to let relflow bump it"
            if "version" in dynamic
            else str(path)
        )
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"missing {section} version in {path.name}",
                hint=hint,
            )
        )
    return Ok(ManifestInfo(path=path, name=get_str(table, "name"), version=version))


def _write_toml(path: Path, section: str, version: str) -> Result[bool, ReleaseError]:
    text = _read_text(path)
    if isinstance(text, Err):
        return text

    bounds = _section_bounds(text.value, section)
    if bounds is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"missing [{section}] section in {path.name}",
                hint=str(path),
            )
        )

    start, end = bounds
    body = text.value[start:end]
    m = re.search(r'(?m)^(version\s*=\s*)"([^"]+)"', body)
    if m is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"missing {section} version in {path.name}",
                hint=str(path),
            )
        )

    if m.group(2) == version:
        return Ok(False)

    replaced = body[: m.start()] + f'{m.group(1)}"{version}"' + body[m.end() :]
    written = _write_text(path, text.value[:start] + replaced + text.value[end:])
    if isinstance(written, Err):
        return written
    return Ok(True)


def _section_bounds(text: str, section: str) -> tuple[int, int] | None:
    """Return the [start, end) span of a top-level table body."""
    header = re.search(rf"(?m)^\[{re.escape(section)}\][ \t]*(?:#.*)?$", text)
    if header is None:
        return None
    start = header.end()
    nxt = re.search(r"(?m)^\[", text[start:])
    end = start + nxt.start() if nxt is not None else len(text)
    return (start, end)
