"""Tests for services/manifests.py."""

from __future__ import annotations

import json
from pathlib import Path

from relflow.core.result import Err, Ok
from relflow.services.manifests import ManifestInfo, Manifests

PYPROJECT = """\
[build-system]
requires = ["setuptools"]

[project]
name = "widgets"  # distribution name
version = "1.2.3"
dependencies = ["typer"]

[tool.other]
version = "9.9.9"
"""

CARGO = """\
[package]
name = "widgets"
version = "0.4.0"

[dependencies]
serde = { version = "1", features = ["derive"] }
"""


class TestRead:
    def test_no_manifest(self, tmp_path: Path) -> None:
        result = Manifests(tmp_path).primary()
        assert isinstance(result, Err)
        assert result.error.message == "no project manifest found"

    def test_package_json(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text(json.dumps({"name": "@acme/widgets", "version": "1.0.0"}))

        assert Manifests(tmp_path).primary() == Ok(
            ManifestInfo(path=path, name="@acme/widgets", version="1.0.0")
        )

    def test_priority_order(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(PYPROJECT)
        (tmp_path / "Cargo.toml").write_text(CARGO)

        manifests = Manifests(tmp_path)

        assert [p.name for p in manifests.present()] == ["Cargo.toml", "pyproject.toml"]
        result = manifests.primary()
        assert isinstance(result, Ok)
        assert result.value.version == "0.4.0"

    def test_dynamic_pyproject_version(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "w"\ndynamic = ["version"]\n')

        result = Manifests(tmp_path).primary()

        assert isinstance(result, Err)
        assert result.error.hint is not None and "dynamic" in result.error.hint

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{")
        result = Manifests(tmp_path).primary()
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"


class TestWriteVersion:
    def test_json_preserves_other_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text(json.dumps({"name": "w", "version": "1.0.0", "scripts": {"t": "x"}}))

        assert Manifests(tmp_path).write_version(path, "1.1.0") == Ok(True)

        assert path.read_text().endswith("\n")
        assert json.loads(path.read_text()) == {"name": "w", "version": "1.1.0", "scripts": {"t": "x"}}

    def test_unchanged_version_is_not_rewritten(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text('{"version": "1.0.0"}')

        assert Manifests(tmp_path).write_version(path, "1.0.0") == Ok(False)
        assert path.read_text() == '{"version": "1.0.0"}'

    def test_toml_only_touches_its_section(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text(PYPROJECT)

        assert Manifests(tmp_path).write_version(path, "1.3.0") == Ok(True)

        text = path.read_text()
        assert 'version = "1.3.0"' in text
        assert 'version = "9.9.9"' in text
        assert "# distribution name" in text
        assert text == PYPROJECT.replace('version = "1.2.3"', 'version = "1.3.0"')

    def test_cargo_dependency_versions_untouched(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text(CARGO)

        Manifests(tmp_path).write_version(path, "0.5.0")

        assert path.read_text() == CARGO.replace('version = "0.4.0"', 'version = "0.5.0"')
