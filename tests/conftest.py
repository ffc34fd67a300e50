"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomlkit

from monorelease.config import Settings

WorkspaceFactory = Callable[..., Path]


def write_package(
    root: Path,
    name: str,
    version: str = "1.0.0",
    deps: list[str] | None = None,
    extra: str = "",
) -> Path:
    """Write ``packages/<name>/pyproject.toml`` and return the package folder."""
    folder = root / "packages" / name
    folder.mkdir(parents=True, exist_ok=True)
    dep_lines = ", ".join(f'"{d}"' for d in deps or [])
    (folder / "pyproject.toml").write_text(
        f'[project]\nname = "{name}"\nversion = "{version}"\n'
        f"dependencies = [{dep_lines}]\n{extra}"
    )
    return folder


def write_change_file(root: Path, filename: str, *changes: tuple[str, str, str]) -> Path:
    """Write a change file with (package, type, comment) items."""
    folder = root / ".changes"
    folder.mkdir(exist_ok=True)
    body = "".join(
        f'[[changes]]\npackage = "{p}"\ntype = "{t}"\ncomment = "{c}"\n\n'
        for p, t, c in changes
    )
    path = folder / filename
    path.write_text(body)
    return path


@pytest.fixture
def make_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> WorkspaceFactory:
    """Create a uv workspace in tmp_path and chdir into it.

    Packages are given as ``name=(version, [deps])`` keyword arguments.
    """

    def factory(**packages: tuple[str, list[str]]) -> Path:
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "root"\nversion = "0.0.0"\n\n'
            '[tool.uv.workspace]\nmembers = ["packages/*"]\n'
        )
        for name, (version, deps) in packages.items():
            write_package(tmp_path, name.replace("_", "-"), version, deps)
        monkeypatch.chdir(tmp_path)
        return tmp_path

    return factory


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(root=tmp_path)


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep==1.0.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal~=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1,<1"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0", {include-group = "lint"}]
lint = ["ruff"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]
"""
    return tomlkit.parse(content)
