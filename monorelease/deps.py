"""Dependency handling utilities.

Parses PEP 508 dependency strings and rewrites a package's pyproject.toml
when it, or one of its workspace dependencies, moves to a new version.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from packaging.requirements import Requirement
from packaging.specifiers import SpecifierSet
from packaging.utils import canonicalize_name
from packaging.version import Version

from .toml import load_pyproject, save_pyproject

# Operators whose single version is replaced in place when a dependency moves.
_RETARGETABLE = ("==", "~=", ">=")


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def allows_version(dep_str: str, version: str) -> bool:
    """Whether a requirement string admits ``version``.

    Prereleases count as admitted so a prerelease of a dependency does not
    look like a range violation by itself.
    """
    return Requirement(dep_str).specifier.contains(version, prereleases=True)


def retarget_dep(dep_str: str, version: str) -> str:
    """Point a PEP 508 dependency at a new version, keeping its style.

    A single ``==``, ``~=`` or ``>=`` specifier keeps its operator. Anything
    else (no specifier, ranges) becomes ``>=version``. Extras are kept,
    sorted, and environment markers are preserved.

    Examples:
        retarget_dep("pkg==1.0.0", "1.1.0") → "pkg==1.1.0"
        retarget_dep("pkg~=1.0", "2.0.0") → "pkg~=2.0"
        retarget_dep("pkg[b,a]>=1,<2", "2.0.0") → "pkg[a,b]>=2.0.0"
    """
    req = Requirement(dep_str)
    specs = list(req.specifier)
    operator = specs[0].operator if len(specs) == 1 else ">="
    if operator not in _RETARGETABLE:
        operator = ">="
    if operator == "~=":
        version = _compatible_release(specs[0].version, version)
    specifier = SpecifierSet(f"{operator}{version}")
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}{specifier}{marker}"


def _compatible_release(old: str, new: str) -> str:
    """Write ``new`` with as many release segments as ``old`` had.

    ``~=1.0`` means 1.*, so moving it to 2.1.0 gives ``~=2.1`` and not the
    narrower ``~=2.1.0``. Prereleases keep their full form.
    """
    parsed = Version(new)
    if parsed.is_prerelease or parsed.is_postrelease or parsed.local:
        return new
    width = len(Version(old).release)
    release = (parsed.release + (0,) * width)[:width]
    prefix = f"{parsed.epoch}!" if parsed.epoch else ""
    return prefix + ".".join(str(part) for part in release)


def rewrite_pyproject(
    pyproject_path: Path,
    new_version: str,
    internal_dep_versions: dict[str, str],
) -> None:
    """Update a package's version and retarget its internal dependencies.

    Internal deps are retargeted in all locations:
    - [project].dependencies
    - [project].optional-dependencies.*
    - [dependency-groups].*

    Uses tomlkit to preserve formatting and comments.

    Args:
        pyproject_path: Path to the pyproject.toml file.
        new_version: New version string to set.
        internal_dep_versions: Map of package name → version for internal deps
            that moved in this run.
    """
    doc = load_pyproject(pyproject_path)
    # Cast needed because tomlkit types are complex unions
    project = cast(dict[str, Any], doc["project"])
    project["version"] = new_version

    if internal_dep_versions:
        deps = project.get("dependencies")
        if isinstance(deps, list):
            _retarget_dep_list(deps, internal_dep_versions)

        opt_deps = project.get("optional-dependencies")
        if isinstance(opt_deps, dict):
            for group in opt_deps.values():
                if isinstance(group, list):
                    _retarget_dep_list(group, internal_dep_versions)

        dep_groups = doc.get("dependency-groups")
        if isinstance(dep_groups, dict):
            for group in dep_groups.values():
                if isinstance(group, list):
                    _retarget_dep_list(group, internal_dep_versions)

    save_pyproject(pyproject_path, doc)


def _retarget_dep_list(deps: list, versions: dict[str, str]) -> None:
    """Retarget internal dependencies in a list, modifying in place."""
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            continue
        name = dep_canonical_name(str(dep_str))
        if name in versions:
            deps[i] = retarget_dep(str(dep_str), versions[name])
