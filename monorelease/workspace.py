"""Workspace discovery.

Builds the project registry (package name → ProjectDescriptor) from the
``[tool.uv.workspace]`` members of the root pyproject.toml.
"""

from __future__ import annotations

import glob
from pathlib import Path

from .deps import dep_canonical_name
from .models import ProjectDescriptor
from .shell import fatal, step
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_should_publish,
    get_workspace_member_globs,
    load_pyproject,
)


def discover_packages(root: Path | None = None) -> dict[str, ProjectDescriptor]:
    """Scan the workspace and discover all packages.

    Reads [tool.uv.workspace].members from root pyproject.toml to find
    package directories, then extracts name, version, publish flag and
    internal deps from each package's pyproject.toml.

    Returns:
        Map of package name to ProjectDescriptor.
    """
    step("Discovering workspace packages")

    root = root or Path.cwd()
    root_doc = load_pyproject(root / "pyproject.toml")
    member_globs = get_workspace_member_globs(root_doc)

    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists():
                member_dirs.append(p)

    if not member_dirs:
        fatal("No packages found matching workspace members")

    # First pass: collect basic info from each package
    packages: dict[str, ProjectDescriptor] = {}
    raw_deps: dict[str, list[str]] = {}

    for d in member_dirs:
        doc = load_pyproject(d / "pyproject.toml")
        name = get_project_name(doc, d.name)
        if name in packages:
            fatal(f"Duplicate package name {name} ({packages[name].path}, {d})")
        packages[name] = ProjectDescriptor(
            name=name,
            path=str(d.relative_to(root)),
            version=get_project_version(doc),
            should_publish=get_should_publish(doc),
        )
        raw_deps[name] = get_all_dependency_strings(doc)

    # Second pass: identify which deps are internal (within workspace)
    for name, deps in raw_deps.items():
        info = packages[name]
        for dep_str in deps:
            dep_name = dep_canonical_name(dep_str)
            if dep_name in packages and dep_name != name and dep_name not in info.deps:
                info.deps.append(dep_name)
                info.requirements[dep_name] = dep_str

    for name, info in packages.items():
        deps = f" → [{', '.join(info.deps)}]" if info.deps else ""
        private = "" if info.should_publish else " [private]"
        print(f"  {name} {info.version} ({info.path}){private}{deps}")

    return packages
