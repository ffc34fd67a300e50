"""Dependency graph utilities.

Provides topological sorting for determining publish order in a workspace.
When package A depends on package B, B is published first so that A's
upload never references a version the index does not have yet.
"""

from __future__ import annotations

from collections.abc import Mapping

from .models import ProjectDescriptor


def topo_sort(packages: Mapping[str, ProjectDescriptor]) -> list[str]:
    """Topologically sort packages by their internal dependencies.

    This is the order packages are uploaded in, so a package never reaches
    the index before the workspace packages it requires. Uses Kahn's
    algorithm; packages that become ready together are taken alphabetically.

    Args:
        packages: Map of package name → ProjectDescriptor with deps list.

    Returns:
        List of package names, dependencies first.

    Raises:
        RuntimeError: If a dependency cycle is detected.
    """
    in_degree = {n: 0 for n in packages}
    reverse_deps: dict[str, list[str]] = {n: [] for n in packages}

    for name, info in packages.items():
        for dep in info.deps:
            # Deps outside the set being sorted are already published
            if dep in packages:
                in_degree[name] += 1
                reverse_deps[dep].append(name)

    queue = sorted(n for n, d in in_degree.items() if d == 0)
    order: list[str] = []

    while queue:
        node = queue.pop(0)
        order.append(node)
        for dependent in sorted(reverse_deps[node]):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(packages):
        remaining = set(packages) - set(order)
        raise RuntimeError(f"Dependency cycle detected involving: {remaining}")

    return order


def dependents_of(packages: Mapping[str, ProjectDescriptor]) -> dict[str, list[str]]:
    """Build the reverse dependency map (package → packages depending on it)."""
    reverse_deps: dict[str, list[str]] = {n: [] for n in packages}
    for name, info in packages.items():
        for dep in info.deps:
            if dep in reverse_deps:
                reverse_deps[dep].append(name)
    return reverse_deps
