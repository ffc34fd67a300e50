"""Change files and change resolution.

Change files are small TOML documents committed alongside a feature::

    [[changes]]
    package = "pkg-a"
    type = "minor"
    comment = "Add the frobnicate() helper"

The resolver turns every pending change file into one ChangeRecord per
package, moves dependents whose pins no longer admit the new versions, and
orders the result so dependencies are published first.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import tomlkit
from packaging.utils import canonicalize_name
from pydantic import BaseModel, Field, ValidationError, field_validator
from tomlkit.exceptions import ParseError

from .deps import allows_version, rewrite_pyproject
from .graph import dependents_of, topo_sort
from .models import (
    ChangeEntry,
    ChangeRecord,
    ChangeType,
    PrereleaseToken,
    ProjectDescriptor,
)
from .shell import git, log_action, step
from .versions import bump_version


class ChangeFileError(ValueError):
    """A change file is malformed or names a package outside the workspace."""


class ChangeFileItem(BaseModel):
    package: str
    type: ChangeType
    comment: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _type_by_name(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return ChangeType[value.strip().lower()]
            except KeyError:
                names = ", ".join(t.name for t in ChangeType)
                raise ValueError(f"unknown change type {value!r} (expected one of {names})") from None
        return value


class ChangeFile(BaseModel):
    changes: list[ChangeFileItem] = Field(default_factory=list)


class ChangeFiles:
    """The directory of pending change files."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def get_files(self) -> list[Path]:
        if not self.path.is_dir():
            return []
        return sorted(self.path.rglob("*.toml"))

    def load(self) -> list[tuple[Path, ChangeFile]]:
        """Parse every change file.

        Raises:
            ChangeFileError: On TOML or schema errors, naming the file.
        """
        loaded: list[tuple[Path, ChangeFile]] = []
        for path in self.get_files():
            try:
                data = tomlkit.parse(path.read_text()).unwrap()
                loaded.append((path, ChangeFile.model_validate(data)))
            except (ParseError, ValidationError) as exc:
                raise ChangeFileError(f"Invalid change file {path}: {exc}") from exc
        return loaded

    def delete_all(self, really: bool) -> int:
        """Delete every change file, or only report what would be deleted.

        Returns:
            Number of change files found.
        """
        files = self.get_files()
        step(f"Deleting {len(files)} change files")
        for path in files:
            log_action(really, f"delete {path}")
            if really:
                path.unlink()
        if really:
            # Deepest first so nested empty folders collapse.
            for folder in sorted(self.path.rglob("*"), reverse=True):
                if folder.is_dir() and not any(folder.iterdir()):
                    folder.rmdir()
        return len(files)


def _commit_details(path: Path) -> tuple[str | None, str | None]:
    """Return (commit hash, author email) of the commit that added ``path``."""
    out = git("log", "--diff-filter=A", "-n", "1", "--format=%H%n%ae", "--", str(path), check=False)
    lines = out.splitlines()
    if len(lines) < 2:
        return None, None
    return lines[0], lines[1]


def _needs_retarget(requirement: str, version: str, token: PrereleaseToken | None) -> bool:
    # Prerelease runs move every pin so dependents never resolve to a stale final.
    if token is not None and token.has_value:
        return True
    return not allows_version(requirement, version)


def _add_change(
    all_changes: dict[str, ChangeRecord],
    info: ProjectDescriptor,
    entry: ChangeEntry,
) -> ChangeRecord:
    record = all_changes.get(info.name)
    if record is None:
        record = ChangeRecord(
            package_name=info.name,
            change_type=entry.type,
            old_version=info.version,
            new_version=info.version,
        )
        all_changes[info.name] = record
    record.change_type = max(record.change_type, entry.type)
    record.changes.append(entry)
    return record


def find_change_requests(
    packages: Mapping[str, ProjectDescriptor],
    change_files: ChangeFiles,
    include_commit_details: bool = False,
    prerelease_token: PrereleaseToken | None = None,
) -> dict[str, ChangeRecord]:
    """Resolve pending change files into per-package version bumps.

    Each package gets the largest change type requested for it. Any package
    depending on a moved package whose requirement no longer admits the new
    version (or every dependent, in a prerelease run) receives a
    ``dependency`` record, and so on transitively.

    Raises:
        ChangeFileError: If a change file is invalid or names an unknown package.
    """
    step("Finding change requests")

    all_changes: dict[str, ChangeRecord] = {}
    for path, change_file in change_files.load():
        commit, author = _commit_details(path) if include_commit_details else (None, None)
        for item in change_file.changes:
            name = canonicalize_name(item.package)
            if name not in packages:
                raise ChangeFileError(f"{path} refers to unknown package {item.package!r}")
            entry = ChangeEntry(type=item.type, comment=item.comment, author=author, commit=commit)
            _add_change(all_changes, packages[name], entry)

    for record in all_changes.values():
        record.new_version = bump_version(
            record.old_version, record.change_type, prerelease_token
        )

    # Propagate to dependents breadth first until nothing else moves
    reverse_deps = dependents_of(packages)
    queue = [n for n, r in all_changes.items() if r.new_version != r.old_version]
    while queue:
        name = queue.pop(0)
        new_version = all_changes[name].new_version
        for dependent in sorted(reverse_deps[name]):
            requirement = packages[dependent].requirements[name]
            if not _needs_retarget(requirement, new_version, prerelease_token):
                continue
            entry = ChangeEntry(
                type=ChangeType.dependency,
                comment=f"Updating dependency {name} to {new_version}",
            )
            record = _add_change(all_changes, packages[dependent], entry)
            if record.new_version == record.old_version:
                record.new_version = bump_version(
                    record.old_version, record.change_type, prerelease_token
                )
                queue.append(dependent)

    for name, record in all_changes.items():
        print(f"  {name}: {record.change_type.name} {record.old_version} → {record.new_version}")

    return all_changes


def sort_change_requests(
    all_changes: Mapping[str, ChangeRecord],
    packages: Mapping[str, ProjectDescriptor],
) -> list[ChangeRecord]:
    """Order change records so that dependencies come before dependents."""
    order = topo_sort({name: packages[name] for name in all_changes})
    return [all_changes[name] for name in order]


def internal_dep_updates(
    info: ProjectDescriptor,
    all_changes: Mapping[str, ChangeRecord],
    prerelease_token: PrereleaseToken | None = None,
) -> dict[str, str]:
    """Internal dependency → new version, for pins this package must rewrite."""
    updates: dict[str, str] = {}
    for dep in info.deps:
        record = all_changes.get(dep)
        if record is None or record.new_version == record.old_version:
            continue
        if _needs_retarget(info.requirements[dep], record.new_version, prerelease_token):
            updates[dep] = record.new_version
    return updates


def update_packages(
    all_changes: Mapping[str, ChangeRecord],
    packages: Mapping[str, ProjectDescriptor],
    apply: bool,
    prerelease_token: PrereleaseToken | None = None,
) -> None:
    """Write new versions and retargeted pins into each pyproject.toml.

    Without ``apply`` every update is only printed.
    """
    step("Updating package manifests")

    for name, record in all_changes.items():
        info = packages[name]
        dep_versions = internal_dep_updates(info, all_changes, prerelease_token)
        if record.new_version == record.old_version and not dep_versions:
            continue

        pyproject = Path(info.path) / "pyproject.toml"
        pins = "".join(f", {dep} → {v}" for dep, v in dep_versions.items())
        log_action(apply, f"update {pyproject}: {name} {record.old_version} → {record.new_version}{pins}")
        if apply:
            rewrite_pyproject(pyproject, record.new_version, dep_versions)
