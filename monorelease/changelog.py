"""Changelog generation.

Each package keeps its release history in ``CHANGELOG.json`` (the source of
truth, newest entry first) and a rendered ``CHANGELOG.md`` next to its
pyproject.toml.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from .models import ChangeRecord, ChangeType, ProjectDescriptor
from .shell import log_action, step

JSON_NAME = "CHANGELOG.json"
MARKDOWN_NAME = "CHANGELOG.md"

_HEADINGS = {
    ChangeType.major: "Breaking changes",
    ChangeType.minor: "Minor changes",
    ChangeType.patch: "Patches",
    ChangeType.dependency: "Dependency updates",
}


class ChangelogComment(BaseModel):
    comment: str
    author: str | None = None
    commit: str | None = None


class ChangelogEntry(BaseModel):
    version: str
    date: str
    comments: dict[str, list[ChangelogComment]] = Field(default_factory=dict)


class Changelog(BaseModel):
    name: str
    entries: list[ChangelogEntry] = Field(default_factory=list)


def load_changelog(folder: Path, name: str) -> Changelog:
    path = folder / JSON_NAME
    if not path.exists():
        return Changelog(name=name)
    return Changelog.model_validate_json(path.read_text())


def render_markdown(changelog: Changelog) -> str:
    """Render a changelog to Markdown."""
    lines = [
        f"# Change Log - {changelog.name}",
        "",
        f"This file is generated from {JSON_NAME}. Do not edit it by hand.",
    ]
    for entry in changelog.entries:
        lines += ["", f"## {entry.version}", entry.date]
        if not any(entry.comments.values()):
            lines += ["", "_Version update only_"]
        for change_type, heading in _HEADINGS.items():
            comments = entry.comments.get(change_type.name, [])
            if not comments:
                continue
            lines += ["", f"### {heading}", ""]
            lines += [f"- {c.comment}" for c in comments]
    return "\n".join(lines) + "\n"


def _write(folder: Path, changelog: Changelog) -> None:
    (folder / JSON_NAME).write_text(changelog.model_dump_json(indent=2) + "\n")
    (folder / MARKDOWN_NAME).write_text(render_markdown(changelog))


def _entry_for(record: ChangeRecord, date: str) -> ChangelogEntry:
    comments: dict[str, list[ChangelogComment]] = {}
    for change in record.changes:
        if change.type == ChangeType.none or not change.comment:
            continue
        comments.setdefault(change.type.name, []).append(
            ChangelogComment(comment=change.comment, author=change.author, commit=change.commit)
        )
    return ChangelogEntry(version=record.new_version, date=date, comments=comments)


def update_changelogs(
    all_changes: Mapping[str, ChangeRecord],
    packages: Mapping[str, ProjectDescriptor],
    apply: bool,
) -> list[str]:
    """Add an entry for every package whose version moves.

    Packages whose changelog already has an entry for the new version are
    left alone, so rerunning after a failed publish does not duplicate it.

    Returns:
        Names of packages whose changelog gets (or would get) a new entry.
    """
    step("Updating changelogs")

    date = datetime.now(timezone.utc).date().isoformat()
    updated: list[str] = []
    for name, record in all_changes.items():
        if record.new_version == record.old_version:
            continue
        folder = Path(packages[name].path)
        changelog = load_changelog(folder, name)
        if any(e.version == record.new_version for e in changelog.entries):
            print(f"  {name}: {record.new_version} already in {JSON_NAME}")
            continue

        changelog.entries.insert(0, _entry_for(record, date))
        log_action(apply, f"update {folder / MARKDOWN_NAME}: {name} {record.new_version}")
        if apply:
            _write(folder, changelog)
        updated.append(name)

    return updated


def regenerate_changelogs(packages: Mapping[str, ProjectDescriptor]) -> None:
    """Rebuild every CHANGELOG.md from its CHANGELOG.json."""
    step("Regenerating changelogs")

    for name, info in packages.items():
        folder = Path(info.path)
        if not (folder / JSON_NAME).exists():
            continue
        log_action(True, f"regenerate {folder / MARKDOWN_NAME}")
        (folder / MARKDOWN_NAME).write_text(render_markdown(load_changelog(folder, name)))
