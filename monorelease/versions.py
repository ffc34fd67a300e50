"""Version parsing and bumping utilities.

Versions on disk are PEP 440 strings; bump arithmetic is done with semver
on the release segment, with special handling for incomplete version strings
(e.g., "1.0" → "1.0.0") and for versions that are currently prereleases.
"""

from __future__ import annotations

import semver
from packaging.version import InvalidVersion, Version

from .models import ChangeType, PrereleaseToken

_PARTS = {
    ChangeType.major: "major",
    ChangeType.minor: "minor",
    ChangeType.patch: "patch",
    ChangeType.dependency: "patch",
}


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    PEP 440 pre/dev releases ("1.2.0rc1") keep a semver prerelease marker,
    so bumping them finalizes the release instead of skipping it.
    """
    v = Version(version_str)
    parts = list(v.release[:3])
    # Pad with zeros to ensure we have 3 parts
    while len(parts) < 3:
        parts.append(0)
    prerelease = "pre" if v.is_prerelease else None
    return semver.Version(*parts, prerelease=prerelease)


def normalize_version(version_str: str) -> str:
    """Return the canonical PEP 440 form ("1.2.0-rc.1" → "1.2.0rc1")."""
    return str(Version(version_str))


def bump_version(
    version_str: str,
    change_type: ChangeType,
    token: PrereleaseToken | None = None,
) -> str:
    """Compute the version a package moves to for a change type.

    Examples:
        ("1.2.3", minor) → "1.3.0"
        ("1.2.3", dependency) → "1.2.4"
        ("1.2.0rc1", patch) → "1.2.0"
        ("1.2.3", minor, name="rc1") → "1.3.0rc1"
        ("1.2.3", minor, suffix="dev5") → "1.2.3.dev5"

    Raises:
        ValueError: If the prerelease name or suffix does not produce a valid
            PEP 440 version.
    """
    if change_type == ChangeType.none:
        return version_str

    if token is not None and token.is_suffix:
        return _checked(f"{parse_version(version_str).finalize_version()}.{token.suffix}")

    bumped = str(parse_version(version_str).next_version(part=_PARTS[change_type]))
    if token is not None and token.is_prerelease:
        return _checked(f"{bumped}{token.name}")
    return bumped


def _checked(candidate: str) -> str:
    try:
        return normalize_version(candidate)
    except InvalidVersion as exc:
        raise ValueError(f"Not a valid PEP 440 version: {candidate!r}") from exc
