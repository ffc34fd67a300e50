"""Git tag naming for published packages."""

from __future__ import annotations

import re

from packaging.utils import canonicalize_name

from .versions import normalize_version

# Characters and sequences git refuses in ref names (see git-check-ref-format).
_ILLEGAL_REF = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]|\.\.|@\{|//")


def make_tag_name(package_name: str, version: str) -> str:
    """Return the tag for a published package version.

    Tags look like ``{name}/v{version}`` with the name canonicalized per
    PEP 503 and the version per PEP 440. Canonical names never contain a
    slash, so distinct (name, version) pairs never share a tag.

    Raises:
        ValueError: If the result is not a legal git ref name.
    """
    tag = f"{canonicalize_name(package_name)}/v{normalize_version(version)}"
    if (
        _ILLEGAL_REF.search(tag)
        or tag.endswith((".", "/", ".lock"))
        or any(part.startswith(".") for part in tag.split("/"))
    ):
        raise ValueError(f"Cannot build a valid git tag from {package_name!r} {version!r}")
    return tag
