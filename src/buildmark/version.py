"""Version parsing for repository tags.

Tags are accepted in the form:

    [prefix]MAJOR.MINOR.PATCH[(-|.)PRE_RELEASE][+BUILD_METADATA]

where the optional prefix is made of letters, "-" and "_" ("v", "ver-",
"release_", ...). Examples:

    v1.0.0                  -> 1.0.0 (release)
    v2.0.0-alpha.1          -> 2.0.0-alpha.1 (pre-release "alpha.1")
    Rel_1.2.3.rc.4+build.5  -> 1.2.3.rc.4+build.5 (pre-release "rc.4")

Tags that do not match are not versions; they yield None and are dropped
from the tag history rather than raising.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from buildmark.schemas import Version

# The pre-release group is lazy so a trailing "+metadata" is left for the
# metadata group.
TAG_PATTERN = re.compile(
    r"^(?:[a-zA-Z_-]+)?"
    r"(?P<version>\d+\.\d+\.\d+)"
    r"(?P<separator>[-.])?"
    r"(?P<pre_release>[a-zA-Z0-9.-]+?)?"
    r"(?:\+(?P<metadata>[a-zA-Z0-9.-]+))?$"
)


def parse_version(tag: str) -> Version | None:
    """Parse a tag name into a Version.

    Args:
        tag: Raw tag name

    Returns:
        The parsed Version, or None if the tag is not a version tag
    """
    match = TAG_PATTERN.match(tag)
    if match is None:
        return None

    core = match.group("version")
    separator = match.group("separator")
    pre_release = match.group("pre_release") or ""
    metadata = match.group("metadata")

    # A separator with nothing after it is still a release
    has_pre_release = separator is not None and pre_release != ""
    if not has_pre_release:
        pre_release = ""

    full_version = core
    if has_pre_release:
        full_version += f"{separator}{pre_release}"
    if metadata is not None:
        full_version += f"+{metadata}"

    return Version(
        tag=tag,
        semantic_core=core,
        pre_release=pre_release,
        build_metadata=metadata or "",
        full_version=full_version,
        is_pre_release=has_pre_release,
    )


def parse_tag_history(tags: Iterable[str]) -> list[Version]:
    """Parse a chronological list of raw tags into versions.

    Non-version tags are skipped and repeated tag names keep their first
    position.

    Args:
        tags: Raw tag names, oldest first

    Returns:
        Versions in the same order
    """
    history: list[Version] = []
    seen: set[str] = set()
    for raw in tags:
        tag = raw.strip()
        if not tag or tag in seen:
            continue
        version = parse_version(tag)
        if version is None:
            continue
        seen.add(tag)
        history.append(version)
    return history
