"""Target and baseline version resolution.

Given the chronological tag history of the current branch, these functions
decide which version a build is for (the target) and which earlier version
its changes are compared against (the baseline).

Baseline policy:
- Pre-release targets compare against the immediately preceding tag,
  whatever kind it is, so each release candidate lists only what changed
  since the previous candidate.
- Release targets compare against the previous release, skipping any
  pre-releases in between, so a release lists everything since the last
  release.
- No baseline means "from the beginning of history".
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

from buildmark.exceptions import VersionResolutionError
from buildmark.logging_config import get_logger
from buildmark.schemas import Version
from buildmark.version import parse_version

logger = get_logger(__name__)


def find_tag_index(tags: Sequence[Version], full_version: str) -> int:
    """Return the position of full_version in tags, or -1.

    Matching is exact on the normalized version and ignores case.
    """
    wanted = full_version.casefold()
    for index, tag in enumerate(tags):
        if tag.full_version.casefold() == wanted:
            return index
    return -1


def resolve_baseline(tags: Sequence[Version], target: Version) -> Version | None:
    """Find the version a build of target should be compared against.

    Args:
        tags: Tag history, oldest first, one entry per tag name
        target: The version being built

    Returns:
        The baseline version, or None to compare from the start of history
    """
    if not tags:
        return None

    index = find_tag_index(tags, target.full_version)

    if target.is_pre_release:
        if index > 0:
            return tags[index - 1]
        if index == -1:
            return tags[-1]
        return None

    if index > 0:
        start = index - 1
    elif index == -1:
        start = len(tags) - 1
    else:
        start = -1

    for candidate in reversed(tags[: start + 1]):
        if not candidate.is_pre_release:
            return candidate
    return None


async def resolve_target(
    tags: Sequence[Version],
    explicit_version: str | None,
    current_hash: str,
    hash_for_tag: Callable[[str], Awaitable[str]],
) -> Version:
    """Determine the version being built.

    An explicit version is used as-is. Without one, the latest tag is the
    target, but only if the current checkout is exactly at that tag.

    Args:
        tags: Tag history, oldest first
        explicit_version: Version string supplied by the caller, if any
        current_hash: Commit hash of the current checkout
        hash_for_tag: Coroutine function returning the commit hash of a tag

    Returns:
        The target version

    Raises:
        VersionResolutionError: If the target cannot be determined
    """
    if explicit_version is not None:
        target = parse_version(explicit_version.strip())
        if target is None:
            raise VersionResolutionError(
                f"Version {explicit_version!r} is not a valid version."
            )
        return target

    if not tags:
        raise VersionResolutionError(
            "No tags found in repository and no version specified. "
            "Please provide a version."
        )

    latest = tags[-1]
    latest_hash = await hash_for_tag(latest.tag)
    if latest_hash.strip() != current_hash.strip():
        logger.warning(
            "checkout_not_at_latest_tag",
            latest_tag=latest.tag,
            latest_hash=latest_hash.strip(),
            current_hash=current_hash.strip(),
        )
        raise VersionResolutionError(
            "Target version not specified and current commit does not match "
            f"the latest tag {latest.tag!r}. Please provide a version."
        )
    return latest
