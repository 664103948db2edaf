"""Exception hierarchy for buildmark."""

from __future__ import annotations


class BuildMarkError(Exception):
    """Base class for all buildmark errors."""


class VersionResolutionError(BuildMarkError):
    """The target or baseline version of a build cannot be determined.

    Raised when there are no tags and no explicit version, when an explicit
    version does not parse, or when the checkout is not at the latest tag.
    """


class ConnectorError(BuildMarkError):
    """A repository connector failed to fetch data.

    Attributes:
        operation: Short name of the failing operation (e.g., "get_tag_history")
        stderr: Captured stderr of a failed command, if any
        status_code: HTTP status of a failed API call, if any
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        stderr: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.stderr = stderr
        self.status_code = status_code
