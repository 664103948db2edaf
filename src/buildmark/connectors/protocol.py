"""Protocol defining the repository connector capability.

By coding against this protocol (not a concrete class), the assembler and
tests can use the mock connector without touching git or GitHub.
"""

from __future__ import annotations

from typing import Protocol

from buildmark.schemas import ChangeUnit, IssueDetails, Version


class RepoConnectorProtocol(Protocol):
    """Everything the build information assembler needs from a repository."""

    async def get_tag_history(self) -> list[str]:
        """Return raw tag names reachable from the checkout, oldest first."""
        ...

    async def get_hash_for_tag(self, tag: str | None) -> str:
        """Return the commit hash of a tag, or of the checkout when tag is None."""
        ...

    async def get_change_units_between(
        self,
        from_version: Version | None,
        to_version: Version,
    ) -> list[ChangeUnit]:
        """Return the pull requests merged after from_version up to to_version.

        Args:
            from_version: Baseline version, None for the start of history
            to_version: Target version; HEAD is used if it is not tagged yet

        Returns:
            Change units in merge order, with order_index set
        """
        ...

    async def get_linked_issues(self, unit: ChangeUnit) -> list[str]:
        """Return the ids of the issues a pull request closes."""
        ...

    async def get_issue_details(self, issue_id: str) -> IssueDetails:
        """Return title, URL and labels of an issue."""
        ...

    async def get_open_issues(self) -> list[IssueDetails]:
        """Return all currently open issues (pull requests excluded)."""
        ...
