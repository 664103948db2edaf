"""Mock repository connector for tests and local development.

Returns predefined repository data without running git or calling GitHub.
The default data set is a small history with one release, a minor
release, two pre-releases and a final release:

    v1.0.0 -> ver-1.1.0 -> release_2.0.0-beta.1 -> v2.0.0-rc.1 -> 2.0.0

Pull requests 10-13 close issues 1-3 (PR 13 closes nothing), and issues
4 and 5 are open bugs.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from buildmark.exceptions import ConnectorError
from buildmark.schemas import ChangeUnit, IssueDetails, Version

MOCK_REPO_URL = "https://github.com/example/repo"


class MockPullRequest(BaseModel):
    """Fixture data for one pull request."""

    title: str = ""
    labels: list[str] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)


class MockIssue(BaseModel):
    """Fixture data for one issue."""

    title: str = ""
    labels: list[str] = Field(default_factory=list)


class MockRepoData(BaseModel):
    """Complete fixture for the mock connector.

    Attributes:
        tags: Tag name -> commit hash, in creation order
        current_hash: Hash of the checked-out commit
        pull_requests: PR number -> PR fixture
        issues: Issue id -> issue fixture
        open_issues: Ids of issues that are still open
        ranges: "from..to" tag range -> PR numbers merged in it; an empty
                "from" means the start of history
        default_range: PR numbers for any range not listed in ranges
    """

    tags: dict[str, str] = Field(default_factory=dict)
    current_hash: str = "current123hash456"
    pull_requests: dict[str, MockPullRequest] = Field(default_factory=dict)
    issues: dict[str, MockIssue] = Field(default_factory=dict)
    open_issues: list[str] = Field(default_factory=list)
    ranges: dict[str, list[str]] = Field(default_factory=dict)
    default_range: list[str] | None = None


DEFAULT_MOCK_DATA: dict = {
    "tags": {
        "v1.0.0": "abc123def456",
        "ver-1.1.0": "def456ghi789",
        "release_2.0.0-beta.1": "ghi789jkl012",
        "v2.0.0-rc.1": "jkl012mno345",
        "2.0.0": "mno345pqr678",
    },
    "current_hash": "current123hash456",
    "pull_requests": {
        "10": {"title": "Add feature X", "issues": ["1"]},
        "11": {"title": "Fix bug in Y", "issues": ["2"]},
        "12": {"title": "Update documentation", "issues": ["3"]},
        "13": {"title": "PR #13"},
    },
    "issues": {
        "1": {"title": "Add feature X", "labels": ["feature"]},
        "2": {"title": "Fix bug in Y", "labels": ["bug"]},
        "3": {"title": "Update documentation", "labels": ["documentation"]},
        "4": {"title": "Known bug A", "labels": ["bug"]},
        "5": {"title": "Known bug B", "labels": ["bug"]},
    },
    "open_issues": ["4", "5"],
    "ranges": {
        "v1.0.0..ver-1.1.0": ["10", "13"],
        "ver-1.1.0..2.0.0": ["11", "12"],
        "ver-1.1.0..v2.0.0": ["11", "12"],
        "..v1.0.0": ["10"],
    },
}


class MockRepoConnector:
    """Mock connector that serves fixture data.

    Usage:
        connector = MockRepoConnector()
        tags = await connector.get_tag_history()

        connector = MockRepoConnector(mock_data={"tags": {"v1.0.0": "abc"}})
    """

    def __init__(self, mock_data: dict | None = None) -> None:
        """Initialize with optional fixture data.

        Args:
            mock_data: Dict matching MockRepoData. Uses DEFAULT_MOCK_DATA if None.
        """
        self._data = MockRepoData.model_validate(
            DEFAULT_MOCK_DATA if mock_data is None else mock_data
        )

    async def get_tag_history(self) -> list[str]:
        return list(self._data.tags)

    async def get_hash_for_tag(self, tag: str | None) -> str:
        if tag is None:
            return self._data.current_hash
        if tag not in self._data.tags:
            raise ConnectorError(f"Unknown tag: {tag!r}", operation="get_hash_for_tag")
        return self._data.tags[tag]

    async def get_change_units_between(
        self,
        from_version: Version | None,
        to_version: Version,
    ) -> list[ChangeUnit]:
        key = f"{from_version.tag if from_version else ''}..{to_version.tag}"
        if key in self._data.ranges:
            numbers = self._data.ranges[key]
        elif self._data.default_range is not None:
            numbers = self._data.default_range
        else:
            numbers = list(self._data.pull_requests)

        units = []
        for position, number in enumerate(numbers):
            pull = self._data.pull_requests.get(number, MockPullRequest())
            units.append(
                ChangeUnit(
                    number=number,
                    title=pull.title or f"PR #{number}",
                    url=f"{MOCK_REPO_URL}/pull/{number}",
                    labels=pull.labels,
                    order_index=position,
                )
            )
        return units

    async def get_linked_issues(self, unit: ChangeUnit) -> list[str]:
        pull = self._data.pull_requests.get(unit.number)
        return list(pull.issues) if pull else []

    async def get_issue_details(self, issue_id: str) -> IssueDetails:
        issue = self._data.issues.get(issue_id)
        return IssueDetails(
            id=issue_id,
            title=issue.title if issue else f"Issue {issue_id}",
            url=f"{MOCK_REPO_URL}/issues/{issue_id}",
            labels=issue.labels if issue else [],
        )

    async def get_open_issues(self) -> list[IssueDetails]:
        return [await self.get_issue_details(issue_id) for issue_id in self._data.open_issues]
