"""Pydantic models for the data that flows through the build report engine.

These schemas are shared by every layer:
- Connectors return ChangeUnit and IssueDetails records
- The version parser produces Version values
- The aggregator produces ChangeItem lists
- The assembler returns a BuildInformation, which renderers consume

Key design decisions:
- Versions and build information are frozen once created
- Enums constrain categories so label mapping cannot drift
- Cross-field invariants are enforced with model validators
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ChangeCategory(str, Enum):
    """Category of a change, derived from issue or pull request labels."""

    BUG = "bug"
    FEATURE = "feature"
    DOCUMENTATION = "documentation"
    PERFORMANCE = "performance"
    SECURITY = "security"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


class Version(BaseModel):
    """A version parsed from a repository tag.

    Attributes:
        tag: The raw tag name (e.g., "Rel_1.2.3.rc.4+build.5")
        semantic_core: The major.minor.patch part (e.g., "1.2.3")
        pre_release: Pre-release identifier, empty for releases
        build_metadata: Build metadata after "+", possibly empty
        full_version: Normalized version without the tag prefix
        is_pre_release: Whether the version carries a pre-release identifier
    """

    model_config = ConfigDict(frozen=True)

    tag: str = Field(..., description="Raw tag name")
    semantic_core: str = Field(..., description="major.minor.patch")
    pre_release: str = Field("", description="Pre-release identifier")
    build_metadata: str = Field("", description="Build metadata suffix")
    full_version: str = Field(..., description="Version without the tag prefix")
    is_pre_release: bool = Field(False, description="True for pre-releases")

    @model_validator(mode="after")
    def check_pre_release_flag(self) -> Version:
        """Keep is_pre_release consistent with the pre-release identifier."""
        if self.is_pre_release != bool(self.pre_release):
            raise ValueError(
                f"is_pre_release={self.is_pre_release} does not match "
                f"pre_release={self.pre_release!r} for tag {self.tag!r}"
            )
        return self


# ---------------------------------------------------------------------------
# Connector records
# ---------------------------------------------------------------------------


class ChangeUnit(BaseModel):
    """A pull request (or commit) inside the build's version range.

    Attributes:
        number: Pull request number or commit identifier
        title: Pull request title
        url: Link to the pull request
        labels: Label names attached to the pull request
        order_index: Chronological position within the range
    """

    number: str = Field(..., min_length=1, description="PR number or commit id")
    title: str = Field("", description="PR title")
    url: str = Field("", description="PR URL")
    labels: list[str] = Field(default_factory=list, description="PR labels")
    order_index: int = Field(0, description="Position in merge chronology")


class IssueDetails(BaseModel):
    """Details for a single issue."""

    id: str = Field(..., min_length=1, description="Issue number")
    title: str = Field("", description="Issue title")
    url: str = Field("", description="Issue URL")
    labels: list[str] = Field(default_factory=list, description="Issue labels")


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class ChangeItem(BaseModel):
    """A single entry in one of the build report lists.

    Identity is the id; order_index only drives the final sort.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Issue number, or '#<n>' for a pull request")
    title: str = Field("", description="Display title")
    url: str = Field("", description="Link to the issue or pull request")
    category: ChangeCategory = Field(ChangeCategory.OTHER, description="Change category")
    order_index: int = Field(0, description="Sort key for deterministic output")


class BuildInformation(BaseModel):
    """Everything a renderer needs to produce a build report.

    Attributes:
        from_version: Baseline version, None when comparing from the start
        to_version: Version being built
        from_hash: Commit hash of the baseline, None without a baseline
        to_hash: Commit hash of the build
        changes: Non-bug changes in the range
        bugs: Bugs fixed in the range
        known_issues: Open bugs not fixed in the range
    """

    model_config = ConfigDict(frozen=True)

    from_version: Version | None = Field(None, description="Baseline version")
    to_version: Version = Field(..., description="Target version")
    from_hash: str | None = Field(None, description="Baseline commit hash")
    to_hash: str = Field(..., description="Target commit hash")
    changes: list[ChangeItem] = Field(default_factory=list)
    bugs: list[ChangeItem] = Field(default_factory=list)
    known_issues: list[ChangeItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_lists_disjoint(self) -> BuildInformation:
        """Ensure no id appears in more than one list (or twice in one)."""
        seen: set[str] = set()
        for item in [*self.changes, *self.bugs, *self.known_issues]:
            if item.id in seen:
                raise ValueError(f"Change id {item.id!r} appears more than once")
            seen.add(item.id)
        return self
