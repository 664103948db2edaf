"""Tests for change aggregation.

These tests verify that aggregate():
- Uses a pull request itself when it closes no issues
- Uses the linked issues otherwise, each at most once
- Splits bugs from other changes by label
- Reports open bugs not fixed in the range as known issues
- Sorts every list by order_index

Aggregation is pure, so no mocking is needed.

Run with: pytest tests/test_aggregator.py -v
"""

from __future__ import annotations

import pytest

from buildmark.aggregator import AggregationResult, aggregate, categorize_labels
from buildmark.schemas import ChangeCategory, ChangeUnit, IssueDetails

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def unit(number: str, order: int, labels: list[str] | None = None) -> ChangeUnit:
    return ChangeUnit(
        number=number,
        title=f"PR {number}",
        url=f"https://github.com/example/repo/pull/{number}",
        labels=labels or [],
        order_index=order,
    )


def issue(issue_id: str, *labels: str) -> IssueDetails:
    return IssueDetails(
        id=issue_id,
        title=f"Issue {issue_id}",
        url=f"https://github.com/example/repo/issues/{issue_id}",
        labels=list(labels),
    )


def all_ids(result: AggregationResult) -> list[str]:
    return [i.id for i in (*result.changes, *result.bugs, *result.known_issues)]


# ---------------------------------------------------------------------------
# Label categorization
# ---------------------------------------------------------------------------


class TestCategorizeLabels:
    @pytest.mark.parametrize(
        ("labels", "expected"),
        [
            (["bug"], ChangeCategory.BUG),
            (["Type: Defect"], ChangeCategory.BUG),
            (["feature-request"], ChangeCategory.FEATURE),
            (["Enhancement"], ChangeCategory.FEATURE),
            (["documentation"], ChangeCategory.DOCUMENTATION),
            (["performance"], ChangeCategory.PERFORMANCE),
            (["security"], ChangeCategory.SECURITY),
            (["wontfix", "question"], ChangeCategory.OTHER),
            ([], ChangeCategory.OTHER),
        ],
    )
    def test_category_from_labels(
        self, labels: list[str], expected: ChangeCategory
    ) -> None:
        assert categorize_labels(labels) == expected

    def test_first_matching_label_wins(self) -> None:
        assert categorize_labels(["enhancement", "bug"]) == ChangeCategory.FEATURE
        assert categorize_labels(["question", "bug", "feature"]) == ChangeCategory.BUG

    def test_bug_keyword_checked_first_within_a_label(self) -> None:
        assert categorize_labels(["security-bug"]) == ChangeCategory.BUG


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregate:
    def test_unit_without_issues_is_a_change(self) -> None:
        result = aggregate([unit("13", 0)], {}, {}, [])
        assert len(result.changes) == 1
        item = result.changes[0]
        assert item.id == "#13"
        assert item.category == ChangeCategory.OTHER
        assert item.url.endswith("/pull/13")
        assert result.bugs == ()

    def test_unit_with_bug_label_is_a_bug(self) -> None:
        result = aggregate([unit("7", 0, ["bug"])], {}, {}, [])
        assert [i.id for i in result.bugs] == ["#7"]
        assert result.changes == ()

    def test_linked_issues_replace_the_unit(self) -> None:
        result = aggregate(
            [unit("10", 0, ["bug"])],
            {"10": ["1", "2"]},
            {"1": issue("1", "feature"), "2": issue("2", "bug")},
            [],
        )
        assert [i.id for i in result.changes] == ["1"]
        assert [i.id for i in result.bugs] == ["2"]
        assert "#10" not in all_ids(result)

    def test_issue_linked_twice_appears_once(self) -> None:
        result = aggregate(
            [unit("10", 0), unit("11", 1)],
            {"10": ["1"], "11": ["1", "3"]},
            {"1": issue("1", "enhancement"), "3": issue("3")},
            [],
        )
        assert [i.id for i in result.changes] == ["1", "3"]
        assert result.changes[0].order_index == 0

    def test_missing_issue_details_fall_back_to_other(self) -> None:
        result = aggregate([unit("10", 0)], {"10": ["9"]}, {}, [])
        assert result.changes[0].id == "9"
        assert result.changes[0].title == "Issue 9"
        assert result.changes[0].category == ChangeCategory.OTHER

    def test_known_issues_are_open_unfixed_bugs(self) -> None:
        result = aggregate(
            [unit("11", 0)],
            {"11": ["2"]},
            {"2": issue("2", "bug")},
            [issue("2", "bug"), issue("4", "bug"), issue("6", "feature")],
        )
        assert [i.id for i in result.bugs] == ["2"]
        assert [i.id for i in result.known_issues] == ["4"]
        assert result.known_issues[0].category == ChangeCategory.BUG

    def test_duplicate_open_issue_reported_once(self) -> None:
        result = aggregate([], {}, {}, [issue("4", "bug"), issue("4", "bug")])
        assert [i.id for i in result.known_issues] == ["4"]

    def test_lists_sorted_by_order_index(self) -> None:
        """Connector order does not matter; order_index decides."""
        result = aggregate(
            [unit("12", 2), unit("10", 0), unit("11", 1)],
            {},
            {},
            [issue("9", "bug"), issue("5", "bug")],
        )
        assert [i.id for i in result.changes] == ["#10", "#11", "#12"]
        assert [i.id for i in result.known_issues] == ["9", "5"]

    def test_known_issues_keep_open_issue_order_for_mixed_ids(self) -> None:
        result = aggregate(
            [],
            {},
            {},
            [
                issue("JIRA-7", "bug"),
                issue("300", "bug"),
                issue("2", "feature"),
                issue("ABC-1", "bug"),
                issue("1", "bug"),
            ],
        )
        assert [i.id for i in result.known_issues] == ["JIRA-7", "300", "ABC-1", "1"]
        assert [i.order_index for i in result.known_issues] == [0, 1, 3, 4]

    def test_lists_are_disjoint(self) -> None:
        result = aggregate(
            [unit("10", 0), unit("11", 1, ["bug"]), unit("12", 2)],
            {"10": ["1", "2"], "12": ["2", "3"]},
            {
                "1": issue("1", "feature"),
                "2": issue("2", "bug"),
                "3": issue("3", "documentation"),
            },
            [issue("2", "bug"), issue("3", "bug"), issue("4", "bug")],
        )
        ids = all_ids(result)
        assert len(ids) == len(set(ids))
        assert set(ids) == {"1", "2", "3", "#11", "4"}

    def test_aggregate_does_not_mutate_inputs(self) -> None:
        units = [unit("10", 0)]
        linked = {"10": ["1"]}
        details = {"1": issue("1", "bug")}
        aggregate(units, linked, details, [])
        assert linked == {"10": ["1"]}
        assert list(details) == ["1"]


class TestAggregationResult:
    def test_add_routes_by_category(self) -> None:
        start = AggregationResult()
        first = aggregate([unit("1", 0, ["bug"])], {}, {}, []).bugs[0]
        after = start.add(first)
        assert after.bugs == (first,)
        assert after.processed == frozenset({"#1"})
        # The original accumulator is untouched
        assert start.bugs == ()
        assert start.processed == frozenset()
