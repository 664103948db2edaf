"""Change aggregation: pull requests and issues into categorized lists.

Every pull request in the build range contributes either itself (when it
is not linked to any issue) or the issues it closes. Each id lands in
exactly one of three lists:
- changes: everything that is not a bug
- bugs: bugs fixed in the range
- known_issues: open bugs not fixed in the range

Architecture:
- Aggregation is a fold over change units with an immutable accumulator,
  so it has no side effects and can be tested without a connector
- All connector data is fetched before aggregation starts; this module
  only reads mappings
- Categories come from an ordered keyword table (first match wins)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from functools import reduce

from buildmark.schemas import ChangeCategory, ChangeItem, ChangeUnit, IssueDetails

# ---------------------------------------------------------------------------
# Label categorization
# ---------------------------------------------------------------------------

# Checked in order against each lower-cased label by substring containment
LABEL_CATEGORIES: tuple[tuple[str, ChangeCategory], ...] = (
    ("bug", ChangeCategory.BUG),
    ("defect", ChangeCategory.BUG),
    ("feature", ChangeCategory.FEATURE),
    ("enhancement", ChangeCategory.FEATURE),
    ("documentation", ChangeCategory.DOCUMENTATION),
    ("performance", ChangeCategory.PERFORMANCE),
    ("security", ChangeCategory.SECURITY),
)


def categorize_labels(labels: Iterable[str]) -> ChangeCategory:
    """Map a list of labels to a change category.

    The first label that contains any keyword decides the category.
    Labels without a known keyword are ignored; with no match at all the
    category is OTHER.
    """
    for label in labels:
        lowered = label.lower()
        for keyword, category in LABEL_CATEGORIES:
            if keyword in lowered:
                return category
    return ChangeCategory.OTHER


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregationResult:
    """Accumulated output of the aggregation fold.

    Attributes:
        processed: Ids already placed in changes or bugs
        changes: Non-bug items, in discovery order until sorted
        bugs: Bug items, in discovery order until sorted
        known_issues: Open bugs not fixed in the range
    """

    processed: frozenset[str] = frozenset()
    changes: tuple[ChangeItem, ...] = ()
    bugs: tuple[ChangeItem, ...] = ()
    known_issues: tuple[ChangeItem, ...] = ()

    def add(self, item: ChangeItem) -> AggregationResult:
        """Return a new result with item placed in changes or bugs."""
        if item.category == ChangeCategory.BUG:
            return replace(
                self,
                processed=self.processed | {item.id},
                bugs=(*self.bugs, item),
            )
        return replace(
            self,
            processed=self.processed | {item.id},
            changes=(*self.changes, item),
        )


def _unit_item(unit: ChangeUnit) -> ChangeItem:
    return ChangeItem(
        id=f"#{unit.number}",
        title=unit.title or f"PR #{unit.number}",
        url=unit.url,
        category=categorize_labels(unit.labels),
        order_index=unit.order_index,
    )


def _issue_item(issue_id: str, details: IssueDetails | None, order_index: int) -> ChangeItem:
    if details is None:
        return ChangeItem(
            id=issue_id,
            title=f"Issue {issue_id}",
            category=ChangeCategory.OTHER,
            order_index=order_index,
        )
    return ChangeItem(
        id=issue_id,
        title=details.title,
        url=details.url,
        category=categorize_labels(details.labels),
        order_index=order_index,
    )


def _fold_unit(
    linked_issues: Mapping[str, Sequence[str]],
    issue_details: Mapping[str, IssueDetails],
) -> Callable[[AggregationResult, ChangeUnit], AggregationResult]:
    def step(acc: AggregationResult, unit: ChangeUnit) -> AggregationResult:
        issue_ids = linked_issues.get(unit.number, ())
        if not issue_ids:
            item = _unit_item(unit)
            if item.id in acc.processed:
                return acc
            return acc.add(item)

        for issue_id in issue_ids:
            if issue_id in acc.processed:
                continue
            acc = acc.add(_issue_item(issue_id, issue_details.get(issue_id), unit.order_index))
        return acc

    return step


def _sorted(items: Iterable[ChangeItem]) -> tuple[ChangeItem, ...]:
    # sorted() is stable, so equal order_index keeps discovery order
    return tuple(sorted(items, key=lambda item: item.order_index))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def aggregate(
    change_units: Sequence[ChangeUnit],
    linked_issues: Mapping[str, Sequence[str]],
    issue_details: Mapping[str, IssueDetails],
    open_issues: Sequence[IssueDetails],
) -> AggregationResult:
    """Deduplicate and categorize the changes of a build.

    Args:
        change_units: Pull requests in the range, in merge order
        linked_issues: Pull request number -> ids of the issues it closes
        issue_details: Issue id -> details, for every linked issue
        open_issues: Currently open issues

    Returns:
        An AggregationResult with changes, bugs and known_issues sorted by
        order_index. No id appears twice across the three lists.
    """
    result = reduce(
        _fold_unit(linked_issues, issue_details),
        change_units,
        AggregationResult(),
    )

    known: list[ChangeItem] = []
    reported = set(result.processed)
    for position, issue in enumerate(open_issues):
        if issue.id in reported:
            continue
        category = categorize_labels(issue.labels)
        if category != ChangeCategory.BUG:
            continue
        reported.add(issue.id)
        known.append(
            ChangeItem(
                id=issue.id,
                title=issue.title,
                url=issue.url,
                category=category,
                order_index=position,
            )
        )

    return AggregationResult(
        processed=result.processed,
        changes=_sorted(result.changes),
        bugs=_sorted(result.bugs),
        known_issues=_sorted(known),
    )
