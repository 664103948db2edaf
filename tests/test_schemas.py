"""Tests for Pydantic schemas.

These tests verify that the schemas:
- Accept valid data
- Reject data that breaks cross-field invariants
- Stay immutable once created
- Serialize to JSON for renderers

Run with: pytest tests/test_schemas.py -v
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from buildmark.schemas import (
    BuildInformation,
    ChangeCategory,
    ChangeItem,
    ChangeUnit,
    Version,
)
from buildmark.version import parse_version

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def target() -> Version:
    version = parse_version("v2.0.0")
    assert version is not None
    return version


@pytest.fixture
def baseline() -> Version:
    version = parse_version("v1.1.0")
    assert version is not None
    return version


def item(item_id: str, category: ChangeCategory = ChangeCategory.OTHER) -> ChangeItem:
    return ChangeItem(id=item_id, title=f"Item {item_id}", category=category)


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


class TestVersion:
    def test_pre_release_flag_must_match(self) -> None:
        with pytest.raises(ValidationError):
            Version(
                tag="v1.0.0",
                semantic_core="1.0.0",
                pre_release="",
                full_version="1.0.0",
                is_pre_release=True,
            )

    def test_version_is_frozen(self, target: Version) -> None:
        with pytest.raises(ValidationError):
            target.tag = "v9.9.9"


# ---------------------------------------------------------------------------
# ChangeUnit / ChangeItem
# ---------------------------------------------------------------------------


class TestChangeUnit:
    def test_defaults(self) -> None:
        unit = ChangeUnit(number="42")
        assert unit.labels == []
        assert unit.order_index == 0

    def test_number_required(self) -> None:
        with pytest.raises(ValidationError):
            ChangeUnit(number="")


class TestChangeItem:
    def test_category_from_string(self) -> None:
        parsed = ChangeItem.model_validate({"id": "1", "category": "bug"})
        assert parsed.category == ChangeCategory.BUG

    def test_unknown_category_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChangeItem.model_validate({"id": "1", "category": "chore"})


# ---------------------------------------------------------------------------
# BuildInformation
# ---------------------------------------------------------------------------


class TestBuildInformation:
    def test_valid_build_information(self, target: Version, baseline: Version) -> None:
        info = BuildInformation(
            from_version=baseline,
            to_version=target,
            from_hash="abc",
            to_hash="def",
            changes=[item("1")],
            bugs=[item("2", ChangeCategory.BUG)],
            known_issues=[item("4", ChangeCategory.BUG)],
        )
        assert info.from_version == baseline
        assert len(info.changes) == 1

    def test_without_baseline(self, target: Version) -> None:
        info = BuildInformation(to_version=target, to_hash="def")
        assert info.from_version is None
        assert info.from_hash is None
        assert info.changes == []

    def test_id_in_two_lists_rejected(self, target: Version) -> None:
        with pytest.raises(ValidationError, match="more than once"):
            BuildInformation(
                to_version=target,
                to_hash="def",
                bugs=[item("2", ChangeCategory.BUG)],
                known_issues=[item("2", ChangeCategory.BUG)],
            )

    def test_id_twice_in_one_list_rejected(self, target: Version) -> None:
        with pytest.raises(ValidationError):
            BuildInformation(
                to_version=target,
                to_hash="def",
                changes=[item("1"), item("1")],
            )

    def test_json_round_trip(self, target: Version, baseline: Version) -> None:
        info = BuildInformation(
            from_version=baseline,
            to_version=target,
            from_hash="abc",
            to_hash="def",
            changes=[item("#13")],
        )
        data = json.loads(info.model_dump_json())
        assert data["to_version"]["tag"] == "v2.0.0"
        assert data["changes"][0] == {
            "id": "#13",
            "title": "Item #13",
            "url": "",
            "category": "other",
            "order_index": 0,
        }
        assert BuildInformation.model_validate(data) == info
