"""Tests for the keyed collection differ.

Covers the removed/added/retained classification, the partition property,
idempotence of a second pass, empty-list boundaries, and rejection of
duplicate identifiers.
"""

import inspect

import pytest

from detail_sync.errors import DuplicateDetailIdError, ReconciliationError
from detail_sync.sync.differ import diff_details, find_duplicate_ids


def _ids(rows: list[dict]) -> list:
    return [r["id"] for r in rows]


OLD = [
    {"id": 11, "movie_id": 2, "character": "Neo"},
    {"id": 12, "movie_id": 2, "character": "Morpheus"},
    {"id": 13, "movie_id": 2, "character": "Trinity"},
]


class TestClassification:
    """Rows land in exactly the group their identifier dictates."""

    def test_update_scenario(self) -> None:
        """A kept, B changed, C dropped, D new."""
        new = [
            {"id": 11, "movie_id": 2, "character": "Neo"},
            {"id": 12, "movie_id": 2, "character": "Morpheus2"},
            {"id": None, "movie_id": 2, "character": "Agent Smith"},
        ]
        diff = diff_details(OLD, new)

        assert _ids(diff.removed) == [13]
        assert _ids(diff.retained) == [11, 12]
        assert diff.retained[1]["character"] == "Morpheus2"
        assert len(diff.added) == 1
        assert diff.added[0]["character"] == "Agent Smith"

    def test_missing_pk_key_is_added(self) -> None:
        """A row without the pk key at all counts as new."""
        diff = diff_details(OLD, [{"character": "Oracle"}])
        assert diff.added == [{"character": "Oracle"}]
        assert _ids(diff.removed) == [11, 12, 13]

    def test_unknown_id_is_added_not_rejected(self) -> None:
        """A stale/foreign identifier is re-created instead of raising."""
        diff = diff_details(OLD, [{"id": 999, "character": "Ghost"}])
        assert _ids(diff.added) == [999]
        assert diff.retained == []
        assert _ids(diff.removed) == [11, 12, 13]

    def test_retained_always_listed_even_if_unchanged(self) -> None:
        """No dirty checking: identical rows are still retained (updated)."""
        diff = diff_details(OLD, [dict(r) for r in OLD])
        assert _ids(diff.retained) == [11, 12, 13]
        assert diff.is_noop

    def test_order_follows_input(self) -> None:
        new = [{"id": 13}, {"id": None, "n": 1}, {"id": 11}, {"id": None, "n": 2}]
        diff = diff_details(OLD, new)
        assert _ids(diff.retained) == [13, 11]
        assert [r["n"] for r in diff.added] == [1, 2]
        assert _ids(diff.removed) == [12]

    def test_custom_pk(self) -> None:
        old = [{"cast_id": "a"}, {"cast_id": "b"}]
        diff = diff_details(old, [{"cast_id": "b"}], pk="cast_id")
        assert [r["cast_id"] for r in diff.removed] == ["a"]
        assert [r["cast_id"] for r in diff.retained] == ["b"]

    def test_inputs_not_mutated(self) -> None:
        old = [dict(r) for r in OLD]
        new = [{"id": 11, "character": "Neo"}, {"id": None}]
        diff_details(old, new)
        assert old == OLD
        assert new == [{"id": 11, "character": "Neo"}, {"id": None}]

    def test_summary_counts(self) -> None:
        diff = diff_details(OLD, [{"id": 11}, {"id": None}])
        assert diff.summary() == {"removed": 2, "added": 1, "retained": 1}


class TestBoundaries:
    """Empty old and new lists."""

    def test_empty_old_list_removes_nothing(self) -> None:
        diff = diff_details([], [{"id": None}, {"id": None}])
        assert diff.removed == []
        assert len(diff.added) == 2
        assert diff.retained == []

    def test_empty_new_list_removes_everything(self) -> None:
        diff = diff_details(OLD, [])
        assert _ids(diff.removed) == [11, 12, 13]
        assert diff.added == []
        assert diff.retained == []

    def test_both_empty(self) -> None:
        diff = diff_details([], [])
        assert diff.summary() == {"removed": 0, "added": 0, "retained": 0}
        assert diff.is_noop


class TestPartition:
    """Every old or submitted row lands in exactly one group."""

    @pytest.mark.parametrize(
        "new",
        [
            [],
            [{"id": 11}],
            [{"id": None}, {"id": 12}, {"id": 77}],
            [{"id": 13}, {"id": 12}, {"id": 11}, {"id": None}],
        ],
    )
    def test_groups_partition_inputs(self, new) -> None:
        diff = diff_details(OLD, new)

        removed_ids = set(_ids(diff.removed))
        retained_ids = set(_ids(diff.retained))
        added_ids = {r["id"] for r in diff.added if r["id"] is not None}

        assert not removed_ids & retained_ids
        assert not removed_ids & added_ids
        assert not retained_ids & added_ids
        # Old rows are either removed or retained
        assert removed_ids | retained_ids == set(_ids(OLD))
        # Submitted rows are either retained or added
        assert len(diff.retained) + len(diff.added) == len(new)

    def test_second_pass_is_noop(self) -> None:
        """Diffing the persisted result against the same list changes nothing."""
        new = [{"id": 11, "character": "Neo"}, {"id": 12, "character": "Morpheus2"}]
        first = diff_details(OLD, new)
        persisted = first.retained  # no added rows in this list
        second = diff_details(persisted, new)
        assert second.removed == []
        assert second.added == []
        assert _ids(second.retained) == [11, 12]


class TestDuplicates:
    """Repeated non-null identifiers are rejected, nulls are not."""

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(DuplicateDetailIdError) as exc_info:
            diff_details(OLD, [{"id": 11}, {"id": 12}, {"id": 11}])
        assert exc_info.value.duplicates == [11]

    def test_duplicate_error_is_reconciliation_error(self) -> None:
        with pytest.raises(ReconciliationError):
            diff_details([], [{"id": 5}, {"id": 5}])

    def test_multiple_null_ids_allowed(self) -> None:
        diff = diff_details(OLD, [{"id": None}, {"id": None}, {"id": None}])
        assert len(diff.added) == 3

    def test_find_duplicate_ids_order(self) -> None:
        rows = [{"id": 3}, {"id": 1}, {"id": 3}, {"id": 1}, {"id": None}, {"id": None}]
        assert find_duplicate_ids(rows) == [3, 1]


class TestPurity:
    def test_diff_details_is_sync(self) -> None:
        """diff_details is pure logic -- no await, no I/O."""
        assert not inspect.iscoroutinefunction(diff_details)
