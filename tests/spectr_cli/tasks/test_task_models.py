"""Tests for task records, status parsing and parent aggregation."""

from __future__ import annotations

import itertools

import pytest

from spectr_cli.tasks.models import (
    TaskFile,
    TaskRecord,
    TaskStatus,
    TaskSummary,
    aggregate_status,
    all_completed,
    count_progress,
    parse_status,
)
from tests.utils import task

P, I, C = TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED


# ---------------------------------------------------------------------------
# Status parsing
# ---------------------------------------------------------------------------


class TestParseStatus:
    @pytest.mark.parametrize("value", ["pending", "in_progress", "completed"])
    def test_valid_values(self, value: str) -> None:
        assert parse_status(value) == TaskStatus(value)

    @pytest.mark.parametrize("value", ["done", "Completed", "", None, 1])
    def test_invalid_values_rejected(self, value) -> None:
        with pytest.raises(ValueError):
            parse_status(value)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregateStatus:
    def test_empty_is_pending(self) -> None:
        assert aggregate_status([]) is P

    def test_all_pending(self) -> None:
        assert aggregate_status([P, P, P]) is P

    def test_all_completed(self) -> None:
        assert aggregate_status([C, C]) is C

    @pytest.mark.parametrize("statuses", [[P, C], [I], [P, I], [C, I, P], [C, C, I]])
    def test_mixed_is_in_progress(self, statuses: list[TaskStatus]) -> None:
        assert aggregate_status(statuses) is I

    def test_depends_only_on_the_multiset(self) -> None:
        """Order of the children never changes the aggregate."""
        for combo in itertools.product([P, I, C], repeat=3):
            results = {aggregate_status(perm) for perm in itertools.permutations(combo)}
            assert len(results) == 1

    def test_accepts_generators(self) -> None:
        assert aggregate_status(s for s in (C, C)) is C


# ---------------------------------------------------------------------------
# Records and files
# ---------------------------------------------------------------------------


class TestTaskRecord:
    def test_round_trip_keeps_children(self) -> None:
        raw = task("1", children="$ref:tasks-1.jsonc")
        record = TaskRecord.from_dict(raw)
        assert record.has_children
        assert record.to_dict() == raw

    def test_children_omitted_when_absent(self) -> None:
        assert "children" not in TaskRecord.from_dict(task("1.1")).to_dict()

    def test_missing_status_is_key_error(self) -> None:
        with pytest.raises(KeyError):
            TaskRecord.from_dict({"id": "1"})

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskRecord.from_dict(task(""))


class TestTaskFile:
    def test_from_dict_defaults(self) -> None:
        tf = TaskFile.from_dict({"tasks": [task("1.1")]})
        assert tf.version == 1
        assert tf.parent is None
        assert tf.summary is None
        assert tf.find("1.1") is not None
        assert tf.find("9.9") is None

    def test_refresh_summary_only_when_present(self) -> None:
        tf = TaskFile.from_dict({"version": 1, "tasks": [task("1.1", "completed")]})
        tf.refresh_summary()
        assert tf.summary is None

        tf = TaskFile.from_dict(
            {
                "version": 2,
                "tasks": [task("1.1", "completed"), task("1.2", "in_progress"), task("1.3")],
                "summary": {"total": 0},
            }
        )
        tf.refresh_summary()
        assert tf.summary == TaskSummary(total=3, completed=1, in_progress=1, pending=1)

    def test_to_dict_field_order(self) -> None:
        tf = TaskFile.from_dict(
            {"version": 2, "parent": "1", "tasks": [], "includes": ["tasks-*.jsonc"]}
        )
        assert list(tf.to_dict()) == ["version", "parent", "tasks", "includes"]

    @pytest.mark.parametrize("includes", ["specs/*/tasks.jsonc", [1, 2], {"a": "b"}])
    def test_includes_must_be_list_of_strings(self, includes) -> None:
        with pytest.raises(ValueError, match="includes"):
            TaskFile.from_dict({"version": 2, "tasks": [], "includes": includes})

    def test_boolean_version_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskFile.from_dict({"version": True, "tasks": []})


class TestProgress:
    def test_count_progress(self) -> None:
        tasks = [TaskRecord.from_dict(task(str(n), s)) for n, s in enumerate(["completed", "pending", "completed"])]
        assert count_progress(tasks) == (2, 3)

    def test_all_completed_empty_list(self) -> None:
        assert all_completed([]) is True

    def test_all_completed_false_with_in_progress(self) -> None:
        tasks = [TaskRecord.from_dict(task("1", "completed")), TaskRecord.from_dict(task("2", "in_progress"))]
        assert all_completed(tasks) is False
