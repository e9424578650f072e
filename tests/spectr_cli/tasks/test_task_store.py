"""Tests for TaskStore status updates across $ref hierarchies."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from spectr_cli.tasks import (
    TaskFileNotFoundError,
    TaskFileReadError,
    TaskNotFoundError,
    TaskParseError,
    TaskReferenceCycleError,
    TaskStatus,
    TaskStore,
    TaskStoreError,
    read_tasks_file,
    resolve_reference,
)
from tests.utils import task


def _statuses(path: Path) -> dict[str, str]:
    return {t.id: str(t.status) for t in read_tasks_file(path).tasks}


@pytest.fixture()
def hierarchy(tmp_path: Path, write_tasks) -> Path:
    """Root file whose task 1 delegates to tasks-1.jsonc."""
    change_dir = tmp_path / "add-feature"
    write_tasks(
        change_dir / "tasks.jsonc",
        [task("1", "pending", children="$ref:tasks-1.jsonc"), task("2")],
        version=2,
        header_comment="Generated by spectr accept",
    )
    write_tasks(
        change_dir / "tasks-1.jsonc",
        [task("1.1", "completed"), task("1.2", "pending")],
        version=2,
        parent="1",
    )
    return change_dir


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class TestRead:
    def test_reads_commented_file(self, hierarchy: Path) -> None:
        tf = TaskStore.for_change_dir(hierarchy).read()
        assert [t.id for t in tf.tasks] == ["1", "2"]
        assert tf.version == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TaskFileNotFoundError):
            TaskStore(tmp_path / "tasks.jsonc").read()

    def test_malformed_json(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.jsonc"
        path.write_text('{"version": 1, "tasks": [', encoding="utf-8")
        with pytest.raises(TaskParseError) as exc_info:
            TaskStore(path).read()
        assert exc_info.value.path == path

    def test_invalid_status(self, tmp_path: Path, write_tasks) -> None:
        path = write_tasks(tmp_path / "tasks.jsonc", [task("1.1", "done")])
        with pytest.raises(TaskParseError):
            TaskStore(path).read()

    def test_invalid_utf8_is_a_parse_error(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.jsonc"
        path.write_bytes(b'{"version": 1, "tasks": [\xff\xfe')
        with pytest.raises(TaskParseError, match="invalid UTF-8") as exc_info:
            read_tasks_file(path)
        assert exc_info.value.path == path

    def test_unreadable_path_is_a_read_error(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.jsonc"
        path.mkdir()
        with pytest.raises(TaskFileReadError) as exc_info:
            read_tasks_file(path)
        assert isinstance(exc_info.value, TaskStoreError)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_includes_must_be_a_list(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.jsonc"
        path.write_text('{"version": 2, "tasks": [], "includes": "specs/*/tasks.jsonc"}', encoding="utf-8")
        with pytest.raises(TaskParseError, match="includes"):
            read_tasks_file(path)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_direct_update(self, tmp_path: Path, write_tasks) -> None:
        path = write_tasks(tmp_path / "tasks.jsonc", [task("1.1"), task("1.2")])
        TaskStore(path).update("1.1", TaskStatus.IN_PROGRESS)
        assert _statuses(path) == {"1.1": "in_progress", "1.2": "pending"}

    def test_nested_update_completes_parent(self, hierarchy: Path) -> None:
        TaskStore.for_change_dir(hierarchy).update("1.2", TaskStatus.COMPLETED)
        assert _statuses(hierarchy / "tasks-1.jsonc") == {"1.1": "completed", "1.2": "completed"}
        assert _statuses(hierarchy / "tasks.jsonc")["1"] == "completed"

    def test_nested_update_mixed_parent_in_progress(self, hierarchy: Path) -> None:
        TaskStore.for_change_dir(hierarchy).update("1.1", TaskStatus.PENDING)
        TaskStore.for_change_dir(hierarchy).update("1.2", TaskStatus.COMPLETED)
        assert _statuses(hierarchy / "tasks.jsonc")["1"] == "in_progress"

    def test_nested_update_all_pending_parent_pending(self, hierarchy: Path) -> None:
        TaskStore.for_change_dir(hierarchy).update("1.1", TaskStatus.PENDING)
        assert _statuses(hierarchy / "tasks.jsonc")["1"] == "pending"

    def test_three_level_aggregation(self, tmp_path: Path, write_tasks) -> None:
        write_tasks(tmp_path / "tasks.jsonc", [task("1", children="$ref:tasks-1.jsonc")], version=2)
        write_tasks(
            tmp_path / "tasks-1.jsonc",
            [task("1.1", children="$ref:nested/tasks-1.1.jsonc")],
            version=2,
            parent="1",
        )
        write_tasks(
            tmp_path / "nested" / "tasks-1.1.jsonc",
            [task("1.1.1"), task("1.1.2")],
            version=2,
            parent="1.1",
        )
        TaskStore(tmp_path / "tasks.jsonc").update("1.1.1", TaskStatus.IN_PROGRESS)
        assert _statuses(tmp_path / "tasks-1.jsonc")["1.1"] == "in_progress"
        assert _statuses(tmp_path / "tasks.jsonc")["1"] == "in_progress"

    @pytest.mark.parametrize("status", ["done", "COMPLETED", ""])
    def test_invalid_status_rejected_before_reading(self, tmp_path: Path, status: str) -> None:
        with pytest.raises(ValueError, match="invalid task status"):
            TaskStore(tmp_path / "missing.jsonc").update("1.1", status)

    def test_status_given_as_string(self, tmp_path: Path, write_tasks) -> None:
        path = write_tasks(tmp_path / "tasks.jsonc", [task("1.1")])
        TaskStore(path).update("1.1", "completed")
        assert _statuses(path) == {"1.1": "completed"}

    def test_unknown_task(self, hierarchy: Path) -> None:
        before = (hierarchy / "tasks.jsonc").read_text(encoding="utf-8")
        with pytest.raises(TaskNotFoundError) as exc_info:
            TaskStore.for_change_dir(hierarchy).update("9.9", TaskStatus.COMPLETED)
        assert exc_info.value.task_id == "9.9"
        assert "9.9" in str(exc_info.value)
        assert (hierarchy / "tasks.jsonc").read_text(encoding="utf-8") == before

    def test_missing_child_file(self, tmp_path: Path, write_tasks) -> None:
        path = write_tasks(tmp_path / "tasks.jsonc", [task("1", children="$ref:gone.jsonc")], version=2)
        with pytest.raises(TaskFileNotFoundError):
            TaskStore(path).update("1.1", TaskStatus.COMPLETED)

    def test_reference_cycle(self, tmp_path: Path, write_tasks) -> None:
        write_tasks(tmp_path / "tasks.jsonc", [task("1", children="$ref:tasks-1.jsonc")], version=2)
        write_tasks(tmp_path / "tasks-1.jsonc", [task("1.1", children="$ref:tasks.jsonc")], version=2)
        with pytest.raises(TaskReferenceCycleError):
            TaskStore(tmp_path / "tasks.jsonc").update("7", TaskStatus.COMPLETED)

    def test_shared_child_is_not_a_cycle(self, tmp_path: Path, write_tasks) -> None:
        write_tasks(
            tmp_path / "tasks.jsonc",
            [
                task("1", children="$ref:tasks-1.jsonc"),
                task("2", children="$ref:tasks-1.jsonc"),
            ],
            version=2,
        )
        write_tasks(tmp_path / "tasks-1.jsonc", [task("1.1")], version=2)
        with pytest.raises(TaskNotFoundError):
            TaskStore(tmp_path / "tasks.jsonc").update("3.1", TaskStatus.COMPLETED)

    def test_summary_recomputed(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.jsonc"
        path.write_text(
            json.dumps(
                {
                    "version": 2,
                    "tasks": [task("1.1"), task("1.2")],
                    "summary": {"total": 2, "completed": 0, "in_progress": 0, "pending": 2},
                }
            ),
            encoding="utf-8",
        )
        TaskStore(path).update("1.1", TaskStatus.COMPLETED)
        summary = json.loads(path.read_text(encoding="utf-8"))["summary"]
        assert summary == {"total": 2, "completed": 1, "in_progress": 0, "pending": 1}


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_no_temp_file_left_behind(self, hierarchy: Path) -> None:
        TaskStore.for_change_dir(hierarchy).update("1.2", TaskStatus.COMPLETED)
        assert not list(hierarchy.glob("*.tmp"))

    def test_written_file_is_plain_json(self, hierarchy: Path) -> None:
        TaskStore.for_change_dir(hierarchy).update("2", TaskStatus.IN_PROGRESS)
        text = (hierarchy / "tasks.jsonc").read_text(encoding="utf-8")
        assert "//" not in text
        assert text.endswith("\n")
        assert json.loads(text)["tasks"][1]["status"] == "in_progress"

    def test_concurrent_reader_sees_complete_documents(self, tmp_path: Path, write_tasks) -> None:
        path = write_tasks(tmp_path / "tasks.jsonc", [task(f"1.{n}") for n in range(50)])
        store = TaskStore(path)
        stop = threading.Event()
        failures: list[Exception] = []

        def _reader() -> None:
            while not stop.is_set():
                try:
                    read_tasks_file(path)
                except TaskParseError as exc:
                    failures.append(exc)

        reader = threading.Thread(target=_reader, daemon=True)
        reader.start()
        try:
            for n in range(50):
                store.update(f"1.{n}", TaskStatus.COMPLETED)
        finally:
            stop.set()
            reader.join(timeout=5)
        assert failures == []


def test_resolve_reference(tmp_path: Path) -> None:
    assert resolve_reference("$ref:tasks-1.jsonc", tmp_path) == tmp_path / "tasks-1.jsonc"
    with pytest.raises(TaskParseError):
        resolve_reference("tasks-1.jsonc", tmp_path)
    with pytest.raises(TaskParseError):
        resolve_reference("$ref:", tmp_path)
