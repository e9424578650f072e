"""Data model for JSONC task files.

A task file holds a versioned, ordered list of task records. Version 2
files may point a task at a child task file through a ``$ref:`` link in its
``children`` field; the child file names the referencing task in its
``parent`` field and the referencing task's status is the aggregate of the
child file's statuses.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

REF_PREFIX = "$ref:"


class TaskStatus(StrEnum):
    """Lifecycle status of a single task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def parse_status(value: Any) -> TaskStatus:
    """Convert a raw status value, rejecting anything outside the enum."""
    if not isinstance(value, str):
        raise ValueError(f"task status must be a string, got {value!r}")
    try:
        return TaskStatus(value)
    except ValueError:
        valid = ", ".join(status.value for status in TaskStatus)
        raise ValueError(
            f"invalid task status {value!r} (expected one of: {valid})"
        ) from None


def aggregate_status(statuses: Iterable[TaskStatus]) -> TaskStatus:
    """Compute a parent status from its children's statuses.

    All completed gives completed, all pending (or no children) gives
    pending, and any other mix gives in_progress.
    """
    seen = set(statuses)
    if not seen or seen == {TaskStatus.PENDING}:
        return TaskStatus.PENDING
    if seen == {TaskStatus.COMPLETED}:
        return TaskStatus.COMPLETED
    return TaskStatus.IN_PROGRESS


@dataclass
class TaskRecord:
    """One task entry in a task file."""

    id: str
    section: str
    description: str
    status: TaskStatus
    children: str | None = None

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "section": self.section,
            "description": self.description,
            "status": str(self.status),
        }
        if self.children:
            d["children"] = self.children
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskRecord:
        if not isinstance(data, dict):
            raise TypeError(f"task entry must be an object, got {type(data).__name__}")
        task_id = data["id"]
        if not isinstance(task_id, str) or not task_id:
            raise ValueError(f"task id must be a non-empty string, got {task_id!r}")
        children = data.get("children")
        if children is not None and not isinstance(children, str):
            raise ValueError(f"task {task_id}: children must be a string reference")
        return cls(
            id=task_id,
            section=str(data.get("section", "")),
            description=str(data.get("description", "")),
            status=parse_status(data["status"]),
            children=children or None,
        )


@dataclass
class TaskSummary:
    """Completion counters carried by version 2 task files."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "pending": self.pending,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskSummary:
        return cls(
            total=int(data.get("total", 0)),
            completed=int(data.get("completed", 0)),
            in_progress=int(data.get("in_progress", 0)),
            pending=int(data.get("pending", 0)),
        )

    @classmethod
    def from_tasks(cls, tasks: Iterable[TaskRecord]) -> TaskSummary:
        summary = cls()
        for task in tasks:
            summary.total += 1
            if task.status is TaskStatus.COMPLETED:
                summary.completed += 1
            elif task.status is TaskStatus.IN_PROGRESS:
                summary.in_progress += 1
            else:
                summary.pending += 1
        return summary


@dataclass
class TaskFile:
    """Parsed content of a ``tasks.jsonc`` file."""

    version: int
    tasks: list[TaskRecord] = field(default_factory=list)
    parent: str | None = None
    summary: TaskSummary | None = None
    includes: list[str] | None = None

    def find(self, task_id: str) -> TaskRecord | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def statuses(self) -> dict[str, TaskStatus]:
        return {task.id: task.status for task in self.tasks}

    def refresh_summary(self) -> None:
        """Recompute ``summary`` from the task list when the file carries one."""
        if self.summary is not None:
            self.summary = TaskSummary.from_tasks(self.tasks)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"version": self.version}
        if self.parent:
            d["parent"] = self.parent
        d["tasks"] = [task.to_dict() for task in self.tasks]
        if self.summary is not None:
            d["summary"] = self.summary.to_dict()
        if self.includes:
            d["includes"] = list(self.includes)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskFile:
        if not isinstance(data, dict):
            raise TypeError(f"task file must be a JSON object, got {type(data).__name__}")
        version = data.get("version", 1)
        if not isinstance(version, int) or isinstance(version, bool):
            raise ValueError(f"version must be an integer, got {version!r}")
        raw_tasks = data.get("tasks", [])
        if not isinstance(raw_tasks, list):
            raise ValueError("tasks must be an array")
        summary_data = data.get("summary")
        parent = data.get("parent")
        includes = data.get("includes")
        if includes is not None and (
            not isinstance(includes, list)
            or not all(isinstance(pattern, str) for pattern in includes)
        ):
            raise ValueError("includes must be an array of glob patterns")
        return cls(
            version=version,
            tasks=[TaskRecord.from_dict(item) for item in raw_tasks],
            parent=str(parent) if parent else None,
            summary=TaskSummary.from_dict(summary_data)
            if isinstance(summary_data, dict)
            else None,
            includes=list(includes) if includes else None,
        )


def count_progress(tasks: Iterable[TaskRecord]) -> tuple[int, int]:
    """Return ``(completed, total)`` for a task list."""
    completed = 0
    total = 0
    for task in tasks:
        total += 1
        if task.status is TaskStatus.COMPLETED:
            completed += 1
    return completed, total


def all_completed(tasks: Iterable[TaskRecord]) -> bool:
    """True when every task is completed; an empty list counts as complete."""
    return all(task.status is TaskStatus.COMPLETED for task in tasks)
