"""Exceptions raised by the task store."""

from __future__ import annotations

from pathlib import Path


class TaskStoreError(Exception):
    """Base class for task file read/update failures."""


class TaskFileNotFoundError(TaskStoreError):
    """Raised when a task file (root or referenced) does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Task file not found: {path}")


class TaskParseError(TaskStoreError):
    """Raised when a task file is malformed or holds an invalid value."""

    def __init__(self, path: Path | None, detail: str) -> None:
        self.path = path
        self.detail = detail
        where = f" {path}" if path is not None else ""
        super().__init__(f"Failed to parse task file{where}: {detail}")


class TaskNotFoundError(TaskStoreError):
    """Raised when a task ID is absent from the whole reference chain."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task with ID {task_id} not found in hierarchy")


class TaskReferenceCycleError(TaskStoreError):
    """Raised when ``$ref`` links lead back to a file already visited."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Cyclic $ref chain detected at {path}")


class TaskFileReadError(TaskStoreError):
    """Raised when a task file exists but cannot be read (permissions, not a file)."""

    def __init__(self, path: Path, reason: OSError) -> None:
        self.path = path
        self.reason = reason
        detail = reason.strerror or str(reason)
        super().__init__(f"Cannot read task file {path}: {detail}")
