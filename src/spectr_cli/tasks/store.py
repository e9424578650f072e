"""Read, update and atomically rewrite JSONC task files.

The store never caches: every update re-reads the files on the resolution
path. Writes go to a sibling ``.tmp`` file that is then moved over the
original with ``os.replace`` so concurrent readers (the tracker's watcher)
only ever see the old or the new complete document.

Comments are not preserved across writes; only the structural fields of
:class:`~spectr_cli.tasks.models.TaskFile` are written back.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .errors import (
    TaskFileNotFoundError,
    TaskFileReadError,
    TaskNotFoundError,
    TaskParseError,
    TaskReferenceCycleError,
)
from .jsonc import strip_jsonc_comments
from .models import REF_PREFIX, TaskFile, TaskStatus, aggregate_status, parse_status

logger = logging.getLogger(__name__)

TASKS_FILENAME = "tasks.jsonc"


def parse_tasks_text(text: str, path: Path | None = None) -> TaskFile:
    """Parse JSONC text into a :class:`TaskFile`."""
    try:
        data = json.loads(strip_jsonc_comments(text))
    except json.JSONDecodeError as exc:
        raise TaskParseError(path, f"invalid JSON: {exc}") from exc
    try:
        return TaskFile.from_dict(data)
    except (KeyError, ValueError, TypeError) as exc:
        detail = f"missing field {exc}" if isinstance(exc, KeyError) else str(exc)
        raise TaskParseError(path, detail) from exc


def read_tasks_file(path: Path) -> TaskFile:
    """Read and parse a task file from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise TaskFileNotFoundError(path) from exc
    except UnicodeDecodeError as exc:
        raise TaskParseError(path, f"invalid UTF-8: {exc}") from exc
    except OSError as exc:
        raise TaskFileReadError(path, exc) from exc
    return parse_tasks_text(text, path)


def serialize_tasks_file(tasks_file: TaskFile) -> str:
    """Render a task file as indented JSON with a trailing newline."""
    return json.dumps(tasks_file.to_dict(), indent=2, ensure_ascii=False) + "\n"


def write_tasks_file(path: Path, tasks_file: TaskFile) -> None:
    """Write a task file atomically (temp file + ``os.replace``)."""
    tasks_file.refresh_summary()
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        tmp_path.write_text(serialize_tasks_file(tasks_file), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def resolve_reference(ref: str, base_dir: Path) -> Path:
    """Resolve a ``$ref:<relative/path>`` link against ``base_dir``."""
    if not ref.startswith(REF_PREFIX):
        raise TaskParseError(None, f"invalid $ref format: {ref}")
    relative = ref[len(REF_PREFIX):].strip()
    if not relative:
        raise TaskParseError(None, f"empty $ref path: {ref}")
    return base_dir / relative


class TaskStore:
    """Status updates against a root task file and its ``$ref`` children."""

    def __init__(self, root_path: Path) -> None:
        self.root_path = Path(root_path)

    @classmethod
    def for_change_dir(cls, change_dir: Path) -> TaskStore:
        return cls(Path(change_dir) / TASKS_FILENAME)

    def read(self) -> TaskFile:
        return read_tasks_file(self.root_path)

    def update(self, task_id: str, status: TaskStatus) -> None:
        """Set ``task_id`` to ``status`` wherever it lives in the hierarchy.

        When the task lives in a referenced child file, every referencing
        task on the path back to the root is recomputed from its child file
        and rewritten, child first.

        Raises:
            ValueError: ``status`` is not a valid task status.
            TaskFileNotFoundError: a file on the resolution path is missing.
            TaskFileReadError: a file on the path exists but cannot be read.
            TaskParseError: a file on the path is malformed.
            TaskReferenceCycleError: ``$ref`` links form a cycle.
            TaskNotFoundError: the ID exists nowhere in the hierarchy.
        """
        status = parse_status(status)
        if not self._update_in(self.root_path, task_id, status, set()):
            raise TaskNotFoundError(task_id)

    def _update_in(
        self,
        path: Path,
        task_id: str,
        status: TaskStatus,
        ancestors: set[Path],
    ) -> bool:
        resolved = path.resolve()
        if resolved in ancestors:
            raise TaskReferenceCycleError(path)
        ancestors.add(resolved)
        try:
            return self._update_file(path, task_id, status, ancestors)
        finally:
            ancestors.discard(resolved)

    def _update_file(
        self,
        path: Path,
        task_id: str,
        status: TaskStatus,
        ancestors: set[Path],
    ) -> bool:
        tasks_file = read_tasks_file(path)
        record = tasks_file.find(task_id)
        if record is not None:
            record.status = status
            write_tasks_file(path, tasks_file)
            logger.debug("Updated task %s to %s in %s", task_id, status, path)
            return True

        for parent_task in tasks_file.tasks:
            if not parent_task.children:
                continue
            try:
                child_path = resolve_reference(parent_task.children, path.parent)
            except TaskParseError as exc:
                raise TaskParseError(path, exc.detail) from exc
            if not self._update_in(child_path, task_id, status, ancestors):
                continue

            child_file = read_tasks_file(child_path)
            if child_file.parent and child_file.parent != parent_task.id:
                logger.warning(
                    "Child file %s names parent %s but is referenced by task %s",
                    child_path,
                    child_file.parent,
                    parent_task.id,
                )
            parent_task.status = aggregate_status(t.status for t in child_file.tasks)
            write_tasks_file(path, tasks_file)
            logger.debug(
                "Aggregated task %s to %s in %s", parent_task.id, parent_task.status, path
            )
            return True

        return False
