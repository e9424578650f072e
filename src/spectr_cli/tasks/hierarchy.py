"""Flattened view over a root task file and the child files it pulls in.

Version 2 root files reach child files two ways: a task's ``children``
``$ref`` link, and ``includes`` glob patterns relative to the root file's
directory. Tasks loaded through a ``$ref`` get their parent's ID as a prefix
unless they already carry it. Each child file is loaded once, in document
order followed by include order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path, PurePath

from .errors import TaskParseError, TaskReferenceCycleError
from .models import TaskFile, TaskRecord, TaskSummary
from .store import read_tasks_file, resolve_reference

logger = logging.getLogger(__name__)


@dataclass
class TaskHierarchy:
    """Root file plus every task reachable from it, in display order."""

    root: TaskFile
    tasks: list[TaskRecord]
    hierarchical: bool

    @property
    def summary(self) -> TaskSummary:
        return TaskSummary.from_tasks(self.tasks)

    def by_section(self) -> dict[str, list[TaskRecord]]:
        """Tasks grouped by section name, sections sorted alphabetically."""
        grouped: dict[str, list[TaskRecord]] = {}
        for task in self.tasks:
            grouped.setdefault(task.section or "Uncategorized", []).append(task)
        return dict(sorted(grouped.items()))


def is_hierarchical(tasks_file: TaskFile) -> bool:
    return tasks_file.version >= 2 and (
        bool(tasks_file.includes) or any(task.children for task in tasks_file.tasks)
    )


def expand_includes(base_dir: Path, patterns: list[str]) -> list[Path]:
    """Files matching ``patterns`` under ``base_dir``, sorted per pattern."""
    matches: list[Path] = []
    for pattern in patterns:
        if PurePath(pattern).is_absolute():
            raise TaskParseError(None, f"includes pattern must be relative: {pattern}")
        matches.extend(sorted(path for path in base_dir.glob(pattern) if path.is_file()))
    return matches


def load_hierarchy(root_path: Path) -> TaskHierarchy:
    """Read ``root_path`` and, for hierarchical files, every child file.

    Raises:
        TaskStoreError: any file on the way is missing, unreadable or
            malformed, or ``$ref`` links form a cycle.
    """
    root_path = Path(root_path)
    root = read_tasks_file(root_path)
    if not is_hierarchical(root):
        return TaskHierarchy(root=root, tasks=list(root.tasks), hierarchical=False)

    processed: set[Path] = set()
    ancestors: set[Path] = {root_path.resolve()}
    tasks = _collect(root, root_path.parent, None, ancestors, processed)

    for include in expand_includes(root_path.parent, root.includes or []):
        resolved = include.resolve()
        if resolved in processed or resolved in ancestors:
            continue
        logger.debug("Loading included task file %s", include)
        tasks.extend(_load_child(include, None, ancestors, processed))

    return TaskHierarchy(root=root, tasks=tasks, hierarchical=True)


def _collect(
    tasks_file: TaskFile,
    base_dir: Path,
    parent_id: str | None,
    ancestors: set[Path],
    processed: set[Path],
) -> list[TaskRecord]:
    collected: list[TaskRecord] = []
    for task in tasks_file.tasks:
        if parent_id and not task.id.startswith(parent_id + "."):
            task = replace(task, id=f"{parent_id}.{task.id}")
        collected.append(task)
        if task.children:
            child_path = resolve_reference(task.children, base_dir)
            collected.extend(_load_child(child_path, task.id, ancestors, processed))
    return collected


def _load_child(
    path: Path,
    parent_id: str | None,
    ancestors: set[Path],
    processed: set[Path],
) -> list[TaskRecord]:
    resolved = path.resolve()
    if resolved in ancestors:
        raise TaskReferenceCycleError(path)
    if resolved in processed:
        return []
    processed.add(resolved)
    ancestors.add(resolved)
    try:
        child = read_tasks_file(path)
        return _collect(child, path.parent, parent_id, ancestors, processed)
    finally:
        ancestors.discard(resolved)
