"""JSONC task files: model, comment stripping and the status store.

Public API surface -- consumers import from this package.
"""

from .errors import (
    TaskFileNotFoundError,
    TaskFileReadError,
    TaskNotFoundError,
    TaskParseError,
    TaskReferenceCycleError,
    TaskStoreError,
)
from .hierarchy import TaskHierarchy, expand_includes, is_hierarchical, load_hierarchy
from .jsonc import strip_jsonc_comments
from .models import (
    REF_PREFIX,
    TaskFile,
    TaskRecord,
    TaskStatus,
    TaskSummary,
    aggregate_status,
    all_completed,
    count_progress,
    parse_status,
)
from .store import (
    TASKS_FILENAME,
    TaskStore,
    parse_tasks_text,
    read_tasks_file,
    resolve_reference,
    serialize_tasks_file,
    write_tasks_file,
)

__all__ = [
    "REF_PREFIX",
    "TASKS_FILENAME",
    "TaskFile",
    "TaskFileNotFoundError",
    "TaskFileReadError",
    "TaskHierarchy",
    "TaskNotFoundError",
    "TaskParseError",
    "TaskRecord",
    "TaskReferenceCycleError",
    "TaskStatus",
    "TaskStore",
    "TaskStoreError",
    "TaskSummary",
    "aggregate_status",
    "all_completed",
    "count_progress",
    "expand_includes",
    "is_hierarchical",
    "load_hierarchy",
    "parse_status",
    "parse_tasks_text",
    "read_tasks_file",
    "resolve_reference",
    "serialize_tasks_file",
    "strip_jsonc_comments",
    "write_tasks_file",
]
