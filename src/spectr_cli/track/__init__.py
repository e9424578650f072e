"""Automatic git commits driven by task status changes.

The ``track`` session watches a change's ``tasks.jsonc`` and creates a
commit whenever a task transitions to ``in_progress`` or ``completed``.
"""

from .committer import (
    COMMIT_FOOTER,
    TASK_FILE_NAMES,
    Action,
    CommitOutcome,
    GitCommitter,
    filter_files,
    is_task_file,
    parse_binary_files,
    parse_git_status,
)
from .errors import (
    GitOperationError,
    NoTasksFileError,
    NotInGitRepositoryError,
    TrackError,
    WatcherError,
)
from .git import GitCommandError, GitExecutor, SubprocessGitExecutor, get_repo_root
from .tracker import Tracker, TrackerConfig, TrackOutcome, action_for_status
from .watcher import DEFAULT_DEBOUNCE, FileWatcher

__all__ = [
    "Action",
    "COMMIT_FOOTER",
    "CommitOutcome",
    "DEFAULT_DEBOUNCE",
    "FileWatcher",
    "GitCommandError",
    "GitCommitter",
    "GitExecutor",
    "GitOperationError",
    "NoTasksFileError",
    "NotInGitRepositoryError",
    "SubprocessGitExecutor",
    "TASK_FILE_NAMES",
    "TrackError",
    "TrackOutcome",
    "Tracker",
    "TrackerConfig",
    "WatcherError",
    "action_for_status",
    "filter_files",
    "get_repo_root",
    "is_task_file",
    "parse_binary_files",
    "parse_git_status",
]
