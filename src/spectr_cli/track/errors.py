"""Exceptions raised by the tracking session."""

from __future__ import annotations

from pathlib import Path


class TrackError(Exception):
    """Base class for tracking failures."""


class NoTasksFileError(TrackError):
    """Raised when a change has no ``tasks.jsonc`` to track."""

    def __init__(self, change_id: str, path: Path | None = None) -> None:
        self.change_id = change_id
        self.path = path
        super().__init__(f'tasks file not found for change "{change_id}"')


class NotInGitRepositoryError(TrackError):
    """Raised when the working directory is not inside a git repository."""

    def __init__(self, path: Path, detail: str = "") -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"not a git repository: {path}")


class GitOperationError(TrackError):
    """A git subcommand failed; fatal to the tracking loop.

    ``operation`` names the subcommand and ``stderr`` carries git's own
    error output verbatim.
    """

    def __init__(self, operation: str, stderr: str) -> None:
        self.operation = operation
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"git {operation} failed{detail}")


class WatcherError(TrackError):
    """A filesystem notification failed; reported and then ignored."""
