"""Tracking session: watch a change's task file and commit on transitions.

The tracker loads a baseline snapshot of task statuses, then waits for
debounced change notifications. After each one it re-reads the root task
file, diffs every status against the snapshot and asks the committer for a
commit when a task moved to ``in_progress`` (start) or ``completed``
(complete).

The loop ends when every task is completed (``DONE``), when the cancel
event is set (``INTERRUPTED``), or when a git operation fails, in which
case :class:`~spectr_cli.track.errors.GitOperationError` propagates so a
human can look at the repository before anything else happens.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from rich.console import Console

from spectr_cli.tasks import (
    TaskRecord,
    TaskStatus,
    TaskStoreError,
    all_completed,
    count_progress,
    read_tasks_file,
)

from .committer import Action, CommitOutcome, GitCommitter
from .errors import GitOperationError
from .watcher import DEFAULT_DEBOUNCE, FileWatcher

logger = logging.getLogger(__name__)

WatcherFactory = Callable[[Path, float], FileWatcher]


class TrackOutcome(Enum):
    """How a tracking session ended (other than a git failure)."""

    DONE = "done"
    ALREADY_COMPLETE = "already_complete"
    INTERRUPTED = "interrupted"


@dataclass
class TrackerConfig:
    """Inputs for a tracking session."""

    change_id: str
    tasks_path: Path
    repo_root: Path
    console: Console | None = None
    include_binaries: bool = False
    debounce: float = DEFAULT_DEBOUNCE
    poll_interval: float = 0.1  # seconds between cancellation checks


def action_for_status(status: TaskStatus) -> Action | None:
    """Map a changed status to its commit action; pending yields none."""
    if status is TaskStatus.IN_PROGRESS:
        return Action.START
    if status is TaskStatus.COMPLETED:
        return Action.COMPLETE
    return None


class Tracker:
    """Couples a :class:`FileWatcher` and a :class:`GitCommitter`."""

    def __init__(
        self,
        config: TrackerConfig,
        *,
        committer: GitCommitter | None = None,
        watcher_factory: WatcherFactory | None = None,
    ) -> None:
        self.config = config
        self.committer = committer or GitCommitter(
            config.change_id,
            config.repo_root,
            include_binaries=config.include_binaries,
        )
        self._watcher_factory: WatcherFactory = watcher_factory or FileWatcher
        self._watcher: FileWatcher | None = None
        self.snapshot: dict[str, TaskStatus] = {}

    def run(self, cancel: threading.Event | None = None) -> TrackOutcome:
        """Run the session until completion, cancellation or a git failure.

        Raises:
            TaskStoreError: the task file cannot be read at start.
            FileNotFoundError: the task file vanished before watching began.
            GitOperationError: a commit attempt failed.
        """
        cancel = cancel or threading.Event()
        tasks_file = read_tasks_file(self.config.tasks_path)
        for task in tasks_file.tasks:
            self.snapshot[task.id] = task.status

        if all_completed(tasks_file.tasks):
            logger.info("All tasks already completed for %s", self.config.change_id)
            return TrackOutcome.ALREADY_COMPLETE

        completed, total = count_progress(tasks_file.tasks)
        self._say(f"Tracking {self.config.change_id}: {completed}/{total} tasks completed")
        self._say("Watching for task status changes... (Ctrl+C to stop)\n")

        self._watcher = self._watcher_factory(self.config.tasks_path, self.config.debounce)
        return self._event_loop(self._watcher, cancel)

    def close(self) -> None:
        """Release the watcher, if one was started. Safe to call repeatedly."""
        if self._watcher is not None:
            self._watcher.close()

    def __enter__(self) -> Tracker:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Internal ──────────────────────────────────────────────────

    def _event_loop(self, watcher: FileWatcher, cancel: threading.Event) -> TrackOutcome:
        while True:
            if cancel.is_set():
                return TrackOutcome.INTERRUPTED

            try:
                watcher.events.get(timeout=self.config.poll_interval)
            except queue.Empty:
                watcher.check_health()
                self._drain_watcher_errors(watcher)
                continue

            if cancel.is_set():
                return TrackOutcome.INTERRUPTED

            tasks = self._handle_file_change()
            if tasks is not None and all_completed(tasks):
                completed, total = count_progress(tasks)
                self._say(f"\nAll tasks completed! ({completed}/{total})")
                return TrackOutcome.DONE

    def _drain_watcher_errors(self, watcher: FileWatcher) -> None:
        while True:
            try:
                err = watcher.errors.get_nowait()
            except queue.Empty:
                return
            logger.warning("Watcher error: %s", err)
            self._say(f"Warning: watcher error: {err}")

    def _handle_file_change(self) -> list[TaskRecord] | None:
        try:
            tasks_file = read_tasks_file(self.config.tasks_path)
        except TaskStoreError as exc:
            # Usually an editor caught mid-save; the next save triggers a re-read.
            logger.warning("Could not re-read %s: %s", self.config.tasks_path, exc)
            self._say(f"Warning: failed to read tasks file: {exc}")
            return None

        for task in tasks_file.tasks:
            self._process_transition(task)
        return tasks_file.tasks

    def _process_transition(self, task: TaskRecord) -> None:
        previous = self.snapshot.get(task.id)
        if previous is None:
            self.snapshot[task.id] = task.status
            return
        if previous is task.status:
            return

        action = action_for_status(task.status)
        if action is not None:
            self._commit_transition(task.id, action)
        self.snapshot[task.id] = task.status

    def _commit_transition(self, task_id: str, action: Action) -> CommitOutcome:
        try:
            outcome = self.committer.commit(task_id, action)
        except GitOperationError as exc:
            self._say(f"Error: failed to commit for task {task_id}: {exc}")
            raise

        if outcome.files_staged:
            self._say(f"  Task {task_id}: {action} [{outcome.short_hash}]")
        else:
            self._say(f"  Task {task_id}: {action} (no files to commit)")

        if outcome.skipped_binaries:
            skipped = ", ".join(outcome.skipped_binaries)
            logger.warning("Skipped binary files for task %s: %s", task_id, skipped)
            self._say(f"  Warning: Skipped binary files: {skipped}")
        return outcome

    def _say(self, line: str) -> None:
        if self.config.console is not None:
            self.config.console.print(line, markup=False, highlight=False)
