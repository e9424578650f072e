"""Debounced change notifications for a single file.

The watcher observes the *directory* containing the file, because editors
and the task store replace files (write to a temp file, rename over the
original) instead of writing in place, and a handle-based watch would lose
track of the file after the first save. Events for other paths are
ignored.

Bursts of writes are coalesced: every qualifying event (re)arms a single
timer, and only when the timer fires after a quiet ``debounce`` window is a
notification delivered. Both the ``events`` and ``errors`` mailboxes hold at
most one item and drop new items while full, so consumers must treat a
notification as "something changed" rather than counting them.

watchdog does not surface a dead watch by itself, so consumers poll
:meth:`FileWatcher.check_health` while waiting; it puts a
:class:`~spectr_cli.track.errors.WatcherError` on the errors mailbox.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import WatcherError

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.15  # seconds

_QUALIFYING_EVENT_TYPES = frozenset({"modified", "created", "moved"})


class FileWatcher(FileSystemEventHandler):
    """Watches one existing file and emits debounced change notifications."""

    def __init__(
        self,
        path: Path,
        debounce: float = DEFAULT_DEBOUNCE,
        *,
        observer_factory=Observer,
    ) -> None:
        super().__init__()
        self.path = Path(os.path.abspath(path))
        # Raises FileNotFoundError untouched so callers can tell it apart.
        self.path.stat()

        self.debounce = debounce
        self._events: queue.Queue[Path] = queue.Queue(maxsize=1)
        self._errors: queue.Queue[WatcherError] = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._closed = False
        self._failure_reported = False

        self._observer = observer_factory()
        try:
            self._observer.schedule(self, str(self.path.parent), recursive=False)
            self._observer.start()
        except Exception:
            self._observer.stop()
            raise
        logger.debug("Watching %s (debounce=%.3fs)", self.path, debounce)

    @property
    def events(self) -> queue.Queue[Path]:
        """Mailbox receiving the watched path after each quiet period."""
        return self._events

    @property
    def errors(self) -> queue.Queue[WatcherError]:
        """Mailbox receiving notification failures."""
        return self._errors

    @property
    def closed(self) -> bool:
        return self._closed

    def check_health(self) -> bool:
        """Report a dead watch on the errors mailbox; return False when unhealthy.

        watchdog stops its emitter thread when the watched directory goes
        away, and the observer keeps running without delivering anything.
        Consumers call this while waiting for events. A failure is reported
        once per watcher.
        """
        if self._closed:
            return True
        reason = self._failure_reason()
        if reason is None:
            return True
        with self._lock:
            if self._failure_reported or self._closed:
                return False
            self._failure_reported = True
        logger.debug("Watch on %s failed: %s", self.path, reason)
        self._offer(self._errors, WatcherError(f"watch on {self.path.parent} stopped: {reason}"))
        return False

    def close(self) -> None:
        """Stop watching and release the OS watch. Safe to call repeatedly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()
        logger.debug("Stopped watching %s", self.path)

    def __enter__(self) -> FileWatcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── watchdog callbacks ────────────────────────────────────────

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            if self._is_qualifying(event):
                self._arm_timer()
        except OSError as exc:
            self._offer(self._errors, WatcherError(f"failed to process {event.event_type} event: {exc}"))

    # ── Internal ──────────────────────────────────────────────────

    def _failure_reason(self) -> str | None:
        if not self.path.parent.is_dir():
            return "directory no longer exists"
        if not self._observer.is_alive():
            return "observer thread exited"
        if any(not emitter.is_alive() for emitter in self._observer.emitters):
            return "event emitter exited"
        return None

    def _is_qualifying(self, event: FileSystemEvent) -> bool:
        if event.is_directory or event.event_type not in _QUALIFYING_EVENT_TYPES:
            return False
        if event.event_type == "moved":
            target = getattr(event, "dest_path", "")
        else:
            target = event.src_path
        if not target:
            return False
        matches = self._is_watched_file(target)
        if matches:
            logger.debug("Change event %s on %s", event.event_type, self.path)
        return matches

    def _is_watched_file(self, event_path: str | bytes) -> bool:
        return Path(os.path.abspath(os.fsdecode(event_path))) == self.path

    def _arm_timer(self) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self.debounce, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer event re-armed the timer while this one was firing.
            if self._closed or generation != self._generation:
                return
            self._timer = None
        self._offer(self._events, self.path)

    @staticmethod
    def _offer(mailbox: queue.Queue, item) -> None:
        try:
            mailbox.put_nowait(item)
        except queue.Full:
            pass
