"""Stage and commit working-tree changes for task status transitions.

The committer computes the working-tree delta from ``git status``, leaves
out deleted files and task files, optionally leaves out binary files
(detected with the ``git diff --numstat`` heuristic), stages what remains
and commits it with a fixed message format.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Iterable

from .errors import GitOperationError
from .git import GitCommandError, GitExecutor, SubprocessGitExecutor

logger = logging.getLogger(__name__)

TOOL_NAME = "spectr"

COMMIT_FOOTER = f"[Automated by {TOOL_NAME} track]"

# Task files never get staged, whatever directory they live in.
TASK_FILE_NAMES: frozenset[str] = frozenset({"tasks.json", "tasks.jsonc", "tasks.md"})

BINARY_NUMSTAT_PREFIX = "-\t-\t"

_MIN_PORCELAIN_LINE_LEN = 3
_RENAME_SEPARATOR = " -> "
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\", "a": "\a", "b": "\b", "f": "\f", "r": "\r", "v": "\v"}


class Action(StrEnum):
    """Task transitions that produce a commit."""

    START = "start"
    COMPLETE = "complete"


@dataclass
class CommitOutcome:
    """Result of a :meth:`GitCommitter.commit` call."""

    files_staged: bool
    message: str
    commit_hash: str | None = None
    skipped_binaries: list[str] = field(default_factory=list)

    @property
    def short_hash(self) -> str:
        return (self.commit_hash or "")[:7]


def _unquote_path(path: str) -> str:
    """Undo git's C-style quoting of unusual path names."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    raw = bytearray()
    body = path[1:-1]
    idx = 0
    while idx < len(body):
        char = body[idx]
        if char != "\\" or idx + 1 >= len(body):
            raw.extend(char.encode("utf-8"))
            idx += 1
            continue
        octal = _OCTAL_ESCAPE.match(body, idx)
        if octal:
            raw.append(int(octal.group(1), 8))
            idx = octal.end()
            continue
        nxt = body[idx + 1]
        raw.extend(_SIMPLE_ESCAPES.get(nxt, nxt).encode("utf-8"))
        idx += 2
    return raw.decode("utf-8", errors="replace")


def parse_git_status(output: str) -> list[str]:
    """Extract stageable paths from ``git status --porcelain`` output.

    Deleted entries (``D`` in either column) are skipped; modified, added,
    renamed, copied and untracked entries are returned. Renames and copies
    yield their new path.
    """
    files: list[str] = []
    for line in output.splitlines():
        if len(line) < _MIN_PORCELAIN_LINE_LEN:
            continue
        code = line[:2]
        path = line[_MIN_PORCELAIN_LINE_LEN:].strip()
        if not path:
            continue
        if "D" in code:
            continue
        if code == "  ":
            continue
        if code[0] in "RC" and _RENAME_SEPARATOR in path:
            path = path.split(_RENAME_SEPARATOR, 1)[1]
        files.append(_unquote_path(path))
    return files


def parse_binary_files(output: str) -> set[str]:
    """Return the paths ``git diff --numstat`` reports as binary."""
    binaries: set[str] = set()
    for line in output.splitlines():
        if line.startswith(BINARY_NUMSTAT_PREFIX):
            binaries.add(_unquote_path(line[len(BINARY_NUMSTAT_PREFIX):]))
    return binaries


def is_task_file(path: str) -> bool:
    """True when the basename of ``path`` is one of the task file names."""
    return PurePosixPath(path.replace("\\", "/")).name in TASK_FILE_NAMES


def filter_files(
    files: Iterable[str],
    include_binaries: bool,
    binary_files: set[str],
) -> tuple[list[str], list[str]]:
    """Split candidates into ``(to_stage, skipped_binaries)``.

    Task files are dropped from both lists.
    """
    to_stage: list[str] = []
    skipped: list[str] = []
    for path in files:
        if is_task_file(path):
            continue
        if not include_binaries and path in binary_files:
            skipped.append(path)
            continue
        to_stage.append(path)
    return to_stage, skipped


class GitCommitter:
    """Creates one commit per qualifying task transition."""

    def __init__(
        self,
        change_id: str,
        repo_root: Path,
        include_binaries: bool = False,
        executor: GitExecutor | None = None,
    ) -> None:
        self.change_id = change_id
        self.repo_root = Path(repo_root)
        self.include_binaries = include_binaries
        self.executor: GitExecutor = executor if executor is not None else SubprocessGitExecutor()

    def subject(self, task_id: str, action: Action) -> str:
        return f"{TOOL_NAME}({self.change_id}): {action} task {task_id}"

    def build_commit_message(self, task_id: str, action: Action) -> str:
        return f"{self.subject(task_id, action)}\n\n{COMMIT_FOOTER}"

    def commit(self, task_id: str, action: Action) -> CommitOutcome:
        """Stage working-tree changes and commit them for ``task_id``.

        Returns an outcome with ``files_staged=False`` (and no git mutation)
        when only task files, deletions or skipped binaries changed.

        Raises:
            GitOperationError: status, add, commit or rev-parse failed.
        """
        action = Action(action)
        candidates = self._modified_files()
        candidates = [path for path in candidates if not is_task_file(path)]

        binary_files: set[str] = set()
        if not self.include_binaries and candidates:
            binary_files = self._detect_binary_files(candidates)

        to_stage, skipped = filter_files(candidates, self.include_binaries, binary_files)

        if not to_stage:
            logger.debug("No files to stage for task %s (%s)", task_id, action)
            return CommitOutcome(
                files_staged=False,
                message=self.subject(task_id, action),
                skipped_binaries=skipped,
            )

        logger.debug("Staging %d file(s) for task %s", len(to_stage), task_id)
        self._call("add", self.executor.add, self.repo_root, to_stage)

        message = self.build_commit_message(task_id, action)
        self._call("commit", self.executor.commit, self.repo_root, message)
        commit_hash = self._call("rev-parse", self.executor.rev_parse, self.repo_root, "HEAD")

        return CommitOutcome(
            files_staged=True,
            message=message,
            commit_hash=commit_hash.strip(),
            skipped_binaries=skipped,
        )

    def _modified_files(self) -> list[str]:
        output = self._call("status", self.executor.status, self.repo_root)
        return parse_git_status(output)

    def _detect_binary_files(self, files: list[str]) -> set[str]:
        try:
            output = self.executor.diff_numstat(self.repo_root, files)
        except Exception as exc:
            logger.warning("Binary detection failed, staging without filtering: %s", exc)
            return set()
        return parse_binary_files(output)

    @staticmethod
    def _call(operation: str, fn, *args):
        try:
            return fn(*args)
        except GitCommandError as exc:
            raise GitOperationError(operation, exc.stderr) from exc
        except OSError as exc:
            raise GitOperationError(operation, str(exc)) from exc
