"""Git subprocess access for the tracking committer.

:class:`GitExecutor` is the narrow surface the committer depends on, so
tests can substitute a fake without a git binary. :class:`SubprocessGitExecutor`
is the real implementation; it shells out to ``git -C <repo_root>``.

Git calls carry no timeout: a hung git process blocks the caller.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from .errors import NotInGitRepositoryError

logger = logging.getLogger(__name__)

GIT_BINARY = "git"


class GitCommandError(Exception):
    """A git invocation exited non-zero (or could not be started)."""

    def __init__(self, command: str, stderr: str, returncode: int | None = None) -> None:
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"git {command} failed: {stderr}" if stderr else f"git {command} failed")


class GitExecutor(Protocol):
    """The git primitives needed to stage and commit task work."""

    def status(self, repo_root: Path) -> str:
        """Return ``git status --porcelain`` output."""
        ...

    def add(self, repo_root: Path, files: Sequence[str]) -> None:
        """Stage ``files``."""
        ...

    def commit(self, repo_root: Path, message: str) -> None:
        """Create a commit from the index."""
        ...

    def rev_parse(self, repo_root: Path, ref: str) -> str:
        """Resolve ``ref`` to a full object name."""
        ...

    def diff_numstat(self, repo_root: Path, files: Sequence[str]) -> str:
        """Return ``git diff --numstat`` output for ``files``."""
        ...


@dataclass
class _GitCommandResult:
    returncode: int
    stdout: str
    stderr: str


def _run_git(repo_root: Path, args: list[str]) -> _GitCommandResult:
    """Run git and normalize the failure shape."""
    try:
        completed = subprocess.run(
            [GIT_BINARY, "-C", str(repo_root), *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except FileNotFoundError:
        return _GitCommandResult(
            returncode=127,
            stdout="",
            stderr="git executable not found on PATH",
        )
    return _GitCommandResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def _check(result: _GitCommandResult, command: str, *, combined: bool = False) -> str:
    if result.returncode != 0:
        detail = result.stderr.strip()
        if combined:
            detail = "\n".join(part for part in (result.stdout.strip(), detail) if part)
        raise GitCommandError(command, detail, result.returncode)
    return result.stdout


class SubprocessGitExecutor:
    """:class:`GitExecutor` backed by the ``git`` command line."""

    def status(self, repo_root: Path) -> str:
        result = _run_git(repo_root, ["status", "--porcelain", "--untracked-files=all"])
        return _check(result, "status")

    def add(self, repo_root: Path, files: Sequence[str]) -> None:
        result = _run_git(repo_root, ["add", "--", *files])
        _check(result, "add", combined=True)

    def commit(self, repo_root: Path, message: str) -> None:
        result = _run_git(repo_root, ["commit", "-m", message])
        # git commit reports "nothing to commit" and hook output on stdout
        _check(result, "commit", combined=True)

    def rev_parse(self, repo_root: Path, ref: str) -> str:
        result = _run_git(repo_root, ["rev-parse", ref])
        return _check(result, "rev-parse").strip()

    def diff_numstat(self, repo_root: Path, files: Sequence[str]) -> str:
        if not files:
            return ""
        result = _run_git(repo_root, ["diff", "--numstat", "--", *files])
        return _check(result, "diff --numstat")


def get_repo_root(start: Path | None = None) -> Path:
    """Return the top-level directory of the repository containing ``start``."""
    cwd = Path(start) if start is not None else Path.cwd()
    result = _run_git(cwd, ["rev-parse", "--show-toplevel"])
    if result.returncode != 0:
        logger.debug("git rev-parse --show-toplevel failed: %s", result.stderr.strip())
        raise NotInGitRepositoryError(cwd, result.stderr.strip())
    return Path(result.stdout.strip())
