"""``spectr track``: commit automatically as tasks are started and completed."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console

from spectr_cli.changes import (
    AmbiguousChangeError,
    ChangeNotFoundError,
    list_active_changes,
    resolve_change_id,
    tasks_path_for,
)
from spectr_cli.config import ConfigError, SpectrConfig, load_config
from spectr_cli.tasks import TaskStoreError
from spectr_cli.track import (
    GitOperationError,
    NoTasksFileError,
    NotInGitRepositoryError,
    Tracker,
    TrackerConfig,
    TrackOutcome,
    get_repo_root,
)

logger = logging.getLogger(__name__)

console = Console()


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(1)


@contextmanager
def _cancel_on_signals(cancel: threading.Event) -> Iterator[None]:
    """Set ``cancel`` on SIGINT/SIGTERM, restoring previous handlers afterwards."""
    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum, frame):
        logger.debug("Received signal %s, stopping tracker", signum)
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)


def _resolve_change(change_id: str | None, config: SpectrConfig) -> str:
    if not change_id:
        active = list_active_changes(config)
        if len(active) == 1:
            return active[0]
        if not active:
            raise _fail("No changes found.")
        typer.echo("Multiple active changes; pass one of:", err=True)
        for name in active:
            typer.echo(f"- {name}", err=True)
        raise typer.Exit(1)

    try:
        resolution = resolve_change_id(change_id, config)
    except (AmbiguousChangeError, ChangeNotFoundError) as exc:
        raise _fail(str(exc)) from exc
    if resolution.partial_match:
        typer.echo(f"Resolved '{change_id}' -> '{resolution.change_id}'\n")
    return resolution.change_id


def track_command(
    change_id: Optional[str] = typer.Argument(None, help="Change ID (unique prefixes accepted)"),
    no_interactive: bool = typer.Option(False, "--no-interactive", help="Require an explicit change ID"),
    include_binaries: bool = typer.Option(False, "--include-binaries", help="Include binary files in commits"),
) -> None:
    """Watch a change's tasks.jsonc and commit when tasks start or complete."""
    if not change_id and no_interactive:
        raise _fail("change ID required when --no-interactive is set")

    try:
        repo_root = get_repo_root()
        config = load_config(Path.cwd(), default_root=repo_root)
    except NotInGitRepositoryError as exc:
        raise _fail(f"get git repository root: {exc}") from exc
    except ConfigError as exc:
        raise _fail(str(exc)) from exc

    resolved = _resolve_change(change_id, config)
    tasks_path = tasks_path_for(config, resolved)
    if not tasks_path.is_file():
        raise _fail(str(NoTasksFileError(resolved, tasks_path)))

    tracker = Tracker(
        TrackerConfig(
            change_id=resolved,
            tasks_path=tasks_path,
            repo_root=repo_root,
            console=console,
            include_binaries=include_binaries or config.track.include_binaries,
            debounce=config.track.debounce_seconds,
        )
    )
    cancel = threading.Event()
    try:
        with tracker, _cancel_on_signals(cancel):
            outcome = tracker.run(cancel)
    except GitOperationError as exc:
        raise _fail(f"git commit failed: {exc}") from exc
    except (TaskStoreError, FileNotFoundError) as exc:
        raise _fail(f"failed to read tasks file: {exc}") from exc

    if outcome is TrackOutcome.ALREADY_COMPLETE:
        typer.echo(f'All tasks already completed for change "{resolved}"')
    elif outcome is TrackOutcome.INTERRUPTED:
        typer.echo("\nTracking stopped")
