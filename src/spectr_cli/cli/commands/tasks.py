"""``spectr tasks``: inspect and update task status in tasks.jsonc."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from spectr_cli.changes import AmbiguousChangeError, ChangeNotFoundError, resolve_change_id, tasks_path_for
from spectr_cli.config import ConfigError, SpectrConfig, load_config
from spectr_cli.tasks import (
    TaskHierarchy,
    TaskStatus,
    TaskStore,
    TaskStoreError,
    TaskSummary,
    load_hierarchy,
)
from spectr_cli.track import NotInGitRepositoryError, get_repo_root

app = typer.Typer(help="Task status commands", no_args_is_help=True)


def _print_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _run_or_exit(fn):
    try:
        return fn()
    except (
        TaskStoreError,
        ConfigError,
        ChangeNotFoundError,
        AmbiguousChangeError,
    ) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


def _config() -> SpectrConfig:
    try:
        default_root = get_repo_root()
    except NotInGitRepositoryError:
        default_root = None
    return load_config(Path.cwd(), default_root=default_root)


def _tasks_path(change_id: str) -> Path:
    config = _config()
    resolution = resolve_change_id(change_id, config)
    return tasks_path_for(config, resolution.change_id)


@app.command("set-status")
def set_status_command(
    change_id: str = typer.Argument(..., help="Change ID (unique prefixes accepted)"),
    task_id: str = typer.Argument(..., help="Task ID, e.g. 1.2"),
    status: TaskStatus = typer.Argument(..., help="pending | in_progress | completed"),
) -> None:
    """Set a task's status, updating parent aggregates in referencing files."""

    def _run() -> None:
        TaskStore(_tasks_path(change_id)).update(task_id, status)
        typer.echo(f"Task {task_id} -> {status}")

    _run_or_exit(_run)


STATUS_ICONS = {
    TaskStatus.COMPLETED: "✓",
    TaskStatus.IN_PROGRESS: "▶",
    TaskStatus.PENDING: "○",
}


def _percent(completed: int, total: int) -> str:
    return f"{completed / total * 100:.0f}%"


def _echo_sections(hierarchy: TaskHierarchy) -> None:
    typer.echo("Tasks")
    for section, section_tasks in hierarchy.by_section().items():
        counts = TaskSummary.from_tasks(section_tasks)
        percent = _percent(counts.completed, counts.total)
        line = f"{section}: {counts.completed}/{counts.total} completed ({percent})"
        if counts.in_progress:
            line += f", {counts.in_progress} in progress"
        typer.echo(line)

    summary = hierarchy.summary
    if summary.total:
        percent = _percent(summary.completed, summary.total)
        typer.echo(f"\nTotal: {summary.completed}/{summary.total} completed ({percent})")
    else:
        typer.echo("\nNo tasks found")


def _echo_flattened(hierarchy: TaskHierarchy) -> None:
    rule = "-" * 60
    typer.echo("All Tasks:")
    typer.echo(rule)
    for task in sorted(hierarchy.tasks, key=lambda t: t.id):
        typer.echo(f"[{STATUS_ICONS[task.status]}] {task.id} | {task.section or '-'} | {task.description}")
    typer.echo(rule)
    summary = hierarchy.summary
    typer.echo(
        f"Total: {summary.total} tasks ({summary.completed} completed, "
        f"{summary.in_progress} in progress, {summary.pending} pending)"
    )


@app.command("progress")
def progress_command(
    change_id: str = typer.Argument(..., help="Change ID (unique prefixes accepted)"),
    flatten: bool = typer.Option(False, "--flatten", help="List every task from root and child files"),
    as_json: bool = typer.Option(False, "--json", help="Render progress as JSON"),
) -> None:
    """Show task progress for a change, including referenced child task files."""

    def _run() -> None:
        hierarchy = load_hierarchy(_tasks_path(change_id))
        if as_json:
            _print_json(
                {
                    "hierarchical": hierarchy.hierarchical,
                    "summary": hierarchy.summary.to_dict(),
                    "tasks": [task.to_dict() for task in hierarchy.tasks],
                }
            )
        elif flatten:
            _echo_flattened(hierarchy)
        else:
            _echo_sections(hierarchy)

    _run_or_exit(_run)
