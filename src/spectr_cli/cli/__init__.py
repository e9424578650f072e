"""Typer application for the spectr command line."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

import typer

from spectr_cli.logging_setup import setup_logging

from .commands import tasks, track

try:
    __version__ = version("spectr")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"

app = typer.Typer(
    name="spectr",
    help="Spec-driven development tooling: task status and automatic commits",
    add_completion=False,
    no_args_is_help=True,
)
app.add_typer(tasks.app, name="tasks")
app.command("track")(track.track_command)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"spectr {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Configure logging before any subcommand runs."""
    setup_logging(verbose)


def main() -> None:
    app()


__all__ = ["app", "main", "__version__"]
