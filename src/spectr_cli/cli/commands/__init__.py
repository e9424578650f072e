"""CLI command modules for spectr."""

from . import tasks, track

__all__ = ["tasks", "track"]
