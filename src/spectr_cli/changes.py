"""Discovery of active changes and resolution of (partial) change IDs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import SpectrConfig
from .tasks import TASKS_FILENAME

ARCHIVE_DIR_NAME = "archive"


class ChangeNotFoundError(LookupError):
    """Raised when no active change matches the requested ID."""

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"no change found matching '{query}'")


class AmbiguousChangeError(LookupError):
    """Raised when a partial change ID matches more than one change."""

    def __init__(self, query: str, matches: list[str]) -> None:
        self.query = query
        self.matches = matches
        super().__init__(
            f"ambiguous change ID '{query}' matches multiple changes: {', '.join(matches)}"
        )


@dataclass(frozen=True)
class ChangeResolution:
    change_id: str
    partial_match: bool = False


def list_active_changes(config: SpectrConfig) -> list[str]:
    """Sorted change directory names, excluding hidden entries and the archive."""
    changes_dir = config.changes_dir
    if not changes_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in changes_dir.iterdir()
        if entry.is_dir()
        and not entry.name.startswith(".")
        and entry.name != ARCHIVE_DIR_NAME
    )


def resolve_change_id(query: str, config: SpectrConfig) -> ChangeResolution:
    """Resolve ``query`` by exact match, then unique prefix, then unique substring."""
    changes = list_active_changes(config)
    if query in changes:
        return ChangeResolution(query)

    for matches in (
        [name for name in changes if name.startswith(query)],
        [name for name in changes if query in name],
    ):
        if len(matches) == 1:
            return ChangeResolution(matches[0], partial_match=True)
        if len(matches) > 1:
            raise AmbiguousChangeError(query, matches)

    raise ChangeNotFoundError(query)


def tasks_path_for(config: SpectrConfig, change_id: str) -> Path:
    return config.changes_dir / change_id / TASKS_FILENAME
