from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from tests.utils import run


@pytest.fixture()
def write_tasks() -> Callable[..., Path]:
    """Write a tasks.jsonc document, optionally prefixed with a comment line."""

    def _write(
        path: Path,
        tasks: list[dict[str, Any]],
        *,
        version: int = 1,
        parent: str | None = None,
        header_comment: str | None = None,
    ) -> Path:
        payload: dict[str, Any] = {"version": version}
        if parent:
            payload["parent"] = parent
        payload["tasks"] = tasks
        text = json.dumps(payload, indent=2)
        if header_comment:
            text = f"// {header_comment}\n{text}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    """A project root with an empty spectr/changes directory."""
    (tmp_path / "spectr" / "changes").mkdir(parents=True)
    return tmp_path


@pytest.fixture()
def temp_repo(tmp_path: Path) -> Iterator[Path]:
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    run(["git", "init"], cwd=repo_dir)
    run(["git", "config", "user.name", "Spectr Test"], cwd=repo_dir)
    run(["git", "config", "user.email", "spectr@example.com"], cwd=repo_dir)
    run(["git", "config", "commit.gpgsign", "false"], cwd=repo_dir)
    yield repo_dir
