from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any


def run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)


def task(
    task_id: str,
    status: str = "pending",
    children: str | None = None,
    section: str = "Implementation",
) -> dict[str, Any]:
    """Build a raw task entry as it appears in tasks.jsonc."""
    entry: dict[str, Any] = {
        "id": task_id,
        "section": section,
        "description": f"Task {task_id}",
        "status": status,
    }
    if children:
        entry["children"] = children
    return entry
