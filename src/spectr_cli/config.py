"""Project configuration loaded from ``spectr.yaml``.

The file is looked up from the working directory upwards; the directory it
is found in becomes the project root. Without a file, defaults apply and
the start directory is the project root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "spectr.yaml"
DEFAULT_ROOT_DIR = "spectr"

_INVALID_ROOT_DIR_PARTS = ("/", "\\", "..", "*")


class ConfigError(RuntimeError):
    """Raised when spectr.yaml cannot be parsed or holds invalid values."""


class TrackSettings(BaseModel):
    """Defaults for ``spectr track``."""

    include_binaries: bool = False
    debounce_ms: int = Field(default=150, gt=0)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


class SpectrConfig(BaseModel):
    """Validated content of spectr.yaml plus the resolved project root."""

    root_dir: str = DEFAULT_ROOT_DIR
    track: TrackSettings = Field(default_factory=TrackSettings)
    project_root: Path = Field(default_factory=Path.cwd, exclude=True)

    @field_validator("root_dir")
    @classmethod
    def _simple_directory_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("root_dir cannot be empty")
        found = [part for part in _INVALID_ROOT_DIR_PARTS if part in value]
        if found:
            raise ValueError(
                f"root_dir must be a simple directory name (found {', '.join(found)})"
            )
        return value

    @property
    def spectr_dir(self) -> Path:
        return self.project_root / self.root_dir

    @property
    def changes_dir(self) -> Path:
        return self.spectr_dir / "changes"


def find_config_file(start: Path) -> Path | None:
    """Return the nearest spectr.yaml at or above ``start``."""
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(start: Path | None = None, *, default_root: Path | None = None) -> SpectrConfig:
    """Load configuration for the project containing ``start``.

    When no spectr.yaml exists, defaults are returned with ``default_root``
    (or ``start``) as the project root.
    """
    start_dir = (start or Path.cwd()).resolve()
    config_path = find_config_file(start_dir)
    if config_path is None:
        logger.debug("No %s found above %s, using defaults", CONFIG_FILENAME, start_dir)
        return SpectrConfig(project_root=Path(default_root or start_dir))

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle) or {}
    except YAMLError as exc:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Invalid configuration in {config_path}: expected a mapping")

    try:
        config = SpectrConfig.model_validate({**payload, "project_root": config_path.parent})
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc
    logger.debug("Loaded configuration from %s", config_path)
    return config
