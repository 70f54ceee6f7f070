from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any
import os

import yaml

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "settings.yaml"
ENV_CONFIG_PATH = "NOTEVAULT_CONFIG"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must be a mapping: {path}")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return section


@dataclass(frozen=True)
class Settings:
    database_path: Path
    root_folder_name: str
    debounce_seconds: float
    export_version: str
    export_filename_template: str
    log_file_prefix: str

    def export_filename(self, date_stamp: str) -> str:
        return self.export_filename_template.format(date=date_stamp)


def config_path() -> Path:
    """Return the active config file, honouring NOTEVAULT_CONFIG."""
    override = os.environ.get(ENV_CONFIG_PATH)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH


def load_settings(path: Path | None = None) -> Settings:
    data = _load_yaml(path or config_path())

    storage = _section(data, "storage")
    workspace = _section(data, "workspace")
    export = _section(data, "export")
    logging_section = _section(data, "logging")

    debounce = float(workspace.get("debounce_seconds", 0.5))
    if debounce < 0:
        raise ValueError("workspace.debounce_seconds must not be negative")

    return Settings(
        database_path=Path(storage.get("database_path", "data")),
        root_folder_name=str(storage.get("root_folder_name", "My Documents")),
        debounce_seconds=debounce,
        export_version=str(export.get("version", "1.0")),
        export_filename_template=str(
            export.get("filename_template", "markdown-editor-export-{date}.json")
        ),
        log_file_prefix=str(logging_section.get("log_file_prefix", "notevault")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
