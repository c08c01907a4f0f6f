"""Utility helpers: XDG paths, file I/O, app configuration."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path


APP_NAME = "dispswitch"

DEFAULT_SETTINGS: dict = {
    "apply_method": "temporary",   # "temporary" or "persistent"
    "dbus_timeout_ms": 5000,
    "log_level": "INFO",
}


def config_dir() -> Path:
    """Return ~/.config/dispswitch, creating it if needed."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    d = base / APP_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def configs_path() -> Path:
    """Return the path of the saved configuration list."""
    return config_dir() / "configs.json"


def read_json(path: Path) -> dict | list | None:
    """Read and parse a JSON file, returning None on failure."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None


def write_json(path: Path, data: dict | list) -> None:
    """Write data as formatted JSON, replacing the file atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _settings_path() -> Path:
    """Return the path to the global app settings file."""
    return config_dir() / "settings.json"


def load_app_settings() -> dict:
    """Load global application settings merged over the defaults."""
    data = read_json(_settings_path())
    settings = dict(DEFAULT_SETTINGS)
    if isinstance(data, dict):
        settings.update(data)
    return settings
