"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from infrastructure.utils import resolve_data_path

DEFAULTS: dict[str, Any] = {
    "storage": {
        "database_path": "plate_folders.db",
        "asset_library_dir": "library",
        "busy_timeout_sec": 20.0,
    },
    "logging": {"directory": "logs"},
    "delete": {"log_directory": "delete_logs"},
    "ocr": {"tesseract_cmd": None, "lang": "eng", "config": "--oem 3 --psm 11"},
}


def _lookup(data: Any, parts: list[str]) -> tuple[bool, Any]:
    node = data
    for part in parts:
        if isinstance(node, dict) and part in node:
            node = node[part]
        else:
            return False, None
    return True, node


class JsonSettings:
    """JSON settings reader with dotted-key access and built-in defaults.

    A missing file is not an error: every key then falls back to `DEFAULTS`.
    """

    def __init__(self, settings_path: str | Path | None = None) -> None:
        self._path = Path(settings_path) if settings_path else None
        self._data: dict[str, Any] = {}
        if self._path is None:
            return
        if not self._path.exists():
            logger.warning("settings.json not found, using defaults: {}", self._path)
            return
        with self._path.open("r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"settings.json must contain an object: {self._path}")
        self._data = loaded

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, then the built-in default, then `default`."""
        parts = key.split(".")
        found, value = _lookup(self._data, parts)
        if found:
            return value
        found, value = _lookup(DEFAULTS, parts)
        if found and value is not None:
            return value
        return default

    def get_path(self, key: str) -> Path:
        """Return dotted `key` as a path resolved against the app data dir."""
        _, default = _lookup(DEFAULTS, key.split("."))
        return resolve_data_path(self.get(key), str(default or ""))

    def get_float(self, key: str, default: float) -> float:
        """Return dotted `key` coerced to float, or `default` when unusable."""
        try:
            return float(self.get(key, default))
        except (TypeError, ValueError):
            logger.warning("Setting {} is not a number; using {}", key, default)
            return default
