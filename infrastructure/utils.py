"""Utilities for timestamp encoding and application data locations.

Stored timestamps are ISO-8601 strings in UTC. Parsing is best-effort and
never raises; callers should expect `None` when a value is unusable.
"""

from __future__ import annotations

from datetime import datetime, timezone
import os
from pathlib import Path

from loguru import logger

# Optional HEIF support for phone photos (top-level to satisfy linting)
try:  # pragma: no cover - optional dependency
    from pillow_heif import register_heif_opener  # type: ignore

    register_heif_opener()
    PIL_HEIF_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    PIL_HEIF_AVAILABLE = False

APP_DIR_NAME = "PlateFolders"


def utc_now() -> datetime:
    """Current time in UTC, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_iso_datetime(dt: datetime | None) -> str:
    """Format datetime as ISO-8601; empty string when None."""
    try:
        return dt.isoformat() if dt else ""
    except (ValueError, TypeError, AttributeError):
        return ""


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; return None on failure.

    A trailing `Z` is accepted, and naive values are assumed to be UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except (ValueError, TypeError):
        logger.warning("Invalid timestamp: {}", value)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def get_app_data_dir() -> Path:
    """Per-user directory holding the database, assets and logs."""
    base = os.environ.get("LOCALAPPDATA")
    if base:
        return Path(base) / APP_DIR_NAME
    return Path.home() / ".local" / "share" / APP_DIR_NAME


def resolve_data_path(value: str | Path | None, default: str) -> Path:
    """Resolve a configured path; relative values land under the app data dir."""
    raw = str(value) if value else default
    path = Path(os.path.expandvars(os.path.expanduser(raw)))
    if not path.is_absolute():
        path = get_app_data_dir() / path
    return path
