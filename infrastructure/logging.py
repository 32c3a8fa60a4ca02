"""Logging initialization utilities using loguru."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from infrastructure.utils import get_app_data_dir


def init_logging(log_dir: str | Path | None = None, level: str = "INFO") -> Path:
    """Initialize rotating file logging under the given directory."""
    log_path = Path(log_dir) if log_dir else get_log_directory()
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "app_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    return log_path


def get_log_directory() -> Path:
    """Get the main log directory path."""
    return get_app_data_dir() / "logs"


def get_delete_log_directory() -> Path:
    """Get the delete audit log directory path."""
    return get_app_data_dir() / "delete_logs"


def _latest(directory: Path, pattern: str) -> Path | None:
    try:
        if not directory.exists():
            return None
        files = list(directory.glob(pattern))
        if not files:
            return None
        return max(files, key=lambda p: p.stat().st_mtime)
    except (OSError, ValueError):
        return None


def find_latest_log_file(log_dir: str | Path | None = None) -> Path | None:
    """Find the latest application log file in the specified directory."""
    return _latest(Path(log_dir) if log_dir else get_log_directory(), "app_*.log")


def find_latest_delete_log_file(log_dir: str | Path | None = None) -> Path | None:
    """Find the latest delete audit log."""
    return _latest(Path(log_dir) if log_dir else get_delete_log_directory(), "delete_*.csv")
