"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class AppSettings:
    """
    Process-level settings reported by the health endpoint.
    """

    environment: str = "development"


@dataclass(frozen=True)
class NPSUploadSettings:
    """
    Runtime settings for CSV uploads.
    """

    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_row_issues: int = 500
    log_row_issues: bool = True


@dataclass(frozen=True)
class NPSBackupSettings:
    """
    Snapshot location, retention count and schedule.
    """

    backup_dir: Path = Path("data/backups")
    retention: int = 5
    interval_hours: int = 24
    enabled: bool = True


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings(environment=_get_str_env("ENVIRONMENT", "development"))


@lru_cache(maxsize=1)
def get_upload_settings() -> NPSUploadSettings:
    """
    Return cached upload settings from environment variables.
    """

    return NPSUploadSettings(
        max_upload_bytes=max(1, _get_int_env("NPS_UPLOAD_MAX_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
        max_row_issues=max(1, _get_int_env("NPS_MAX_ROW_ISSUES", 500)),
        log_row_issues=_get_bool_env("NPS_LOG_ROW_ISSUES", True),
    )


@lru_cache(maxsize=1)
def get_backup_settings() -> NPSBackupSettings:
    """
    Return cached backup settings from environment variables.
    """

    return NPSBackupSettings(
        backup_dir=Path(_get_str_env("NPS_BACKUP_DIR", "data/backups")),
        retention=max(1, _get_int_env("NPS_BACKUP_RETENTION", 5)),
        interval_hours=max(1, _get_int_env("NPS_BACKUP_INTERVAL_HOURS", 24)),
        enabled=_get_bool_env("NPS_BACKUP_ENABLED", True),
    )
