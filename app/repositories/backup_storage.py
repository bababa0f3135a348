"""
app/repositories/backup_storage.py

Local filesystem storage for NPS store snapshots with count-based retention.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


class BackupError(RuntimeError):
    """
    Raised when a snapshot cannot be written or old snapshots cannot be pruned.
    """


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class LocalBackupStorage:
    """
    Writes ``backup-<UTC timestamp>.json`` files and keeps the newest ``retention``.

    File names sort chronologically, so retention works on name order.
    """

    def __init__(self, root_dir: str | Path = "data/backups", *, retention: int = 5) -> None:
        self._root_dir = Path(root_dir)
        self._retention = max(1, retention)

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def write(self, payload: dict[str, Any], *, taken_at: datetime) -> Path:
        self._root_dir.mkdir(parents=True, exist_ok=True)

        target = self._target_path(taken_at)
        while target.exists():
            taken_at = taken_at + timedelta(microseconds=1)
            target = self._target_path(taken_at)

        tmp_path = target.with_suffix(f"{target.suffix}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, default=_json_default, ensure_ascii=False)
            tmp_path.replace(target)
        except (OSError, TypeError) as exc:
            raise BackupError("Failed to write backup snapshot.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        logger.info("Backup written path=%s", target)
        return target

    def list_backups(self) -> list[Path]:
        """
        Return existing snapshots, oldest first.
        """

        if not self._root_dir.exists():
            return []
        return sorted(
            path
            for path in self._root_dir.iterdir()
            if path.is_file()
            and path.name.startswith(BACKUP_PREFIX)
            and path.name.endswith(BACKUP_SUFFIX)
        )

    def enforce_retention(self) -> list[Path]:
        """
        Delete all but the newest ``retention`` snapshots; return the deleted paths.
        """

        stale = self.list_backups()[: -self._retention]
        for path in stale:
            try:
                path.unlink()
            except OSError as exc:
                raise BackupError(f"Failed to delete old backup {path.name}.") from exc
            logger.info("Old backup removed path=%s", path)
        return stale

    def delete_all(self) -> list[Path]:
        removed = self.list_backups()
        for path in removed:
            try:
                path.unlink()
            except OSError as exc:
                raise BackupError(f"Failed to delete backup {path.name}.") from exc
        return removed

    def _target_path(self, taken_at: datetime) -> Path:
        return self._root_dir / f"{BACKUP_PREFIX}{taken_at.strftime(_TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"
