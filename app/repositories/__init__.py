"""
app/repositories package marker.
"""

from app.repositories.backup_storage import BackupError, LocalBackupStorage
from app.repositories.history_repository import HistoryPersistenceError, HistoryRepository

__all__ = [
    "BackupError",
    "HistoryPersistenceError",
    "HistoryRepository",
    "LocalBackupStorage",
]
