"""
app/api/dependencies.py

Shared FastAPI dependencies for upload validation and store access.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import File, HTTPException, UploadFile, status

from app.config import get_backup_settings
from app.repositories.backup_storage import LocalBackupStorage
from app.repositories.history_repository import HistoryRepository
from db.session import get_session_factory

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "text/plain",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").split(";", 1)[0].strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        file.file.close()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


@lru_cache(maxsize=1)
def get_history_repository() -> HistoryRepository:
    """
    Build the process-wide history repository on first use.
    """

    settings = get_backup_settings()
    return HistoryRepository(
        get_session_factory(),
        backup_storage=LocalBackupStorage(settings.backup_dir, retention=settings.retention),
    )
