"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.evaluation import EvaluationRecord
from db.models.nps_history import NPSHistoryEntry
from db.models.upload import UploadRecord

__all__ = [
    "EvaluationRecord",
    "NPSHistoryEntry",
    "UploadRecord",
]
