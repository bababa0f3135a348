"""
app/domain package marker.
"""

from app.domain.evaluation import Evaluation, ParsedUpload, Plan, RowIssue, ScoreCategory
from app.domain.history import HistoryEntry, QuarterEntry, StoreStats, UploadReceipt

__all__ = [
    "Evaluation",
    "HistoryEntry",
    "ParsedUpload",
    "Plan",
    "QuarterEntry",
    "RowIssue",
    "ScoreCategory",
    "StoreStats",
    "UploadReceipt",
]
