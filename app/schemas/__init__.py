"""
app/schemas package marker.
"""

from app.schemas.nps import (
    ClearHistoryResponse,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    StatsResponse,
    UploadResponse,
)

__all__ = [
    "ClearHistoryResponse",
    "ErrorResponse",
    "HealthResponse",
    "HistoryResponse",
    "StatsResponse",
    "UploadResponse",
]
