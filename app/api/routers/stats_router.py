"""
app/api/routers/stats_router.py

Read-only rollup over every stored evaluation plus the latest uploads.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_history_repository
from app.repositories.history_repository import HistoryRepository
from app.schemas.nps import StatsData, StatsResponse, StoreStatsResponse, UploadSummaryResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    repository: HistoryRepository = Depends(get_history_repository),
) -> StatsResponse:
    try:
        stats = repository.stats()
        uploads = repository.recent_uploads()
    except SQLAlchemyError as exc:
        logger.exception("Stats query failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load statistics.",
        ) from exc

    return StatsResponse(
        data=StatsData(
            stats=StoreStatsResponse.from_stats(stats),
            recent_uploads=[UploadSummaryResponse.from_summary(item) for item in uploads],
        )
    )
