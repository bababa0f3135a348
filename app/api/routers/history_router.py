"""
app/api/routers/history_router.py

NPS history endpoints: period-filtered retrieval and backup-then-clear.
"""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_history_repository
from app.repositories.backup_storage import BackupError
from app.repositories.history_repository import HistoryPersistenceError, HistoryRepository
from app.schemas.nps import ClearHistoryResponse, HistoryEntryResponse, HistoryResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["history"])


@router.get("/history", response_model=HistoryResponse)
def get_history(
    period: Literal["all", "7d", "30d", "90d"] = Query(default="all"),
    aggregate: Literal["quarterly"] | None = Query(default=None),
    repository: HistoryRepository = Depends(get_history_repository),
) -> HistoryResponse:
    """
    Return per-date NPS history, optionally folded into calendar quarters.
    """

    try:
        entries = repository.query(period)
    except SQLAlchemyError as exc:
        logger.exception("History query failed period=%s", period)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load NPS history.",
        ) from exc

    if aggregate == "quarterly":
        data = [
            HistoryEntryResponse.from_quarter(quarter)
            for quarter in repository.query_aggregated_by_quarter(entries)
        ]
    else:
        data = [HistoryEntryResponse.from_entry(entry) for entry in entries]

    return HistoryResponse(
        data=data,
        total_entries=len(data),
        period=period,
        aggregated=aggregate == "quarterly",
    )


@router.delete("/history", response_model=ClearHistoryResponse)
def clear_history(
    repository: HistoryRepository = Depends(get_history_repository),
) -> ClearHistoryResponse:
    """
    Back up the store, then delete every history entry and stored evaluation.
    """

    try:
        snapshot = repository.clear()
    except BackupError as exc:
        logger.error("History clear aborted, backup failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Backup failed; history was not cleared.",
        ) from exc
    except (HistoryPersistenceError, SQLAlchemyError) as exc:
        logger.error("History clear failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to clear NPS history.",
        ) from exc

    return ClearHistoryResponse(
        message="History cleared.",
        backup_file=snapshot.path.name,
    )
