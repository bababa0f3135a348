"""
app/api/routers/upload_router.py

CSV upload endpoint: parse, analyse and persist one NPS survey file.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from app.api.dependencies import get_csv_upload, get_history_repository
from app.repositories.history_repository import HistoryRepository
from app.schemas.nps import (
    EvaluationResponse,
    InsightResponse,
    NPSResultResponse,
    PlanShareResponse,
    RowIssueResponse,
    ScoreBucketResponse,
    UploadResponse,
    UploadResultData,
)
from app.services.csv_ingestion_service import (
    CSVIngestionService,
    CSVProcessingError,
    CSVUploadValidationError,
    get_csv_ingestion_service,
)

router = APIRouter(tags=["upload"])


@router.post("/upload", response_model=UploadResponse)
def upload_csv(
    file: UploadFile = Depends(get_csv_upload),
    repository: HistoryRepository = Depends(get_history_repository),
    ingestion_service: CSVIngestionService = Depends(get_csv_ingestion_service),
) -> UploadResponse:
    """
    Ingest one CSV file and return the computed NPS dashboard data.
    """

    try:
        analysis = ingestion_service.ingest_csv(
            raw_file=file.file,
            filename=file.filename or "upload.csv",
            repository=repository,
        )
    except CSVUploadValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except CSVProcessingError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    upload = analysis.receipt.upload
    return UploadResponse(
        data=UploadResultData(
            evaluations=[EvaluationResponse.from_evaluation(item) for item in analysis.evaluations],
            nps_results=NPSResultResponse.from_result(analysis.overall),
            nps_results_by_plan={
                plan: NPSResultResponse.from_result(result)
                for plan, result in analysis.by_plan.items()
            },
            insights=[InsightResponse.from_insight(item) for item in analysis.insights],
            score_distribution=[ScoreBucketResponse.from_bucket(item) for item in analysis.histogram],
            plan_distribution={
                plan: PlanShareResponse.from_share(share)
                for plan, share in analysis.plan_distribution.items()
            },
            total_records=len(analysis.evaluations),
            rows_dropped=analysis.parsed.rows_dropped,
            unique_dates=upload.unique_dates,
            file_name=analysis.filename,
            upload_id=upload.id,
            upload_date=upload.uploaded_at,
            row_issues=[RowIssueResponse.from_issue(issue) for issue in analysis.issues],
        )
    )
