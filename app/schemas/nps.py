"""
app/schemas/nps.py

Response schemas for the NPS endpoints.

Every response carries ``success``; failures are rendered as
:class:`ErrorResponse` by the application exception handlers.
"""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.evaluation import Evaluation, RowIssue
from app.domain.history import HistoryEntry, QuarterEntry, StoreStats, UploadSummary
from app.services.insight_service import Insight
from app.services.nps_metrics_service import NPSResult, PlanShare, ScoreBucket


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class NPSResultResponse(BaseModel):
    """
    API response model for one NPS aggregate.
    """

    nps: int = Field(..., ge=-100, le=100)
    total: int = Field(..., ge=0)
    promoters: int = Field(..., ge=0)
    passives: int = Field(..., ge=0)
    detractors: int = Field(..., ge=0)
    promoter_percentage: int
    passive_percentage: int
    detractor_percentage: int
    average_score: str
    median: str | None = None

    @classmethod
    def from_result(cls, result: NPSResult) -> "NPSResultResponse":
        return cls(
            nps=result.nps,
            total=result.total,
            promoters=result.promoters,
            passives=result.passives,
            detractors=result.detractors,
            promoter_percentage=result.promoter_percentage,
            passive_percentage=result.passive_percentage,
            detractor_percentage=result.detractor_percentage,
            average_score=result.average_score,
            median=result.median_score,
        )


class InsightResponse(BaseModel):
    severity: str
    message: str

    @classmethod
    def from_insight(cls, insight: Insight) -> "InsightResponse":
        return cls(severity=insight.severity, message=insight.message)


class ScoreBucketResponse(BaseModel):
    score: int = Field(..., ge=0, le=10)
    count: int = Field(..., ge=0)
    percentage: str
    category: str

    @classmethod
    def from_bucket(cls, bucket: ScoreBucket) -> "ScoreBucketResponse":
        return cls(
            score=bucket.score,
            count=bucket.count,
            percentage=bucket.percentage,
            category=bucket.category,
        )


class PlanShareResponse(BaseModel):
    count: int = Field(..., ge=1)
    percentage: str

    @classmethod
    def from_share(cls, share: PlanShare) -> "PlanShareResponse":
        return cls(count=share.count, percentage=share.percentage)


class EvaluationResponse(BaseModel):
    date: Date
    raw_date: str
    client_id: str | None = None
    user_name: str | None = None
    score: int = Field(..., ge=0, le=10)
    comment: str | None = None
    plan: str
    category: str
    date_inferred: bool = False

    @classmethod
    def from_evaluation(cls, evaluation: Evaluation) -> "EvaluationResponse":
        return cls(
            date=evaluation.date,
            raw_date=evaluation.raw_date,
            client_id=evaluation.client_id,
            user_name=evaluation.user_name,
            score=evaluation.score,
            comment=evaluation.comment,
            plan=evaluation.plan,
            category=evaluation.category,
            date_inferred=evaluation.date_inferred,
        )


class RowIssueResponse(BaseModel):
    """
    API response model for one row-level issue.
    """

    row_number: int = Field(..., ge=1)
    kind: str
    message: str
    column: str | None = None
    value: str | None = None

    @classmethod
    def from_issue(cls, issue: RowIssue) -> "RowIssueResponse":
        return cls(
            row_number=issue.row_number,
            kind=issue.kind,
            message=issue.message,
            column=issue.column,
            value=issue.value,
        )


class UploadResultData(BaseModel):
    evaluations: list[EvaluationResponse]
    nps_results: NPSResultResponse
    nps_results_by_plan: dict[str, NPSResultResponse]
    insights: list[InsightResponse]
    score_distribution: list[ScoreBucketResponse]
    plan_distribution: dict[str, PlanShareResponse]
    total_records: int = Field(..., ge=1)
    rows_dropped: int = Field(..., ge=0)
    unique_dates: int = Field(..., ge=1)
    file_name: str
    upload_id: int
    upload_date: datetime
    row_issues: list[RowIssueResponse] = Field(default_factory=list)


class UploadResponse(BaseModel):
    success: bool = True
    data: UploadResultData


class HistoryEntryResponse(BaseModel):
    """
    One history point; ``date`` is ISO for daily entries and ``Q<n> <year>`` for quarters.
    """

    date: str
    display_date: str
    FREE: int
    LITE: int
    PRO: int
    total_records: int = Field(..., ge=0)
    timestamp: str

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        iso = entry.date.isoformat()
        return cls(
            date=iso,
            display_date=entry.date.strftime("%d/%m/%Y"),
            FREE=entry.nps_by_plan.get("FREE", 0),
            LITE=entry.nps_by_plan.get("LITE", 0),
            PRO=entry.nps_by_plan.get("PRO", 0),
            total_records=entry.total_records,
            timestamp=iso,
        )

    @classmethod
    def from_quarter(cls, quarter: QuarterEntry) -> "HistoryEntryResponse":
        return cls(
            date=quarter.label,
            display_date=quarter.label,
            FREE=quarter.nps_by_plan.get("FREE", 0),
            LITE=quarter.nps_by_plan.get("LITE", 0),
            PRO=quarter.nps_by_plan.get("PRO", 0),
            total_records=quarter.total_records,
            timestamp=quarter.timestamp.isoformat(),
        )


class HistoryResponse(BaseModel):
    success: bool = True
    data: list[HistoryEntryResponse]
    total_entries: int = Field(..., ge=0)
    period: str
    aggregated: bool = False


class ClearHistoryResponse(BaseModel):
    success: bool = True
    message: str
    backup_file: str


class StoreStatsResponse(BaseModel):
    total_evaluations: int = Field(..., ge=0)
    unique_dates: int = Field(..., ge=0)
    unique_clients: int = Field(..., ge=0)
    average_score: float | None = None
    first_date: Date | None = None
    last_date: Date | None = None

    @classmethod
    def from_stats(cls, stats: StoreStats) -> "StoreStatsResponse":
        return cls(
            total_evaluations=stats.total_evaluations,
            unique_dates=stats.unique_dates,
            unique_clients=stats.unique_clients,
            average_score=stats.average_score,
            first_date=stats.first_date,
            last_date=stats.last_date,
        )


class UploadSummaryResponse(BaseModel):
    id: int
    filename: str
    total_records: int
    unique_dates: int
    uploaded_at: datetime

    @classmethod
    def from_summary(cls, summary: UploadSummary) -> "UploadSummaryResponse":
        return cls(
            id=summary.id,
            filename=summary.filename,
            total_records=summary.total_records,
            unique_dates=summary.unique_dates,
            uploaded_at=summary.uploaded_at,
        )


class StatsData(BaseModel):
    stats: StoreStatsResponse
    recent_uploads: list[UploadSummaryResponse]


class StatsResponse(BaseModel):
    success: bool = True
    data: StatsData


class HealthResponse(BaseModel):
    success: bool = True
    status: str = "OK"
    timestamp: datetime
    uptime: int = Field(..., ge=0)
    environment: str
    database: dict[str, Any] | None = None
