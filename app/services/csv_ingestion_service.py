"""
app/services/csv_ingestion_service.py

Service layer for the NPS upload workflow.

    1. read the uploaded CSV (size and encoding checks)
    2. sanitize every row into an Evaluation, dropping malformed rows
    3. compute overall / per-plan NPS, insights, histogram and plan shares
    4. persist the upload and fold it into the per-date history

Row-level defects never abort the batch; they are logged and reported
back as row issues. Any failure after parsing aborts the whole upload.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import BinaryIO

from app.config import get_upload_settings
from app.domain.evaluation import Evaluation, ParsedUpload, RowIssue, RowIssueKind
from app.domain.history import UploadReceipt
from app.repositories.history_repository import HistoryPersistenceError, HistoryRepository
from app.services.insight_service import Insight, InsightService
from app.services.nps_metrics_service import (
    NPSMetricsService,
    NPSResult,
    PlanShare,
    ScoreBucket,
)
from app.validators.csv_validator import EvaluationRowSanitizer, resolve_header_fields

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS: tuple[str, ...] = ("score", "plan")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVUploadValidationError(ValueError):
    """
    Raised when the uploaded file is rejected as a whole (client error).
    """


class CSVProcessingError(RuntimeError):
    """
    Raised when metrics or persistence fail for an accepted file.
    """


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UploadAnalysis:
    """
    Everything computed for one accepted upload.
    """

    filename: str
    parsed: ParsedUpload
    overall: NPSResult
    by_plan: dict[str, NPSResult]
    insights: list[Insight]
    histogram: list[ScoreBucket]
    plan_distribution: dict[str, PlanShare]
    receipt: UploadReceipt
    issues: list[RowIssue] = field(default_factory=list)

    @property
    def evaluations(self) -> list[Evaluation]:
        return self.parsed.evaluations


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CSVIngestionService:
    """
    Coordinates CSV parsing, sanitizing, metrics and persistence.
    """

    def __init__(
        self,
        *,
        max_upload_bytes: int,
        max_row_issues: int,
        log_row_issues: bool,
        sanitizer: EvaluationRowSanitizer | None = None,
        metrics: NPSMetricsService | None = None,
        insights: InsightService | None = None,
    ) -> None:
        self._max_upload_bytes = max(1, max_upload_bytes)
        self._max_row_issues = max(1, max_row_issues)
        self._log_row_issues = log_row_issues
        self._sanitizer = sanitizer or EvaluationRowSanitizer()
        self._metrics = metrics or NPSMetricsService()
        self._insights = insights or InsightService()

    def ingest_csv(
        self,
        *,
        raw_file: BinaryIO,
        filename: str,
        repository: HistoryRepository,
    ) -> UploadAnalysis:
        """
        Validate, analyse and persist one uploaded CSV.

        Raises CSVUploadValidationError for files that must be rejected
        (too large, empty, not UTF-8, no valid rows) and CSVProcessingError
        for failures after the rows were accepted.
        """

        content = self._read_limited(raw_file)
        parsed = self.parse_csv(content)
        if not parsed.evaluations:
            raise CSVUploadValidationError(
                "No valid records found in the file. Check the score (nota) and plan (plano) columns."
            )

        logger.info(
            "CSV parsed filename=%r rows=%d accepted=%d dropped=%d",
            filename,
            parsed.rows_read,
            len(parsed.evaluations),
            parsed.rows_dropped,
        )

        try:
            overall = self._metrics.compute_nps(parsed.evaluations)
            by_plan = self._metrics.compute_nps_by_plan(parsed.evaluations)
            insights = self._insights.generate(overall, by_plan)
            histogram = self._metrics.score_histogram(parsed.evaluations)
            plan_distribution = self._metrics.plan_distribution(parsed.evaluations)
            receipt = repository.save_upload(filename=filename, evaluations=parsed.evaluations)
        except HistoryPersistenceError as exc:
            logger.error("Upload persistence failed filename=%r: %s", filename, exc)
            raise CSVProcessingError("Unable to persist the uploaded evaluations.") from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Upload processing failed filename=%r", filename)
            raise CSVProcessingError("Internal error while processing the data.") from exc

        logger.info(
            "Upload analysed filename=%r nps=%d plans=%s dates=%d",
            filename,
            overall.nps,
            ",".join(plan_distribution),
            len(parsed.unique_dates),
        )

        return UploadAnalysis(
            filename=filename,
            parsed=parsed,
            overall=overall,
            by_plan=by_plan,
            insights=insights,
            histogram=histogram,
            plan_distribution=plan_distribution,
            receipt=receipt,
            issues=list(parsed.issues),
        )

    def parse_csv(self, content: bytes) -> ParsedUpload:
        """
        Parse CSV bytes into evaluations; malformed rows are dropped, not raised.
        """

        if not content.strip():
            raise CSVUploadValidationError("Uploaded file is empty.")

        evaluations: list[Evaluation] = []
        issues: list[RowIssue] = []
        rows_read = 0
        rows_dropped = 0

        try:
            text_stream = io.TextIOWrapper(io.BytesIO(content), encoding="utf-8-sig", newline="")
            reader = csv.DictReader(text_stream, delimiter=",", quotechar='"')
            headers = reader.fieldnames or []
            if not headers:
                raise CSVUploadValidationError("CSV header row is missing.")

            fields = resolve_header_fields(headers)
            missing = [name for name in _REQUIRED_FIELDS if name not in fields]
            if missing:
                raise CSVUploadValidationError(
                    "CSV header must include the score (nota) and plan (plano) columns."
                )

            for row_number, raw_row in enumerate(reader, start=2):
                rows_read += 1
                if self._sanitizer.is_completely_empty_row(raw_row):
                    rows_dropped += 1
                    self._record_issue(
                        issues,
                        RowIssue(
                            row_number=row_number,
                            kind=RowIssueKind.DROPPED,
                            message="Completely empty rows are not allowed.",
                        ),
                    )
                    continue

                try:
                    evaluation, row_issues = self._sanitizer.sanitize(
                        raw_row=raw_row,
                        headers=headers,
                        row_number=row_number,
                    )
                except Exception as exc:  # noqa: BLE001
                    logger.warning("CSV row %d could not be processed: %s", row_number, exc)
                    evaluation = None
                    row_issues = [
                        RowIssue(
                            row_number=row_number,
                            kind=RowIssueKind.DROPPED,
                            message="Row could not be processed.",
                        )
                    ]

                for issue in row_issues:
                    self._record_issue(issues, issue)
                if evaluation is None:
                    rows_dropped += 1
                    continue
                evaluations.append(evaluation)

        except UnicodeDecodeError as exc:
            raise CSVUploadValidationError("CSV must be UTF-8 encoded.") from exc
        except csv.Error as exc:
            raise CSVUploadValidationError(f"Invalid CSV format: {exc}") from exc

        return ParsedUpload(
            evaluations=evaluations,
            rows_read=rows_read,
            rows_dropped=rows_dropped,
            issues=issues,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read_limited(self, raw_file: BinaryIO) -> bytes:
        raw_file.seek(0)
        content = raw_file.read(self._max_upload_bytes + 1)
        if len(content) > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes / (1024 * 1024)
            raise CSVUploadValidationError(f"File too large. Maximum size: {limit_mb:g}MB.")
        return content

    def _record_issue(self, captured: list[RowIssue], issue: RowIssue) -> None:
        if self._log_row_issues:
            logger.warning(
                "CSV row issue row=%s kind=%s column=%s message=%s value=%r",
                issue.row_number,
                issue.kind,
                issue.column,
                issue.message,
                issue.value,
            )

        if len(captured) < self._max_row_issues:
            captured.append(issue)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_csv_ingestion_service() -> CSVIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_upload_settings()
    return CSVIngestionService(
        max_upload_bytes=settings.max_upload_bytes,
        max_row_issues=settings.max_row_issues,
        log_row_issues=settings.log_row_issues,
    )
