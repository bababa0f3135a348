"""
app/repositories/history_repository.py

Durable per-date NPS history with upload audit log, stats and backups.

Merge policy
------------
Every accepted evaluation is stored in ``evaluations``. When an upload
touches a date, the date's per-plan NPS is recomputed over *all* stored
evaluations for that date (the union of every upload), and
``total_records`` is the number of those evaluations.

Concurrency
-----------
One repository instance is shared by the whole process. Writers (upload
persistence, clear, backup) are serialised with a lock, and each write runs
in a single transaction so a failed upload leaves the store unchanged.

The lock only covers one process. Across several workers on PostgreSQL,
an upsert takes ``SELECT ... FOR UPDATE`` on the date's history row before
reading the union, so writers to an existing date queue up. A date with no
row yet has nothing to lock: two workers inserting it at once collide on
``uq_nps_history_date``, the loser rolls back whole and the upload fails
with ``HistoryPersistenceError``. SQLite ignores the row lock and relies on
its single-writer file lock.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import Select, delete, distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.evaluation import PLAN_ORDER, Evaluation, Plan
from app.domain.history import (
    BackupSnapshot,
    HistoryEntry,
    QuarterEntry,
    StoreStats,
    UploadReceipt,
    UploadSummary,
)
from app.repositories.backup_storage import LocalBackupStorage
from app.services.nps_metrics_service import NPSMetricsService, round_half_up
from db.models.evaluation import EvaluationRecord
from db.models.nps_history import NPSHistoryEntry
from db.models.upload import UploadRecord

logger = logging.getLogger(__name__)

PERIOD_DAYS: dict[str, int | None] = {
    "all": None,
    "7d": 7,
    "30d": 30,
    "90d": 90,
}

RECENT_UPLOADS_LIMIT = 5

_PLAN_COLUMNS: dict[str, str] = {
    Plan.FREE: "nps_free",
    Plan.LITE: "nps_lite",
    Plan.PRO: "nps_pro",
}


class HistoryPersistenceError(RuntimeError):
    """
    Raised when a store write fails; the transaction has been rolled back.
    """


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _to_entry(row: NPSHistoryEntry) -> HistoryEntry:
    return HistoryEntry(
        date=row.date,
        nps_by_plan={plan: getattr(row, column) for plan, column in _PLAN_COLUMNS.items()},
        total_records=row.total_records,
        updated_at=row.updated_at,
    )


def _to_upload_summary(row: UploadRecord) -> UploadSummary:
    return UploadSummary(
        id=row.id,
        filename=row.filename,
        total_records=row.total_records,
        unique_dates=row.unique_dates,
        uploaded_at=row.uploaded_at,
    )


def history_row_for_update(day: date) -> Select[tuple[NPSHistoryEntry]]:
    """Select the history row for ``day`` with a row lock (ignored by SQLite)."""
    return select(NPSHistoryEntry).where(NPSHistoryEntry.date == day).with_for_update()


def _row_payload(row: object) -> dict[str, object]:
    return {column.name: getattr(row, column.key) for column in row.__table__.columns}  # type: ignore[attr-defined]


@dataclass
class _QuarterBucket:
    first_date: date
    total_records: int = 0
    values: dict[str, list[int]] = field(default_factory=lambda: {plan: [] for plan in PLAN_ORDER})


def aggregate_by_quarter(entries: Iterable[HistoryEntry]) -> list[QuarterEntry]:
    """
    Fold daily entries into calendar quarters.

    A plan's quarterly NPS is the half-up rounded mean of the entries that
    reported a non-zero NPS for it (0 when none did); ``total_records`` is
    summed. Quarters come back ordered by their earliest date.
    """

    buckets: dict[tuple[int, int], _QuarterBucket] = {}
    for entry in entries:
        key = (entry.date.year, (entry.date.month - 1) // 3 + 1)
        bucket = buckets.setdefault(key, _QuarterBucket(first_date=entry.date))

        # A zero NPS is indistinguishable from "no data" in the history table.
        for plan in PLAN_ORDER:
            value = entry.nps_by_plan.get(plan, 0)
            if value != 0:
                bucket.values[plan].append(value)
        bucket.total_records += entry.total_records
        bucket.first_date = min(bucket.first_date, entry.date)

    quarters = [
        QuarterEntry(
            year=year,
            quarter=quarter,
            nps_by_plan={
                plan: round_half_up(sum(values) / len(values)) if values else 0
                for plan, values in bucket.values.items()
            },
            total_records=bucket.total_records,
            timestamp=bucket.first_date,
        )
        for (year, quarter), bucket in buckets.items()
    ]
    return sorted(quarters, key=lambda quarter: quarter.timestamp)


class HistoryRepository:
    """
    Repository for NPS history, stored evaluations and the upload audit log.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        *,
        backup_storage: LocalBackupStorage,
        metrics: NPSMetricsService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._backup_storage = backup_storage
        self._metrics = metrics or NPSMetricsService()
        self._clock = clock or _utc_now
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_upload(self, *, filename: str, evaluations: Sequence[Evaluation]) -> UploadReceipt:
        """
        Record one upload and fold its evaluations into the per-date history.

        Audit row, evaluations and history updates commit together or not at all.
        """

        by_date: dict[date, list[Evaluation]] = defaultdict(list)
        for evaluation in evaluations:
            by_date[evaluation.date].append(evaluation)

        with self._write_lock:
            try:
                with self._session_factory() as session:
                    with session.begin():
                        upload = UploadRecord(
                            filename=filename,
                            total_records=len(evaluations),
                            unique_dates=len(by_date),
                            uploaded_at=self._clock(),
                        )
                        session.add(upload)
                        session.flush()

                        entries = [
                            self._upsert_in_session(session, day, by_date[day], upload_id=upload.id)
                            for day in sorted(by_date)
                        ]
                        summary = _to_upload_summary(upload)
            except SQLAlchemyError as exc:
                raise HistoryPersistenceError("Failed to persist NPS upload.") from exc

        logger.info(
            "Upload persisted upload_id=%s filename=%r records=%d dates=%d",
            summary.id,
            filename,
            summary.total_records,
            summary.unique_dates,
        )
        return UploadReceipt(upload=summary, entries=entries)

    def upsert(self, day: date, evaluations: Sequence[Evaluation]) -> HistoryEntry:
        """
        Add ``evaluations`` to ``day`` and recompute that date's entry.
        """

        with self._write_lock:
            try:
                with self._session_factory() as session:
                    with session.begin():
                        return self._upsert_in_session(session, day, evaluations, upload_id=None)
            except SQLAlchemyError as exc:
                raise HistoryPersistenceError(f"Failed to upsert NPS history for {day}.") from exc

    def clear(self) -> BackupSnapshot:
        """
        Back up the store, then delete all history entries and stored evaluations.

        The upload audit log is kept. A failed backup aborts the clear.
        """

        with self._write_lock:
            snapshot = self._backup_locked()
            try:
                with self._session_factory() as session:
                    with session.begin():
                        removed = session.execute(delete(NPSHistoryEntry)).rowcount
                        session.execute(delete(EvaluationRecord))
            except SQLAlchemyError as exc:
                raise HistoryPersistenceError("Failed to clear NPS history.") from exc

        logger.info("NPS history cleared entries=%s backup=%s", removed, snapshot.path)
        return snapshot

    def backup(self) -> BackupSnapshot:
        """
        Snapshot every NPS table to the backup directory and prune old snapshots.
        """

        with self._write_lock:
            return self._backup_locked()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(self, period: str = "all") -> list[HistoryEntry]:
        """
        Entries on or after ``today - N days`` for 7d / 30d / 90d, ascending by date.
        """

        if period not in PERIOD_DAYS:
            allowed = ", ".join(PERIOD_DAYS)
            raise ValueError(f"Unsupported period {period!r}. Allowed values: {allowed}.")

        stmt = select(NPSHistoryEntry).order_by(NPSHistoryEntry.date.asc())
        days = PERIOD_DAYS[period]
        if days is not None:
            cutoff = self._clock().date() - timedelta(days=days)
            stmt = stmt.where(NPSHistoryEntry.date >= cutoff)

        with self._session_factory() as session:
            return [_to_entry(row) for row in session.scalars(stmt).all()]

    def query_aggregated_by_quarter(self, entries: Iterable[HistoryEntry]) -> list[QuarterEntry]:
        return aggregate_by_quarter(entries)

    def stats(self) -> StoreStats:
        stmt = select(
            func.count(EvaluationRecord.id),
            func.count(distinct(EvaluationRecord.date)),
            func.count(distinct(EvaluationRecord.client_id)),
            func.avg(EvaluationRecord.score),
            func.min(EvaluationRecord.date),
            func.max(EvaluationRecord.date),
        )
        with self._session_factory() as session:
            total, dates, clients, average, first_date, last_date = session.execute(stmt).one()

        return StoreStats(
            total_evaluations=int(total or 0),
            unique_dates=int(dates or 0),
            unique_clients=int(clients or 0),
            average_score=float(average) if average is not None else None,
            first_date=first_date,
            last_date=last_date,
        )

    def recent_uploads(self, limit: int = RECENT_UPLOADS_LIMIT) -> list[UploadSummary]:
        stmt = (
            select(UploadRecord)
            .order_by(UploadRecord.uploaded_at.desc(), UploadRecord.id.desc())
            .limit(limit)
        )
        with self._session_factory() as session:
            return [_to_upload_summary(row) for row in session.scalars(stmt).all()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _upsert_in_session(
        self,
        session: Session,
        day: date,
        evaluations: Sequence[Evaluation],
        *,
        upload_id: int | None,
    ) -> HistoryEntry:
        # Lock the existing row first so another worker cannot recompute the
        # same date from a partial union.
        row = session.scalars(history_row_for_update(day)).one_or_none()

        session.add_all(
            EvaluationRecord(
                date=day,
                raw_date=evaluation.raw_date or None,
                client_id=evaluation.client_id,
                user_name=evaluation.user_name,
                score=evaluation.score,
                plan=evaluation.plan,
                comment=evaluation.comment,
                category=evaluation.category,
                upload_id=upload_id,
            )
            for evaluation in evaluations
        )
        session.flush()

        stored = [
            Evaluation(date=day, raw_date="", score=score, plan=plan)
            for score, plan in session.execute(
                select(EvaluationRecord.score, EvaluationRecord.plan).where(
                    EvaluationRecord.date == day
                )
            )
        ]
        results_by_plan = self._metrics.compute_nps_by_plan(stored)

        if row is None:
            row = NPSHistoryEntry(date=day)
            session.add(row)

        for plan, column in _PLAN_COLUMNS.items():
            result = results_by_plan.get(plan)
            setattr(row, column, result.nps if result is not None else 0)
        row.total_records = len(stored)
        row.updated_at = self._clock()
        session.flush()

        logger.debug(
            "History upserted date=%s added=%d total=%d", day, len(evaluations), len(stored)
        )
        return _to_entry(row)

    def _backup_locked(self) -> BackupSnapshot:
        taken_at = self._clock()
        with self._session_factory() as session:
            payload = {
                "taken_at": taken_at,
                "nps_history": [
                    _row_payload(row)
                    for row in session.scalars(select(NPSHistoryEntry).order_by(NPSHistoryEntry.date))
                ],
                "uploads": [
                    _row_payload(row)
                    for row in session.scalars(select(UploadRecord).order_by(UploadRecord.id))
                ],
                "evaluations": [
                    _row_payload(row)
                    for row in session.scalars(select(EvaluationRecord).order_by(EvaluationRecord.id))
                ],
            }

        path = self._backup_storage.write(payload, taken_at=taken_at)
        removed = self._backup_storage.enforce_retention()
        return BackupSnapshot(path=path, taken_at=taken_at, removed=removed)
