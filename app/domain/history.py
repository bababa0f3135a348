"""
app/domain/history.py

Read models returned by the history repository.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path


@dataclass(frozen=True)
class HistoryEntry:
    """
    Per-date NPS snapshot. ``nps_by_plan`` always carries FREE, LITE and PRO.
    """

    date: date
    nps_by_plan: dict[str, int]
    total_records: int
    updated_at: datetime | None = None


@dataclass(frozen=True)
class QuarterEntry:
    """
    History entries of one calendar quarter folded together.

    ``timestamp`` is the earliest contributing date.
    """

    year: int
    quarter: int
    nps_by_plan: dict[str, int]
    total_records: int
    timestamp: date

    @property
    def label(self) -> str:
        return f"Q{self.quarter} {self.year}"


@dataclass(frozen=True)
class UploadSummary:
    id: int
    filename: str
    total_records: int
    unique_dates: int
    uploaded_at: datetime


@dataclass(frozen=True)
class UploadReceipt:
    """
    Outcome of persisting one upload.
    """

    upload: UploadSummary
    entries: list[HistoryEntry] = field(default_factory=list)


@dataclass(frozen=True)
class StoreStats:
    total_evaluations: int
    unique_dates: int
    unique_clients: int
    average_score: float | None
    first_date: date | None
    last_date: date | None


@dataclass(frozen=True)
class BackupSnapshot:
    path: Path
    taken_at: datetime
    removed: list[Path] = field(default_factory=list)
