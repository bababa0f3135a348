"""
app/domain/evaluation.py

Domain models used by the NPS ingestion flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


class Plan:
    FREE = "FREE"
    LITE = "LITE"
    PRO = "PRO"


# Iteration order doubles as the tie-break order for best/worst plan selection.
PLAN_ORDER: tuple[str, ...] = (Plan.FREE, Plan.LITE, Plan.PRO)


class ScoreCategory:
    PROMOTER = "Promotor"
    PASSIVE = "Neutro"
    DETRACTOR = "Detrator"


PROMOTER_MIN_SCORE = 9
PASSIVE_MIN_SCORE = 7
MIN_SCORE = 0
MAX_SCORE = 10


def categorize_score(score: int) -> str:
    """
    Map a 0..10 score to its NPS band.
    """

    if score >= PROMOTER_MIN_SCORE:
        return ScoreCategory.PROMOTER
    if score >= PASSIVE_MIN_SCORE:
        return ScoreCategory.PASSIVE
    return ScoreCategory.DETRACTOR


@dataclass(frozen=True)
class Evaluation:
    """
    One sanitized CSV row.

    ``date`` is the normalized evaluation date; ``raw_date`` keeps the
    original text for display. ``date_inferred`` is True when the original
    text could not be parsed and today's date was used instead.
    """

    date: date
    raw_date: str
    score: int
    plan: str
    client_id: str | None = None
    user_name: str | None = None
    comment: str | None = None
    date_inferred: bool = False

    @property
    def category(self) -> str:
        return categorize_score(self.score)


class RowIssueKind:
    DROPPED = "dropped"
    DATE_FALLBACK = "date_fallback"


@dataclass(frozen=True)
class RowIssue:
    """
    One row-level defect detected during ingestion.
    """

    row_number: int
    kind: str
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ParsedUpload:
    """
    Result of parsing one CSV file: accepted evaluations plus row issues.
    """

    evaluations: list[Evaluation]
    rows_read: int
    rows_dropped: int
    issues: list[RowIssue] = field(default_factory=list)

    @property
    def unique_dates(self) -> list[date]:
        return sorted({evaluation.date for evaluation in self.evaluations})
