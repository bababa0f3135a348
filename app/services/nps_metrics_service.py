"""
app/services/nps_metrics_service.py

Deterministic NPS calculation engine.

All functions operate on already-sanitized Evaluation collections. No
database logic lives here; the ingestion service and the history
repository both call into this module.

Formulas
--------
promoters     = count(score >= 9)
passives      = count(7 <= score <= 8)
detractors    = count(score <= 6)
NPS           = round(100 * promoters / total) - round(100 * detractors / total)

Each percentage is rounded on its own (half away from zero) *before* the
subtraction, so NPS may differ by one from ``round(promoter% - detractor%)``.
Averages and medians are reported as one-decimal strings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.domain.evaluation import (
    MAX_SCORE,
    MIN_SCORE,
    PASSIVE_MIN_SCORE,
    PLAN_ORDER,
    PROMOTER_MIN_SCORE,
    Evaluation,
    categorize_score,
)

logger = logging.getLogger(__name__)

_ONE_DECIMAL = Decimal("0.1")
_WHOLE = Decimal("1")


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, ties away from zero.
    """

    return int(Decimal(repr(value)).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def format_one_decimal(value: float) -> str:
    """
    Format ``value`` with exactly one decimal place, ties away from zero.
    """

    return str(Decimal(repr(float(value))).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Output dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NPSResult:
    """
    Aggregate NPS statistics over one set of evaluations.

    ``median_score`` is ``None`` for per-plan results.
    """

    total: int
    promoters: int
    passives: int
    detractors: int
    nps: int
    promoter_percentage: int
    passive_percentage: int
    detractor_percentage: int
    average_score: str
    median_score: str | None = None

    @classmethod
    def empty(cls, *, with_median: bool = True) -> "NPSResult":
        return cls(
            total=0,
            promoters=0,
            passives=0,
            detractors=0,
            nps=0,
            promoter_percentage=0,
            passive_percentage=0,
            detractor_percentage=0,
            average_score="0.0",
            median_score="0.0" if with_median else None,
        )


@dataclass(frozen=True)
class ScoreBucket:
    score: int
    count: int
    percentage: str
    category: str


@dataclass(frozen=True)
class PlanShare:
    count: int
    percentage: str


# ---------------------------------------------------------------------------
# Calculations
# ---------------------------------------------------------------------------


def _valid_scores(evaluations: Iterable[Evaluation]) -> list[int]:
    return [
        evaluation.score
        for evaluation in evaluations
        if MIN_SCORE <= evaluation.score <= MAX_SCORE
    ]


def _median(sorted_scores: Sequence[int]) -> float:
    middle = len(sorted_scores) // 2
    if len(sorted_scores) % 2 == 0:
        return (sorted_scores[middle - 1] + sorted_scores[middle]) / 2
    return float(sorted_scores[middle])


def summarize_scores(scores: Sequence[int], *, with_median: bool = True) -> NPSResult:
    """
    Compute NPS statistics for raw 0..10 scores.
    """

    total = len(scores)
    if total == 0:
        return NPSResult.empty(with_median=with_median)

    promoters = sum(1 for score in scores if score >= PROMOTER_MIN_SCORE)
    passives = sum(1 for score in scores if PASSIVE_MIN_SCORE <= score < PROMOTER_MIN_SCORE)
    detractors = total - promoters - passives

    promoter_percentage = round_half_up(promoters / total * 100)
    detractor_percentage = round_half_up(detractors / total * 100)

    return NPSResult(
        total=total,
        promoters=promoters,
        passives=passives,
        detractors=detractors,
        nps=promoter_percentage - detractor_percentage,
        promoter_percentage=promoter_percentage,
        passive_percentage=round_half_up(passives / total * 100),
        detractor_percentage=detractor_percentage,
        average_score=format_one_decimal(sum(scores) / total),
        median_score=format_one_decimal(_median(sorted(scores))) if with_median else None,
    )


class NPSMetricsService:
    """
    Stateless NPS calculation engine.

    Usage::

        service = NPSMetricsService()
        result = service.compute_nps(evaluations)
        print(result.nps)
    """

    def compute_nps(self, evaluations: Iterable[Evaluation]) -> NPSResult:
        """
        Overall NPS, percentage breakdown, average and median.

        An empty collection yields the all-zero result, not an error.
        """

        result = summarize_scores(_valid_scores(evaluations))
        logger.debug("NPS computed over %d evaluations: %d", result.total, result.nps)
        return result

    def compute_nps_by_plan(self, evaluations: Iterable[Evaluation]) -> dict[str, NPSResult]:
        """
        Per-plan NPS (without median), in FREE, LITE, PRO order.

        Plans with no evaluations are omitted from the mapping.
        """

        scores_by_plan: dict[str, list[int]] = {plan: [] for plan in PLAN_ORDER}
        for evaluation in evaluations:
            if evaluation.plan in scores_by_plan and MIN_SCORE <= evaluation.score <= MAX_SCORE:
                scores_by_plan[evaluation.plan].append(evaluation.score)

        return {
            plan: summarize_scores(scores, with_median=False)
            for plan, scores in scores_by_plan.items()
            if scores
        }

    def score_histogram(self, evaluations: Sequence[Evaluation]) -> list[ScoreBucket]:
        """
        Eleven buckets (scores 0..10), percentages relative to all evaluations.
        """

        counts = [0] * (MAX_SCORE - MIN_SCORE + 1)
        for score in _valid_scores(evaluations):
            counts[score - MIN_SCORE] += 1

        total = len(evaluations)
        return [
            ScoreBucket(
                score=MIN_SCORE + offset,
                count=count,
                percentage=format_one_decimal(count / total * 100 if total else 0.0),
                category=categorize_score(MIN_SCORE + offset),
            )
            for offset, count in enumerate(counts)
        ]

    def plan_distribution(self, evaluations: Sequence[Evaluation]) -> dict[str, PlanShare]:
        """
        Share of evaluations per plan; plans without evaluations are omitted.
        """

        total = len(evaluations)
        distribution: dict[str, PlanShare] = {}
        for plan in PLAN_ORDER:
            count = sum(1 for evaluation in evaluations if evaluation.plan == plan)
            if count > 0:
                distribution[plan] = PlanShare(
                    count=count,
                    percentage=format_one_decimal(count / total * 100),
                )
        return distribution
