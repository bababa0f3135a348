"""
app/services/insight_service.py

Deterministic, rule-based insight generation from NPS results.

Rules are evaluated independently and emitted in a fixed order:

    1. best plan (highest NPS)                      -> success
    2. worst plan (lowest NPS) when NPS < 30        -> warning
    3. overall detractor share above 30 %           -> error
    4. overall promoter share above 60 %            -> success
    5. overall average score above 8.5              -> success

Ties between plans resolve to the first plan in FREE, LITE, PRO order.
No insights are produced when no plan has data.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from app.domain.evaluation import PLAN_ORDER
from app.services.nps_metrics_service import NPSResult


class InsightSeverity:
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

_WORST_PLAN_NPS_THRESHOLD = 30
_DETRACTOR_SHARE_THRESHOLD = 30
_PROMOTER_SHARE_THRESHOLD = 60
_AVERAGE_SCORE_THRESHOLD = 8.5


@dataclass(frozen=True)
class Insight:
    severity: str
    message: str


def _ordered_plans(results_by_plan: Mapping[str, NPSResult]) -> list[tuple[str, NPSResult]]:
    ordered = [(plan, results_by_plan[plan]) for plan in PLAN_ORDER if plan in results_by_plan]
    # Unknown plan keys keep their mapping order, after the known ones.
    ordered.extend(
        (plan, result) for plan, result in results_by_plan.items() if plan not in PLAN_ORDER
    )
    return ordered


class InsightService:
    """
    Turns overall and per-plan NPS results into qualitative messages.

    Pure: no I/O and no state between calls.
    """

    def generate(
        self,
        overall: NPSResult,
        results_by_plan: Mapping[str, NPSResult],
    ) -> list[Insight]:
        plans = _ordered_plans(results_by_plan)
        if not plans:
            return []

        insights: list[Insight] = []

        best_plan, best = plans[0]
        worst_plan, worst = plans[0]
        for plan, result in plans[1:]:
            if result.nps > best.nps:
                best_plan, best = plan, result
            if result.nps < worst.nps:
                worst_plan, worst = plan, result

        insights.append(
            Insight(
                severity=InsightSeverity.SUCCESS,
                message=f"Plan {best_plan} leads with NPS {best.nps} ({best.total} users)",
            )
        )

        if worst.nps < _WORST_PLAN_NPS_THRESHOLD:
            insights.append(
                Insight(
                    severity=InsightSeverity.WARNING,
                    message=f"Plan {worst_plan} needs attention: NPS {worst.nps}",
                )
            )

        if overall.detractor_percentage > _DETRACTOR_SHARE_THRESHOLD:
            insights.append(
                Insight(
                    severity=InsightSeverity.ERROR,
                    message=(
                        f"{overall.detractor_percentage}% detractors - "
                        "immediate action required"
                    ),
                )
            )

        if overall.promoter_percentage > _PROMOTER_SHARE_THRESHOLD:
            insights.append(
                Insight(
                    severity=InsightSeverity.SUCCESS,
                    message=(
                        f"{overall.promoter_percentage}% promoters - "
                        "excellent for organic growth"
                    ),
                )
            )

        if float(overall.average_score) > _AVERAGE_SCORE_THRESHOLD:
            insights.append(
                Insight(
                    severity=InsightSeverity.SUCCESS,
                    message=f"Excellent average score: {overall.average_score}/10",
                )
            )

        return insights
