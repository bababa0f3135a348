"""
tests/test_nps_metrics_service.py

Pytest unit tests for NPSMetricsService and its rounding helpers.

Pure Python, no database. Expected values are worked out by hand from
the NPS formula: round(promoter%) - round(detractor%).
"""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.evaluation import Evaluation
from app.services.nps_metrics_service import (
    NPSMetricsService,
    NPSResult,
    format_one_decimal,
    round_half_up,
    summarize_scores,
)


def _evaluations(*pairs: tuple[int, str]) -> list[Evaluation]:
    day = date(2024, 1, 15)
    return [
        Evaluation(date=day, raw_date="2024-01-15", score=score, plan=plan)
        for score, plan in pairs
    ]


@pytest.fixture()
def svc() -> NPSMetricsService:
    return NPSMetricsService()


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------


class TestRounding:
    @pytest.mark.parametrize(
        "value, expected",
        [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, -1), (-2.5, -3), (33.333, 33), (66.666, 67)],
    )
    def test_round_half_up_ties_away_from_zero(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(7.25, "7.3"), (7.0, "7.0"), (0.0, "0.0"), (8.333333, "8.3"), (12.5, "12.5")],
    )
    def test_format_one_decimal(self, value: float, expected: str) -> None:
        assert format_one_decimal(value) == expected


# ---------------------------------------------------------------------------
# Overall NPS
# ---------------------------------------------------------------------------


class TestComputeNPS:
    def test_mixed_scores(self, svc: NPSMetricsService) -> None:
        result = svc.compute_nps(_evaluations((10, "PRO"), (9, "FREE"), (3, "LITE"), (7, "FREE")))

        assert result.total == 4
        assert (result.promoters, result.passives, result.detractors) == (2, 1, 1)
        assert result.promoter_percentage == 50
        assert result.passive_percentage == 25
        assert result.detractor_percentage == 25
        assert result.nps == 25
        assert result.average_score == "7.3"
        assert result.median_score == "8.0"

    def test_percentages_are_rounded_before_subtraction(self) -> None:
        # 1 promoter, 1 passive, 1 detractor -> 33 - 33 = 0
        result = summarize_scores([9, 7, 0])
        assert result.promoter_percentage == 33
        assert result.detractor_percentage == 33
        assert result.nps == 0

    def test_two_of_three_promoters(self) -> None:
        result = summarize_scores([10, 10, 5])
        assert result.promoter_percentage == 67
        assert result.detractor_percentage == 33
        assert result.nps == 34

    def test_all_promoters(self, svc: NPSMetricsService) -> None:
        assert svc.compute_nps(_evaluations((9, "FREE"), (10, "PRO"))).nps == 100

    def test_all_detractors(self, svc: NPSMetricsService) -> None:
        assert svc.compute_nps(_evaluations((0, "FREE"), (6, "LITE"))).nps == -100

    def test_odd_count_median(self) -> None:
        assert summarize_scores([1, 9, 5]).median_score == "5.0"

    def test_empty_input_yields_zero_result(self, svc: NPSMetricsService) -> None:
        result = svc.compute_nps([])
        assert result == NPSResult.empty()
        assert result.average_score == "0.0"
        assert result.median_score == "0.0"

    def test_band_boundaries(self) -> None:
        result = summarize_scores([6, 7, 8, 9])
        assert (result.promoters, result.passives, result.detractors) == (1, 2, 1)


# ---------------------------------------------------------------------------
# Per plan
# ---------------------------------------------------------------------------


class TestComputeNPSByPlan:
    def test_plans_without_data_are_omitted(self, svc: NPSMetricsService) -> None:
        results = svc.compute_nps_by_plan(_evaluations((10, "PRO"), (2, "FREE")))
        assert list(results) == ["FREE", "PRO"]
        assert results["FREE"].nps == -100
        assert results["PRO"].nps == 100

    def test_plan_order_is_fixed(self, svc: NPSMetricsService) -> None:
        results = svc.compute_nps_by_plan(_evaluations((9, "PRO"), (9, "LITE"), (9, "FREE")))
        assert list(results) == ["FREE", "LITE", "PRO"]

    def test_per_plan_results_have_no_median(self, svc: NPSMetricsService) -> None:
        results = svc.compute_nps_by_plan(_evaluations((9, "LITE"), (7, "LITE")))
        assert results["LITE"].median_score is None
        assert results["LITE"].average_score == "8.0"
        assert results["LITE"].nps == 50

    def test_empty_input(self, svc: NPSMetricsService) -> None:
        assert svc.compute_nps_by_plan([]) == {}


# ---------------------------------------------------------------------------
# Histogram and plan distribution
# ---------------------------------------------------------------------------


class TestScoreHistogram:
    def test_eleven_buckets_with_categories(self, svc: NPSMetricsService) -> None:
        buckets = svc.score_histogram(_evaluations((10, "PRO"), (10, "FREE"), (3, "LITE"), (7, "FREE")))

        assert [bucket.score for bucket in buckets] == list(range(11))
        assert buckets[10].count == 2
        assert buckets[10].percentage == "50.0"
        assert buckets[3].percentage == "25.0"
        assert buckets[0].percentage == "0.0"
        assert buckets[6].category == "Detrator"
        assert buckets[7].category == "Neutro"
        assert buckets[9].category == "Promotor"

    def test_empty_input_reports_zero_percentages(self, svc: NPSMetricsService) -> None:
        buckets = svc.score_histogram([])
        assert len(buckets) == 11
        assert all(bucket.count == 0 and bucket.percentage == "0.0" for bucket in buckets)


class TestPlanDistribution:
    def test_shares(self, svc: NPSMetricsService) -> None:
        shares = svc.plan_distribution(_evaluations((1, "FREE"), (2, "FREE"), (3, "PRO")))
        assert list(shares) == ["FREE", "PRO"]
        assert shares["FREE"].count == 2
        assert shares["FREE"].percentage == "66.7"
        assert shares["PRO"].percentage == "33.3"

    def test_empty_input(self, svc: NPSMetricsService) -> None:
        assert svc.plan_distribution([]) == {}


class TestInvariants:
    @pytest.mark.parametrize("score", range(11))
    def test_category_bands(self, score: int) -> None:
        from app.domain.evaluation import categorize_score

        expected = "Promotor" if score >= 9 else "Neutro" if score >= 7 else "Detrator"
        assert categorize_score(score) == expected

    def test_reference_example(self, svc: NPSMetricsService) -> None:
        result = svc.compute_nps(_evaluations((10, "FREE"), (8, "FREE"), (3, "PRO")))
        assert (result.total, result.promoters, result.passives, result.detractors) == (3, 1, 1, 1)
        assert result.nps == 0

    @pytest.mark.parametrize("scores, median", [([2, 4, 6, 8], "5.0"), ([2, 4, 6], "4.0")])
    def test_median(self, scores: list[int], median: str) -> None:
        assert summarize_scores(scores).median_score == median

    def test_bands_sum_to_total(self) -> None:
        result = summarize_scores([0, 1, 5, 6, 7, 7, 8, 9, 10, 10, 3])
        assert result.promoters + result.passives + result.detractors == result.total == 11
