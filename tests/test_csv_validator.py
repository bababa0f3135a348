"""
tests/test_csv_validator.py

Unit tests for EvaluationRowSanitizer and header resolution.

Rows are built the way csv.DictReader produces them, including the
``None`` overflow key for unquoted commas inside the comment.
"""

from __future__ import annotations

import csv
import io
from datetime import date

import pytest

from app.domain.evaluation import RowIssueKind
from app.validators.csv_validator import EvaluationRowSanitizer, resolve_header_fields
from app.validators.date_normalizer import DateNormalizer

TODAY = date(2026, 10, 19)
HEADERS = ["data", "cliente", "usuario", "nota", "comentario", "plano"]


@pytest.fixture()
def sanitizer() -> EvaluationRowSanitizer:
    return EvaluationRowSanitizer(DateNormalizer(clock=lambda: TODAY))


def _read_rows(text: str) -> tuple[list[str], list[dict]]:
    reader = csv.DictReader(io.StringIO(text))
    rows = list(reader)
    return list(reader.fieldnames or []), rows


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


class TestResolveHeaderFields:
    def test_portuguese_headers(self) -> None:
        fields = resolve_header_fields(HEADERS)
        assert fields == {
            "date": 0,
            "client_id": 1,
            "user_name": 2,
            "score": 3,
            "comment": 4,
            "plan": 5,
        }

    def test_english_headers_are_case_insensitive(self) -> None:
        fields = resolve_header_fields([" Date ", "SCORE", "Plan"])
        assert fields == {"date": 0, "score": 1, "plan": 2}

    def test_accented_aliases(self) -> None:
        fields = resolve_header_fields(["usuário", "comentário", "nota", "plano"])
        assert fields["user_name"] == 0
        assert fields["comment"] == 1

    def test_unknown_headers_are_ignored(self) -> None:
        assert resolve_header_fields(["foo", "bar"]) == {}


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestSanitizeValidRows:
    def test_full_row(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows(
            "data,cliente,usuario,nota,comentario,plano\n"
            "15/01/2024,c-1,Ana,9,Muito bom,pro\n"
        )
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)

        assert issues == []
        assert evaluation is not None
        assert evaluation.date == date(2024, 1, 15)
        assert evaluation.raw_date == "15/01/2024"
        assert evaluation.client_id == "c-1"
        assert evaluation.user_name == "Ana"
        assert evaluation.score == 9
        assert evaluation.plan == "PRO"
        assert evaluation.comment == "Muito bom"
        assert evaluation.category == "Promotor"

    def test_quoted_comment_with_commas(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows(
            "data,cliente,usuario,nota,comentario,plano\n"
            '2024-01-15,c-1,Ana,8,"fast, cheap, good",LITE\n'
        )
        evaluation, _ = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)
        assert evaluation is not None
        assert evaluation.comment == "fast, cheap, good"
        assert evaluation.plan == "LITE"

    def test_integral_decimal_score_is_accepted(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows("nota,plano\n7.0,FREE\n")
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)
        assert evaluation is not None
        assert evaluation.score == 7
        assert evaluation.category == "Neutro"

    def test_blank_optional_fields_become_none(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows(
            "data,cliente,usuario,nota,comentario,plano\n"
            "2024-01-15,,,4,,FREE\n"
        )
        evaluation, _ = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)
        assert evaluation is not None
        assert evaluation.client_id is None
        assert evaluation.user_name is None
        assert evaluation.comment is None
        assert evaluation.category == "Detrator"


# ---------------------------------------------------------------------------
# Unquoted commas in the comment
# ---------------------------------------------------------------------------


class TestCommentReconstruction:
    def test_overflow_fields_are_folded_into_comment(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows(
            "data,cliente,usuario,nota,comentario,plano\n"
            "2024-01-15,c-1,Ana,3,slow, buggy, expensive,FREE\n"
        )
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)

        assert issues == []
        assert evaluation is not None
        assert evaluation.comment == "slow, buggy, expensive"
        assert evaluation.plan == "FREE"
        assert evaluation.score == 3

    def test_comment_column_in_another_position(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows(
            "comentario,nota,plano\n"
            "good,cheap,10,PRO\n"
        )
        evaluation, _ = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)
        assert evaluation is not None
        assert evaluation.comment == "good,cheap"
        assert evaluation.score == 10
        assert evaluation.plan == "PRO"

    def test_without_comment_column_last_field_is_plan(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows(
            "data,cliente,usuario,nota,plano\n"
            "2024-01-15,c-1,Ana,9,nice,PRO\n"
        )
        evaluation, _ = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)
        assert evaluation is not None
        assert evaluation.plan == "PRO"
        assert evaluation.comment == "nice"


# ---------------------------------------------------------------------------
# Rejections and warnings
# ---------------------------------------------------------------------------


class TestSanitizeRejections:
    @pytest.mark.parametrize(
        "score",
        ["", "abc", "7.5", "11", "-1", "NaN", "Infinity", "1e999999999", "-1e999999999", "1e-999999999"],
    )
    def test_invalid_scores_drop_the_row(self, sanitizer: EvaluationRowSanitizer, score: str) -> None:
        headers, rows = _read_rows(f"nota,plano\n{score},FREE\n")
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)

        assert evaluation is None
        assert len(issues) == 1
        assert issues[0].kind == RowIssueKind.DROPPED
        assert issues[0].column == "score"
        assert issues[0].row_number == 2

    def test_huge_exponent_is_rejected_by_range(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows("nota,plano\n1e999999999,FREE\n")
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)

        assert evaluation is None
        assert issues[0].message == "Score must be between 0 and 10."
        assert issues[0].value == "1e999999999"

    @pytest.mark.parametrize("plan", ["", "ENTERPRISE", "basic"])
    def test_invalid_plans_drop_the_row(self, sanitizer: EvaluationRowSanitizer, plan: str) -> None:
        headers, rows = _read_rows(f"nota,plano\n9,{plan}\n")
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=5)

        assert evaluation is None
        assert [issue.column for issue in issues] == ["plan"]
        assert issues[0].row_number == 5

    def test_both_defects_are_reported(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows("nota,plano\nx,y\n")
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)
        assert evaluation is None
        assert {issue.column for issue in issues} == {"score", "plan"}

    def test_unparseable_date_is_kept_with_warning(self, sanitizer: EvaluationRowSanitizer) -> None:
        headers, rows = _read_rows("data,nota,plano\nsometime,9,FREE\n")
        evaluation, issues = sanitizer.sanitize(raw_row=rows[0], headers=headers, row_number=2)

        assert evaluation is not None
        assert evaluation.date == TODAY
        assert evaluation.date_inferred is True
        assert evaluation.raw_date == "sometime"
        assert len(issues) == 1
        assert issues[0].kind == RowIssueKind.DATE_FALLBACK
        assert issues[0].value == "sometime"


class TestEmptyRowDetection:
    def test_all_blank_values(self, sanitizer: EvaluationRowSanitizer) -> None:
        assert sanitizer.is_completely_empty_row({"nota": " ", "plano": ""}) is True

    def test_overflow_list_is_checked(self, sanitizer: EvaluationRowSanitizer) -> None:
        assert sanitizer.is_completely_empty_row({"nota": "", None: ["", "x"]}) is False

    def test_row_with_value(self, sanitizer: EvaluationRowSanitizer) -> None:
        assert sanitizer.is_completely_empty_row({"nota": "9", "plano": ""}) is False
