"""
app/validators/csv_validator.py

Row-level sanitizing and type parsing for NPS CSV ingestion.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.evaluation import (
    MAX_SCORE,
    MIN_SCORE,
    PLAN_ORDER,
    Evaluation,
    RowIssue,
    RowIssueKind,
)
from app.validators.date_normalizer import DateNormalizer

# Canonical field -> accepted header names (lower-cased, trimmed).
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("data", "date"),
    "client_id": ("cliente", "client", "client_id"),
    "user_name": ("usuario", "usuário", "user", "user_name"),
    "score": ("nota", "score"),
    "comment": ("comentario", "comentário", "comment"),
    "plan": ("plano", "plan"),
}

# Position of the comment column in the reference layout
# data,cliente,usuario,nota,comentario,plano.
_DEFAULT_COMMENT_INDEX = 4
_COMMENT_JOINER = ","


def resolve_header_fields(headers: Sequence[str]) -> dict[str, int]:
    """
    Map canonical field names to their column index; the first matching header wins.
    """

    lookup = {
        alias: canonical
        for canonical, aliases in HEADER_ALIASES.items()
        for alias in aliases
    }
    resolved: dict[str, int] = {}
    for index, header in enumerate(headers):
        canonical = lookup.get((header or "").strip().lower())
        if canonical is not None and canonical not in resolved:
            resolved[canonical] = index
    return resolved


class EvaluationRowSanitizer:
    """
    Cleans one raw CSV record into an Evaluation, or rejects it.

    Rejections and date fallbacks are returned as RowIssue entries; this
    class never raises for bad data.
    """

    def __init__(self, date_normalizer: DateNormalizer | None = None) -> None:
        self._date_normalizer = date_normalizer or DateNormalizer()

    def is_completely_empty_row(self, row: Mapping[Any, Any]) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        return all(self._is_blank(value) for value in row.values())

    def sanitize(
        self,
        *,
        raw_row: Mapping[Any, Any],
        headers: Sequence[str],
        row_number: int,
    ) -> tuple[Evaluation | None, list[RowIssue]]:
        """
        Validate one record as produced by ``csv.DictReader``.

        Fields beyond the header arrive under the ``None`` key; when present
        the comment is rebuilt from the overflowing fields.
        """

        fields = resolve_header_fields(headers)
        values = self._positional_values(raw_row, headers)
        cleaned = self._assign_fields(fields, values, len(headers))

        issues: list[RowIssue] = []
        score = self._parse_score(cleaned.get("score"), row_number, issues)
        plan = self._parse_plan(cleaned.get("plan"), row_number, issues)
        if score is None or plan is None:
            return None, issues

        raw_date = cleaned.get("date") or ""
        normalized = self._date_normalizer.normalize(raw_date)
        if normalized.inferred:
            issues.append(
                RowIssue(
                    row_number=row_number,
                    kind=RowIssueKind.DATE_FALLBACK,
                    column="date",
                    message=f"Unrecognized date; using {normalized.isoformat()}.",
                    value=raw_date,
                )
            )

        return (
            Evaluation(
                date=normalized.value,
                raw_date=raw_date,
                score=score,
                plan=plan,
                client_id=cleaned.get("client_id") or None,
                user_name=cleaned.get("user_name") or None,
                comment=cleaned.get("comment") or None,
                date_inferred=normalized.inferred,
            ),
            issues,
        )

    def _positional_values(
        self,
        raw_row: Mapping[Any, Any],
        headers: Sequence[str],
    ) -> list[str]:
        values = [self._as_text(raw_row.get(header)) for header in headers]
        overflow = raw_row.get(None)
        if isinstance(overflow, (list, tuple)):
            values.extend(self._as_text(item) for item in overflow)
        return values

    def _assign_fields(
        self,
        fields: Mapping[str, int],
        values: Sequence[str],
        header_count: int,
    ) -> dict[str, str]:
        extra = len(values) - header_count
        cleaned: dict[str, str] = {}

        if extra <= 0:
            for name, index in fields.items():
                cleaned[name] = values[index].strip() if index < len(values) else ""
            return cleaned

        # The comment held unescaped delimiters: it absorbs the extra fields
        # and every column after it shifts right by ``extra``.
        comment_index = fields.get("comment")
        if comment_index is None:
            for name, index in fields.items():
                cleaned[name] = values[index].strip()
            cleaned["comment"] = _COMMENT_JOINER.join(
                values[_DEFAULT_COMMENT_INDEX:-1]
            ).strip()
            cleaned["plan"] = values[-1].strip()
            return cleaned

        for name, index in fields.items():
            if index < comment_index:
                cleaned[name] = values[index].strip()
            elif index > comment_index:
                cleaned[name] = values[index + extra].strip()
        cleaned["comment"] = _COMMENT_JOINER.join(
            values[comment_index : comment_index + extra + 1]
        ).strip()
        return cleaned

    def _parse_score(
        self,
        value: str | None,
        row_number: int,
        issues: list[RowIssue],
    ) -> int | None:
        if self._is_blank(value):
            issues.append(self._dropped(row_number, "score", "Required value is missing.", value))
            return None

        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            issues.append(self._dropped(row_number, "score", "Score is not a number.", value))
            return None

        if not number.is_finite():
            issues.append(self._dropped(row_number, "score", "Score is not a number.", value))
            return None

        # Range before int(): a huge exponent such as 1e999999999 stays cheap as a Decimal.
        if number < MIN_SCORE or number > MAX_SCORE:
            issues.append(
                self._dropped(
                    row_number,
                    "score",
                    f"Score must be between {MIN_SCORE} and {MAX_SCORE}.",
                    value,
                )
            )
            return None

        if number != number.to_integral_value():
            issues.append(self._dropped(row_number, "score", "Score must be a whole number.", value))
            return None
        return int(number)

    def _parse_plan(
        self,
        value: str | None,
        row_number: int,
        issues: list[RowIssue],
    ) -> str | None:
        if self._is_blank(value):
            issues.append(self._dropped(row_number, "plan", "Required value is missing.", value))
            return None

        plan = str(value).strip().upper()
        if plan not in PLAN_ORDER:
            allowed = ", ".join(PLAN_ORDER)
            issues.append(
                self._dropped(row_number, "plan", f"Unsupported plan. Allowed values: {allowed}.", value)
            )
            return None
        return plan

    @staticmethod
    def _dropped(row_number: int, column: str, message: str, value: Any) -> RowIssue:
        return RowIssue(
            row_number=row_number,
            kind=RowIssueKind.DROPPED,
            column=column,
            message=message,
            value=None if value is None else str(value),
        )

    @staticmethod
    def _as_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return _COMMENT_JOINER.join(str(item) for item in value)
        return str(value)

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, (list, tuple)):
            return all(str(item).strip() == "" for item in value)
        return str(value).strip() == ""
