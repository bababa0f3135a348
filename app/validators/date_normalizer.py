"""
app/validators/date_normalizer.py

Free-form evaluation date parsing.

Accepted shapes (``/`` and ``-`` are interchangeable separators), tried in order:

    YYYY-MM-DD   prefix match, trailing time or text ignored
    DD-MM-YYYY
    DD-MM-YY     YY > 50 -> 19YY, otherwise 20YY

The first pattern that yields a real calendar date wins. Anything else
falls back to today's date and is flagged as inferred so callers can
surface a warning for the row.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable

_SEPARATOR_RE = re.compile(r"[/\-]")

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DAY_FIRST_RE = re.compile(r"^(\d{2})-(\d{2})-(\d{4})")
_DAY_FIRST_SHORT_RE = re.compile(r"^(\d{2})-(\d{2})-(\d{2})")

_PIVOT_YEAR = 50

Clock = Callable[[], date]


def utc_today() -> date:
    return datetime.now(tz=timezone.utc).date()


@dataclass(frozen=True)
class NormalizedDate:
    value: date
    inferred: bool = False

    def isoformat(self) -> str:
        return self.value.isoformat()


def _expand_short_year(raw_year: str) -> int:
    year = int(raw_year)
    return 1900 + year if year > _PIVOT_YEAR else 2000 + year


def _build_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


class DateNormalizer:
    """
    Converts date text into a calendar date, defaulting to today.

    ``clock`` returns "today"; inject a fixed clock in tests.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_today

    def normalize(self, value: str | None) -> NormalizedDate:
        parsed = self.parse(value)
        if parsed is None:
            return NormalizedDate(value=self._clock(), inferred=True)
        return NormalizedDate(value=parsed)

    def parse(self, value: str | None) -> date | None:
        """
        Return the parsed date, or None when no pattern yields a valid date.
        """

        if value is None:
            return None
        text = _SEPARATOR_RE.sub("-", value.strip())
        if not text:
            return None

        match = _ISO_RE.match(text)
        if match:
            year, month, day = match.groups()
            parsed = _build_date(int(year), int(month), int(day))
            if parsed is not None:
                return parsed

        match = _DAY_FIRST_RE.match(text)
        if match:
            day, month, year = match.groups()
            parsed = _build_date(int(year), int(month), int(day))
            if parsed is not None:
                return parsed

        match = _DAY_FIRST_SHORT_RE.match(text)
        if match:
            day, month, short_year = match.groups()
            parsed = _build_date(_expand_short_year(short_year), int(month), int(day))
            if parsed is not None:
                return parsed

        return None


def normalize_date(value: str | None, *, clock: Clock | None = None) -> str:
    """
    Return ``value`` as an ISO ``YYYY-MM-DD`` string, or today's date if unparseable.
    """

    return DateNormalizer(clock).normalize(value).isoformat()
