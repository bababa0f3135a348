"""
app/validators package marker.
"""

from app.validators.csv_validator import EvaluationRowSanitizer
from app.validators.date_normalizer import DateNormalizer, normalize_date

__all__ = [
    "DateNormalizer",
    "EvaluationRowSanitizer",
    "normalize_date",
]
