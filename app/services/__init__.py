"""
app/services package marker.
"""

from app.services.insight_service import Insight, InsightService
from app.services.nps_metrics_service import NPSMetricsService, NPSResult

__all__ = [
    "Insight",
    "InsightService",
    "NPSMetricsService",
    "NPSResult",
]
