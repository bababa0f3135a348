"""
app/api/routers package marker.
"""

from app.api.routers.history_router import router as history_router
from app.api.routers.stats_router import router as stats_router
from app.api.routers.upload_router import router as upload_router

__all__ = [
    "history_router",
    "stats_router",
    "upload_router",
]
