"""
app/scheduler/jobs.py

APScheduler-based periodic maintenance for the NPS store.

Schedule
--------
  periodic_backup: every ``NPS_BACKUP_INTERVAL_HOURS`` (default 24 h)

Each run snapshots the store to ``NPS_BACKUP_DIR`` and prunes snapshots
beyond ``NPS_BACKUP_RETENTION`` (default 5).

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.api.dependencies import get_history_repository
from app.config import get_backup_settings
from app.repositories.history_repository import HistoryRepository

logger = logging.getLogger(__name__)


def run_periodic_backup(repository: HistoryRepository | None = None) -> None:
    """
    Snapshot the store. Failures are logged and retried on the next run.
    """
    logger.info("Scheduler: periodic_backup starting")
    repo = repository or get_history_repository()
    try:
        snapshot = repo.backup()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: periodic_backup failed: %s", exc)
        return

    logger.info(
        "Scheduler: periodic_backup complete path=%s removed=%d",
        snapshot.path,
        len(snapshot.removed),
    )


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    When backups are disabled the scheduler carries no jobs.
    """
    settings = get_backup_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if not settings.enabled:
        logger.info("Scheduler: periodic backups disabled")
        return scheduler

    scheduler.add_job(
        run_periodic_backup,
        trigger="interval",
        hours=settings.interval_hours,
        id="periodic_backup",
        name="Periodic NPS store backup",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    return scheduler
