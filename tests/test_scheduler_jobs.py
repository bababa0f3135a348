"""
tests/test_scheduler_jobs.py

Tests for the APScheduler wiring: job registration, the disabled switch,
and the periodic backup job body.

The scheduler is never started; jobs are inspected while pending.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from app.config import NPSBackupSettings
from app.repositories.backup_storage import BackupError
from app.repositories.history_repository import HistoryRepository
from app.scheduler import jobs


# ---------------------------------------------------------------------------
# build_scheduler
# ---------------------------------------------------------------------------


class TestBuildScheduler:
    def test_registers_daily_backup(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(jobs, "get_backup_settings", lambda: NPSBackupSettings())

        scheduler = jobs.build_scheduler()

        registered = scheduler.get_jobs()
        assert [job.id for job in registered] == ["periodic_backup"]
        assert registered[0].trigger.interval == timedelta(hours=24)
        assert registered[0].func is jobs.run_periodic_backup

    def test_interval_follows_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(jobs, "get_backup_settings", lambda: NPSBackupSettings(interval_hours=6))

        job = jobs.build_scheduler().get_job("periodic_backup")

        assert job is not None
        assert job.trigger.interval == timedelta(hours=6)

    def test_disabled_backups_register_no_jobs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(jobs, "get_backup_settings", lambda: NPSBackupSettings(enabled=False))

        assert jobs.build_scheduler().get_jobs() == []


# ---------------------------------------------------------------------------
# run_periodic_backup
# ---------------------------------------------------------------------------


class TestRunPeriodicBackup:
    def test_writes_snapshot(self, repository: HistoryRepository, backup_storage) -> None:
        jobs.run_periodic_backup(repository)

        assert len(backup_storage.list_backups()) == 1

    def test_backup_failure_is_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        class FailingRepository:
            def backup(self):
                raise BackupError("disk full")

        with caplog.at_level(logging.WARNING, logger=jobs.__name__):
            jobs.run_periodic_backup(FailingRepository())  # type: ignore[arg-type]

        assert "periodic_backup failed" in caplog.text
        assert "disk full" in caplog.text
