"""
tests/conftest.py

Shared fixtures: an in-memory SQLite store, a repository with a fixed
clock and a temporary backup directory, and a TestClient wired to it.

Environment defaults are set before any application module is imported
so that ``app.main`` passes its startup validation.
"""

from __future__ import annotations

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NPS_BACKUP_DIR", tempfile.mkdtemp(prefix="nps-backups-"))
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401: registers all ORM models on Base.metadata
from app.api.dependencies import get_history_repository
from app.repositories.backup_storage import LocalBackupStorage
from app.repositories.history_repository import HistoryRepository
from db.base import Base
from db.session import build_session_factory

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def backup_storage(tmp_path) -> LocalBackupStorage:
    return LocalBackupStorage(tmp_path / "backups", retention=5)


@pytest.fixture()
def repository(session_factory, backup_storage) -> HistoryRepository:
    return HistoryRepository(
        session_factory,
        backup_storage=backup_storage,
        clock=lambda: FIXED_NOW,
    )


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture()
def client(repository: HistoryRepository) -> Iterator[TestClient]:
    """TestClient without lifespan: no startup DB check and no scheduler."""
    from app.main import app

    app.dependency_overrides[get_history_repository] = lambda: repository
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW
