from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.dependencies import get_history_repository
from app.repositories.history_repository import HistoryRepository
from app.schemas.nps import ErrorResponse, HealthResponse


def _validate_env() -> None:
    """
    Validate required configuration at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every problem so the operator can fix
    them all in one restart cycle.
    """

    from app.config import get_backup_settings
    from db.config import load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    try:
        database_url = resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))
    else:
        if not database_url.startswith(("postgresql", "sqlite")):
            errors.append(
                "Database URL must use PostgreSQL or SQLite "
                f"(got scheme '{database_url.split(':', 1)[0]}')."
            )

    # --- Backup directory -----------------------------------------------
    backup_settings = get_backup_settings()
    if backup_settings.enabled:
        try:
            backup_settings.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            errors.append(
                f"NPS_BACKUP_DIR '{backup_settings.backup_dir}' is not writable: {exc}."
            )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid configuration:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every NPS table must exist; startup aborts otherwise so that the
    operator runs migrations before serving traffic. Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401: registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the scheduler on boot; shut it down on exit."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def _register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
            for error in exc.errors()
        )
        return _error_response(400, f"Invalid request: {details}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="NPS Insights API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.started_at = time.monotonic()
    _register_exception_handlers(application)

    from app.api.routers import history_router, stats_router, upload_router

    application.include_router(upload_router)
    application.include_router(history_router)
    application.include_router(stats_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck(
        repository: HistoryRepository = Depends(get_history_repository),
    ) -> HealthResponse:
        from app.config import get_app_settings

        database: dict[str, object] | None
        try:
            stats = repository.stats()
        except Exception as exc:  # noqa: BLE001
            logging.getLogger(__name__).warning("Health check could not read the store: %s", exc)
            database = None
        else:
            database = {
                "total_evaluations": stats.total_evaluations,
                "unique_dates": stats.unique_dates,
                "unique_clients": stats.unique_clients,
            }

        return HealthResponse(
            timestamp=datetime.now(tz=timezone.utc),
            uptime=round(time.monotonic() - application.state.started_at),
            environment=get_app_settings().environment,
            database=database,
        )

    return application


app = create_app()
