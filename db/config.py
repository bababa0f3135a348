"""
db/config.py

Where the NPS store lives: `.env` loading and connection URL resolution.

The store is a local SQLite file during development and PostgreSQL when
deployed. Both the API process and Alembic resolve the URL through
``resolve_database_url`` so they always point at the same store.
"""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = (".env", ".env.local")
CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})

_PSYCOPG_PREFIXES = (
    ("postgres://", "postgresql+psycopg://"),
    ("postgresql://", "postgresql+psycopg://"),
)


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files() -> None:
    """
    Seed ``os.environ`` from the project's `.env` and `.env.local`.

    Variables already set in the process win, so a deployment can override
    any NPS store or backup setting without editing the files.
    """

    for filename in ENV_FILES:
        env_path = PROJECT_ROOT / filename
        if not env_path.exists():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            pair = _parse_env_line(raw_line)
            if pair is not None and pair[0] not in os.environ:
                os.environ[pair[0]] = pair[1]


def normalize_database_url(url: str) -> str:
    """
    Point bare postgres URLs at the psycopg driver.
    SQLite and already-qualified URLs pass through unchanged.
    """

    for prefix, replacement in _PSYCOPG_PREFIXES:
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def _env_url(name: str) -> str:
    return os.getenv(name, "").strip()


def resolve_database_url() -> str:
    """
    Resolve the NPS store URL.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is prod, production, staging or cloud
    3) LOCAL_DATABASE_URL (typically ``sqlite:///data/nps-database.db``)
    """

    load_env_files()

    candidates = [_env_url("DATABASE_URL")]
    if os.getenv("ENVIRONMENT", "local").strip().lower() in CLOUD_ENVIRONMENTS:
        candidates.append(_env_url("CLOUD_DATABASE_URL"))
    candidates.append(_env_url("LOCAL_DATABASE_URL"))

    for url in candidates:
        if url:
            return normalize_database_url(url)

    raise RuntimeError(
        "No NPS store configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
