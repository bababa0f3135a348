"""
tests/test_db_config.py

Tests for NPS store URL resolution and `.env` parsing.

``load_env_files`` is patched out in the resolution tests so a developer's
local `.env` cannot leak into the results.
"""

from __future__ import annotations

import os

import pytest

from db import config


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_env_files", lambda: None)
    return monkeypatch


# ---------------------------------------------------------------------------
# normalize_database_url
# ---------------------------------------------------------------------------


class TestNormalizeDatabaseUrl:
    @pytest.mark.parametrize(
        "url",
        ["postgres://u:p@db/nps", "postgresql://u:p@db/nps"],
    )
    def test_postgres_urls_use_psycopg(self, url: str) -> None:
        assert config.normalize_database_url(url) == "postgresql+psycopg://u:p@db/nps"

    @pytest.mark.parametrize(
        "url",
        ["sqlite:///data/nps-database.db", "postgresql+psycopg://u:p@db/nps"],
    )
    def test_other_urls_pass_through(self, url: str) -> None:
        assert config.normalize_database_url(url) == url


# ---------------------------------------------------------------------------
# resolve_database_url
# ---------------------------------------------------------------------------


class TestResolveDatabaseUrl:
    def test_database_url_wins(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("DATABASE_URL", "postgres://u:p@direct/nps")
        clean_env.setenv("LOCAL_DATABASE_URL", "sqlite:///local.db")

        assert config.resolve_database_url() == "postgresql+psycopg://u:p@direct/nps"

    def test_cloud_url_used_in_cloud_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("ENVIRONMENT", "Production")
        clean_env.setenv("CLOUD_DATABASE_URL", "postgresql://u:p@cloud/nps")
        clean_env.setenv("LOCAL_DATABASE_URL", "sqlite:///local.db")

        assert config.resolve_database_url() == "postgresql+psycopg://u:p@cloud/nps"

    def test_cloud_url_ignored_locally(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("CLOUD_DATABASE_URL", "postgresql://u:p@cloud/nps")
        clean_env.setenv("LOCAL_DATABASE_URL", "sqlite:///local.db")

        assert config.resolve_database_url() == "sqlite:///local.db"

    def test_blank_values_are_skipped(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("DATABASE_URL", "   ")
        clean_env.setenv("LOCAL_DATABASE_URL", "sqlite:///local.db")

        assert config.resolve_database_url() == "sqlite:///local.db"

    def test_missing_url_raises(self, clean_env: pytest.MonkeyPatch) -> None:
        with pytest.raises(RuntimeError, match="No NPS store configured"):
            config.resolve_database_url()


# ---------------------------------------------------------------------------
# load_env_files
# ---------------------------------------------------------------------------


class TestLoadEnvFiles:
    def test_reads_pairs_without_overriding_process_env(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / ".env").write_text(
            "# NPS store\nNPS_TEST_URL='sqlite:///from-file.db'\nNPS_TEST_KEEP=file\nnot a pair\n",
            encoding="utf-8",
        )
        monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path)
        monkeypatch.delenv("NPS_TEST_URL", raising=False)
        monkeypatch.setenv("NPS_TEST_KEEP", "process")

        config.load_env_files()

        assert os.environ["NPS_TEST_URL"] == "sqlite:///from-file.db"
        assert os.environ["NPS_TEST_KEEP"] == "process"
        monkeypatch.delenv("NPS_TEST_URL")
