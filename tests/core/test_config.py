"""Unit tests for process_optimizer.config."""

from __future__ import annotations

from process_optimizer.config import Settings, _env_bool


class TestEnvBool:
    def test_truthy(self, monkeypatch):
        for value in ("1", "true", "TRUE", "yes"):
            monkeypatch.setenv("SOME_FLAG", value)
            assert _env_bool("SOME_FLAG") is True

    def test_falsy(self, monkeypatch):
        monkeypatch.setenv("SOME_FLAG", "off")
        assert _env_bool("SOME_FLAG") is False
        monkeypatch.delenv("SOME_FLAG")
        assert _env_bool("SOME_FLAG") is False


class TestDatabaseUrl:
    def test_explicit_url_wins(self, monkeypatch):
        monkeypatch.setattr(Settings, "DATABASE_URL", "sqlite+aiosqlite:///./local.db")
        assert Settings().database_url == "sqlite+aiosqlite:///./local.db"

    def test_built_from_postgres_parts(self, monkeypatch):
        monkeypatch.setattr(Settings, "DATABASE_URL", "")
        monkeypatch.setattr(Settings, "POSTGRES_USER", "u")
        monkeypatch.setattr(Settings, "POSTGRES_PASSWORD", "p")
        monkeypatch.setattr(Settings, "POSTGRES_HOST", "db")
        monkeypatch.setattr(Settings, "POSTGRES_PORT", "5433")
        monkeypatch.setattr(Settings, "POSTGRES_DB", "diagrams")
        assert Settings().database_url == "postgresql+asyncpg://u:p@db:5433/diagrams"


class TestDefaults:
    def test_optimizer_defaults(self):
        assert Settings.API_V1_PREFIX == "/api/v1"
        assert isinstance(Settings.OPTIMIZER_TEMPERATURE, float)
        assert Settings.VERSION_BUMP_MAX_ATTEMPTS >= 1
