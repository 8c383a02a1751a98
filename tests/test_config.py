"""
Tests for environment-driven configuration.
"""

import pytest

from hyplanner_admin.config import DEFAULT_CORS_ORIGINS, AppConfig, load_app_config

ENV_VARS = (
    "APP_ENV",
    "NODE_ENV",
    "LOG_LEVEL",
    "API_PREFIX",
    "PORT",
    "DATABASE_URL",
    "DATABASE_ECHO",
    "JWT_SECRET",
    "JWT_EXPIRES_IN",
    "ADMIN_USERNAME",
    "ADMIN_PASSWORD",
    "CORS_ORIGINS",
    "CORS_ALLOW_CREDENTIALS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadAppConfig:
    def test_defaults(self):
        cfg = load_app_config(dotenv=False)

        assert cfg == AppConfig()
        assert cfg.api_prefix == "/api"
        assert cfg.port == 5000
        assert cfg.database.url is None
        assert cfg.cors.allow_origins == DEFAULT_CORS_ORIGINS

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///admin.db")
        monkeypatch.setenv("DATABASE_ECHO", "yes")
        monkeypatch.setenv("JWT_EXPIRES_IN", "2h")
        monkeypatch.setenv("ADMIN_USERNAME", "boss")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")

        cfg = load_app_config(dotenv=False)

        assert cfg.is_development
        assert cfg.log_level == "DEBUG"
        assert cfg.port == 8080
        assert cfg.database.url == "sqlite:///admin.db"
        assert cfg.database.echo is True
        assert cfg.auth.jwt_expires_in == "2h"
        assert cfg.auth.admin_username == "boss"
        assert cfg.cors.allow_origins == ["https://a.example", "https://b.example"]

    def test_node_env_is_honoured(self, monkeypatch):
        monkeypatch.setenv("NODE_ENV", "test")
        assert load_app_config(dotenv=False).environment == "test"

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "staging")
        monkeypatch.setenv("PORT", "eighty")

        cfg = load_app_config(dotenv=False)
        assert cfg.environment == "production"
        assert cfg.port == 5000
