"""
Runtime configuration for the admin backend.

Every section is a small pydantic model with defaults suitable for local
development; ``load_app_config`` overlays values from the process environment
(optionally seeded from a ``.env`` file).
"""

from __future__ import annotations

import os
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "https://hy-planner-admin-fe.vercel.app",
    "https://hy-planner-admin.vercel.app",
]


class DatabaseConfig(BaseModel):
    url: Optional[str] = None
    echo: bool = False


class AuthConfig(BaseModel):
    jwt_secret: str = "dev-change-me"
    jwt_expires_in: str = "1d"
    """Token lifetime, either plain seconds or a number with an s/m/h/d suffix."""

    admin_username: str = "admin"
    admin_password: str = "admin"


class CorsConfig(BaseModel):
    allow_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    allow_credentials: bool = True


class AppConfig(BaseModel):
    environment: Literal["development", "production", "test"] = "production"
    log_level: str = "INFO"
    api_prefix: str = "/api"
    port: int = 5000
    database: DatabaseConfig = DatabaseConfig()
    auth: AuthConfig = AuthConfig()
    cors: CorsConfig = CorsConfig()

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_environment(default: str) -> str:
    raw = (os.getenv("APP_ENV") or os.getenv("NODE_ENV") or default).lower()
    if raw not in {"development", "production", "test"}:
        return default
    return raw


def load_app_config(dotenv: bool = True) -> AppConfig:
    if dotenv:
        load_dotenv()

    cfg = AppConfig()
    cfg.environment = _env_environment(cfg.environment)
    cfg.log_level = os.getenv("LOG_LEVEL", cfg.log_level).upper()
    cfg.api_prefix = os.getenv("API_PREFIX", cfg.api_prefix)
    cfg.port = _env_int("PORT", cfg.port)

    cfg.database = DatabaseConfig(
        url=os.getenv("DATABASE_URL", cfg.database.url),
        echo=_env_bool("DATABASE_ECHO", cfg.database.echo),
    )
    cfg.auth = AuthConfig(
        jwt_secret=os.getenv("JWT_SECRET", cfg.auth.jwt_secret),
        jwt_expires_in=os.getenv("JWT_EXPIRES_IN", cfg.auth.jwt_expires_in),
        admin_username=os.getenv("ADMIN_USERNAME", cfg.auth.admin_username),
        admin_password=os.getenv("ADMIN_PASSWORD", cfg.auth.admin_password),
    )
    cfg.cors = CorsConfig(
        allow_origins=_env_list("CORS_ORIGINS", cfg.cors.allow_origins),
        allow_credentials=_env_bool("CORS_ALLOW_CREDENTIALS", cfg.cors.allow_credentials),
    )
    return cfg
