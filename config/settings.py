"""
Application settings loaded from environment variables.

All configurable values are centralized here — no hard-coded values elsewhere.
Uses pydantic-settings for type-safe .env loading.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration — loaded from .env / environment variables."""

    # ── General ──────────────────────────────────────────────────────────
    APP_NAME: str = "Proctor Telemetry Viewer"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    DEMO_MODE: bool = True  # serve synthetic telemetry when no store exists

    # ── API Server ───────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ── Security ─────────────────────────────────────────────────────────
    JWT_SECRET: str = "change-me-in-production-please"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60

    # ── Instructor accounts (demo only) ──────────────────────────────────
    INSTRUCTOR_USERNAME: str = "instructor"
    INSTRUCTOR_PASSWORD: str = "instructor"
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin"

    # ── Telemetry source ─────────────────────────────────────────────────
    TELEMETRY_STORE_PATH: str = "data/telemetry.json"
    TIMELINE_FETCH_LIMIT: int = Field(
        default=1000,
        ge=1,
        le=10_000,
        description="Maximum number of signals fetched per student timeline.",
    )
    FETCH_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0.0,
        description="Upper bound for each upstream fetch in a refresh.",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
