"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "TimeEvidence"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"

    # ── Database (async SQLite by default, PostgreSQL via asyncpg) ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./timeevidence.db"

    # ── Local time used for schedule checks ─────────────────────────
    TIMEZONE: str = "UTC"

    # ── Terminal / API key authentication ───────────────────────────
    API_KEY: str | None = None
    REQUIRE_API_KEY: bool = True

    # ── Card registry ────────────────────────────────────────────────
    SYSTEM_ACTOR: str = "system"

    # ── Event ledger read limits ─────────────────────────────────────
    LEDGER_RECENT_LIMIT: int = 50
    LEDGER_ACTION_LIMIT: int = 100
    LEDGER_TERMINAL_LIMIT: int = 200
    LEDGER_SESSION_SCAN_LIMIT: int = 500

    # ── Notifications ────────────────────────────────────────────────
    NOTIFICATIONS_ENABLED: bool = True
    SMS_PROVIDER: str = ""  # "" | smsapi | twilio
    SMSAPI_ACCESS_TOKEN: str | None = None
    SMSAPI_FROM: str | None = None
    SMSAPI_BASE_URL: str = "https://api.smsapi.pl/"
    SMS_TIMEOUT_SECONDS: float = 10.0

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:8000",
        "http://127.0.0.1",
        "http://127.0.0.1:8000",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    @field_validator("SMS_PROVIDER")
    @classmethod
    def _normalise_provider(cls, v: str) -> str:
        return v.strip().lower()

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()

if settings.REQUIRE_API_KEY and not settings.API_KEY:
    import logging

    logging.getLogger("timeevidence.core.config").warning(
        "API key authentication is required but API_KEY is not set. "
        "Every guarded request will be rejected until it is configured."
    )
