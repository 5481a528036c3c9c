"""
Centralised settings loader.

Every field maps onto an upper-case environment variable of the same name
(``DATABASE_URL``, ``TWILIO_SID`` …); a local ``.env`` file is honoured.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ───────────────────────────────────────────────
    env_name: str = "local"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./vitaltrack.db"

    # ─── sessions ───────────────────────────────────────────────────
    jwt_secret: str = "changeme"
    jwt_ttl_minutes: int = Field(7 * 24 * 60, gt=0)

    # ─── Gemini (food photo analysis) ───────────────────────────────
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_timeout_seconds: float = 30.0

    # ─── Twilio (medication reminders) ──────────────────────────────
    twilio_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None
    reminder_fallback_phone: str | None = None
    sms_country_code: str = "91"
    sms_timeout_seconds: float = 20.0
    sms_max_concurrency: int = 10
    reminder_tick_deadline_seconds: float = 45.0
    reminder_catch_up_minutes: int = 5
    reminder_loop_enabled: bool = True
    # uvicorn --workers default; one reminder loop per worker
    web_concurrency: int = 1

    # ─── Google Fit (dashboard) ─────────────────────────────────────
    google_client_id: str | None = None
    google_client_secret: str | None = None
    public_base_url: str = "http://localhost:8000"

    # allow other teammates’ env-vars without crashing
    model_config = SettingsConfigDict(
        extra="ignore", env_file=".env", env_file_encoding="utf-8"
    )


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
