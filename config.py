"""
Centralised settings loader.

Every knob of the meal-plan generator lives here so the orchestrator,
the Gemini backend and the CLI worker read the same values.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime ─────────────────────────────────────────────────────
    env_name: str = "local"
    log_level: str = "INFO"

    # ─── Gemini ──────────────────────────────────────────────────────
    gemini_api_key: str | None = None
    gemini_model: str = "models/gemini-2.0-flash"
    generation_temperature: float = Field(0.2, ge=0.0, le=1.0)

    # ─── per-call timeouts (seconds) ─────────────────────────────────
    day_request_timeout_s: float = Field(25.0, gt=0)
    fast_request_timeout_s: float = Field(18.0, gt=0)
    fallback_timeout_s: float = Field(45.0, gt=0)

    # ─── plan policy ─────────────────────────────────────────────────
    max_parallel_days: int = Field(3, ge=1)
    min_daily_kcal: int = Field(1800, ge=0)
    snack_repeat_allowance: int = Field(2, ge=1)
    meal_repeat_allowance: int = Field(1, ge=1)

    # allow other teammates’ env-vars without crashing
    model_config = SettingsConfigDict(
        extra="ignore", env_file=".env", env_file_encoding="utf-8"
    )


Settings = _Settings


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
