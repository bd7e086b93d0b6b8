"""
Centralised settings loader.

Reads environment variables (and an optional `.env`) through
pydantic-settings. Unknown keys are ignored so teammates' env-vars
don't crash the process.
"""

from __future__ import annotations
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ───────────────────────────────────────────────
    env_name: str = "local"
    database_url: str | None = None

    # ─── LLM (Gemini) ───────────────────────────────────────────────
    gemini_api_key: str | None = None
    llm_chat_model: str = "models/gemini-2.0-flash"
    llm_max_retries: int = Field(0, ge=0, le=5)

    # ─── nutrition lookup ───────────────────────────────────────────
    edamam_app_id: str | None = None
    edamam_app_key: str | None = None

    # ─── pipeline tuning ────────────────────────────────────────────
    cultural_cache_ttl_hours: float = 24.0
    ranking_batch_size: int = Field(2, ge=1)
    default_cultures: List[str] = ["Italian", "Chinese", "Indian"]

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
