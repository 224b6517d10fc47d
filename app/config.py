"""
app/config.py – application settings loaded from environment variables.
"""
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Gemini ────────────────────────────────────────────────────────────────
    gemini_api_key: str = ""
    gemini_planning_model: str = "gemini-2.5-pro"
    gemini_generation_model: str = "gemini-2.5-flash"
    gemini_max_output_tokens: int = 2048
    gemini_temperature: float = 0.7

    # ── Retry ─────────────────────────────────────────────────────────────────
    gemini_retry_attempts: int = 4
    gemini_retry_min_wait: float = 1.0
    gemini_retry_max_wait: float = 30.0

    # ── Semrush ───────────────────────────────────────────────────────────────
    semrush_api_key: str = ""
    semrush_base_url: str = "https://api.semrush.com/"
    semrush_database: str = "us"
    semrush_display_limit: int = 50
    semrush_timeout_seconds: float = 30.0
    semrush_retry_attempts: int = 3
    semrush_retry_min_wait: float = 1.0
    semrush_retry_max_wait: float = 10.0
    keyword_cache_ttl_seconds: int = 3600

    # ── Storage ───────────────────────────────────────────────────────────────
    storage_backend: str = "local"  # "local" | "supabase"
    local_storage_path: str = ""  # empty = in-memory only
    supabase_url: str = ""
    supabase_key: str = ""

    # ── Rate limiting ─────────────────────────────────────────────────────────
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 30

    # ── App ───────────────────────────────────────────────────────────────────
    app_name: str = "Ad Copy Agent"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"


settings = Settings()
