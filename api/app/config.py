# api/app/config.py
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application configuration.

    Loads environment variables from `.env` and provides
    typed access across the API, the job engine, and scripts.
    """

    # ─────────────────────────────────────────────
    # Pydantic Settings Config
    # ─────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─────────────────────────────────────────────
    # Database
    # ─────────────────────────────────────────────
    database_url: str
    database_echo: bool = False

    # ─────────────────────────────────────────────
    # API
    # ─────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    # ─────────────────────────────────────────────
    # World rules
    # ─────────────────────────────────────────────
    gather_radius: float = 5.0
    home_radius: float = 50.0
    min_gather_seconds: int = 5

    # ─────────────────────────────────────────────
    # Collection expeditions
    # ─────────────────────────────────────────────
    collection_min_minutes: int = 5
    collection_max_minutes: int = 480
    collection_items_per_hour: int = 10

    # ─────────────────────────────────────────────
    # Cancellation
    # ─────────────────────────────────────────────
    # Percent of consumed building materials returned on cancel
    building_cancel_refund_percent: int = 0


# ─────────────────────────────────────────────
# Cached Settings Instance
# ─────────────────────────────────────────────
@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance so config
    is only loaded once per process.
    """
    return Settings()
