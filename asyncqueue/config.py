"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Queue defaults sourced from .env / environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────────────
    asyncqueue_env: str = "development"
    asyncqueue_log_level: str = "INFO"

    # ── Queue defaults ───────────────────────────────────────────────
    asyncqueue_default_concurrency: int = 1
    asyncqueue_buffer_ratio: float = 0.25

    # ── CLI demo ─────────────────────────────────────────────────────
    asyncqueue_demo_delay_ms: int = 20

    @field_validator("asyncqueue_default_concurrency")
    @classmethod
    def _positive_concurrency(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default concurrency must be greater than zero")
        return value

    @field_validator("asyncqueue_buffer_ratio")
    @classmethod
    def _ratio_in_range(cls, value: float) -> float:
        if not 0 <= value <= 1:
            raise ValueError("buffer ratio must be between 0 and 1")
        return value

    @field_validator("asyncqueue_demo_delay_ms")
    @classmethod
    def _non_negative_delay(cls, value: int) -> int:
        if value < 0:
            raise ValueError("demo delay must not be negative")
        return value

    @property
    def is_production(self) -> bool:
        return self.asyncqueue_env == "production"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
