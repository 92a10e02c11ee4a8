"""
Configuration settings for the practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRACTICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///practice_engine.db",
        description="SQLAlchemy connection string for the wrong-item store",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Review Schedule (Ebbinghaus curve)
    # ========================================
    review_intervals_days: tuple[int, ...] = Field(
        default=(1, 2, 4, 7, 15),
        description="Review interval table indexed by review count (last entry repeats)",
    )

    # ========================================
    # Selection
    # ========================================
    adaptive_reevaluation_every: int = Field(
        default=5,
        description="Adaptive mode re-evaluates difficulty every N drawn items",
    )
    wrong_backfill_seed_count: int = Field(
        default=5,
        description="Top-ranked wrong items used to seed similar-question backfill",
    )
    borrow_from_adjacent: bool = Field(
        default=True,
        description="Refill an underfilled difficulty bucket from the nearest difficulty",
    )
    max_target_count: int = Field(
        default=50,
        description="Upper bound on questions per generation request",
    )

    # ========================================
    # Time Estimate
    # ========================================
    base_seconds_per_question: int = Field(
        default=30,
        description="Base seconds per question before difficulty weighting",
    )
    seconds_per_difficulty_point: int = Field(
        default=30,
        description="Extra seconds per average difficulty point (Easy=1, Medium=2, Hard=3)",
    )

    @field_validator("review_intervals_days")
    @classmethod
    def _intervals_non_decreasing(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("review_intervals_days must not be empty")
        if any(days <= 0 for days in value):
            raise ValueError("review intervals must be positive")
        if list(value) != sorted(value):
            raise ValueError("review intervals must be non-decreasing")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
