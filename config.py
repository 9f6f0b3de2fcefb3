"""
Configuration settings for the mcq-bank practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUBJECTS = [
    "Psychiatric Nursing",
    "Pediatric Nursing",
    "Obstetrics and Gynecology Nursing",
    "Community Health Nursing",
    "Nursing Administration",
    "Nursing Research",
    "Medical Surgical Nursing",
    "Fundamentals of Nursing",
    "Human Anatomy",
    "Human Physiology",
    "Microbiology",
    "Sociology",
    "Nutrition",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Subjects
    # ========================================
    subjects: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SUBJECTS),
        description="Subjects offered by the subject picker",
    )

    # ========================================
    # Rounds
    # ========================================
    round_size: int = Field(
        default=50,
        ge=1,
        description="Question slots per round (small banks wrap around)",
    )
    question_time_limit_seconds: int = Field(
        default=60,
        ge=1,
        description="Countdown per question before auto-advance",
    )

    # ========================================
    # Replenishment
    # ========================================
    replenish_threshold: int = Field(
        default=50,
        ge=0,
        description="Banks below this size are topped up from question sources",
    )
    replenish_batch_size: int = Field(
        default=20,
        ge=1,
        description="Accepted candidates to gather per collection",
    )
    fallback_limit: int = Field(
        default=10,
        ge=0,
        description="Maximum fallback templates used when sources yield nothing",
    )
    source_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for a single source fetch, retries included",
    )
    source_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="HTTP attempts per source request",
    )

    # ========================================
    # Question Sources
    # ========================================
    opentdb_url: str = Field(
        default="https://opentdb.com/api.php",
        description="Open Trivia DB endpoint",
    )
    quizapi_url: str = Field(
        default="https://quizapi.io/api/v1/questions",
        description="QuizAPI endpoint",
    )
    quizapi_key: str | None = Field(
        default=None,
        description="QuizAPI key (source is skipped without one)",
    )
    trivia_api_url: str = Field(
        default="https://the-trivia-api.com/api/questions",
        description="The Trivia API endpoint",
    )
    trivia_api_categories: str = Field(
        default="science,medicine",
        description="Comma-separated Trivia API categories",
    )

    # ========================================
    # Storage
    # ========================================
    state_db_path: Path = Field(
        default=Path.home() / ".mcqbank" / "state.db",
        description="SQLite key-value store for banks and progress",
    )
    seed_questions_path: Path | None = Field(
        default=None,
        description="Optional JSON document replacing the built-in seed bank",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def has_quizapi_configured(self) -> bool:
        """Check if a QuizAPI key is available."""
        return bool(self.quizapi_key)

    def get_replenishment_config(self) -> dict[str, float | int]:
        """Get replenishment tuning as a dictionary."""
        return {
            "threshold": self.replenish_threshold,
            "batch_size": self.replenish_batch_size,
            "fallback_limit": self.fallback_limit,
            "source_timeout_seconds": self.source_timeout_seconds,
            "retry_attempts": self.source_retry_attempts,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
